"""
HTTP surface: routes, status codes and error mapping.
"""

import httpx
import pytest
import pytest_asyncio
from fastapi.testclient import TestClient

from agenda.db.session import get_session
from agenda.main import app

DAY = "2024-01-10"


def test_health_endpoint():
    client = TestClient(app)
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json() == {"ok": True}
    assert "x-correlation-id" in response.headers


def test_app_routes():
    paths = {route.path for route in app.routes if hasattr(route, "path")}
    assert {"/healthz", "/readyz", "/appointments", "/appointments/{appointment_id}",
            "/locations/{location_id}/conflicts", "/notifications", "/profiles/me/status",
            "/calendar/{view}"} <= paths


@pytest_asyncio.fixture
async def client(session_factory, team):
    async def override_session():
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_session] = override_session
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
    app.dependency_overrides.clear()


def as_user(user_id):
    return {"X-User-Id": user_id}


def payload(**kw):
    body = {"title": "Planning", "date": DAY, "start_time": "09:00", "end_time": "09:15"}
    body.update(kw)
    return body


@pytest.mark.asyncio
async def test_readyz(client):
    response = await client.get("/readyz")
    assert response.status_code == 200
    assert response.json()["db"] == "ok"
    assert response.json()["sync"] == "off"


@pytest.mark.asyncio
async def test_writes_need_a_known_user(client):
    assert (await client.post("/appointments", json=payload())).status_code == 401
    assert (await client.post("/appointments", json=payload(), headers=as_user("ghost"))).status_code == 401


@pytest.mark.asyncio
async def test_create_then_conflict(client):
    first = await client.post("/appointments", json=payload(title="Standup", location_id="loc-room"),
                              headers=as_user("u-alice"))
    assert first.status_code == 201
    created = first.json()["appointment"]
    assert created["location"]["name"] == "Sala 1"

    second = await client.post(
        "/appointments",
        json=payload(start_time="09:10", end_time="09:30", location_id="loc-room"),
        headers=as_user("u-bob"),
    )
    assert second.status_code == 409
    body = second.json()
    assert body["status"] == "conflict"
    assert body["conflict"] == {"appointment_id": created["id"], "title": "Standup", "start": "09:00", "end": "09:15"}

    forced = await client.post(
        "/appointments?allow_conflict=true",
        json=payload(start_time="09:10", end_time="09:30", location_id="loc-room"),
        headers=as_user("u-bob"),
    )
    assert forced.status_code == 201
    assert forced.json()["overrode_conflict"] is True


@pytest.mark.asyncio
async def test_validation_error_is_422(client):
    response = await client.post("/appointments", json=payload(location_id="loc-room", end_time=None),
                                 headers=as_user("u-alice"))
    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"


@pytest.mark.asyncio
async def test_conflict_lookup(client):
    await client.post("/appointments", json=payload(location_id="loc-room"), headers=as_user("u-alice"))
    hit = await client.get("/locations/loc-room/conflicts",
                           params={"date": DAY, "start_time": "09:05", "end_time": "09:20"})
    assert hit.status_code == 200
    assert hit.json()["title"] == "Planning"
    miss = await client.get("/locations/loc-room/conflicts",
                            params={"date": DAY, "start_time": "09:15", "end_time": "09:20"})
    assert miss.json() is None
    reversed_range = await client.get("/locations/loc-room/conflicts",
                                      params={"date": DAY, "start_time": "09:20", "end_time": "09:05"})
    assert reversed_range.status_code == 422
    assert reversed_range.json()["error"] == "validation_error"
    missing = await client.get("/locations/nowhere/conflicts", params={"date": DAY, "start_time": "09:00",
                                                                       "end_time": "10:00"})
    assert missing.status_code == 404
    assert missing.json()["error"] == "not_found"


@pytest.mark.asyncio
async def test_list_filters_and_calendar(client):
    await client.post("/appointments", json=payload(title="Sync", attendee_ids=["u-bob"]), headers=as_user("u-alice"))
    await client.post("/appointments", json=payload(title="Solo", type="meeting", date="2024-01-20"),
                      headers=as_user("u-carol"))

    everything = await client.get("/appointments")
    assert [a["title"] for a in everything.json()] == ["Sync", "Solo"]

    ops = await client.get("/appointments", params={"sector_ids": ["sec-ops"]})
    assert [a["title"] for a in ops.json()] == ["Sync"]

    meetings = await client.get("/appointments", params={"event_type": "meeting"})
    assert [a["type_label"] for a in meetings.json()] == ["Reunião"]

    bob = await client.get("/appointments", params={"user_id": "u-bob", "user_role": "participant"})
    assert [a["title"] for a in bob.json()] == ["Sync"]

    january = await client.get("/appointments", params={"date_from": "2024-01-15", "date_to": "2024-01-31"})
    assert [a["title"] for a in january.json()] == ["Solo"]

    week = await client.get("/calendar/week", params={"date": DAY})
    cells = week.json()["cells"]
    assert [c["date"] for c in cells][0] == "2024-01-07"
    assert [a["title"] for a in cells[3]["appointments"]] == ["Sync"]

    month = await client.get("/calendar/month", params={"date": DAY})
    assert len(month.json()["cells"]) == 42


@pytest.mark.asyncio
async def test_invitation_flow_and_notifications(client):
    created = await client.post("/appointments", json=payload(attendee_ids=["u-bob"]), headers=as_user("u-alice"))
    appt_id = created.json()["appointment"]["id"]

    notes = await client.get("/notifications", headers=as_user("u-bob"))
    assert notes.json()["counters"]["pending_invitations"] == 1

    answer = await client.post(f"/appointments/{appt_id}/attendees/u-bob/status",
                               json={"status": "accepted"}, headers=as_user("u-bob"))
    assert answer.status_code == 200
    assert answer.json()["status"] == "accepted"

    again = await client.post(f"/appointments/{appt_id}/attendees/u-bob/status",
                              json={"status": "declined"}, headers=as_user("u-bob"))
    assert again.status_code == 409

    request = await client.post(f"/appointments/{appt_id}/requests", headers=as_user("u-carol"))
    assert request.status_code == 201
    organizer_notes = await client.get("/notifications", headers=as_user("u-alice"))
    assert organizer_notes.json()["counters"]["pending_requests"] == 1

    stranger = await client.post(f"/appointments/{appt_id}/attendees/u-carol/status",
                                 json={"status": "accepted"}, headers=as_user("u-dave"))
    assert stranger.status_code == 403


@pytest.mark.asyncio
async def test_edit_and_delete(client):
    created = await client.post("/appointments", json=payload(attendee_ids=["u-bob", "u-carol"]),
                                headers=as_user("u-alice"))
    appt_id = created.json()["appointment"]["id"]

    edited = await client.patch(f"/appointments/{appt_id}", json={"organizer_only": True},
                                headers=as_user("u-alice"))
    assert edited.status_code == 200
    assert edited.json()["appointment"]["attendees"] == []

    denied = await client.delete(f"/appointments/{appt_id}", headers=as_user("u-bob"))
    assert denied.status_code == 403

    deleted = await client.delete(f"/appointments/{appt_id}", headers=as_user("u-admin"))
    assert deleted.status_code == 204
    assert (await client.get(f"/appointments/{appt_id}")).status_code == 404


@pytest.mark.asyncio
async def test_presence_status(client):
    response = await client.patch("/profiles/me/status", json={"status": "vacation"}, headers=as_user("u-bob"))
    assert response.status_code == 200
    assert response.json()["status"] == "vacation"
    invalid = await client.patch("/profiles/me/status", json={"status": "asleep"}, headers=as_user("u-bob"))
    assert invalid.status_code == 422
