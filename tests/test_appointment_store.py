"""
Shared snapshot store: full reloads, listeners, projections and
last-issued-wins refresh ordering.
"""

import asyncio
from unittest.mock import patch

import pytest

from agenda.core.errors import SyncFailure
from agenda.schemas.filters import FilterCriteria
from agenda.services import appointment_store
from agenda.services.appointment_store import AppointmentStore, Snapshot, load_snapshot
from agenda.services.notifications import compute_counters, list_notifications


@pytest.mark.asyncio
async def test_load_snapshot_joins_everything(db, team, make_appointment):
    await make_appointment(title="Standup", location_id="loc-room", attendees={"u-bob": "pending"})
    snapshot = await load_snapshot(db, version=3)
    assert snapshot.version == 3
    assert [a.title for a in snapshot.appointments] == ["Standup"]
    view = snapshot.appointments[0]
    assert view.location.name == "Sala 1"
    assert view.type_label == "Sincronização"
    assert view.participant_sector_ids == ["sec-eng", "sec-ops"]
    assert {p.id for p in snapshot.profiles} >= {"u-alice", "u-bob"}
    assert len(snapshot.locations) == 2


@pytest.mark.asyncio
async def test_refresh_notifies_listeners_and_projects(session_factory, team, make_appointment):
    await make_appointment(title="Sync", type="sync")
    await make_appointment(title="Kickoff", type="meeting", start_time="14:00", end_time="15:00")
    store = AppointmentStore(session_factory, user_id="u-alice")

    seen = []
    unsubscribe = store.subscribe(seen.append)
    assert await store.refresh("test") is True
    assert len(seen) == 1 and seen[0].version == 1

    assert [a.title for a in store.project(FilterCriteria(event_type="meeting"))] == ["Kickoff"]
    assert store.get(store.snapshot.appointments[0].id) is not None

    unsubscribe()
    await store.refresh("again")
    assert len(seen) == 1
    assert store.version == 2


@pytest.mark.asyncio
async def test_failing_listener_does_not_block_others(session_factory, team):
    store = AppointmentStore(session_factory)
    seen = []

    def broken(snapshot):
        raise RuntimeError("render failed")

    store.subscribe(broken)
    store.subscribe(seen.append)
    await store.refresh()
    assert len(seen) == 1


@pytest.mark.asyncio
async def test_counters_are_recomputed_by_query(session_factory, db, team, make_appointment, make_message):
    await make_appointment(created_by="u-bob", attendees={"u-alice": "pending"})
    await make_appointment(created_by="u-alice", attendees={"u-carol": "requested"})
    await make_message("u-bob", "u-alice")
    await make_message("u-bob", "u-alice", read=True)

    store = AppointmentStore(session_factory, user_id="u-alice")
    await store.refresh()
    counters = store.snapshot.counters
    assert (counters.unread_messages, counters.pending_invitations, counters.pending_requests) == (1, 1, 1)
    assert counters == await compute_counters(db, "u-alice")


@pytest.mark.asyncio
async def test_notifications_list(db, team, make_appointment):
    await make_appointment(title="Invite", created_by="u-bob", attendees={"u-alice": "pending"})
    await make_appointment(title="Mine", created_by="u-alice", attendees={"u-carol": "requested"})
    notes = await list_notifications(db, "u-alice")
    assert [n.appointment_title for n in notes.invitations] == ["Invite"]
    assert [(n.appointment_title, n.attendee.user_id) for n in notes.requests] == [("Mine", "u-carol")]
    assert notes.counters.pending_requests == 1


@pytest.mark.asyncio
async def test_older_refresh_landing_late_is_shadowed(session_factory):
    release = {1: asyncio.Event(), 2: asyncio.Event()}

    async def slow_load(db, *, user_id=None, version=0):
        await release[version].wait()
        return Snapshot(version=version)

    store = AppointmentStore(session_factory)
    with patch.object(appointment_store, "load_snapshot", slow_load):
        first = asyncio.create_task(store.refresh("first"))
        second = asyncio.create_task(store.refresh("second"))
        await asyncio.sleep(0)

        release[2].set()
        assert await second is True
        release[1].set()
        assert await first is False

    assert store.version == 2


@pytest.mark.asyncio
async def test_driver_errors_surface_as_sync_failure(session_factory):
    async def unreachable(db, *, user_id=None, version=0):
        raise ConnectionRefusedError(111, "Connect call failed")

    store = AppointmentStore(session_factory)
    with patch.object(appointment_store, "load_snapshot", unreachable):
        with pytest.raises(SyncFailure):
            await store.refresh()
    assert store.version == 0
