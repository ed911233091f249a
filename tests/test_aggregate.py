"""
View-model assembly from raw rows and lookup tables.
"""

from types import SimpleNamespace

from agenda.services.aggregate import (
    EXTERNAL_LOCATION_COLOR,
    build_appointment_view,
    build_appointment_views,
    unique_user_ids,
)


def appt(**kw):
    values = dict(
        id="a1", title="Planning", date="2024-01-10", start_time="10:00", end_time="11:00",
        type="meeting", description=None, created_by="u1", location_id=None,
        location_text=None, organizer_only=False,
    )
    values.update(kw)
    return SimpleNamespace(**values)


def attendee(id, user_id, status="pending", appointment_id="a1"):
    return SimpleNamespace(id=id, appointment_id=appointment_id, user_id=user_id, status=status)


PROFILES = {
    "u1": SimpleNamespace(id="u1", full_name="Alice", avatar=None, phone=None, sector_id="s-eng"),
    "u2": SimpleNamespace(id="u2", full_name="Bob", avatar="b.png", phone="555", sector_id="s-ops"),
    "u3": SimpleNamespace(id="u3", full_name="Carol", avatar=None, phone=None, sector_id=None),
}
LOCATIONS = {
    "l1": SimpleNamespace(id="l1", name="Sala 1", color="#ef4444", has_conflict_control=True),
}


def test_unique_user_ids_preserves_first_occurrence():
    assert unique_user_ids(["u1", "u1", "u2", None, "", "u1"]) == ["u1", "u2"]


def test_managed_location_is_resolved():
    view = build_appointment_view(appt(location_id="l1"), [], locations=LOCATIONS, types=[], profiles=PROFILES)
    assert view.location.name == "Sala 1"
    assert view.location.has_conflict_control is True
    assert view.location_id == "l1"


def test_dangling_location_id_renders_as_no_location():
    view = build_appointment_view(appt(location_id="gone"), [], locations=LOCATIONS, types=[], profiles=PROFILES)
    assert view.location is None
    assert view.location_id is None


def test_external_location_text():
    view = build_appointment_view(
        appt(location_text="Cliente ACME"), [], locations=LOCATIONS, types=[], profiles=PROFILES
    )
    assert view.location.external is True
    assert view.location.color == EXTERNAL_LOCATION_COLOR
    assert view.location_text == "Cliente ACME"


def test_orphaned_type_uses_legacy_alias():
    view = build_appointment_view(appt(type="meeting"), [], locations={}, types=[], profiles=PROFILES)
    assert view.type_label == "Reunião"
    assert view.type_color == "#3b82f6"


def test_attendees_joined_with_profiles_in_insertion_order():
    rows = [attendee(2, "u2", "accepted"), attendee(5, "u3")]
    view = build_appointment_view(appt(), rows, locations={}, types=[], profiles=PROFILES)
    assert [a.user_id for a in view.attendees] == ["u2", "u3"]
    assert view.attendees[0].full_name == "Bob"
    assert view.attendees[0].phone == "555"
    assert view.organizer_name == "Alice"


def test_participant_sectors_union_organizer_and_attendees():
    rows = [attendee(1, "u2", "declined"), attendee(2, "u3")]
    view = build_appointment_view(appt(), rows, locations={}, types=[], profiles=PROFILES)
    # declined attendees still count toward sector membership
    assert view.participant_sector_ids == ["s-eng", "s-ops"]


def test_unknown_attendee_profile_has_blank_details():
    view = build_appointment_view(appt(), [attendee(1, "ghost")], locations={}, types=[], profiles=PROFILES)
    assert view.attendees[0].full_name is None


def test_build_many_groups_attendees_by_appointment():
    appts = [appt(id="a1"), appt(id="a2", created_by="u2")]
    rows = [attendee(1, "u2", appointment_id="a1"), attendee(2, "u1", appointment_id="a2")]
    views = build_appointment_views(appts, rows, profiles=PROFILES.values())
    assert [v.id for v in views] == ["a1", "a2"]
    assert [a.user_id for a in views[1].attendees] == ["u1"]
