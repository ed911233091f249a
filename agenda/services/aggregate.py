# agenda/services/aggregate.py
"""
Builds appointment view-models from raw rows and lookup tables.

Lookups are allowed to be stale: a location id with no row is shown as
no location, and a type value with no row falls through the type
resolution chain down to the raw value.
"""
from __future__ import annotations

from collections import defaultdict
from typing import Any, Iterable, Optional, Sequence

from agenda.schemas.appointment import AppointmentView, LocationDisplay
from agenda.schemas.attendee import AttendeeOut
from agenda.services.type_labels import translate_type, type_color, type_icon

EXTERNAL_LOCATION_COLOR = "#64748b"


def unique_user_ids(user_ids: Iterable[Optional[str]]) -> list[str]:
    """Order-preserving dedupe; blanks dropped."""
    seen: dict[str, None] = {}
    for uid in user_ids:
        if uid:
            seen.setdefault(uid, None)
    return list(seen)


def _location_display(appt: Any, locations: dict[str, Any]) -> Optional[LocationDisplay]:
    if appt.location_id:
        loc = locations.get(appt.location_id)
        if loc is None:
            return None
        return LocationDisplay(
            id=loc.id,
            name=loc.name,
            color=loc.color or EXTERNAL_LOCATION_COLOR,
            has_conflict_control=bool(loc.has_conflict_control),
        )
    if appt.location_text:
        return LocationDisplay(name=appt.location_text, color=EXTERNAL_LOCATION_COLOR, external=True)
    return None


def _attendee_out(att: Any, profiles: dict[str, Any]) -> AttendeeOut:
    profile = profiles.get(att.user_id)
    return AttendeeOut(
        id=att.id,
        appointment_id=att.appointment_id,
        user_id=att.user_id,
        status=att.status,
        full_name=getattr(profile, "full_name", None),
        avatar=getattr(profile, "avatar", None),
        phone=getattr(profile, "phone", None),
        sector_id=getattr(profile, "sector_id", None),
    )


def build_appointment_view(
    appt: Any,
    attendees: Sequence[Any],
    *,
    locations: dict[str, Any],
    types: Sequence[Any],
    profiles: dict[str, Any],
) -> AppointmentView:
    attendee_views = [_attendee_out(a, profiles) for a in attendees]

    organizer = profiles.get(appt.created_by)
    sector_ids = unique_user_ids(
        [getattr(organizer, "sector_id", None)] + [a.sector_id for a in attendee_views]
    )

    location = _location_display(appt, locations)

    return AppointmentView(
        id=appt.id,
        title=appt.title,
        date=appt.date,
        start_time=appt.start_time,
        end_time=appt.end_time,
        type=appt.type,
        type_label=translate_type(appt.type, types),
        type_color=type_color(appt.type, types),
        type_icon=type_icon(appt.type, types),
        description=appt.description,
        created_by=appt.created_by,
        organizer_name=getattr(organizer, "full_name", None),
        # a dangling id resolves to no location
        location_id=location.id if location is not None and not location.external else None,
        location_text=appt.location_text if not appt.location_id else None,
        location=location,
        organizer_only=bool(appt.organizer_only),
        attendees=attendee_views,
        participant_sector_ids=sector_ids,
    )


def build_appointment_views(
    appointments: Sequence[Any],
    attendees: Iterable[Any],
    *,
    locations: Iterable[Any] = (),
    types: Sequence[Any] = (),
    profiles: Iterable[Any] = (),
) -> list[AppointmentView]:
    """Join everything in memory; appointment order is preserved."""
    by_appointment: dict[str, list[Any]] = defaultdict(list)
    for att in attendees:
        by_appointment[att.appointment_id].append(att)

    location_map = {loc.id: loc for loc in locations}
    profile_map = {p.id: p for p in profiles}
    type_rows = list(types)

    return [
        build_appointment_view(
            appt,
            by_appointment.get(appt.id, []),
            locations=location_map,
            types=type_rows,
            profiles=profile_map,
        )
        for appt in appointments
    ]
