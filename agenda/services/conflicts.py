# agenda/services/conflicts.py
"""
Location conflict detection.

Only locations with conflict control are checked. A booking conflicts
with the candidate when their half-open intervals overlap on the same
calendar day; touching endpoints (09:00-09:15 then 09:15-09:30) do not.

Policy is first match: the earliest overlapping booking is reported,
not every one. That is what the confirmation dialog needs.
"""
from __future__ import annotations

from typing import Iterable, Optional, Protocol

from sqlalchemy.ext.asyncio import AsyncSession

from agenda.core.errors import NotFound, ValidationError
from agenda.core.logging import get_logger
from agenda.crud import appointment as appointment_crud
from agenda.crud import lookups as lookups_crud
from agenda.schemas.appointment import ConflictOut
from agenda.services.timeutils import ensure_end_after_start, intervals_overlap, normalize_date, parse_time

logger = get_logger(__name__)


class Booking(Protocol):
    id: str
    title: str
    start_time: Optional[str]
    end_time: Optional[str]


class ControlledLocation(Protocol):
    id: str
    has_conflict_control: bool


def require_times(location: ControlledLocation, start_time: Optional[str], end_time: Optional[str]) -> None:
    """Conflict-controlled locations need a closed interval."""
    if location.has_conflict_control and (not start_time or not end_time):
        raise ValidationError(
            "Start and end time are required for this location.",
            field="end_time" if start_time else "start_time",
            location_id=location.id,
        )


def find_first_conflict(
    start_time: str,
    end_time: Optional[str],
    bookings: Iterable[Booking],
) -> Optional[ConflictOut]:
    """First booking whose [start, end) overlaps the candidate, in iteration order."""
    cand_start = parse_time(start_time)
    cand_end = parse_time(end_time) if end_time else None

    for booking in bookings:
        # untimed bookings do not occupy a slot
        if not booking.start_time:
            continue
        if intervals_overlap(
            cand_start,
            cand_end,
            parse_time(booking.start_time),
            parse_time(booking.end_time) if booking.end_time else None,
        ):
            return ConflictOut(
                appointment_id=booking.id,
                title=booking.title,
                start=booking.start_time,
                end=booking.end_time,
            )
    return None


async def check_conflict(
    db: AsyncSession,
    location_id: str,
    date: str,
    start_time: Optional[str],
    end_time: Optional[str],
    *,
    exclude_id: Optional[str] = None,
    location: Optional[ControlledLocation] = None,
) -> Optional[ConflictOut]:
    """
    Pure read. Returns the first conflicting booking or None.

    Raises NotFound for an unknown location and ValidationError when a
    conflict-controlled location is given an open or missing interval, or
    whenever the end is not after the start (before any appointment query
    runs).
    """
    ensure_end_after_start(start_time, end_time)
    if location is None:
        location = await lookups_crud.get_location(db, location_id)
    if location is None:
        raise NotFound("Location not found", location_id=location_id)

    if not location.has_conflict_control:
        return None

    require_times(location, start_time, end_time)

    day = normalize_date(date)
    bookings = await appointment_crud.list_bookings_at(
        db, location_id=location_id, date=day, exclude_id=exclude_id
    )
    conflict = find_first_conflict(start_time, end_time, bookings)  # type: ignore[arg-type]

    if conflict is not None:
        logger.info(
            "conflict_detected",
            location_id=location_id,
            date=day,
            candidate=f"{start_time}-{end_time}",
            existing_id=conflict.appointment_id,
            existing=f"{conflict.start}-{conflict.end}",
        )
    return conflict
