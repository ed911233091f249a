# agenda/crud/appointment.py
"""
Appointment queries against the store. Nothing here commits: the
scheduling service owns the transaction so check + write stay together.
"""
from __future__ import annotations
from typing import Iterable, Optional, Sequence

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.db.models.appointment import Appointment
from agenda.db.models.attendee import Attendee
from agenda.db.models.location import Location
from agenda.db.models.profile import Profile

EDITABLE_FIELDS = (
    "title", "date", "start_time", "end_time", "type", "description",
    "location_id", "location_text", "organizer_only",
)


async def get_appointment(db: AsyncSession, appointment_id: str) -> Optional[Appointment]:
    res = await db.execute(sa.select(Appointment).where(Appointment.id == appointment_id))
    return res.scalar_one_or_none()


def _sector_membership(sector_ids: Sequence[str]):
    """Organizer or any attendee belongs to one of `sector_ids`."""
    organizer_in_sector = (
        sa.select(Profile.id)
        .where(Profile.id == Appointment.created_by, Profile.sector_id.in_(sector_ids))
        .exists()
    )
    attendee_in_sector = (
        sa.select(Attendee.id)
        .join(Profile, Profile.id == Attendee.user_id)
        .where(Attendee.appointment_id == Appointment.id, Profile.sector_id.in_(sector_ids))
        .exists()
    )
    return sa.or_(organizer_in_sector, attendee_in_sector)


async def list_appointments(
    db: AsyncSession,
    *,
    sector_ids: Optional[Sequence[str]] = None,
    ids: Optional[Iterable[str]] = None,
    date_from: Optional[str] = None,
    date_to: Optional[str] = None,
) -> Sequence[Appointment]:
    q = sa.select(Appointment)
    if sector_ids:
        q = q.where(_sector_membership(list(sector_ids)))
    if ids is not None:
        q = q.where(Appointment.id.in_(list(ids)))
    if date_from is not None:
        q = q.where(Appointment.date >= date_from)
    if date_to is not None:
        q = q.where(Appointment.date <= date_to)
    q = q.order_by(Appointment.date.asc(), Appointment.start_time.asc())
    res = await db.execute(q)
    return res.scalars().all()


async def list_bookings_at(
    db: AsyncSession,
    *,
    location_id: str,
    date: str,
    exclude_id: Optional[str] = None,
) -> Sequence[Appointment]:
    """Everything booked at a location on a calendar day, earliest first."""
    q = sa.select(Appointment).where(
        Appointment.location_id == location_id,
        Appointment.date == date,
    )
    if exclude_id:
        q = q.where(Appointment.id != exclude_id)
    q = q.order_by(Appointment.start_time.asc(), Appointment.created_at.asc())
    res = await db.execute(q)
    return res.scalars().all()


async def lock_location(db: AsyncSession, location_id: str) -> Optional[Location]:
    """
    Row-lock the location for the rest of the transaction so concurrent
    bookings there serialize (PostgreSQL; SQLite ignores FOR UPDATE).
    """
    res = await db.execute(
        sa.select(Location).where(Location.id == location_id).with_for_update()
    )
    return res.scalar_one_or_none()


async def insert_appointment(db: AsyncSession, *, created_by: str, **fields) -> Appointment:
    appt = Appointment(created_by=created_by, **{k: v for k, v in fields.items() if k in EDITABLE_FIELDS})
    db.add(appt)
    await db.flush()
    return appt


async def update_appointment(db: AsyncSession, appt: Appointment, **fields) -> Appointment:
    for key, value in fields.items():
        if key in EDITABLE_FIELDS:
            setattr(appt, key, value)
    await db.flush()
    return appt


async def delete_appointment(db: AsyncSession, appointment_id: str) -> bool:
    # attendee rows go first; SQLite does not enforce the cascade
    await db.execute(sa.delete(Attendee).where(Attendee.appointment_id == appointment_id))
    res = await db.execute(sa.delete(Appointment).where(Appointment.id == appointment_id))
    return (res.rowcount or 0) > 0
