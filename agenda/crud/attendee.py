# agenda/crud/attendee.py
from __future__ import annotations
from typing import Iterable, Optional, Sequence

import sqlalchemy as sa
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.db.models.appointment import Appointment
from agenda.db.models.attendee import Attendee


async def get_attendee(db: AsyncSession, *, appointment_id: str, user_id: str) -> Optional[Attendee]:
    res = await db.execute(
        sa.select(Attendee).where(
            Attendee.appointment_id == appointment_id,
            Attendee.user_id == user_id,
        )
    )
    return res.scalar_one_or_none()


async def list_for_appointment(db: AsyncSession, appointment_id: str) -> Sequence[Attendee]:
    res = await db.execute(
        sa.select(Attendee)
        .where(Attendee.appointment_id == appointment_id)
        .order_by(Attendee.id.asc())
    )
    return res.scalars().all()


async def list_for_appointments(db: AsyncSession, appointment_ids: Iterable[str]) -> Sequence[Attendee]:
    ids = list(appointment_ids)
    if not ids:
        return []
    res = await db.execute(
        sa.select(Attendee)
        .where(Attendee.appointment_id.in_(ids))
        .order_by(Attendee.id.asc())
    )
    return res.scalars().all()


async def list_all(db: AsyncSession) -> Sequence[Attendee]:
    res = await db.execute(sa.select(Attendee).order_by(Attendee.id.asc()))
    return res.scalars().all()


async def list_by_user(db: AsyncSession, user_id: str, *, status: Optional[str] = None) -> Sequence[Attendee]:
    q = sa.select(Attendee).where(Attendee.user_id == user_id)
    if status is not None:
        q = q.where(Attendee.status == status)
    res = await db.execute(q.order_by(Attendee.id.asc()))
    return res.scalars().all()


async def list_requests_for_organizer(db: AsyncSession, organizer_id: str) -> Sequence[Attendee]:
    """Join requests waiting on appointments `organizer_id` created."""
    res = await db.execute(
        sa.select(Attendee)
        .join(Appointment, Appointment.id == Attendee.appointment_id)
        .where(Attendee.status == "requested", Appointment.created_by == organizer_id)
        .order_by(Attendee.id.asc())
    )
    return res.scalars().all()


async def count_by_user(db: AsyncSession, user_id: str, *, status: str) -> int:
    res = await db.execute(
        sa.select(sa.func.count(Attendee.id)).where(
            Attendee.user_id == user_id,
            Attendee.status == status,
        )
    )
    return int(res.scalar_one())


async def count_requests_for_organizer(db: AsyncSession, organizer_id: str) -> int:
    res = await db.execute(
        sa.select(sa.func.count(Attendee.id))
        .join(Appointment, Appointment.id == Attendee.appointment_id)
        .where(Attendee.status == "requested", Appointment.created_by == organizer_id)
    )
    return int(res.scalar_one())


async def insert_attendees(
    db: AsyncSession,
    *,
    appointment_id: str,
    user_ids: Sequence[str],
    status: str = "pending",
) -> list[Attendee]:
    """Batch insert; callers dedupe `user_ids` first."""
    rows = [Attendee(appointment_id=appointment_id, user_id=uid, status=status) for uid in user_ids]
    if rows:
        db.add_all(rows)
        await db.flush()
    return rows


async def update_status(db: AsyncSession, attendee: Attendee, status: str) -> Attendee:
    attendee.status = status
    await db.flush()
    return attendee


async def delete_attendees(
    db: AsyncSession,
    *,
    appointment_id: str,
    user_ids: Optional[Sequence[str]] = None,
) -> int:
    """Delete some (or, with user_ids=None, all) attendee rows of an appointment."""
    q = sa.delete(Attendee).where(Attendee.appointment_id == appointment_id)
    if user_ids is not None:
        if not user_ids:
            return 0
        q = q.where(Attendee.user_id.in_(list(user_ids)))
    res = await db.execute(q)
    return res.rowcount or 0
