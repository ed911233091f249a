# agenda/services/notifications.py
"""Per-user notification lists and badge counters."""
from __future__ import annotations

from sqlalchemy.ext.asyncio import AsyncSession

from agenda.crud import appointment as appointment_crud
from agenda.crud import attendee as attendee_crud
from agenda.crud import message as message_crud
from agenda.schemas.attendee import AttendeeOut, Counters, InvitationOut, NotificationsOut
from agenda.services.statuses import AttendeeStatus


async def compute_counters(db: AsyncSession, user_id: str) -> Counters:
    """Counters are recomputed by query, never incremented locally."""
    return Counters(
        unread_messages=await message_crud.count_unread(db, user_id),
        pending_invitations=await attendee_crud.count_by_user(db, user_id, status=AttendeeStatus.PENDING.value),
        pending_requests=await attendee_crud.count_requests_for_organizer(db, user_id),
    )


async def list_notifications(db: AsyncSession, user_id: str) -> NotificationsOut:
    invites = await attendee_crud.list_by_user(db, user_id, status=AttendeeStatus.PENDING.value)
    requests = await attendee_crud.list_requests_for_organizer(db, user_id)

    appointment_ids = {a.appointment_id for a in invites} | {a.appointment_id for a in requests}
    appointments = {
        appt.id: appt for appt in await appointment_crud.list_appointments(db, ids=appointment_ids)
    } if appointment_ids else {}

    def _entry(att) -> InvitationOut | None:
        appt = appointments.get(att.appointment_id)
        if appt is None:
            return None
        return InvitationOut(
            attendee=AttendeeOut.model_validate(att),
            appointment_title=appt.title,
            appointment_date=appt.date,
            organizer_id=appt.created_by,
        )

    return NotificationsOut(
        invitations=[e for e in map(_entry, invites) if e is not None],
        requests=[e for e in map(_entry, requests) if e is not None],
        counters=await compute_counters(db, user_id),
    )
