# agenda/services/invitations.py
"""
Attendee invitation state machine.

    pending   -> accepted | declined    (invitee or organizer)
    requested -> accepted | declined    (organizer only)

accepted and declined are final. Inviting someone again means deleting
their row and inserting a fresh pending one.

Functions here run inside the caller's transaction (flush, never commit).
"""
from __future__ import annotations

from typing import Any, Optional, Sequence

from sqlalchemy.ext.asyncio import AsyncSession

from agenda.core.errors import InvalidTransition, NotFound, PermissionDenied, ValidationError
from agenda.core.logging import get_logger
from agenda.crud import attendee as attendee_crud
from agenda.db.models.attendee import Attendee
from agenda.services.aggregate import unique_user_ids
from agenda.services.statuses import AttendeeStatus

logger = get_logger(__name__)

ALLOWED_TRANSITIONS: dict[AttendeeStatus, frozenset[AttendeeStatus]] = {
    AttendeeStatus.PENDING: frozenset({AttendeeStatus.ACCEPTED, AttendeeStatus.DECLINED}),
    AttendeeStatus.REQUESTED: frozenset({AttendeeStatus.ACCEPTED, AttendeeStatus.DECLINED}),
    AttendeeStatus.ACCEPTED: frozenset(),
    AttendeeStatus.DECLINED: frozenset(),
}


def can_transition(current: str | AttendeeStatus, target: str | AttendeeStatus) -> bool:
    return AttendeeStatus(target) in ALLOWED_TRANSITIONS[AttendeeStatus(current)]


def assert_transition(
    current: str | AttendeeStatus,
    target: str | AttendeeStatus,
    *,
    actor_id: str,
    attendee_user_id: str,
    organizer_id: str,
    actor_is_admin: bool = False,
) -> AttendeeStatus:
    """Validate a status change and who is making it; returns the target status."""
    current, target = AttendeeStatus(current), AttendeeStatus(target)

    if not can_transition(current, target):
        raise InvalidTransition(
            f"Cannot change attendee status from {current.value} to {target.value}",
            current=current.value,
            target=target.value,
        )

    is_organizer = actor_id == organizer_id or actor_is_admin
    if current is AttendeeStatus.REQUESTED and not is_organizer:
        raise PermissionDenied("Only the organizer can answer a participation request")
    if current is AttendeeStatus.PENDING and not (is_organizer or actor_id == attendee_user_id):
        raise PermissionDenied("Only the invitee or the organizer can answer an invitation")

    return target


async def respond(
    db: AsyncSession,
    appointment: Any,
    *,
    user_id: str,
    status: str,
    actor_id: str,
    actor_is_admin: bool = False,
) -> Attendee:
    attendee = await attendee_crud.get_attendee(db, appointment_id=appointment.id, user_id=user_id)
    if attendee is None:
        raise NotFound("Attendee not found", appointment_id=appointment.id, user_id=user_id)

    target = assert_transition(
        attendee.status,
        status,
        actor_id=actor_id,
        attendee_user_id=user_id,
        organizer_id=appointment.created_by,
        actor_is_admin=actor_is_admin,
    )
    previous = attendee.status
    await attendee_crud.update_status(db, attendee, target.value)
    logger.info(
        "attendee_status_changed",
        appointment_id=appointment.id,
        attendee=user_id,
        previous=previous,
        status=target.value,
    )
    return attendee


async def request_participation(db: AsyncSession, appointment: Any, *, user_id: str) -> Attendee:
    """A user not yet on the appointment asks to join; the row belongs to them."""
    if appointment.organizer_only:
        raise ValidationError("This appointment does not accept attendees", appointment_id=appointment.id)
    if appointment.created_by == user_id:
        raise ValidationError("The organizer cannot request to join their own appointment")

    existing = await attendee_crud.get_attendee(db, appointment_id=appointment.id, user_id=user_id)
    if existing is not None:
        raise InvalidTransition(
            "User already has an attendee record for this appointment",
            current=existing.status,
            target=AttendeeStatus.REQUESTED.value,
        )

    rows = await attendee_crud.insert_attendees(
        db, appointment_id=appointment.id, user_ids=[user_id], status=AttendeeStatus.REQUESTED.value
    )
    logger.info("participation_requested", appointment_id=appointment.id, attendee=user_id)
    return rows[0]


async def reinvite(db: AsyncSession, appointment: Any, *, user_id: str) -> Attendee:
    """Fresh invitation: drop whatever row exists and insert a pending one."""
    if appointment.organizer_only:
        raise ValidationError("This appointment does not accept attendees", appointment_id=appointment.id)
    await attendee_crud.delete_attendees(db, appointment_id=appointment.id, user_ids=[user_id])
    rows = await attendee_crud.insert_attendees(
        db, appointment_id=appointment.id, user_ids=[user_id], status=AttendeeStatus.PENDING.value
    )
    return rows[0]


async def invite(db: AsyncSession, appointment_id: str, user_ids: Sequence[str]) -> list[Attendee]:
    """Initial invitations at creation time: one pending row per distinct user."""
    return await attendee_crud.insert_attendees(
        db,
        appointment_id=appointment_id,
        user_ids=unique_user_ids(user_ids),
        status=AttendeeStatus.PENDING.value,
    )


async def sync_selection(
    db: AsyncSession,
    appointment_id: str,
    selected_ids: Sequence[str],
    *,
    organizer_id: Optional[str] = None,
) -> tuple[list[str], list[str]]:
    """
    Reconcile attendee rows with an edited selection. New ids are
    invited as pending, dropped ids are deleted, kept ids keep their state.
    Returns (added, removed).
    """
    selected = [uid for uid in unique_user_ids(selected_ids) if uid != organizer_id]
    current = [a.user_id for a in await attendee_crud.list_for_appointment(db, appointment_id)]

    to_add = [uid for uid in selected if uid not in current]
    to_remove = [uid for uid in current if uid not in selected]

    if to_add:
        await attendee_crud.insert_attendees(
            db, appointment_id=appointment_id, user_ids=to_add, status=AttendeeStatus.PENDING.value
        )
    if to_remove:
        await attendee_crud.delete_attendees(db, appointment_id=appointment_id, user_ids=to_remove)

    return to_add, to_remove


async def clear_for_organizer_only(db: AsyncSession, appointment_id: str) -> int:
    """Organizer-only appointments hold no attendee rows."""
    removed = await attendee_crud.delete_attendees(db, appointment_id=appointment_id)
    if removed:
        logger.info("attendees_cleared_organizer_only", appointment_id=appointment_id, removed=removed)
    return removed
