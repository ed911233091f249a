# agenda/services/scheduling.py
"""
Create / edit / delete orchestration for appointments.

Booking is one operation: validate, lock the location, check for a
conflict, insert the appointment and its attendee rows, commit. It
returns a tagged BookingOutcome (ok | conflict | error) instead of
leaving check-then-insert to the caller.

Two bookings at the same location never interleave:
- within a process, a per-location asyncio.Lock serializes them;
- across processes, the location row is locked FOR UPDATE inside the
  booking transaction (PostgreSQL).
"""
from __future__ import annotations

import asyncio
from contextlib import nullcontext
from dataclasses import dataclass
from typing import Any, Iterable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.core.config import settings
from agenda.core.errors import (
    NotFound,
    PermissionDenied,
    SchedulingError,
    ValidationError,
    WriteFailure,
    log_error,
)
from agenda.core.logging import get_logger
from agenda.crud import appointment as appointment_crud
from agenda.crud import attendee as attendee_crud
from agenda.crud import lookups as lookups_crud
from agenda.schemas.appointment import (
    AppointmentCreate,
    AppointmentUpdate,
    AppointmentView,
    BookingOutcome,
    ConflictOut,
)
from agenda.schemas.attendee import AttendeeOut
from agenda.schemas.lookups import ProfileOut
from agenda.services import invitations
from agenda.services.aggregate import build_appointment_view, unique_user_ids
from agenda.services.change_feed import (
    APPOINTMENTS,
    ATTENDEES,
    PROFILES,
    ChangeEvent,
    ChangeFeed,
    ChangeKind,
)
from agenda.services.conflicts import check_conflict
from agenda.services.statuses import PresenceStatus
from agenda.services.timeutils import ensure_end_after_start, normalize_date, normalize_time

logger = get_logger(__name__)


@dataclass(frozen=True)
class Actor:
    """The user performing an operation (authentication happens upstream)."""
    id: str
    role: str = "Normal"

    @property
    def is_admin(self) -> bool:
        return self.role == settings.ADMIN_ROLE


class BookingLocks:
    """One asyncio.Lock per location id, created on demand."""

    def __init__(self):
        self._locks: dict[str, asyncio.Lock] = {}

    def for_location(self, location_id: Optional[str]):
        if not location_id:
            return nullcontext()
        lock = self._locks.get(location_id)
        if lock is None:
            lock = self._locks[location_id] = asyncio.Lock()
        return lock


# ---------- Validation ----------

def validate_fields(fields: dict[str, Any]) -> dict[str, Any]:
    """
    Normalize and validate appointment fields. Raises ValidationError
    before anything touches the store.
    """
    title = (fields.get("title") or "").strip()
    if not title:
        raise ValidationError("Title is required", field="title")

    if not fields.get("date"):
        raise ValidationError("Date is required", field="date")
    date = normalize_date(fields["date"])

    start_time = normalize_time(fields.get("start_time"))
    end_time = normalize_time(fields.get("end_time"))
    if end_time and not start_time:
        raise ValidationError("End time needs a start time", field="start_time")
    ensure_end_after_start(start_time, end_time)

    location_id = fields.get("location_id") or None
    location_text = (fields.get("location_text") or "").strip() or None
    if location_id and location_text:
        raise ValidationError(
            "Choose either a managed location or an external location, not both",
            field="location_text",
        )

    return {
        "title": title,
        "date": date,
        "start_time": start_time,
        "end_time": end_time,
        "type": (fields.get("type") or "").strip() or "sync",
        "description": fields.get("description"),
        "location_id": location_id,
        "location_text": location_text,
        "organizer_only": bool(fields.get("organizer_only")),
    }


def ensure_can_edit(appt: Any, actor: Actor) -> None:
    if appt.created_by != actor.id and not actor.is_admin:
        raise PermissionDenied("Only the organizer or an administrator can change this appointment")


def _error_outcome(error: SchedulingError) -> BookingOutcome:
    return BookingOutcome(status="error", error=error.code, message=error.message)


def _conflict_message(conflict: ConflictOut) -> str:
    return (
        f"This location already has '{conflict.title}' booked "
        f"from {conflict.start} to {conflict.end or '?'}."
    )


def _row(appt: Any) -> dict[str, Any]:
    return {
        "id": appt.id,
        "date": appt.date,
        "location_id": appt.location_id,
        "created_by": appt.created_by,
    }


class SchedulingService:
    def __init__(self, feed: Optional[ChangeFeed] = None, locks: Optional[BookingLocks] = None):
        self.feed = feed
        self.locks = locks or BookingLocks()

    # ---------- Reads ----------

    async def load_view(self, db: AsyncSession, appointment_id: str) -> AppointmentView:
        appt = await appointment_crud.get_appointment(db, appointment_id)
        if appt is None:
            raise NotFound("Appointment not found", appointment_id=appointment_id)
        attendees = await attendee_crud.list_for_appointment(db, appointment_id)
        locations = {loc.id: loc for loc in await lookups_crud.list_locations(db)}
        profiles = {p.id: p for p in await lookups_crud.list_profiles(db)}
        types = await lookups_crud.list_appointment_types(db)
        return build_appointment_view(appt, attendees, locations=locations, types=types, profiles=profiles)

    async def check_conflict(
        self,
        db: AsyncSession,
        location_id: str,
        date: str,
        start_time: Optional[str],
        end_time: Optional[str],
        *,
        exclude_id: Optional[str] = None,
    ) -> Optional[ConflictOut]:
        return await check_conflict(
            db, location_id, date, normalize_time(start_time), normalize_time(end_time), exclude_id=exclude_id
        )

    # ---------- Booking ----------

    async def _guard_location(
        self,
        db: AsyncSession,
        fields: dict[str, Any],
        *,
        exclude_id: Optional[str] = None,
    ) -> Optional[ConflictOut]:
        """Lock the location row and look for an overlapping booking."""
        location_id = fields["location_id"]
        if not location_id:
            return None
        location = await appointment_crud.lock_location(db, location_id)
        if location is None:
            raise NotFound("Location not found", location_id=location_id)
        return await check_conflict(
            db,
            location_id,
            fields["date"],
            fields["start_time"],
            fields["end_time"],
            exclude_id=exclude_id,
            location=location,
        )

    async def book_appointment(
        self,
        db: AsyncSession,
        data: AppointmentCreate,
        actor: Actor,
        *,
        allow_conflict: bool = False,
    ) -> BookingOutcome:
        """
        Check-and-book in one transaction.

        - conflict at a conflict-controlled location -> status "conflict",
          nothing written (unless allow_conflict)
        - validation/store failure -> status "error", nothing written;
          the appointment and its attendee batch commit together or not at all
        """
        try:
            fields = validate_fields(data.model_dump())
            invitees = [uid for uid in unique_user_ids(data.attendee_ids) if uid != actor.id]
            if fields["organizer_only"] and invitees:
                raise ValidationError("Organizer-only appointments cannot have attendees", field="attendee_ids")
        except ValidationError as e:
            log_error(e, {"component": "booking", "user_id": actor.id})
            return _error_outcome(e)

        conflict: Optional[ConflictOut] = None
        async with self.locks.for_location(fields["location_id"]):
            try:
                conflict = await self._guard_location(db, fields)
                if conflict is not None and not allow_conflict:
                    await db.rollback()
                    return BookingOutcome(
                        status="conflict", conflict=conflict, message=_conflict_message(conflict)
                    )

                appt = await appointment_crud.insert_appointment(db, created_by=actor.id, **fields)
                # cache plain values before commit
                appointment_id = appt.id
                row = _row(appt)
                if invitees:
                    await invitations.invite(db, appointment_id, invitees)
                await db.commit()
            except SchedulingError as e:
                await db.rollback()
                log_error(e, {"component": "booking", "user_id": actor.id})
                return _error_outcome(e)
            except SQLAlchemyError as e:
                await db.rollback()
                failure = WriteFailure(f"Could not save appointment: {e.__class__.__name__}")
                log_error(e, {"component": "booking", "user_id": actor.id})
                return _error_outcome(failure)

        if conflict is not None:
            logger.warning("appointment_booked_over_conflict", appointment_id=appointment_id,
                           conflicting_id=conflict.appointment_id)
        logger.info("appointment_booked", appointment_id=appointment_id, location_id=fields["location_id"],
                    date=fields["date"], attendees=len(invitees))

        events = [ChangeEvent(APPOINTMENTS, ChangeKind.INSERT, row)]
        events += [
            ChangeEvent(ATTENDEES, ChangeKind.INSERT, {"appointment_id": appointment_id, "user_id": uid, "status": "pending"})
            for uid in invitees
        ]
        await self._publish(events)

        view = await self.load_view(db, appointment_id)
        return BookingOutcome(status="ok", appointment=view, overrode_conflict=conflict is not None)

    async def update_appointment(
        self,
        db: AsyncSession,
        appointment_id: str,
        changes: AppointmentUpdate,
        actor: Actor,
        *,
        allow_conflict: bool = False,
    ) -> BookingOutcome:
        """
        Edit under the same guard as booking (the edited appointment is
        excluded from its own conflict check). Turning organizer_only on
        deletes every attendee row in the same transaction.
        """
        appt = await appointment_crud.get_appointment(db, appointment_id)
        if appt is None:
            return _error_outcome(NotFound("Appointment not found", appointment_id=appointment_id))

        patch = changes.model_dump(exclude_unset=True)
        selection = patch.pop("attendee_ids", None)
        try:
            ensure_can_edit(appt, actor)
            if patch.get("location_id") and patch.get("location_text"):
                raise ValidationError(
                    "Choose either a managed location or an external location, not both",
                    field="location_text",
                )
            current = {key: getattr(appt, key) for key in appointment_crud.EDITABLE_FIELDS}
            # picking one kind of location clears the other
            if patch.get("location_id"):
                patch["location_text"] = None
            elif patch.get("location_text"):
                patch["location_id"] = None
            fields = validate_fields({**current, **patch})
            if fields["organizer_only"] and selection:
                raise ValidationError("Organizer-only appointments cannot have attendees", field="attendee_ids")
        except SchedulingError as e:
            await db.rollback()
            log_error(e, {"component": "booking", "user_id": actor.id})
            return _error_outcome(e)

        events = [ChangeEvent(APPOINTMENTS, ChangeKind.UPDATE, {"id": appointment_id})]
        conflict: Optional[ConflictOut] = None
        async with self.locks.for_location(fields["location_id"]):
            try:
                conflict = await self._guard_location(db, fields, exclude_id=appointment_id)
                if conflict is not None and not allow_conflict:
                    await db.rollback()
                    return BookingOutcome(
                        status="conflict", conflict=conflict, message=_conflict_message(conflict)
                    )

                await appointment_crud.update_appointment(db, appt, **fields)
                if fields["organizer_only"]:
                    if await invitations.clear_for_organizer_only(db, appointment_id):
                        events.append(ChangeEvent(ATTENDEES, ChangeKind.DELETE, {"appointment_id": appointment_id}))
                elif selection is not None:
                    added, removed = await invitations.sync_selection(
                        db, appointment_id, selection, organizer_id=appt.created_by
                    )
                    if added or removed:
                        events.append(ChangeEvent(ATTENDEES, ChangeKind.UPDATE, {"appointment_id": appointment_id}))
                await db.commit()
            except SchedulingError as e:
                await db.rollback()
                log_error(e, {"component": "booking", "user_id": actor.id})
                return _error_outcome(e)
            except SQLAlchemyError as e:
                await db.rollback()
                log_error(e, {"component": "booking", "user_id": actor.id})
                return _error_outcome(WriteFailure(f"Could not update appointment: {e.__class__.__name__}"))

        logger.info("appointment_updated", appointment_id=appointment_id, fields=sorted(patch))
        await self._publish(events)

        view = await self.load_view(db, appointment_id)
        return BookingOutcome(status="ok", appointment=view, overrode_conflict=conflict is not None)

    async def delete_appointment(self, db: AsyncSession, appointment_id: str, actor: Actor) -> None:
        appt = await appointment_crud.get_appointment(db, appointment_id)
        if appt is None:
            raise NotFound("Appointment not found", appointment_id=appointment_id)
        ensure_can_edit(appt, actor)
        row = _row(appt)
        await self._commit(db, appointment_crud.delete_appointment(db, appointment_id), "delete appointment")
        logger.info("appointment_deleted", appointment_id=appointment_id)
        await self._publish([
            ChangeEvent(APPOINTMENTS, ChangeKind.DELETE, row),
            ChangeEvent(ATTENDEES, ChangeKind.DELETE, {"appointment_id": appointment_id}),
        ])

    # ---------- Attendees ----------

    async def _appointment(self, db: AsyncSession, appointment_id: str) -> Any:
        appt = await appointment_crud.get_appointment(db, appointment_id)
        if appt is None:
            raise NotFound("Appointment not found", appointment_id=appointment_id)
        return appt

    async def respond(
        self, db: AsyncSession, appointment_id: str, user_id: str, status: str, actor: Actor
    ) -> AttendeeOut:
        appt = await self._appointment(db, appointment_id)
        attendee = await self._commit(
            db,
            invitations.respond(db, appt, user_id=user_id, status=status,
                                actor_id=actor.id, actor_is_admin=actor.is_admin),
            "update attendee status",
        )
        out = AttendeeOut.model_validate(attendee)
        await self._publish([ChangeEvent(ATTENDEES, ChangeKind.UPDATE, out.model_dump(mode="json"))])
        return out

    async def request_participation(self, db: AsyncSession, appointment_id: str, actor: Actor) -> AttendeeOut:
        appt = await self._appointment(db, appointment_id)
        attendee = await self._commit(
            db, invitations.request_participation(db, appt, user_id=actor.id), "request participation"
        )
        out = AttendeeOut.model_validate(attendee)
        await self._publish([ChangeEvent(ATTENDEES, ChangeKind.INSERT, out.model_dump(mode="json"))])
        return out

    async def reinvite(self, db: AsyncSession, appointment_id: str, user_id: str, actor: Actor) -> AttendeeOut:
        appt = await self._appointment(db, appointment_id)
        ensure_can_edit(appt, actor)
        attendee = await self._commit(db, invitations.reinvite(db, appt, user_id=user_id), "reinvite attendee")
        out = AttendeeOut.model_validate(attendee)
        await self._publish([ChangeEvent(ATTENDEES, ChangeKind.INSERT, out.model_dump(mode="json"))])
        return out

    # ---------- Profiles ----------

    async def set_presence(self, db: AsyncSession, actor: Actor, status: str) -> ProfileOut:
        try:
            presence = PresenceStatus(status)
        except ValueError:
            raise ValidationError(f"Unknown presence status: {status!r}", field="status") from None
        profile = await lookups_crud.get_profile(db, actor.id)
        if profile is None:
            raise NotFound("Profile not found", profile_id=actor.id)
        await self._commit(db, lookups_crud.update_profile_status(db, profile, presence.value), "update profile")
        out = ProfileOut.model_validate(profile)
        await self._publish([ChangeEvent(PROFILES, ChangeKind.UPDATE, {"id": actor.id, "status": presence.value})])
        return out

    # ---------- Plumbing ----------

    async def _commit(self, db: AsyncSession, operation, what: str):
        """Await a flush-level operation and commit; roll back and re-raise on failure."""
        try:
            result = await operation
            await db.commit()
            return result
        except SchedulingError:
            await db.rollback()
            raise
        except IntegrityError as e:
            await db.rollback()
            raise WriteFailure(f"Could not {what}: conflicting record") from e
        except SQLAlchemyError as e:
            await db.rollback()
            raise WriteFailure(f"Could not {what}: {e.__class__.__name__}") from e

    async def _publish(self, events: Iterable[ChangeEvent]) -> None:
        if self.feed is None:
            return
        for event in events:
            await self.feed.publish(event)
