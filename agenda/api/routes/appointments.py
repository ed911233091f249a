# agenda/api/routes/appointments.py

from __future__ import annotations
from typing import List, Optional, Sequence

from fastapi import APIRouter, Depends, Query, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.api.deps import get_actor, get_scheduler
from agenda.core.errors import (
    InvalidTransition,
    NotFound,
    PermissionDenied,
    ValidationError,
    WriteFailure,
)
from agenda.db.session import get_session
from agenda.schemas.appointment import AppointmentCreate, AppointmentUpdate, AppointmentView, BookingOutcome
from agenda.schemas.attendee import AttendeeOut, AttendeeStatusUpdate
from agenda.schemas.filters import ALL, FilterCriteria
from agenda.services.appointment_store import load_snapshot
from agenda.services.filters import filter_appointments
from agenda.services.scheduling import Actor, SchedulingService
from agenda.services.statuses import UserRole
from agenda.services.timeutils import between, normalize_date

router = APIRouter(prefix="/appointments", tags=["appointments"])

_ERROR_STATUS = {
    cls.code: cls.status_code
    for cls in (ValidationError, WriteFailure, PermissionDenied, NotFound, InvalidTransition)
}


def _outcome_response(outcome: BookingOutcome, success_status: int) -> JSONResponse:
    if outcome.status == "ok":
        return JSONResponse(outcome.model_dump(mode="json"), status_code=success_status)
    if outcome.status == "conflict":
        return JSONResponse(outcome.model_dump(mode="json"), status_code=409)
    return JSONResponse(outcome.model_dump(mode="json"), status_code=_ERROR_STATUS.get(outcome.error, 500))


async def visible_appointments(
    request: Request,
    db: AsyncSession,
    *,
    sector_ids: Sequence[str] = (),
    window: Optional[tuple[str, str]] = None,
) -> list[AppointmentView]:
    """
    The synchronized snapshot when it is live, otherwise a direct read
    narrowed in SQL by sector and date window. Callers still apply the
    full in-memory filter, so both paths return the same rows.
    """
    store = getattr(request.app.state, "store", None)
    sync = getattr(request.app.state, "synchronizer", None)
    if store is not None and sync is not None and sync.running and store.version:
        return list(store.snapshot.appointments)
    snapshot = await load_snapshot(db, sector_ids=sector_ids, window=window)
    return list(snapshot.appointments)


@router.get("", response_model=List[AppointmentView])
async def list_appointments(
    request: Request,
    db: AsyncSession = Depends(get_session),
    sector_ids: List[str] = Query([], description="Organizer or any attendee in one of these sectors"),
    event_type: str = Query(ALL),
    location_id: str = Query(ALL),
    user_id: str = Query(ALL),
    user_role: UserRole = Query(UserRole.ALL),
    sort: str = Query("asc", pattern="^(asc|desc)$"),
    date_from: Optional[str] = Query(None, description="YYYY-MM-DD, inclusive"),
    date_to: Optional[str] = Query(None, description="YYYY-MM-DD, inclusive"),
):
    criteria = FilterCriteria(
        sector_ids=sector_ids,
        event_type=event_type,
        location_id=location_id,
        user_id=user_id,
        user_role=user_role,
        sort=sort,
    )
    window = None
    if date_from or date_to:
        window = (
            normalize_date(date_from) if date_from else "0000-00-00",
            normalize_date(date_to) if date_to else "9999-99-99",
        )
    visible = await visible_appointments(request, db, sector_ids=sector_ids, window=window)
    appointments = filter_appointments(visible, criteria)
    if window:
        appointments = between(appointments, window)
    return appointments


@router.get("/{appointment_id}", response_model=AppointmentView)
async def get_appointment(
    appointment_id: str,
    db: AsyncSession = Depends(get_session),
    scheduler: SchedulingService = Depends(get_scheduler),
):
    return await scheduler.load_view(db, appointment_id)


@router.post("", response_model=BookingOutcome, status_code=201)
async def create_appointment(
    payload: AppointmentCreate,
    allow_conflict: bool = Query(False, description="Book even if the location is taken"),
    db: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_actor),
    scheduler: SchedulingService = Depends(get_scheduler),
):
    outcome = await scheduler.book_appointment(db, payload, actor, allow_conflict=allow_conflict)
    return _outcome_response(outcome, 201)


@router.patch("/{appointment_id}", response_model=BookingOutcome)
async def edit_appointment(
    appointment_id: str,
    payload: AppointmentUpdate,
    allow_conflict: bool = Query(False),
    db: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_actor),
    scheduler: SchedulingService = Depends(get_scheduler),
):
    outcome = await scheduler.update_appointment(db, appointment_id, payload, actor, allow_conflict=allow_conflict)
    return _outcome_response(outcome, 200)


@router.delete("/{appointment_id}", status_code=204)
async def delete_appointment(
    appointment_id: str,
    db: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_actor),
    scheduler: SchedulingService = Depends(get_scheduler),
):
    await scheduler.delete_appointment(db, appointment_id, actor)
    return Response(status_code=204)


# -------- Attendees --------

@router.post("/{appointment_id}/requests", response_model=AttendeeOut, status_code=201)
async def request_participation(
    appointment_id: str,
    db: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_actor),
    scheduler: SchedulingService = Depends(get_scheduler),
):
    return await scheduler.request_participation(db, appointment_id, actor)


@router.post("/{appointment_id}/attendees/{user_id}/status", response_model=AttendeeOut)
async def set_attendee_status(
    appointment_id: str,
    user_id: str,
    payload: AttendeeStatusUpdate,
    db: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_actor),
    scheduler: SchedulingService = Depends(get_scheduler),
):
    return await scheduler.respond(db, appointment_id, user_id, payload.status, actor)


@router.post("/{appointment_id}/attendees/{user_id}/reinvite", response_model=AttendeeOut, status_code=201)
async def reinvite_attendee(
    appointment_id: str,
    user_id: str,
    db: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_actor),
    scheduler: SchedulingService = Depends(get_scheduler),
):
    return await scheduler.reinvite(db, appointment_id, user_id, actor)
