# agenda/api/routes/profiles.py

from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.api.deps import get_actor, get_scheduler
from agenda.db.session import get_session
from agenda.schemas.attendee import NotificationsOut
from agenda.schemas.lookups import ProfileOut
from agenda.services.notifications import list_notifications
from agenda.services.scheduling import Actor, SchedulingService
from agenda.services.statuses import PresenceStatus

router = APIRouter(tags=["profiles"])


class PresenceUpdate(BaseModel):
    status: PresenceStatus


@router.get("/notifications", response_model=NotificationsOut)
async def get_notifications(
    db: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_actor),
):
    return await list_notifications(db, actor.id)


@router.patch("/profiles/me/status", response_model=ProfileOut)
async def update_my_status(
    payload: PresenceUpdate,
    db: AsyncSession = Depends(get_session),
    actor: Actor = Depends(get_actor),
    scheduler: SchedulingService = Depends(get_scheduler),
):
    return await scheduler.set_presence(db, actor, payload.status.value)
