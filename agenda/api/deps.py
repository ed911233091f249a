# agenda/api/deps.py
from __future__ import annotations

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.crud.lookups import get_profile
from agenda.db.session import get_session
from agenda.services.scheduling import Actor, SchedulingService


async def get_actor(
    x_user_id: str | None = Header(None, alias="X-User-Id"),
    db: AsyncSession = Depends(get_session),
) -> Actor:
    """Acting user from X-User-Id; the role comes from their profile."""
    if not x_user_id:
        raise HTTPException(status_code=401, detail="X-User-Id header required")
    profile = await get_profile(db, x_user_id)
    if profile is None:
        raise HTTPException(status_code=401, detail="Unknown user")
    return Actor(id=profile.id, role=profile.role or "Normal")


def get_scheduler(request: Request) -> SchedulingService:
    return request.app.state.scheduler
