# agenda/api/routes/locations.py

from __future__ import annotations
from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.api.deps import get_scheduler
from agenda.crud.lookups import list_locations
from agenda.db.session import get_session
from agenda.schemas.appointment import ConflictOut
from agenda.schemas.lookups import LocationOut
from agenda.services.scheduling import SchedulingService

router = APIRouter(prefix="/locations", tags=["locations"])


@router.get("", response_model=List[LocationOut])
async def get_locations(db: AsyncSession = Depends(get_session)):
    return await list_locations(db)


@router.get("/{location_id}/conflicts", response_model=Optional[ConflictOut])
async def get_conflict(
    location_id: str,
    date: str = Query(..., description="YYYY-MM-DD"),
    start_time: Optional[str] = Query(None, description="HH:MM"),
    end_time: Optional[str] = Query(None, description="HH:MM"),
    exclude_id: Optional[str] = Query(None, description="Appointment being edited"),
    db: AsyncSession = Depends(get_session),
    scheduler: SchedulingService = Depends(get_scheduler),
):
    """First booking overlapping the range, or null."""
    return await scheduler.check_conflict(db, location_id, date, start_time, end_time, exclude_id=exclude_id)
