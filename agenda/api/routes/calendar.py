# agenda/api/routes/calendar.py

from __future__ import annotations
from datetime import date as date_cls
from typing import List, Literal, Optional

from fastapi import APIRouter, Depends, Query, Request
from sqlalchemy.ext.asyncio import AsyncSession

from agenda.api.routes.appointments import visible_appointments
from agenda.db.session import get_session
from agenda.schemas.appointment import AppointmentView, CalendarCell, CalendarOut
from agenda.schemas.filters import ALL, FilterCriteria
from agenda.services.filters import filter_appointments
from agenda.services.statuses import UserRole
from agenda.services.timeutils import month_grid, normalize_date, on_day, week_days

router = APIRouter(prefix="/calendar", tags=["calendar"])


def cell_layout(view: str, day: str) -> list[tuple[str, str]]:
    if view == "day":
        return [(day, "current")]
    if view == "week":
        return [(d, "current") for d in week_days(day)]
    return month_grid(day)


def build_cells(view: str, day: str, appointments: List[AppointmentView]) -> list[CalendarCell]:
    layout = cell_layout(view, day)
    return [CalendarCell(date=d, month=tag, appointments=on_day(appointments, d)) for d, tag in layout]


@router.get("/{view}", response_model=CalendarOut)
async def calendar_view(
    view: Literal["day", "week", "month"],
    request: Request,
    db: AsyncSession = Depends(get_session),
    date: Optional[str] = Query(None, description="Any day inside the window; defaults to today"),
    sector_ids: List[str] = Query([]),
    event_type: str = Query(ALL),
    location_id: str = Query(ALL),
    user_id: str = Query(ALL),
    user_role: UserRole = Query(UserRole.ALL),
):
    day = normalize_date(date) if date else date_cls.today().isoformat()
    criteria = FilterCriteria(
        sector_ids=sector_ids,
        event_type=event_type,
        location_id=location_id,
        user_id=user_id,
        user_role=user_role,
    )
    layout = cell_layout(view, day)
    # month grids include the padding days of the neighbouring months
    window = (layout[0][0], layout[-1][0])
    visible = await visible_appointments(request, db, sector_ids=sector_ids, window=window)
    appointments = filter_appointments(visible, criteria)
    cells = build_cells(view, day, appointments)
    return CalendarOut(view=view, start=cells[0].date, end=cells[-1].date, cells=cells)
