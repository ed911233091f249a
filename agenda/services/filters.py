# agenda/services/filters.py
"""
Per-view filtering over the shared appointment snapshot.

Every predicate is independent and they combine with AND, so the result
does not depend on evaluation order. The 'all' sentinel switches a
predicate off; an empty sector selection means unrestricted.
"""
from __future__ import annotations

from typing import Callable, Iterable, Optional

from agenda.schemas.appointment import AppointmentView
from agenda.schemas.filters import ALL, FilterCriteria
from agenda.services.statuses import AttendeeStatus, UserRole

Predicate = Callable[[AppointmentView], bool]


def is_organizer(app: AppointmentView, user_id: str) -> bool:
    return app.created_by == user_id


def is_participant(app: AppointmentView, user_id: str) -> bool:
    return any(
        a.user_id == user_id and a.status != AttendeeStatus.DECLINED
        for a in app.attendees
    )


def sector_predicate(sector_ids: Iterable[str]) -> Optional[Predicate]:
    selected = set(sector_ids)
    if not selected:
        return None
    return lambda app: not selected.isdisjoint(app.participant_sector_ids)


def type_predicate(event_type: str) -> Optional[Predicate]:
    if event_type == ALL:
        return None
    return lambda app: app.type == event_type


def location_predicate(location_id: str) -> Optional[Predicate]:
    if location_id == ALL:
        return None
    return lambda app: app.location_id == location_id


def user_predicate(user_id: str, role: UserRole) -> Optional[Predicate]:
    # no user selected: role is ignored whatever it holds
    if user_id == ALL:
        return None
    if role is UserRole.ORGANIZER:
        return lambda app: is_organizer(app, user_id)
    if role is UserRole.PARTICIPANT:
        return lambda app: is_participant(app, user_id)
    return lambda app: is_organizer(app, user_id) or is_participant(app, user_id)


def build_predicates(criteria: FilterCriteria) -> list[Predicate]:
    candidates = (
        sector_predicate(criteria.sector_ids),
        type_predicate(criteria.event_type),
        location_predicate(criteria.location_id),
        user_predicate(criteria.user_id, UserRole(criteria.user_role)),
    )
    return [p for p in candidates if p is not None]


def sort_key(app: AppointmentView) -> tuple[str, str]:
    return app.date, app.start_time or ""


def filter_appointments(
    appointments: Iterable[AppointmentView],
    criteria: Optional[FilterCriteria] = None,
) -> list[AppointmentView]:
    criteria = criteria or FilterCriteria()
    predicates = build_predicates(criteria)
    visible = [app for app in appointments if all(p(app) for p in predicates)]
    return sorted(visible, key=sort_key, reverse=criteria.sort == "desc")
