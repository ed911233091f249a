# agenda/services/appointment_store.py
"""
The single shared appointment snapshot.

Every view reads a filtered projection of one snapshot instead of
running its own query. refresh() always reloads full state; there is no
delta patching. Refreshes are ticketed: when two overlap, the one issued
last wins and an older result landing afterwards is dropped.
"""
from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from agenda.core.errors import SyncFailure, log_error
from agenda.core.logging import get_logger
from agenda.crud import appointment as appointment_crud
from agenda.crud import attendee as attendee_crud
from agenda.crud import lookups as lookups_crud
from agenda.schemas.appointment import AppointmentView
from agenda.schemas.attendee import Counters
from agenda.schemas.filters import FilterCriteria
from agenda.schemas.lookups import AppointmentTypeOut, LocationOut, ProfileOut, SectorOut
from agenda.services.aggregate import build_appointment_views
from agenda.services.filters import filter_appointments
from agenda.services.notifications import compute_counters

logger = get_logger(__name__)


@dataclass(frozen=True)
class Snapshot:
    appointments: tuple[AppointmentView, ...] = ()
    locations: tuple[LocationOut, ...] = ()
    types: tuple[AppointmentTypeOut, ...] = ()
    sectors: tuple[SectorOut, ...] = ()
    profiles: tuple[ProfileOut, ...] = ()
    counters: Counters = field(default_factory=Counters)
    version: int = 0
    loaded_at: Optional[datetime] = None


Listener = Callable[[Snapshot], None]


async def load_snapshot(
    db: AsyncSession,
    *,
    user_id: Optional[str] = None,
    version: int = 0,
    sector_ids: Sequence[str] = (),
    window: Optional[tuple[str, str]] = None,
) -> Snapshot:
    """
    Read everything a calendar view needs and join it in memory.

    `sector_ids` and `window` narrow the appointment query for one-off
    reads; the shared store always loads the full set.
    """
    date_from, date_to = window or (None, None)
    appointments = await appointment_crud.list_appointments(
        db, sector_ids=sector_ids, date_from=date_from, date_to=date_to
    )
    attendees = await attendee_crud.list_for_appointments(db, (a.id for a in appointments))
    locations = await lookups_crud.list_locations(db)
    types = await lookups_crud.list_appointment_types(db)
    sectors = await lookups_crud.list_sectors(db)
    profiles = await lookups_crud.list_profiles(db)

    views = build_appointment_views(
        appointments, attendees, locations=locations, types=types, profiles=profiles
    )
    counters = await compute_counters(db, user_id) if user_id else Counters()

    return Snapshot(
        appointments=tuple(views),
        locations=tuple(LocationOut.model_validate(loc) for loc in locations),
        types=tuple(AppointmentTypeOut.model_validate(t) for t in types),
        sectors=tuple(SectorOut.model_validate(s) for s in sectors),
        profiles=tuple(ProfileOut.model_validate(p) for p in profiles),
        counters=counters,
        version=version,
        loaded_at=datetime.now(timezone.utc),
    )


class AppointmentStore:
    def __init__(self, session_factory: async_sessionmaker[AsyncSession], *, user_id: Optional[str] = None):
        self.session_factory = session_factory
        self.user_id = user_id
        self._snapshot = Snapshot()
        self._listeners: list[Listener] = []
        self._issued = 0
        self._applied = 0

    @property
    def snapshot(self) -> Snapshot:
        return self._snapshot

    @property
    def version(self) -> int:
        return self._snapshot.version

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a listener; returns the function that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def refresh(self, reason: str = "manual") -> bool:
        """
        Full reload. Returns False when a newer refresh already landed
        and this result was dropped.
        """
        self._issued += 1
        ticket = self._issued

        try:
            async with self.session_factory() as db:
                snapshot = await load_snapshot(db, user_id=self.user_id, version=ticket)
        except (SQLAlchemyError, OSError, asyncio.TimeoutError) as e:
            log_error(e, {"component": "appointment_store", "user_id": self.user_id})
            raise SyncFailure(f"snapshot reload failed: {e.__class__.__name__}") from e

        if ticket <= self._applied:
            logger.debug("refresh_shadowed", ticket=ticket, applied=self._applied, reason=reason)
            return False

        self._applied = ticket
        self._snapshot = snapshot
        logger.info(
            "snapshot_refreshed",
            version=ticket,
            reason=reason,
            appointments=len(snapshot.appointments),
        )
        self._notify(snapshot)
        return True

    def _notify(self, snapshot: Snapshot) -> None:
        for listener in list(self._listeners):
            try:
                listener(snapshot)
            except Exception:
                logger.exception("snapshot_listener_failed")

    def project(self, criteria: Optional[FilterCriteria] = None) -> list[AppointmentView]:
        return filter_appointments(self._snapshot.appointments, criteria)

    def get(self, appointment_id: str) -> Optional[AppointmentView]:
        return next((a for a in self._snapshot.appointments if a.id == appointment_id), None)
