# agenda/services/synchronizer.py
"""
Keeps the shared AppointmentStore current from the change-feed.

Any event on a watched table only marks the store dirty; a separate
refresher task waits out the debounce window and does one full reload,
so a burst of events costs one refresh and redelivered events are
harmless. A dropped subscription is logged, retried with capped
exponential backoff, and every (re)subscribe triggers a full reload to
cover whatever was missed while disconnected.
"""
from __future__ import annotations

import asyncio
from typing import Iterable, Optional

from agenda.core.config import settings
from agenda.core.errors import SyncFailure, log_error
from agenda.core.logging import get_logger
from agenda.services.appointment_store import AppointmentStore
from agenda.services.change_feed import (
    APPOINTMENTS,
    ATTENDEES,
    MESSAGES,
    PROFILES,
    ChangeFeed,
    ColumnFilter,
)

logger = get_logger(__name__)

WATCHED_TABLES = (APPOINTMENTS, ATTENDEES, PROFILES, MESSAGES)


class ChangeSynchronizer:
    def __init__(
        self,
        feed: ChangeFeed,
        store: AppointmentStore,
        *,
        debounce: Optional[float] = None,
        retry_delay: Optional[float] = None,
        max_retry_delay: Optional[float] = None,
        tables: Iterable[str] = WATCHED_TABLES,
        where: Optional[ColumnFilter] = None,
    ):
        self.feed = feed
        self.store = store
        self.debounce = settings.SYNC_DEBOUNCE_SECONDS if debounce is None else debounce
        self.retry_delay = settings.SYNC_RETRY_SECONDS if retry_delay is None else retry_delay
        self.max_retry_delay = settings.SYNC_MAX_RETRY_SECONDS if max_retry_delay is None else max_retry_delay
        self.tables = tuple(tables)
        self.where = where

        self.subscribed = asyncio.Event()
        self.subscriptions = 0
        self.events_seen = 0
        self._dirty = asyncio.Event()
        self._reasons: set[str] = set()
        self._tasks: list[asyncio.Task] = []

    @property
    def running(self) -> bool:
        return any(not t.done() for t in self._tasks)

    def start(self) -> None:
        if self.running:
            return
        self._tasks = [
            asyncio.create_task(self._listen(), name="agenda-change-listener"),
            asyncio.create_task(self._refresher(), name="agenda-snapshot-refresher"),
        ]
        logger.info("synchronizer_started", tables=list(self.tables), debounce=self.debounce)

    async def stop(self) -> None:
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks = []
        self.subscribed.clear()
        logger.info("synchronizer_stopped", events_seen=self.events_seen)

    def mark_dirty(self, reason: str) -> None:
        self._reasons.add(reason)
        self._dirty.set()

    async def _listen(self) -> None:
        delay = self.retry_delay
        while True:
            try:
                async with self.feed.subscribe(self.tables, self.where) as events:
                    self.subscriptions += 1
                    delay = self.retry_delay
                    self.subscribed.set()
                    self.mark_dirty("subscribed")
                    async for event in events:
                        self.events_seen += 1
                        self.mark_dirty(event.table)
                logger.info("change_feed_closed")
                return
            except SyncFailure as e:
                self.subscribed.clear()
                log_error(e, {"component": "synchronizer"})
                logger.warning("change_feed_resubscribing", retry_in=delay)
                await asyncio.sleep(delay)
                delay = min(delay * 2, self.max_retry_delay)

    async def _refresher(self) -> None:
        delay = self.retry_delay
        while True:
            await self._dirty.wait()
            # collapse the burst into one reload
            await asyncio.sleep(self.debounce)
            self._dirty.clear()
            reason = ",".join(sorted(self._reasons)) or "change"
            self._reasons.clear()
            try:
                await self.store.refresh(reason=reason)
                delay = self.retry_delay
            except Exception as e:
                # the refresher must outlive any failed reload
                log_error(e, {"component": "synchronizer", "reason": reason})
                logger.warning("snapshot_refresh_retrying", retry_in=delay)
                await asyncio.sleep(delay)
                delay = min(delay * 2, self.max_retry_delay)
                self.mark_dirty("retry")
