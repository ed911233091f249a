"""
Change-feed driven refreshes: debounce, coalescing, resubscribe on drop.
"""

import asyncio

import pytest
import pytest_asyncio

from agenda.core.errors import SyncFailure
from agenda.services.change_feed import APPOINTMENTS, ATTENDEES, MESSAGES, ChangeEvent, ChangeKind, InMemoryChangeFeed
from agenda.services.synchronizer import ChangeSynchronizer


class CountingStore:
    def __init__(self, failures=0):
        self.reasons = []
        self.failures = failures

    async def refresh(self, reason="manual"):
        if self.failures:
            self.failures -= 1
            raise SyncFailure("store unavailable")
        self.reasons.append(reason)
        return True


async def wait_until(predicate, timeout=2.0):
    async def _poll():
        while not predicate():
            await asyncio.sleep(0.005)
    await asyncio.wait_for(_poll(), timeout)


@pytest_asyncio.fixture
async def running():
    feed = InMemoryChangeFeed()
    store = CountingStore()
    sync = ChangeSynchronizer(feed, store, debounce=0.05, retry_delay=0.01, max_retry_delay=0.04)
    sync.start()
    await asyncio.wait_for(sync.subscribed.wait(), 1)
    await wait_until(lambda: len(store.reasons) == 1)
    yield feed, store, sync
    await sync.stop()


@pytest.mark.asyncio
async def test_initial_subscribe_triggers_full_reload(running):
    feed, store, sync = running
    assert store.reasons == ["subscribed"]
    assert feed.subscriber_count == 1


@pytest.mark.asyncio
async def test_burst_of_events_coalesces_into_one_refresh(running):
    feed, store, sync = running
    for i in range(5):
        await feed.publish(ChangeEvent(APPOINTMENTS, ChangeKind.INSERT, {"id": f"a{i}"}))
    await feed.publish(ChangeEvent(ATTENDEES, ChangeKind.UPDATE, {"user_id": "u1"}))
    await wait_until(lambda: len(store.reasons) == 2)
    await asyncio.sleep(0.1)
    assert len(store.reasons) == 2
    assert store.reasons[1] == "appointment_attendees,appointments"
    assert sync.events_seen == 6


@pytest.mark.asyncio
async def test_redelivered_event_is_harmless(running):
    feed, store, sync = running
    event = ChangeEvent(MESSAGES, ChangeKind.INSERT, {"receiver_id": "u1"})
    await feed.publish(event)
    await feed.publish(event)
    await wait_until(lambda: len(store.reasons) == 2)
    await asyncio.sleep(0.1)
    assert store.reasons == ["subscribed", "messages"]


@pytest.mark.asyncio
async def test_dropped_subscription_resubscribes_and_reloads(running):
    feed, store, sync = running
    feed.drop()
    await wait_until(lambda: sync.subscriptions == 2)
    await wait_until(lambda: len(store.reasons) == 2)
    assert store.reasons[-1] == "subscribed"
    assert feed.subscriber_count == 1


@pytest.mark.asyncio
async def test_unwatched_tables_are_ignored(running):
    feed, store, sync = running
    await feed.publish(ChangeEvent("locations", ChangeKind.UPDATE, {"id": "l1"}))
    await asyncio.sleep(0.1)
    assert store.reasons == ["subscribed"]


@pytest.mark.asyncio
async def test_failed_refresh_is_retried():
    feed = InMemoryChangeFeed()
    store = CountingStore(failures=2)
    sync = ChangeSynchronizer(feed, store, debounce=0.01, retry_delay=0.01)
    sync.start()
    try:
        await wait_until(lambda: len(store.reasons) == 1)
        assert store.reasons == ["retry"]
    finally:
        await sync.stop()
    assert not sync.running
    assert feed.subscriber_count == 0


class FlakyStore(CountingStore):
    """Raises a raw driver error once, the way asyncpg does when the db is down."""

    def __init__(self):
        super().__init__()
        self.calls = 0

    async def refresh(self, reason="manual"):
        self.calls += 1
        if self.calls == 1:
            raise ConnectionRefusedError(111, "Connect call failed")
        return await super().refresh(reason)


@pytest.mark.asyncio
async def test_refresher_survives_unexpected_errors():
    feed = InMemoryChangeFeed()
    store = FlakyStore()
    sync = ChangeSynchronizer(feed, store, debounce=0.01, retry_delay=0.01, max_retry_delay=0.02)
    sync.start()
    try:
        await wait_until(lambda: store.reasons == ["retry"])
        await feed.publish(ChangeEvent(APPOINTMENTS, ChangeKind.INSERT, {"id": "a1"}))
        await wait_until(lambda: len(store.reasons) == 2)
        assert store.reasons[-1] == "appointments"
        assert all(not task.done() for task in sync._tasks)
    finally:
        await sync.stop()
