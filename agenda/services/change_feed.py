# agenda/services/change_feed.py
"""
Consumer side of the store's change-feed.

Events are row-level notifications (table + INSERT/UPDATE/DELETE + the
row). Delivery is at-least-once and unordered relative to client writes,
so consumers re-read full state instead of applying the payload.

Two adapters share one interface:
- InMemoryChangeFeed: asyncio queues, in-process fan-out (tests, single node)
- RedisChangeFeed: Redis pub/sub, one channel per table
"""
from __future__ import annotations

import asyncio
import json
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, AsyncContextManager, AsyncIterator, Dict, Iterable, Optional, Protocol

import redis.asyncio as redis
from redis.exceptions import RedisError

from agenda.core.errors import SyncFailure
from agenda.core.logging import get_logger

logger = get_logger(__name__)

APPOINTMENTS = "appointments"
ATTENDEES = "appointment_attendees"
PROFILES = "profiles"
MESSAGES = "messages"


class ChangeKind(str, Enum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True)
class ChangeEvent:
    table: str
    kind: ChangeKind
    record: Dict[str, Any] = field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps({"table": self.table, "kind": self.kind.value, "record": self.record}, default=str)

    @classmethod
    def from_json(cls, raw: str | bytes) -> "ChangeEvent":
        data = json.loads(raw)
        return cls(table=data["table"], kind=ChangeKind(data["kind"]), record=data.get("record") or {})


@dataclass(frozen=True)
class ColumnFilter:
    """Column predicate on the changed row, e.g. attendee rows for one user."""
    column: str
    value: Any

    def matches(self, event: ChangeEvent) -> bool:
        return event.record.get(self.column) == self.value


class ChangeFeed(Protocol):
    async def publish(self, event: ChangeEvent) -> None: ...

    def subscribe(
        self, tables: Iterable[str], where: Optional[ColumnFilter] = None
    ) -> AsyncContextManager[AsyncIterator[ChangeEvent]]: ...


# ---------- In-process ----------

_CLOSED = object()


class _QueueSubscription:
    def __init__(self, tables: Iterable[str], where: Optional[ColumnFilter]):
        self.tables = frozenset(tables)
        self.where = where
        self.queue: asyncio.Queue = asyncio.Queue()

    def wants(self, event: ChangeEvent) -> bool:
        if event.table not in self.tables:
            return False
        return self.where is None or self.where.matches(event)

    def __aiter__(self):
        return self

    async def __anext__(self) -> ChangeEvent:
        item = await self.queue.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item


class InMemoryChangeFeed:
    def __init__(self):
        self._subscriptions: list[_QueueSubscription] = []

    @property
    def subscriber_count(self) -> int:
        return len(self._subscriptions)

    async def publish(self, event: ChangeEvent) -> None:
        for sub in list(self._subscriptions):
            if sub.wants(event):
                sub.queue.put_nowait(event)

    @asynccontextmanager
    async def subscribe(self, tables: Iterable[str], where: Optional[ColumnFilter] = None):
        sub = _QueueSubscription(tables, where)
        self._subscriptions.append(sub)
        try:
            yield sub
        finally:
            self._subscriptions.remove(sub)

    def drop(self, reason: str = "subscription dropped") -> None:
        """Break every live subscription, as a lost connection would."""
        for sub in list(self._subscriptions):
            sub.queue.put_nowait(SyncFailure(reason))

    def close(self) -> None:
        for sub in list(self._subscriptions):
            sub.queue.put_nowait(_CLOSED)


# ---------- Redis pub/sub ----------

class RedisChangeFeed:
    def __init__(self, url: Optional[str] = None, *, prefix: str = "agenda:changes",
                 client: Optional[redis.Redis] = None):
        self.url = url
        self.prefix = prefix
        self._client = client

    def channel(self, table: str) -> str:
        return f"{self.prefix}:{table}"

    async def get_client(self) -> redis.Redis:
        if self._client is None:
            if not self.url:
                raise SyncFailure("REDIS_URL not configured for the change feed")
            self._client = redis.from_url(
                self.url,
                decode_responses=True,
                socket_connect_timeout=3,
                retry_on_timeout=True,
            )
        return self._client

    async def publish(self, event: ChangeEvent) -> None:
        client = await self.get_client()
        try:
            await client.publish(self.channel(event.table), event.to_json())
        except RedisError as e:
            # the write already committed; listeners catch up on their next reload
            logger.warning("change_publish_failed", table=event.table, error=str(e))

    @asynccontextmanager
    async def subscribe(self, tables: Iterable[str], where: Optional[ColumnFilter] = None):
        client = await self.get_client()
        pubsub = client.pubsub(ignore_subscribe_messages=True)
        channels = [self.channel(t) for t in tables]
        try:
            await pubsub.subscribe(*channels)
        except (RedisError, OSError) as e:
            await pubsub.aclose()
            raise SyncFailure(f"change feed subscribe failed: {e}") from e

        logger.info("change_feed_subscribed", channels=channels)
        try:
            yield self._iterate(pubsub, where)
        finally:
            try:
                await pubsub.unsubscribe(*channels)
            except (RedisError, OSError) as e:
                logger.debug("change_feed_unsubscribe_failed", error=str(e))
            await pubsub.aclose()

    async def _iterate(self, pubsub, where: Optional[ColumnFilter]) -> AsyncIterator[ChangeEvent]:
        try:
            async for message in pubsub.listen():
                if message.get("type") != "message":
                    continue
                try:
                    event = ChangeEvent.from_json(message["data"])
                except (ValueError, KeyError) as e:
                    logger.warning("change_event_malformed", error=str(e))
                    continue
                if where is None or where.matches(event):
                    yield event
        except (RedisError, OSError) as e:
            raise SyncFailure(f"change feed connection lost: {e}") from e
        # listen() only ends when the connection is torn down
        raise SyncFailure("change feed closed")

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


def build_change_feed(redis_url: Optional[str], prefix: str) -> InMemoryChangeFeed | RedisChangeFeed:
    if redis_url:
        return RedisChangeFeed(redis_url, prefix=prefix)
    logger.info("REDIS_URL not configured, using in-process change feed")
    return InMemoryChangeFeed()
