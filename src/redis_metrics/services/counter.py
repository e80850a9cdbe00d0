"""Timestamped event counters stored in Redis.

A counter writes one key per active time bucket: the bare base key plus one
key for every granularity from YEAR down to the counter's configured
resolution. Reads pick the bucket for the requested granularity, and range
queries rebuild a chronological series from consecutive bucket keys.

Event objects route increments to a sorted set next to each bucket key, where
the member is the event object and the score its running total. That sorted
set also backs :meth:`TimestampedCounter.top`.
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator, Mapping, Sequence
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Any

from redis.exceptions import RedisError

from redis_metrics.core.constants import SORT_DIRECTIONS, TimeGranularity
from redis_metrics.core.errors import MetricsStoreError, MetricsUsageError
from redis_metrics.schemas.counter import CounterOptions
from redis_metrics.services import lua
from redis_metrics.services.expiration import ttl_for
from redis_metrics.services.keys import bucket_key, counter_key, derive_keys, event_key
from redis_metrics.services.parsing import parse_int, parse_range, parse_rank, parse_total
from redis_metrics.utils.time import time_range, to_utc, utcnow

# Configure logger for this module
logger = logging.getLogger(__name__)

Timestamp = datetime | str | float


@asynccontextmanager
async def _store_errors(operation: str, key: str) -> AsyncIterator[None]:
    """Translate Redis failures into :class:`MetricsStoreError`."""
    try:
        yield
    except RedisError as exc:
        logger.warning("Redis %s failed for %s: %s", operation, key, exc)
        raise MetricsStoreError(str(exc)) from exc


def _event_value(event_object: Any) -> str | None:
    if event_object is None or event_object == "":
        return None
    return str(event_object)


def _queue_increment(target: Any, key: str, amount: int, event: str | None, ttl: int) -> Any:
    """Issue the increment for one key on a client or a pipeline.

    On a client the return value is an awaitable reply; on a pipeline the
    command is only queued.
    """
    if event is not None:
        key = event_key(key)
        if ttl > 0:
            return target.eval(lua.ZINCRBY_EXPIRE, 1, key, amount, event, ttl)
        return target.zincrby(key, amount, event)

    if ttl > 0:
        return target.eval(lua.INCRBY_EXPIRE, 1, key, amount, ttl)
    return target.incrby(key, amount)


class TimestampedCounter:
    """A counter that records events per time bucket.

    Instances hold no state besides their options, so creating two counters
    with the same name addresses the same keys. Counters are normally created
    through :meth:`redis_metrics.services.metrics.RedisMetrics.counter`.

    Args:
        client: A ``redis.asyncio`` client (or compatible object).
        name: Counter name; the base key is ``c:<name>``.
        options: :class:`CounterOptions` or a mapping of option values.
    """

    def __init__(
        self,
        client: Any,
        name: str,
        options: CounterOptions | Mapping[str, Any] | None = None,
    ) -> None:
        self.client = client
        self.name = name
        self.key = counter_key(name)
        self.options = CounterOptions.merge(options)

    def __repr__(self) -> str:
        return (
            f"TimestampedCounter(key={self.key!r}, "
            f"time_granularity={self.time_granularity.name.lower()})"
        )

    @property
    def time_granularity(self) -> TimeGranularity:
        return self.options.time_granularity

    def get_keys(self, now: datetime | None = None) -> list[str]:
        """Return the keys written by an increment at ``now``."""
        return derive_keys(self.key, self.time_granularity, now)

    def get_key_ttl(self, key: str) -> int:
        """Return the TTL in seconds for ``key``, or -1 for no expiry."""
        return ttl_for(self.options, key, self.key)

    async def incr(self, event_object: Any = None) -> Any:
        """Increment the counter by one. See :meth:`incrby`."""
        return await self.incrby(1, event_object)

    async def incrby(self, amount: int, event_object: Any = None) -> Any:
        """Increment every active bucket key by ``amount``.

        With an event object the member's score in each bucket's sorted set
        is incremented instead. A single key is updated directly; several
        keys are updated in one MULTI/EXEC transaction.

        Returns:
            The raw Redis reply for a single key, or the list of replies from
            the transaction.
        """
        if not isinstance(amount, int) or isinstance(amount, bool):
            raise MetricsUsageError(f"Increment amount must be an integer, got {amount!r}")

        event = _event_value(event_object)
        keys = self.get_keys()
        logger.debug("Incrementing %s by %d (event=%s, keys=%d)", self.key, amount, event, len(keys))

        async with _store_errors("increment", self.key):
            if len(keys) == 1:
                ttl = self.get_key_ttl(keys[0])
                return await _queue_increment(self.client, keys[0], amount, event, ttl)

            async with self.client.pipeline(transaction=True) as pipe:
                for key in keys:
                    _queue_increment(pipe, key, amount, event, self.get_key_ttl(key))
                return await pipe.execute()

    async def count(
        self,
        granularity: TimeGranularity | str | None = TimeGranularity.TOTAL,
        event_object: Any = None,
    ) -> int:
        """Return the count for the current bucket at ``granularity``.

        The default returns the overall count. Counts are only meaningful for
        granularities the counter is incremented at; other buckets read as 0.
        """
        level = TimeGranularity.parse(granularity)
        event = _event_value(event_object)
        key = bucket_key(self.key, level, utcnow())

        async with _store_errors("count", key):
            if event is None:
                reply = await self.client.get(key)
            else:
                reply = await self.client.zscore(event_key(key), event)
        return parse_int(reply)

    async def count_range(
        self,
        granularity: TimeGranularity | str,
        start: Timestamp,
        end: Timestamp | None = None,
        *,
        event_object: Any = None,
    ) -> dict[str, int] | int:
        """Return counts per bucket between ``start`` and ``end`` inclusive.

        The result maps ISO-8601 UTC timestamps to counts in chronological
        order. With ``granularity="total"`` the buckets at the counter's own
        resolution are summed into a single integer instead.

        ``end`` defaults to now, except for event-scoped queries where it is
        required.

        Raises:
            MetricsUsageError: For the NONE granularity, for TOTAL on a
                counter without timestamped keys, or for an event-scoped
                query without ``end``.
        """
        report_level = TimeGranularity.parse(granularity)
        event = _event_value(event_object)

        if report_level is TimeGranularity.NONE:
            raise MetricsUsageError("count_range requires a time granularity")

        range_level = report_level
        if report_level is TimeGranularity.TOTAL:
            range_level = self.time_granularity
            if range_level is TimeGranularity.NONE:
                raise MetricsUsageError("total granularity not supported for this counter")

        if event is not None and end is None:
            raise MetricsUsageError("count_range with an event object requires an end time")

        end_moment = utcnow() if end is None else to_utc(end)
        moments = list(time_range(to_utc(start), end_moment, range_level))
        keys = [bucket_key(self.key, range_level, moment) for moment in moments]
        # ISO format keeps the result keys easy to parse back into datetimes.
        timestamps = [moment.isoformat() for moment in moments]

        replies = await self._fetch_range(keys, event) if keys else []

        if report_level is TimeGranularity.TOTAL:
            return parse_total(replies)
        return parse_range(timestamps, replies)

    async def _fetch_range(self, keys: Sequence[str], event: str | None) -> list[Any]:
        logger.debug("Reading %d buckets for %s (event=%s)", len(keys), self.key, event)
        async with _store_errors("range", self.key):
            if event is None:
                return list(await self.client.mget(keys))

            async with self.client.pipeline(transaction=True) as pipe:
                for key in keys:
                    pipe.zscore(event_key(key), event)
                return list(await pipe.execute())

    async def top(
        self,
        granularity: TimeGranularity | str | None = TimeGranularity.TOTAL,
        direction: str = "desc",
        starting_at: int = 0,
        limit: int = -1,
    ) -> list[tuple[str, int]]:
        """Return ranked ``(event_object, count)`` pairs for the current bucket.

        ``starting_at`` and ``limit`` are inclusive rank bounds; -1 means the
        last element.
        """
        if direction not in SORT_DIRECTIONS:
            raise MetricsUsageError(
                f'The direction parameter is expected to be one between "asc" or "desc", '
                f'got "{direction}".'
            )

        level = TimeGranularity.parse(granularity)
        key = event_key(bucket_key(self.key, level, utcnow()))

        async with _store_errors("top", key):
            if direction == "asc":
                reply = await self.client.zrange(key, starting_at, limit, withscores=True)
            else:
                reply = await self.client.zrevrange(key, starting_at, limit, withscores=True)
        return parse_rank(reply)
