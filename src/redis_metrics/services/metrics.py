"""Client that owns the Redis connection and hands out counters."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any, Final

import redis.asyncio as aioredis

from redis_metrics.core.errors import MetricsUsageError
from redis_metrics.core.settings import settings
from redis_metrics.schemas.counter import CounterOptions
from redis_metrics.services.counter import TimestampedCounter

logger = logging.getLogger(__name__)

DEFAULT_HOST: Final[str] = "localhost"
DEFAULT_PORT: Final[int] = 6379

# Commands a reused client must expose for counters to work.
_REQUIRED_COMMANDS: Final[tuple[str, ...]] = (
    "get",
    "mget",
    "incrby",
    "zincrby",
    "zscore",
    "zrange",
    "zrevrange",
    "eval",
    "pipeline",
)


class RedisMetrics:
    """Entry point for creating counters that share one Redis connection.

    Args:
        client: An existing ``redis.asyncio`` client to reuse.
        url: Redis URL used when no client is given.
        host: Redis host; used instead of ``url`` when set.
        port: Redis port; used together with ``host``.
        redis_options: Extra keyword arguments for the Redis client.
        counter_options: Default options for every counter created here.
    """

    def __init__(
        self,
        *,
        client: Any = None,
        url: str | None = None,
        host: str | None = None,
        port: int | None = None,
        redis_options: Mapping[str, Any] | None = None,
        counter_options: CounterOptions | Mapping[str, Any] | None = None,
    ) -> None:
        if client is not None:
            missing = [name for name in _REQUIRED_COMMANDS if not callable(getattr(client, name, None))]
            if missing:
                raise MetricsUsageError(
                    "The client option must be a Redis client, missing: " + ", ".join(missing)
                )
            self.client = client
            self._owns_client = False
        else:
            self.client = self._create_client(url, host, port, redis_options)
            self._owns_client = True

        self.counter_options = CounterOptions.merge(settings.counter_defaults, counter_options)

    @staticmethod
    def _create_client(
        url: str | None,
        host: str | None,
        port: int | None,
        redis_options: Mapping[str, Any] | None,
    ) -> Any:
        options = dict(redis_options or {})
        options.setdefault("decode_responses", True)
        if host is not None or port is not None:
            logger.debug("Connecting to Redis at %s:%s", host or DEFAULT_HOST, port or DEFAULT_PORT)
            return aioredis.Redis(host=host or DEFAULT_HOST, port=port or DEFAULT_PORT, **options)

        target = url or settings.redis_url
        logger.debug("Connecting to Redis at %s", target)
        return aioredis.from_url(target, **options)  # type: ignore[no-untyped-call]

    def counter(
        self,
        name: str,
        options: CounterOptions | Mapping[str, Any] | None = None,
    ) -> TimestampedCounter:
        """Return a counter for ``name`` using this client's defaults."""
        return TimestampedCounter(
            self.client, name, CounterOptions.merge(self.counter_options, options)
        )

    async def close(self) -> None:
        """Close the connection if this instance created it."""
        if self._owns_client:
            await self.client.aclose()

    async def __aenter__(self) -> RedisMetrics:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.close()
