"""Time-to-live policy for counter bucket keys.

The defaults keep the number of live bucket keys per counter bounded. For
example second buckets expire after 10 minutes, so a single event never has
more than 600 second keys at once.
"""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType
from typing import Final

from redis_metrics.core.constants import NO_EXPIRY, TimeGranularity
from redis_metrics.schemas.counter import CounterOptions
from redis_metrics.services.keys import key_granularity

_MINUTE: Final[int] = 60
_HOUR: Final[int] = 60 * _MINUTE
_DAY: Final[int] = 24 * _HOUR
_YEAR: Final[int] = 365 * _DAY

DEFAULT_EXPIRATION: Final[Mapping[TimeGranularity, int]] = MappingProxyType(
    {
        TimeGranularity.TOTAL: NO_EXPIRY,
        TimeGranularity.NONE: NO_EXPIRY,
        TimeGranularity.YEAR: NO_EXPIRY,
        TimeGranularity.MONTH: 10 * _YEAR,  # 120 keys worst-case
        TimeGranularity.DAY: 2 * _YEAR,  # 730 keys worst-case
        TimeGranularity.HOUR: 31 * _DAY,  # 744 keys worst-case
        TimeGranularity.MINUTE: 12 * _HOUR,  # 720 keys worst-case
        TimeGranularity.SECOND: 10 * _MINUTE,  # 600 keys worst-case
    }
)


def ttl_for_granularity(options: CounterOptions, granularity: TimeGranularity) -> int:
    """Return the TTL in seconds for a ``granularity`` bucket, or ``NO_EXPIRY``."""
    if not options.expire_keys or not granularity.is_timestamped:
        return NO_EXPIRY
    ttl = options.expiration.get(granularity)
    if ttl is None:
        ttl = DEFAULT_EXPIRATION[granularity]
    return ttl


def ttl_for(options: CounterOptions, key: str, base_key: str) -> int:
    """Return the TTL for ``key``, classified relative to ``base_key``."""
    return ttl_for_granularity(options, key_granularity(key, base_key))
