"""Time granularities and the persisted key format.

Counters store one Redis key per active time bucket. The key layout is shared
with existing deployments, so the values in this module must not change.
"""

from __future__ import annotations

from enum import IntEnum
from typing import Any, Final

COUNTER_KEY_PREFIX: Final[str] = "c:"
EVENT_KEY_SUFFIX: Final[str] = ":z"
KEY_DELIMITER: Final[str] = ":"
TIMESTAMP_FORMAT: Final[str] = "%Y%m%d%H%M%S"

# Redis convention for "no TTL".
NO_EXPIRY: Final[int] = -1

SORT_DIRECTIONS: Final[frozenset[str]] = frozenset({"asc", "desc"})


class TimeGranularity(IntEnum):
    """Supported time resolutions, ordered from coarsest to finest.

    ``TOTAL`` is a query-time sentinel meaning "aggregate over everything" and
    is never used as a counter's own resolution.
    """

    TOTAL = -1
    NONE = 0
    YEAR = 1
    MONTH = 2
    DAY = 3
    HOUR = 4
    MINUTE = 5
    SECOND = 6

    @classmethod
    def parse(cls, value: Any) -> TimeGranularity:
        """Return the granularity for ``value``; unknown input maps to NONE."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            member = cls.__members__.get(value.strip().upper())
            return member if member is not None else cls.NONE
        if isinstance(value, int) and not isinstance(value, bool):
            try:
                return cls(value)
            except ValueError:
                return cls.NONE
        return cls.NONE

    @property
    def prefix_length(self) -> int | None:
        """Number of ``YYYYMMDDHHmmss`` characters used by this granularity."""
        return _PREFIX_LENGTHS.get(self)

    @property
    def key_index(self) -> int:
        """Position of this granularity's key in a derived key list."""
        return max(int(self), 0)

    @property
    def is_timestamped(self) -> bool:
        return self.prefix_length is not None

    @classmethod
    def from_prefix_length(cls, length: int) -> TimeGranularity:
        return _GRANULARITY_BY_LENGTH.get(length, cls.NONE)

    @classmethod
    def timestamped(cls) -> tuple[TimeGranularity, ...]:
        """YEAR through SECOND in ascending order."""
        return tuple(g for g in cls if g.is_timestamped)


_PREFIX_LENGTHS: Final[dict[TimeGranularity, int]] = {
    TimeGranularity.YEAR: 4,
    TimeGranularity.MONTH: 6,
    TimeGranularity.DAY: 8,
    TimeGranularity.HOUR: 10,
    TimeGranularity.MINUTE: 12,
    TimeGranularity.SECOND: 14,
}
_GRANULARITY_BY_LENGTH: Final[dict[int, TimeGranularity]] = {
    length: granularity for granularity, length in _PREFIX_LENGTHS.items()
}
