# src/redis_metrics/utils/time.py
"""UTC time helpers for bucket keys and range queries."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import UTC, datetime, timedelta
from typing import Final

from redis_metrics.core.constants import TimeGranularity
from redis_metrics.core.errors import MetricsUsageError

MONTHS_PER_YEAR: Final[int] = 12

_FIXED_STEPS: Final[dict[TimeGranularity, timedelta]] = {
    TimeGranularity.DAY: timedelta(days=1),
    TimeGranularity.HOUR: timedelta(hours=1),
    TimeGranularity.MINUTE: timedelta(minutes=1),
    TimeGranularity.SECOND: timedelta(seconds=1),
}


def utcnow() -> datetime:
    """Return the current UTC time as a timezone-aware datetime."""
    return datetime.now(UTC)


def to_utc(value: datetime | str | float) -> datetime:
    """Coerce ``value`` to an aware UTC datetime.

    Accepts datetimes (naive values are taken as UTC), ISO-8601 strings and
    epoch seconds.
    """
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, str):
        try:
            moment = datetime.fromisoformat(value)
        except ValueError as exc:
            raise MetricsUsageError(f"Invalid ISO-8601 timestamp: {value!r}") from exc
    elif isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            moment = datetime.fromtimestamp(value, UTC)
        except (OverflowError, OSError, ValueError) as exc:
            raise MetricsUsageError(f"Epoch timestamp out of range: {value!r}") from exc
    else:
        raise MetricsUsageError(f"Unsupported timestamp value: {value!r}")

    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment.astimezone(UTC)


def truncate(moment: datetime, granularity: TimeGranularity) -> datetime:
    """Return the start of the ``granularity`` window containing ``moment``."""
    moment = moment.replace(microsecond=0)
    if granularity <= TimeGranularity.MINUTE:
        moment = moment.replace(second=0)
    if granularity <= TimeGranularity.HOUR:
        moment = moment.replace(minute=0)
    if granularity <= TimeGranularity.DAY:
        moment = moment.replace(hour=0)
    if granularity <= TimeGranularity.MONTH:
        moment = moment.replace(day=1)
    if granularity <= TimeGranularity.YEAR:
        moment = moment.replace(month=1)
    return moment


def step(moment: datetime, granularity: TimeGranularity) -> datetime:
    """Advance ``moment`` by one calendar unit of ``granularity``.

    ``moment`` must already be truncated to ``granularity`` so month and year
    arithmetic never lands on a day that does not exist.
    """
    if granularity in _FIXED_STEPS:
        return moment + _FIXED_STEPS[granularity]
    if granularity is TimeGranularity.MONTH:
        year, month_index = divmod(moment.month, MONTHS_PER_YEAR)
        return moment.replace(year=moment.year + year, month=month_index + 1)
    if granularity is TimeGranularity.YEAR:
        return moment.replace(year=moment.year + 1)
    raise MetricsUsageError(f"Cannot step by granularity {granularity.name.lower()}")


def time_range(
    start: datetime, end: datetime, granularity: TimeGranularity
) -> Iterator[datetime]:
    """Yield bucket start times from ``start`` through ``end`` inclusive."""
    current = truncate(to_utc(start), granularity)
    end = to_utc(end)
    while current <= end:
        yield current
        current = step(current, granularity)
