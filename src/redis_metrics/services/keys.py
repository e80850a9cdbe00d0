"""Derivation of the physical Redis keys behind a counter."""

from __future__ import annotations

from datetime import datetime

from redis_metrics.core.constants import (
    COUNTER_KEY_PREFIX,
    EVENT_KEY_SUFFIX,
    KEY_DELIMITER,
    TIMESTAMP_FORMAT,
    TimeGranularity,
)
from redis_metrics.utils.time import utcnow


def counter_key(name: str) -> str:
    """Return the base key for the counter called ``name``."""
    return f"{COUNTER_KEY_PREFIX}{name}"


def event_key(key: str) -> str:
    """Return the sorted-set key holding event object scores for ``key``."""
    return f"{key}{EVENT_KEY_SUFFIX}"


def bucket_key(base_key: str, granularity: TimeGranularity, moment: datetime) -> str:
    """Return the key of the ``granularity`` bucket that contains ``moment``.

    NONE and TOTAL address the bare base key.
    """
    length = granularity.prefix_length
    if length is None:
        return base_key
    stamp = moment.strftime(TIMESTAMP_FORMAT)[:length]
    return f"{base_key}{KEY_DELIMITER}{stamp}"


def derive_keys(
    base_key: str, granularity: TimeGranularity, now: datetime | None = None
) -> list[str]:
    """Return every key a counter at ``granularity`` writes at ``now``.

    Index 0 is the base key and index ``g`` is the bucket for granularity
    ``g``, so the list has ``granularity.key_index + 1`` entries.
    """
    keys = [base_key]
    if granularity.key_index == 0:
        return keys

    stamp = (now or utcnow()).strftime(TIMESTAMP_FORMAT)
    for level in TimeGranularity.timestamped():
        if level > granularity:
            break
        keys.append(f"{base_key}{KEY_DELIMITER}{stamp[: level.prefix_length]}")
    return keys


def key_granularity(full_key: str, base_key: str) -> TimeGranularity:
    """Classify ``full_key`` by the length of its timestamp fragment."""
    remainder = full_key.removeprefix(base_key)
    parts = remainder.split(KEY_DELIMITER)
    fragment = parts[1] if len(parts) > 1 else ""
    if not fragment:
        return TimeGranularity.NONE
    return TimeGranularity.from_prefix_length(len(fragment))
