"""Conversion of raw Redis replies into typed counter results."""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from typing import Any


def _decode(value: Any) -> Any:
    if isinstance(value, (bytes, bytearray)):
        return value.decode("utf-8")
    return value


def parse_int(value: Any) -> int:
    """Return ``value`` as an int; missing replies count as zero."""
    value = _decode(value)
    if value is None:
        return 0
    if isinstance(value, float):
        return int(value)
    try:
        return int(value)
    except ValueError:
        # Sorted set scores come back as "3" or "3.0" depending on the path.
        return int(float(value))


def parse_int_list(values: Iterable[Any]) -> list[int]:
    return [parse_int(value) for value in values]


def parse_total(values: Iterable[Any]) -> int:
    """Sum a list of optional integer replies."""
    return sum(parse_int_list(values))


def parse_range(timestamps: Sequence[str], values: Iterable[Any]) -> dict[str, int]:
    """Pair each timestamp with its bucket count, preserving order."""
    return dict(zip(timestamps, parse_int_list(values), strict=True))


def parse_rank(reply: Iterable[Any]) -> list[tuple[str, int]]:
    """Parse a ZRANGE ... WITHSCORES reply into ``(member, count)`` pairs.

    Accepts the flat ``[member, score, member, score]`` form as well as the
    list of tuples produced by redis-py.
    """
    items = list(reply)
    if items and isinstance(items[0], (tuple, list)):
        pairs = [(member, score) for member, score in items]
    else:
        pairs = list(zip(items[0::2], items[1::2], strict=True))
    return [(str(_decode(member)), parse_int(score)) for member, score in pairs]
