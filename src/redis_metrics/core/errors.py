"""Exception hierarchy for redis-metrics.

Every failure surfaced by a counter is a :class:`MetricsError`, so callers have
a single type to catch:

- :class:`MetricsUsageError` is raised before any store command is issued when
  the call itself is invalid.
- :class:`MetricsStoreError` wraps errors reported by Redis. The original
  exception is chained as ``__cause__``.
"""

from __future__ import annotations


class MetricsError(RuntimeError):
    """Base exception for all redis-metrics failures."""


class MetricsUsageError(MetricsError, ValueError):
    """Raised when a counter operation is called with invalid arguments."""


class MetricsStoreError(MetricsError):
    """Raised when the backing Redis store reports a failure."""
