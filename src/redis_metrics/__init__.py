"""Timestamped event counters backed by Redis."""

from redis_metrics.core.constants import TimeGranularity
from redis_metrics.core.errors import MetricsError, MetricsStoreError, MetricsUsageError
from redis_metrics.schemas.counter import CounterOptions
from redis_metrics.services.counter import TimestampedCounter
from redis_metrics.services.metrics import RedisMetrics

__all__ = [
    "CounterOptions",
    "MetricsError",
    "MetricsStoreError",
    "MetricsUsageError",
    "RedisMetrics",
    "TimeGranularity",
    "TimestampedCounter",
]
