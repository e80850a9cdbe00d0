"""Counter engine and metrics client for redis-metrics."""

from .counter import TimestampedCounter
from .metrics import RedisMetrics

__all__ = [
    "RedisMetrics",
    "TimestampedCounter",
]
