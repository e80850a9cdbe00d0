"""Core constants, errors and settings for redis-metrics."""
