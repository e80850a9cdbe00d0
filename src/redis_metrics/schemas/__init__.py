"""Pydantic models for redis-metrics configuration values."""

from .counter import CounterOptions

__all__ = ["CounterOptions"]
