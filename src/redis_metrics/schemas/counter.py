"""Per-counter option model."""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from redis_metrics.core.constants import TimeGranularity


class CounterOptions(BaseModel):
    """Options controlling which keys a counter writes and how long they live.

    Accepts both the camelCase names used by existing deployments
    (``timeGranularity``, ``expireKeys``) and the snake_case field names.
    ``expiration`` only holds overrides; missing granularities fall back to
    the defaults in :mod:`redis_metrics.services.expiration`.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    time_granularity: TimeGranularity = Field(
        default=TimeGranularity.NONE, alias="timeGranularity"
    )
    expire_keys: bool = Field(default=True, alias="expireKeys")
    expiration: dict[TimeGranularity, int] = Field(default_factory=dict)

    @field_validator("time_granularity", mode="before")
    @classmethod
    def _parse_time_granularity(cls, value: Any) -> TimeGranularity:
        granularity = TimeGranularity.parse(value)
        # TOTAL only makes sense as a query argument.
        if granularity is TimeGranularity.TOTAL:
            return TimeGranularity.NONE
        return granularity

    @field_validator("expiration", mode="before")
    @classmethod
    def _parse_expiration(cls, value: Any) -> dict[TimeGranularity, int]:
        if value is None:
            return {}
        if not isinstance(value, Mapping):
            raise ValueError("expiration must be a mapping of granularity to seconds")
        return {TimeGranularity.parse(key): int(ttl) for key, ttl in value.items()}

    @classmethod
    def merge(cls, *layers: CounterOptions | Mapping[str, Any] | None) -> CounterOptions:
        """Merge option layers, later layers overriding earlier ones.

        Expiration tables are merged per granularity rather than replaced.
        """
        merged: dict[str, Any] = {}
        expiration: dict[TimeGranularity, int] = {}
        for layer in layers:
            if layer is None:
                continue
            options = layer if isinstance(layer, cls) else cls.model_validate(layer)
            values = options.model_dump(exclude_unset=True)
            expiration.update(values.pop("expiration", {}))
            merged.update(values)
        merged["expiration"] = expiration
        return cls.model_validate(merged)
