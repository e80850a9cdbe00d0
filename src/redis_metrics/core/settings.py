"""Process-wide configuration for redis-metrics.

Settings are loaded from environment variables (or a ``.env`` file) and supply
the connection URL plus the counter option defaults applied by
:class:`redis_metrics.services.metrics.RedisMetrics`.
"""

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings sourced from environment variables."""

    # Redis connection used when no client or address is passed explicitly
    redis_url: str = Field(default="redis://localhost:6379", alias="REDIS_URL")

    # Counter option defaults
    counter_time_granularity: str = Field(default="none", alias="METRICS_TIME_GRANULARITY")
    counter_expire_keys: bool = Field(default=True, alias="METRICS_EXPIRE_KEYS")

    model_config = SettingsConfigDict(
        env_file=".env",
        validate_assignment=True,
        extra="ignore",
    )

    @property
    def counter_defaults(self) -> dict[str, object]:
        """Return the counter option defaults as a ``CounterOptions`` payload."""
        return {
            "time_granularity": self.counter_time_granularity,
            "expire_keys": self.counter_expire_keys,
        }


settings = Settings()
