"""Environment-driven settings for expirewatch.

Manifesto:
    Connection details come from the environment, not from constants baked
    into a connection class. The variable names match what a docker-compose
    file for Redis already exports (``REDIS_HOST``, ``REDIS_PORT``,
    ``REDIS_PASSWORD``), so no prefix is applied.

    - **Pydantic validation:** Type-checked at startup, not runtime
    - **Environment-driven:** Reads from env vars and .env files
    - **Sensible defaults:** Works against a local Redis out of the box

Examples:
    >>> from expirewatch.settings import ExpireWatchSettings
    >>> settings = ExpireWatchSettings(redis_port=6380)
    >>> settings.redis_port
    6380

Tags:
    settings, configuration, pydantic, environment, expirewatch

Doc-Types:
    - API Reference
    - Configuration Guide
"""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from expirewatch.notifications import EXPIRED_EVENT_PATTERN


class ExpireWatchSettings(BaseSettings):
    """Settings for the Redis connection, logging and the listener loop.

    Fields
    ──────
    redis_url                    : Full URL; overrides host/port/password/db when set
    redis_host / redis_port      : Redis server location
    redis_password / redis_db    : Authentication and logical database
    redis_max_connections        : Connection pool size
    redis_socket_timeout         : Socket connect/read timeout in seconds
    redis_health_check_interval  : Seconds between idle connection checks
    log_level / log_format       : Structlog level and renderer (json/console/auto)
    listener_pattern             : Pub/sub pattern for expired-key events
    listener_poll_interval       : Seconds the listener waits per message poll
    listener_join_timeout        : Seconds ``stop()`` waits for the listener thread
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ── Redis ────────────────────────────────────────────────────
    redis_url: str | None = Field(default=None, description="e.g. redis://:pass@localhost:6379/0")
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_password: str | None = None
    redis_db: int = 0
    redis_max_connections: int = Field(default=10, ge=1)
    redis_socket_timeout: float = Field(default=2.0, gt=0)
    redis_health_check_interval: int = Field(default=30, ge=0)

    # ── Observability ────────────────────────────────────────────
    log_level: str = "INFO"
    log_format: str = "auto"

    # ── Listener ─────────────────────────────────────────────────
    listener_pattern: str = EXPIRED_EVENT_PATTERN
    listener_poll_interval: float = Field(default=1.0, gt=0)
    listener_join_timeout: float = Field(default=5.0, ge=0)

    @field_validator("log_format")
    @classmethod
    def _check_log_format(cls, value: str) -> str:
        value = value.lower()
        if value not in {"json", "console", "auto"}:
            raise ValueError("log_format must be one of: json, console, auto")
        return value

    @property
    def json_logs(self) -> bool | None:
        """``log_format`` as the ``json_format`` argument of ``configure_logging``."""
        if self.log_format == "auto":
            return None
        return self.log_format == "json"


@lru_cache(maxsize=1)
def get_settings() -> ExpireWatchSettings:
    """Return the process-wide settings, loaded once."""
    return ExpireWatchSettings()
