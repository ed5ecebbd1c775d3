from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ReconnectionPolicy(BaseModel):
    """How (and whether) a dropped connection is re-established.

    Delays are in seconds. ``max_attempts=0`` retries forever.
    """

    model_config = ConfigDict(frozen=True)

    enabled: bool = False
    initial_delay: float = Field(default=1.0, ge=0)
    max_delay: float = Field(default=30.0, ge=0)
    max_attempts: int = Field(default=10, ge=0)
    backoff_multiplier: float = Field(default=2.0, ge=1)
    jitter: bool = True

    @model_validator(mode="after")
    def _check_delay_bounds(self) -> "ReconnectionPolicy":
        if self.initial_delay > self.max_delay:
            raise ValueError(
                f"initial_delay ({self.initial_delay}) must not exceed max_delay ({self.max_delay})"
            )
        return self


class ConnectionConfig(BaseModel):
    model_config = ConfigDict(frozen=True)

    url: str
    subprotocols: Optional[tuple[str, ...]] = None
    reconnection: ReconnectionPolicy = Field(default_factory=ReconnectionPolicy)
    open_timeout: float = Field(default=10.0, gt=0)


class WebSocketSettings(BaseSettings):
    """
    WebSocket client settings.

    Env support (all optional):
      WS_OPEN_TIMEOUT, WS_PING_INTERVAL, WS_PING_TIMEOUT, WS_MAX_MESSAGE_SIZE,
      WS_RECONNECT_ENABLED, WS_RECONNECT_INITIAL_DELAY, WS_RECONNECT_MAX_DELAY,
      WS_RECONNECT_MAX_ATTEMPTS, WS_RECONNECT_BACKOFF_MULTIPLIER, WS_RECONNECT_JITTER
    """

    open_timeout: float = Field(default=10.0, gt=0)
    ping_interval: Optional[float] = 20.0  # None disables keepalive pings
    ping_timeout: Optional[float] = 20.0
    max_message_size: Optional[int] = 2**20

    reconnect_enabled: bool = False
    reconnect_initial_delay: float = 1.0
    reconnect_max_delay: float = 30.0
    reconnect_max_attempts: int = 10
    reconnect_backoff_multiplier: float = 2.0
    reconnect_jitter: bool = True

    model_config = SettingsConfigDict(
        env_prefix="WS_",
        env_file=".env",
        extra="ignore",
    )

    def reconnection_policy(self) -> ReconnectionPolicy:
        return ReconnectionPolicy(
            enabled=self.reconnect_enabled,
            initial_delay=self.reconnect_initial_delay,
            max_delay=self.reconnect_max_delay,
            max_attempts=self.reconnect_max_attempts,
            backoff_multiplier=self.reconnect_backoff_multiplier,
            jitter=self.reconnect_jitter,
        )


@lru_cache
def get_websocket_settings(**kwargs) -> WebSocketSettings:
    # Only include kwargs that are not None, so env/defaults still apply
    filtered = {k: v for k, v in kwargs.items() if v is not None}
    return WebSocketSettings(**filtered)
