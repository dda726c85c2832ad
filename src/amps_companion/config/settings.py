"""Application Settings and Configuration

Pydantic-based settings management using environment variables.
Settings are loaded from environment variables with support for .env files,
type validation, and sensible defaults. All settings are frozen and immutable
after initialization.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, BaseModel, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..domain.shared.constants import ClientDefaults, LogLevels, SimulatorDefaults
from ..domain.shared.enums import TransportMode
from ..domain.shared.messages import ErrorMessages
from ..domain.shared.types import (
    IntervalSeconds,
    MaxAttempts,
    NonEmptyStr,
    NonNegativeFloat,
    PositiveFloat,
    TimeoutSeconds,
)


class ControllerSettings(BaseModel):
    """Where the controller lives and how to authenticate against it."""

    model_config = SettingsConfigDict(frozen=True, populate_by_name=True)

    mode: TransportMode = TransportMode.SIMULATOR
    base_url: str = Field(
        default=ClientDefaults.BASE_URL,
        validation_alias=AliasChoices("base_url", "url", "amps_api_url"),
    )
    api_key: SecretStr = Field(
        default=SecretStr(ClientDefaults.API_KEY),
        validation_alias=AliasChoices("api_key", "amps_api_key"),
    )
    request_timeout_s: TimeoutSeconds = Field(
        default=ClientDefaults.REQUEST_TIMEOUT_SECONDS,
        validation_alias=AliasChoices("request_timeout_s", "timeout"),
    )

    @field_validator("base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Validate controller base URL format."""
        if not v.startswith(("http://", "https://")):
            raise ValueError(ErrorMessages.INVALID_BASE_URL)
        return v.rstrip("/")


class ClientSettings(BaseModel):
    """Session client identity and keepalive tuning."""

    model_config = SettingsConfigDict(frozen=True, populate_by_name=True)

    client_type: NonEmptyStr = ClientDefaults.CLIENT_TYPE
    version: NonEmptyStr = ClientDefaults.VERSION
    capabilities: tuple[str, ...] = ClientDefaults.CAPABILITIES
    heartbeat_interval_s: IntervalSeconds = Field(
        default=ClientDefaults.HEARTBEAT_INTERVAL_SECONDS,
        validation_alias=AliasChoices("heartbeat_interval_s", "heartbeat_interval"),
    )
    max_reconnect_attempts: MaxAttempts = ClientDefaults.MAX_RECONNECT_ATTEMPTS
    reconnect_base_delay_s: NonNegativeFloat = Field(
        default=ClientDefaults.RECONNECT_BASE_DELAY_SECONDS,
        validation_alias=AliasChoices("reconnect_base_delay_s", "reconnect_delay"),
    )

    @field_validator("capabilities", mode="before")
    @classmethod
    def validate_capabilities(cls, v: tuple[str, ...] | list[str] | str) -> tuple[str, ...]:
        """Accept a comma-separated string or a list and convert to a tuple."""
        if isinstance(v, str):
            return tuple(part.strip() for part in v.split(",") if part.strip())
        return tuple(v)


class StoreSettings(BaseModel):
    """Client state store configuration."""

    model_config = SettingsConfigDict(frozen=True, populate_by_name=True)

    refresh_interval_s: IntervalSeconds = Field(
        default=ClientDefaults.REFRESH_INTERVAL_SECONDS,
        validation_alias=AliasChoices("refresh_interval_s", "refresh_interval"),
    )
    auto_connect: bool = False


class SimulatorSettings(BaseModel):
    """In-process controller simulator configuration."""

    model_config = SettingsConfigDict(frozen=True, populate_by_name=True)

    version: NonEmptyStr = SimulatorDefaults.VERSION
    tick_seconds: PositiveFloat = SimulatorDefaults.TICK_SECONDS
    default_track_duration_s: PositiveFloat = SimulatorDefaults.TRACK_DURATION_SECONDS
    accepted_api_key: SecretStr | None = None
    auto_progress: bool = True


class Settings(BaseSettings):
    """Application settings container.

    Automatically loads configuration from environment variables.

    Environment variable naming:
    - ENVIRONMENT, DEBUG, LOG_LEVEL (top-level)
    - CONTROLLER__MODE, CONTROLLER__BASE_URL, CONTROLLER__API_KEY, ...
    - CLIENT__HEARTBEAT_INTERVAL_S, CLIENT__MAX_RECONNECT_ATTEMPTS, ...
    - STORE__REFRESH_INTERVAL_S, STORE__AUTO_CONNECT
    - SIMULATOR__TICK_SECONDS, SIMULATOR__ACCEPTED_API_KEY, ...
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    environment: Literal["development", "production", "test"] = "development"
    debug: bool = False
    log_level: str = LogLevels.INFO

    controller: ControllerSettings = Field(default_factory=ControllerSettings)
    client: ClientSettings = Field(default_factory=ClientSettings)
    store: StoreSettings = Field(default_factory=StoreSettings)
    simulator: SimulatorSettings = Field(default_factory=SimulatorSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {
            LogLevels.DEBUG,
            LogLevels.INFO,
            LogLevels.WARNING,
            LogLevels.ERROR,
            LogLevels.CRITICAL,
        }
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(
                ErrorMessages.INVALID_LOG_LEVEL.format(level=v, valid_levels=valid_levels)
            )
        return v_upper


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings.

    Settings are automatically loaded from:
    1. .env file (if present)
    2. Environment variables
    3. Default values
    """
    return Settings()


def clear_settings_cache() -> None:
    """Clear the settings cache (useful for testing)."""
    get_settings.cache_clear()
