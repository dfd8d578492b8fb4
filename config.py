"""
Client configuration via pydantic-settings.

All settings are loaded from environment variables (and .env file).

The display timezone decides how click timestamps are bucketed for charts.
"local" follows the viewer's machine; any IANA name (e.g. "UTC",
"Europe/Berlin") pins the buckets to that zone.
"""

from __future__ import annotations

from datetime import tzinfo
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOCAL_TIMEZONE = "local"


class LoggingSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    log_level: str = "INFO"
    log_format: str = "console"  # "json" in production


class ClientSettings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Core
    env: str = "development"
    app_name: str = "Short"

    # Remote API
    api_base_url: str = "http://localhost:8000/api"
    redirect_base_url: str = "http://localhost:8000"
    request_timeout: float = 5.0

    # Analytics
    display_timezone: str = LOCAL_TIMEZONE

    # Delay before refreshing counts after a short link was opened, giving
    # the server time to record the redirect
    open_link_refresh_delay: float = 0.5

    logging: Optional[LoggingSettings] = None

    @field_validator("api_base_url", "redirect_base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("display_timezone")
    @classmethod
    def _check_timezone(cls, v: str) -> str:
        if v.lower() == LOCAL_TIMEZONE:
            return LOCAL_TIMEZONE
        try:
            ZoneInfo(v)
        except (ZoneInfoNotFoundError, ValueError) as e:
            raise ValueError(f"Unknown timezone: {v!r}") from e
        return v

    @field_validator("request_timeout", "open_link_refresh_delay")
    @classmethod
    def _non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("must not be negative")
        return v

    @model_validator(mode="after")
    def _populate_sub_configs(self) -> "ClientSettings":
        if self.logging is None:
            self.logging = LoggingSettings()
        return self

    def display_tz(self) -> Optional[tzinfo]:
        """Return the configured display zone, or None for the local zone."""
        if self.display_timezone == LOCAL_TIMEZONE:
            return None
        return ZoneInfo(self.display_timezone)

    @property
    def is_production(self) -> bool:
        return self.env == "production"
