from __future__ import annotations

from pydantic_settings import BaseSettings, SettingsConfigDict

from ufox.models.auth import DEFAULT_API_URL


class AppSettings(BaseSettings):
    """Application-wide settings populated from environment variables and .env file."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_prefix="UFOX_",
        extra="ignore",
    )

    api_url: str = DEFAULT_API_URL
    profile: str = "default"
    access_token: str | None = None
    request_timeout: float = 10.0

    poll_interval: float = 5.0
    default_limit: int = 20
    temp_limit: float | None = None
    hum_limit: float | None = None

    export_dir: str = "."
    timezone: str | None = None

    chart_width_threshold: int = 30
    chart_point_width: int = 2
