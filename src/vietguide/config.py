"""Configuration for the VietGuide booking and currency core."""

from __future__ import annotations

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime settings loaded from environment."""

    api_base_url: str = "https://localhost:7225/api"
    api_token: SecretStr = SecretStr("")
    request_timeout: float = Field(default=30.0, gt=0)
    default_currency: str = "USD"
    display_locale: str = "en-US"
    allow_client_cancel_confirmed: bool = False
    sentry_dsn: str | None = None
    environment: str = "development"

    model_config = SettingsConfigDict(env_prefix="VIETGUIDE_", env_file=".env")
