"""Configuration management using Pydantic Settings."""
from decimal import Decimal
from functools import lru_cache
from typing import Literal

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Engine settings, read from ``RESERVATION_*`` env vars or ``.env``."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="RESERVATION_",
        extra="ignore",
    )

    app_title: str = "Reservation & Billing Engine"
    app_version: str = "1.0.0"

    # Logging
    log_level: str = "INFO"
    log_format: Literal["json", "console"] = "console"

    # Auth
    secret_key: SecretStr = SecretStr("change-me-in-production")
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 30

    # Billing
    payment_tolerance: Decimal = Field(default=Decimal("0.01"), ge=0)

    # Upper bound for any call into the catalog, client or host contexts
    collaborator_timeout_seconds: float = Field(default=5.0, gt=0)

    seed_demo_data: bool = True


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
