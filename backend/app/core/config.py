# backend/app/core/config.py
import logging
import os
from pathlib import Path
from typing import Literal, Optional

from dotenv import load_dotenv
from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .constants import BRAND_NAME, DEFAULT_STUDIO_TIMEZONE


def is_running_tests() -> bool:
    """
    Detect if code is running under pytest.

    PYTEST_CURRENT_TEST is set automatically by pytest during test runs, and is
    not expected to be present in production environments.
    """
    return os.getenv("PYTEST_CURRENT_TEST") is not None


logger = logging.getLogger(__name__)

# Load .env file only if not in CI
if not os.getenv("CI"):
    env_path = Path(__file__).parent.parent.parent / ".env"  # Goes up to backend/.env
    logger.debug(f"[CONFIG] Looking for .env at: {env_path}")
    load_dotenv(env_path)


class Settings(BaseSettings):
    app_name: str = Field(default=BRAND_NAME, description="Service name used in logs and metrics")
    environment: Literal["local", "development", "staging", "production"] = Field(
        default="local",
        description="Deployment environment",
    )
    log_level: str = Field(default="INFO", description="Root log level")
    app_url: str = Field(
        default="http://localhost:3000",
        description="Public frontend origin used for checkout redirects",
    )

    # Database
    database_url: str = Field(
        default="sqlite:///./studio.db",
        description="SQLAlchemy URL of the single relational store",
    )
    database_echo: bool = False
    is_testing: bool = False  # Set to True when running tests

    # Studio rules
    studio_timezone: str = Field(
        default=DEFAULT_STUDIO_TIMEZONE,
        description="IANA timezone that defines the Monday week boundary",
    )
    cancellation_cutoff_hours: int = Field(
        default=4,
        ge=0,
        description="Cancellations at least this far ahead return the weekly credit",
    )
    default_slot_capacity: int = Field(default=10, ge=1)

    # Weekly reset scheduler
    scheduler_enabled: bool = Field(
        default=True,
        description="Run the in-process weekly reset ticker from the API lifespan",
    )
    weekly_reset_interval_seconds: float = Field(default=15 * 60, gt=0)
    weekly_reset_initial_delay_seconds: float = Field(default=5.0, ge=0)

    # Stripe
    stripe_publishable_key: str = Field(default="", description="Stripe publishable key")
    stripe_secret_key: SecretStr = Field(
        default=SecretStr(""),
        description="Stripe secret key for outbound API calls",
    )
    stripe_webhook_secret: SecretStr = Field(
        default=SecretStr(""),
        description="Signing secret for the Stripe webhook endpoint",
    )
    stripe_currency: str = Field(default="aud", description="Default currency for payments")

    # Celery
    redis_url: str = Field(default="redis://localhost:6379/0", description="Celery broker URL")

    model_config = SettingsConfigDict(
        env_file=".env" if not os.getenv("CI") else None,
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("stripe_currency")
    @classmethod
    def _normalize_currency(cls, value: str) -> str:
        return value.strip().lower() or "aud"

    def stripe_webhook_secret_value(self) -> Optional[str]:
        secret = self.stripe_webhook_secret.get_secret_value().strip()
        return secret or None


settings = Settings()
