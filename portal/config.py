from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Annotated, Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

DEFAULT_SERVICE_OPTIONS = [
    "Incalls",
    "Outcalls",
    "Massage",
    "Companionship",
    "Dinner Dates",
    "Travel Companion",
    "Events",
    "Overnight",
]

DEFAULT_LOCATION_OPTIONS = [
    "Nairobi",
    "Mombasa",
    "Kisumu",
    "Nakuru",
    "Eldoret",
    "Thika",
    "Malindi",
]


class Settings(BaseSettings):
    """Application settings loaded from environment variables with validation."""

    model_config = SettingsConfigDict(
        env_file=(str(Path(__file__).resolve().parents[1] / ".env"), ".env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    app_name: str = Field(default="Provider Portal", alias="APP_NAME")
    app_env: Literal["development", "staging", "production", "test"] = Field(
        default="production",
        alias="APP_ENV",
    )
    app_debug: bool = Field(default=False, alias="APP_DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    secret_key: SecretStr = Field(
        default=SecretStr("change-me-in-production"),
        alias="SECRET_KEY",
    )
    session_cookie: str = Field(default="portal_session", alias="SESSION_COOKIE")
    session_max_age: int = Field(default=60 * 60 * 24, ge=60, alias="SESSION_MAX_AGE")

    backend_url: str = Field(default="http://localhost:8080", alias="BACKEND_URL")
    backend_timeout: float = Field(default=15.0, gt=0, le=120, alias="BACKEND_TIMEOUT")

    payment_poll_seconds: float = Field(default=5.0, gt=0, le=60, alias="PAYMENT_POLL_SECONDS")
    payment_poll_max_attempts: int = Field(default=0, ge=0, alias="PAYMENT_POLL_MAX_ATTEMPTS")
    payment_success_redirect_seconds: int = Field(
        default=3, ge=0, le=60, alias="PAYMENT_SUCCESS_REDIRECT_SECONDS"
    )
    dashboard_refresh_seconds: int = Field(default=30, ge=5, alias="DASHBOARD_REFRESH_SECONDS")

    max_profile_images: int = Field(default=5, ge=1, le=20, alias="MAX_PROFILE_IMAGES")
    max_image_bytes: int = Field(default=5 * 1024 * 1024, ge=1024, alias="MAX_IMAGE_BYTES")
    admin_page_size: int = Field(default=20, ge=1, le=100, alias="ADMIN_PAGE_SIZE")

    service_options: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_SERVICE_OPTIONS),
        alias="SERVICE_OPTIONS",
    )
    location_options: Annotated[list[str], NoDecode] = Field(
        default_factory=lambda: list(DEFAULT_LOCATION_OPTIONS),
        alias="LOCATION_OPTIONS",
    )

    @field_validator("backend_url")
    @classmethod
    def validate_backend_url(cls, value: str) -> str:
        """Require a single http(s) scheme and drop any trailing slash."""
        normalized = value.strip()
        lowered = normalized.lower()
        if not (lowered.startswith("http://") or lowered.startswith("https://")):
            raise ValueError("BACKEND_URL must start with http:// or https://")
        remainder = lowered.split("://", 1)[1]
        if remainder.startswith(("http:", "https:")) or "://" in remainder:
            raise ValueError(f"BACKEND_URL has a doubled scheme: {value!r}")
        if not remainder.strip("/"):
            raise ValueError("BACKEND_URL must include a host")
        return normalized.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unsupported LOG_LEVEL: {value}")
        return level

    @field_validator("service_options", "location_options", mode="before")
    @classmethod
    def parse_option_list(cls, value: str | list[str]) -> list[str]:
        """Support comma-separated option lists from environment variables."""
        if isinstance(value, str):
            if not value.strip():
                return []
            return [item.strip() for item in value.split(",") if item.strip()]
        return value


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""
    return Settings()


settings: Settings = get_settings()
