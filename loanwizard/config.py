"""Application configuration via pydantic-settings.

Values are loaded from environment variables (.env file).
Settings are organized into logical groups and composed into a single Settings object.
"""

from __future__ import annotations

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ApiSettings(BaseSettings):
    """Loan platform REST API connection settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    api_base_url: str = Field(
        default="http://localhost:5000/api",
        description="Base URL of the loan platform API",
    )
    api_token: str = Field(default="", description="Bearer token of the signed-in applicant")
    api_timeout: float = Field(default=30.0, description="Read timeout in seconds")
    api_connect_timeout: float = Field(default=5.0, description="Connect timeout in seconds")


class CaptureSettings(BaseSettings):
    """Selfie camera settings."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    camera_device_index: int = Field(default=0, description="Index of the front-facing camera")
    capture_ideal_width: int = Field(default=1280, description="Requested stream width")
    capture_ideal_height: int = Field(default=720, description="Requested stream height")
    selfie_jpeg_quality: int = Field(default=90, ge=1, le=95)
    selfie_filename_prefix: str = Field(default="selfie")
    camera_acquire_timeout: float = Field(
        default=15.0,
        description="Seconds to wait for the device before giving up",
    )


class FormSettings(BaseSettings):
    """Defaults applied to a fresh application draft."""

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    default_country: str = Field(default="India")


class Settings(BaseSettings):
    """Root settings composing all sub-settings.

    Usage:
        settings = Settings()
        settings.api.api_base_url
        settings.capture.selfie_jpeg_quality
    """

    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")

    api: ApiSettings = Field(default_factory=ApiSettings)
    capture: CaptureSettings = Field(default_factory=CaptureSettings)
    form: FormSettings = Field(default_factory=FormSettings)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        upper = v.upper()
        if upper not in valid:
            msg = f"Invalid log level: {v}. Must be one of {valid}"
            raise ValueError(msg)
        return upper

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment == "production"


# Module-level singleton; import this wherever settings are needed.
settings = Settings()
