"""
Upload Guard Configuration Management Module

This module provides configuration management for the upload validation
pipeline using Pydantic Settings. It loads and validates the environment
variables required for:
- Application settings (name, environment, logging)
- Upload destination and the temporary directory uploads arrive in
- JPEG re-encode quality

The 10 MiB size ceiling and the 1024 px image cap are fixed constants in
``upload_guard.utils.file_validator`` and cannot be changed from here.

The destination directory is expected to live outside any publicly served
document root. It is used only as a path prefix and is not otherwise checked.
"""

import tempfile

from functools import lru_cache
from pathlib import Path

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_FIELD_CHOICES = {
    "log_level": frozenset({"debug", "info", "warning", "error", "critical"}),
    "app_env": frozenset({"development", "staging", "production", "testing"}),
}


class Settings(BaseSettings):
    """
    Configuration settings for the upload validation pipeline.

    Values are loaded from environment variables and an optional .env file
    with full type validation.

    Example usage:
        ```python
        from upload_guard.config import Settings

        settings = Settings(upload_destination="/srv/private/uploads")
        print(settings.upload_destination)
        ```
    """

    # =========================================================================
    # Application Settings
    # =========================================================================

    app_name: str = Field(
        default="upload-guard",
        description="Application name used in log records",
    )

    app_env: str = Field(
        default="development",
        description="Application environment (development, staging, production, testing)",
    )

    log_level: str = Field(
        default="info", description="Logging level (debug, info, warning, error, critical)"
    )

    json_logs: bool = Field(
        default=True, description="Emit structured JSON log lines instead of plain text"
    )

    # =========================================================================
    # Upload Locations
    # =========================================================================

    upload_destination: Path = Field(
        default=Path("/var/uploads"),
        description="Absolute directory validated uploads are moved into (outside the web root)",
    )

    upload_temp_dir: Path = Field(
        default_factory=lambda: Path(tempfile.gettempdir()),
        description="Directory the hosting environment writes in-flight uploads to",
    )

    # =========================================================================
    # Image Output
    # =========================================================================

    jpeg_quality: int = Field(
        default=75,
        description="Quality used when re-encoding sanitized JPEGs",
        ge=1,
        le=95,
    )

    # =========================================================================
    # Model Configuration
    # =========================================================================

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
    )

    # =========================================================================
    # Validators
    # =========================================================================

    @field_validator("log_level", "app_env")
    @classmethod
    def normalize_choice(cls, v: str, info: ValidationInfo) -> str:
        """Lower-case log_level / app_env and check them against the known names."""
        choices = _FIELD_CHOICES[info.field_name]
        normalized = v.lower()
        if normalized not in choices:
            raise ValueError(
                f"Invalid {info.field_name} '{v}'. Expected one of: {', '.join(sorted(choices))}"
            )
        return normalized

    @field_validator("upload_destination")
    @classmethod
    def validate_upload_destination(cls, v: Path) -> Path:
        """Require an absolute destination so relocation never depends on the cwd."""
        if not v.is_absolute():
            raise ValueError(f"upload_destination must be an absolute path, got '{v}'")
        return v


@lru_cache
def get_settings() -> Settings:
    """
    Return the process-wide Settings, built on first use.

    Environment variables and .env are read once; call
    ``get_settings.cache_clear()`` to force a reload.
    """
    return Settings()
