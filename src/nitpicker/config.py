"""Configuration management for Nitpicker."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .projects.project import (
    DEFAULT_BUILD_SCRIPT,
    DEFAULT_REMOTE,
    DEFAULT_VERSION_FILE,
    DEFAULT_VERSION_WRAPPER,
)


class NitpickerSettings(BaseSettings):
    """Runtime configuration sourced from environment variables and optional .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    root: Path = Field(default=Path("."), validation_alias="NITPICKER_ROOT")
    poll_delay: float = Field(default=60.0, validation_alias="NITPICKER_POLL_DELAY")
    build_script: str = Field(default=DEFAULT_BUILD_SCRIPT, validation_alias="NITPICKER_BUILD_SCRIPT")
    version_file: str = Field(default=DEFAULT_VERSION_FILE, validation_alias="NITPICKER_VERSION_FILE")
    version_wrapper: str = Field(
        default=DEFAULT_VERSION_WRAPPER, validation_alias="NITPICKER_VERSION_WRAPPER"
    )
    remote: str = Field(default=DEFAULT_REMOTE, validation_alias="NITPICKER_REMOTE")
    log_level: str = Field(default="INFO", validation_alias="NITPICKER_LOG_LEVEL")

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        normalized = value.strip().upper()
        if normalized not in {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}:
            raise ValueError(
                "NITPICKER_LOG_LEVEL must be one of CRITICAL, ERROR, WARNING, INFO, DEBUG"
            )
        return normalized

    @field_validator("poll_delay")
    @classmethod
    def _validate_poll_delay(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("NITPICKER_POLL_DELAY must be > 0")
        return value

    @field_validator("build_script", "version_file", "remote")
    @classmethod
    def _require_value(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized:
            raise ValueError("value must not be empty")
        return normalized

    @field_validator("version_wrapper")
    @classmethod
    def _validate_version_wrapper(cls, value: str) -> str:
        if "{version}" not in value or "{command}" not in value:
            raise ValueError(
                "NITPICKER_VERSION_WRAPPER must contain {version} and {command} placeholders"
            )
        return value

    def project_options(self) -> dict[str, Any]:
        """Keyword arguments used to construct each discovered Project."""

        return {
            "build_script": self.build_script,
            "version_file": self.version_file,
            "version_wrapper": self.version_wrapper,
            "remote": self.remote,
        }


@lru_cache(maxsize=1)
def get_settings() -> NitpickerSettings:
    """Return cached settings instance."""

    settings = NitpickerSettings()
    settings.root = settings.root.expanduser().resolve()
    return settings


__all__ = ["NitpickerSettings", "get_settings"]
