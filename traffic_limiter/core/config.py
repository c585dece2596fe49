"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Nested BaseSettings don't inherit env_file, so populate os.environ up front
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


def _build_traffic_settings() -> "TrafficSettings":
    """Build traffic settings from environment.

    Pydantic Settings (v2) populates values from environment variables, but
    static type checkers treat fields as constructor arguments.
    """

    return TrafficSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    """Build log settings from environment."""

    return LogSettings()  # type: ignore[call-arg]


class TrafficSettings(BaseSettings):
    """Traffic limiter configuration.

    Mirrors the classic ``[traffic]`` section: a window length, a storage
    directory, an exemption list and an optional alternate address header.
    """

    limit: int = Field(
        10,
        description="Seconds between two admitted requests per client; values below 1 disable limiting",
    )
    dir: Path = Field(
        Path("data"),
        description="Directory holding the rate table, its lock file and the generated salt",
    )
    exempted_ip: str | None = Field(
        None,
        description="Comma-separated list of addresses or ranges (CIDR or 10.0.*.* patterns) exempt from limiting",
    )
    header: str | None = Field(
        None,
        description="Request header to read the client address from, e.g. X_FORWARDED_FOR",
    )
    backend: Literal["file", "memory"] = Field(
        "file",
        description="Rate table storage backend",
    )
    salt: str | None = Field(
        None,
        min_length=1,
        description="Secret used to key client digests; generated and persisted in dir when unset",
    )
    include_headers: bool = Field(
        True,
        description="Include a Retry-After header when a request is throttled",
    )

    model_config = SettingsConfigDict(
        env_prefix="TRAFFIC_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging output configuration."""

    level: str = Field("INFO", description="Root log level")
    format: Literal["json", "plain"] = Field("json", description="Log line format")
    output: Literal["stdout", "file"] = Field("stdout", description="Log destination")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int = Field(
        10 * 1024 * 1024,
        description="Rotate the log file after this many bytes (0 disables rotation)",
    )
    backup_count: int = Field(5, description="Rotated log files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="Header carrying the correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.
    """

    app_env: str = APP_ENV
    traffic: TrafficSettings = Field(default_factory=_build_traffic_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Nested settings are created via default_factory so env loading works.
settings = Settings()
