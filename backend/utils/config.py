"""
HotReload Configuration Module.

Centralizes all configuration settings using Pydantic Settings.
Requires Python 3.11+.
"""

import sys
from functools import lru_cache
from pathlib import Path
from typing import Annotated

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict

# Load .env file into os.environ at module import time
# This ensures nested BaseSettings classes can read the values
_env_file = Path(__file__).parent.parent / ".env"
if _env_file.exists():
    load_dotenv(_env_file)
else:
    # Try current working directory
    load_dotenv()


def _explicit_watch_needed() -> bool:
    """Native recursive notification is only integrated on macOS and Windows."""
    return sys.platform not in ("darwin", "win32")


def _split_csv(v: str | list[str]) -> list[str]:
    if isinstance(v, str):
        return [p.strip() for p in v.split(",") if p.strip()]
    return v


class ReloaderSettings(BaseSettings):
    """Change detection and reload coordination settings."""

    model_config = SettingsConfigDict(env_prefix="RELOADER_")

    rescan_cooldown_ms: int = Field(default=250, ge=0, le=10000)
    reload_cooldown_ms: int = Field(default=750, ge=0, le=10000)

    tracked_files: Annotated[list[str], NoDecode] = Field(
        default=["main.js", "styles.css"],
        description="Files whose modification time triggers a reload",
    )
    manifest_file: str = Field(default="manifest.json")
    opt_in_markers: Annotated[list[str], NoDecode] = Field(
        default=[".hotreload"],
        description="Marker files that opt an extension into auto-reload",
    )
    vcs_markers: Annotated[list[str], NoDecode] = Field(
        default=[".git"],
        description="Version-control markers that also opt an extension in",
    )

    debug_flag_name: str = Field(default="debug-plugin")
    explicit_watch_needed: bool = Field(default_factory=_explicit_watch_needed)

    @field_validator("tracked_files", "opt_in_markers", "vcs_markers", mode="before")
    @classmethod
    def parse_file_lists(cls, v: str | list[str]) -> list[str]:
        """Parse file name lists from comma-separated string or list."""
        return _split_csv(v)

    @property
    def structural_files(self) -> frozenset[str]:
        """File names whose change means the registry must be rescanned."""
        return frozenset([self.manifest_file, *self.opt_in_markers, *self.vcs_markers])


class HostSettings(BaseSettings):
    """Local host adapter settings."""

    model_config = SettingsConfigDict(env_prefix="HOST_")

    base_path: Path = Field(default=Path("."), description="Host data directory")
    extensions_folder: str = Field(
        default="plugins",
        description="Extensions root, relative to base_path",
    )
    data_file: str = Field(
        default="hot-reload.json",
        description="Where reload preferences are persisted, relative to base_path",
    )


class APISettings(BaseSettings):
    """API server configuration settings."""

    model_config = SettingsConfigDict(env_prefix="API_")

    host: str = Field(default="127.0.0.1")
    port: int = Field(default=8000, ge=1, le=65535)
    debug: bool = Field(default=False)
    cors_origins: Annotated[list[str], NoDecode] = Field(
        default=["http://localhost:3000", "http://127.0.0.1:3000"],
        description="Allowed CORS origins",
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: str | list[str]) -> list[str]:
        """Parse CORS origins from comma-separated string or list."""
        return _split_csv(v)


class LoggingSettings(BaseSettings):
    """Logging configuration settings."""

    model_config = SettingsConfigDict(env_prefix="LOG_")

    level: str = Field(default="INFO")
    format: str = Field(default="console")  # "json" or "console"


class Settings(BaseSettings):
    """Main application settings aggregating all sub-settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application metadata
    app_name: str = Field(default="HotReload")
    app_version: str = Field(default="0.1.0")
    environment: str = Field(default="development")

    # Sub-settings
    reloader: ReloaderSettings = Field(default_factory=ReloaderSettings)
    local_host: HostSettings = Field(default_factory=HostSettings)
    api: APISettings = Field(default_factory=APISettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() in ("development", "dev", "local")


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns singleton instance of Settings for performance.
    """
    return Settings()
