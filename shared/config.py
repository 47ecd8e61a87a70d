"""
Configuration management for actions.

Settings are loaded from environment variables (prefix ``BARLEY_``) and
an optional ``.env`` file.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class ActionSettings(BaseSettings):
    """Settings shared by the action runtime and its plugins.

    Provides:
    - Logging level
    - Subprocess timeout and tool locations for apt actions
    - HTTP client behaviour for web actions
    - Temp directory for file actions
    """

    model_config = SettingsConfigDict(
        env_prefix="BARLEY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Observability
    log_level: str = Field("INFO", description="Logging level")

    # Subprocesses
    command_timeout_seconds: Optional[float] = Field(
        600.0, description="Wall clock limit for a single command (None disables)"
    )

    # APT
    apt_get_path: str = Field("apt-get", description="apt-get executable")
    dpkg_query_path: str = Field("dpkg-query", description="dpkg-query executable")
    add_apt_repository_path: str = Field("add-apt-repository", description="add-apt-repository executable")
    apt_sources_dir: Path = Field(Path("/etc/apt"), description="Directory holding sources.list and sources.list.d")
    apt_update_stamp: Path = Field(
        Path("/var/lib/apt/periodic/update-success-stamp"),
        description="File touched by apt after a successful update",
    )
    apt_cache_max_age_seconds: int = Field(3600, description="Age after which the package cache is refreshed")

    # HTTP
    http_timeout_seconds: float = Field(30.0, description="HTTP request timeout")
    http_user_agent: str = Field("barley-actions/0.3", description="User-Agent header sent by web actions")
    http_follow_redirects: bool = Field(True, description="Follow HTTP redirects")

    # Files
    temp_dir: Optional[Path] = Field(None, description="Directory for temp files (system default if unset)")


_settings: Optional[ActionSettings] = None


def get_settings() -> ActionSettings:
    """Return the process-wide settings, loading them on first use."""
    global _settings
    if _settings is None:
        _settings = ActionSettings()
    return _settings


def reset_settings() -> None:
    """Forget cached settings so the next get_settings() reloads them."""
    global _settings
    _settings = None
