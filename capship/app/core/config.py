"""
Environment configuration — single source of truth for all settings.

Uses pydantic-settings for type-safe config loaded from a key-value
(.env style) file, the process environment, and finally CLI flags.

Precedence: CLI flag > env var > config file > default value

Usage:
    from capship.app.core.config import load_settings
    settings = load_settings("/etc/capship/capship.env", ROOT="/tmp/capship/")
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_CONFIG_PATH = "/etc/capship/capship.env"
DEFAULT_ROOT_DIR = "/var/lib/capship/"
DEFAULT_MAX_UPLOAD_SIZE = 2 * 1048576  # 2mb

LOG_LEVELS = ("trace", "debug", "info", "warn", "warning", "error", "fatal", "critical")


class Settings(BaseSettings):
    """
    capship settings.

    Every field may be set as ``CAPSHIP_<NAME>`` in the config file or the
    environment.
    """

    model_config = SettingsConfigDict(
        env_prefix="CAPSHIP_",
        env_file=None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Storage ──
    ROOT: str = DEFAULT_ROOT_DIR  # alerts/ and feeds/ live under here
    FEED_FILENAME: str = "cap_feed.xml"
    MAX_UPLOAD_SIZE: int = DEFAULT_MAX_UPLOAD_SIZE

    # ── Logging ──
    LOG_LEVEL: str = "info"  # trace | debug | info | warn | error | fatal
    LOG_FORMAT: str = "pretty"  # pretty | json

    # ── Server ──
    HOST: str = "0.0.0.0"
    PORT: int = 8080

    # ── Feed identity ──
    HOST_NAME: str = "http://localhost:8080/"
    FEED_TITLE: str = "Current Alerts Issued by capship"
    FEED_AUTHOR: str = "capship.webmaster@localhost"
    FEED_GENERATOR: str = "capship CAP Server"
    FEED_LOGO: str = "http://alerts.weather.gov/images/xml_logo.gif"

    # ── Aggregation ──
    AGGREGATION_INTERVAL_SECONDS: int = 300  # 0 disables the periodic job

    # ── Remote feeds (captn) ──
    REMOTE_FEED_URL: str = "https://alerts.weather.gov/cap/us.php?x=1"
    HTTP_TIMEOUT_SECONDS: float = 30.0

    @field_validator("ROOT", "HOST_NAME")
    @classmethod
    def _trailing_slash(cls, v: str) -> str:
        if v and not v.endswith("/"):
            return v + "/"
        return v

    @field_validator("LOG_LEVEL")
    @classmethod
    def _known_level(cls, v: str) -> str:
        level = v.strip().lower()
        if level not in LOG_LEVELS:
            raise ValueError(f"not a valid log level: {v!r}")
        return level

    @field_validator("MAX_UPLOAD_SIZE")
    @classmethod
    def _positive_size(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("max upload size must be positive")
        return v

    def to_env(self) -> str:
        """Render the settings in the config-file format."""
        lines = []
        for name, value in self.model_dump().items():
            lines.append(f"{self.model_config['env_prefix']}{name}={value}")
        return "\n".join(lines) + "\n"


def load_settings(config_path: Optional[str] = None, **overrides: Any) -> Settings:
    """
    Load settings from ``config_path`` (a missing file is not an error),
    the environment, then apply non-empty ``overrides``.
    """
    env_file = None
    if config_path and Path(config_path).is_file():
        env_file = config_path
    flags: Dict[str, Any] = {k: v for k, v in overrides.items() if v not in (None, "", 0)}
    return Settings(_env_file=env_file, **flags)


@lru_cache()
def get_settings() -> Settings:
    """Cached settings built from the default config path."""
    return load_settings(DEFAULT_CONFIG_PATH)
