"""Configuration loader for pagepulse using Pydantic settings.

Config precedence (highest wins):
  1. CLI flags (exported as env vars by ``pagepulse run``)
  2. Environment variables (PAGEPULSE_* with __ for nesting)
  3. .env in the working directory
  4. settings.local.toml
  5. settings.{env}.toml
  6. settings.default.toml
"""

from __future__ import annotations

import os
import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

_THIS_DIR = Path(__file__).resolve().parent
PROJECT_ROOT = Path(os.getenv("PAGEPULSE_PROJECT_ROOT", _THIS_DIR.parents[2]))
CONFIG_DIR = PROJECT_ROOT / "config"

ENV_VAR_NAME = "PAGEPULSE_ENV"
DEFAULT_ENV = "local"

VARIANTS = ("engagement", "idle")
BACKENDS = ("sqlite", "postgresql")


def _resolve_env() -> str:
    return (os.getenv(ENV_VAR_NAME) or DEFAULT_ENV).strip()


def _load_toml(path: Path) -> dict[str, Any]:
    if path.is_file():
        with open(path, "rb") as f:
            return tomllib.load(f)
    return {}


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class BrowserSettings(BaseSettings):
    """Playwright browser settings."""

    model_config = SettingsConfigDict(env_prefix="PAGEPULSE_BROWSER__")

    browser_type: str = "chromium"
    channel: str = ""  # e.g. "msedge" or "chrome"; empty uses the bundled build
    headless: bool = False
    start_maximized: bool = True
    storage_state: str = ""  # pre-authenticated context (cookies + localStorage JSON)
    timeout_ms: int = 30_000
    wait_until: str = "load"


class DatabaseSettings(BaseSettings):
    """Telemetry datastore connection."""

    model_config = SettingsConfigDict(env_prefix="PAGEPULSE_DATABASE__")

    backend: str = "sqlite"  # sqlite | postgresql
    url: str = ""  # full SQLAlchemy URL, wins over the discrete fields below
    host: str = "localhost"
    port: int = 5432
    user: str = ""
    password: str = ""
    database: str = ""
    schema_name: str = "ipv6"
    sqlite_path: str = "data/telemetry.db"
    create_tables: bool = True

    @field_validator("backend")
    @classmethod
    def _check_backend(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in BACKENDS:
            raise ValueError(f"backend must be one of {BACKENDS}, got {value!r}")
        return value


class SessionSettings(BaseSettings):
    """Supervisor / session lifecycle configuration."""

    model_config = SettingsConfigDict(env_prefix="PAGEPULSE_SESSION__")

    variant: str = "engagement"  # engagement | idle
    environment: str = "default"
    restart_threshold_minutes: float = 60.0
    guard_engagement_lifetime: bool = True
    restart_delay_seconds: float = 0.0

    @field_validator("variant")
    @classmethod
    def _check_variant(cls, value: str) -> str:
        value = value.strip().lower()
        if value not in VARIANTS:
            raise ValueError(f"variant must be one of {VARIANTS}, got {value!r}")
        return value

    @property
    def restart_threshold_seconds(self) -> float:
        """Restart threshold expressed in seconds."""
        return self.restart_threshold_minutes * 60.0


class EngagementSettings(BaseSettings):
    """Continuous engagement loop (feed page click-through and scroll)."""

    model_config = SettingsConfigDict(env_prefix="PAGEPULSE_ENGAGEMENT__")

    feed_url: str = "https://www.weibo.com/hot/"
    refresh_threshold: int = Field(default=233, ge=1)
    content_selector: str = ".woo-picture-slot:visible"
    landmark_selector: str = '[role="navigation"]'
    loading_indicator_selector: str = 'svg[class^="CircleProgress"]'
    click_timeout_ms: int = 500
    indicator_appear_timeout_ms: int = 1_000
    indicator_disappear_timeout_ms: int = 30_000
    settle_ms: int = 1_000
    dismiss_key: str = "Escape"
    dismiss_pause_ms: int = 500
    scroll_key: str = "PageDown"
    scroll_pause_ms: int = 1_000


class IdleSettings(BaseSettings):
    """Passive idle-presence loop."""

    model_config = SettingsConfigDict(env_prefix="PAGEPULSE_IDLE__")

    page_url: str = "https://www.kuaishou.com/short-video/3xss4pn476pxzze"


# ---------------------------------------------------------------------------
# Root settings
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    """Root pagepulse settings with nested sections."""

    model_config = SettingsConfigDict(
        env_prefix="PAGEPULSE_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    env: str = Field(default_factory=_resolve_env)
    project_root: Path = Field(default=PROJECT_ROOT)
    debug: bool = False

    browser: BrowserSettings = Field(default_factory=BrowserSettings)
    database: DatabaseSettings = Field(default_factory=DatabaseSettings)
    session: SessionSettings = Field(default_factory=SessionSettings)
    engagement: EngagementSettings = Field(default_factory=EngagementSettings)
    idle: IdleSettings = Field(default_factory=IdleSettings)

    @model_validator(mode="before")
    @classmethod
    def _merge_toml_files(cls, values: dict[str, Any]) -> dict[str, Any]:
        """Layer TOML config files before env var overrides."""
        defaults = _load_toml(CONFIG_DIR / "settings.default.toml")
        env_name = (values.get("env") or os.getenv(ENV_VAR_NAME) or DEFAULT_ENV).strip()
        env_overrides = _load_toml(CONFIG_DIR / f"settings.{env_name}.toml")
        local_overrides = _load_toml(CONFIG_DIR / "settings.local.toml")

        # Merge: defaults < env-specific < local < explicit values
        merged: dict[str, Any] = {}
        for layer in (defaults, env_overrides, local_overrides, values):
            for key, val in layer.items():
                if isinstance(val, dict) and isinstance(merged.get(key), dict):
                    merged[key] = {**merged[key], **val}
                else:
                    merged[key] = val
        return merged

    @model_validator(mode="after")
    def _resolve_paths(self) -> "Settings":
        """Normalize relative paths against project_root."""
        root = self.project_root
        if not Path(self.database.sqlite_path).is_absolute():
            self.database.sqlite_path = str(root / self.database.sqlite_path)
        if self.browser.storage_state and not Path(self.browser.storage_state).is_absolute():
            self.browser.storage_state = str(root / self.browser.storage_state)
        return self

    @property
    def target_url(self) -> str:
        """URL the configured driver variant navigates to."""
        if self.session.variant == "idle":
            return self.idle.page_url
        return self.engagement.feed_url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return the singleton settings instance (cached)."""
    return Settings()
