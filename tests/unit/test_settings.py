"""Unit tests for pagepulse.settings: TOML layering, env overrides, validation."""

from __future__ import annotations

from pathlib import Path

import pytest
from pydantic import ValidationError

from pagepulse.settings import Settings, get_settings


@pytest.fixture(autouse=True)
def _local_env(monkeypatch):
    monkeypatch.delenv("PAGEPULSE_ENV", raising=False)


class TestDefaults:
    """Values from settings.default.toml and the models."""

    def test_default_variant_and_thresholds(self) -> None:
        settings = Settings()
        assert settings.env == "local"
        assert settings.session.variant == "engagement"
        assert settings.session.environment == "default"
        assert settings.session.restart_threshold_minutes == 60
        assert settings.session.restart_threshold_seconds == 3600
        assert settings.engagement.refresh_threshold == 233

    def test_default_target_is_feed(self) -> None:
        settings = Settings()
        assert settings.target_url == settings.engagement.feed_url

    def test_sqlite_path_resolved_against_project_root(self) -> None:
        settings = Settings()
        path = Path(settings.database.sqlite_path)
        assert path.is_absolute()
        assert path.parts[-2:] == ("data", "telemetry.db")

    def test_engagement_timings(self) -> None:
        cfg = Settings().engagement
        assert cfg.click_timeout_ms == 500
        assert cfg.indicator_appear_timeout_ms == 1_000
        assert cfg.indicator_disappear_timeout_ms == 30_000
        assert (cfg.dismiss_key, cfg.scroll_key) == ("Escape", "PageDown")

    def test_get_settings_is_cached(self) -> None:
        assert get_settings() is get_settings()


class TestOverrides:
    """Environment profiles, env vars and explicit values."""

    def test_env_var_overrides_nested_field(self, monkeypatch) -> None:
        monkeypatch.setenv("PAGEPULSE_ENGAGEMENT__REFRESH_THRESHOLD", "7")
        monkeypatch.setenv("PAGEPULSE_SESSION__RESTART_THRESHOLD_MINUTES", "2.5")
        monkeypatch.setenv("PAGEPULSE_SESSION__ENVIRONMENT", "lab-3")
        settings = Settings()
        assert settings.engagement.refresh_threshold == 7
        assert settings.session.restart_threshold_seconds == 150
        assert settings.session.environment == "lab-3"

    def test_idle_variant_targets_page_url(self, monkeypatch) -> None:
        monkeypatch.setenv("PAGEPULSE_SESSION__VARIANT", "idle")
        monkeypatch.setenv("PAGEPULSE_IDLE__PAGE_URL", "https://example.com/video")
        settings = Settings()
        assert settings.target_url == "https://example.com/video"

    def test_prod_profile(self) -> None:
        settings = Settings(env="prod")
        assert settings.browser.channel == "msedge"
        assert settings.database.backend == "postgresql"
        assert settings.database.create_tables is False
        # Untouched sections keep their defaults
        assert settings.session.variant == "engagement"

    def test_explicit_values_win_over_toml(self) -> None:
        settings = Settings(session={"variant": "IDLE", "restart_threshold_minutes": 1})
        assert settings.session.variant == "idle"
        assert settings.session.environment == "default"
        assert settings.session.restart_threshold_seconds == 60

    def test_absolute_storage_state_kept(self, tmp_path) -> None:
        state = tmp_path / "state.json"
        settings = Settings(browser={"storage_state": str(state)})
        assert settings.browser.storage_state == str(state)


class TestValidation:
    """Rejected values."""

    def test_unknown_variant(self) -> None:
        with pytest.raises(ValidationError, match="variant must be one of"):
            Settings(session={"variant": "scroll"})

    def test_unknown_backend(self) -> None:
        with pytest.raises(ValidationError, match="backend must be one of"):
            Settings(database={"backend": "mysql"})

    def test_refresh_threshold_must_be_positive(self) -> None:
        with pytest.raises(ValidationError):
            Settings(engagement={"refresh_threshold": 0})
