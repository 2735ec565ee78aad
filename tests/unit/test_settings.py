"""Unit tests for settings loading and the pipeline configuration."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from adaptive_scraper.config.settings import Settings
from adaptive_scraper.scraper.config import DEFAULT_SUFFICIENCY_THRESHOLD
from adaptive_scraper.scraper.pipeline import PipelineConfig


class TestSettings:
    def test_defaults(self) -> None:
        settings = Settings(secret_key="s")
        assert settings.sufficiency_threshold == DEFAULT_SUFFICIENCY_THRESHOLD == 200
        assert settings.access_token_expire_minutes == 7 * 24 * 60
        assert settings.browser_headless is True

    def test_environment_overrides(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SUFFICIENCY_THRESHOLD", "500")
        monkeypatch.setenv("RENDER_ENABLED", "false")
        settings = Settings(secret_key="s")
        assert settings.sufficiency_threshold == 500
        assert settings.render_enabled is False

    def test_negative_threshold_rejected(self) -> None:
        with pytest.raises(ValidationError):
            Settings(secret_key="s", sufficiency_threshold=-1)


class TestPipelineConfig:
    def test_from_settings(self) -> None:
        settings = Settings(secret_key="s", sufficiency_threshold=42, render_timeout=9.0)
        config = PipelineConfig.from_settings(settings)
        assert config.sufficiency_threshold == 42
        assert config.render_timeout == 9.0
        assert config.user_agent == settings.user_agent

    def test_is_frozen(self) -> None:
        config = PipelineConfig.from_settings(Settings(secret_key="s"))
        with pytest.raises(AttributeError):
            config.sufficiency_threshold = 1  # type: ignore[misc]
