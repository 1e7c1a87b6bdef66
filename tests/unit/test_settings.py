"""
Unit Tests for Settings
=======================

Tests for environment-driven configuration and its validation.
"""

import pytest
from pydantic import ValidationError

from iron_runner.config.settings import Settings, get_settings


class TestSettings:
    """Test settings defaults and validators."""

    def test_document_defaults(self, monkeypatch):
        """Test the default marker type and attribute names."""
        monkeypatch.delenv("IRON_BASE_URL", raising=False)
        settings = Settings()

        assert settings.script_type == "iron"
        assert settings.src_attribute == "src"
        assert settings.detached_attribute == "data-async"
        assert settings.base_url is None
        assert settings.fetch_timeout is None

    def test_only_runner_fields(self):
        """Test no unused application metadata is carried."""
        assert "app_name" not in Settings.model_fields
        assert "app_version" not in Settings.model_fields

    def test_env_prefix(self, monkeypatch):
        """Test fields are read from IRON_ variables."""
        monkeypatch.setenv("IRON_SCRIPT_TYPE", "text/ironscript")
        monkeypatch.setenv("IRON_FETCH_TIMEOUT", "2.5")

        settings = Settings()

        assert settings.script_type == "text/ironscript"
        assert settings.fetch_timeout == 2.5

    def test_log_level_upper_cased(self):
        """Test log levels are normalized."""
        assert Settings(log_level="warning").log_level == "WARNING"

    @pytest.mark.parametrize(
        "field,value",
        [
            ("environment", "staging"),
            ("log_level", "VERBOSE"),
            ("fetch_timeout", 0),
        ],
    )
    def test_invalid_values_rejected(self, field, value):
        """Test validators reject bad values."""
        with pytest.raises(ValidationError):
            Settings(**{field: value})

    def test_testing_environment_loaded(self):
        """Test the suite runs with testing settings."""
        assert get_settings().environment == "testing"
