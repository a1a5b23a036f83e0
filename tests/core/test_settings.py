"""Tests for jobspine.core.settings."""

import pytest
from pydantic import ValidationError

from jobspine.core.settings import JobSpineSettings, get_settings, reset_settings


class TestJobSpineSettings:
    """Test settings defaults and environment overrides."""

    def test_defaults(self, monkeypatch):
        """Defaults apply with an empty environment."""
        for key in ("MAX_WORKERS", "POLL_INTERVAL", "SYSTEM_PRINCIPAL", "VALIDATE_REGISTRY"):
            monkeypatch.delenv(f"JOBSPINE_{key}", raising=False)
        settings = JobSpineSettings(_env_file=None)
        assert settings.max_workers == 4
        assert settings.poll_interval == 5.0
        assert settings.system_principal == "system"
        assert settings.validate_registry is True
        assert settings.service_name == "jobspine"

    def test_env_prefix(self, monkeypatch):
        """JOBSPINE_* variables override defaults."""
        monkeypatch.setenv("JOBSPINE_MAX_WORKERS", "16")
        monkeypatch.setenv("JOBSPINE_VALIDATE_REGISTRY", "false")
        monkeypatch.setenv("JOBSPINE_LOG_JSON", "true")
        settings = JobSpineSettings(_env_file=None)
        assert settings.max_workers == 16
        assert settings.validate_registry is False
        assert settings.log_json is True

    def test_rejects_zero_workers(self):
        """max_workers must be at least 1."""
        with pytest.raises(ValidationError):
            JobSpineSettings(_env_file=None, max_workers=0)

    def test_rejects_non_positive_interval(self):
        """poll_interval must be positive."""
        with pytest.raises(ValidationError):
            JobSpineSettings(_env_file=None, poll_interval=0)


class TestGetSettings:
    """Test the cached accessor."""

    def test_cached(self):
        """get_settings returns the same instance until reset."""
        first = get_settings()
        assert get_settings() is first
        reset_settings()
        assert get_settings() is not first
