"""Tests for environment-driven configuration."""

import pytest
from pydantic import ValidationError

from spend_tracker.config import AppSettings, RabbitMQSettings, validate_all_settings


class TestSettings:
    """Tests for the settings sections."""

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("STORAGE_BACKEND", raising=False)
        monkeypatch.delenv("APPROACHING_THRESHOLD_PERCENT", raising=False)

        settings = AppSettings(_env_file=None)

        assert settings.storage_backend == "sql"
        assert settings.approaching_threshold_percent == 80
        assert settings.notifications_enabled is True

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("RABBITMQ_QUEUE_NAME", "alerts")
        monkeypatch.setenv("RABBITMQ_DURABLE", "false")

        settings = RabbitMQSettings()

        assert settings.queue_name == "alerts"
        assert settings.durable is False

    def test_rejects_unknown_backend(self, monkeypatch):
        monkeypatch.setenv("STORAGE_BACKEND", "postgres")
        with pytest.raises(ValidationError):
            AppSettings()

    def test_rejects_percent_out_of_range(self):
        with pytest.raises(ValidationError):
            AppSettings(approaching_threshold_percent=101)

    def test_validate_all_reports_missing_sections(self, monkeypatch):
        monkeypatch.delenv("GOOGLE_SHEETS_CREDENTIALS_PATH", raising=False)
        monkeypatch.delenv("GOOGLE_SHEETS_SPREADSHEET_ID", raising=False)

        results = validate_all_settings()

        assert results["database"] is True
        assert results["rabbitmq"] is True
        assert results["google_sheets"] is False
        assert "google_sheets_error" in results
