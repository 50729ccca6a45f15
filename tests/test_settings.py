"""Tests for environment-driven settings."""

from pathlib import Path

import pytest
from pydantic import ValidationError

from ledger.config import AppSettings, StorageSettings, get_settings, validate_all_settings


class TestDefaults:

    def test_app_defaults(self, monkeypatch):
        monkeypatch.delenv("LEDGER_CHART_HEIGHT", raising=False)
        settings = AppSettings(_env_file=None)
        assert settings.chart_height == 150.0
        assert settings.export_filename == "transactions.csv"
        assert settings.log_level == "INFO"

    def test_storage_data_dir_from_env(self, tmp_path):
        """Test the isolated data directory set by conftest is picked up."""
        assert get_settings().storage.data_dir == tmp_path / "data"
        assert get_settings().storage.key_prefix == "transactions_"


class TestOverrides:

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("LEDGER_CHART_HEIGHT", "240")
        monkeypatch.setenv("LEDGER_LOG_LEVEL", "debug")
        settings = AppSettings(_env_file=None)
        assert settings.chart_height == 240.0
        assert settings.log_level == "DEBUG"

    def test_unknown_log_level(self):
        with pytest.raises(ValidationError):
            AppSettings(_env_file=None, log_level="LOUD")

    def test_key_prefix_rejects_path_separators(self):
        with pytest.raises(ValidationError):
            StorageSettings(key_prefix="../escape/")

    def test_explicit_data_dir(self):
        assert StorageSettings(data_dir="/srv/ledger").data_dir == Path("/srv/ledger")


class TestValidateAllSettings:

    def test_all_valid(self):
        assert validate_all_settings() == {"storage": True, "app": True}

    def test_reports_failure(self, monkeypatch):
        monkeypatch.setenv("LEDGER_CHART_HEIGHT", "-1")
        results = validate_all_settings()
        assert results["storage"] is True
        assert results["app"] is False
        assert "chart_height" in results["app_error"]
