"""Tests for environment-driven settings."""
from app.core.config import Settings


def test_settings_read_environment(monkeypatch):
    monkeypatch.setenv("DAILY_RECORD_RETENTION", "7")
    monkeypatch.setenv("STORAGE_BACKEND", "memory")
    monkeypatch.setenv("TOLERATE_WRITE_FAILURE", "true")

    settings = Settings(_env_file=None)

    assert settings.DAILY_RECORD_RETENTION == 7
    assert settings.STORAGE_BACKEND == "memory"
    assert settings.TOLERATE_WRITE_FAILURE is True


def test_settings_names_are_case_sensitive(monkeypatch):
    monkeypatch.delenv("TIMEZONE", raising=False)
    monkeypatch.setenv("timezone", "Europe/Paris")

    assert Settings(_env_file=None).TIMEZONE == "UTC"


def test_settings_env_file_configuration():
    assert Settings.model_config["env_file"] == ".env"
    assert Settings.model_config["case_sensitive"] is True
