"""Unit tests for ledger settings."""

import pytest

from messledger.config import LedgerSettings, get_settings, reset_settings

pytestmark = pytest.mark.unit


class TestLedgerSettings:
    def test_defaults(self):
        settings = get_settings()

        assert settings.database_url == "sqlite+aiosqlite:///./messledger.db"
        assert settings.max_batch_size == 500
        assert settings.allow_future_dated_charges is False
        assert settings.currency == "LKR"
        assert settings.log_file == "logs/server.log"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///./other.db")
        monkeypatch.setenv("LEDGER_MAX_BATCH_SIZE", "25")
        monkeypatch.setenv("LEDGER_ALLOW_FUTURE_DATED_CHARGES", "true")
        reset_settings()

        settings = get_settings()

        assert settings.database_url == "sqlite+aiosqlite:///./other.db"
        assert settings.max_batch_size == 25
        assert settings.allow_future_dated_charges is True

    def test_env_file(self, tmp_path):
        """tmp_path is the working directory (see conftest)."""
        (tmp_path / ".env").write_text("LEDGER_CURRENCY=USD\nLOG_LEVEL=DEBUG\n")
        reset_settings()

        settings = get_settings()

        assert settings.currency == "USD"
        assert settings.log_level == "DEBUG"

    def test_settings_are_cached_until_reset(self, monkeypatch):
        first = get_settings()
        monkeypatch.setenv("LEDGER_MAX_BATCH_SIZE", "7")

        assert get_settings() is first

        reset_settings()
        assert get_settings().max_batch_size == 7

    def test_batch_size_must_be_positive(self, monkeypatch):
        monkeypatch.setenv("LEDGER_MAX_BATCH_SIZE", "0")
        reset_settings()

        with pytest.raises(ValueError, match="LEDGER_MAX_BATCH_SIZE"):
            get_settings()

    def test_constructed_by_field_name(self):
        settings = LedgerSettings(max_batch_size=3)

        assert settings.max_batch_size == 3
