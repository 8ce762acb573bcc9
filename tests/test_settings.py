"""Tests for settings loading."""

import pytest

from campsite.infra.settings import Settings, load_settings


class TestLoadSettings:
    def test_defaults(self):
        assert load_settings({}) == Settings()

    def test_reads_every_variable(self):
        settings = load_settings(
            {
                "DATABASE_URL": "postgres://u:p@h/db",
                "CAMPSITE_STORAGE": "Memory",
                "CAMPSITE_TIMEZONE": "America/Mexico_City",
                "CAMPSITE_LOCK_TIMEOUT_MS": "250",
                "CAMPSITE_MAX_ATTEMPTS": "5",
                "CAMPSITE_LOG_LEVEL": "debug",
            }
        )

        assert settings == Settings(
            database_url="postgres://u:p@h/db",
            storage="memory",
            timezone="America/Mexico_City",
            lock_timeout_ms=250,
            max_attempts=5,
            log_level="DEBUG",
        )

    def test_empty_database_url_is_none(self):
        assert load_settings({"DATABASE_URL": ""}).database_url is None

    @pytest.mark.parametrize(
        "env",
        [
            {"CAMPSITE_STORAGE": "redis"},
            {"CAMPSITE_TIMEZONE": "Mars/Olympus_Mons"},
            {"CAMPSITE_LOCK_TIMEOUT_MS": "soon"},
            {"CAMPSITE_MAX_ATTEMPTS": "0"},
            {"CAMPSITE_LOG_LEVEL": "LOUD"},
        ],
    )
    def test_invalid_values(self, env):
        with pytest.raises(ValueError):
            load_settings(env)
