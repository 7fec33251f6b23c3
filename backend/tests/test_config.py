"""
Unit tests for environment-driven settings
"""
from shopcore.config import load_settings


class TestSettings:

    def test_defaults(self, monkeypatch):
        for name in ("DATABASE_URL", "SQL_ECHO", "LOG_LEVEL", "SERVICE_NAME"):
            monkeypatch.delenv(name, raising=False)

        settings = load_settings()

        # Driver named explicitly so the declared psycopg2 dependency is used
        assert settings.database_url.startswith("postgresql+psycopg2://")
        assert settings.sql_echo is False
        assert settings.log_level == "INFO"
        assert settings.service_name == "shopcore"

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite:///shop.db")
        monkeypatch.setenv("SQL_ECHO", "true")
        monkeypatch.setenv("SERVICE_NAME", "orders")

        settings = load_settings()

        assert settings.database_url == "sqlite:///shop.db"
        assert settings.sql_echo is True
        assert settings.service_name == "orders"
