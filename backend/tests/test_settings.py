"""Tests for environment-driven settings and database URL handling."""

import pytest
from pydantic import ValidationError

from signal_memory.config import Settings, get_settings
from signal_memory.storage import Database


class TestSettings:
    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        settings = Settings(_env_file=None)
        assert settings.database_url == "postgresql://localhost/stocks"
        assert settings.train.seq_len == 60
        assert settings.memory.min_samples_for_pattern == 20

    def test_nested_override(self, monkeypatch):
        monkeypatch.setenv("TRAIN__SEQ_LEN", "30")
        monkeypatch.setenv("MEMORY__MIN_SAMPLES_FOR_PATTERN", "50")
        settings = Settings(_env_file=None)
        assert settings.train.seq_len == 30
        assert settings.train.forward_days == 5
        assert settings.memory.min_samples_for_pattern == 50

    def test_database_url_from_env(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite:///tmp/stocks.db")
        assert Settings(_env_file=None).database_url == "sqlite:///tmp/stocks.db"


class TestDatabaseUrl:
    @pytest.mark.asyncio
    async def test_sqlite_uses_aiosqlite(self, tmp_path):
        db = Database(f"sqlite:///{tmp_path / 'a.db'}")
        assert db.url.startswith("sqlite+aiosqlite://")
        assert db.dialect == "sqlite"
        await db.close()

    @pytest.mark.asyncio
    async def test_postgres_uses_asyncpg(self):
        db = Database("postgresql://localhost/stocks")
        assert db.url.startswith("postgresql+asyncpg://")
        assert db.dialect == "postgresql"
        await db.close()

    @pytest.mark.asyncio
    async def test_explicit_arguments_skip_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("TRAIN__SEQ_LEN", "not-a-number")
        get_settings.cache_clear()
        try:
            with pytest.raises(ValidationError):
                get_settings()
            db = Database(f"sqlite:///{tmp_path / 'b.db'}", echo=False)
            assert db.dialect == "sqlite"
            await db.close()
        finally:
            get_settings.cache_clear()
