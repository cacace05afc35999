"""Tests for configuration loading and validation."""

import pytest
from pydantic import ValidationError

from config.settings import DatabaseConfig, Settings, StorageConfig


class TestDatabaseConfig:

    def test_unconfigured_by_default(self, monkeypatch):
        monkeypatch.delenv("DB_DSN", raising=False)
        monkeypatch.delenv("DB_HOST", raising=False)
        config = DatabaseConfig(_env_file=None)
        assert config.is_configured is False
        assert config.in_memory_fallback is True

    def test_host_builds_postgres_url(self):
        config = DatabaseConfig(
            _env_file=None, host="db.internal", port=6543, name="maps", user="app", password="pw",
        )
        assert config.is_configured is True
        assert config.url == "postgresql://app:pw@db.internal:6543/maps"

    def test_dsn_takes_precedence(self):
        config = DatabaseConfig(_env_file=None, dsn="sqlite://", host="ignored")
        assert config.url == "sqlite://"

    def test_env_prefix(self, monkeypatch):
        monkeypatch.setenv("DB_DSN", "sqlite:///content.db")
        monkeypatch.setenv("DB_IN_MEMORY_FALLBACK", "false")
        config = DatabaseConfig(_env_file=None)
        assert config.url == "sqlite:///content.db"
        assert config.in_memory_fallback is False


class TestStorageConfig:

    def test_defaults(self):
        config = StorageConfig()
        assert config.strategy_bucket == "strategy-images"
        assert config.thumbnail_bucket == "map-thumbnails"
        assert config.max_upload_bytes == 5 * 1024 * 1024
        assert config.allowed_mime_prefix == "image/"
        assert set(config.buckets) == {"strategy-images", "map-thumbnails"}

    def test_public_base_url_trailing_slash_is_stripped(self):
        config = StorageConfig(public_base_url="https://cdn.example.com/storage/")
        assert config.public_base_url == "https://cdn.example.com/storage"


class TestSettings:

    def test_production_requires_database(self):
        with pytest.raises(ValidationError, match="must be configured in production"):
            Settings(
                _env_file=None,
                environment="production",
                database=DatabaseConfig(_env_file=None, dsn="", host=""),
            )

    def test_production_rejects_memory_storage(self):
        with pytest.raises(ValidationError, match="STORAGE_BACKEND=memory"):
            Settings(
                _env_file=None,
                environment="production",
                database=DatabaseConfig(_env_file=None, host="db"),
                storage=StorageConfig(backend="memory"),
            )

    def test_production_with_database_is_valid(self):
        settings = Settings(
            _env_file=None,
            environment="production",
            database=DatabaseConfig(_env_file=None, host="db"),
        )
        assert settings.database.is_configured

    def test_yaml_round_trip_excludes_secrets(self, tmp_path):
        path = tmp_path / "stratbook.yaml"
        settings = Settings(
            _env_file=None,
            database=DatabaseConfig(_env_file=None, host="db", password="secret"),
        )
        settings.to_yaml(path)

        text = path.read_text()
        assert "secret" not in text

        loaded = Settings.from_yaml(path)
        assert loaded.database.host == "db"

    def test_missing_yaml_gives_defaults(self, tmp_path):
        settings = Settings.from_yaml(tmp_path / "absent.yaml")
        assert settings.environment == "development"
