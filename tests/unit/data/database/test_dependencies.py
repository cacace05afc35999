"""Tests for backend selection in the data access layer."""

import pytest

from config.settings import DatabaseConfig, Settings, StorageConfig
from stratbook.data.database import dependencies
from stratbook.data.database.connection import get_db_manager, reset_db_manager
from stratbook.data.database.content_repository import SqlContentBackend
from stratbook.data.memory import InMemoryContentBackend, reset_memory_backend
from stratbook.errors import BackendNotConfiguredError


def _settings(**database) -> Settings:
    return Settings(
        _env_file=None,
        environment="development",
        database=DatabaseConfig(_env_file=None, **database),
        storage=StorageConfig(_env_file=None, backend="memory"),
    )


@pytest.fixture(autouse=True)
def _reset_singletons():
    reset_memory_backend()
    reset_db_manager()
    dependencies.get_object_storage.cache_clear()
    yield
    reset_memory_backend()
    reset_db_manager()
    dependencies.get_object_storage.cache_clear()


def _use_settings(monkeypatch, settings: Settings) -> None:
    monkeypatch.setattr(dependencies, "get_settings", lambda: settings)
    monkeypatch.setattr("stratbook.data.database.connection.get_settings", lambda: settings)


class TestContentBackendScope:

    def test_memory_fallback_when_unconfigured(self, monkeypatch):
        _use_settings(monkeypatch, _settings(dsn="", host=""))
        with dependencies.content_backend_scope() as backend:
            assert isinstance(backend, InMemoryContentBackend)
            assert {m.name for m in backend.list_maps()} == {"Desert Storm", "Urban Warfare"}

    def test_memory_fallback_persists_between_requests(self, monkeypatch):
        _use_settings(monkeypatch, _settings(dsn="", host=""))
        with dependencies.content_backend_scope() as backend:
            backend.insert_map("Canals")
        with dependencies.content_backend_scope() as backend:
            assert "Canals" in [m.name for m in backend.list_maps()]

    def test_fallback_disabled_refuses_every_operation(self, monkeypatch):
        _use_settings(monkeypatch, _settings(dsn="", host="", in_memory_fallback=False))
        with pytest.raises(BackendNotConfiguredError) as exc_info:
            with dependencies.content_backend_scope():
                pass
        assert exc_info.value.status_code == 503

    def test_configured_database_uses_sql(self, monkeypatch):
        _use_settings(monkeypatch, _settings(dsn="sqlite://"))
        get_db_manager().create_tables()
        with dependencies.content_backend_scope() as backend:
            assert isinstance(backend, SqlContentBackend)
            backend.insert_map("Desert Storm")
        with dependencies.content_backend_scope() as backend:
            assert [m.name for m in backend.list_maps()] == ["Desert Storm"]


class TestContentServiceScope:

    def test_builds_service_over_selected_backend(self, monkeypatch):
        _use_settings(monkeypatch, _settings(dsn="", host=""))
        with dependencies.content_service_scope() as service:
            assert service.backend.name == "memory"
            assert service.storage.name == "memory"
            assert len(service.list_maps()) == 2
