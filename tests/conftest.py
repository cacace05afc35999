"""Shared fixtures for content tests.

Provides:
- SQLite in-memory database (tables and strategy_count triggers) through DatabaseManager
- SqlContentBackend / InMemoryContentBackend fixtures, plus a ``backend``
  fixture parametrized over both
- In-memory object storage and a ContentService wired to the backend
"""

import logging
from typing import Generator

import pytest
from sqlalchemy.orm import Session

from config.settings import DatabaseConfig, StorageConfig
from stratbook.content.service import ContentService
from stratbook.data.database.connection import DatabaseManager
from stratbook.data.database.content_repository import SqlContentBackend
from stratbook.data.memory import InMemoryContentBackend
from stratbook.storage.memory import InMemoryObjectStorage

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# SQLite test database
# ---------------------------------------------------------------------------

@pytest.fixture()
def db_manager() -> Generator[DatabaseManager, None, None]:
    """Fresh in-memory SQLite database with all tables created."""
    manager = DatabaseManager(DatabaseConfig(dsn="sqlite://"))
    manager.create_tables()
    yield manager
    manager.drop_tables()
    manager.dispose()


@pytest.fixture()
def db_session(db_manager: DatabaseManager) -> Generator[Session, None, None]:
    """Provide a transactional database session for a test."""
    session = db_manager.session_factory()
    try:
        yield session
    finally:
        session.rollback()
        session.close()


@pytest.fixture()
def sql_backend(db_session: Session) -> SqlContentBackend:
    return SqlContentBackend(db_session)


@pytest.fixture()
def memory_backend() -> InMemoryContentBackend:
    return InMemoryContentBackend()


@pytest.fixture(params=["memory", "sql"])
def backend(request):
    """Run the test once against each backend implementation."""
    if request.param == "memory":
        return InMemoryContentBackend()
    return SqlContentBackend(request.getfixturevalue("db_session"))


# ---------------------------------------------------------------------------
# Storage and service
# ---------------------------------------------------------------------------

@pytest.fixture()
def storage_config() -> StorageConfig:
    return StorageConfig(backend="memory", public_base_url="http://test/storage")


@pytest.fixture()
def storage(storage_config: StorageConfig) -> InMemoryObjectStorage:
    return InMemoryObjectStorage(storage_config.public_base_url, storage_config.buckets)


@pytest.fixture()
def service(backend, storage, storage_config) -> ContentService:
    return ContentService(backend, storage, storage_config)
