"""Unified data access layer.

Single source of truth for how requests reach content:
- get_db()                — FastAPI Depends generator yielding a Session
- get_content_backend()   — FastAPI Depends yielding the configured ContentBackend
- get_object_storage()    — process-wide ObjectStorage built from settings
- get_content_service()   — FastAPI Depends returning a ContentService
- session_scope()         — Context manager for scripts / non-DI usage
- content_service_scope() — ContentService for scripts / non-DI usage

With a configured database every request runs in one session transaction.
Without one, every entity is served from the in-memory backend, or every
request fails with ``BackendNotConfiguredError`` when the fallback is off.
"""

import logging
from contextlib import contextmanager
from functools import lru_cache
from typing import Generator

from fastapi import Depends
from sqlalchemy.orm import Session

from config.settings import get_settings
from stratbook.content.service import ContentService
from stratbook.data.backend import ContentBackend
from stratbook.data.database.connection import get_db_manager
from stratbook.data.memory import get_memory_backend
from stratbook.errors import BackendNotConfiguredError
from stratbook.storage.base import ObjectStorage
from stratbook.storage.local import LocalObjectStorage
from stratbook.storage.memory import InMemoryObjectStorage

logger = logging.getLogger(__name__)


def get_db() -> Generator[Session, None, None]:
    """FastAPI dependency that yields a database session.

    Usage::

        @router.get("/items")
        async def list_items(db: Session = Depends(get_db)):
            ...
    """
    with get_db_manager().get_session() as session:
        yield session


@contextmanager
def content_backend_scope() -> Generator[ContentBackend, None, None]:
    """Yield the backend selected by configuration.

    Raises:
        BackendNotConfiguredError: No database and the in-memory fallback is off
    """
    from stratbook.data.database.content_repository import SqlContentBackend

    db_config = get_settings().database
    if db_config.is_configured:
        with get_db_manager().get_session() as session:
            yield SqlContentBackend(session)
    elif db_config.in_memory_fallback:
        yield get_memory_backend()
    else:
        raise BackendNotConfiguredError("Content access")


def get_content_backend() -> Generator[ContentBackend, None, None]:
    """FastAPI dependency returning the configured ContentBackend.

    Usage::

        @router.get("/maps")
        async def list_maps(backend: ContentBackend = Depends(get_content_backend)):
            ...
    """
    with content_backend_scope() as backend:
        yield backend


@lru_cache(maxsize=1)
def get_object_storage() -> ObjectStorage:
    """Create the singleton object storage described by ``settings.storage``."""
    config = get_settings().storage
    if config.backend == "memory":
        storage: ObjectStorage = InMemoryObjectStorage(config.public_base_url, config.buckets)
    else:
        local = LocalObjectStorage(config.root_dir, config.public_base_url, config.buckets)
        local.ensure_buckets()
        storage = local
    logger.info("Using %s object storage", storage.name)
    return storage


def get_content_service(
    backend: ContentBackend = Depends(get_content_backend),
    storage: ObjectStorage = Depends(get_object_storage),
) -> ContentService:
    """FastAPI dependency returning a ContentService bound to this request's backend."""
    return ContentService(backend, storage, get_settings().storage)


@contextmanager
def session_scope() -> Generator[Session, None, None]:
    """Context manager for non-DI database access.

    Usage::

        with session_scope() as session:
            backend = SqlContentBackend(session)
            backend.list_maps()
    """
    with get_db_manager().get_session() as session:
        yield session


@contextmanager
def content_service_scope() -> Generator[ContentService, None, None]:
    """Context manager yielding a ContentService outside FastAPI."""
    with content_backend_scope() as backend:
        yield ContentService(backend, get_object_storage(), get_settings().storage)
