"""Shared fixtures for API endpoint tests.

Provides:
- FastAPI TestClient over the content routers with the service dependency
  overridden; runs once per backend through the ``backend`` fixture
- Helpers for creating maps and strategies through the API
"""

import logging

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from stratbook.api.errors import register_exception_handlers
from stratbook.api.images import router as images_router
from stratbook.api.maps import router as maps_router
from stratbook.api.strategies import router as strategies_router
from stratbook.content.service import ContentService
from stratbook.data.database.dependencies import get_content_service

logger = logging.getLogger(__name__)

PNG = ("diagram.png", b"\x89PNG\r\n\x1a\n" + b"\x00" * 32, "image/png")


@pytest.fixture()
def client(backend, storage, storage_config) -> TestClient:
    """Create a FastAPI TestClient with the content service overridden.

    Every request shares the test's backend, so rows written by one request
    are visible to the next.
    """
    app = FastAPI()
    register_exception_handlers(app)
    app.include_router(maps_router)
    app.include_router(strategies_router)
    app.include_router(images_router)

    def override_get_content_service():
        yield ContentService(backend, storage, storage_config)

    app.dependency_overrides[get_content_service] = override_get_content_service

    yield TestClient(app)


def create_map(client: TestClient, name: str = "Desert Storm", **fields) -> dict:
    response = client.post("/api/maps", json={"name": name, **fields})
    assert response.status_code == 201, response.text
    return response.json()


def create_strategy(client: TestClient, map_id: str, title: str = "Rush A", **fields) -> dict:
    body = {"map_id": map_id, "title": title, "description": "Fast push", **fields}
    response = client.post("/api/strategies", json=body)
    assert response.status_code == 201, response.text
    return response.json()
