"""FastAPI router for map endpoints.

Provides:
- GET    /api/maps                  — list maps ordered by name
- POST   /api/maps                  — create a map
- GET    /api/maps/{id}             — get one map
- PUT    /api/maps/{id}             — update a map
- DELETE /api/maps/{id}             — delete a map with all its strategies
- GET    /api/maps/{id}/strategies  — strategies on a map, newest first
- POST   /api/maps/{id}/thumbnail   — upload the map thumbnail
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, File, UploadFile

from stratbook.api.schemas import (
    MapCreate,
    MapResponse,
    MapUpdate,
    StrategyResponse,
    map_to_response,
    strategy_to_response,
)
from stratbook.api.uploads import read_upload
from stratbook.content.service import ContentService
from stratbook.data.database.dependencies import get_content_service
from stratbook.domain import MapForm

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/maps", tags=["maps"])


@router.get("", response_model=list[MapResponse])
async def list_maps(service: ContentService = Depends(get_content_service)):
    """List all maps."""
    return [map_to_response(m) for m in service.list_maps()]


@router.post("", response_model=MapResponse, status_code=201)
async def create_map(
    data: MapCreate,
    service: ContentService = Depends(get_content_service),
):
    """Create a new map. Names are unique."""
    record = service.create_map(MapForm(
        name=data.name,
        description=data.description,
        metadata=data.metadata,
        thumbnail_url=data.thumbnail_url,
    ))
    return map_to_response(record)


@router.get("/{map_id}", response_model=MapResponse)
async def get_map(map_id: UUID, service: ContentService = Depends(get_content_service)):
    return map_to_response(service.get_map(map_id))


@router.put("/{map_id}", response_model=MapResponse)
async def update_map(
    map_id: UUID,
    data: MapUpdate,
    service: ContentService = Depends(get_content_service),
):
    """Update the fields present in the request body."""
    return map_to_response(service.update_map(map_id, **data.model_dump(exclude_unset=True)))


@router.delete("/{map_id}", status_code=204)
async def delete_map(map_id: UUID, service: ContentService = Depends(get_content_service)):
    """Delete a map; its strategies, versions and images go with it."""
    logger.debug("delete_map: map_id=%s", map_id)
    service.delete_map(map_id)


@router.get("/{map_id}/strategies", response_model=list[StrategyResponse])
async def list_map_strategies(map_id: UUID, service: ContentService = Depends(get_content_service)):
    service.get_map(map_id)
    return [strategy_to_response(d) for d in service.list_strategies(map_id)]


@router.post("/{map_id}/thumbnail", response_model=MapResponse)
async def upload_map_thumbnail(
    map_id: UUID,
    file: UploadFile = File(...),
    service: ContentService = Depends(get_content_service),
):
    """Store an image as the map thumbnail."""
    upload = await read_upload(file)
    logger.debug("upload_map_thumbnail: map_id=%s file=%s size=%d", map_id, upload.filename, upload.size)
    return map_to_response(service.upload_map_thumbnail(map_id, upload))
