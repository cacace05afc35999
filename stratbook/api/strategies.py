"""FastAPI router for strategy and version endpoints.

Provides:
- GET    /api/strategies                           — list or search strategies
- POST   /api/strategies                           — create a strategy (version 1)
- GET    /api/strategies/{id}                      — strategy with map, images, current version
- PUT    /api/strategies/{id}                      — edit a strategy (new version)
- DELETE /api/strategies/{id}                      — delete a strategy
- GET    /api/strategies/{id}/versions             — version history, newest first
- GET    /api/strategies/{id}/versions/{version_id} — one version with its images
"""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query

from stratbook.api.schemas import (
    StrategyCreate,
    StrategyResponse,
    StrategyUpdate,
    VersionDetailResponse,
    VersionResponse,
    image_to_response,
    strategy_to_response,
    version_to_response,
)
from stratbook.content.service import ContentService
from stratbook.data.database.dependencies import get_content_service
from stratbook.domain import StrategyForm, StrategyUpdateForm

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/strategies", tags=["strategies"])


@router.get("", response_model=list[StrategyResponse])
async def list_strategies(
    map_id: Optional[UUID] = Query(default=None, description="Restrict to one map"),
    q: Optional[str] = Query(default=None, description="Case-insensitive title/description search"),
    service: ContentService = Depends(get_content_service),
):
    """List strategies newest first, optionally filtered by map and search text."""
    if q:
        details = service.search_strategies(q, map_id=map_id)
    else:
        details = service.list_strategies(map_id)
    return [strategy_to_response(d) for d in details]


@router.post("", response_model=StrategyResponse, status_code=201)
async def create_strategy(
    data: StrategyCreate,
    service: ContentService = Depends(get_content_service),
):
    """Create a strategy together with its first version."""
    result = service.create_strategy(StrategyForm(
        map_id=data.map_id,
        title=data.title,
        description=data.description,
        change_notes=data.change_notes,
    ))
    return strategy_to_response(result.detail)


@router.get("/{strategy_id}", response_model=StrategyResponse)
async def get_strategy(strategy_id: UUID, service: ContentService = Depends(get_content_service)):
    return strategy_to_response(service.get_strategy(strategy_id))


@router.put("/{strategy_id}", response_model=StrategyResponse)
async def update_strategy(
    strategy_id: UUID,
    data: StrategyUpdate,
    service: ContentService = Depends(get_content_service),
):
    """Record an edit as a new version; images of the previous version carry over."""
    logger.debug(
        "update_strategy: strategy_id=%s image_edits=%d", strategy_id, len(data.image_descriptions),
    )
    result = service.update_strategy(strategy_id, StrategyUpdateForm(
        title=data.title,
        description=data.description,
        change_notes=data.change_notes,
        image_descriptions=dict(data.image_descriptions),
    ))
    return strategy_to_response(result.detail)


@router.delete("/{strategy_id}", status_code=204)
async def delete_strategy(strategy_id: UUID, service: ContentService = Depends(get_content_service)):
    """Delete a strategy with its versions and images."""
    logger.debug("delete_strategy: strategy_id=%s", strategy_id)
    service.delete_strategy(strategy_id)


@router.get("/{strategy_id}/versions", response_model=list[VersionResponse])
async def list_versions(strategy_id: UUID, service: ContentService = Depends(get_content_service)):
    return [version_to_response(v) for v in service.list_versions(strategy_id)]


@router.get("/{strategy_id}/versions/{version_id}", response_model=VersionDetailResponse)
async def get_version(
    strategy_id: UUID,
    version_id: UUID,
    service: ContentService = Depends(get_content_service),
):
    """A single version with the images pinned to it."""
    version = service.get_version(strategy_id, version_id)
    images = service.list_version_images(strategy_id, version_id)
    return VersionDetailResponse(
        **version_to_response(version).model_dump(),
        images=[image_to_response(img) for img in images],
    )
