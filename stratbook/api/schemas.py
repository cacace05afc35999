"""Request / response models shared by the content routers."""

from datetime import datetime
from typing import Any, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from stratbook.domain import (
    ImageRecord,
    MapRecord,
    RejectedUpload,
    StrategyDetail,
    UploadBatchResult,
    VersionRecord,
)


# -----------------------------------------------------------------------------
# Maps
# -----------------------------------------------------------------------------

class MapResponse(BaseModel):
    """A game map."""
    id: UUID
    name: str
    description: str | None
    thumbnail_url: str | None
    metadata: dict[str, Any]
    strategy_count: int
    created_at: datetime
    updated_at: datetime


class MapSummary(BaseModel):
    """Map fields embedded in a strategy."""
    id: UUID
    name: str
    thumbnail_url: str | None


class MapCreate(BaseModel):
    """Create a new map."""
    name: str = Field(..., max_length=255)
    description: Optional[str] = None
    metadata: dict[str, Any] = {}
    thumbnail_url: Optional[str] = None


class MapUpdate(BaseModel):
    """Update an existing map. Only fields that are sent are changed."""
    name: Optional[str] = Field(default=None, max_length=255)
    description: Optional[str] = None
    metadata: Optional[dict[str, Any]] = None
    thumbnail_url: Optional[str] = None


# -----------------------------------------------------------------------------
# Versions and images
# -----------------------------------------------------------------------------

class ImageResponse(BaseModel):
    """An image attached to a strategy."""
    id: UUID
    strategy_id: UUID | None
    version_id: UUID | None
    storage_path: str
    bucket_name: str
    url: str
    alt_text: str | None
    position_in_content: int
    created_at: datetime


class VersionResponse(BaseModel):
    """An immutable strategy version."""
    id: UUID
    strategy_id: UUID
    version_number: int
    title: str
    description: str
    change_notes: str | None
    created_at: datetime


class VersionDetailResponse(VersionResponse):
    """A version with the images pinned to it."""
    images: list[ImageResponse]


class RejectedFileResponse(BaseModel):
    filename: str
    reason: str


class UploadResponse(BaseModel):
    """Outcome of an upload batch."""
    stored: list[ImageResponse]
    rejected: list[RejectedFileResponse]


class ImageUpdate(BaseModel):
    """Change an image's alt text. Blank clears it; text past 250 characters is cut."""
    alt_text: Optional[str] = None


# -----------------------------------------------------------------------------
# Strategies
# -----------------------------------------------------------------------------

class StrategyResponse(BaseModel):
    """A strategy with its map, current version and images."""
    id: UUID
    map_id: UUID
    current_version_id: UUID | None
    title: str
    description: str
    created_at: datetime
    updated_at: datetime
    map: MapSummary | None
    current_version: VersionResponse | None
    images: list[ImageResponse]


class StrategyCreate(BaseModel):
    """Create a strategy together with its first version."""
    map_id: UUID
    title: str = Field(..., max_length=255)
    description: str = ""
    change_notes: Optional[str] = None


class StrategyUpdate(BaseModel):
    """Edit a strategy; every edit becomes a new version.

    ``image_descriptions`` maps image ids of the current version to new alt text.
    """
    title: str = Field(..., max_length=255)
    description: str = ""
    change_notes: Optional[str] = None
    image_descriptions: dict[UUID, str] = {}


# -----------------------------------------------------------------------------
# Converters
# -----------------------------------------------------------------------------

def map_to_response(record: MapRecord) -> MapResponse:
    return MapResponse(
        id=record.id,
        name=record.name,
        description=record.description,
        thumbnail_url=record.thumbnail_url,
        metadata=record.metadata,
        strategy_count=record.strategy_count,
        created_at=record.created_at,
        updated_at=record.updated_at,
    )


def image_to_response(record: ImageRecord) -> ImageResponse:
    return ImageResponse(
        id=record.id,
        strategy_id=record.strategy_id,
        version_id=record.version_id,
        storage_path=record.storage_path,
        bucket_name=record.bucket_name,
        url=record.url,
        alt_text=record.alt_text,
        position_in_content=record.position_in_content,
        created_at=record.created_at,
    )


def version_to_response(record: VersionRecord) -> VersionResponse:
    return VersionResponse(
        id=record.id,
        strategy_id=record.strategy_id,
        version_number=record.version_number,
        title=record.title,
        description=record.description,
        change_notes=record.change_notes,
        created_at=record.created_at,
    )


def strategy_to_response(detail: StrategyDetail) -> StrategyResponse:
    map_summary = None
    if detail.map is not None:
        map_summary = MapSummary(
            id=detail.map.id,
            name=detail.map.name,
            thumbnail_url=detail.map.thumbnail_url,
        )
    return StrategyResponse(
        id=detail.id,
        map_id=detail.map_id,
        current_version_id=detail.current_version_id,
        title=detail.title,
        description=detail.description,
        created_at=detail.strategy.created_at,
        updated_at=detail.strategy.updated_at,
        map=map_summary,
        current_version=version_to_response(detail.current_version) if detail.current_version else None,
        images=[image_to_response(img) for img in detail.images],
    )


def rejected_to_response(record: RejectedUpload) -> RejectedFileResponse:
    return RejectedFileResponse(filename=record.filename, reason=record.reason)


def upload_to_response(result: UploadBatchResult) -> UploadResponse:
    return UploadResponse(
        stored=[image_to_response(img) for img in result.stored],
        rejected=[rejected_to_response(r) for r in result.rejected],
    )
