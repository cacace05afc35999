"""Domain records for stratbook.

Defines the data contracts shared by every backend and the service layer:
- MapRecord, StrategyRecord, VersionRecord, ImageRecord: one row each
- StrategyDetail: a strategy joined with its map, images and current version
- Form types for create/update requests
- Upload and copy results for the image association protocol
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import UUID

DEFAULT_STRATEGY_BUCKET = "strategy-images"
DEFAULT_THUMBNAIL_BUCKET = "map-thumbnails"

INITIAL_CHANGE_NOTES = "Initial version"
UPDATE_CHANGE_NOTES = "Updated strategy"


def utc_now() -> datetime:
    """Timezone-aware current time used for all created/updated stamps."""
    return datetime.now(timezone.utc)


@dataclass
class MapRecord:
    """A game map that strategies are organised under.

    ``strategy_count`` is denormalized and maintained by the backend
    whenever strategies are inserted, deleted or moved between maps.
    """

    id: UUID
    name: str
    description: Optional[str] = None
    thumbnail_url: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)
    strategy_count: int = 0
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)


@dataclass
class StrategyRecord:
    """A strategy row.

    ``title`` and ``description`` are legacy fallback fields; the
    authoritative content lives in the version referenced by
    ``current_version_id``.
    """

    id: UUID
    map_id: UUID
    current_version_id: Optional[UUID] = None
    title: Optional[str] = None
    description: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)
    updated_at: datetime = field(default_factory=utc_now)


@dataclass
class VersionRecord:
    """An immutable snapshot of a strategy's content."""

    id: UUID
    strategy_id: UUID
    version_number: int
    title: str
    description: str
    change_notes: Optional[str] = None
    created_at: datetime = field(default_factory=utc_now)


@dataclass
class ImageRecord:
    """An image attached to a strategy, optionally pinned to one version.

    A null ``version_id`` marks a legacy/unversioned image.
    """

    id: UUID
    storage_path: str
    url: str
    strategy_id: Optional[UUID] = None
    version_id: Optional[UUID] = None
    bucket_name: str = DEFAULT_STRATEGY_BUCKET
    alt_text: Optional[str] = None
    position_in_content: int = 0
    created_at: datetime = field(default_factory=utc_now)


@dataclass
class StrategyDetail:
    """A strategy together with its map, images and current version."""

    strategy: StrategyRecord
    map: Optional[MapRecord] = None
    images: list[ImageRecord] = field(default_factory=list)
    current_version: Optional[VersionRecord] = None

    @property
    def id(self) -> UUID:
        return self.strategy.id

    @property
    def map_id(self) -> UUID:
        return self.strategy.map_id

    @property
    def current_version_id(self) -> Optional[UUID]:
        return self.strategy.current_version_id

    @property
    def title(self) -> str:
        """Displayed title: current version first, then the legacy field."""
        if self.current_version is not None and self.current_version.title:
            return self.current_version.title
        return self.strategy.title or ""

    @property
    def description(self) -> str:
        """Displayed description: current version first, then the legacy field."""
        if self.current_version is not None and self.current_version.description:
            return self.current_version.description
        return self.strategy.description or ""

    def images_for_version(self, version_id: Optional[UUID]) -> list[ImageRecord]:
        """Images pinned to ``version_id`` (``None`` selects unversioned images)."""
        return [img for img in self.images if img.version_id == version_id]


# -----------------------------------------------------------------------------
# Forms
# -----------------------------------------------------------------------------

@dataclass
class MapForm:
    """Fields accepted when creating a map."""

    name: str
    description: Optional[str] = None
    metadata: dict[str, Any] = field(default_factory=dict)
    thumbnail_url: Optional[str] = None


@dataclass
class StrategyForm:
    """Fields accepted when creating a strategy (and its first version)."""

    map_id: UUID
    title: str
    description: str
    change_notes: Optional[str] = None


@dataclass
class StrategyUpdateForm:
    """Fields accepted when editing a strategy.

    ``image_descriptions`` maps image ids of the version being edited to
    their new alt text.
    """

    title: str
    description: str
    change_notes: Optional[str] = None
    image_descriptions: dict[UUID, str] = field(default_factory=dict)


# -----------------------------------------------------------------------------
# Image association results
# -----------------------------------------------------------------------------

@dataclass
class ImageUpload:
    """A file received from a client, not yet stored."""

    filename: str
    content_type: str
    data: bytes
    description: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.data)

    @property
    def extension(self) -> str:
        if "." not in self.filename:
            return ""
        return self.filename.rsplit(".", 1)[-1].lower()


@dataclass
class RejectedUpload:
    """A file refused by client-side style checks before upload."""

    filename: str
    reason: str


@dataclass
class UploadBatchResult:
    """Outcome of a sequential upload batch."""

    stored: list[ImageRecord] = field(default_factory=list)
    rejected: list[RejectedUpload] = field(default_factory=list)


@dataclass
class ImageCopyResult:
    """Outcome of copying images forward onto a new version.

    ``mapping`` pairs every source image id with the id of its copy so that
    later edits can follow an image onto the new version without guessing.
    """

    copied: list[ImageRecord] = field(default_factory=list)
    mapping: dict[UUID, UUID] = field(default_factory=dict)
    failed: list[UUID] = field(default_factory=list)

    def copy_of(self, image_id: UUID) -> Optional[UUID]:
        return self.mapping.get(image_id)


@dataclass
class StrategyWriteResult:
    """Everything a strategy create or update produced.

    ``copied`` is ``None`` on creation, where there is nothing to carry
    forward.
    """

    detail: StrategyDetail
    version: VersionRecord
    uploads: UploadBatchResult = field(default_factory=UploadBatchResult)
    copied: Optional[ImageCopyResult] = None
    edited: list[ImageRecord] = field(default_factory=list)
