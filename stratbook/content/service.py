"""Content service: the operations the HTTP layer and scripts call.

Wraps a ``ContentBackend`` and an ``ObjectStorage`` and runs the versioning
and image association protocols on top of them. Joined strategy reads try
the backend's aggregated query first and rebuild the same result from
separate queries if it fails.
"""

import logging
from typing import Any, Optional, Sequence
from uuid import UUID

from config.settings import StorageConfig
from stratbook.content.images import (
    apply_description_edits,
    clean_alt_text,
    copy_images_to_version,
    upload_image_batch,
)
from stratbook.content.versioning import create_version
from stratbook.data.backend import ContentBackend
from stratbook.domain import (
    INITIAL_CHANGE_NOTES,
    UPDATE_CHANGE_NOTES,
    ImageCopyResult,
    ImageRecord,
    ImageUpload,
    MapForm,
    MapRecord,
    StrategyDetail,
    StrategyForm,
    StrategyRecord,
    StrategyUpdateForm,
    StrategyWriteResult,
    UploadBatchResult,
    VersionRecord,
)
from stratbook.errors import AggregateQueryError, NotFoundError, StorageError, ValidationError
from stratbook.storage.base import ObjectStorage, build_object_path
from stratbook.storage.validation import partition_uploads, validate_upload
from stratbook.utils.logging import get_content_logger

logger = logging.getLogger(__name__)
events = get_content_logger(__name__)

_MAP_UPDATE_FIELDS = ("name", "description", "thumbnail_url", "metadata")


def _require_text(value: Optional[str], field: str) -> str:
    text = (value or "").strip()
    if not text:
        raise ValidationError(f"{field} must not be blank", field=field)
    return text


class ContentService:
    """Maps, strategies, versions and images over one backend."""

    def __init__(
        self,
        backend: ContentBackend,
        storage: ObjectStorage,
        storage_config: Optional[StorageConfig] = None,
    ):
        """Initialize the service.

        Args:
            backend: Row-level content backend
            storage: Object storage for images and thumbnails
            storage_config: Bucket names and upload limits (defaults apply if omitted)
        """
        self.backend = backend
        self.storage = storage
        self.storage_config = storage_config or StorageConfig()

    # -------------------------------------------------------------------------
    # Maps
    # -------------------------------------------------------------------------

    def list_maps(self) -> list[MapRecord]:
        return self.backend.list_maps()

    def get_map(self, map_id: UUID) -> MapRecord:
        found = self.backend.get_map(map_id)
        if found is None:
            raise NotFoundError("Map", map_id)
        return found

    def create_map(self, form: MapForm) -> MapRecord:
        name = _require_text(form.name, "name")
        return self.backend.insert_map(
            name=name,
            description=form.description,
            metadata=form.metadata,
            thumbnail_url=form.thumbnail_url,
        )

    def update_map(self, map_id: UUID, **fields: Any) -> MapRecord:
        changes = {k: v for k, v in fields.items() if k in _MAP_UPDATE_FIELDS}
        if not changes:
            raise ValidationError("No map fields to update")
        if "name" in changes:
            changes["name"] = _require_text(changes["name"], "name")
        if "metadata" in changes and changes["metadata"] is None:
            changes["metadata"] = {}
        updated = self.backend.update_map(map_id, **changes)
        if updated is None:
            raise NotFoundError("Map", map_id)
        logger.info("Updated map id=%s fields=%s", map_id, sorted(changes))
        return updated

    def delete_map(self, map_id: UUID) -> None:
        if not self.backend.delete_map(map_id):
            raise NotFoundError("Map", map_id)

    def upload_map_thumbnail(self, map_id: UUID, upload: ImageUpload) -> MapRecord:
        """Store ``upload`` as the map's thumbnail and point the map at it.

        The previous thumbnail object is deleted when it was stored by this
        service for the same map.
        """
        previous = self.get_map(map_id)
        reason = validate_upload(
            upload,
            self.storage_config.max_upload_bytes,
            self.storage_config.allowed_mime_prefix,
        )
        if reason is not None:
            events.upload_rejected(None, upload.filename, reason)
            raise ValidationError(reason, field="file")

        bucket = self.storage_config.thumbnail_bucket
        folder = f"maps/{map_id}"
        result = self.storage.upload(
            upload.data,
            build_object_path(upload.filename, folder),
            bucket,
            content_type=upload.content_type,
        )
        updated = self.update_map(map_id, thumbnail_url=result.url)
        self._discard_thumbnail(previous.thumbnail_url, bucket, folder)
        return updated

    def _discard_thumbnail(self, url: Optional[str], bucket: str, folder: str) -> None:
        # Only objects this service stored for the map; external URLs stay untouched
        path = self.storage.path_from_url(url, bucket)
        if path is None or not path.startswith(f"{folder}/"):
            return
        try:
            self.storage.delete(path, bucket)
        except StorageError as e:
            logger.warning("Failed to delete replaced thumbnail %s: %s", path, e)
            return
        logger.info("Deleted replaced thumbnail %s/%s", bucket, path)

    # -------------------------------------------------------------------------
    # Strategy reads
    # -------------------------------------------------------------------------

    def _assemble_detail(self, row: StrategyRecord) -> StrategyDetail:
        """Build a detail from separate queries (the aggregate fallback)."""
        version = None
        if row.current_version_id is not None:
            version = self.backend.get_version(row.current_version_id)
        return StrategyDetail(
            strategy=row,
            map=self.backend.get_map(row.map_id),
            images=self.backend.list_images(row.id),
            current_version=version,
        )

    def _load_detail(self, strategy_id: UUID) -> StrategyDetail:
        try:
            detail = self.backend.fetch_strategy_aggregate(strategy_id)
        except AggregateQueryError as e:
            events.aggregate_fallback(f"get_strategy {strategy_id}", e.message)
            row = self.backend.get_strategy_row(strategy_id)
            detail = self._assemble_detail(row) if row is not None else None
        if detail is None:
            raise NotFoundError("Strategy", strategy_id)
        return detail

    def list_strategies(self, map_id: Optional[UUID] = None) -> list[StrategyDetail]:
        """Strategies with map, images and current version, newest first."""
        try:
            return self.backend.fetch_strategies_aggregate(map_id)
        except AggregateQueryError as e:
            events.aggregate_fallback("list_strategies", e.message)
            return [self._assemble_detail(row) for row in self.backend.list_strategy_rows(map_id)]

    def get_strategy(self, strategy_id: UUID) -> StrategyDetail:
        return self._load_detail(strategy_id)

    def search_strategies(self, query: str, map_id: Optional[UUID] = None) -> list[StrategyDetail]:
        """Case-insensitive substring search over titles and descriptions.

        A blank query lists every strategy (of ``map_id`` when given).
        """
        needle = (query or "").strip()
        if not needle:
            return self.list_strategies(map_id)
        rows = self.backend.search_strategy_rows(needle, map_id)
        return [self._assemble_detail(row) for row in rows]

    # -------------------------------------------------------------------------
    # Strategy writes
    # -------------------------------------------------------------------------

    def create_strategy(
        self,
        form: StrategyForm,
        uploads: Sequence[ImageUpload] = (),
    ) -> StrategyWriteResult:
        """Create a strategy with version 1 and attach ``uploads`` to it."""
        title = _require_text(form.title, "title")
        description = form.description or ""
        self.get_map(form.map_id)

        row = self.backend.insert_strategy(form.map_id, title=title, description=description)
        try:
            new = create_version(
                self.backend,
                row.id,
                title=title,
                description=description,
                change_notes=form.change_notes or INITIAL_CHANGE_NOTES,
            )
        except Exception:
            logger.error("Rolling back strategy %s: initial version failed", row.id)
            self.backend.delete_strategy(row.id)
            raise
        logger.info("Created strategy id=%s map_id=%s title='%s'", row.id, form.map_id, title)

        batch = self.upload_images(row.id, uploads, version_id=new.version.id) if uploads else UploadBatchResult()
        return StrategyWriteResult(
            detail=self._load_detail(row.id),
            version=new.version,
            uploads=batch,
        )

    def update_strategy(
        self,
        strategy_id: UUID,
        form: StrategyUpdateForm,
        uploads: Sequence[ImageUpload] = (),
    ) -> StrategyWriteResult:
        """Record an edit as a new version.

        Images of the previous version are copied forward first, then the
        alt-text edits are applied through the copy mapping, then new uploads
        are attached to the new version.
        """
        title = _require_text(form.title, "title")
        new = create_version(
            self.backend,
            strategy_id,
            title=title,
            description=form.description or "",
            change_notes=form.change_notes or UPDATE_CHANGE_NOTES,
        )
        copied = copy_images_to_version(
            self.backend, strategy_id, new.previous_version_id, new.version.id,
        )
        edited = apply_description_edits(
            self.backend, strategy_id, form.image_descriptions, copied,
        )
        batch = (
            self.upload_images(strategy_id, uploads, version_id=new.version.id)
            if uploads else UploadBatchResult()
        )
        logger.info(
            "Updated strategy id=%s to version %d", strategy_id, new.version.version_number,
        )
        return StrategyWriteResult(
            detail=self._load_detail(strategy_id),
            version=new.version,
            uploads=batch,
            copied=copied,
            edited=edited,
        )

    def delete_strategy(self, strategy_id: UUID) -> None:
        if not self.backend.delete_strategy(strategy_id):
            raise NotFoundError("Strategy", strategy_id)

    # -------------------------------------------------------------------------
    # Versions
    # -------------------------------------------------------------------------

    def _require_strategy(self, strategy_id: UUID) -> StrategyRecord:
        row = self.backend.get_strategy_row(strategy_id)
        if row is None:
            raise NotFoundError("Strategy", strategy_id)
        return row

    def list_versions(self, strategy_id: UUID) -> list[VersionRecord]:
        """All versions of a strategy, newest first."""
        self._require_strategy(strategy_id)
        return self.backend.list_versions(strategy_id)

    def get_version(self, strategy_id: UUID, version_id: UUID) -> VersionRecord:
        version = self.backend.get_version(version_id)
        if version is None or version.strategy_id != strategy_id:
            raise NotFoundError("Version", version_id)
        return version

    def list_version_images(self, strategy_id: UUID, version_id: UUID) -> list[ImageRecord]:
        self.get_version(strategy_id, version_id)
        return self.backend.list_version_images(strategy_id, version_id)

    # -------------------------------------------------------------------------
    # Images
    # -------------------------------------------------------------------------

    def upload_images(
        self,
        strategy_id: UUID,
        uploads: Sequence[ImageUpload],
        version_id: Optional[UUID] = None,
    ) -> UploadBatchResult:
        """Validate and store ``uploads`` for a strategy.

        Without ``version_id`` the images attach to the strategy's current
        version. Rejected files are reported and do not stop the batch; a
        storage failure does (``ImageUploadError``).
        """
        row = self._require_strategy(strategy_id)
        if version_id is None:
            version_id = row.current_version_id
        else:
            self.get_version(strategy_id, version_id)

        accepted, rejected = partition_uploads(
            uploads,
            self.storage_config.max_upload_bytes,
            self.storage_config.allowed_mime_prefix,
        )
        for item in rejected:
            events.upload_rejected(strategy_id, item.filename, item.reason)

        stored = upload_image_batch(
            self.backend,
            self.storage,
            strategy_id,
            accepted,
            self.storage_config.strategy_bucket,
            version_id=version_id,
        )
        return UploadBatchResult(stored=stored, rejected=rejected)

    def copy_images_to_version(
        self,
        strategy_id: UUID,
        from_version_id: Optional[UUID],
        to_version_id: UUID,
    ) -> ImageCopyResult:
        self._require_strategy(strategy_id)
        self.get_version(strategy_id, to_version_id)
        return copy_images_to_version(self.backend, strategy_id, from_version_id, to_version_id)

    def update_image_description(self, image_id: UUID, alt_text: Optional[str]) -> ImageRecord:
        updated = self.backend.update_image(image_id, alt_text=clean_alt_text(alt_text))
        if updated is None:
            raise NotFoundError("Image", image_id)
        return updated

    def delete_image(self, image_id: UUID) -> None:
        """Remove the image row. The stored object may be shared by copies and stays."""
        if not self.backend.delete_image(image_id):
            raise NotFoundError("Image", image_id)
