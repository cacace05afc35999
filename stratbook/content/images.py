"""Image association protocol.

- copy-forward: when a strategy gets a new version, the images of the
  previous version (or the unversioned images) are duplicated onto it
- upload batch: files are stored one at a time and recorded against a version
- description edits: alt text changes follow an image onto its copy
"""

import logging
from typing import Mapping, Optional, Sequence
from uuid import UUID

from stratbook.data.backend import ContentBackend
from stratbook.domain import ImageCopyResult, ImageRecord, ImageUpload
from stratbook.errors import ImageUploadError
from stratbook.storage.base import ObjectStorage, build_object_path
from stratbook.utils.logging import get_content_logger

logger = logging.getLogger(__name__)
events = get_content_logger(__name__)

# Under the 255-character alt_text column
MAX_ALT_TEXT_LENGTH = 250


def default_alt_text(strategy_id: UUID, position: int) -> str:
    return f"Strategy diagram {position + 1} for {strategy_id}"


def clean_alt_text(text: Optional[str]) -> Optional[str]:
    """Strip ``text``, cut it to ``MAX_ALT_TEXT_LENGTH`` and map blank to None."""
    cleaned = (text or "").strip()[:MAX_ALT_TEXT_LENGTH].rstrip()
    return cleaned or None


def strategy_image_folder(strategy_id: UUID) -> str:
    return f"strategies/{strategy_id}"


def copy_images_to_version(
    backend: ContentBackend,
    strategy_id: UUID,
    from_version_id: Optional[UUID],
    to_version_id: UUID,
) -> ImageCopyResult:
    """Duplicate the images of ``from_version_id`` onto ``to_version_id``.

    With ``from_version_id=None`` the unversioned images are copied instead.
    Copies keep storage path, bucket, URL, alt text and position. A copy
    that fails is logged and skipped; the rest still go through.
    """
    result = ImageCopyResult()
    sources = backend.list_version_images(strategy_id, from_version_id)
    for source in sources:
        try:
            copy = backend.insert_image(
                strategy_id=strategy_id,
                storage_path=source.storage_path,
                bucket_name=source.bucket_name,
                url=source.url,
                alt_text=source.alt_text,
                position_in_content=source.position_in_content,
                version_id=to_version_id,
            )
        except Exception as e:
            logger.warning("Failed to copy image %s to version %s: %s", source.id, to_version_id, e)
            result.failed.append(source.id)
            continue
        result.copied.append(copy)
        result.mapping[source.id] = copy.id

    if sources:
        events.images_copied(
            strategy_id, from_version_id, to_version_id,
            copied=len(result.copied), failed=len(result.failed),
        )
    return result


def apply_description_edits(
    backend: ContentBackend,
    strategy_id: UUID,
    edits: Mapping[UUID, str],
    copy_result: Optional[ImageCopyResult] = None,
) -> list[ImageRecord]:
    """Apply ``{image_id: alt_text}`` edits and return the rows that changed.

    An image that was copied forward is edited on its copy, and a blank text
    for it is ignored. An image without a copy is edited in place. Ids that
    do not name an image of ``strategy_id`` are skipped.
    """
    updated: list[ImageRecord] = []
    for image_id, text in edits.items():
        new_text = clean_alt_text(text) or ""
        target_id = copy_result.copy_of(image_id) if copy_result else None
        if target_id is not None and not new_text:
            continue
        target_id = target_id or image_id

        image = backend.get_image(target_id)
        if image is None or image.strategy_id != strategy_id:
            logger.warning("Skipping description edit for unknown image %s", image_id)
            continue
        if (image.alt_text or "") == new_text:
            continue

        changed = backend.update_image(target_id, alt_text=new_text or None)
        if changed is not None:
            updated.append(changed)
    return updated


def upload_image_batch(
    backend: ContentBackend,
    storage: ObjectStorage,
    strategy_id: UUID,
    uploads: Sequence[ImageUpload],
    bucket: str,
    version_id: Optional[UUID] = None,
) -> list[ImageRecord]:
    """Store ``uploads`` one at a time and record each against ``version_id``.

    Positions continue after the strategy's existing images. The first
    storage or database failure stops the batch; images stored before it
    stay in place.

    Raises:
        ImageUploadError: Naming the file that failed
    """
    start = len(backend.list_images(strategy_id))
    folder = strategy_image_folder(strategy_id)
    stored: list[ImageRecord] = []

    for index, upload in enumerate(uploads):
        position = start + index
        try:
            result = storage.upload(
                upload.data,
                build_object_path(upload.filename, folder),
                bucket,
                content_type=upload.content_type,
            )
            image = backend.insert_image(
                strategy_id=strategy_id,
                storage_path=result.path,
                bucket_name=bucket,
                url=result.url,
                alt_text=clean_alt_text(upload.description) or default_alt_text(strategy_id, position),
                position_in_content=position,
                version_id=version_id,
            )
        except Exception as e:
            logger.error("Failed to upload image %s for strategy %s: %s", upload.filename, strategy_id, e)
            raise ImageUploadError(
                upload.filename,
                stored_image_ids=[img.id for img in stored],
                cause=str(e),
            ) from e
        events.image_uploaded(strategy_id, image.id, image.storage_path, version_id)
        stored.append(image)

    return stored
