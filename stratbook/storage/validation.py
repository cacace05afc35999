"""Checks applied to uploaded files before they reach storage."""

import logging
from typing import Iterable, Optional

from stratbook.domain import ImageUpload, RejectedUpload

logger = logging.getLogger(__name__)

DEFAULT_MAX_UPLOAD_BYTES = 5 * 1024 * 1024
DEFAULT_MIME_PREFIX = "image/"


def validate_upload(
    upload: ImageUpload,
    max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
    mime_prefix: str = DEFAULT_MIME_PREFIX,
) -> Optional[str]:
    """Return the reason ``upload`` is refused, or ``None`` if it is acceptable."""
    if not (upload.content_type or "").startswith(mime_prefix):
        return f"{upload.filename} is not an image ({upload.content_type or 'unknown type'})"
    if upload.size > max_bytes:
        limit_mb = max_bytes / (1024 * 1024)
        return f"{upload.filename} is too large (max {limit_mb:g} MB)"
    return None


def partition_uploads(
    uploads: Iterable[ImageUpload],
    max_bytes: int = DEFAULT_MAX_UPLOAD_BYTES,
    mime_prefix: str = DEFAULT_MIME_PREFIX,
) -> tuple[list[ImageUpload], list[RejectedUpload]]:
    """Split uploads into accepted files and rejections, preserving order."""
    accepted: list[ImageUpload] = []
    rejected: list[RejectedUpload] = []
    for upload in uploads:
        reason = validate_upload(upload, max_bytes, mime_prefix)
        if reason is None:
            accepted.append(upload)
        else:
            logger.info("Rejected upload %s: %s", upload.filename, reason)
            rejected.append(RejectedUpload(filename=upload.filename, reason=reason))
    return accepted, rejected
