"""Exception hierarchy for stratbook.

Every error carries the HTTP status it maps to so the API layer can
translate it with a single handler.
"""

from typing import Any, Optional, Sequence
from uuid import UUID


class StratbookError(Exception):
    """Base exception for content operations."""

    status_code: int = 500
    code: str = "STRATBOOK_ERROR"

    def __init__(self, message: str, details: Optional[dict[str, Any]] = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)


class BackendNotConfiguredError(StratbookError):
    """No database is configured and the in-memory fallback is disabled."""

    status_code = 503
    code = "BACKEND_NOT_CONFIGURED"

    def __init__(self, operation: str):
        super().__init__(
            f"{operation} requires a configured database",
            details={"operation": operation},
        )


class NotFoundError(StratbookError):
    """A single-row lookup found nothing."""

    status_code = 404
    code = "NOT_FOUND"

    def __init__(self, resource: str, resource_id: Any):
        self.resource = resource
        self.resource_id = resource_id
        super().__init__(
            f"{resource} {resource_id} not found",
            details={"resource": resource, "id": str(resource_id)},
        )


class DuplicateNameError(StratbookError):
    """A map with the same name already exists."""

    status_code = 409
    code = "DUPLICATE_NAME"

    def __init__(self, name: str):
        super().__init__(f"Map with name '{name}' already exists", details={"name": name})


class VersionConflictError(StratbookError):
    """Another writer already took this version number."""

    status_code = 409
    code = "VERSION_CONFLICT"

    def __init__(self, strategy_id: UUID, version_number: int):
        self.strategy_id = strategy_id
        self.version_number = version_number
        super().__init__(
            f"Version {version_number} of strategy {strategy_id} already exists",
            details={"strategy_id": str(strategy_id), "version_number": version_number},
        )


class AggregateQueryError(StratbookError):
    """The joined strategy query failed; callers fall back to separate queries."""

    code = "AGGREGATE_QUERY_FAILED"


class ValidationError(StratbookError):
    """Request content rejected before touching the backend."""

    status_code = 400
    code = "VALIDATION_ERROR"

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message, details={"field": field} if field else {})


class StorageError(StratbookError):
    """Object storage refused an upload or deletion."""

    status_code = 502
    code = "STORAGE_ERROR"


class ImageUploadError(StratbookError):
    """An upload batch stopped at ``filename``.

    Images stored before the failure stay committed; their ids are in
    ``stored_image_ids``.
    """

    status_code = 502
    code = "IMAGE_UPLOAD_FAILED"

    def __init__(self, filename: str, stored_image_ids: Sequence[UUID] = (), cause: Optional[str] = None):
        self.filename = filename
        self.stored_image_ids = list(stored_image_ids)
        super().__init__(
            f"Failed to upload image: {filename}",
            details={
                "filename": filename,
                "stored_image_ids": [str(i) for i in self.stored_image_ids],
                "cause": cause,
            },
        )
