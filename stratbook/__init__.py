"""stratbook - versioned tactical strategies organised by game map.

Core Modules:
- domain: Plain records exchanged between layers (maps, strategies, versions, images)
- content: Versioning and image-association protocols plus the ContentService facade
- data: Backend interface with SQL and in-memory implementations
- storage: Object storage for uploaded images

Supporting Modules:
- api: FastAPI routers
- utils: Logging helpers
"""

from stratbook.domain import (
    MapRecord,
    StrategyRecord,
    VersionRecord,
    ImageRecord,
    StrategyDetail,
    ImageUpload,
)
from stratbook.errors import (
    StratbookError,
    BackendNotConfiguredError,
    NotFoundError,
    DuplicateNameError,
    VersionConflictError,
    ImageUploadError,
)
from stratbook.content.service import ContentService

__all__ = [
    # Domain
    "MapRecord",
    "StrategyRecord",
    "VersionRecord",
    "ImageRecord",
    "StrategyDetail",
    "ImageUpload",
    # Errors
    "StratbookError",
    "BackendNotConfiguredError",
    "NotFoundError",
    "DuplicateNameError",
    "VersionConflictError",
    "ImageUploadError",
    # Service
    "ContentService",
]
