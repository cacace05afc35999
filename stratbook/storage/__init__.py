"""Object storage for uploaded images and map thumbnails."""

from stratbook.storage.base import ObjectStorage, UploadResult, build_object_path
from stratbook.storage.local import LocalObjectStorage
from stratbook.storage.memory import InMemoryObjectStorage
from stratbook.storage.validation import partition_uploads, validate_upload

__all__ = [
    "InMemoryObjectStorage",
    "LocalObjectStorage",
    "ObjectStorage",
    "UploadResult",
    "build_object_path",
    "partition_uploads",
    "validate_upload",
]
