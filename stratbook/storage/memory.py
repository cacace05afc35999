"""Process-local object storage, used for tests and database-less runs."""

import logging
import threading
from typing import Iterable, Optional

from stratbook.errors import StorageError
from stratbook.storage.base import ObjectStorage, UploadResult

logger = logging.getLogger(__name__)


class InMemoryObjectStorage(ObjectStorage):
    """Keeps uploaded objects in a dictionary keyed by ``(bucket, path)``."""

    name = "memory"

    def __init__(self, public_base_url: str, buckets: Iterable[str]):
        super().__init__(public_base_url, buckets)
        self._lock = threading.Lock()
        self._objects: dict[tuple[str, str], tuple[bytes, Optional[str]]] = {}

    def upload(
        self,
        data: bytes,
        path: str,
        bucket: str,
        content_type: Optional[str] = None,
    ) -> UploadResult:
        self._check_bucket(bucket)
        with self._lock:
            if (bucket, path) in self._objects:
                raise StorageError(
                    f"Object already exists: {bucket}/{path}",
                    details={"bucket": bucket, "path": path},
                )
            self._objects[(bucket, path)] = (bytes(data), content_type)
        logger.debug("Stored %d bytes at %s/%s (memory)", len(data), bucket, path)
        return UploadResult(path=path, full_path=f"{bucket}/{path}", url=self.public_url(path, bucket))

    def exists(self, path: str, bucket: str) -> bool:
        with self._lock:
            return (bucket, path) in self._objects

    def delete(self, path: str, bucket: str) -> bool:
        self._check_bucket(bucket)
        with self._lock:
            return self._objects.pop((bucket, path), None) is not None

    def read(self, path: str, bucket: str) -> bytes:
        """Return stored bytes. Raises ``KeyError`` when nothing is stored."""
        with self._lock:
            return self._objects[(bucket, path)][0]

    def content_type(self, path: str, bucket: str) -> Optional[str]:
        with self._lock:
            return self._objects[(bucket, path)][1]
