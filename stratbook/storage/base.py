"""Abstract base class for object storage.

Objects live in named buckets and are addressed by a slash-separated path
inside the bucket. Every stored object has a public URL of the form
``{public_base_url}/{bucket}/{path}``.
"""

import time
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Iterable, Optional

from stratbook.errors import StorageError


@dataclass(frozen=True)
class UploadResult:
    """Where an uploaded object ended up."""

    path: str
    full_path: str
    url: str


def build_object_path(filename: str, folder: str, now_ms: Optional[int] = None) -> str:
    """Build a collision-resistant object path for an uploaded file.

    Format: ``{folder}/{epoch_millis}-{random}.{ext}``. The extension is taken
    from ``filename`` and lower-cased; files without one get no suffix.
    """
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    token = uuid.uuid4().hex[:12]
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    name = f"{stamp}-{token}.{ext}" if ext else f"{stamp}-{token}"
    folder = folder.strip("/")
    return f"{folder}/{name}" if folder else name


class ObjectStorage(ABC):
    """Bucketed blob store used for strategy images and map thumbnails."""

    name: str = "storage"

    def __init__(self, public_base_url: str, buckets: Iterable[str]):
        self.public_base_url = public_base_url.rstrip("/")
        self.buckets = frozenset(buckets)

    def _check_bucket(self, bucket: str) -> None:
        if bucket not in self.buckets:
            raise StorageError(f"Unknown bucket '{bucket}'", details={"bucket": bucket})

    def public_url(self, path: str, bucket: str) -> str:
        """Public URL for ``path`` in ``bucket``."""
        self._check_bucket(bucket)
        return f"{self.public_base_url}/{bucket}/{path.lstrip('/')}"

    def path_from_url(self, url: Optional[str], bucket: str) -> Optional[str]:
        """Inverse of ``public_url``. ``None`` for URLs outside ``bucket``."""
        prefix = f"{self.public_base_url}/{bucket}/"
        if not url or not url.startswith(prefix):
            return None
        return url[len(prefix):] or None

    @abstractmethod
    def upload(
        self,
        data: bytes,
        path: str,
        bucket: str,
        content_type: Optional[str] = None,
    ) -> UploadResult:
        """Store ``data`` at ``path``.

        Raises:
            StorageError: Unknown bucket, or an object already exists at ``path``
        """

    @abstractmethod
    def exists(self, path: str, bucket: str) -> bool:
        """True if an object is stored at ``path``."""

    @abstractmethod
    def delete(self, path: str, bucket: str) -> bool:
        """Remove the object at ``path``. ``False`` if there was none."""

    def health_check(self) -> bool:
        return True
