"""Filesystem-backed object storage.

Each bucket is a directory under ``root_dir``. The web app mounts
``root_dir`` at ``/storage`` so the public URLs resolve.
"""

import logging
from pathlib import Path
from typing import Iterable, Optional

from stratbook.errors import StorageError
from stratbook.storage.base import ObjectStorage, UploadResult

logger = logging.getLogger(__name__)


class LocalObjectStorage(ObjectStorage):
    """Stores objects as files under ``root_dir/{bucket}/{path}``."""

    name = "local"

    def __init__(self, root_dir: Path | str, public_base_url: str, buckets: Iterable[str]):
        super().__init__(public_base_url, buckets)
        self.root_dir = Path(root_dir)

    def _resolve(self, path: str, bucket: str) -> Path:
        self._check_bucket(bucket)
        bucket_dir = (self.root_dir / bucket).resolve()
        target = (bucket_dir / path).resolve()
        if bucket_dir not in target.parents:
            raise StorageError(
                f"Object path escapes bucket: {path}",
                details={"bucket": bucket, "path": path},
            )
        return target

    def upload(
        self,
        data: bytes,
        path: str,
        bucket: str,
        content_type: Optional[str] = None,
    ) -> UploadResult:
        target = self._resolve(path, bucket)
        if target.exists():
            raise StorageError(
                f"Object already exists: {bucket}/{path}",
                details={"bucket": bucket, "path": path},
            )
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            with open(target, "xb") as f:
                f.write(data)
        except OSError as e:
            logger.error("Failed to write %s/%s: %s", bucket, path, e)
            raise StorageError(
                f"Failed to store {bucket}/{path}",
                details={"bucket": bucket, "path": path, "error": str(e)},
            ) from e
        logger.debug("Stored %d bytes at %s", len(data), target)
        return UploadResult(path=path, full_path=f"{bucket}/{path}", url=self.public_url(path, bucket))

    def exists(self, path: str, bucket: str) -> bool:
        return self._resolve(path, bucket).is_file()

    def delete(self, path: str, bucket: str) -> bool:
        target = self._resolve(path, bucket)
        if not target.is_file():
            return False
        target.unlink()
        logger.debug("Deleted %s", target)
        return True

    def ensure_buckets(self) -> None:
        """Create the bucket directories."""
        for bucket in self.buckets:
            (self.root_dir / bucket).mkdir(parents=True, exist_ok=True)

    def health_check(self) -> bool:
        return self.root_dir.is_dir()
