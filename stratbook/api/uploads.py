"""Conversion of multipart uploads into domain uploads."""

from typing import Sequence

from fastapi import UploadFile

from stratbook.domain import ImageUpload


async def read_upload(file: UploadFile, description: str | None = None) -> ImageUpload:
    data = await file.read()
    return ImageUpload(
        filename=file.filename or "upload",
        content_type=file.content_type or "application/octet-stream",
        data=data,
        description=description,
    )


async def read_uploads(files: Sequence[UploadFile], descriptions: Sequence[str] = ()) -> list[ImageUpload]:
    """Read every file; ``descriptions`` pair with files by position."""
    uploads = []
    for index, file in enumerate(files):
        description = descriptions[index] if index < len(descriptions) else None
        uploads.append(await read_upload(file, description))
    return uploads
