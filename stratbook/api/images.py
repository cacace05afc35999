"""FastAPI router for strategy image endpoints.

Provides:
- POST   /api/strategies/{id}/images — upload images onto the current version
- PATCH  /api/images/{id}            — change an image's alt text
- DELETE /api/images/{id}            — remove an image row
"""

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import JSONResponse

from stratbook.api.errors import error_body
from stratbook.api.schemas import ImageResponse, ImageUpdate, UploadResponse, image_to_response, upload_to_response
from stratbook.api.uploads import read_uploads
from stratbook.content.service import ContentService
from stratbook.data.database.dependencies import get_content_service
from stratbook.errors import ImageUploadError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["images"])


@router.post("/strategies/{strategy_id}/images", response_model=UploadResponse, status_code=201)
async def upload_strategy_images(
    strategy_id: UUID,
    files: list[UploadFile] = File(...),
    descriptions: list[str] = Form(default=[]),
    service: ContentService = Depends(get_content_service),
):
    """Upload images and attach them to the strategy's current version.

    Files that are not images or exceed the size limit are listed under
    ``rejected``. If storing a file fails, the response is 502 naming that
    file; images stored before it are kept.
    """
    uploads = await read_uploads(files, descriptions)
    logger.debug("upload_strategy_images: strategy_id=%s files=%d", strategy_id, len(uploads))
    try:
        result = service.upload_images(strategy_id, uploads)
    except ImageUploadError as e:
        # Images stored before the failure commit with the request
        return JSONResponse(status_code=e.status_code, content=error_body(e))
    return upload_to_response(result)


@router.patch("/images/{image_id}", response_model=ImageResponse)
async def update_image(
    image_id: UUID,
    data: ImageUpdate,
    service: ContentService = Depends(get_content_service),
):
    return image_to_response(service.update_image_description(image_id, data.alt_text))


@router.delete("/images/{image_id}", status_code=204)
async def delete_image(image_id: UUID, service: ContentService = Depends(get_content_service)):
    """Remove the image row. The stored file is left in place."""
    logger.debug("delete_image: image_id=%s", image_id)
    service.delete_image(image_id)
