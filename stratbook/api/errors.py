"""Translate stratbook exceptions into HTTP responses.

Responses keep FastAPI's ``{"detail": ...}`` shape and add the error code
and details, so clients can branch on ``code`` without parsing messages.
"""

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from stratbook.errors import StratbookError

logger = logging.getLogger(__name__)


def error_body(exc: StratbookError) -> dict:
    return {"detail": exc.message, "code": exc.code, "details": exc.details}


async def stratbook_exception_handler(request: Request, exc: StratbookError) -> JSONResponse:
    """Exception handler for StratbookError and its subclasses."""
    if exc.status_code >= 500:
        logger.error(
            "%s %s failed: %s - %s", request.method, request.url.path, exc.code, exc.message,
        )
    else:
        logger.info(
            "%s %s rejected: %s - %s", request.method, request.url.path, exc.code, exc.message,
        )
    return JSONResponse(status_code=exc.status_code, content=error_body(exc))


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StratbookError, stratbook_exception_handler)
