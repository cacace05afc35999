"""FastAPI backend for the strategy book."""

import logging
import sys
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv(Path(__file__).parent.parent.parent / ".env")

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

# Add parent directory to path for imports
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from config.settings import get_settings
from stratbook.api.errors import register_exception_handlers
from stratbook.api.images import router as images_router
from stratbook.api.maps import router as maps_router
from stratbook.api.strategies import router as strategies_router
from stratbook.data.database.connection import get_db_manager
from stratbook.data.database.dependencies import get_object_storage
from stratbook.utils.logging import setup_logging

settings = get_settings()
setup_logging(
    level=settings.logging.level,
    format=settings.logging.format,
    file=settings.logging.file,
    rotate_size_mb=settings.logging.rotate_size_mb,
    retain_count=settings.logging.retain_count,
)

logger = logging.getLogger(__name__)

app = FastAPI(title="Strategy Book API", version="1.0.0")

# Enable CORS for the frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.server.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

register_exception_handlers(app)
app.include_router(maps_router)
app.include_router(strategies_router)
app.include_router(images_router)

# Serve locally stored images under the public base URL
if settings.storage.backend == "local":
    storage_root = Path(settings.storage.root_dir)
    storage_root.mkdir(parents=True, exist_ok=True)
    app.mount("/storage", StaticFiles(directory=storage_root), name="storage")

if not settings.database.is_configured:
    if settings.database.in_memory_fallback:
        logger.warning("No database configured; content is held in memory only")
    else:
        logger.warning("No database configured and in-memory fallback disabled; content requests will fail")


@app.get("/health")
async def health_check():
    """Health check endpoint including database and storage status."""
    health = {
        "status": "healthy",
        "api": True,
        "backend": "memory",
        "database": False,
        "storage": False,
    }

    if settings.database.is_configured:
        health["backend"] = "sql"
        health["database"] = get_db_manager().health_check()
        if not health["database"]:
            health["status"] = "degraded"
    elif not settings.database.in_memory_fallback:
        health["backend"] = "unconfigured"
        health["status"] = "degraded"

    try:
        health["storage"] = get_object_storage().health_check()
    except Exception as e:
        logger.warning("Storage health check failed: %s", e)
    if not health["storage"]:
        health["status"] = "degraded"

    return health


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.server.host, port=settings.server.port)
