"""
FastAPI Main Application
Entry point for the Material Matcher API.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware

from .config import get_settings
from .dependencies import get_db_engine, get_index_set
from .errors import setup_error_handlers
from .middleware import RequestLoggingMiddleware, RequestTimingMiddleware
from .routers import health_router, materials_router
from ..ml.config import get_ml_config
from ..ml.model_loader import get_model_registry
from ..ml.retrieval import VectorIndexError

# Configure logging
logging.basicConfig(
    level=get_settings().log_level.upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.

    Startup: create tables, load (or create) the per-field indices.
    Shutdown: save the indices when persistence is enabled.
    """
    settings = get_settings()
    logger.info(f"Starting {settings.app_name} {settings.version}...")

    get_db_engine()

    try:
        index_set = get_index_set()
        stats = index_set.get_stats()
        logger.info(
            f"Vector indices ready: {stats['num_vectors']} vectors over fields {index_set.fields}"
        )
    except VectorIndexError as e:
        logger.error(f"Failed to initialize vector indices: {e}")
        logger.warning("Retrieval will fail until the indices are available")
        index_set = None

    yield

    logger.info(f"Shutting down {settings.app_name}...")

    if index_set is not None and settings.index_persist:
        index_set.save(get_ml_config().storage.index_dir)

    get_model_registry().unload_models()


def create_app() -> FastAPI:
    """
    Create and configure FastAPI application.

    Returns:
        Configured FastAPI application instance
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.app_name,
        description=settings.description,
        version=settings.version,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
    )
    app.add_middleware(GZipMiddleware, minimum_size=1000)

    app.add_middleware(RequestTimingMiddleware)
    app.add_middleware(RequestLoggingMiddleware)

    setup_error_handlers(app)

    app.include_router(health_router)
    app.include_router(materials_router)

    @app.get("/")
    async def root():
        """API information."""
        return {
            "name": settings.app_name,
            "version": settings.version,
            "description": settings.description,
            "endpoints": {
                "retrieve": "/api/v1/materials/retrieve",
                "add": "/api/v1/materials/add",
                "health": "/health",
                "status": "/status",
                "docs": "/docs",
            },
        }

    return app


# Create app instance
app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()

    uvicorn.run(
        "material_matcher.api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.reload,
        log_level=settings.log_level.lower(),
    )
