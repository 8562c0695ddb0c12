"""
Dependency Injection
FastAPI dependencies for database, services, and configurations.
"""

import logging
from typing import Generator, Optional
from uuid import uuid4

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.orm import Session

from .config import get_settings, APISettings
from .services.text_encoder import get_text_encoder_service
from ..db.repository import MaterialRepository
from ..db.session import create_db_engine, create_session_factory, create_tables
from ..ingestion import MaterialIngestionService
from ..ml.config import get_ml_config
from ..ml.retrieval import FieldIndexSet, get_index_manager
from ..ml.search import MaterialSearchService

logger = logging.getLogger(__name__)

# Database engine and session factory
_engine = None
_SessionLocal = None

# Services (built on first use)
_search_service: Optional[MaterialSearchService] = None
_ingestion_service: Optional[MaterialIngestionService] = None


def get_db_engine():
    """Get database engine (singleton); creates missing tables."""
    global _engine
    if _engine is None:
        settings = get_settings()
        _engine = create_db_engine(settings.database_url)
        create_tables(_engine)
        logger.info(f"Database engine created: {settings.database_url.split('@')[-1]}")
    return _engine


def get_session_factory():
    """Get database session factory (singleton)."""
    global _SessionLocal
    if _SessionLocal is None:
        _SessionLocal = create_session_factory(get_db_engine())
        logger.info("Database session factory created")
    return _SessionLocal


def get_db() -> Generator[Session, None, None]:
    """
    Get database session.

    Use as FastAPI dependency:
        @app.get("/endpoint")
        def endpoint(db: Session = Depends(get_db)):
            ...
    """
    SessionLocal = get_session_factory()
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_material_repository(db: Session = Depends(get_db)) -> MaterialRepository:
    return MaterialRepository(db)


def get_index_set() -> FieldIndexSet:
    """Get the global per-field index set."""
    return get_index_manager(get_ml_config())


def get_search_service() -> MaterialSearchService:
    """Get the retrieval pipeline (singleton over the global indices)."""
    global _search_service
    if _search_service is None:
        config = get_ml_config()
        _search_service = MaterialSearchService(
            index_set=get_index_set(),
            encoder=get_text_encoder_service(),
            config=config,
        )
    return _search_service


def get_ingestion_service() -> MaterialIngestionService:
    """Get the write path (singleton over the global indices)."""
    global _ingestion_service
    if _ingestion_service is None:
        config = get_ml_config()
        _ingestion_service = MaterialIngestionService(
            index_set=get_index_set(),
            encoder=get_text_encoder_service(),
            config=config,
        )
    return _ingestion_service


def verify_api_key(
    settings: APISettings = Depends(get_settings), x_api_key: Optional[str] = Header(None)
) -> bool:
    """
    Verify API key if required.

    Use as FastAPI dependency:
        @app.get("/endpoint")
        def endpoint(authorized: bool = Depends(verify_api_key)):
            ...
    """
    if not settings.require_api_key:
        return True

    if not x_api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key is required",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if x_api_key not in settings.api_keys:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid API key",
        )

    return True


def get_request_id(request: Request, x_request_id: Optional[str] = Header(None)) -> str:
    """Request id set by the logging middleware, the header, or a new UUID."""
    return getattr(request.state, "request_id", None) or x_request_id or str(uuid4())


def reset_dependencies() -> None:
    """Drop cached engine and services (useful for testing)."""
    global _engine, _SessionLocal, _search_service, _ingestion_service
    _engine = None
    _SessionLocal = None
    _search_service = None
    _ingestion_service = None
