"""
Integration test fixtures
"""

import pytest
from fastapi.testclient import TestClient

from material_matcher.api.config import APISettings, get_settings
from material_matcher.api.dependencies import (
    get_db,
    get_index_set,
    get_ingestion_service,
    get_search_service,
)
from material_matcher.api.main import create_app
from material_matcher.api.middleware.timing import get_latency_tracker
from material_matcher.ingestion import MaterialIngestionService
from material_matcher.ml.search import MaterialSearchService


@pytest.fixture
def api_settings() -> APISettings:
    return APISettings(require_api_key=False)


@pytest.fixture
def app(api_settings, db_session_factory, fake_index_set, fake_encoder, ml_config):
    """Application wired to an in-memory database and fake indices."""
    application = create_app()

    def override_get_db():
        db = db_session_factory()
        try:
            yield db
        finally:
            db.close()

    search_service = MaterialSearchService(fake_index_set, fake_encoder, ml_config)
    ingestion_service = MaterialIngestionService(fake_index_set, fake_encoder, ml_config)

    application.dependency_overrides[get_settings] = lambda: api_settings
    application.dependency_overrides[get_db] = override_get_db
    application.dependency_overrides[get_index_set] = lambda: fake_index_set
    application.dependency_overrides[get_search_service] = lambda: search_service
    application.dependency_overrides[get_ingestion_service] = lambda: ingestion_service

    get_latency_tracker().reset()
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
def client(app) -> TestClient:
    """Test client without lifespan, so no model or index files are touched."""
    return TestClient(app)
