"""
Pytest configuration and shared fixtures
"""

import sys
from pathlib import Path

import pytest

# Make the test doubles importable from every test module
sys.path.insert(0, str(Path(__file__).parent))

from fakes import TEST_DIM, FakeEncoder, FakeIndex  # noqa: E402
from material_matcher.db.repository import MaterialRepository  # noqa: E402
from material_matcher.db.session import (  # noqa: E402
    create_db_engine,
    create_session_factory,
    create_tables,
)
from material_matcher.ml.config import EmbeddingConfig, MLConfig, StorageConfig  # noqa: E402
from material_matcher.ml.retrieval import FieldIndexSet  # noqa: E402
from material_matcher.models.material import Location  # noqa: E402


@pytest.fixture
def ml_config() -> MLConfig:
    """Default configuration with a small embedding dimension and no disk IO."""
    return MLConfig(
        embedding=EmbeddingConfig(text_embedding_dim=TEST_DIM),
        storage=StorageConfig(persist_indices=False),
    )


@pytest.fixture
def fake_encoder() -> FakeEncoder:
    return FakeEncoder()


@pytest.fixture
def fake_index_set() -> FieldIndexSet:
    """Name, description and classification indices, all empty."""
    return FieldIndexSet(
        {
            "name": FakeIndex("name"),
            "description": FakeIndex("description"),
            "classification": FakeIndex("classification"),
        }
    )


@pytest.fixture
def db_session_factory():
    engine = create_db_engine("sqlite://")
    create_tables(engine)
    yield create_session_factory(engine)
    engine.dispose()


@pytest.fixture
def repository(db_session_factory):
    """MaterialRepository over an in-memory SQLite database."""
    session = db_session_factory()
    try:
        yield MaterialRepository(session)
    finally:
        session.close()


@pytest.fixture
def zurich() -> Location:
    return Location(latitude=47.3769, longitude=8.5417)
