"""
Tests for the JSON error envelope produced by the API error handlers.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from material_matcher.api.errors import (
    InvalidRequestError,
    ResourceNotFoundError,
    RetrievalUnavailableError,
    setup_error_handlers,
)
from material_matcher.ml.errors import MissingReferenceError, QueryValidationError


@pytest.fixture
def client():
    app = FastAPI()
    setup_error_handlers(app)

    @app.get("/unavailable")
    async def unavailable():
        raise RetrievalUnavailableError("Indices not loaded", details={"fields": ["name"]})

    @app.get("/not-found")
    async def not_found():
        raise ResourceNotFoundError("Material", "abc")

    @app.get("/invalid")
    async def invalid():
        raise InvalidRequestError("Bad combination")

    @app.get("/query")
    async def query():
        raise QueryValidationError([{"loc": ["topK"], "msg": "too large", "type": "less_than_equal"}])

    @app.get("/missing")
    async def missing():
        raise MissingReferenceError("xyz")

    @app.get("/value")
    async def value():
        raise ValueError("top_k must be >= 1")

    return TestClient(app)


@pytest.mark.parametrize(
    "path, status_code, error_type",
    [
        ("/unavailable", 503, "RetrievalUnavailableError"),
        ("/not-found", 404, "ResourceNotFoundError"),
        ("/invalid", 400, "InvalidRequestError"),
        ("/query", 422, "ValidationError"),
        ("/missing", 404, "ResourceNotFoundError"),
        ("/value", 400, "ValueError"),
    ],
)
def test_error_envelope(client, path, status_code, error_type):
    response = client.get(path)

    assert response.status_code == status_code
    body = response.json()
    assert body["error"] is True
    assert body["type"] == error_type
    assert body["message"]


def test_details_are_kept(client):
    assert client.get("/unavailable").json()["details"] == {"fields": ["name"]}
    assert client.get("/query").json()["details"][0]["loc"] == ["topK"]
    assert client.get("/missing").json()["details"] == {"resource": "Material", "id": "xyz"}
