"""
Tests for the retrieval pipeline end to end (fake indices and encoder, real
scoring, filtering, ranking and SQLite repository).
"""

import threading
from datetime import datetime

import pytest

from fakes import FakeEncoder, FakeIndex, hits_for, km_north, make_material
from material_matcher.ml.config import (
    EmbeddingConfig,
    MissingDataPolicy,
    MLConfig,
    RetrievalConfig,
    StorageConfig,
)
from material_matcher.ml.errors import DependencyError, QueryValidationError
from material_matcher.ml.retrieval.index_manager import FieldIndexSet
from material_matcher.ml.search.search_service import MaterialSearchService, parse_query
from material_matcher.models.material import Size


def _index_set(name_hits, description_hits=None) -> FieldIndexSet:
    return FieldIndexSet(
        {
            "name": FakeIndex("name", name_hits),
            "description": FakeIndex("description", description_hits or []),
            "classification": FakeIndex("classification"),
        }
    )


@pytest.fixture
def service_for(ml_config, fake_encoder):
    def build(index_set, config=None):
        return MaterialSearchService(index_set, fake_encoder, config or ml_config)

    return build


@pytest.mark.asyncio
async def test_hard_price_excludes_expensive_candidates(service_for, repository):
    cheap = make_material("cheap", price=100)
    pricey = make_material("pricey", price=100 / 0.6)  # price score 0.6
    repository.add_many([cheap, pricey])
    service = service_for(_index_set(hits_for([cheap, pricey], {"cheap": 0.7, "pricey": 0.9})))

    result = await service.retrieve(
        {
            "material": {"name": "oak beam", "price": 100},
            "constraints": {"price": "hard"},
        },
        repository,
    )

    assert [m.id for m in result.materials] == ["cheap"]
    assert result.materials[0].score_breakdown.price == pytest.approx(1.0)
    assert result.candidates_filtered == 1


@pytest.mark.asyncio
async def test_returns_top_k_sorted(service_for, repository):
    materials = [make_material(f"m{i}") for i in range(8)]
    repository.add_many(materials)
    scores = {m.id: 0.2 + 0.1 * i for i, m in enumerate(materials)}
    service = service_for(_index_set(hits_for(materials, scores)))

    result = await service.retrieve({"material": {"name": "oak beam"}, "topK": 5}, repository)

    assert [m.id for m in result.materials] == ["m7", "m6", "m5", "m4", "m3"]
    result_scores = [m.score for m in result.materials]
    assert result_scores == sorted(result_scores, reverse=True)
    assert all(0.0 <= s <= 1.0 for s in result_scores)


@pytest.mark.asyncio
async def test_adaptive_weights_for_text_only_query(service_for, repository):
    a = make_material("a", description="solid oak")
    repository.add_many([a])
    service = service_for(_index_set(hits_for([a], {"a": 0.8}), hits_for([a], {"a": 0.6})))

    result = await service.retrieve(
        {"material": {"name": "oak beam", "description": "solid oak"}}, repository
    )

    assert result.mode == "adaptive"
    assert result.weights.name == pytest.approx(0.5)
    assert result.weights.description == pytest.approx(0.5)
    assert result.weights.price == 0.0
    assert result.materials[0].score == pytest.approx(0.7)


@pytest.mark.asyncio
async def test_hard_location_radius(service_for, repository, zurich):
    near = make_material("near", location=km_north(zurich, 3))
    far = make_material("far", location=km_north(zurich, 8))
    repository.add_many([near, far])
    service = service_for(_index_set(hits_for([near, far], {"near": 0.5, "far": 0.9})))

    result = await service.retrieve(
        {
            "material": {
                "name": "oak beam",
                "location": {"latitude": zurich.latitude, "longitude": zurich.longitude},
            },
            "location": {
                "latitude": zurich.latitude,
                "longitude": zurich.longitude,
                "radiusKm": 5,
            },
            "constraints": {"location": "hard"},
        },
        repository,
    )

    assert [m.id for m in result.materials] == ["near"]
    assert result.materials[0].score_breakdown.location == pytest.approx(1 / 1.3, abs=1e-3)


@pytest.mark.asyncio
async def test_candidate_without_record_is_dropped(service_for, repository):
    stored = make_material("stored")
    ghost = make_material("ghost")
    repository.add_many([stored])
    service = service_for(_index_set(hits_for([stored, ghost], {"stored": 0.5, "ghost": 0.9})))

    result = await service.retrieve({"material": {"name": "oak beam"}}, repository)

    assert [m.id for m in result.materials] == ["stored"]
    assert result.missing_references == 1


@pytest.mark.asyncio
async def test_encoder_failure_queries_no_index(ml_config, repository):
    index_set = _index_set([])
    service = MaterialSearchService(index_set, FakeEncoder(error=RuntimeError("gpu gone")), ml_config)

    with pytest.raises(DependencyError) as exc_info:
        await service.retrieve({"material": {"name": "oak beam"}}, repository)

    assert exc_info.value.dependency == "embedding"
    assert index_set.get("name").calls == []


@pytest.mark.asyncio
async def test_index_failure_yields_no_partial_result(service_for, repository):
    index_set = FieldIndexSet(
        {
            "name": FakeIndex("name", [], error=RuntimeError("index down")),
            "description": FakeIndex("description"),
        }
    )
    service = service_for(index_set)

    with pytest.raises(DependencyError):
        await service.retrieve(
            {"material": {"name": "oak beam", "description": "solid"}}, repository
        )


@pytest.mark.asyncio
async def test_invalid_request_rejected_before_embedding(service_for, fake_encoder, repository):
    index_set = _index_set([])
    service = service_for(index_set)

    with pytest.raises(QueryValidationError) as exc_info:
        await service.retrieve(
            {"material": {"name": "oak beam", "quality": 2}, "topK": 0}, repository
        )

    locs = {tuple(e["loc"]) for e in exc_info.value.errors}
    assert ("material", "quality") in locs
    assert ("topK",) in locs
    assert fake_encoder.calls == 0
    assert index_set.get("name").calls == []


@pytest.mark.asyncio
async def test_explicit_weights_ignore_name_for_ranking(service_for, repository):
    cheap = make_material("cheap", price=100)
    pricey = make_material("pricey", price=300)
    repository.add_many([cheap, pricey])
    service = service_for(_index_set(hits_for([cheap, pricey], {"cheap": 0.3, "pricey": 0.95})))

    result = await service.retrieve(
        {
            "material": {"name": "oak beam", "price": 100},
            "weights": {"name": 100, "price": 100},
        },
        repository,
    )

    assert result.mode == "explicit"
    assert [m.id for m in result.materials] == ["cheap", "pricey"]
    assert result.weights.name == 0.0
    assert result.weights.price == pytest.approx(1.0)
    assert result.materials[0].score == pytest.approx(1.0)
    # The breakdown still reports the name similarity
    assert result.materials[1].score_breakdown.name == pytest.approx(0.95)


@pytest.mark.asyncio
async def test_explicit_weights_all_zero(service_for, repository):
    a = make_material("a")
    repository.add_many([a])
    service = service_for(_index_set(hits_for([a], {"a": 0.9})))

    result = await service.retrieve(
        {"material": {"name": "oak beam"}, "weights": {}}, repository
    )

    assert [m.id for m in result.materials] == ["a"]
    assert result.materials[0].score == 0.0
    assert result.weights.name == 0.0


@pytest.mark.asyncio
async def test_reported_weights_drop_fields_no_result_scores(service_for, repository):
    # Candidate has no size, so the size weight cannot have influenced anything
    a = make_material("a", price=50)
    repository.add_many([a])
    service = service_for(_index_set(hits_for([a], {"a": 0.8})))

    result = await service.retrieve(
        {"material": {"name": "oak beam", "price": 50, "size": {"width": 10}}}, repository
    )

    assert result.debug_info["resolved_weights"]["size"] > 0
    assert result.weights.size == 0.0
    total = sum(result.weights.model_dump().values())
    assert total == pytest.approx(1.0)


@pytest.mark.asyncio
async def test_missing_data_policy(repository, fake_encoder):
    unpriced = make_material("unpriced")
    repository.add_many([unpriced])
    request = {"material": {"name": "oak beam", "price": 10}, "constraints": {"price": "hard"}}

    results = {}
    for policy in MissingDataPolicy:
        config = MLConfig(
            embedding=EmbeddingConfig(text_embedding_dim=8),
            storage=StorageConfig(persist_indices=False),
            retrieval=RetrievalConfig(missing_data_policy=policy),
        )
        service = MaterialSearchService(
            _index_set(hits_for([unpriced], {"unpriced": 0.9})), fake_encoder, config
        )
        results[policy] = await service.retrieve(request, repository)

    assert [m.id for m in results[MissingDataPolicy.PERMISSIVE].materials] == ["unpriced"]
    assert results[MissingDataPolicy.STRICT].materials == []


@pytest.mark.asyncio
async def test_hard_availability_overlap(service_for, repository):
    summer = make_material(
        "summer",
        available_time={"from": datetime(2024, 6, 1), "to": datetime(2024, 8, 31)},
    )
    winter = make_material(
        "winter",
        available_time={"from": datetime(2024, 12, 1), "to": datetime(2025, 2, 28)},
    )
    repository.add_many([summer, winter])
    service = service_for(_index_set(hits_for([summer, winter], {"summer": 0.5, "winter": 0.6})))

    result = await service.retrieve(
        {
            "material": {"name": "oak beam"},
            "availableTime": {"from": "2024-07-01T00:00:00", "to": "2024-07-31T00:00:00"},
            "constraints": {"availability": "hard"},
        },
        repository,
    )

    assert [m.id for m in result.materials] == ["summer"]


@pytest.mark.asyncio
async def test_stored_fields_are_returned(service_for, repository):
    a = make_material("a", description="solid oak", size=Size(width=20, height=10))
    repository.add_many([a])
    service = service_for(_index_set(hits_for([a], {"a": 0.8})))

    result = await service.retrieve({"material": {"name": "oak"}}, repository)

    returned = result.materials[0]
    assert returned.description == "solid oak"
    assert returned.size.width == 20
    assert returned.score_breakdown.name == pytest.approx(0.8)


@pytest.mark.asyncio
async def test_candidate_multiplier_widens_index_queries(repository, fake_encoder):
    config = MLConfig(
        embedding=EmbeddingConfig(text_embedding_dim=8),
        retrieval=RetrievalConfig(candidate_multiplier=3),
    )
    index_set = _index_set([])
    service = MaterialSearchService(index_set, fake_encoder, config)

    result = await service.retrieve({"material": {"name": "oak beam"}, "topK": 2}, repository)

    assert result.materials == []
    assert index_set.get("name").calls[0]["top_k"] == 6


def test_parse_query_accepts_snake_case_and_aliases():
    query = parse_query({"material": {"name": "x", "available_time": None}, "top_k": 3})
    assert query.top_k == 3


@pytest.mark.asyncio
async def test_blank_name_rejected_before_any_index_query(service_for, fake_encoder, repository):
    stored = make_material("a", price=100)
    repository.add_many([stored])
    index_set = _index_set(hits_for([stored], {"a": 0.9}))
    service = service_for(index_set)

    with pytest.raises(QueryValidationError) as exc_info:
        await service.retrieve(
            {"material": {"name": "   ", "description": "solid oak", "price": 100}},
            repository,
        )

    assert ("material", "name") in {tuple(e["loc"]) for e in exc_info.value.errors}
    assert fake_encoder.calls == 0
    assert index_set.get("name").calls == []
    assert index_set.get("description").calls == []


@pytest.mark.asyncio
async def test_record_lookup_runs_off_the_event_loop(service_for, repository):
    a = make_material("a")
    repository.add_many([a])
    service = service_for(_index_set(hits_for([a], {"a": 0.8})))

    lookup_threads = []
    get_many = repository.get_many

    def recording_get_many(ids):
        lookup_threads.append(threading.get_ident())
        return get_many(ids)

    repository.get_many = recording_get_many

    result = await service.retrieve({"material": {"name": "oak beam"}}, repository)

    assert [m.id for m in result.materials] == ["a"]
    assert lookup_threads and lookup_threads[0] != threading.get_ident()
