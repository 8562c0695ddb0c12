"""
Tests for hard constraint predicates and thresholds.
"""

from datetime import datetime, timezone

import pytest

from fakes import km_north
from material_matcher.ml.config import MissingDataPolicy, MLConfig, RetrievalConfig
from material_matcher.ml.retrieval.candidates import Candidate
from material_matcher.ml.retrieval.filters import ConstraintFilter
from material_matcher.models.material import (
    AvailableTimeRange,
    LocationSearch,
    MaterialBase,
    MetaData,
    RetrievalQuery,
    SearchConstraints,
)


def _query(**kwargs) -> RetrievalQuery:
    return RetrievalQuery(material=MaterialBase(name="oak beam"), **kwargs)


@pytest.fixture
def permissive():
    return ConstraintFilter(MLConfig())


@pytest.fixture
def strict():
    return ConstraintFilter(
        MLConfig(retrieval=RetrievalConfig(missing_data_policy=MissingDataPolicy.STRICT))
    )


class TestThresholds:
    def test_hard_price_below_threshold_is_excluded(self, permissive):
        constraints = SearchConstraints(price="hard")
        assert permissive.passes_thresholds({"price": 0.6}, constraints) is False

    def test_hard_price_at_threshold_passes(self, permissive):
        constraints = SearchConstraints(price="hard")
        assert permissive.passes_thresholds({"price": 0.8}, constraints) is True

    def test_soft_fields_never_exclude(self, permissive):
        scores = {"name": 0.0, "description": 0.1, "price": 0.2, "quality": 0.1, "size": 0.0}
        assert permissive.passes_thresholds(scores, SearchConstraints()) is True

    def test_wire_aliases_for_quality_and_size(self, permissive):
        constraints = SearchConstraints.model_validate({"condition": "hard", "dimensions": "hard"})
        assert permissive.passes_thresholds({"quality": 0.79, "size": 1.0}, constraints) is False
        assert permissive.passes_thresholds({"quality": 0.9, "size": 0.85}, constraints) is True

    def test_missing_score_follows_policy(self, permissive, strict):
        constraints = SearchConstraints(size="hard")
        assert permissive.passes_thresholds({"size": None}, constraints) is True
        assert strict.passes_thresholds({"size": None}, constraints) is False


class TestLocationPredicate:
    def test_radius_containment(self, permissive, zurich):
        request = _query(
            constraints=SearchConstraints(location="hard"),
            location=LocationSearch(
                latitude=zurich.latitude, longitude=zurich.longitude, radius_km=5
            ),
        )
        near = Candidate("near", metadata=MetaData(location=km_north(zurich, 3)))
        far = Candidate("far", metadata=MetaData(location=km_north(zurich, 8)))

        assert permissive.passes_predicates(near, request) is True
        assert permissive.passes_predicates(far, request) is False

    def test_soft_location_is_not_a_filter(self, permissive, zurich):
        request = _query(
            location=LocationSearch(
                latitude=zurich.latitude, longitude=zurich.longitude, radius_km=5
            ),
        )
        far = Candidate("far", metadata=MetaData(location=km_north(zurich, 800)))
        assert permissive.passes_predicates(far, request) is True

    def test_missing_location_follows_policy(self, permissive, strict, zurich):
        request = _query(
            constraints=SearchConstraints(location="hard"),
            location=LocationSearch(
                latitude=zurich.latitude, longitude=zurich.longitude, radius_km=5
            ),
        )
        unknown = Candidate("unknown", metadata=MetaData())
        no_metadata = Candidate("bare")

        assert permissive.passes_predicates(unknown, request) is True
        assert permissive.passes_predicates(no_metadata, request) is True
        assert strict.passes_predicates(unknown, request) is False


class TestAvailabilityPredicate:
    def _range(self, start: int, end: int) -> AvailableTimeRange:
        return AvailableTimeRange(
            from_=datetime(2024, 3, start, tzinfo=timezone.utc),
            to=datetime(2024, 3, end, tzinfo=timezone.utc),
        )

    def test_overlap_required(self, permissive):
        request = _query(
            constraints=SearchConstraints(availability="hard"),
            available_time=self._range(10, 20),
        )
        overlapping = Candidate("a", metadata=MetaData(available_time=self._range(15, 25)))
        disjoint = Candidate("b", metadata=MetaData(available_time=self._range(1, 5)))

        assert permissive.passes_predicates(overlapping, request) is True
        assert permissive.passes_predicates(disjoint, request) is False

    def test_query_without_range_follows_policy(self, permissive, strict):
        request = _query(constraints=SearchConstraints(availability="hard"))
        candidate = Candidate("a", metadata=MetaData(available_time=self._range(1, 5)))

        assert permissive.passes_predicates(candidate, request) is True
        assert strict.passes_predicates(candidate, request) is False
