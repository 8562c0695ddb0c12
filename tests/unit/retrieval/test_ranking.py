"""
Tests for combined scoring, ordering and truncation.
"""

import pytest

from material_matcher.ml.config import WeightTable
from material_matcher.ml.retrieval.ranking import MaterialRanker, RankedCandidate
from material_matcher.models.material import ScoreBreakdown


@pytest.fixture
def ranker(ml_config):
    return MaterialRanker(ml_config)


def _candidate(material_id: str, **scores) -> RankedCandidate:
    return RankedCandidate(material_id=material_id, breakdown=ScoreBreakdown(**scores))


class TestCombinedScore:
    def test_zero_weights_give_zero(self, ranker):
        breakdown = ScoreBreakdown(name=1.0, price=1.0)
        assert ranker.combined_score(breakdown, WeightTable()) == 0.0

    def test_normalized_weights_give_weighted_sum(self, ranker):
        breakdown = ScoreBreakdown(name=0.8, price=0.4)
        weights = WeightTable(name=0.75, price=0.25)
        assert ranker.combined_score(breakdown, weights) == pytest.approx(0.7)


class TestRank:
    def test_sorted_descending(self, ranker):
        weights = WeightTable(name=1.0)
        ranked = ranker.rank(
            [_candidate("a", name=0.2), _candidate("b", name=0.9), _candidate("c", name=0.5)],
            weights,
        )

        assert [c.material_id for c in ranked] == ["b", "c", "a"]
        assert [c.rank for c in ranked] == [0, 1, 2]

    def test_ties_broken_by_id(self, ranker):
        weights = WeightTable(name=1.0)
        ranked = ranker.rank(
            [_candidate("m2", name=0.5), _candidate("m1", name=0.5), _candidate("m3", name=0.5)],
            weights,
        )
        assert [c.material_id for c in ranked] == ["m1", "m2", "m3"]


class TestFinalize:
    def test_truncates_to_top_k(self, ranker):
        weights = WeightTable(name=1.0)
        candidates = [_candidate(f"m{i}", name=i / 10) for i in range(8)]

        returned, _ = ranker.finalize(ranker.rank(candidates, weights), 5, weights)

        assert len(returned) == 5
        scores = [c.score for c in returned]
        assert scores == sorted(scores, reverse=True)
        assert returned[0].material_id == "m7"

    def test_reported_weights_drop_uncovered_fields(self, ranker):
        weights = WeightTable(name=0.5, price=0.5)
        ranked = ranker.rank([_candidate("a", name=0.9), _candidate("b", name=0.4)], weights)

        _, reported = ranker.finalize(ranked, 5, weights)

        assert reported.price == 0.0
        assert reported.name == pytest.approx(1.0)

    def test_rejects_invalid_top_k(self, ranker):
        with pytest.raises(ValueError):
            ranker.finalize([], 0, WeightTable())


def test_explain_ranking_lists_components(ranker):
    weights = WeightTable(name=0.6, price=0.4)
    (ranked,) = ranker.rank([_candidate("a", name=1.0, price=0.5)], weights)

    explanation = ranker.explain_ranking(ranked, weights)

    assert "Material a (Rank 1)" in explanation
    assert "Final Score: 0.8000" in explanation
    assert "Price:" in explanation
