"""
Candidate Aggregation & Scoring
Merges the per-field hit lists into one candidate per material and computes
the raw per-field scores of each candidate against the query.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from ...models.material import MaterialBase, MetaData, ScoreBreakdown, ScoreField
from ..config import get_ml_config, MLConfig
from .scoring import availability_score, distance_score, lower_is_better, size_score
from .vector_index import IndexMatch
from .weights import FieldPresence

logger = logging.getLogger(__name__)


@dataclass
class Candidate:
    """A stored material returned by at least one index."""

    material_id: str
    vector_scores: Dict[str, float] = field(default_factory=dict)
    metadata: Optional[MetaData] = None

    def vector_score(self, vector_field: str) -> float:
        """Similarity in one index; 0 when that index did not return the material."""
        return self.vector_scores.get(vector_field, 0.0)


def aggregate_candidates(
    hits: Dict[str, List[IndexMatch]],
    metadata_field: str = "name",
) -> Dict[str, Candidate]:
    """
    Merge independent hit lists into a map keyed by material id.

    Only the designated index contributes metadata. A candidate that the
    designated index did not return keeps ``metadata=None`` and ranks on its
    vector scores alone.

    Args:
        hits: Hit list per field
        metadata_field: Field whose index carries MetaData

    Returns:
        Dict mapping material_id -> Candidate, in first-seen order
    """
    candidates: Dict[str, Candidate] = {}

    for vector_field, matches in hits.items():
        for match in matches:
            candidate = candidates.get(match.material_id)
            if candidate is None:
                candidate = Candidate(material_id=match.material_id)
                candidates[match.material_id] = candidate

            # Same id twice in one list: keep the best similarity
            previous = candidate.vector_scores.get(vector_field)
            if previous is None or match.score > previous:
                candidate.vector_scores[vector_field] = match.score

            if vector_field == metadata_field and match.metadata is not None:
                candidate.metadata = match.metadata

    logger.debug(
        f"Aggregated {sum(len(m) for m in hits.values())} hits "
        f"into {len(candidates)} candidates"
    )

    return candidates


class CandidateScorer:
    """
    Computes the raw score of every scorable field for a candidate.

    A raw score is None when the query did not provide the field or the
    candidate lacks the data to compare it. Vector fields of a provided query
    field default to 0 when the candidate was not returned by that index.
    """

    def __init__(self, config: Optional[MLConfig] = None):
        self.config = config or get_ml_config()

    def raw_scores(
        self,
        query: MaterialBase,
        presence: FieldPresence,
        candidate: Candidate,
    ) -> Dict[str, Optional[float]]:
        """
        Score one candidate field by field.

        Args:
            query: Query material
            presence: Field presence of the query, computed once per request
            candidate: Aggregated candidate

        Returns:
            Dict mapping every ScoreField value -> score in [0, 1] or None
        """
        scores: Dict[str, Optional[float]] = {f.value: None for f in ScoreField}

        if presence.name:
            scores[ScoreField.NAME.value] = candidate.vector_score(ScoreField.NAME.value)
        if presence.description:
            scores[ScoreField.DESCRIPTION.value] = candidate.vector_score(
                ScoreField.DESCRIPTION.value
            )

        meta = candidate.metadata
        if meta is None:
            return scores

        if presence.price:
            scores[ScoreField.PRICE.value] = lower_is_better(query.price, meta.price)
        if presence.quality:
            # Higher stored quality than requested is not penalized
            scores[ScoreField.QUALITY.value] = lower_is_better(meta.quality, query.quality)
        if presence.location:
            scores[ScoreField.LOCATION.value] = distance_score(
                query.location,
                meta.location,
                decay_meters=self.config.retrieval.distance_decay_meters,
            )
        if presence.availability:
            scores[ScoreField.AVAILABILITY.value] = availability_score(
                query.available_time, meta.available_time
            )
        if presence.size:
            scores[ScoreField.SIZE.value] = size_score(query.size, meta.size)

        return scores


def to_breakdown(raw_scores: Dict[str, Optional[float]]) -> ScoreBreakdown:
    """Clamp raw scores into a ScoreBreakdown, undefined scores become 0."""
    return ScoreBreakdown(
        **{
            name: 0.0 if score is None else max(0.0, min(1.0, float(score)))
            for name, score in raw_scores.items()
        }
    )
