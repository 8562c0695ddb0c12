"""
Constraint Filtering
Removes candidates that fail caller-declared hard constraints.

Two kinds of hard constraint:
- predicates (location radius, availability overlap): boolean checks run
  before any scorer, independent of the weighted scores
- thresholds (name, description, price, quality, size): the raw field score
  must reach the configured minimum
"""

import logging
from typing import Dict, List, Optional

from ...models.material import RetrievalQuery, ScoreField, SearchConstraints
from ..config import get_ml_config, MissingDataPolicy, MLConfig
from .candidates import Candidate
from .scoring import is_within_radius, time_ranges_overlap

logger = logging.getLogger(__name__)

THRESHOLD_FIELDS = (
    ScoreField.NAME,
    ScoreField.DESCRIPTION,
    ScoreField.PRICE,
    ScoreField.QUALITY,
    ScoreField.SIZE,
)


class ConstraintFilter:
    """
    Applies hard constraints to candidates.

    When a hard constraint cannot be evaluated because the query or the
    candidate lacks the data, the configured missing-data policy decides:
    permissive lets the candidate through, strict excludes it.
    """

    def __init__(self, config: Optional[MLConfig] = None):
        """
        Initialize constraint filter.

        Args:
            config: ML configuration
        """
        self.config = config or get_ml_config()
        self.threshold = self.config.retrieval.hard_constraint_threshold
        self.policy = self.config.retrieval.missing_data_policy

    def _undecided(self) -> bool:
        return self.policy == MissingDataPolicy.PERMISSIVE

    def passes_predicates(self, candidate: Candidate, request: RetrievalQuery) -> bool:
        """
        Location radius containment and availability overlap.

        Args:
            candidate: Aggregated candidate (metadata may be missing)
            request: Retrieval request

        Returns:
            True if the candidate satisfies every hard predicate
        """
        constraints = request.constraints
        meta = candidate.metadata

        if constraints.is_hard(ScoreField.LOCATION):
            inside = None
            if request.location is not None and meta is not None:
                inside = is_within_radius(
                    request.location.center, meta.location, request.location.radius_km
                )
            if inside is None:
                inside = self._undecided()
            if not inside:
                logger.debug(f"Candidate {candidate.material_id} outside search radius")
                return False

        if constraints.is_hard(ScoreField.AVAILABILITY):
            overlaps = None
            if request.available_time is not None and meta is not None:
                overlaps = time_ranges_overlap(request.available_time, meta.available_time)
            if overlaps is None:
                overlaps = self._undecided()
            if not overlaps:
                logger.debug(f"Candidate {candidate.material_id} not available in range")
                return False

        return True

    def passes_thresholds(
        self, raw_scores: Dict[str, Optional[float]], constraints: SearchConstraints
    ) -> bool:
        """
        Minimum score check for every hard scored field.

        Args:
            raw_scores: Per-field scores, None where undefined
            constraints: Hard/soft flags

        Returns:
            True if every hard field reaches the threshold
        """
        for score_field in THRESHOLD_FIELDS:
            if not constraints.is_hard(score_field):
                continue

            score = raw_scores.get(score_field.value)
            if score is None:
                if self._undecided():
                    continue
                return False

            if score < self.threshold:
                return False

        return True

    def hard_fields(self, constraints: SearchConstraints) -> List[str]:
        """Names of all fields flagged hard (for logging)."""
        return [f.value for f in ScoreField if constraints.is_hard(f)]
