"""
Material Ranking
Combines per-field scores into one ranking value and orders candidates.

Ranking Formula:
score = sum(weight_f × score_f) over fields with nonzero weight
(divided by the weight sum unless the weights are already normalized)
"""

import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from ...models.material import ScoreBreakdown
from ..config import get_ml_config, MLConfig, WeightTable
from .scoring import weighted_combine
from .weights import WeightResolver

logger = logging.getLogger(__name__)


@dataclass
class RankedCandidate:
    """Candidate that survived filtering, with its breakdown and combined score."""

    material_id: str
    breakdown: ScoreBreakdown
    score: float = 0.0
    rank: int = -1


class MaterialRanker:
    """
    Orders candidates by combined score.

    Ties are broken by material id so identical inputs always produce the same
    order.
    """

    def __init__(
        self,
        config: Optional[MLConfig] = None,
        weight_resolver: Optional[WeightResolver] = None,
    ):
        """
        Initialize ranker.

        Args:
            config: ML configuration
            weight_resolver: Resolver used for the reported weights
        """
        self.config = config or get_ml_config()
        self.weight_resolver = weight_resolver or WeightResolver(
            self.config.retrieval.default_weights
        )

    def combined_score(self, breakdown: ScoreBreakdown, weights: WeightTable) -> float:
        """Weighted combination of a breakdown; 0 when every weight is 0."""
        pairs = [
            (getattr(breakdown, name), weight)
            for name, weight in weights.to_dict().items()
            if weight > 0
        ]
        score = weighted_combine(pairs, tolerance=self.config.retrieval.normalization_tolerance)
        return max(0.0, min(1.0, score))

    def rank(
        self, scored: List[RankedCandidate], weights: WeightTable
    ) -> List[RankedCandidate]:
        """
        Compute combined scores and sort.

        Args:
            scored: Candidates with their breakdowns
            weights: Resolved weights for this query

        Returns:
            New list sorted by score descending, then material id ascending
        """
        for candidate in scored:
            candidate.score = self.combined_score(candidate.breakdown, weights)

        ranked = sorted(scored, key=lambda c: (-c.score, c.material_id))

        for i, candidate in enumerate(ranked):
            candidate.rank = i

        logger.debug(f"Ranked {len(ranked)} candidates")

        return ranked

    def finalize(
        self, ranked: List[RankedCandidate], top_k: int, weights: WeightTable
    ) -> Tuple[List[RankedCandidate], WeightTable]:
        """
        Truncate to top_k and derive the reported weights.

        Args:
            ranked: Candidates in rank order
            top_k: Number of results to return (1-10)
            weights: Weights used for ranking

        Returns:
            Tuple of (returned candidates, reported weights)
        """
        if top_k < 1:
            raise ValueError(f"top_k must be >= 1, got {top_k}")

        returned = ranked[:top_k]
        reported = self.weight_resolver.reported(weights, [c.breakdown for c in returned])

        return returned, reported

    def explain_ranking(self, candidate: RankedCandidate, weights: WeightTable) -> str:
        """
        Generate human-readable explanation of a ranking score.

        Args:
            candidate: Ranked candidate
            weights: Weights the candidate was ranked with

        Returns:
            Explanation string
        """
        explanation = f"Material {candidate.material_id} (Rank {candidate.rank + 1})\n"
        explanation += f"  Final Score: {candidate.score:.4f}\n"
        explanation += "  Components:\n"

        for name, weight in weights.to_dict().items():
            value = getattr(candidate.breakdown, name)
            explanation += (
                f"    {name.capitalize() + ':':<14} {value:.4f} × {weight:.4f} "
                f"= {value * weight:.4f}\n"
            )

        return explanation
