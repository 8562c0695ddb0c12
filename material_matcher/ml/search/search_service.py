"""
Search Service
Multi-field material retrieval: embeds the query, fans out across the
per-field indices, scores, filters and ranks the candidates.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

import numpy as np
from pydantic import ValidationError

from ...models.material import MaterialWithScore, RetrievalQuery, Weights
from ..config import get_ml_config, MLConfig, WeightTable
from ..errors import DependencyError, QueryValidationError
from ..retrieval import (
    CandidateScorer,
    ConstraintFilter,
    FieldIndexSet,
    MaterialRanker,
    RankedCandidate,
    SimilarityFanOut,
    WeightResolver,
    aggregate_candidates,
    detect_field_presence,
    to_breakdown,
)

logger = logging.getLogger(__name__)


@dataclass
class RetrievalResult:
    """Ranked materials plus the weights that influenced them."""

    materials: List[MaterialWithScore]
    weights: Weights

    # Debugging / performance info
    mode: str = "adaptive"
    candidates_considered: int = 0
    candidates_filtered: int = 0
    missing_references: int = 0
    search_time_ms: float = 0.0
    total_time_ms: float = 0.0
    debug_info: Dict[str, Any] = field(default_factory=dict)


def parse_query(payload: Union[RetrievalQuery, Mapping[str, Any]]) -> RetrievalQuery:
    """
    Build a RetrievalQuery, reporting every violated field at once.

    Raises:
        QueryValidationError: If the payload is malformed or out of range
    """
    if isinstance(payload, RetrievalQuery):
        return payload
    try:
        return RetrievalQuery.model_validate(payload)
    except ValidationError as e:
        raise QueryValidationError.from_pydantic(e) from e


def weights_model(table: WeightTable) -> Weights:
    """Convert a WeightTable to the response model (clamped to [0, 1])."""
    return Weights(**{k: max(0.0, min(1.0, v)) for k, v in table.to_dict().items()})


class MaterialSearchService:
    """
    Retrieval pipeline for similar materials.

    Flow per request:
    query -> field presence + weights -> embed -> concurrent fan-out ->
    aggregate -> predicates -> scorers -> thresholds -> rank ->
    resolve stored records -> truncate -> reported weights

    The encoder is any object with ``encode_fields(material) -> Dict[str, ndarray]``;
    the repository passed to ``retrieve`` any object with
    ``get_many(ids) -> Dict[str, Material]``.
    """

    def __init__(
        self,
        index_set: FieldIndexSet,
        encoder,
        config: Optional[MLConfig] = None,
    ):
        """
        Initialize search service.

        Args:
            index_set: Per-field vector indices
            encoder: Text encoder for query fields
            config: ML configuration
        """
        self.config = config or get_ml_config()
        self.index_set = index_set
        self.encoder = encoder

        self.weight_resolver = WeightResolver(self.config.retrieval.default_weights)
        self.fan_out = SimilarityFanOut(index_set, self.config)
        self.scorer = CandidateScorer(self.config)
        self.constraint_filter = ConstraintFilter(self.config)
        self.ranker = MaterialRanker(self.config, self.weight_resolver)

        logger.info(
            f"Material search service initialized "
            f"(fields={index_set.fields}, policy={self.config.retrieval.missing_data_policy.value})"
        )

    async def _embed(self, query: RetrievalQuery) -> Dict[str, np.ndarray]:
        try:
            return await asyncio.to_thread(self.encoder.encode_fields, query.material)
        except DependencyError:
            raise
        except Exception as e:
            logger.error(f"Failed to embed query: {e}")
            raise DependencyError("embedding", f"Failed to embed query: {e}") from e

    async def retrieve(
        self, request: Union[RetrievalQuery, Mapping[str, Any]], repository
    ) -> RetrievalResult:
        """
        Execute a retrieval request.

        Args:
            request: RetrievalQuery or raw payload
            repository: Store resolving material ids to full records

        Returns:
            RetrievalResult with at most top_k materials

        Raises:
            QueryValidationError: Malformed request, raised before any index is queried
            DependencyError: Embedding or index failure, no partial result
        """
        start_time = time.time()
        query = parse_query(request)
        retrieval_config = self.config.retrieval

        presence = detect_field_presence(
            query.material,
            location_epsilon=retrieval_config.location_epsilon,
            min_quality=retrieval_config.min_quality,
        )
        weights = self.weight_resolver.resolve(presence, query.weights)
        mode = "explicit" if query.weights is not None else "adaptive"

        hard_fields = self.constraint_filter.hard_fields(query.constraints)
        if hard_fields:
            logger.debug(f"Hard constraints: {hard_fields}")

        embeddings = await self._embed(query)

        k = query.top_k * retrieval_config.candidate_multiplier
        fan_out = await self.fan_out.search(embeddings, k)

        candidates = aggregate_candidates(fan_out.hits, self.index_set.metadata_field)

        scored: List[RankedCandidate] = []
        for candidate in candidates.values():
            if not self.constraint_filter.passes_predicates(candidate, query):
                continue

            raw_scores = self.scorer.raw_scores(query.material, presence, candidate)
            if not self.constraint_filter.passes_thresholds(raw_scores, query.constraints):
                continue

            scored.append(
                RankedCandidate(
                    material_id=candidate.material_id,
                    breakdown=to_breakdown(raw_scores),
                )
            )

        ranked = self.ranker.rank(scored, weights)

        records = await asyncio.to_thread(repository.get_many, [c.material_id for c in ranked])
        resolved = [c for c in ranked if c.material_id in records]
        missing = len(ranked) - len(resolved)
        if missing:
            logger.debug(
                f"Dropped {missing} candidates without stored record: "
                f"{[c.material_id for c in ranked if c.material_id not in records]}"
            )

        returned, reported = self.ranker.finalize(resolved, query.top_k, weights)

        materials = [
            MaterialWithScore(
                **records[c.material_id].model_dump(),
                score=c.score,
                score_breakdown=c.breakdown,
            )
            for c in returned
        ]

        total_time_ms = (time.time() - start_time) * 1000

        logger.info(
            f"Retrieval ({mode}): {len(candidates)} candidates, "
            f"{len(candidates) - len(scored)} filtered, {len(materials)} returned "
            f"in {total_time_ms:.2f}ms"
        )

        return RetrievalResult(
            materials=materials,
            weights=weights_model(reported),
            mode=mode,
            candidates_considered=len(candidates),
            candidates_filtered=len(candidates) - len(scored),
            missing_references=missing,
            search_time_ms=fan_out.search_time_ms,
            total_time_ms=total_time_ms,
            debug_info={"resolved_weights": weights.to_dict(), "k": k},
        )
