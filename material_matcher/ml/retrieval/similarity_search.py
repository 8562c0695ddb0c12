"""
Similarity Fan-Out
Concurrent k-NN queries across the per-field vector indices.
"""

import asyncio
import logging
import math
import time
from dataclasses import dataclass
from typing import Dict, List, Optional

import numpy as np

from ..config import get_ml_config, MLConfig
from ..errors import DependencyError
from .index_manager import FieldIndexSet
from .vector_index import IndexMatch

logger = logging.getLogger(__name__)


@dataclass
class FanOutResults:
    """Hit lists per field, joined from all sub-queries."""

    hits: Dict[str, List[IndexMatch]]
    k: int
    search_time_ms: float

    @property
    def total_hits(self) -> int:
        return sum(len(h) for h in self.hits.values())


class SimilarityFanOut:
    """
    Issues one nearest-neighbour query per maintained index, concurrently.

    Only the designated metadata index is asked for metadata. All sub-queries
    form a single barrier: the first failure cancels the others and the whole
    call fails, so a partial candidate set is never ranked.
    """

    def __init__(self, index_set: FieldIndexSet, config: Optional[MLConfig] = None):
        """
        Initialize fan-out.

        Args:
            index_set: Per-field vector indices
            config: ML configuration
        """
        self.index_set = index_set
        self.config = config or get_ml_config()

    async def search(self, embeddings: Dict[str, np.ndarray], k: int) -> FanOutResults:
        """
        Query every index that has both an index and a query embedding.

        Args:
            embeddings: Query embedding per field
            k: Candidates requested from each index

        Returns:
            FanOutResults keyed by field

        Raises:
            DependencyError: If any index query fails or returns malformed hits
        """
        start_time = time.time()

        fields = [f for f in self.index_set.fields if embeddings.get(f) is not None]
        if not fields:
            logger.warning("No query embedding matches a maintained index")
            return FanOutResults(hits={}, k=k, search_time_ms=0.0)

        tasks = [
            asyncio.ensure_future(self._query_field(field, embeddings[field], k))
            for field in fields
        ]

        try:
            results = await asyncio.gather(*tasks)
        except asyncio.CancelledError:
            # Caller went away: stop every in-flight sub-query
            for task in tasks:
                task.cancel()
            raise
        except DependencyError:
            for task in tasks:
                task.cancel()
            raise
        except Exception as e:
            for task in tasks:
                task.cancel()
            logger.error(f"Vector index query failed: {e}")
            raise DependencyError(
                "vector_index", "Vector index query failed", details={"error": str(e)}
            ) from e

        hits = dict(zip(fields, results))
        search_time_ms = (time.time() - start_time) * 1000

        logger.debug(
            f"Fan-out over {fields} returned "
            f"{sum(len(h) for h in hits.values())} hits in {search_time_ms:.2f}ms"
        )

        return FanOutResults(hits=hits, k=k, search_time_ms=search_time_ms)

    async def _query_field(self, field: str, vector: np.ndarray, k: int) -> List[IndexMatch]:
        index = self.index_set.get(field)
        return_metadata = field == self.index_set.metadata_field

        matches = await asyncio.to_thread(index.query, vector, k, return_metadata)

        self._validate_matches(field, matches)
        return matches

    def _validate_matches(self, field: str, matches: List[IndexMatch]) -> None:
        """Reject hits a well-behaved index cannot produce."""
        tolerance = self.config.retrieval.score_tolerance

        for match in matches:
            if not match.material_id:
                raise DependencyError(
                    "vector_index", f"Index '{field}' returned a hit without id"
                )
            score = match.score
            if (
                score is None
                or math.isnan(score)
                or score < -tolerance
                or score > 1.0 + tolerance
            ):
                raise DependencyError(
                    "vector_index",
                    f"Index '{field}' returned an out-of-range score",
                    details={"material_id": match.material_id, "score": score},
                )
