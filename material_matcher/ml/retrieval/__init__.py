"""
Retrieval & Scoring Module
Per-field vector indices, concurrent fan-out, candidate scoring, constraint
filtering and ranking.
"""

from .candidates import Candidate, CandidateScorer, aggregate_candidates, to_breakdown
from .filters import ConstraintFilter
from .index_manager import FieldIndexSet, get_index_manager, reset_index_manager
from .ranking import MaterialRanker, RankedCandidate
from .similarity_search import FanOutResults, SimilarityFanOut
from .vector_index import (
    FAISSVectorIndex,
    IndexEntry,
    IndexMatch,
    VectorIndex,
    VectorIndexError,
)
from .weights import FieldPresence, WeightResolver, detect_field_presence

__all__ = [
    "Candidate",
    "CandidateScorer",
    "aggregate_candidates",
    "to_breakdown",
    "ConstraintFilter",
    "FieldIndexSet",
    "get_index_manager",
    "reset_index_manager",
    "MaterialRanker",
    "RankedCandidate",
    "FanOutResults",
    "SimilarityFanOut",
    "FAISSVectorIndex",
    "IndexEntry",
    "IndexMatch",
    "VectorIndex",
    "VectorIndexError",
    "FieldPresence",
    "WeightResolver",
    "detect_field_presence",
]
