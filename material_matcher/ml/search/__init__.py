"""
Search Service Module
Multi-field material retrieval pipeline.
"""

from .search_service import MaterialSearchService, RetrievalResult, parse_query, weights_model

__all__ = [
    "MaterialSearchService",
    "RetrievalResult",
    "parse_query",
    "weights_model",
]
