"""
Data Ingestion Package
Adds materials to the vector indices and the material store.
"""

from .service import IngestionStats, MaterialIngestionService

__all__ = ["IngestionStats", "MaterialIngestionService"]
