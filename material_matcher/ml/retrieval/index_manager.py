"""
Field Index Manager
Owns one vector index per embedded field and the lifecycle of the set:
creation, upserts from ingestion, deletion, persistence and stats.
"""

import logging
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import numpy as np

from ...models.material import MetaData, VectorField
from ..config import get_ml_config, MLConfig
from .vector_index import FAISSVectorIndex, IndexEntry, VectorIndex, VectorIndexError

logger = logging.getLogger(__name__)


class FieldIndexSet:
    """
    The set of per-field vector indices.

    Exactly one field (by default ``name``) is the designated metadata
    carrier: its entries hold the MetaData projection so retrieval does not
    need a storage round-trip per candidate.
    """

    def __init__(
        self,
        indices: Dict[str, VectorIndex],
        metadata_field: str = VectorField.NAME.value,
    ):
        if metadata_field not in indices:
            raise ValueError(f"Metadata field '{metadata_field}' has no index")

        self.indices = dict(indices)
        self.metadata_field = metadata_field
        self._write_lock = threading.RLock()

        logger.info(
            f"Field index set initialized: fields={list(self.indices)}, "
            f"metadata_field={metadata_field}"
        )

    @classmethod
    def create(cls, config: Optional[MLConfig] = None) -> "FieldIndexSet":
        """Create empty FAISS indices for every maintained field."""
        config = config or get_ml_config()

        fields = [VectorField.NAME.value, VectorField.DESCRIPTION.value]
        if config.storage.enable_classification_index:
            fields.append(VectorField.CLASSIFICATION.value)

        indices = {
            field: FAISSVectorIndex(
                field=field,
                dimension=config.embedding.text_embedding_dim,
                normalize=config.embedding.normalize_embeddings,
            )
            for field in fields
        }
        return cls(indices, metadata_field=config.storage.metadata_field)

    @classmethod
    def load_or_create(cls, config: Optional[MLConfig] = None) -> "FieldIndexSet":
        """Restore indices from the configured directory, or start empty."""
        config = config or get_ml_config()
        index_set = cls.create(config)

        index_dir = config.storage.index_dir
        if not Path(index_dir).exists():
            logger.info(f"No saved indices at {index_dir}, starting empty")
            return index_set

        for field in list(index_set.indices):
            try:
                index_set.indices[field] = FAISSVectorIndex.load(
                    index_dir, field, normalize=config.embedding.normalize_embeddings
                )
            except VectorIndexError as e:
                logger.warning(f"Could not load '{field}' index, starting empty: {e}")

        return index_set

    @property
    def fields(self) -> List[str]:
        return list(self.indices)

    def get(self, field: str) -> Optional[VectorIndex]:
        return self.indices.get(field)

    def upsert_material(
        self,
        material_id: str,
        embeddings: Dict[str, np.ndarray],
        metadata: MetaData,
    ) -> None:
        """
        Write one entry per embedded field for a material.

        Fields without an embedding lose any previous entry so re-ingesting a
        material never leaves stale vectors behind.
        """
        with self._write_lock:
            for field, index in self.indices.items():
                vector = embeddings.get(field)
                if vector is None:
                    index.delete([material_id])
                    continue

                index.upsert(
                    [
                        IndexEntry(
                            material_id=material_id,
                            vector=vector,
                            metadata=metadata if field == self.metadata_field else None,
                        )
                    ]
                )

    def delete_material(self, material_ids: Iterable[str]) -> int:
        """Remove materials from every index; returns entries removed."""
        material_ids = list(material_ids)
        with self._write_lock:
            return sum(index.delete(material_ids) for index in self.indices.values())

    def save(self, directory: Optional[Path] = None) -> None:
        directory = Path(directory or get_ml_config().storage.index_dir)
        with self._write_lock:
            for index in self.indices.values():
                if isinstance(index, FAISSVectorIndex):
                    index.save(directory)

    def get_stats(self) -> dict:
        """
        Get index statistics.

        Returns:
            Dictionary with per-field stats
        """
        per_field = {}
        for field, index in self.indices.items():
            if hasattr(index, "get_stats"):
                per_field[field] = index.get_stats()
            else:
                per_field[field] = {"num_vectors": len(index)}

        return {
            "status": "loaded",
            "metadata_field": self.metadata_field,
            "num_vectors": sum(stats["num_vectors"] for stats in per_field.values()),
            "fields": per_field,
        }


# Global instance accessor
_manager_instance: Optional[FieldIndexSet] = None
_manager_lock = threading.Lock()


def get_index_manager(config: Optional[MLConfig] = None) -> FieldIndexSet:
    """Get global field index set."""
    global _manager_instance
    if _manager_instance is None:
        with _manager_lock:
            if _manager_instance is None:
                _manager_instance = FieldIndexSet.load_or_create(config)
    return _manager_instance


def reset_index_manager() -> None:
    """Drop the global index set (useful for testing)."""
    global _manager_instance
    _manager_instance = None
