"""
Material Ingestion
Write path: assigns ids, embeds every material, upserts the per-field index
entries and persists the full records.
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional, Sequence, Union
from uuid import uuid4

from pydantic import ValidationError

from ..ml.config import get_ml_config, MLConfig
from ..ml.errors import MissingReferenceError, QueryValidationError
from ..ml.retrieval import FieldIndexSet
from ..models.material import AddMaterialsRequest, Material, MaterialBase

logger = logging.getLogger(__name__)


@dataclass
class IngestionStats:
    """Statistics for one ingestion batch."""

    materials: List[Material] = field(default_factory=list)
    index_entries: int = 0
    duration_ms: float = 0.0

    @property
    def ids(self) -> List[str]:
        return [m.id for m in self.materials]


class MaterialIngestionService:
    """
    Adds and removes materials.

    Embedding happens before anything is written, so an encoder failure
    leaves both the indices and the store untouched.
    """

    def __init__(
        self,
        index_set: FieldIndexSet,
        encoder,
        config: Optional[MLConfig] = None,
    ):
        """
        Initialize ingestion service.

        Args:
            index_set: Per-field vector indices
            encoder: Object with ``encode_materials(materials)``
            config: ML configuration
        """
        self.config = config or get_ml_config()
        self.index_set = index_set
        self.encoder = encoder

    @staticmethod
    def _validate(
        materials: Sequence[Union[MaterialBase, Mapping[str, Any]]]
    ) -> List[MaterialBase]:
        try:
            return list(AddMaterialsRequest.model_validate({"materials": list(materials)}).materials)
        except ValidationError as e:
            raise QueryValidationError.from_pydantic(e) from e

    def add_materials(
        self,
        materials: Sequence[Union[MaterialBase, Mapping[str, Any]]],
        repository,
    ) -> IngestionStats:
        """
        Ingest a batch of query-form materials.

        Args:
            materials: Materials without ids (models or raw payloads)
            repository: Store for the full records

        Returns:
            IngestionStats with the stored materials and their new ids

        Raises:
            QueryValidationError: If a material is malformed or the batch is empty
            DependencyError: If embedding fails
        """
        start_time = time.time()
        validated = self._validate(materials)

        stored = [Material(id=str(uuid4()), **m.model_dump()) for m in validated]

        embeddings = self.encoder.encode_materials(stored)

        entries = 0
        for material, field_embeddings in zip(stored, embeddings):
            self.index_set.upsert_material(material.id, field_embeddings, material.metadata())
            entries += len(field_embeddings)

        try:
            repository.add_many(stored)
        except Exception as e:
            # Index entries must never outlive a failed store write
            self.index_set.delete_material([m.id for m in stored])
            logger.error(f"Failed to store {len(stored)} materials, index entries rolled back: {e}")
            raise

        if self.config.storage.persist_indices:
            self.index_set.save(self.config.storage.index_dir)

        stats = IngestionStats(
            materials=stored,
            index_entries=entries,
            duration_ms=(time.time() - start_time) * 1000,
        )

        logger.info(
            f"Ingested {len(stored)} materials ({entries} index entries) "
            f"in {stats.duration_ms:.2f}ms"
        )

        return stats

    def remove_material(self, material_id: str, repository) -> None:
        """
        Delete a material from the store and every index.

        Raises:
            MissingReferenceError: If neither the store nor an index knows the id
        """
        removed_entries = self.index_set.delete_material([material_id])
        removed_record = repository.delete(material_id)

        if not removed_entries and not removed_record:
            raise MissingReferenceError(material_id)

        if self.config.storage.persist_indices:
            self.index_set.save(self.config.storage.index_dir)

        logger.info(f"Removed material {material_id} ({removed_entries} index entries)")
