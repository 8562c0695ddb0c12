"""
Vector Index
Per-field k-NN index over material embeddings, backed by FAISS.
"""

from __future__ import annotations

import json
import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional

import numpy as np

try:
    import faiss

    FAISS_AVAILABLE = True
except ImportError:
    FAISS_AVAILABLE = False

from ...models.material import MetaData

logger = logging.getLogger(__name__)


class VectorIndexError(Exception):
    """Exception raised for vector index errors."""

    pass


@dataclass
class IndexEntry:
    """One vector to upsert, optionally with its MetaData projection."""

    material_id: str
    vector: np.ndarray
    metadata: Optional[MetaData] = None


@dataclass
class IndexMatch:
    """Single k-NN hit: cosine similarity in [0, 1] plus optional metadata."""

    material_id: str
    score: float
    metadata: Optional[MetaData] = None


class VectorIndex(ABC):
    """Interface the retrieval pipeline needs from a per-field index."""

    field: str

    @abstractmethod
    def query(
        self, vector: np.ndarray, top_k: int, return_metadata: bool = False
    ) -> List[IndexMatch]:
        """Return up to top_k nearest entries, best first."""

    @abstractmethod
    def upsert(self, entries: Iterable[IndexEntry]) -> int:
        """Insert or replace entries, returns the number written."""

    @abstractmethod
    def delete(self, material_ids: Iterable[str]) -> int:
        """Remove entries, returns the number removed."""

    @abstractmethod
    def __len__(self) -> int:
        ...


class FAISSVectorIndex(VectorIndex):
    """
    Exact inner-product index over L2-normalized vectors.

    FAISS works with int64 ids, so material ids are mapped to an internal
    counter. Reads and writes are serialized through a re-entrant lock; the
    retrieval path only reads.
    """

    INDEX_FILE = "index.faiss"
    MAPPING_FILE = "mapping.json"

    def __init__(self, field: str, dimension: int, normalize: bool = True):
        """
        Initialize an empty index.

        Args:
            field: Name of the embedded field this index serves
            dimension: Embedding dimension
            normalize: L2-normalize vectors on the way in

        Raises:
            VectorIndexError: If FAISS is not available
        """
        if not FAISS_AVAILABLE:
            raise VectorIndexError(
                "FAISS is not installed. Install with: pip install faiss-cpu (or faiss-gpu)"
            )

        self.field = field
        self.dimension = dimension
        self.normalize = normalize

        self.index = faiss.IndexIDMap2(faiss.IndexFlatIP(dimension))
        self.id_mapping: Dict[int, str] = {}  # FAISS id -> material_id
        self.reverse_mapping: Dict[str, int] = {}  # material_id -> FAISS id
        self.metadata: Dict[str, MetaData] = {}
        self._next_id = 0

        self.index_lock = threading.RLock()

    def __len__(self) -> int:
        with self.index_lock:
            return int(self.index.ntotal)

    def _prepare(self, vectors: np.ndarray) -> np.ndarray:
        vectors = np.asarray(vectors, dtype=np.float32)
        if vectors.ndim == 1:
            vectors = vectors.reshape(1, -1)
        if vectors.shape[1] != self.dimension:
            raise VectorIndexError(
                f"Expected {self.dimension}-dim vectors for '{self.field}', "
                f"got {vectors.shape[1]}"
            )
        if self.normalize:
            norms = np.linalg.norm(vectors, axis=1, keepdims=True)
            vectors = vectors / np.maximum(norms, 1e-8)
        return np.ascontiguousarray(vectors)

    def upsert(self, entries: Iterable[IndexEntry]) -> int:
        entries = list(entries)
        if not entries:
            return 0

        vectors = self._prepare(np.vstack([e.vector for e in entries]))

        with self.index_lock:
            self.delete(e.material_id for e in entries)

            faiss_ids = np.arange(self._next_id, self._next_id + len(entries), dtype=np.int64)
            self._next_id += len(entries)

            self.index.add_with_ids(vectors, faiss_ids)

            for faiss_id, entry in zip(faiss_ids, entries):
                self.id_mapping[int(faiss_id)] = entry.material_id
                self.reverse_mapping[entry.material_id] = int(faiss_id)
                if entry.metadata is not None:
                    self.metadata[entry.material_id] = entry.metadata

        logger.debug(f"Upserted {len(entries)} vectors into '{self.field}' index")
        return len(entries)

    def delete(self, material_ids: Iterable[str]) -> int:
        with self.index_lock:
            faiss_ids = []
            for material_id in material_ids:
                faiss_id = self.reverse_mapping.pop(material_id, None)
                if faiss_id is None:
                    continue
                faiss_ids.append(faiss_id)
                self.id_mapping.pop(faiss_id, None)
                self.metadata.pop(material_id, None)

            if faiss_ids:
                self.index.remove_ids(np.array(faiss_ids, dtype=np.int64))

            return len(faiss_ids)

    def query(
        self, vector: np.ndarray, top_k: int, return_metadata: bool = False
    ) -> List[IndexMatch]:
        """
        k-NN search.

        Args:
            vector: Query embedding (1D)
            top_k: Number of neighbours requested
            return_metadata: Attach stored MetaData to each hit

        Returns:
            Matches sorted by similarity, cosine clamped to [0, 1]
        """
        query_vector = self._prepare(vector)

        with self.index_lock:
            k = min(top_k, int(self.index.ntotal))
            if k <= 0:
                return []

            similarities, faiss_ids = self.index.search(query_vector, k)

            matches = []
            for similarity, faiss_id in zip(similarities[0], faiss_ids[0]):
                # FAISS returns -1 for missing results
                if faiss_id == -1:
                    continue

                material_id = self.id_mapping.get(int(faiss_id))
                if material_id is None:
                    logger.warning(f"FAISS id {faiss_id} not found in '{self.field}' mapping")
                    continue

                matches.append(
                    IndexMatch(
                        material_id=material_id,
                        score=max(0.0, min(1.0, float(similarity))),
                        metadata=self.metadata.get(material_id) if return_metadata else None,
                    )
                )

        return matches

    def save(self, directory: Path) -> Path:
        """
        Save index and id mapping to disk.

        Args:
            directory: Parent directory; the index goes to directory/<field>

        Returns:
            Path where the index was saved
        """
        save_path = Path(directory) / self.field
        save_path.mkdir(parents=True, exist_ok=True)

        with self.index_lock:
            faiss.write_index(self.index, str(save_path / self.INDEX_FILE))

            mapping = {
                "field": self.field,
                "dimension": self.dimension,
                "next_id": self._next_id,
                "ids": {str(k): v for k, v in self.id_mapping.items()},
                "metadata": {
                    material_id: meta.model_dump(mode="json", by_alias=True)
                    for material_id, meta in self.metadata.items()
                },
                "saved_at": datetime.now(timezone.utc).isoformat(),
            }

        (save_path / self.MAPPING_FILE).write_text(json.dumps(mapping))
        logger.info(f"Saved '{self.field}' index ({mapping['next_id']} ids) to {save_path}")

        return save_path

    @classmethod
    def load(cls, directory: Path, field: str, normalize: bool = True) -> "FAISSVectorIndex":
        """
        Load an index saved with save().

        Raises:
            VectorIndexError: If the files are missing
        """
        load_path = Path(directory) / field
        index_file = load_path / cls.INDEX_FILE
        mapping_file = load_path / cls.MAPPING_FILE

        if not index_file.exists() or not mapping_file.exists():
            raise VectorIndexError(f"Index files not found in {load_path}")

        mapping = json.loads(mapping_file.read_text())

        instance = cls(field=field, dimension=int(mapping["dimension"]), normalize=normalize)
        instance.index = faiss.read_index(str(index_file))
        instance.id_mapping = {int(k): v for k, v in mapping["ids"].items()}
        instance.reverse_mapping = {v: k for k, v in instance.id_mapping.items()}
        instance.metadata = {
            material_id: MetaData.model_validate(meta)
            for material_id, meta in mapping.get("metadata", {}).items()
        }
        instance._next_id = int(mapping["next_id"])

        logger.info(f"Loaded '{field}' index: {len(instance)} vectors")
        return instance

    def get_stats(self) -> dict:
        with self.index_lock:
            return {
                "field": self.field,
                "num_vectors": int(self.index.ntotal),
                "dimension": self.dimension,
                "with_metadata": len(self.metadata),
                "index_type": "FlatIP",
            }
