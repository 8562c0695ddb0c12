"""
Test doubles for the vector indices and the text encoder.
"""

import math
import threading
import time
from typing import Dict, Iterable, List, Optional

import numpy as np

from material_matcher.ml.retrieval import IndexMatch, VectorIndex
from material_matcher.models.material import Location, Material, MaterialBase

TEST_DIM = 8

EARTH_RADIUS_KM = 6371.0


def km_north(location: Location, km: float) -> Location:
    """Point exactly ``km`` kilometers north of ``location`` (same meridian)."""
    return Location(
        latitude=location.latitude + math.degrees(km / EARTH_RADIUS_KM),
        longitude=location.longitude,
    )


class FakeIndex(VectorIndex):
    """
    In-memory index returning preset hits, best first.

    Records every query so tests can check what the fan-out asked for.
    """

    def __init__(
        self,
        field: str,
        matches: Optional[List[IndexMatch]] = None,
        error: Optional[Exception] = None,
        delay: float = 0.0,
    ):
        self.field = field
        self.matches = list(matches or [])
        self.error = error
        self.delay = delay
        self.calls: List[dict] = []
        self.finished = threading.Event()

    def query(self, vector, top_k, return_metadata=False):
        self.calls.append({"top_k": top_k, "return_metadata": return_metadata})
        if self.delay:
            time.sleep(self.delay)
        self.finished.set()
        if self.error is not None:
            raise self.error

        ranked = sorted(self.matches, key=lambda m: -m.score)[:top_k]
        return [
            IndexMatch(
                material_id=m.material_id,
                score=m.score,
                metadata=m.metadata if return_metadata else None,
            )
            for m in ranked
        ]

    def upsert(self, entries) -> int:
        entries = list(entries)
        self.delete(e.material_id for e in entries)
        for entry in entries:
            self.matches.append(IndexMatch(entry.material_id, 1.0, entry.metadata))
        return len(entries)

    def delete(self, material_ids: Iterable[str]) -> int:
        ids = set(material_ids)
        before = len(self.matches)
        self.matches = [m for m in self.matches if m.material_id not in ids]
        return before - len(self.matches)

    def __len__(self) -> int:
        return len(self.matches)


class FakeEncoder:
    """Deterministic encoder: one constant vector per non-empty text field."""

    def __init__(self, dim: int = TEST_DIM, error: Optional[Exception] = None):
        self.dim = dim
        self.error = error
        self.calls = 0

    def _fields(self, material: MaterialBase) -> Dict[str, np.ndarray]:
        fields = {}
        if material.name and material.name.strip():
            fields["name"] = np.ones(self.dim, dtype=np.float32)
        if material.description:
            fields["description"] = np.full(self.dim, 0.5, dtype=np.float32)
        if material.classification is not None and not material.classification.is_empty():
            fields["classification"] = np.full(self.dim, 0.25, dtype=np.float32)
        return fields

    def encode_fields(self, material: MaterialBase) -> Dict[str, np.ndarray]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return self._fields(material)

    def encode_materials(self, materials: List[MaterialBase]) -> List[Dict[str, np.ndarray]]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return [self._fields(m) for m in materials]


def make_material(material_id: str, name: str = "oak beam", **fields) -> Material:
    return Material(id=material_id, name=name, **fields)


def hits_for(
    materials: Iterable[Material], scores: Dict[str, float], with_metadata: bool = True
) -> List[IndexMatch]:
    """Index matches for the given materials with the given similarity per id."""
    return [
        IndexMatch(
            material_id=m.id,
            score=scores[m.id],
            metadata=m.metadata() if with_metadata else None,
        )
        for m in materials
        if m.id in scores
    ]
