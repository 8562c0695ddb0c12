"""
Material Repository
Reads and writes full material records by identifier.
"""

import logging
from typing import Dict, Iterable, List

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from ..ml.errors import MissingReferenceError
from ..models.material import Material
from .models import MaterialRecord

logger = logging.getLogger(__name__)


class MaterialRepository:
    """
    Persistence collaborator for stored materials.

    The retrieval engine only reads through ``get_many``; writes come from
    the ingestion path.
    """

    def __init__(self, session: Session):
        self.session = session

    def add_many(self, materials: Iterable[Material]) -> int:
        """
        Insert or replace materials.

        Args:
            materials: Stored-form materials (with ids)

        Returns:
            Number of records written
        """
        count = 0
        for material in materials:
            self.session.merge(
                MaterialRecord(
                    id=material.id,
                    name=material.name,
                    document=material.model_dump(mode="json", by_alias=True),
                )
            )
            count += 1

        self.session.commit()
        logger.debug(f"Stored {count} material records")
        return count

    def get(self, material_id: str) -> Material:
        """
        Load one material.

        Raises:
            MissingReferenceError: If no record has this id
        """
        record = self.session.get(MaterialRecord, material_id)
        if record is None:
            raise MissingReferenceError(material_id)
        return Material.model_validate(record.document)

    def get_many(self, material_ids: List[str]) -> Dict[str, Material]:
        """
        Load several materials in one query.

        Ids without a record are skipped, so the result may be shorter than
        the input. Keys follow the order of ``material_ids``.
        """
        if not material_ids:
            return {}

        rows = self.session.execute(
            select(MaterialRecord).where(MaterialRecord.id.in_(material_ids))
        ).scalars()
        found = {row.id: Material.model_validate(row.document) for row in rows}

        return {mid: found[mid] for mid in material_ids if mid in found}

    def delete(self, material_id: str) -> bool:
        """Delete a record; returns False if it did not exist."""
        result = self.session.execute(
            delete(MaterialRecord).where(MaterialRecord.id == material_id)
        )
        self.session.commit()
        return result.rowcount > 0

    def count(self) -> int:
        return self.session.query(MaterialRecord).count()
