"""
SQLAlchemy ORM Models
Database table definitions using SQLAlchemy ORM.
"""

from sqlalchemy import JSON, TIMESTAMP, Column, String
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class MaterialRecord(Base):
    """
    Stored material.

    The full material is kept as a JSON document (wire format, by alias);
    ``name`` is duplicated into its own column for listing and debugging.
    """

    __tablename__ = "materials"

    id = Column(String(36), primary_key=True, comment="UUID4 assigned at ingestion")
    name = Column(String(512), nullable=False, index=True)
    document = Column(JSON, nullable=False, comment="Full material as JSON")

    # Timestamps
    created_at = Column(TIMESTAMP, nullable=False, server_default=func.now())
    updated_at = Column(TIMESTAMP, nullable=False, server_default=func.now(), onupdate=func.now())

    def __repr__(self):
        return f"<MaterialRecord(id={self.id}, name='{self.name}')>"
