"""
Database Layer
SQLAlchemy models, sessions and the material repository.
"""

from .models import Base, MaterialRecord
from .repository import MaterialRepository
from .session import create_db_engine, create_session_factory, create_tables, get_session_factory

__all__ = [
    "Base",
    "MaterialRecord",
    "MaterialRepository",
    "create_db_engine",
    "create_session_factory",
    "create_tables",
    "get_session_factory",
]
