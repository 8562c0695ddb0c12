"""
Database Session
Engine and session factory for the material store.
"""

import os
from typing import Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from .models import Base

# Get database URL from environment
# Default to a local SQLite file
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./materials.db")


def create_db_engine(url: str = DATABASE_URL, echo: bool = False) -> Engine:
    """
    Create an engine for the given URL.

    SQLite connections are shared across threads (FastAPI runs sync
    dependencies in a worker pool); in-memory SQLite uses a single static
    connection so every session sees the same database.
    """
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url == "sqlite://":
            kwargs["poolclass"] = StaticPool
        return create_engine(url, echo=echo, **kwargs)

    return create_engine(
        url,
        echo=echo,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,  # Verify connections before using
    )


def create_session_factory(engine: Engine) -> sessionmaker:
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


def create_tables(engine: Engine) -> None:
    """Create all tables that do not exist yet."""
    Base.metadata.create_all(bind=engine)


_session_factory: Optional[sessionmaker] = None


def get_session_factory() -> sessionmaker:
    """Session factory bound to DATABASE_URL (created on first use)."""
    global _session_factory
    if _session_factory is None:
        engine = create_db_engine(DATABASE_URL)
        create_tables(engine)
        _session_factory = create_session_factory(engine)
    return _session_factory
