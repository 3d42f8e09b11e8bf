"""Session management for database access."""

from __future__ import annotations

from sqlalchemy.engine import Engine
from sqlalchemy.orm import sessionmaker

from repoql.db.base import get_engine


def get_session_factory(engine: Engine | None = None) -> sessionmaker:
    """Build a session factory bound to the given or configured engine."""

    return sessionmaker(autoflush=False, bind=engine or get_engine())
