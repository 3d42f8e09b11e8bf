"""Declarative base, engine and session factory."""

from repoql.db.base import Base, get_database_url, get_engine
from repoql.db.session import get_session_factory

__all__ = ["Base", "get_database_url", "get_engine", "get_session_factory"]
