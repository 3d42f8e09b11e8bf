"""SQLAlchemy base and engine configuration."""

from __future__ import annotations

from typing import ClassVar

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.pool import StaticPool

from repoql.core.config import get_settings


def get_database_url() -> str:
    """Return the database URL from settings (REPOQL_DATABASE_URL)."""

    return get_settings().database_url


class Base(DeclarativeBase):
    """
    Declarative base for repository models.

    `__hidden__` lists attributes left out of auto-selected columns and
    serialized rows; `__fillable__` lists attributes create/update may
    write (None means every non primary key column).
    """

    __hidden__: ClassVar[frozenset[str]] = frozenset()
    __fillable__: ClassVar[frozenset[str] | None] = None


def get_engine(url: str | None = None) -> Engine:
    """Create a SQLAlchemy engine for the configured database."""

    url = url or get_database_url()
    if url.startswith("sqlite") and ":memory:" in url:
        # One shared connection, or every checkout sees an empty database
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    return create_engine(url)
