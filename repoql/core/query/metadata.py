"""
Schema introspection and model metadata backed by SQLAlchemy.
"""

from typing import Any

from sqlalchemy import MetaData, inspect
from sqlalchemy.engine import Engine

from repoql.core.query.capability import ModelMetadata, SchemaInspector


class MetadataInspector:
    """
    Lists columns from SQLAlchemy table metadata.

    Falls back to database reflection for tables the metadata does not
    know, when an engine is given.
    """

    def __init__(self, metadata: MetaData, engine: Engine | None = None):
        self._metadata = metadata
        self._engine = engine

    def list_columns(self, table: str) -> list[str]:
        known = self._metadata.tables.get(table)
        if known is not None:
            return [column.name for column in known.columns]
        if self._engine is None:
            return []
        return [column["name"] for column in inspect(self._engine).get_columns(table)]


class OrmModelMetadata:
    """Metadata of a declarative ORM model class."""

    def __init__(self, model: type[Any]):
        self._model = model
        self._table = model.__table__

    @property
    def model(self) -> type[Any]:
        return self._model

    @property
    def metadata(self) -> MetaData:
        return self._table.metadata

    def table(self) -> str:
        return self._table.name

    def hidden_attributes(self) -> frozenset[str]:
        return frozenset(getattr(self._model, "__hidden__", ()) or ())

    def primary_key(self) -> list[str]:
        return [column.name for column in self._table.primary_key.columns]

    def fillable(self) -> frozenset[str]:
        """Declared `__fillable__`, else every non primary key column."""
        declared = getattr(self._model, "__fillable__", None)
        if declared is not None:
            return frozenset(declared)
        primary = set(self.primary_key())
        return frozenset(c.name for c in self._table.columns if c.name not in primary)


def visible_columns(
    inspector: SchemaInspector,
    model: ModelMetadata,
    soft_delete_column: str = "deleted_at",
) -> list[str]:
    """
    Qualified base-table columns that joins select by default.

    Every physical column minus hidden attributes and the soft-delete
    timestamp, in schema order.
    """
    table = model.table()
    excluded = model.hidden_attributes() | {soft_delete_column}
    return [
        f"{table}.{column}"
        for column in inspector.list_columns(table)
        if column not in excluded
    ]
