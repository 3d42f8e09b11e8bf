"""
Interfaces the compiler drives.

The compiler never builds SQL text. It only issues the structured
calls below and leaves escaping and parameter binding to the
implementation (see select_query.SelectQuery for the SQLAlchemy one).
"""

from collections.abc import Sequence
from typing import Any, Protocol, runtime_checkable

from repoql.core.relations.config import JoinType


@runtime_checkable
class QueryCapability(Protocol):
    """Structured query-building operations."""

    def where(self, column: str, operator: str, value: Any) -> None: ...

    def or_where(self, column: str, operator: str, value: Any) -> None: ...

    def where_not(self, column: str, operator: str, value: Any) -> None: ...

    def where_in(self, column: str, values: Sequence[Any]) -> None: ...

    def where_not_in(self, column: str, values: Sequence[Any]) -> None: ...

    def where_null(self, column: str) -> None: ...

    def where_not_null(self, column: str) -> None: ...

    def where_between(self, column: str, bounds: Sequence[Any]) -> None: ...

    def where_not_between(self, column: str, bounds: Sequence[Any]) -> None: ...

    def join(
        self,
        table: str,
        first: str,
        operator: str,
        second: str,
        join_type: JoinType = JoinType.INNER,
    ) -> None: ...

    def select(self, columns: Sequence[str]) -> None: ...

    def order_by(self, column: str, direction: str = "ASC") -> None: ...


@runtime_checkable
class SchemaInspector(Protocol):
    """Lists the physical columns of a table."""

    def list_columns(self, table: str) -> list[str]: ...


@runtime_checkable
class ModelMetadata(Protocol):
    """What the compiler needs to know about the base model."""

    def table(self) -> str: ...

    def hidden_attributes(self) -> frozenset[str]: ...
