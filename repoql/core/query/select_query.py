"""
SQLAlchemy implementation of the Query Capability.

Accumulates joins, predicates, selected columns and ordering, and
renders them into a single SQLAlchemy Select on demand.
"""

import operator as op
import re
from collections.abc import Callable, Sequence
from typing import Any

from sqlalchemy import Table, literal_column, not_, or_, select
from sqlalchemy.sql import Select
from sqlalchemy.sql.elements import ColumnElement
from sqlalchemy.sql.selectable import FromClause

from repoql.core.relations.config import JoinType
from repoql.core.relations.resolver import split_alias

_REFERENCE_PATTERN = re.compile(r"^(\w+)\.(\w+)$")


# -----------------------------
# Errors
# -----------------------------


class QueryBuildError(Exception):
    """Raised when a structured query call cannot be honoured."""

    pass


class UnknownColumnError(QueryBuildError):
    """Raised when a table or column is not in the schema metadata."""

    pass


class UnsupportedOperatorError(QueryBuildError):
    """Raised for comparison operators the builder does not know."""

    pass


# -----------------------------
# Operators
# -----------------------------

_COMPARISONS: dict[str, Callable[[ColumnElement, Any], ColumnElement]] = {
    "=": op.eq,
    "!=": op.ne,
    "<>": op.ne,
    ">": op.gt,
    ">=": op.ge,
    "<": op.lt,
    "<=": op.le,
    "like": lambda column, value: column.like(value),
    "not like": lambda column, value: column.not_like(value),
}


# -----------------------------
# Select Query
# -----------------------------


class SelectQuery:
    """
    Builds one SQLAlchemy Select for a base table.

    Column references are "table.column" strings resolved against the
    base table's MetaData; undotted names resolve to the base table.
    """

    def __init__(self, base: Table):
        """
        Initialize the query.

        Args:
            base: Table the query selects from. Every table referenced
                later must live in the same MetaData.
        """
        self._base = base
        self._tables = base.metadata.tables
        self._columns: list[ColumnElement] = []
        self._from: FromClause = base
        self._where: list[ColumnElement] = []
        self._order: list[ColumnElement] = []

    @property
    def base_table(self) -> Table:
        return self._base

    @property
    def statement(self) -> Select:
        """Render the accumulated operations."""
        stmt = select(*(self._columns or [self._base])).select_from(self._from)
        if self._where:
            stmt = stmt.where(*self._where)
        if self._order:
            stmt = stmt.order_by(*self._order)
        return stmt

    # -------------------------
    # Predicates
    # -------------------------

    def where(self, column: str, operator: str, value: Any) -> None:
        self._where.append(self._compare(column, operator, value))

    def or_where(self, column: str, operator: str, value: Any) -> None:
        """OR the comparison into the most recent predicate."""
        clause = self._compare(column, operator, value)
        if self._where:
            self._where[-1] = or_(self._where[-1], clause)
        else:
            self._where.append(clause)

    def where_not(self, column: str, operator: str, value: Any) -> None:
        self._where.append(not_(self._compare(column, operator, value)))

    def where_in(self, column: str, values: Sequence[Any]) -> None:
        self._where.append(self._column(column).in_(list(values)))

    def where_not_in(self, column: str, values: Sequence[Any]) -> None:
        self._where.append(self._column(column).not_in(list(values)))

    def where_null(self, column: str) -> None:
        self._where.append(self._column(column).is_(None))

    def where_not_null(self, column: str) -> None:
        self._where.append(self._column(column).is_not(None))

    def where_between(self, column: str, bounds: Sequence[Any]) -> None:
        low, high = bounds
        self._where.append(self._column(column).between(low, high))

    def where_not_between(self, column: str, bounds: Sequence[Any]) -> None:
        low, high = bounds
        self._where.append(not_(self._column(column).between(low, high)))

    # -------------------------
    # Joins, selects, ordering
    # -------------------------

    def join(
        self,
        table: str,
        first: str,
        operator: str,
        second: str,
        join_type: JoinType = JoinType.INNER,
    ) -> None:
        right = self._table(table)
        onclause = self._compare_columns(first, operator, second)

        match JoinType(join_type):
            case JoinType.INNER:
                self._from = self._from.join(right, onclause)
            case JoinType.LEFT:
                self._from = self._from.join(right, onclause, isouter=True)
            case JoinType.RIGHT:
                # A RIGHT JOIN B == B LEFT JOIN A
                self._from = right.join(self._from, onclause, isouter=True)

    def select(self, columns: Sequence[str]) -> None:
        """Replace the selected columns."""
        self._columns = [self._select_expression(entry) for entry in columns]

    def order_by(self, column: str, direction: str = "ASC") -> None:
        resolved = self._column(column)
        self._order.append(resolved.desc() if direction.upper() == "DESC" else resolved.asc())

    # -------------------------
    # Resolution
    # -------------------------

    def _table(self, name: str) -> Table:
        table = self._tables.get(name)
        if table is None:
            raise UnknownColumnError(f"Unknown table '{name}'")
        return table

    def _column(self, reference: str) -> ColumnElement:
        table_name, dot, column_name = reference.partition(".")
        if not dot:
            table_name, column_name = self._base.name, reference

        table = self._table(table_name)
        if column_name not in table.c:
            raise UnknownColumnError(f"Unknown column '{table_name}.{column_name}'")
        return table.c[column_name]

    def _select_expression(self, entry: str) -> ColumnElement:
        pair = split_alias(entry)
        if pair is not None:
            source, alias = pair
            return self._expression(source).label(alias)
        return self._expression(entry)

    def _expression(self, source: str) -> ColumnElement:
        """Plain references resolve strictly; anything else is raw SQL."""
        if _REFERENCE_PATTERN.match(source.strip()):
            return self._column(source.strip())
        return literal_column(source)

    def _compare(self, column: str, operator: str, value: Any) -> ColumnElement:
        return self._comparison(operator)(self._column(column), value)

    def _compare_columns(self, first: str, operator: str, second: str) -> ColumnElement:
        return self._comparison(operator)(self._column(first), self._column(second))

    @staticmethod
    def _comparison(operator: str) -> Callable[[ColumnElement, Any], ColumnElement]:
        comparison = _COMPARISONS.get(operator.lower())
        if comparison is None:
            raise UnsupportedOperatorError(f"Unsupported operator: {operator}")
        return comparison


def get_sql_string(statement: Select, literal_binds: bool = False) -> str:
    """
    Get the SQL string from a SQLAlchemy statement.

    Args:
        statement: SQLAlchemy Select statement.
        literal_binds: Inline bound values instead of placeholders.

    Returns:
        SQL string.
    """
    if literal_binds:
        return str(statement.compile(compile_kwargs={"literal_binds": True}))
    return str(statement.compile())
