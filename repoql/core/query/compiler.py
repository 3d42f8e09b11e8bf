"""
Filter/Sort compiler for repositories.

Turns filter, sort and search query strings into Query Capability calls
on a session, triggering relation joins as needed. Malformed or
unauthorized conditions are dropped, never raised.
"""

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

from repoql.core.config import Settings, get_settings
from repoql.core.dsl.models import Order, Predicate, PredicateKind
from repoql.core.dsl.operators import compile_order, compile_predicate
from repoql.core.dsl.tokenizer import parse_conditions
from repoql.core.query.capability import QueryCapability
from repoql.core.query.columns import ColumnResolver
from repoql.core.query.joins import JoinApplier
from repoql.core.relations.config import RelationConfig
from repoql.core.session import QuerySession

logger = logging.getLogger(__name__)


# -----------------------------
# Scope
# -----------------------------


@dataclass(frozen=True)
class CompilerScope:
    """Base table and the columns clients may reference directly."""

    base_table: str
    filterable: frozenset[str] = field(default_factory=frozenset)
    sortable: frozenset[str] = field(default_factory=frozenset)
    searchable: tuple[str, ...] = ()


# -----------------------------
# Compiler
# -----------------------------


class QueryCompiler:
    """
    Compiles query strings onto query sessions.

    Holds no per-session state: join bookkeeping lives on the session,
    relation caches live on the resolver.
    """

    def __init__(
        self,
        scope: CompilerScope,
        columns: ColumnResolver,
        joins: JoinApplier,
        settings: Settings | None = None,
    ):
        """
        Initialize the compiler.

        Args:
            scope: Base table and direct allow-lists.
            columns: Resolves column references.
            joins: Applies relation joins.
            settings: Limits and separator. Uses get_settings() if not provided.
        """
        self._scope = scope
        self._columns = columns
        self._joins = joins
        self._settings = settings or get_settings()

    # -------------------------
    # Public API
    # -------------------------

    def filter(self, session: QuerySession, raw: str | None, limit: int | None = None) -> list[Predicate]:
        """
        Apply a filter string such as "id:in_1,2@profile.photo:like_x".

        Args:
            session: Session to build on.
            raw: The raw filter string.
            limit: Maximum conditions read. Defaults to settings.filter_limit.

        Returns:
            The predicates applied, against their qualified columns.
        """
        if limit is None:
            limit = self._settings.filter_limit

        applied: list[Predicate] = []
        for condition in parse_conditions(raw, self._settings.condition_separator, limit):
            column = self._columns.resolve(
                condition.column,
                self._scope.filterable,
                lambda config: config.filterable,
            )
            if column is None:
                logger.debug("Dropping filter on %r: column not filterable", condition.column)
                continue

            predicate = compile_predicate(column.column, condition.expr)
            if predicate is None:
                continue

            logger.debug(
                "Filtering %r on %s column %s", condition.column, column.source.value, column.column
            )
            if column.relation is not None:
                self._joins.apply(session, column.relation)

            apply_predicate(session.building(), predicate)
            applied.append(predicate)

        return applied

    def sort(self, session: QuerySession, raw: str | None, limit: int | None = None) -> list[Order]:
        """
        Apply a sort string such as "name:desc@id:asc".

        Args:
            session: Session to build on.
            raw: The raw sort string.
            limit: Maximum conditions read. Defaults to settings.sort_limit.

        Returns:
            The orders applied, against their qualified columns.
        """
        if limit is None:
            limit = self._settings.sort_limit

        applied: list[Order] = []
        for condition in parse_conditions(raw, self._settings.condition_separator, limit):
            column = self._columns.resolve(
                condition.column,
                self._scope.sortable,
                lambda config: config.sortable,
            )
            if column is None:
                logger.debug("Dropping sort on %r: column not sortable", condition.column)
                continue

            order = compile_order(column.column, condition.expr)
            if order is None:
                continue

            logger.debug(
                "Sorting %r on %s column %s", condition.column, column.source.value, column.column
            )
            if column.relation is not None:
                self._joins.apply(session, column.relation)

            session.building().order_by(order.column, order.direction.value)
            applied.append(order)

        return applied

    def search(self, session: QuerySession, term: str | None) -> None:
        """OR a LIKE match on every searchable column, as one group."""
        if not term or not self._scope.searchable:
            return

        query = session.building()
        pattern = f"%{term}%"
        for index, column in enumerate(self._scope.searchable):
            qualified = self._columns.qualify(column)
            if index == 0:
                query.where(qualified, "like", pattern)
            else:
                query.or_where(qualified, "like", pattern)

    def join(self, session: QuerySession, relation: str | RelationConfig) -> None:
        self._joins.apply(session, relation)

    def joins(self, session: QuerySession, relations: Iterable[str | RelationConfig]) -> None:
        self._joins.apply_many(session, relations)


# -----------------------------
# Predicate application
# -----------------------------


def apply_predicate(query: QueryCapability, predicate: Predicate) -> None:
    """Translate one Predicate into Query Capability calls."""
    column = predicate.column
    operands = predicate.operands

    match predicate.kind:
        case PredicateKind.EQUAL:
            query.where(column, "=", operands[0])
        case PredicateKind.NOT_EQUAL:
            query.where(column, "!=", operands[0])
        case PredicateKind.LIKE:
            query.where(column, "like", f"%{operands[0]}%")
        case PredicateKind.NOT_LIKE:
            query.where(column, "not like", f"%{operands[0]}%")
        case PredicateKind.GREATER_THAN:
            query.where(column, ">", operands[0])
        case PredicateKind.LESS_THAN:
            query.where(column, "<", operands[0])
        case PredicateKind.NOT_UPPER:
            query.where_not(column, ">", operands[0])
        case PredicateKind.NOT_LOWER:
            query.where_not(column, "<", operands[0])
        case PredicateKind.IN:
            query.where_in(column, operands)
        case PredicateKind.NOT_IN:
            query.where_not_in(column, operands)
        case PredicateKind.IS_NULL:
            query.where_null(column)
        case PredicateKind.IS_NOT_NULL:
            query.where_not_null(column)
        case PredicateKind.BETWEEN:
            low, high = operands
            # An empty bound is absent; "0" is a real bound
            if low != "":
                query.where(column, ">=", low)
            if high != "":
                query.where(column, "<=", high)
        case PredicateKind.NOT_BETWEEN:
            low, high = operands
            if low != "" and high != "":
                query.where_not_between(column, [low, high])
            elif low != "":
                query.where_not(column, ">=", low)
            elif high != "":
                query.where_not(column, "<=", high)
