"""
Column Resolver.

Decides whether a column reference from a query string is a direct
model column, a relation alias, or a raw column on a relation's last
joined table.
"""

from collections.abc import Callable, Collection
from dataclasses import dataclass
from enum import Enum

from repoql.core.dsl.tokenizer import split_relation_field
from repoql.core.relations.config import RelationConfig
from repoql.core.relations.resolver import RelationResolver


class ColumnSource(str, Enum):
    """Where a resolved column comes from."""

    DIRECT = "direct"
    ALIAS = "alias"
    RELATION = "relation"


@dataclass(frozen=True)
class ResolvedColumn:
    """A query-string column resolved to a qualified column."""

    column: str
    source: ColumnSource
    relation: str | None = None


class ColumnResolver:
    """Resolves column references against allow-lists and relations."""

    def __init__(self, base_table: str, resolver: RelationResolver):
        self._base_table = base_table
        self._resolver = resolver

    def qualify(self, column: str) -> str:
        """Prefix undotted columns with the base table."""
        if "." in column:
            return column
        return f"{self._base_table}.{column}"

    def resolve(
        self,
        column: str,
        allowed: Collection[str],
        relation_allowed: Callable[[RelationConfig], Collection[str]],
    ) -> ResolvedColumn | None:
        """
        Resolve a column reference, or None when it may not be used.

        Args:
            column: Column exactly as it appeared in the query string.
            allowed: Direct allow-list of the repository.
            relation_allowed: Picks the allow-list from a relation config
                (its filterable or sortable set).
        """
        if column in allowed:
            return ResolvedColumn(column=self.qualify(column), source=ColumnSource.DIRECT)

        parts = split_relation_field(column)
        if parts is None:
            return None
        name, field_name = parts

        config = self._resolver.get(name)
        if config is None or field_name not in relation_allowed(config):
            return None

        return self.resolve_relation_field(name, field_name)

    def resolve_relation_field(self, relation: str, field_name: str) -> ResolvedColumn | None:
        """Resolve a field through the relation's aliases, then its last table."""
        resolved = self._resolver.resolve(relation)
        if not resolved:
            return None

        source = self._resolver.aliases(relation).get(field_name)
        if source is not None:
            return ResolvedColumn(column=source, source=ColumnSource.ALIAS, relation=relation)

        return ResolvedColumn(
            column=f"{resolved.target_table}.{field_name}",
            source=ColumnSource.RELATION,
            relation=relation,
        )
