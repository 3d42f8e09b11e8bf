"""
Join Applier.

Applies a relation's resolved join chain to a session's query exactly
once per target table, merging selected columns and adding soft-delete
guards along the way.
"""

import logging
from collections.abc import Callable, Iterable

from repoql.core.relations.config import RelationConfig
from repoql.core.relations.resolver import RelationResolver, ResolvedRelation, normalize_select
from repoql.core.session import QuerySession

logger = logging.getLogger(__name__)


class JoinApplier:
    """
    Applies relation joins to query sessions.

    Joins are deduplicated by target table name, so two relations that
    reach the same physical table only join it once.
    """

    def __init__(
        self,
        resolver: RelationResolver,
        visible_columns: Callable[[], list[str]],
        soft_delete_column: str = "deleted_at",
    ):
        """
        Initialize the applier.

        Args:
            resolver: Resolves relation names to join steps.
            visible_columns: Returns the base table's auto-selected
                columns. Called once per session, on the first join.
            soft_delete_column: Column checked by soft-delete guards.
        """
        self._resolver = resolver
        self._visible_columns = visible_columns
        self._soft_delete_column = soft_delete_column

    def apply(self, session: QuerySession, relation: str | RelationConfig) -> ResolvedRelation:
        """
        Ensure a relation's joins are applied to the session.

        Args:
            session: Session whose query and join state are updated.
            relation: Registered relation name or an inline config.

        Returns:
            The resolved relation (empty when nothing can be joined).
        """
        resolved = self._resolver.resolve(relation)
        config = relation if isinstance(relation, RelationConfig) else self._resolver.get(relation)
        if not resolved or config is None:
            return resolved

        state = session.join_state
        selects = [normalize_select(entry) for entry in config.select]
        pending = [step for step in resolved.steps if step.right_table not in state.applied_joins]

        if state.selected_columns and not pending and all(s in state.selected_columns for s in selects):
            return resolved

        query = session.building()

        if not state.selected_columns:
            for column in self._visible_columns():
                state.add_select(column)
        for entry in selects:
            state.add_select(entry)
        if state.selected_columns:
            query.select(list(state.selected_columns))

        soft_delete = config.soft_delete
        for index, step in enumerate(resolved.steps):
            if step.right_table in state.applied_joins:
                continue

            query.join(
                step.right_table,
                step.left_column,
                "=",
                step.right_column,
                resolved.join_type,
            )
            state.applied_joins.add(step.right_table)
            logger.debug(
                "Joined %s on %s = %s (%s)",
                step.right_table,
                step.left_column,
                step.right_column,
                resolved.join_type.value,
            )

            # The first left table is the base model; its own scope governs it
            guarded = [step.right_table]
            if index != 0:
                guarded.insert(0, step.left_table)
            self._guard(session, (t for t in guarded if t in soft_delete))

        return resolved

    def apply_many(self, session: QuerySession, relations: Iterable[str | RelationConfig]) -> None:
        """Apply several relations in order."""
        for relation in relations:
            if isinstance(relation, (str, RelationConfig)):
                self.apply(session, relation)

    def _guard(self, session: QuerySession, tables: Iterable[str]) -> None:
        state = session.join_state
        for table in tables:
            if table in state.guarded_tables:
                continue
            session.building().where_null(f"{table}.{self._soft_delete_column}")
            state.guarded_tables.add(table)
