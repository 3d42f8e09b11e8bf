"""
Relation Graph Resolver.

Expands a relation's declarative join chain into ordered join steps
and builds its alias map. Both are memoized per relation name.
"""

import logging
import re
from dataclasses import dataclass

from repoql.core.relations.config import JoinType, RelationConfig

logger = logging.getLogger(__name__)

_ALIAS_PATTERN = re.compile(r"\s+as\s+", re.IGNORECASE)


# -----------------------------
# Data structures
# -----------------------------


@dataclass(frozen=True)
class JoinStep:
    """Represents a single join operation."""

    left_table: str
    left_key: str
    right_table: str
    right_key: str

    @property
    def left_column(self) -> str:
        return f"{self.left_table}.{self.left_key}"

    @property
    def right_column(self) -> str:
        return f"{self.right_table}.{self.right_key}"


@dataclass(frozen=True)
class ResolvedRelation:
    """
    Ordered join steps for one relation.

    The first step's left table is always the base model's table.
    """

    name: str
    steps: tuple[JoinStep, ...]  # Use tuple for immutability
    join_type: JoinType = JoinType.INNER

    @property
    def target_table(self) -> str | None:
        """Right table of the last step (where unaliased fields live)."""
        return self.steps[-1].right_table if self.steps else None

    def __bool__(self) -> bool:
        return bool(self.steps)


# -----------------------------
# Helpers
# -----------------------------


def split_reference(reference: str) -> tuple[str, str] | None:
    """Split "table.column" into its halves; None if either is empty."""
    table, dot, column = reference.partition(".")
    if not dot or not table or not column:
        return None
    return table, column


def normalize_select(expression: str) -> str:
    """Normalize the AS keyword of a select entry to lower case."""
    return _ALIAS_PATTERN.sub(" as ", expression.strip())


def split_alias(expression: str) -> tuple[str, str] | None:
    """Split "source AS alias" into (source, alias); None without an alias."""
    parts = _ALIAS_PATTERN.split(expression.strip())
    if len(parts) != 2 or not parts[0] or not parts[1]:
        return None
    return parts[0], parts[1]


# -----------------------------
# Resolver
# -----------------------------


class RelationResolver:
    """
    Resolves relation configs for one base table.

    Caches are derived from configuration only, so they live as long as
    the resolver and survive session resets.
    """

    def __init__(self, base_table: str, relations: dict[str, RelationConfig] | None = None):
        """
        Initialize the resolver.

        Args:
            base_table: Table of the repository's model. Rewrites the
                left table of every chain's first step.
            relations: Relation configs keyed by relation name.
        """
        self._base_table = base_table
        self._relations = dict(relations or {})
        self._resolved: dict[str, ResolvedRelation] = {}
        self._aliases: dict[str, dict[str, str]] = {}

    @property
    def base_table(self) -> str:
        return self._base_table

    def get(self, name: str) -> RelationConfig | None:
        """Get a relation config by name."""
        return self._relations.get(name)

    def resolve(self, relation: str | RelationConfig) -> ResolvedRelation:
        """
        Resolve a registered relation name or an inline config.

        Registered names are memoized; inline configs are resolved on
        every call. Unknown names resolve to an empty relation.
        """
        if isinstance(relation, RelationConfig):
            return self._build("<inline>", relation)

        if relation in self._resolved:
            return self._resolved[relation]

        config = self._relations.get(relation)
        if config is None:
            logger.debug("Relation %r is not configured", relation)
            return ResolvedRelation(name=relation, steps=())

        resolved = self._build(relation, config)
        self._resolved[relation] = resolved
        return resolved

    def aliases(self, relation: str | RelationConfig) -> dict[str, str]:
        """Map each alias of a relation's select list to its source."""
        if isinstance(relation, RelationConfig):
            return self._build_aliases(relation)

        if relation not in self._aliases:
            config = self._relations.get(relation)
            self._aliases[relation] = self._build_aliases(config) if config else {}
        return self._aliases[relation]

    def clear(self) -> None:
        """Drop memoized resolutions."""
        self._resolved.clear()
        self._aliases.clear()

    # -------------------------
    # Builders
    # -------------------------

    def _build(self, name: str, config: RelationConfig) -> ResolvedRelation:
        steps: list[JoinStep] = []

        for left, right in config.chain:
            left_ref = split_reference(left)
            right_ref = split_reference(right)
            if left_ref is None or right_ref is None:
                logger.debug("Dropping malformed pair %r -> %r in relation %r", left, right, name)
                continue

            steps.append(
                JoinStep(
                    left_table=left_ref[0],
                    left_key=left_ref[1],
                    right_table=right_ref[0],
                    right_key=right_ref[1],
                )
            )

        if steps:
            first = steps[0]
            steps[0] = JoinStep(
                left_table=self._base_table,
                left_key=first.left_key,
                right_table=first.right_table,
                right_key=first.right_key,
            )

        return ResolvedRelation(name=name, steps=tuple(steps), join_type=config.join_type)

    @staticmethod
    def _build_aliases(config: RelationConfig) -> dict[str, str]:
        aliases: dict[str, str] = {}
        for expression in config.select:
            pair = split_alias(expression)
            if pair is not None:
                source, alias = pair
                aliases[alias] = source
        return aliases
