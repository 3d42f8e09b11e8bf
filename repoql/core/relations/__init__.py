"""Relation configs and the join-chain resolver."""

from .config import JoinType, RelationConfig
from .resolver import (
    JoinStep,
    RelationResolver,
    ResolvedRelation,
    normalize_select,
    split_alias,
    split_reference,
)

__all__ = [
    "JoinStep",
    "JoinType",
    "RelationConfig",
    "RelationResolver",
    "ResolvedRelation",
    "normalize_select",
    "split_alias",
    "split_reference",
]
