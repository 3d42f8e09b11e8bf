"""
Relation configuration.

A relation is a named, declarative description of how to join the
base table to one or more other tables for filtering, sorting and
selection. It is independent of any ORM relationship.

Example:
    RelationConfig(
        chain={"users.pic_id": "user_pictures.id"},
        select=["user_pictures.path AS photo"],
        filterable=["photo"],
        sortable=["photo"],
        soft_delete=["user_pictures"],
    )
"""

from collections.abc import Mapping
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


# -----------------------------
# Enums
# -----------------------------


class JoinType(str, Enum):
    """Supported SQL join types."""

    INNER = "inner"
    LEFT = "left"
    RIGHT = "right"


# -----------------------------
# Relation Config
# -----------------------------


class RelationConfig(BaseModel):
    """
    Declarative join chain plus the columns it exposes.

    `chain` is an ordered list of `(left, right)` references, each of the
    form "table.column". A mapping is accepted too and keeps its order.
    Malformed pairs are kept here and dropped by the resolver.
    """

    chain: list[tuple[str, str]] = Field(
        default_factory=list,
        description="Ordered join key pairs: (left table.column, right table.column)",
    )
    select: list[str] = Field(
        default_factory=list,
        description="Selected columns, 'source AS alias' or raw expressions",
    )
    filterable: frozenset[str] = Field(
        default_factory=frozenset,
        description="Alias/column names allowed in filter strings",
    )
    sortable: frozenset[str] = Field(
        default_factory=frozenset,
        description="Alias/column names allowed in sort strings",
    )
    soft_delete: frozenset[str] = Field(
        default_factory=frozenset,
        description="Tables whose soft-deleted rows are excluded",
    )
    join_type: JoinType = JoinType.INNER

    model_config = {"frozen": True}

    @field_validator("chain", mode="before")
    @classmethod
    def chain_from_mapping(cls, v: Any) -> Any:
        if isinstance(v, Mapping):
            return list(v.items())
        return v

    @field_validator("join_type", mode="before")
    @classmethod
    def normalize_join_type(cls, v: Any) -> Any:
        if isinstance(v, str):
            return v.lower()
        return v
