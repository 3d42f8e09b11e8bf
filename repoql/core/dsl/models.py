"""
Descriptor models for the filter/sort query-string grammar.

The operator compiler emits these; the orchestrator translates them
into Query Capability calls. They describe intent, NOT SQL syntax.
"""

from enum import Enum

from pydantic import BaseModel, Field


# -----------------------------
# Enums
# -----------------------------


class PredicateKind(str, Enum):
    """Predicate kinds a filter condition can compile to."""

    EQUAL = "equal"
    NOT_EQUAL = "not_equal"
    LIKE = "like"
    NOT_LIKE = "not_like"
    BETWEEN = "between"
    NOT_BETWEEN = "not_between"
    IN = "in"
    NOT_IN = "not_in"
    IS_NULL = "is_null"
    IS_NOT_NULL = "is_not_null"
    GREATER_THAN = "upper"
    LESS_THAN = "lower"
    NOT_UPPER = "not_upper"
    NOT_LOWER = "not_lower"


class SortDirection(str, Enum):
    """Sort direction for ORDER BY clauses."""

    ASC = "ASC"
    DESC = "DESC"


# -----------------------------
# Descriptors
# -----------------------------


class Condition(BaseModel):
    """
    One `column:expr` segment of a raw query string.

    Examples:
        id:equal_5        -> Condition(column="id", expr="equal_5")
        profile.photo:asc -> Condition(column="profile.photo", expr="asc")
    """

    column: str
    expr: str

    model_config = {"frozen": True}


class Predicate(BaseModel):
    """
    A compiled WHERE intent.

    Operands are kept as the raw strings from the query string. For
    BETWEEN/NOT_BETWEEN the operands are always [min, max] where an
    absent bound is the empty string.
    """

    column: str
    kind: PredicateKind
    operands: list[str] = Field(default_factory=list)

    model_config = {"frozen": True}


class Order(BaseModel):
    """A compiled ORDER BY intent."""

    column: str
    direction: SortDirection = SortDirection.ASC

    model_config = {"frozen": True}
