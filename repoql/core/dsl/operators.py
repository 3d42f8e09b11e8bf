"""
Operator compiler for the filter/sort grammar.

Maps the expression part of a condition to a Predicate or Order.

Filter grammar (`kind_operands`):
    equal_5             -> EQUAL        [5]
    like_john           -> LIKE         [john]
    between_100,200     -> BETWEEN      [100, 200]
    in_2,3,4            -> IN           [2, 3, 4]
    upper_500           -> GREATER_THAN [500]
    lower_500           -> LESS_THAN    [500]
    is_null             -> IS_NULL      []
    is_not-null         -> IS_NOT_NULL  []
    not_in_2,3,4        -> NOT_IN       [2, 3, 4]
    not_like_john       -> NOT_LIKE     [john]
    not_between_2,6     -> NOT_BETWEEN  [2, 6]
    not_equal_2         -> NOT_EQUAL    [2]
    not_upper_100       -> NOT_UPPER    [100]
    not_lower_200       -> NOT_LOWER    [200]

Anything else compiles to None: invalid fragments never raise.
"""

import logging

from repoql.core.dsl.models import Order, Predicate, PredicateKind, SortDirection

logger = logging.getLogger(__name__)

TOKEN_SEPARATOR = "_"
LIST_SEPARATOR = ","


# -----------------------------
# Kind tables
# -----------------------------

_SINGLE_VALUE_KINDS: dict[str, PredicateKind] = {
    "equal": PredicateKind.EQUAL,
    "like": PredicateKind.LIKE,
    "upper": PredicateKind.GREATER_THAN,
    "lower": PredicateKind.LESS_THAN,
}

_NEGATED_SINGLE_VALUE_KINDS: dict[str, PredicateKind] = {
    "equal": PredicateKind.NOT_EQUAL,
    "like": PredicateKind.NOT_LIKE,
    "upper": PredicateKind.NOT_UPPER,
    "lower": PredicateKind.NOT_LOWER,
}

_IS_KINDS: dict[str, PredicateKind] = {
    "null": PredicateKind.IS_NULL,
    "not-null": PredicateKind.IS_NOT_NULL,
}


# -----------------------------
# Filter side
# -----------------------------


def compile_predicate(column: str, expr: str) -> Predicate | None:
    """
    Compile a filter expression into a Predicate.

    The expression splits on "_". The first token selects the kind and
    the next token is the operand (for "not_" the second token is the
    sub-kind and the third the operand). Trailing tokens are ignored,
    so "like_john_doe" matches on "john".

    Args:
        column: The (already allow-listed) column the predicate applies to.
        expr: Everything after the first ":" of the condition.

    Returns:
        The compiled Predicate, or None when the expression is not valid.
    """
    tokens = expr.split(TOKEN_SEPARATOR)
    head = tokens[0]

    if head == "not":
        predicate = _compile_negated(column, _token(tokens, 1), _token(tokens, 2))
    elif head == "is":
        kind = _IS_KINDS.get(_token(tokens, 1))
        predicate = Predicate(column=column, kind=kind) if kind else None
    else:
        predicate = _compile_positive(column, head, _token(tokens, 1))

    if predicate is None:
        logger.debug("Ignoring unparseable filter %r on column %r", expr, column)
    return predicate


def _token(tokens: list[str], index: int) -> str:
    return tokens[index] if len(tokens) > index else ""


def _compile_positive(column: str, head: str, value: str) -> Predicate | None:
    """Compile the non-negated kinds."""
    if not value:
        return None

    if head in _SINGLE_VALUE_KINDS:
        return Predicate(column=column, kind=_SINGLE_VALUE_KINDS[head], operands=[value])
    if head == "between":
        return Predicate(column=column, kind=PredicateKind.BETWEEN, operands=_bounds(value))
    if head == "in":
        return Predicate(column=column, kind=PredicateKind.IN, operands=_values(value))
    return None


def _compile_negated(column: str, sub_kind: str, value: str) -> Predicate | None:
    """Compile the `not_<kind>_<value>` family."""
    if not value:
        return None

    if sub_kind in _NEGATED_SINGLE_VALUE_KINDS:
        return Predicate(
            column=column,
            kind=_NEGATED_SINGLE_VALUE_KINDS[sub_kind],
            operands=[value],
        )
    if sub_kind == "between":
        return Predicate(column=column, kind=PredicateKind.NOT_BETWEEN, operands=_bounds(value))
    if sub_kind == "in":
        return Predicate(column=column, kind=PredicateKind.NOT_IN, operands=_values(value))
    return None


def _bounds(value: str) -> list[str]:
    """Split `min,max` into exactly two bounds; a missing bound is ""."""
    parts = value.split(LIST_SEPARATOR)
    low = parts[0]
    high = parts[1] if len(parts) > 1 else ""
    return [low, high]


def _values(value: str) -> list[str]:
    """Split a comma list, keeping order."""
    return value.split(LIST_SEPARATOR)


# -----------------------------
# Sort side
# -----------------------------


def compile_order(column: str, expr: str) -> Order | None:
    """
    Compile a sort expression into an Order.

    The direction is case-insensitive and must be ASC or DESC.
    """
    try:
        direction = SortDirection(expr.upper())
    except ValueError:
        logger.debug("Ignoring invalid sort direction %r on column %r", expr, column)
        return None
    return Order(column=column, direction=direction)
