"""
Tokenizer for filter/sort query strings.

Splits `col:expr@col:expr` into ordered Condition objects.
"""

import logging
from collections.abc import Iterator

from repoql.core.dsl.models import Condition

logger = logging.getLogger(__name__)

DEFAULT_SEPARATOR = "@"


def parse_conditions(
    raw: str | None,
    separator: str = DEFAULT_SEPARATOR,
    limit: int | None = None,
) -> Iterator[Condition]:
    """
    Lazily yield the well-formed conditions of a raw query string.

    Each segment is split on its first ":" only. Segments without a ":"
    or with an empty column or right-hand side are skipped and do not
    count towards `limit`.

    Args:
        raw: The raw query string (e.g. "id:equal_5@name:like_jo").
        separator: Separator between conditions.
        limit: Maximum number of conditions to yield. None means all.

    Yields:
        Condition objects in original order.
    """
    if not raw or (limit is not None and limit < 1):
        return

    produced = 0
    for segment in raw.split(separator):
        column, colon, expr = segment.partition(":")
        if not colon or not column or not expr:
            logger.debug("Skipping malformed condition segment %r", segment)
            continue

        yield Condition(column=column, expr=expr)

        produced += 1
        if limit is not None and produced >= limit:
            return


def split_relation_field(column: str) -> tuple[str, str] | None:
    """
    Split a `relation.field` reference on its first dot.

    Returns None for undotted references or when either half is empty.
    """
    relation, dot, field = column.partition(".")
    if not dot or not relation or not field:
        return None
    return relation, field
