"""
Query-building sessions.

A session owns one query object and the join bookkeeping for it:

    FRESH --build--> BUILDING --execute--> EXECUTED (terminal)
      ^                 |
      +-----reset-------+
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Generic, TypeVar

if TYPE_CHECKING:
    from repoql.core.query.capability import QueryCapability

logger = logging.getLogger(__name__)

QueryT = TypeVar("QueryT", bound="QueryCapability")
ResultT = TypeVar("ResultT")


# -----------------------------
# Errors
# -----------------------------


class SessionStateError(Exception):
    """Raised when a session is used after it has been executed."""

    pass


# -----------------------------
# State
# -----------------------------


class SessionState(str, Enum):
    """Lifecycle states of a query-building session."""

    FRESH = "fresh"
    BUILDING = "building"
    EXECUTED = "executed"


@dataclass
class JoinState:
    """Tables joined and columns selected so far in a session."""

    applied_joins: set[str] = field(default_factory=set)
    selected_columns: list[str] = field(default_factory=list)
    guarded_tables: set[str] = field(default_factory=set)

    def add_select(self, expression: str) -> bool:
        """Append a selected column unless already present."""
        if expression in self.selected_columns:
            return False
        self.selected_columns.append(expression)
        return True

    def clear(self) -> None:
        self.applied_joins.clear()
        self.selected_columns.clear()
        self.guarded_tables.clear()


# -----------------------------
# Session
# -----------------------------


class QuerySession(Generic[QueryT]):
    """
    One query-building lifecycle.

    Not thread-safe: use one session per logical request.
    """

    def __init__(self, query_factory: Callable[[], QueryT]):
        """
        Initialize the session.

        Args:
            query_factory: Builds the fresh query object this session
                owns, at creation and again on every reset.
        """
        self._query_factory = query_factory
        self._query = query_factory()
        self._state = SessionState.FRESH
        self.join_state = JoinState()

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def query(self) -> QueryT:
        """The owned query, without changing state."""
        return self._query

    def building(self) -> QueryT:
        """Enter (or stay in) BUILDING and return the query to mutate."""
        self._ensure_open("build")
        self._state = SessionState.BUILDING
        return self._query

    def execute(self, runner: Callable[[QueryT], ResultT]) -> ResultT:
        """
        Run a result-producing operation and close the session.

        The session is EXECUTED even if the runner raises.
        """
        self._ensure_open("execute")
        self._state = SessionState.EXECUTED
        logger.debug("Executing query session")
        return runner(self._query)

    def reset(self) -> None:
        """Discard the query and join bookkeeping; back to FRESH."""
        self._ensure_open("reset")
        self._query = self._query_factory()
        self.join_state.clear()
        self._state = SessionState.FRESH
        logger.debug("Query session reset")

    def _ensure_open(self, action: str) -> None:
        if self._state is SessionState.EXECUTED:
            raise SessionStateError(
                f"Cannot {action} an executed session; start a new one"
            )
