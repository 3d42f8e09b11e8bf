"""
Repository base class.

A repository binds a model to its query-string allow-lists and relation
configs, and exposes filter/sort/search/join plus result and CRUD
operations on top of one query-building session at a time.

Example:
    class UserRepository(Repository[User]):
        model = User
        searchable = ("name", "email")
        filterable = frozenset({"id", "name", "status"})
        sortable = frozenset({"id", "name"})
        relations = {
            "profile": RelationConfig(
                chain={"users.pic_id": "user_pictures.id"},
                select=["user_pictures.path AS photo"],
                filterable=["photo"],
                sortable=["photo"],
            ),
        }

    page = UserRepository(db).filter("profile.photo:like_cat").sort("id:desc").paginate()
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from datetime import datetime, timezone
from typing import Any, ClassVar, Generic, TypeVar

from sqlalchemy import Column, func, inspect, select
from sqlalchemy.orm import Session

from repoql.core.config import Settings, get_settings
from repoql.core.query.columns import ColumnResolver
from repoql.core.query.compiler import CompilerScope, QueryCompiler
from repoql.core.query.joins import JoinApplier
from repoql.core.query.metadata import MetadataInspector, OrmModelMetadata, visible_columns
from repoql.core.query.select_query import SelectQuery
from repoql.core.relations.config import RelationConfig
from repoql.core.relations.resolver import RelationResolver
from repoql.core.session import QuerySession
from repoql.repository.pagination import Page, QueryStrings, SimplePage

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT")
ResultT = TypeVar("ResultT")


# -----------------------------
# Errors
# -----------------------------


class RecordNotFoundError(Exception):
    """Raised when a record looked up by primary key does not exist."""

    pass


# -----------------------------
# Repository
# -----------------------------


class Repository(Generic[ModelT]):
    """
    Base class for model repositories.

    Subclasses set the class attributes below. Instances are cheap and
    not thread-safe: create one per request.
    """

    model: ClassVar[type[Any]]
    searchable: ClassVar[tuple[str, ...]] = ()
    filterable: ClassVar[frozenset[str]] = frozenset()
    sortable: ClassVar[frozenset[str]] = frozenset()
    relations: ClassVar[dict[str, RelationConfig]] = {}
    soft_deletes: ClassVar[bool] = False

    def __init__(self, db: Session, settings: Settings | None = None):
        """
        Initialize the repository.

        Args:
            db: SQLAlchemy session used for execution. The caller owns
                the transaction; writes are flushed, not committed.
            settings: Limits and defaults. Uses get_settings() if not provided.
        """
        self._db = db
        self._settings = settings or get_settings()
        self._meta = OrmModelMetadata(self.model)
        self._inspector = MetadataInspector(self._meta.metadata, db.get_bind())

        table = self._meta.table()
        self._resolver = RelationResolver(table, self.relations)
        self._compiler = QueryCompiler(
            scope=CompilerScope(
                base_table=table,
                filterable=frozenset(self.filterable),
                sortable=frozenset(self.sortable),
                searchable=tuple(self.searchable),
            ),
            columns=ColumnResolver(table, self._resolver),
            joins=JoinApplier(
                self._resolver,
                lambda: visible_columns(
                    self._inspector, self._meta, self._settings.soft_delete_column
                ),
                self._settings.soft_delete_column,
            ),
            settings=self._settings,
        )

        self._session = self._new_session()
        self._strings = QueryStrings()

    # -------------------------
    # Session
    # -------------------------

    @property
    def session(self) -> QuerySession[SelectQuery]:
        return self._session

    @property
    def query(self) -> SelectQuery:
        """The current session's query, for direct structured calls."""
        return self._session.query

    def reset(self) -> Repository[ModelT]:
        """Discard everything built so far in this session."""
        self._session.reset()
        self._strings = QueryStrings()
        return self

    def _new_session(self) -> QuerySession[SelectQuery]:
        return QuerySession(self._new_query)

    def _new_query(self) -> SelectQuery:
        query = SelectQuery(self.model.__table__)
        if self.soft_deletes:
            query.where_null(f"{self._meta.table()}.{self._settings.soft_delete_column}")
        return query

    def _execute(self, runner: Callable[[SelectQuery], ResultT]) -> ResultT:
        try:
            return self._session.execute(runner)
        finally:
            self._session = self._new_session()
            self._strings = QueryStrings()

    # -------------------------
    # Query DSL
    # -------------------------

    def filter(self, raw: str | None = None, limit: int | None = None) -> Repository[ModelT]:
        """
        Filter with a query string.

        The filter string uses a special syntax, such as:
        - "id:equal_1" for equality.
        - "price:between_100,200" for range filtering.
        - "status:is_null" / "status:is_not-null" for NULL checks.
        - "id:in_2,3,4" / "id:not_in_2,3,4" for set membership.
        - "price:upper_500" / "price:lower_500" for open ranges.
        - "name:like_john" / "name:not_like_john" for LIKE matching.
        - "profile.photo:equal_x" for a column exposed by a relation.
        - "@" separates conditions.
        """
        if raw:
            self._strings.filter = raw
            self._compiler.filter(self._session, raw, limit)
        return self

    def sort(self, raw: str | None = None, limit: int | None = None) -> Repository[ModelT]:
        """Sort with a query string such as "name:desc@id:asc"."""
        if raw:
            self._strings.sort = raw
            self._compiler.sort(self._session, raw, limit)
        return self

    def search(self, term: str | None = None) -> Repository[ModelT]:
        """Match `term` against every searchable column with LIKE."""
        if term:
            self._strings.search = term
            self._compiler.search(self._session, term)
        return self

    def join(self, relation: str | RelationConfig) -> Repository[ModelT]:
        self._compiler.join(self._session, relation)
        return self

    def joins(self, relations: Iterable[str | RelationConfig]) -> Repository[ModelT]:
        self._compiler.joins(self._session, relations)
        return self

    def where(self, column: str, operator: str, value: Any) -> Repository[ModelT]:
        """Add a trusted predicate directly (column is not allow-listed)."""
        self._session.building().where(column, operator, value)
        return self

    # -------------------------
    # Results
    # -------------------------

    def get(self) -> list[dict[str, Any]]:
        """Fetch every matching row."""
        return self._execute(lambda query: self._fetch(query.statement))

    def first(self) -> dict[str, Any] | None:
        """Fetch the first matching row, if any."""
        rows = self._execute(lambda query: self._fetch(query.statement.limit(1)))
        return rows[0] if rows else None

    def count(self) -> int:
        """Count matching rows."""
        return self._execute(self._count)

    def paginate(self, per_page: int | None = None, page: int = 1) -> Page:
        """Fetch one page of rows plus the total count."""
        per_page = per_page or self._settings.per_page
        page = max(page, 1)
        strings = self._strings.model_copy()

        def runner(query: SelectQuery) -> Page:
            total = self._count(query)
            statement = query.statement.limit(per_page).offset((page - 1) * per_page)
            return Page(
                items=self._fetch(statement),
                total=total,
                per_page=per_page,
                current_page=page,
                query=strings,
            )

        return self._execute(runner)

    def simple_paginate(self, per_page: int | None = None, page: int = 1) -> SimplePage:
        """Fetch one page of rows without counting the total."""
        per_page = per_page or self._settings.per_page
        page = max(page, 1)
        strings = self._strings.model_copy()

        def runner(query: SelectQuery) -> SimplePage:
            statement = query.statement.limit(per_page + 1).offset((page - 1) * per_page)
            rows = self._fetch(statement)
            return SimplePage(
                items=rows[:per_page],
                per_page=per_page,
                current_page=page,
                has_more=len(rows) > per_page,
                query=strings,
            )

        return self._execute(runner)

    def _fetch(self, statement) -> list[dict[str, Any]]:
        hidden = self._hidden_keys(statement)
        return [
            {key: value for key, value in row.items() if key not in hidden}
            for row in self._db.execute(statement).mappings()
        ]

    def _hidden_keys(self, statement) -> set[str]:
        """Result keys of hidden base-table columns; relation aliases are kept."""
        hidden = self._meta.hidden_attributes()
        base = self.model.__table__
        return {
            column.key
            for column in statement.selected_columns
            if isinstance(column, Column) and column.table is base and column.name in hidden
        }

    def _count(self, query: SelectQuery) -> int:
        subquery = query.statement.order_by(None).subquery()
        return self._db.scalar(select(func.count()).select_from(subquery)) or 0

    # -------------------------
    # CRUD
    # -------------------------

    def get_fillable(self) -> frozenset[str]:
        return self._meta.fillable()

    def find(self, id_: Any) -> ModelT | None:
        """Get a model instance by primary key (soft-deleted rows excluded)."""
        entity = self._db.get(self.model, id_)
        if entity is not None and self.soft_deletes and self._is_trashed(entity):
            return None
        return entity

    def find_or_fail(self, id_: Any) -> ModelT:
        entity = self.find(id_)
        if entity is None:
            raise RecordNotFoundError(f"{self.model.__name__} {id_!r} not found")
        return entity

    def read(self, id_: Any) -> dict[str, Any]:
        """Get one record as a dict; empty when missing."""
        entity = self.find(id_)
        return self.to_dict(entity) if entity is not None else {}

    def index(
        self,
        search: str | None = None,
        filter: str | None = None,
        sort: str | None = None,
        per_page: int | None = None,
        page: int = 1,
    ) -> dict[str, Any]:
        """List records: search, then filter, then sort, then paginate."""
        return (
            self.search(search)
            .filter(filter)
            .sort(sort)
            .simple_paginate(per_page, page)
            .model_dump()
        )

    def create(self, data: Mapping[str, Any]) -> dict[str, Any]:
        """Store a record from the fillable subset of `data`."""
        entity = self.model(**self._fillable_data(data))
        self._db.add(entity)
        self._db.flush()
        self._db.refresh(entity)
        return self.to_dict(entity)

    def update(self, id_: Any, data: Mapping[str, Any]) -> dict[str, Any]:
        """Update a record; empty dict when it does not exist."""
        entity = self.find(id_)
        if entity is None:
            return {}

        for key, value in self._fillable_data(data).items():
            setattr(entity, key, value)
        self._db.flush()
        self._db.refresh(entity)
        return self.to_dict(entity)

    def delete(self, id_: Any) -> bool:
        """Remove a record, or stamp it deleted when soft deletes are on."""
        entity = self.find(id_)
        if entity is None:
            return False

        if self.soft_deletes:
            setattr(entity, self._settings.soft_delete_column, datetime.now(timezone.utc))
        else:
            self._db.delete(entity)
        self._db.flush()
        logger.debug("Deleted %s %r", self.model.__name__, id_)
        return True

    def to_dict(self, entity: Any) -> dict[str, Any]:
        """Column attributes of an entity, minus hidden ones."""
        hidden = self._meta.hidden_attributes()
        return {
            attr.key: getattr(entity, attr.key)
            for attr in inspect(entity).mapper.column_attrs
            if attr.key not in hidden
        }

    def _fillable_data(self, data: Mapping[str, Any]) -> dict[str, Any]:
        fillable = self.get_fillable()
        return {key: value for key, value in data.items() if key in fillable}

    def _is_trashed(self, entity: Any) -> bool:
        return getattr(entity, self._settings.soft_delete_column, None) is not None
