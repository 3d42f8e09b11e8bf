"""
Tests for the Filter/Sort compiler.

Runs the compiler against a recording Query Capability so the exact
sequence of structured calls can be asserted.
"""

import logging
from collections.abc import Sequence
from typing import Any

import pytest

from repoql.core.config import Settings
from repoql.core.dsl.models import PredicateKind
from repoql.core.query.capability import QueryCapability
from repoql.core.query.columns import ColumnResolver, ColumnSource
from repoql.core.query.compiler import CompilerScope, QueryCompiler
from repoql.core.query.joins import JoinApplier
from repoql.core.relations.config import JoinType, RelationConfig
from repoql.core.relations.resolver import RelationResolver
from repoql.core.session import QuerySession, SessionState


# -----------------------------
# Recording query
# -----------------------------


class RecordingQuery:
    """Query Capability that records every call."""

    def __init__(self) -> None:
        self.calls: list[tuple] = []

    def where(self, column: str, operator: str, value: Any) -> None:
        self.calls.append(("where", column, operator, value))

    def or_where(self, column: str, operator: str, value: Any) -> None:
        self.calls.append(("or_where", column, operator, value))

    def where_not(self, column: str, operator: str, value: Any) -> None:
        self.calls.append(("where_not", column, operator, value))

    def where_in(self, column: str, values: Sequence[Any]) -> None:
        self.calls.append(("where_in", column, list(values)))

    def where_not_in(self, column: str, values: Sequence[Any]) -> None:
        self.calls.append(("where_not_in", column, list(values)))

    def where_null(self, column: str) -> None:
        self.calls.append(("where_null", column))

    def where_not_null(self, column: str) -> None:
        self.calls.append(("where_not_null", column))

    def where_between(self, column: str, bounds: Sequence[Any]) -> None:
        self.calls.append(("where_between", column, list(bounds)))

    def where_not_between(self, column: str, bounds: Sequence[Any]) -> None:
        self.calls.append(("where_not_between", column, list(bounds)))

    def join(self, table, first, operator, second, join_type=JoinType.INNER) -> None:
        self.calls.append(("join", table, first, operator, second, JoinType(join_type)))

    def select(self, columns: Sequence[str]) -> None:
        self.calls.append(("select", list(columns)))

    def order_by(self, column: str, direction: str = "ASC") -> None:
        self.calls.append(("order_by", column, direction))

    def of(self, name: str) -> list[tuple]:
        return [call for call in self.calls if call[0] == name]


# -----------------------------
# Fixtures
# -----------------------------


VISIBLE = ["users.id", "users.name", "users.pic_id"]


@pytest.fixture
def relations() -> dict[str, RelationConfig]:
    return {
        "profile": RelationConfig(
            chain={"users.pic_id": "user_pictures.id"},
            select=["user_pictures.path AS photo"],
            filterable=["photo", "size"],
            sortable=["photo"],
            soft_delete=["user_pictures"],
        ),
        "avatar": RelationConfig(
            chain={"users.pic_id": "user_pictures.id"},
            select=["user_pictures.width as width"],
            filterable=["width"],
        ),
        "country": RelationConfig(
            chain=[
                ("users.address_id", "addresses.id"),
                ("addresses.country_id", "countries.id"),
            ],
            select=["countries.name AS country_name"],
            filterable=["country_name", "code"],
            sortable=["country_name"],
            soft_delete=["addresses", "countries"],
            join_type=JoinType.LEFT,
        ),
        "broken": RelationConfig(chain={"users.": "x.id"}, filterable=["anything"]),
    }


@pytest.fixture
def visible_calls() -> list[int]:
    return []


@pytest.fixture
def compiler(relations: dict[str, RelationConfig], visible_calls: list[int]) -> QueryCompiler:
    resolver = RelationResolver("users", relations)

    def visible() -> list[str]:
        visible_calls.append(1)
        return list(VISIBLE)

    return QueryCompiler(
        scope=CompilerScope(
            base_table="users",
            filterable=frozenset({"id", "name", "status", "price", "users.email"}),
            sortable=frozenset({"id", "name"}),
            searchable=("name", "email"),
        ),
        columns=ColumnResolver("users", resolver),
        joins=JoinApplier(resolver, visible, "deleted_at"),
        settings=Settings(),
    )


@pytest.fixture
def session() -> QuerySession[RecordingQuery]:
    return QuerySession(RecordingQuery)


# -----------------------------
# Direct filters
# -----------------------------


class TestDirectFilters:
    """Filters on the repository's own allow-listed columns."""

    def test_equal_is_qualified(self, compiler: QueryCompiler, session: QuerySession) -> None:
        compiler.filter(session, "id:equal_5")
        assert session.query.calls == [("where", "users.id", "=", "5")]

    def test_dotted_direct_column_kept(self, compiler: QueryCompiler, session: QuerySession) -> None:
        compiler.filter(session, "users.email:like_gmail")
        assert session.query.calls == [("where", "users.email", "like", "%gmail%")]

    def test_not_allow_listed_is_dropped(self, compiler: QueryCompiler, session: QuerySession) -> None:
        compiler.filter(session, "password:equal_x")
        assert session.query.calls == []
        assert session.state is SessionState.FRESH

    def test_empty_allow_list_drops_everything(self, relations, session: QuerySession) -> None:
        resolver = RelationResolver("users", relations)
        compiler = QueryCompiler(
            scope=CompilerScope(base_table="users"),
            columns=ColumnResolver("users", resolver),
            joins=JoinApplier(resolver, lambda: []),
            settings=Settings(),
        )
        compiler.filter(session, "id:equal_5")
        assert session.query.calls == []

    def test_between_emits_two_bounds(self, compiler: QueryCompiler, session: QuerySession) -> None:
        compiler.filter(session, "price:between_100,200")
        assert session.query.calls == [
            ("where", "users.price", ">=", "100"),
            ("where", "users.price", "<=", "200"),
        ]

    def test_between_missing_lower_bound(self, compiler: QueryCompiler, session: QuerySession) -> None:
        compiler.filter(session, "price:between_,200")
        assert session.query.calls == [("where", "users.price", "<=", "200")]

    def test_between_zero_bound_is_honoured(self, compiler: QueryCompiler, session: QuerySession) -> None:
        compiler.filter(session, "price:between_0,200")
        assert session.query.calls == [
            ("where", "users.price", ">=", "0"),
            ("where", "users.price", "<=", "200"),
        ]

    def test_not_between(self, compiler: QueryCompiler, session: QuerySession) -> None:
        compiler.filter(session, "price:not_between_2,6@id:not_between_,9")
        assert session.query.calls == [
            ("where_not_between", "users.price", ["2", "6"]),
            ("where_not", "users.id", "<=", "9"),
        ]

    def test_null_checks(self, compiler: QueryCompiler, session: QuerySession) -> None:
        compiler.filter(session, "status:is_null@name:is_not-null@status:is_bogus")
        assert session.query.calls == [
            ("where_null", "users.status"),
            ("where_not_null", "users.name"),
        ]

    def test_every_other_kind(self, compiler: QueryCompiler, session: QuerySession) -> None:
        compiler.filter(
            session,
            "id:in_1,2@id:not_in_3@name:not_like_bo@price:upper_5",
            limit=10,
        )
        compiler.filter(
            session,
            "price:lower_9@price:not_upper_7@price:not_lower_1@id:not_equal_4",
        )
        assert session.query.calls == [
            ("where_in", "users.id", ["1", "2"]),
            ("where_not_in", "users.id", ["3"]),
            ("where", "users.name", "not like", "%bo%"),
            ("where", "users.price", ">", "5"),
            ("where", "users.price", "<", "9"),
            ("where_not", "users.price", ">", "7"),
            ("where_not", "users.price", "<", "1"),
            ("where", "users.id", "!=", "4"),
        ]

    def test_invalid_expression_does_not_raise(self, compiler: QueryCompiler, session: QuerySession) -> None:
        applied = compiler.filter(session, "id:bogus_1@id:equal_2")
        assert [p.kind for p in applied] == [PredicateKind.EQUAL]
        assert session.query.calls == [("where", "users.id", "=", "2")]

    def test_returns_qualified_predicates(self, compiler: QueryCompiler, session: QuerySession) -> None:
        (predicate,) = compiler.filter(session, "name:like_ada")
        assert predicate.column == "users.name"
        assert predicate.operands == ["ada"]


# -----------------------------
# Limits
# -----------------------------


class TestLimits:
    """Condition-count limits."""

    def test_default_filter_limit_is_five(self, compiler: QueryCompiler, session: QuerySession) -> None:
        raw = "@".join(f"id:equal_{i}" for i in range(7))
        compiler.filter(session, raw)
        assert len(session.query.calls) == 5
        assert session.query.calls[-1] == ("where", "users.id", "=", "4")

    def test_unauthorized_conditions_count_towards_limit(
        self, compiler: QueryCompiler, session: QuerySession
    ) -> None:
        compiler.filter(session, "secret:equal_1@id:equal_2", limit=1)
        assert session.query.calls == []

    def test_default_sort_limit_is_two(self, compiler: QueryCompiler, session: QuerySession) -> None:
        compiler.sort(session, "name:desc@id:asc@name:asc")
        assert session.query.calls == [
            ("order_by", "users.name", "DESC"),
            ("order_by", "users.id", "ASC"),
        ]

    def test_explicit_limit(self, compiler: QueryCompiler, session: QuerySession) -> None:
        compiler.sort(session, "name:desc@id:asc", limit=1)
        assert session.query.calls == [("order_by", "users.name", "DESC")]


# -----------------------------
# Sorting
# -----------------------------


class TestSort:
    """Sort strings."""

    def test_invalid_direction_skips_segment_only(
        self, compiler: QueryCompiler, session: QuerySession
    ) -> None:
        compiler.sort(session, "name:sideways@id:desc")
        assert session.query.calls == [("order_by", "users.id", "DESC")]

    def test_not_sortable_is_dropped(self, compiler: QueryCompiler, session: QuerySession) -> None:
        compiler.sort(session, "price:asc")
        assert session.query.calls == []


# -----------------------------
# Relation filters and joins
# -----------------------------


class TestRelationFilters:
    """Filters and sorts that go through a relation."""

    def test_alias_filter_joins_once(self, compiler: QueryCompiler, session: QuerySession) -> None:
        compiler.filter(session, "profile.photo:equal_x")
        compiler.sort(session, "profile.photo:asc")

        assert session.query.calls == [
            ("select", VISIBLE + ["user_pictures.path as photo"]),
            ("join", "user_pictures", "users.pic_id", "=", "user_pictures.id", JoinType.INNER),
            ("where_null", "user_pictures.deleted_at"),
            ("where", "user_pictures.path", "=", "x"),
            ("order_by", "user_pictures.path", "ASC"),
        ]

    def test_unaliased_field_uses_last_table(self, compiler: QueryCompiler, session: QuerySession) -> None:
        compiler.filter(session, "profile.size:upper_10")
        assert session.query.of("where") == [("where", "user_pictures.size", ">", "10")]

    def test_field_not_in_relation_allow_list(self, compiler: QueryCompiler, session: QuerySession) -> None:
        compiler.filter(session, "profile.secret:equal_1")
        compiler.sort(session, "profile.size:asc")
        assert session.query.calls == []

    def test_unknown_relation(self, compiler: QueryCompiler, session: QuerySession) -> None:
        compiler.filter(session, "nope.photo:equal_1")
        assert session.query.calls == []

    def test_malformed_chain_never_joins(self, compiler: QueryCompiler, session: QuerySession) -> None:
        compiler.filter(session, "broken.anything:equal_1")
        assert session.query.calls == []

    def test_invalid_expression_does_not_join(self, compiler: QueryCompiler, session: QuerySession) -> None:
        compiler.filter(session, "profile.photo:bogus_1")
        assert session.query.of("join") == []

    def test_shared_target_table_joined_once(self, compiler: QueryCompiler, session: QuerySession) -> None:
        compiler.filter(session, "profile.photo:equal_x@avatar.width:upper_100")

        assert len(session.query.of("join")) == 1
        # The second relation still contributes its selected alias
        assert session.query.of("select")[-1] == (
            "select",
            VISIBLE + ["user_pictures.path as photo", "user_pictures.width as width"],
        )
        assert session.query.of("where")[-1] == ("where", "user_pictures.width", ">", "100")

    def test_multi_hop_chain(self, compiler: QueryCompiler, session: QuerySession) -> None:
        compiler.filter(session, "country.country_name:equal_NL")

        assert session.query.calls == [
            ("select", VISIBLE + ["countries.name as country_name"]),
            ("join", "addresses", "users.address_id", "=", "addresses.id", JoinType.LEFT),
            ("where_null", "addresses.deleted_at"),
            ("join", "countries", "addresses.country_id", "=", "countries.id", JoinType.LEFT),
            ("where_null", "countries.deleted_at"),
            ("where", "countries.name", "=", "NL"),
        ]

    def test_visible_columns_computed_once_per_session(
        self, compiler: QueryCompiler, session: QuerySession, visible_calls: list[int]
    ) -> None:
        compiler.filter(session, "profile.photo:equal_x@country.code:equal_NL")
        assert len(visible_calls) == 1


# -----------------------------
# Explicit joins
# -----------------------------


class TestJoins:
    """join/joins calls."""

    def test_join_is_idempotent(self, compiler: QueryCompiler, session: QuerySession) -> None:
        compiler.join(session, "profile")
        calls = list(session.query.calls)
        compiler.join(session, "profile")
        assert session.query.calls == calls

    def test_joins_in_order(self, compiler: QueryCompiler, session: QuerySession) -> None:
        compiler.joins(session, ["country", "profile", 42])
        assert [call[1] for call in session.query.of("join")] == [
            "addresses",
            "countries",
            "user_pictures",
        ]

    def test_unknown_join_is_noop(self, compiler: QueryCompiler, session: QuerySession) -> None:
        compiler.join(session, "missing")
        assert session.query.calls == []
        assert session.state is SessionState.FRESH

    def test_inline_relation(self, compiler: QueryCompiler, session: QuerySession) -> None:
        compiler.join(
            session,
            RelationConfig(chain={"users.team_id": "teams.id"}, select=["teams.name AS team"]),
        )
        assert session.query.of("join") == [
            ("join", "teams", "users.team_id", "=", "teams.id", JoinType.INNER),
        ]

    def test_reset_reapplies_join(self, compiler: QueryCompiler, session: QuerySession) -> None:
        compiler.join(session, "profile")
        session.reset()
        assert session.query.calls == []
        assert session.join_state.applied_joins == set()

        compiler.join(session, "profile")
        assert session.query.of("select") == [("select", VISIBLE + ["user_pictures.path as photo"])]
        assert len(session.query.of("join")) == 1


# -----------------------------
# Search
# -----------------------------


class TestSearch:
    """Flat OR-LIKE search."""

    def test_or_group(self, compiler: QueryCompiler, session: QuerySession) -> None:
        compiler.search(session, "ada")
        assert session.query.calls == [
            ("where", "users.name", "like", "%ada%"),
            ("or_where", "users.email", "like", "%ada%"),
        ]

    def test_empty_term(self, compiler: QueryCompiler, session: QuerySession) -> None:
        compiler.search(session, "")
        assert session.query.calls == []


# -----------------------------
# Column resolver
# -----------------------------


class TestColumnResolver:
    """Classification of column references."""

    def test_sources(self, relations: dict[str, RelationConfig]) -> None:
        columns = ColumnResolver("users", RelationResolver("users", relations))

        def pick(config: RelationConfig) -> frozenset[str]:
            return config.filterable

        assert columns.resolve("id", {"id"}, pick).source is ColumnSource.DIRECT
        assert columns.resolve("profile.photo", set(), pick).source is ColumnSource.ALIAS
        assert columns.resolve("profile.size", set(), pick).source is ColumnSource.RELATION
        assert columns.resolve("profile.nope", set(), pick) is None
        assert columns.resolve("id", set(), pick) is None

    def test_recording_query_satisfies_protocol(self) -> None:
        assert isinstance(RecordingQuery(), QueryCapability)


# -----------------------------
# Logging
# -----------------------------


class TestLogging:
    """Debug logs name where each column came from."""

    def test_column_source_logged(
        self, compiler: QueryCompiler, session: QuerySession, caplog: pytest.LogCaptureFixture
    ) -> None:
        with caplog.at_level(logging.DEBUG, logger="repoql.core.query.compiler"):
            compiler.filter(session, "id:equal_1@profile.photo:equal_x@profile.size:upper_3")
            compiler.sort(session, "profile.photo:asc")

        messages = [
            record.getMessage()
            for record in caplog.records
            if record.name == "repoql.core.query.compiler"
        ]
        assert "Filtering 'id' on direct column users.id" in messages
        assert "Filtering 'profile.photo' on alias column user_pictures.path" in messages
        assert "Filtering 'profile.size' on relation column user_pictures.size" in messages
        assert "Sorting 'profile.photo' on alias column user_pictures.path" in messages
