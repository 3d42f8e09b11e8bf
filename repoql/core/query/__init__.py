"""Query Capability, column/join resolution and the filter/sort compiler."""

from .capability import ModelMetadata, QueryCapability, SchemaInspector
from .columns import ColumnResolver, ColumnSource, ResolvedColumn
from .compiler import CompilerScope, QueryCompiler, apply_predicate
from .joins import JoinApplier
from .metadata import MetadataInspector, OrmModelMetadata, visible_columns
from .select_query import (
    QueryBuildError,
    SelectQuery,
    UnknownColumnError,
    UnsupportedOperatorError,
    get_sql_string,
)

__all__ = [
    "ColumnResolver",
    "ColumnSource",
    "CompilerScope",
    "JoinApplier",
    "MetadataInspector",
    "ModelMetadata",
    "OrmModelMetadata",
    "QueryBuildError",
    "QueryCapability",
    "QueryCompiler",
    "ResolvedColumn",
    "SchemaInspector",
    "SelectQuery",
    "UnknownColumnError",
    "UnsupportedOperatorError",
    "apply_predicate",
    "get_sql_string",
    "visible_columns",
]
