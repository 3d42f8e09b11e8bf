"""Query-string grammar: tokenizer, operator compiler and descriptors."""

from .models import Condition, Order, Predicate, PredicateKind, SortDirection
from .operators import compile_order, compile_predicate
from .tokenizer import parse_conditions, split_relation_field

__all__ = [
    "Condition",
    "Order",
    "Predicate",
    "PredicateKind",
    "SortDirection",
    "compile_order",
    "compile_predicate",
    "parse_conditions",
    "split_relation_field",
]
