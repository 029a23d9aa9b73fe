"""Clause model: the intermediate representation between builder and compiler.

All nodes are pydantic models. Construction validates identifiers and
operators, so a compiled statement never contains an unchecked name.
"""

from .joins import Join
from .ordering import GroupItem, OrderItem
from .predicates import (
    Predicate,
    PredicateGroup,
    PredicateNode,
    RawPredicate,
    predicate_equals,
    predicate_group,
    predicate_op,
    predicate_raw,
)
from .statement import Statement
from .validation import (
    normalize_operator,
    normalize_params,
    screen_expression,
    split_projection,
    split_table_reference,
    validate_identifier,
    validate_table_reference,
)

__all__ = [
    "Statement",
    "Join",
    "OrderItem",
    "GroupItem",
    "Predicate",
    "RawPredicate",
    "PredicateGroup",
    "PredicateNode",
    "predicate_equals",
    "predicate_op",
    "predicate_group",
    "predicate_raw",
    "validate_identifier",
    "validate_table_reference",
    "split_table_reference",
    "normalize_operator",
    "normalize_params",
    "screen_expression",
    "split_projection",
]
