"""Fluent statement builder."""

from .conditions import MISSING, ConditionGroup, resolve_condition
from .query import QueryBuilder

__all__ = [
    "QueryBuilder",
    "ConditionGroup",
    "resolve_condition",
    "MISSING",
]
