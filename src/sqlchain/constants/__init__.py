"""Constants module for sqlchain.

This module contains all constant values and enumerations used throughout
the package. It has no dependencies on other sqlchain modules.
"""

from sqlchain.constants.sql import (
    COMPARISON_OPERATORS,
    LIST_OPERATORS,
    MAX_IDENTIFIER_LENGTH,
    NULL_EQUALS_OPERATORS,
    NULL_NOT_EQUALS_OPERATORS,
    PREDICATE_OPERATORS,
    RANGE_OPERATORS,
    Connector,
    FetchStyle,
    JoinType,
    PlaceholderStyle,
    QueryType,
    SortDirection,
)

__all__ = [
    "QueryType",
    "Connector",
    "JoinType",
    "SortDirection",
    "PlaceholderStyle",
    "FetchStyle",
    "COMPARISON_OPERATORS",
    "PREDICATE_OPERATORS",
    "LIST_OPERATORS",
    "RANGE_OPERATORS",
    "NULL_EQUALS_OPERATORS",
    "NULL_NOT_EQUALS_OPERATORS",
    "MAX_IDENTIFIER_LENGTH",
]
