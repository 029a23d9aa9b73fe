"""SQL and query-related constants.

This module contains the fundamental enums shared by the clause model,
the statement builder, the compiler and the executor.

These constants sit at the bottom of the package and import nothing
from the rest of sqlchain, so any module can use them without creating
circular dependencies.
"""

from enum import Enum
from typing import FrozenSet


class QueryType(str, Enum):
    """SQL statement kind.

    The four structured kinds are produced by the fluent builder.
    ``EXECUTE_SQL`` labels statements supplied verbatim through
    ``raw_sql`` so they can be told apart in logs and spans.
    """

    SELECT = "SELECT"
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"

    EXECUTE_SQL = "EXECUTE_SQL"


class Connector(str, Enum):
    """Boolean connector attached to every predicate node but the first."""

    AND = "AND"
    OR = "OR"


class JoinType(str, Enum):
    """Supported join kinds, rendered as ``<kind> JOIN``."""

    INNER = "INNER"
    LEFT = "LEFT"
    RIGHT = "RIGHT"


class SortDirection(str, Enum):
    ASC = "ASC"
    DESC = "DESC"


class PlaceholderStyle(str, Enum):
    """Bind-parameter placeholder style (PEP 249 ``paramstyle`` names).

    Values:
        QMARK: ``WHERE a = ?`` with a positional parameter list
        FORMAT: ``WHERE a = %s`` with a positional parameter list
        NAMED: ``WHERE a = :p1`` with a parameter mapping
        PYFORMAT: ``WHERE a = %(p1)s`` with a parameter mapping
    """

    QMARK = "qmark"
    FORMAT = "format"
    NAMED = "named"
    PYFORMAT = "pyformat"

    @property
    def is_named(self) -> bool:
        return self in (PlaceholderStyle.NAMED, PlaceholderStyle.PYFORMAT)


class FetchStyle(str, Enum):
    """Row shape returned by the ``get``/``one`` terminal calls.

    Values:
        ASSOC: one dict per row keyed by column name (default)
        NUM: one tuple per row
        BOTH: one dict per row keyed by column name and by position
        COLUMN: the first column of every row
        GROUP: dict keyed by the first column, each value a list of
            dicts holding the remaining columns
    """

    ASSOC = "assoc"
    NUM = "num"
    BOTH = "both"
    COLUMN = "column"
    GROUP = "group"


COMPARISON_OPERATORS: FrozenSet[str] = frozenset({"=", "!=", "<>", "<", "<=", ">", ">="})

PREDICATE_OPERATORS: FrozenSet[str] = COMPARISON_OPERATORS | frozenset({
    "LIKE",
    "NOT LIKE",
    "ILIKE",
    "IN",
    "NOT IN",
    "BETWEEN",
    "NOT BETWEEN",
    "IS",
    "IS NOT",
})

LIST_OPERATORS: FrozenSet[str] = frozenset({"IN", "NOT IN"})
RANGE_OPERATORS: FrozenSet[str] = frozenset({"BETWEEN", "NOT BETWEEN"})

# Operators that render ``IS NULL`` / ``IS NOT NULL`` when the value is None
NULL_EQUALS_OPERATORS: FrozenSet[str] = frozenset({"=", "IS"})
NULL_NOT_EQUALS_OPERATORS: FrozenSet[str] = frozenset({"!=", "<>", "IS NOT"})

# Identifier length limit shared by most databases
MAX_IDENTIFIER_LENGTH = 128
