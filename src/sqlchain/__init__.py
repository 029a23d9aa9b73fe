from sqlchain.__version__ import __version__

from sqlchain.api import Database
from sqlchain.builder import ConditionGroup, QueryBuilder
from sqlchain.compiler import CompiledStatement, StatementCompiler
from sqlchain.connection import ConnectionProvider, SQLAlchemyConnection
from sqlchain.executor import StatementExecutor

from sqlchain.common.exceptions import SqlChainError, ErrorCode
from sqlchain.constants.sql import (
    Connector,
    FetchStyle,
    JoinType,
    PlaceholderStyle,
    QueryType,
    SortDirection,
)
from sqlchain.settings import SqlChainSettings, get_settings


__all__ = [
    "__version__",

    "Database",
    "QueryBuilder",
    "ConditionGroup",
    "StatementCompiler",
    "CompiledStatement",
    "StatementExecutor",
    "ConnectionProvider",
    "SQLAlchemyConnection",

    # Enums (public API)
    "QueryType",
    "Connector",
    "JoinType",
    "SortDirection",
    "PlaceholderStyle",
    "FetchStyle",

    # Exceptions (public API)
    "SqlChainError",
    "ErrorCode",

    # Configuration
    "SqlChainSettings",
    "get_settings",
]
