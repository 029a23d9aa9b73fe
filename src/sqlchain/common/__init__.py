"""Common building blocks shared across sqlchain modules."""

from sqlchain.common.exceptions import (
    ErrorCode,
    SqlChainError,
    build_error,
    compilation_error,
    configuration_error,
    connection_error,
    query_execution_error,
)

__all__ = [
    "ErrorCode",
    "SqlChainError",
    "build_error",
    "compilation_error",
    "configuration_error",
    "connection_error",
    "query_execution_error",
]
