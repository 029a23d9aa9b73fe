from enum import Enum
from typing import Any, Dict, Optional

# SQL text kept in error details is truncated to this many characters
MAX_QUERY_DETAIL_LENGTH = 500


class ErrorCode(Enum):
    """Standard error codes for sqlchain operations.

    Error codes categorize failures without a class per failure. The
    prefix of each value names its category so callers can separate
    "this query was malformed" from "the database rejected this query".

    Attributes:
        BUILD_*: Malformed or incomplete statement, raised before any
            connection call
        COMPILE_*: Internal inconsistency in the clause model (defect)
        CONNECTION_*: Connection capability failures
        EXECUTION_*: Driver/database failures while running a statement
        CONFIG_*: Invalid configuration
    """
    # Build errors
    BUILD_ERROR = "BUILD_001"
    BUILD_MISSING_TABLE = "BUILD_002"
    BUILD_MISSING_VALUES = "BUILD_003"
    BUILD_INVALID_ARGUMENT = "BUILD_004"
    BUILD_INVALID_IDENTIFIER = "BUILD_005"
    BUILD_INVALID_OPERATOR = "BUILD_006"
    BUILD_INVALID_LIMIT = "BUILD_007"
    BUILD_OPERATION_CONFLICT = "BUILD_008"
    BUILD_UNCONDITIONAL_WRITE = "BUILD_009"
    BUILD_STATEMENT_CONSUMED = "BUILD_010"

    # Compilation errors
    COMPILE_INTERNAL = "COMPILE_001"

    # Connection errors
    CONNECTION_ERROR = "CONNECTION_001"
    CONNECTION_NOT_CONFIGURED = "CONNECTION_002"

    # Execution errors
    EXECUTION_QUERY_FAILED = "EXECUTION_001"

    # Configuration errors
    CONFIG_INVALID = "CONFIG_001"

    @property
    def category(self) -> str:
        return self.value.split("_", 1)[0]


class SqlChainError(Exception):
    """Base exception for all sqlchain errors.

    A single exception class categorized by error code. Build errors are
    raised before the connection is touched; execution errors wrap the
    driver exception in ``cause`` and never carry bound parameter values.

    Attributes:
        message: Error message
        error_code: Error code from ErrorCode enum
        details: Additional error details
        cause: Optional underlying exception
    """

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.BUILD_ERROR,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.cause = cause

        # Lazy import to avoid circular dependency
        from sqlchain.logging import get_logger
        logger = get_logger(__name__)
        log = logger.error if self.category in ("EXECUTION", "CONNECTION") else logger.debug
        log(
            message,
            extra={
                "error_code": error_code.value,
                "details": self.details,
            },
            exc_info=cause is not None,
        )

    def __str__(self) -> str:
        msg = f"[{self.error_code.value}] {self.message}"
        if self.cause:
            msg = f"{msg} (caused by: {type(self.cause).__name__}: {str(self.cause)})"
        return msg

    @property
    def category(self) -> str:
        """Category prefix of the error code (BUILD, EXECUTION, ...)."""
        return self.error_code.category

    @property
    def is_build_error(self) -> bool:
        """True when the statement itself was malformed or incomplete."""
        return self.category in ("BUILD", "COMPILE")

    @property
    def is_execution_error(self) -> bool:
        """True when the database or driver rejected or failed the statement."""
        return self.category in ("EXECUTION", "CONNECTION")

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code.value,
            "error_name": self.error_code.name,
            "category": self.category,
            "details": self.details,
        }


def _truncate_query(query: str) -> str:
    if len(query) > MAX_QUERY_DETAIL_LENGTH:
        return query[:MAX_QUERY_DETAIL_LENGTH] + "..."
    return query


# Helper functions for common error scenarios
def build_error(
    message: str,
    error_code: ErrorCode = ErrorCode.BUILD_ERROR,
    field: Optional[str] = None,
    value: Any = None,
    **kwargs
) -> SqlChainError:
    """Create a build error.

    Args:
        message: Error message
        error_code: Specific BUILD_* code
        field: Builder argument that failed validation
        value: Offending value; only use for identifiers and shapes,
            never for bind values
        **kwargs: Additional error details

    Returns:
        SqlChainError with a BUILD_* code
    """
    details = kwargs.get('details', {})
    if field:
        details["field"] = field
    if value is not None:
        details["value"] = str(value)

    return SqlChainError(
        message=message,
        error_code=error_code,
        details=details,
        **{k: v for k, v in kwargs.items() if k != 'details'}
    )


def compilation_error(
    message: str,
    node_type: Optional[str] = None,
    **kwargs
) -> SqlChainError:
    """Create a compilation error signalling an inconsistent clause model."""
    details = kwargs.get('details', {})
    if node_type:
        details["node_type"] = node_type

    return SqlChainError(
        message=message,
        error_code=ErrorCode.COMPILE_INTERNAL,
        details=details,
        **{k: v for k, v in kwargs.items() if k != 'details'}
    )


def connection_error(
    message: str,
    service: Optional[str] = None,
    error_code: ErrorCode = ErrorCode.CONNECTION_ERROR,
    **kwargs
) -> SqlChainError:
    """Create a connection error.

    Args:
        message: Error message
        service: Backend (driver/dialect name) that failed to connect
        error_code: Specific CONNECTION_* code
        **kwargs: Additional error details

    Returns:
        SqlChainError with a CONNECTION_* code
    """
    details = kwargs.get('details', {})
    if service:
        details["service"] = service

    return SqlChainError(
        message=message,
        error_code=error_code,
        details=details,
        **{k: v for k, v in kwargs.items() if k != 'details'}
    )


def query_execution_error(
    query: str,
    param_count: int,
    original_error: Exception,
    **kwargs
) -> SqlChainError:
    """Create a query execution error.

    Only the SQL text and the number of bound parameters are recorded;
    parameter values stay out of the error and out of the logs.

    Args:
        query: SQL text that failed
        param_count: Number of bound parameters
        original_error: The underlying driver exception
        **kwargs: Additional error details

    Returns:
        SqlChainError with EXECUTION_QUERY_FAILED code
    """
    details = kwargs.get('details', {})
    details["query"] = _truncate_query(query)
    details["param_count"] = param_count

    return SqlChainError(
        message=f"Query execution failed: {type(original_error).__name__}",
        error_code=ErrorCode.EXECUTION_QUERY_FAILED,
        details=details,
        cause=original_error,
        **{k: v for k, v in kwargs.items() if k not in ['details', 'cause']}
    )


def configuration_error(
    message: str,
    config_key: Optional[str] = None,
    **kwargs
) -> SqlChainError:
    """Create a configuration error."""
    details = kwargs.get('details', {})
    if config_key:
        details["config_key"] = config_key

    return SqlChainError(
        message=message,
        error_code=ErrorCode.CONFIG_INVALID,
        details=details,
        **{k: v for k, v in kwargs.items() if k != 'details'}
    )
