import time
from contextlib import contextmanager
from typing import Any, Dict, Iterator, List, Optional, Union

import pandas as pd
from sqlalchemy.engine import Connection, CursorResult
from sqlalchemy.exc import SQLAlchemyError, StatementError

from sqlchain.common.exceptions import ErrorCode, build_error, query_execution_error
from sqlchain.compiler import CompiledStatement
from sqlchain.constants.sql import FetchStyle
from sqlchain.logging import get_logger
from sqlchain.protocols import ConnectionProvider
from sqlchain.utils.decorators import traced
from .rows import shape_row, shape_rows

logger = get_logger(__name__)

# Statement text attached to spans is truncated to this many characters
MAX_SPAN_STATEMENT_LENGTH = 4096


def bind_parameters(parameters: Any) -> Any:
    """Convert compiled parameters into what ``exec_driver_sql`` expects.

    Mappings are bound by name with a leading ``:`` removed from keys
    (``{':age': 18}`` binds ``age``). Sequences are bound as a single
    tuple so they are never mistaken for an executemany batch.
    """
    if not parameters:
        return None
    if isinstance(parameters, dict):
        return {
            (key[1:] if isinstance(key, str) and key.startswith(":") else key): value
            for key, value in parameters.items()
        }
    return tuple(parameters)


class StatementExecutor:
    """Runs compiled statements on a connection capability.

    ``connection.get()`` may return a SQLAlchemy ``Engine`` or a live
    ``Connection``. With an engine, each call checks out one connection
    and commits writes before returning it. A live connection is used
    as-is and the caller owns its transaction.

    Every terminal method issues exactly one statement, logs one
    structured record and runs inside an OpenTelemetry span. Driver
    failures are raised as EXECUTION_QUERY_FAILED with the SQL text and
    parameter count, never the parameter values. There is no retry.
    """

    def __init__(self, connection: ConnectionProvider, db_system: Optional[str] = None):
        self.connection = connection
        self.db_system = db_system or "sql"

    @contextmanager
    def _get_connection(self, write: bool = False) -> Iterator[Connection]:
        handle = self.connection.get()
        if isinstance(handle, Connection):
            yield handle
            return

        with handle.connect() as conn:
            yield conn
            if write:
                conn.commit()

    def _run(self, conn: Connection, compiled: CompiledStatement) -> CursorResult:
        return conn.exec_driver_sql(compiled.sql, bind_parameters(compiled.parameters))

    def _payload(self, compiled: CompiledStatement) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "db.system": self.db_system,
            "db.operation": compiled.operation,
            "param_count": compiled.param_count,
        }
        if compiled.table:
            payload["db.table"] = compiled.table
        return payload

    def _span_attributes(self, compiled: CompiledStatement, *, method: str) -> Dict[str, Any]:
        """Build OpenTelemetry span attributes for a statement."""
        statement = compiled.sql.strip()
        if len(statement) > MAX_SPAN_STATEMENT_LENGTH:
            statement = f"{statement[:MAX_SPAN_STATEMENT_LENGTH - 3]}..."

        attributes: Dict[str, Any] = {
            "db.system": self.db_system,
            "db.operation": compiled.operation,
            "db.statement": statement,
            "db.statement.length": len(statement),
            "db.params.count": compiled.param_count,
            "sqlchain.executor.method": method,
        }
        if compiled.table:
            attributes["db.sql.table"] = compiled.table
        return attributes

    def _failed(
        self,
        message: str,
        compiled: CompiledStatement,
        payload: Dict[str, Any],
        start_time: float,
        exc: Exception,
    ):
        # Engines not created by SQLAlchemyConnection may render bound values in the message
        if isinstance(exc, StatementError):
            exc.hide_parameters = True

        duration = time.time() - start_time
        logger.error(
            message,
            extra={**payload, "duration.seconds": f"{duration:.6f}", "error.type": type(exc).__name__},
            exc_info=True,
        )
        return query_execution_error(compiled.sql, compiled.param_count, exc)

    @traced(
        span_name="sqlchain.executor.fetch_all",
        attribute_getter=lambda self, compiled, fetch_style=FetchStyle.ASSOC: self._span_attributes(
            compiled,
            method="fetch_all",
        ),
    )
    def fetch_all(self, compiled: CompiledStatement, fetch_style: FetchStyle = FetchStyle.ASSOC) -> Any:
        """Execute a statement and return every row shaped by ``fetch_style``."""
        start_time = time.time()
        payload = self._payload(compiled)

        try:
            with self._get_connection() as conn:
                result = self._run(conn, compiled)
                keys = list(result.keys())
                rows = [tuple(row) for row in result.fetchall()]

        except SQLAlchemyError as exc:
            raise self._failed("Fetch all failed", compiled, payload, start_time, exc) from exc

        duration = time.time() - start_time
        logger.info(
            "Results fetched",
            extra={**payload, "row_count": len(rows), "duration.seconds": f"{duration:.6f}"},
        )
        return shape_rows(keys, rows, FetchStyle(fetch_style))

    @traced(
        span_name="sqlchain.executor.fetch_one",
        attribute_getter=lambda self, compiled, fetch_style=FetchStyle.ASSOC: self._span_attributes(
            compiled,
            method="fetch_one",
        ),
    )
    def fetch_one(self, compiled: CompiledStatement, fetch_style: FetchStyle = FetchStyle.ASSOC) -> Any:
        """Execute a statement and return its first row, or None when there is none."""
        fetch_style = FetchStyle(fetch_style)
        if fetch_style == FetchStyle.GROUP:
            raise build_error(
                "GROUP fetch style needs a result set, not a single row",
                error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
                field="fetch_style"
            )

        start_time = time.time()
        payload = self._payload(compiled)

        try:
            with self._get_connection() as conn:
                result = self._run(conn, compiled)
                keys = list(result.keys())
                row = result.fetchone()
                result.close()

        except SQLAlchemyError as exc:
            raise self._failed("Fetch one failed", compiled, payload, start_time, exc) from exc

        duration = time.time() - start_time
        logger.info(
            "Row fetched",
            extra={**payload, "row_count": 0 if row is None else 1, "duration.seconds": f"{duration:.6f}"},
        )
        if row is None:
            return None
        return shape_row(keys, tuple(row), fetch_style)

    @traced(
        span_name="sqlchain.executor.fetch_scalar",
        attribute_getter=lambda self, compiled: self._span_attributes(
            compiled,
            method="fetch_scalar",
        ),
    )
    def fetch_scalar(self, compiled: CompiledStatement) -> int:
        """Execute a COUNT statement and return its value as an int (0 for NULL)."""
        start_time = time.time()
        payload = self._payload(compiled)

        try:
            with self._get_connection() as conn:
                value = self._run(conn, compiled).scalar()

        except SQLAlchemyError as exc:
            raise self._failed("Scalar fetch failed", compiled, payload, start_time, exc) from exc

        duration = time.time() - start_time
        logger.info(
            "Scalar fetched",
            extra={**payload, "value_is_null": value is None, "duration.seconds": f"{duration:.6f}"},
        )
        return 0 if value is None else int(value)

    @traced(
        span_name="sqlchain.executor.insert",
        attribute_getter=lambda self, compiled: self._span_attributes(
            compiled,
            method="insert",
        ),
    )
    def insert(self, compiled: CompiledStatement) -> Union[int, bool]:
        """Execute an INSERT and return the new row id, or True when the driver has none."""
        start_time = time.time()
        payload = self._payload(compiled)

        try:
            with self._get_connection(write=True) as conn:
                result = self._run(conn, compiled)
                row_id = result.lastrowid

        except SQLAlchemyError as exc:
            raise self._failed("Insert failed", compiled, payload, start_time, exc) from exc

        duration = time.time() - start_time
        logger.info(
            "Row inserted",
            extra={**payload, "row_id_reported": bool(row_id), "duration.seconds": f"{duration:.6f}"},
        )
        return row_id if row_id else True

    @traced(
        span_name="sqlchain.executor.execute",
        attribute_getter=lambda self, compiled: self._span_attributes(
            compiled,
            method="execute",
        ),
    )
    def execute(self, compiled: CompiledStatement) -> int:
        """Execute a statement that returns no rows and return the affected-row count."""
        start_time = time.time()
        payload = self._payload(compiled)

        try:
            with self._get_connection(write=True) as conn:
                row_count = self._run(conn, compiled).rowcount

        except SQLAlchemyError as exc:
            raise self._failed("Statement execution failed", compiled, payload, start_time, exc) from exc

        duration = time.time() - start_time
        logger.info(
            "Statement executed",
            extra={**payload, "row_count": row_count, "duration.seconds": f"{duration:.6f}"},
        )
        return row_count

    @traced(
        span_name="sqlchain.executor.fetch_dataframe",
        attribute_getter=lambda self, compiled: self._span_attributes(
            compiled,
            method="fetch_dataframe",
        ),
    )
    def fetch_dataframe(self, compiled: CompiledStatement) -> pd.DataFrame:
        """Execute a statement and return the rows as a pandas DataFrame."""
        start_time = time.time()
        payload = self._payload(compiled)

        try:
            with self._get_connection() as conn:
                result = self._run(conn, compiled)
                keys: List[str] = list(result.keys())
                rows = [tuple(row) for row in result.fetchall()]

        except SQLAlchemyError as exc:
            raise self._failed("DataFrame fetch failed", compiled, payload, start_time, exc) from exc

        df = pd.DataFrame.from_records(rows, columns=keys)
        duration = time.time() - start_time
        logger.info(
            "DataFrame fetched",
            extra={**payload, "row_count": len(df), "duration.seconds": f"{duration:.6f}"},
        )
        return df
