"""Fluent query builder.

A ``QueryBuilder`` accumulates one statement through chained calls and
hands it to the compiler and executor on a terminal call. Builders are
single-owner and single-use: the first terminal call consumes the
builder and any later call raises BUILD_STATEMENT_CONSUMED.

Example:
    >>> db.table("users").where("votes", ">", 100).or_where("name", "like", "T%").get()
    # SELECT * FROM users WHERE votes > ? OR name LIKE ?   params [100, 'T%']
"""

from collections.abc import Mapping
from typing import Any, Dict, List, Optional, Union

import pandas as pd

from sqlchain.clauses import (
    GroupItem,
    Join,
    OrderItem,
    PredicateNode,
    Statement,
    predicate_raw,
    split_projection,
    validate_identifier,
    validate_table_reference,
)
from sqlchain.common.exceptions import ErrorCode, build_error, connection_error
from sqlchain.compiler import CompiledStatement, StatementCompiler
from sqlchain.constants.sql import Connector, FetchStyle, JoinType, QueryType, SortDirection
from sqlchain.executor import StatementExecutor
from .conditions import MISSING, ConditionGroup, resolve_condition


def _fetch_style(value: Union[FetchStyle, str]) -> FetchStyle:
    try:
        return FetchStyle(value.lower() if isinstance(value, str) else value)
    except ValueError as exc:
        raise build_error(
            f"Unknown fetch style: {value}",
            error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
            field="fetch_style",
            value=value
        ) from exc


def _non_negative_int(value: Any, name: str) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        raise build_error(
            f"{name} must be a non-negative integer, got {value!r}",
            error_code=ErrorCode.BUILD_INVALID_LIMIT,
            field=name
        )
    return value


class QueryBuilder(ConditionGroup):
    """Fluent accumulator for a single SQL statement.

    Chained calls return the builder itself. Terminal calls (``one``,
    ``get``, ``count``, ``insert``, ``update``, ``delete``, ``execute``,
    ``dataframe``) compile the statement and run it through the executor.

    Args:
        compiler: Compiler used for terminal calls and ``compile()``.
            Defaults to a qmark/sqlite compiler.
        executor: Executor for terminal calls. Builders without an
            executor can still be compiled.
    """

    def __init__(
        self,
        compiler: Optional[StatementCompiler] = None,
        executor: Optional[StatementExecutor] = None,
    ):
        self.compiler = compiler or StatementCompiler()
        self.executor = executor
        self._statement = Statement()
        self._consumed = False

    @property
    def predicates(self) -> List[PredicateNode]:
        return self._statement.predicates

    @property
    def statement(self) -> Statement:
        """Copy of the accumulated statement."""
        return self._statement.model_copy(deep=True)

    @property
    def consumed(self) -> bool:
        return self._consumed

    def _ensure_open(self) -> None:
        if self._consumed:
            raise build_error(
                "Query builder was already executed; start a new query for each statement",
                error_code=ErrorCode.BUILD_STATEMENT_CONSUMED
            )

    def _set_operation(self, operation: QueryType) -> None:
        current = self._statement.operation
        if current is None:
            self._statement.operation = operation
        elif QueryType(current) != operation:
            raise build_error(
                f"Statement is already a {QueryType(current).value}; cannot turn it into {operation.value}",
                error_code=ErrorCode.BUILD_OPERATION_CONFLICT,
                field="operation",
                value=operation.value
            )

    # ------------------------------------------------------------------
    # Target and projection
    # ------------------------------------------------------------------

    def table(self, name: str) -> "QueryBuilder":
        """Set the target table (``users``, ``app.users`` or ``users AS u``)."""
        self._ensure_open()
        self._statement.table = validate_table_reference(name)
        return self

    def select(self, *columns: Union[str, List[str]]) -> "QueryBuilder":
        """Set the projection.

        Accepts one comma-delimited string (``"id, name"``), several
        strings, or a list. No arguments means ``*``.
        """
        self._ensure_open()
        self._set_operation(QueryType.SELECT)

        expressions: List[str] = []
        for column in columns or ("*",):
            if isinstance(column, (list, tuple)):
                for item in column:
                    expressions.extend(split_projection(item))
            else:
                expressions.extend(split_projection(column))

        self._statement.columns = [] if expressions == ["*"] else expressions
        return self

    def distinct(self) -> "QueryBuilder":
        self._ensure_open()
        self._statement.distinct = True
        return self

    # ------------------------------------------------------------------
    # Joins
    # ------------------------------------------------------------------

    def _join(
        self,
        kind: JoinType,
        table: str,
        first: str,
        operator: Optional[str],
        second: Optional[str],
    ) -> "QueryBuilder":
        self._ensure_open()
        if operator is None and second is None:
            join = Join.raw(table, first, kind=kind)
        elif operator is not None and second is not None:
            join = Join.on(table, first, operator, second, kind=kind)
        else:
            raise build_error(
                "join() takes either a condition string or first field, operator and second field",
                error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
                field="join",
                value=table
            )
        self._statement.joins.append(join)
        return self

    def join(self, table: str, first: str, operator: Optional[str] = None, second: Optional[str] = None) -> "QueryBuilder":
        """INNER JOIN with either ``(table, condition)`` or ``(table, first, operator, second)``."""
        return self._join(JoinType.INNER, table, first, operator, second)

    def left_join(self, table: str, first: str, operator: Optional[str] = None, second: Optional[str] = None) -> "QueryBuilder":
        return self._join(JoinType.LEFT, table, first, operator, second)

    def right_join(self, table: str, first: str, operator: Optional[str] = None, second: Optional[str] = None) -> "QueryBuilder":
        return self._join(JoinType.RIGHT, table, first, operator, second)

    def join_on(self, table: str, first: str, operator: str, second: str) -> "QueryBuilder":
        return self._join(JoinType.INNER, table, first, operator, second)

    def left_join_on(self, table: str, first: str, operator: str, second: str) -> "QueryBuilder":
        return self._join(JoinType.LEFT, table, first, operator, second)

    def right_join_on(self, table: str, first: str, operator: str, second: str) -> "QueryBuilder":
        return self._join(JoinType.RIGHT, table, first, operator, second)

    def join_raw(self, table: str, condition: str) -> "QueryBuilder":
        return self._join(JoinType.INNER, table, condition, None, None)

    def left_join_raw(self, table: str, condition: str) -> "QueryBuilder":
        return self._join(JoinType.LEFT, table, condition, None, None)

    def right_join_raw(self, table: str, condition: str) -> "QueryBuilder":
        return self._join(JoinType.RIGHT, table, condition, None, None)

    # ------------------------------------------------------------------
    # Grouping, having, ordering, pagination
    # ------------------------------------------------------------------

    def group_by(self, *fields: Union[str, List[str]]) -> "QueryBuilder":
        self._ensure_open()
        columns: List[str] = []
        for field in fields:
            columns.extend(field if isinstance(field, (list, tuple)) else [field])
        if not columns:
            raise build_error(
                "group_by() requires at least one column",
                error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
                field="group_by"
            )
        self._statement.grouping.extend(GroupItem(column=column) for column in columns)
        return self

    def group_by_raw(self, clause: str, params: Any = None) -> "QueryBuilder":
        self._ensure_open()
        self._statement.grouping.append(GroupItem(raw=clause, params=params))
        return self

    def having(self, param1: Any, param2: Any = MISSING, param3: Any = MISSING) -> "QueryBuilder":
        """AND-connected HAVING condition; accepts the same shapes as ``where()``."""
        self._ensure_open()
        self._statement.having.append(resolve_condition(param1, param2, param3, Connector.AND))
        return self

    def or_having(self, param1: Any, param2: Any = MISSING, param3: Any = MISSING) -> "QueryBuilder":
        self._ensure_open()
        self._statement.having.append(resolve_condition(param1, param2, param3, Connector.OR))
        return self

    def having_raw(self, condition: str, params: Any = None) -> "QueryBuilder":
        self._ensure_open()
        self._statement.having.append(predicate_raw(condition, params, Connector.AND))
        return self

    def or_having_raw(self, condition: str, params: Any = None) -> "QueryBuilder":
        self._ensure_open()
        self._statement.having.append(predicate_raw(condition, params, Connector.OR))
        return self

    def order_by(
        self,
        field: Union[str, Mapping],
        direction: Union[SortDirection, str] = SortDirection.ASC
    ) -> "QueryBuilder":
        """Order by one column, or by a ``{column: direction}`` mapping in order."""
        self._ensure_open()
        if isinstance(field, Mapping):
            if not field:
                raise build_error(
                    "order_by() mapping must not be empty",
                    error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
                    field="order_by"
                )
            items = [OrderItem(column=column, direction=value) for column, value in field.items()]
        else:
            items = [OrderItem(column=field, direction=direction)]
        self._statement.ordering.extend(items)
        return self

    def order_by_raw(self, clause: str, params: Any = None) -> "QueryBuilder":
        self._ensure_open()
        self._statement.ordering.append(OrderItem(raw=clause, params=params))
        return self

    def limit(self, count: int) -> "QueryBuilder":
        self._ensure_open()
        self._statement.limit = _non_negative_int(count, "limit")
        return self

    def offset(self, count: int) -> "QueryBuilder":
        self._ensure_open()
        self._statement.offset = _non_negative_int(count, "offset")
        return self

    def paginate(self, page: int, per_page: int = 15) -> "QueryBuilder":
        """Set limit and offset for a 1-based page number."""
        self._ensure_open()
        page = _non_negative_int(page, "page")
        per_page = _non_negative_int(per_page, "per_page")
        if page < 1 or per_page < 1:
            raise build_error(
                f"page and per_page must be at least 1, got page={page}, per_page={per_page}",
                error_code=ErrorCode.BUILD_INVALID_LIMIT,
                field="paginate"
            )
        self._statement.limit = per_page
        self._statement.offset = (page - 1) * per_page
        return self

    # ------------------------------------------------------------------
    # Escape hatch and guards
    # ------------------------------------------------------------------

    def raw_sql(self, sql: str, params: Any = None) -> "QueryBuilder":
        """Run ``sql`` verbatim with ``params``; every other builder call is ignored."""
        self._ensure_open()
        if not isinstance(sql, str) or not sql.strip():
            raise build_error(
                "raw_sql() requires a non-empty SQL string",
                error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
                field="raw_sql"
            )
        self._statement.raw_sql = sql
        self._statement.raw_params = params
        return self

    def unconditional(self) -> "QueryBuilder":
        """Confirm that an UPDATE or DELETE without predicates is intended."""
        self._ensure_open()
        self._statement.unconditional = True
        return self

    # ------------------------------------------------------------------
    # Previews
    # ------------------------------------------------------------------

    def compile(self) -> CompiledStatement:
        """Compile the SELECT (or raw) statement without consuming the builder."""
        self._ensure_open()
        statement = self._statement
        if not statement.is_raw and statement.operation is None:
            statement = statement.model_copy(update={"operation": QueryType.SELECT})
        return self.compiler.compile(statement)

    def to_sql(self) -> str:
        return self.compile().sql

    # ------------------------------------------------------------------
    # Terminal calls
    # ------------------------------------------------------------------

    def _consume(self) -> Statement:
        self._ensure_open()
        self._consumed = True
        return self._statement

    def _prepare(self, operation: QueryType, values: Optional[Mapping] = None) -> Statement:
        """Consume the builder and fix its operation (raw statements skip both checks)."""
        statement = self._consume()
        if statement.is_raw:
            return statement

        self._set_operation(operation)
        if operation in (QueryType.INSERT, QueryType.UPDATE):
            statement.values = self._validate_values(values, operation)
        return statement

    def _validate_values(self, values: Optional[Mapping], operation: QueryType) -> Dict[str, Any]:
        if not isinstance(values, Mapping) or not values:
            raise build_error(
                f"{operation.value} requires a non-empty mapping of column values",
                error_code=ErrorCode.BUILD_MISSING_VALUES,
                field="values"
            )
        return {validate_identifier(column, "column"): value for column, value in values.items()}

    def _require_executor(self) -> StatementExecutor:
        if self.executor is None:
            raise connection_error(
                "Query builder has no executor; create queries through Database.query()",
                error_code=ErrorCode.CONNECTION_NOT_CONFIGURED
            )
        return self.executor

    def get(self, fetch_style: Union[FetchStyle, str] = FetchStyle.ASSOC) -> Any:
        """Run the SELECT and return every row shaped by ``fetch_style``."""
        statement = self._prepare(QueryType.SELECT)
        style = _fetch_style(fetch_style)
        compiled = self.compiler.compile(statement)
        return self._require_executor().fetch_all(compiled, style)

    def one(self, fetch_style: Union[FetchStyle, str] = FetchStyle.ASSOC) -> Any:
        """Run the SELECT and return the first row, or None when there is none.

        A ``LIMIT 1`` is added unless the statement is raw or already limited.
        """
        statement = self._prepare(QueryType.SELECT)
        style = _fetch_style(fetch_style)
        if style == FetchStyle.GROUP:
            raise build_error(
                "GROUP fetch style is not supported by one()",
                error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
                field="fetch_style",
                value=style.value
            )
        if not statement.is_raw and statement.limit is None:
            statement.limit = 1

        compiled = self.compiler.compile(statement)
        return self._require_executor().fetch_one(compiled, style)

    def count(self) -> int:
        """Run ``SELECT COUNT(*)`` over the statement and return the number.

        Raw statements run verbatim and the fetched rows are counted.
        """
        statement = self._prepare(QueryType.SELECT)
        if statement.is_raw:
            compiled = self.compiler.compile(statement)
            return len(self._require_executor().fetch_all(compiled, FetchStyle.NUM))

        compiled = self.compiler.compile_count(statement)
        return self._require_executor().fetch_scalar(compiled)

    def dataframe(self) -> pd.DataFrame:
        """Run the SELECT and return the rows as a pandas DataFrame."""
        statement = self._prepare(QueryType.SELECT)
        compiled = self.compiler.compile(statement)
        return self._require_executor().fetch_dataframe(compiled)

    def insert(self, values: Optional[Mapping] = None) -> Union[int, bool]:
        """Insert one row.

        Returns:
            The new row id when the driver reports one, otherwise True.
            Failures raise SqlChainError; False is never returned.
        """
        statement = self._prepare(QueryType.INSERT, values)
        compiled = self.compiler.compile(statement)
        return self._require_executor().insert(compiled)

    def update(self, values: Optional[Mapping] = None) -> int:
        """Update matching rows and return the affected-row count."""
        statement = self._prepare(QueryType.UPDATE, values)
        compiled = self.compiler.compile(statement)
        return self._require_executor().execute(compiled)

    def delete(self) -> int:
        """Delete matching rows and return the affected-row count."""
        statement = self._prepare(QueryType.DELETE)
        compiled = self.compiler.compile(statement)
        return self._require_executor().execute(compiled)

    def execute(self) -> int:
        """Run a raw statement that returns no rows and return the affected-row count."""
        statement = self._consume()
        if not statement.is_raw:
            raise build_error(
                "execute() runs raw statements only; use get(), insert(), update() or delete()",
                error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
                field="raw_sql"
            )
        compiled = self.compiler.compile(statement)
        return self._require_executor().execute(compiled)
