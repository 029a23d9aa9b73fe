"""Statement compiler.

Turns a ``Statement`` into SQL text plus bind parameters. Compilation
is pure: the same statement always yields the same text and the same
parameters, and no bind value ever appears in the text.

Clause order for SELECT is fixed regardless of builder call order:

    SELECT [DISTINCT] cols FROM table [JOIN ...] [WHERE ...] [GROUP BY ...]
    [HAVING ...] [ORDER BY ...] [LIMIT n] [OFFSET m]
"""

from enum import Enum
from typing import Any, Callable, Dict, Iterable, List, Optional, Set

from sqlglot import exp
from sqlglot.dialects.dialect import Dialect

from sqlchain.clauses import (
    GroupItem,
    Join,
    OrderItem,
    Predicate,
    PredicateGroup,
    RawPredicate,
    Statement,
    split_table_reference,
)
from sqlchain.clauses.validation import IDENTIFIER_PATTERN
from sqlchain.common.exceptions import (
    ErrorCode,
    build_error,
    compilation_error,
    configuration_error,
)
from sqlchain.constants.sql import (
    LIST_OPERATORS,
    NULL_EQUALS_OPERATORS,
    NULL_NOT_EQUALS_OPERATORS,
    RANGE_OPERATORS,
    PlaceholderStyle,
    QueryType,
)
from sqlchain.logging import get_logger
from sqlchain.settings import CompilerSettings
from .compiled import CompiledStatement

logger = get_logger(__name__)

COUNT_ALIAS = "aggregate"

# LIMIT value meaning "no limit" for dialects that cannot render OFFSET alone
_UNBOUNDED_LIMITS = {
    "sqlite": "-1",
    "mysql": "18446744073709551615",
}


def _text(value: Any) -> str:
    return value.value if isinstance(value, Enum) else str(value)


class _ParameterCollector:
    """Collects bind values in render order and hands out placeholders.

    Named styles generate ``p1, p2, ...`` and skip any name already
    claimed by a raw fragment's own parameters.
    """

    def __init__(self, style: PlaceholderStyle, reserved: Set[str]):
        self.style = style
        self._reserved = reserved
        self._counter = 0
        self._positional: List[Any] = []
        self._named: Dict[str, Any] = {}

    def bind(self, value: Any) -> str:
        if self.style == PlaceholderStyle.QMARK:
            self._positional.append(value)
            return "?"
        if self.style == PlaceholderStyle.FORMAT:
            self._positional.append(value)
            return "%s"

        name = self._next_name()
        self._named[name] = value
        if self.style == PlaceholderStyle.NAMED:
            return f":{name}"
        return f"%({name})s"

    def extend(self, params: Any, fragment: str) -> None:
        """Append a raw fragment's own parameters."""
        if not params:
            return

        if self.style.is_named:
            if not isinstance(params, dict):
                raise build_error(
                    f"Parameters of {fragment} must be a mapping for {self.style.value} placeholders",
                    error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
                    field=fragment
                )
            for key, value in params.items():
                name = _param_name(key, fragment)
                if name in self._named:
                    raise build_error(
                        f"Duplicate parameter name in {fragment}: {name}",
                        error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
                        field=fragment,
                        value=name
                    )
                self._named[name] = value
            return

        if not isinstance(params, list):
            raise build_error(
                f"Parameters of {fragment} must be a sequence for {self.style.value} placeholders",
                error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
                field=fragment
            )
        self._positional.extend(params)

    @property
    def parameters(self) -> Any:
        if self.style.is_named:
            return dict(self._named)
        return list(self._positional)

    def _next_name(self) -> str:
        while True:
            self._counter += 1
            name = f"p{self._counter}"
            if name not in self._reserved and name not in self._named:
                return name


def _param_name(key: Any, fragment: str) -> str:
    if not isinstance(key, str) or not key.lstrip(":"):
        raise build_error(
            f"Parameter names of {fragment} must be non-empty strings",
            error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
            field=fragment,
            value=key
        )
    return key[1:] if key.startswith(":") else key


class StatementCompiler:
    """Compiles statements for one placeholder style and dialect.

    The compiler holds configuration only; every call builds its own
    parameter collector, so one instance can be shared across threads.

    Example:
        >>> compiler = StatementCompiler()
        >>> statement = Statement(operation=QueryType.SELECT, table="users")
        >>> compiler.compile(statement).sql
        'SELECT * FROM users'
    """

    def __init__(
        self,
        placeholder_style: PlaceholderStyle = PlaceholderStyle.QMARK,
        dialect: str = "sqlite",
        quote_identifiers: bool = False,
        allow_unconditional_writes: bool = False,
    ):
        try:
            self.placeholder_style = PlaceholderStyle(placeholder_style)
        except ValueError as exc:
            raise configuration_error(
                f"Unknown placeholder style: {placeholder_style}",
                config_key="placeholder_style",
                cause=exc
            ) from exc

        self.dialect = (dialect or "").strip().lower()
        try:
            Dialect.get_or_raise(self.dialect)
        except ValueError as exc:
            raise configuration_error(
                f"Unknown SQL dialect: {dialect}",
                config_key="dialect",
                cause=exc
            ) from exc

        self.quote_identifiers = quote_identifiers
        self.allow_unconditional_writes = allow_unconditional_writes

    @classmethod
    def from_settings(cls, settings: Optional[CompilerSettings] = None) -> "StatementCompiler":
        """Create a compiler from compiler settings (environment when omitted)."""
        if settings is None:
            from sqlchain.settings import get_settings
            settings = get_settings().compiler

        return cls(
            placeholder_style=settings.placeholder_style,
            dialect=settings.dialect,
            quote_identifiers=settings.quote_identifiers,
            allow_unconditional_writes=settings.allow_unconditional_writes,
        )

    def compile(self, statement: Statement) -> CompiledStatement:
        """Compile a statement into SQL text and parameters.

        Args:
            statement: Statement to compile

        Returns:
            CompiledStatement with the SQL text and bind parameters

        Raises:
            SqlChainError: BUILD_* when the statement is incomplete or
                inconsistent, COMPILE_INTERNAL for unknown node types
        """
        if statement.is_raw:
            return CompiledStatement(
                sql=statement.raw_sql,
                parameters=statement.raw_params,
                operation=QueryType.EXECUTE_SQL.value,
            )

        operation = self._require_operation(statement)
        self._require_table(statement)

        # Map operation type to builder method
        operation_mapping: Dict[QueryType, Callable[[Statement, _ParameterCollector], str]] = {
            QueryType.SELECT: self._build_select,
            QueryType.INSERT: self._build_insert,
            QueryType.UPDATE: self._build_update,
            QueryType.DELETE: self._build_delete,
        }

        builder_method = operation_mapping.get(operation)
        if builder_method is None:
            raise compilation_error(
                f"Operation type {operation.value} not supported by {self.__class__.__name__}",
                node_type=operation.value
            )

        params = self._collector(statement)
        sql = builder_method(statement, params)

        logger.debug(
            "Statement compiled",
            extra={"db.operation": operation.value, "db.table": statement.table}
        )
        return CompiledStatement(
            sql=sql,
            parameters=params.parameters,
            operation=operation.value,
            table=statement.table,
        )

    def compile_count(self, statement: Statement) -> CompiledStatement:
        """Compile ``SELECT COUNT(*) AS aggregate`` over a SELECT statement.

        Statements that group, paginate or use DISTINCT are counted
        through a subquery; otherwise the projection is replaced and
        ordering dropped. Raw statements are never rewritten: count them
        from the rows of ``compile(statement)``.
        """
        if statement.is_raw:
            raise build_error(
                "Raw statements cannot be rewritten into a COUNT; compile() them and count the fetched rows",
                error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
                field="raw_sql"
            )

        if statement.operation is not None and QueryType(statement.operation) != QueryType.SELECT:
            raise build_error(
                f"count() requires a SELECT statement, got {_text(statement.operation)}",
                error_code=ErrorCode.BUILD_OPERATION_CONFLICT,
                field="operation"
            )
        self._require_table(statement)

        params = self._collector(statement)
        if statement.grouping or statement.having or statement.distinct or statement.is_paginated:
            inner_statement = statement.model_copy(update={
                "operation": QueryType.SELECT,
                "ordering": statement.ordering if statement.is_paginated else [],
            })
            inner = self._build_select(inner_statement, params)
            sql = f"SELECT COUNT(*) AS {COUNT_ALIAS} FROM ({inner}) AS {COUNT_ALIAS}_table"
        else:
            count_statement = statement.model_copy(update={
                "operation": QueryType.SELECT,
                "columns": [f"COUNT(*) AS {COUNT_ALIAS}"],
                "ordering": [],
            })
            sql = self._build_select(count_statement, params)

        return CompiledStatement(
            sql=sql,
            parameters=params.parameters,
            operation=QueryType.SELECT.value,
            table=statement.table,
        )

    # ------------------------------------------------------------------
    # Statement builders
    # ------------------------------------------------------------------

    def _build_select(self, statement: Statement, params: _ParameterCollector) -> str:
        parts = ["SELECT"]
        if statement.distinct:
            parts.append("DISTINCT")
        parts.append(self._render_columns(statement.columns))
        parts.append(f"FROM {self._render_table(statement.table)}")

        for join in statement.joins:
            parts.append(self._render_join(join))

        where = self._render_conditions(statement.predicates, params)
        if where:
            parts.append(f"WHERE {where}")

        if statement.grouping:
            parts.append("GROUP BY " + ", ".join(
                self._render_group_item(item, params) for item in statement.grouping
            ))

        having = self._render_conditions(statement.having, params)
        if having:
            parts.append(f"HAVING {having}")

        if statement.ordering:
            parts.append("ORDER BY " + ", ".join(
                self._render_order_item(item, params) for item in statement.ordering
            ))

        pagination = self._render_pagination(statement)
        if pagination:
            parts.append(pagination)

        return " ".join(parts)

    def _build_insert(self, statement: Statement, params: _ParameterCollector) -> str:
        self._reject_clauses(statement, QueryType.INSERT, allowed=())
        self._require_values(statement, QueryType.INSERT)

        columns = ", ".join(self._quote(column) for column in statement.values)
        placeholders = ", ".join(params.bind(value) for value in statement.values.values())
        return f"INSERT INTO {self._render_table(statement.table)} ({columns}) VALUES ({placeholders})"

    def _build_update(self, statement: Statement, params: _ParameterCollector) -> str:
        self._reject_clauses(statement, QueryType.UPDATE, allowed=("where",))
        self._require_values(statement, QueryType.UPDATE)
        self._guard_unconditional(statement, QueryType.UPDATE)

        assignments = ", ".join(
            f"{self._quote(column)} = {params.bind(value)}"
            for column, value in statement.values.items()
        )
        sql = f"UPDATE {self._render_table(statement.table)} SET {assignments}"

        where = self._render_conditions(statement.predicates, params)
        if where:
            sql = f"{sql} WHERE {where}"
        return sql

    def _build_delete(self, statement: Statement, params: _ParameterCollector) -> str:
        self._reject_clauses(statement, QueryType.DELETE, allowed=("where",))
        self._guard_unconditional(statement, QueryType.DELETE)

        sql = f"DELETE FROM {self._render_table(statement.table)}"
        where = self._render_conditions(statement.predicates, params)
        if where:
            sql = f"{sql} WHERE {where}"
        return sql

    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------

    def _require_operation(self, statement: Statement) -> QueryType:
        if statement.operation is None:
            raise build_error(
                "Statement has no operation; call select(), insert(), update() or delete()",
                error_code=ErrorCode.BUILD_ERROR,
                field="operation"
            )
        return QueryType(statement.operation)

    def _require_table(self, statement: Statement) -> None:
        if not statement.table:
            raise build_error(
                "Statement has no table; call table() first",
                error_code=ErrorCode.BUILD_MISSING_TABLE,
                field="table"
            )

    def _require_values(self, statement: Statement, operation: QueryType) -> None:
        if not statement.values:
            raise build_error(
                f"{operation.value} requires at least one column value",
                error_code=ErrorCode.BUILD_MISSING_VALUES,
                field="values"
            )

    def _guard_unconditional(self, statement: Statement, operation: QueryType) -> None:
        if statement.predicates or statement.unconditional or self.allow_unconditional_writes:
            return
        raise build_error(
            f"{operation.value} without a WHERE clause affects every row of {statement.table}; "
            f"call unconditional() to confirm",
            error_code=ErrorCode.BUILD_UNCONDITIONAL_WRITE,
            field="where",
            value=statement.table
        )

    def _reject_clauses(self, statement: Statement, operation: QueryType, allowed: Iterable[str]) -> None:
        used = {
            "columns": bool(statement.columns),
            "distinct": statement.distinct,
            "join": bool(statement.joins),
            "where": bool(statement.predicates),
            "group_by": bool(statement.grouping),
            "having": bool(statement.having),
            "order_by": bool(statement.ordering),
            "limit/offset": statement.is_paginated,
        }
        allowed = set(allowed)
        unsupported = [name for name, present in used.items() if present and name not in allowed]
        if unsupported:
            raise build_error(
                f"{operation.value} does not support: {', '.join(unsupported)}",
                error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
                field="operation",
                details={"clauses": unsupported}
            )

    # ------------------------------------------------------------------
    # Rendering helpers
    # ------------------------------------------------------------------

    def _collector(self, statement: Statement) -> _ParameterCollector:
        reserved: Set[str] = set()
        if self.placeholder_style.is_named:
            reserved = self._reserved_names(statement)
        return _ParameterCollector(self.placeholder_style, reserved)

    def _reserved_names(self, statement: Statement) -> Set[str]:
        """Names used by raw fragment parameters, so generated names never collide."""
        names: Set[str] = set()

        def collect(params: Any) -> None:
            if isinstance(params, dict):
                names.update(key.lstrip(":") for key in params if isinstance(key, str))

        def walk(nodes: List[Any]) -> None:
            for node in nodes:
                if isinstance(node, RawPredicate):
                    collect(node.params)
                elif isinstance(node, PredicateGroup):
                    walk(node.items)

        walk(statement.predicates)
        walk(statement.having)
        for item in [*statement.grouping, *statement.ordering]:
            collect(item.params)
        return names

    def _quote(self, identifier: str) -> str:
        """Quote a (possibly dotted) identifier using the dialect's rules."""
        if not self.quote_identifiers:
            return identifier
        return ".".join(
            part if part == "*" else exp.to_identifier(part, quoted=True).sql(dialect=self.dialect)
            for part in identifier.split(".")
        )

    def _render_table(self, reference: str) -> str:
        name, alias = split_table_reference(reference)
        if alias:
            return f"{self._quote(name)} AS {self._quote(alias)}"
        return self._quote(name)

    def _render_columns(self, columns: List[str]) -> str:
        if not columns:
            return "*"
        return ", ".join(
            self._quote(column) if column != "*" and IDENTIFIER_PATTERN.match(column) else column
            for column in columns
        )

    def _render_join(self, join: Join) -> str:
        if join.is_raw:
            condition = join.condition
        else:
            condition = f"{self._quote(join.left_field)} {join.operator} {self._quote(join.right_field)}"
        return f"{_text(join.kind)} JOIN {self._render_table(join.table)} ON {condition}"

    def _render_order_item(self, item: OrderItem, params: _ParameterCollector) -> str:
        if item.is_raw:
            params.extend(item.params, "order_by_raw")
            return item.raw
        return f"{self._quote(item.column)} {_text(item.direction)}"

    def _render_group_item(self, item: GroupItem, params: _ParameterCollector) -> str:
        if item.is_raw:
            params.extend(item.params, "group_by_raw")
            return item.raw
        return self._quote(item.column)

    def _render_conditions(self, nodes: List[Any], params: _ParameterCollector) -> str:
        return self._render_sequence(nodes, params, isolated=len(nodes) > 1)

    def _render_sequence(self, nodes: List[Any], params: _ParameterCollector, isolated: bool) -> str:
        rendered: List[str] = []
        for index, node in enumerate(nodes):
            sql = self._render_node(node, params, isolated)
            rendered.append(f"{_text(node.connector)} {sql}" if index else sql)
        return " ".join(rendered)

    def _render_node(self, node: Any, params: _ParameterCollector, isolated: bool) -> str:
        """Render one node depth-first.

        ``isolated`` is True when the node has siblings; only then does a
        multi-item group need parentheses. A single-item group passes its
        own context through to its only child.
        """
        if isinstance(node, Predicate):
            return self._render_predicate(node, params)

        if isinstance(node, RawPredicate):
            params.extend(node.params, "where_raw")
            return node.sql

        if isinstance(node, PredicateGroup):
            if len(node.items) == 1:
                return self._render_node(node.items[0], params, isolated)
            inner = self._render_sequence(node.items, params, isolated=True)
            return f"({inner})" if isolated else inner

        raise compilation_error(
            f"Unknown predicate node type: {type(node).__name__}",
            node_type=type(node).__name__
        )

    def _render_predicate(self, predicate: Predicate, params: _ParameterCollector) -> str:
        field = self._quote(predicate.field)
        operator = predicate.operator
        value = predicate.value

        if value is None and operator in NULL_EQUALS_OPERATORS:
            return f"{field} IS NULL"
        if value is None and operator in NULL_NOT_EQUALS_OPERATORS:
            return f"{field} IS NOT NULL"

        if operator in LIST_OPERATORS:
            placeholders = ", ".join(params.bind(item) for item in value)
            return f"{field} {operator} ({placeholders})"

        if operator in RANGE_OPERATORS:
            low, high = value
            return f"{field} {operator} {params.bind(low)} AND {params.bind(high)}"

        return f"{field} {operator} {params.bind(value)}"

    def _render_pagination(self, statement: Statement) -> str:
        limit, offset = statement.limit, statement.offset
        if limit is None and offset is None:
            return ""

        if self.dialect == "tsql":
            clause = f"OFFSET {int(offset or 0)} ROWS"
            if limit is not None:
                clause = f"{clause} FETCH NEXT {int(limit)} ROWS ONLY"
            # OFFSET/FETCH is only valid after ORDER BY
            return clause if statement.ordering else f"ORDER BY (SELECT NULL) {clause}"

        parts = []
        if limit is not None:
            parts.append(f"LIMIT {int(limit)}")
        elif self.dialect in _UNBOUNDED_LIMITS:
            parts.append(f"LIMIT {_UNBOUNDED_LIMITS[self.dialect]}")
        if offset is not None:
            parts.append(f"OFFSET {int(offset)}")
        return " ".join(parts)
