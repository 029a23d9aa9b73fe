from collections.abc import Mapping
from typing import Any, List, Sequence

from sqlchain.clauses import (
    PredicateGroup,
    PredicateNode,
    predicate_equals,
    predicate_group,
    predicate_op,
    predicate_raw,
)
from sqlchain.common.exceptions import ErrorCode, build_error
from sqlchain.constants.sql import Connector


class _Missing:
    """Sentinel for arguments that were not passed (None is a valid value)."""

    def __repr__(self) -> str:
        return "MISSING"


MISSING: Any = _Missing()


def resolve_condition(
    param1: Any,
    param2: Any = MISSING,
    param3: Any = MISSING,
    connector: Connector = Connector.AND,
) -> PredicateNode:
    """Resolve the argument shapes accepted by ``where()`` into one node.

    Shapes:
        ``(field, value)``: equality
        ``(field, operator, value)``: comparison
        ``(sequence)``: AND-group of ``(field, value)`` or ``(field, op, value)`` entries
        ``(mapping)``: AND-group of equalities
        ``(callable)``: nested group built on a fresh ``ConditionGroup``

    Raises:
        SqlChainError: BUILD_INVALID_ARGUMENT for any other shape
    """
    if param2 is MISSING and param3 is MISSING:
        if callable(param1):
            group = ConditionGroup()
            param1(group)
            if not group.predicates:
                raise build_error(
                    "Nested condition callback added no conditions",
                    error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
                    field="where"
                )
            return PredicateGroup(items=group.predicates, connector=connector)

        if isinstance(param1, (Mapping, list, tuple)):
            if not param1:
                raise build_error(
                    "Condition list must not be empty",
                    error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
                    field="where"
                )
            return predicate_group(param1, connector)

    elif isinstance(param1, str):
        if param3 is MISSING:
            return predicate_equals(param1, param2, connector)
        if param2 is not MISSING:
            return predicate_op(param1, param2, param3, connector)

    raise build_error(
        f"Unsupported condition arguments: ({type(param1).__name__}, "
        f"{'-' if param2 is MISSING else type(param2).__name__}, "
        f"{'-' if param3 is MISSING else type(param3).__name__})",
        error_code=ErrorCode.BUILD_INVALID_ARGUMENT,
        field="where"
    )


class ConditionGroup:
    """Accumulates predicate nodes through ``where``-style calls.

    Used directly as the target of nested condition callbacks, and as
    the base of ``QueryBuilder`` for its WHERE clause.

    Example:
        >>> builder.where("active", True).where(
        ...     lambda q: q.where("role", "admin").or_where("votes", ">", 100)
        ... )
        # WHERE active = ? AND (role = ? OR votes > ?)
    """

    def __init__(self):
        self.predicates: List[PredicateNode] = []

    def _ensure_open(self) -> None:
        """Hook for subclasses that refuse changes after a terminal call."""

    def _conditions(self) -> List[PredicateNode]:
        return self.predicates

    def _push(self, node: PredicateNode):
        self._conditions().append(node)
        return self

    def where(self, param1: Any, param2: Any = MISSING, param3: Any = MISSING):
        """Add an AND-connected condition. See ``resolve_condition`` for shapes."""
        self._ensure_open()
        return self._push(resolve_condition(param1, param2, param3, Connector.AND))

    def or_where(self, param1: Any, param2: Any = MISSING, param3: Any = MISSING):
        """Add an OR-connected condition."""
        self._ensure_open()
        return self._push(resolve_condition(param1, param2, param3, Connector.OR))

    def where_raw(self, condition: str, params: Any = None):
        """Add an AND-connected raw fragment rendered verbatim."""
        self._ensure_open()
        return self._push(predicate_raw(condition, params, Connector.AND))

    def or_where_raw(self, condition: str, params: Any = None):
        self._ensure_open()
        return self._push(predicate_raw(condition, params, Connector.OR))

    def where_in(self, field: str, values: Sequence[Any]):
        self._ensure_open()
        return self._push(predicate_op(field, "IN", values))

    def where_not_in(self, field: str, values: Sequence[Any]):
        self._ensure_open()
        return self._push(predicate_op(field, "NOT IN", values))

    def where_null(self, field: str):
        self._ensure_open()
        return self._push(predicate_op(field, "IS", None))

    def where_not_null(self, field: str):
        self._ensure_open()
        return self._push(predicate_op(field, "IS NOT", None))

    def where_between(self, field: str, low: Any, high: Any):
        self._ensure_open()
        return self._push(predicate_op(field, "BETWEEN", (low, high)))
