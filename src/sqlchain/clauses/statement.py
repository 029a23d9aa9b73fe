from typing import Any, Dict, List, Optional

from pydantic import Field, field_validator

from sqlchain.constants.sql import QueryType
from sqlchain.types.base import SqlChainBaseModel
from .joins import Join
from .ordering import GroupItem, OrderItem
from .predicates import PredicateNode
from .validation import normalize_params


class Statement(SqlChainBaseModel):
    """Accumulated, not yet compiled description of one SQL statement.

    Statements are pure data: the builder fills them in and the compiler
    turns them into SQL text plus parameters. When ``raw_sql`` is set,
    every other field is ignored.

    Attributes:
        operation: SELECT, INSERT, UPDATE or DELETE; set once
        table: Target table, optionally aliased
        columns: Projection expressions; empty means ``*``
        distinct: Render ``SELECT DISTINCT``
        values: Column -> bind value for INSERT/UPDATE, in insertion order
        joins: JOIN clauses in insertion order
        predicates: Top-level WHERE nodes
        having: Top-level HAVING nodes
        grouping: GROUP BY entries
        ordering: ORDER BY entries
        limit: Row limit, rendered as a literal integer
        offset: Row offset, rendered as a literal integer
        raw_sql: Verbatim statement text
        raw_params: Parameters bound to ``raw_sql`` as given
        unconditional: Confirms an UPDATE/DELETE without predicates
    """
    operation: Optional[QueryType] = Field(default=None)
    table: Optional[str] = Field(default=None)

    columns: List[str] = Field(default_factory=list)
    distinct: bool = Field(default=False)
    values: Dict[str, Any] = Field(default_factory=dict)

    joins: List[Join] = Field(default_factory=list)
    predicates: List[PredicateNode] = Field(default_factory=list)
    having: List[PredicateNode] = Field(default_factory=list)

    grouping: List[GroupItem] = Field(default_factory=list)
    ordering: List[OrderItem] = Field(default_factory=list)

    limit: Optional[int] = Field(default=None, ge=0)
    offset: Optional[int] = Field(default=None, ge=0)

    raw_sql: Optional[str] = Field(default=None)
    raw_params: Any = Field(default=None)

    unconditional: bool = Field(default=False)

    @field_validator("raw_params", mode="before")
    @classmethod
    def validate_raw_params(cls, v: Any) -> Any:
        return normalize_params(v)

    @property
    def is_raw(self) -> bool:
        return self.raw_sql is not None

    @property
    def is_paginated(self) -> bool:
        return self.limit is not None or self.offset is not None
