"""Statement execution and row shaping."""

from sqlchain.constants.sql import FetchStyle
from .rows import shape_row, shape_rows
from .statement_executor import StatementExecutor, bind_parameters

__all__ = [
    "StatementExecutor",
    "FetchStyle",
    "bind_parameters",
    "shape_row",
    "shape_rows",
]
