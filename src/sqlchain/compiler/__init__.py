"""Statement compilation: clause model in, SQL text and parameters out."""

from .compiled import CompiledStatement
from .statement_compiler import COUNT_ALIAS, StatementCompiler

__all__ = [
    "CompiledStatement",
    "StatementCompiler",
    "COUNT_ALIAS",
]
