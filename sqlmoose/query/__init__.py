"""
Query compilation for sqlmoose.

This package turns document-style operations into parameterized SQL:
- Condition compiler (equality maps, operators, dotted paths)
- Query builder (chainable find)
- Aggregation pipeline compiler
- Write statement compilers
"""

from .aggregate import compile_pipeline
from .builder import Query
from .conditions import (
    Operator,
    compile_condition,
    compile_filter,
    compile_path,
    conjoin,
    json_path,
)
from .statement import CompiledStatement
from .writes import compile_delete, compile_insert, compile_update

__all__ = [
    "CompiledStatement",
    "Operator",
    "Query",
    "compile_condition",
    "compile_filter",
    "compile_path",
    "compile_pipeline",
    "compile_insert",
    "compile_update",
    "compile_delete",
    "conjoin",
    "json_path",
]
