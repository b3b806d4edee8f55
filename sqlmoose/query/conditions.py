"""
Condition compiler.

Turns document-style conditions into parameterized boolean fragments:

    age = ?                                   plain field
    JSON_EXTRACT(`profile`, '$.email') = ?    dotted path into a JSON column
    `tags` IN (?, ?, ?)                       membership

Supported operators: equals, not-equals, membership, less-or-equal,
greater-or-equal and pattern match. A plain equality map compiles every
key as equals; the resulting clauses are conjoined with AND. There is no
implicit OR.

Invariants:
    - Compilation never fails on odd input shapes; unknown operators and
      empty membership sets contribute no clause
    - Parameters appear in the same order as their placeholders
"""

from __future__ import annotations

import logging
import re
from enum import Enum
from typing import Any, Iterable, List, Mapping, Optional

from ..codec import encode_value
from ..dialect import Dialect
from .statement import CompiledStatement

logger = logging.getLogger(__name__)

PATH_SEPARATOR = "."
_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class Operator(Enum):
    """Comparison operators and their SQL spelling."""

    EQ = "="
    NE = "!="
    IN = "IN"
    LTE = "<="
    GTE = ">="
    REGEX = "REGEXP"

    @classmethod
    def resolve(cls, name: Any) -> Optional[Operator]:
        """Resolve an operator name (`"ne"`, `"$ne"`, Operator.NE), or None."""
        if isinstance(name, Operator):
            return name
        if not isinstance(name, str):
            return None
        return _OPERATOR_NAMES.get(name.lstrip("$").lower())


_OPERATOR_NAMES = {
    "eq": Operator.EQ,
    "equals": Operator.EQ,
    "ne": Operator.NE,
    "in": Operator.IN,
    "lte": Operator.LTE,
    "gte": Operator.GTE,
    "regex": Operator.REGEX,
}


def json_path(segments: Iterable[str]) -> str:
    """Build a JSON path expression from path segments.

    Example:
        >>> json_path(["address", "city"])
        '$.address.city'
        >>> json_path(["tags", "0"])
        '$.tags[0]'
    """
    path = "$"
    for segment in segments:
        if segment.isdigit():
            path += f"[{segment}]"
        elif _IDENTIFIER.match(segment):
            path += f".{segment}"
        else:
            escaped = segment.replace("\\", "\\\\").replace('"', '\\"')
            path += f'."{escaped}"'
    return path


def is_nested_path(path: str) -> bool:
    return PATH_SEPARATOR in path


def compile_path(path: str, dialect: Dialect) -> str:
    """Compile a field name or dotted path to a value expression.

    The first segment names the column; any remainder is extracted from
    the column's JSON value. Non-string names are used by their text.
    """
    path = str(path)
    if not is_nested_path(path):
        return dialect.quote(path)
    column, *rest = path.split(PATH_SEPARATOR)
    return dialect.json_extract(column, json_path(rest))


def compile_condition(
    path: str,
    operator: Any,
    operand: Any,
    dialect: Dialect,
) -> Optional[CompiledStatement]:
    """Compile one condition.

    Args:
        path: Field name or dotted path
        operator: Operator or operator name
        operand: Comparison value (an iterable for IN)
        dialect: Target dialect

    Returns:
        The compiled fragment, or None if the condition filters nothing
    """
    if not isinstance(path, str):
        logger.debug(f"Skipping condition on non-string path {path!r}")
        return None

    op = Operator.resolve(operator)
    if op is None:
        logger.debug(f"Skipping unknown operator {operator!r} on '{path}'")
        return None

    expression = compile_path(path, dialect)

    if op is Operator.IN:
        if isinstance(operand, (str, bytes)) or not isinstance(operand, Iterable):
            values = [operand]
        else:
            values = list(operand)
        if not values:
            return None
        placeholders = ", ".join("?" for _ in values)
        return CompiledStatement(
            f"{expression} IN ({placeholders})",
            tuple(encode_value(v) for v in values),
        )

    if operand is None and op in (Operator.EQ, Operator.NE):
        null_test = "IS NULL" if op is Operator.EQ else "IS NOT NULL"
        return CompiledStatement(f"{expression} {null_test}")

    if op is Operator.REGEX:
        operand = getattr(operand, "pattern", operand)
        return CompiledStatement(f"{expression} {dialect.regex_operator} ?", (operand,))

    return CompiledStatement(f"{expression} {op.value} ?", (encode_value(operand),))


def is_operator_document(value: Any) -> bool:
    """Whether a value is an operator document like {"$gte": 18}."""
    return (
        isinstance(value, Mapping)
        and bool(value)
        and all(isinstance(k, str) and k.startswith("$") for k in value)
    )


def compile_filter(conditions: Optional[Mapping[str, Any]], dialect: Dialect) -> List[CompiledStatement]:
    """Compile an equality map (optionally holding operator documents).

    Example:
        >>> [c.text for c in compile_filter({"age": {"$gte": 18}, "name": "Ann"}, MySQLDialect())]
        ['`age` >= ?', '`name` = ?']
    """
    clauses: List[CompiledStatement] = []
    if conditions is not None and not isinstance(conditions, Mapping):
        logger.debug(f"Skipping filter that is not a mapping: {conditions!r}")
        return clauses
    for path, value in (conditions or {}).items():
        if is_operator_document(value):
            for operator, operand in value.items():
                clause = compile_condition(path, operator, operand, dialect)
                if clause is not None:
                    clauses.append(clause)
        else:
            clause = compile_condition(path, Operator.EQ, value, dialect)
            if clause is not None:
                clauses.append(clause)
    return clauses


def conjoin(clauses: List[CompiledStatement]) -> Optional[CompiledStatement]:
    """AND together compiled clauses; None when there are none."""
    if not clauses:
        return None
    return CompiledStatement.join(clauses, " AND ")


def sort_direction(direction: Any) -> str:
    """Normalize a sort direction. Descending only on explicit request."""
    if isinstance(direction, str) and direction.lower() in ("desc", "descending", "-1"):
        return "DESC"
    if isinstance(direction, (int, float)) and not isinstance(direction, bool) and direction == -1:
        return "DESC"
    return "ASC"


def compile_sort(path: str, direction: Any, dialect: Dialect) -> str:
    return f"{compile_path(path, dialect)} {sort_direction(direction)}"
