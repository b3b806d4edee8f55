"""
Aggregation pipeline compiler.

Compiles an ordered list of single-key stages into one SELECT statement:

    [{"$match": {"active": True}},
     {"$group": {"_id": "$dept", "total": {"$sum": "$salary"}}},
     {"$sort": {"total": -1}},
     {"$limit": 10}]

    SELECT `dept`, SUM(`salary`) AS `total` FROM `employees`
    WHERE `active` = ? GROUP BY `dept` ORDER BY `total` DESC LIMIT 10

Stage rules:
    - match: equality/operator map, conjoined into WHERE (params in stage order)
    - project: truthy-flagged columns replace the select list (last one wins)
    - group: accumulators (sum/avg/max/min) plus the `_id` grouping key
      replace the select list and set GROUP BY
    - sort: per-field direction, -1 descending
    - limit/skip: LIMIT/OFFSET

Stage names and accumulator names may be written with or without `$`.
Unknown stages are skipped.
"""

from __future__ import annotations

import logging
from typing import Any, List, Mapping, Optional, Sequence, Tuple

from ..dialect import Dialect
from .conditions import compile_filter, compile_path, compile_sort, conjoin, is_nested_path
from .statement import CompiledStatement

logger = logging.getLogger(__name__)

ACCUMULATORS = {
    "sum": "SUM",
    "avg": "AVG",
    "max": "MAX",
    "min": "MIN",
}


def _strip(name: str) -> str:
    return name.lstrip("$")


def _stage(stage: Any) -> Tuple[Optional[str], Any]:
    if not isinstance(stage, Mapping) or len(stage) != 1:
        return None, None
    ((name, payload),) = stage.items()
    return _strip(str(name)).lower(), payload


def _aliased(path: str, alias: str, dialect: Dialect) -> str:
    expression = compile_path(path, dialect)
    if not is_nested_path(path) and path == alias:
        return expression
    return f"{expression} AS {dialect.quote(alias)}"


def _as_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def compile_project(spec: Mapping[str, Any], dialect: Dialect) -> List[str]:
    columns = []
    for name, flag in spec.items():
        if not flag:
            continue
        path = "id" if name == "_id" else name
        columns.append(_aliased(path, path, dialect))
    return columns


def compile_group(spec: Mapping[str, Any], dialect: Dialect) -> Tuple[List[str], List[str]]:
    """Compile a group stage.

    Returns:
        Tuple of (select expressions, GROUP BY expressions)
    """
    select: List[str] = []
    grouping: List[str] = []

    for key, value in spec.items():
        if key == "_id":
            keys: List[Tuple[str, str]] = []
            if isinstance(value, str):
                path = _strip(value)
                keys.append((path, path))
            elif isinstance(value, Mapping):
                keys.extend(
                    (_strip(ref), alias) for alias, ref in value.items() if isinstance(ref, str)
                )
            for path, alias in keys:
                select.append(_aliased(path, alias, dialect))
                grouping.append(compile_path(path, dialect))
            continue

        if not isinstance(value, Mapping):
            continue
        for accumulator, source in value.items():
            function = ACCUMULATORS.get(_strip(str(accumulator)).lower())
            if function is None:
                logger.debug(f"Skipping unknown accumulator {accumulator!r} for '{key}'")
                continue
            if isinstance(source, str):
                argument = compile_path(_strip(source), dialect)
            elif isinstance(source, (int, float)) and not isinstance(source, bool):
                argument = str(source)
            else:
                continue
            select.append(f"{function}({argument}) AS {dialect.quote(key)}")

    return select, grouping


def compile_pipeline(
    table: str,
    pipeline: Sequence[Mapping[str, Any]],
    dialect: Dialect,
) -> CompiledStatement:
    """Compile an aggregation pipeline into a single SELECT.

    Args:
        table: Source table
        pipeline: Ordered stages
        dialect: Target dialect

    Returns:
        The compiled statement
    """
    select = "*"
    where: List[CompiledStatement] = []
    group_by: List[str] = []
    order_by: List[str] = []
    limit: Optional[int] = None
    offset: Optional[int] = None

    for stage in pipeline or ():
        name, payload = _stage(stage)
        if name == "match" and isinstance(payload, Mapping):
            where.extend(compile_filter(payload, dialect))
        elif name == "project" and isinstance(payload, Mapping):
            columns = compile_project(payload, dialect)
            if columns:
                select = ", ".join(columns)
        elif name == "group" and isinstance(payload, Mapping):
            expressions, grouping = compile_group(payload, dialect)
            if expressions:
                select = ", ".join(expressions)
                group_by = grouping
        elif name == "sort" and isinstance(payload, Mapping):
            order_by.extend(compile_sort(path, direction, dialect) for path, direction in payload.items())
        elif name == "limit":
            limit = _as_int(payload)
        elif name == "skip":
            offset = _as_int(payload)
        else:
            logger.debug(f"Skipping unsupported pipeline stage {stage!r}")

    text = f"SELECT {select} FROM {dialect.quote(table)}"
    params: List[Any] = []

    condition = conjoin(where)
    if condition is not None:
        text += f" WHERE {condition.text}"
        params.extend(condition.params)
    if group_by:
        text += f" GROUP BY {', '.join(group_by)}"
    if order_by:
        text += f" ORDER BY {', '.join(order_by)}"
    tail = dialect.limit_offset(limit, offset)
    if tail:
        text += f" {tail}"

    return CompiledStatement(text, tuple(params))
