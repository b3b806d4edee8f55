"""
Document codec: documents to column values and back.

Encoding (writes):
- Declared defaults are applied for absent fields (nested ones too)
- Temporal values become `YYYY-MM-DD HH:MM:SS` text; aware values are
  converted to UTC and sub-second precision is dropped
- Mappings and sequences become JSON text
- None stays None; other scalars pass through

Decoding (reads):
- Any text cell that looks like a JSON object or array literal is parsed;
  parse failures leave the text untouched
- When field descriptors are supplied, Temporal text is turned back into
  datetime and Boolean integers into bool

Invariants:
    - decode never raises
    - Decoding does not require the originating schema

Known ambiguity:
    A TEXT field whose value happens to look like `{...}` or `[...]` is
    decoded into a structure. The heuristic is kept as-is; callers may rely
    on it to recover nested values without type metadata.
"""

from __future__ import annotations

import json
import logging
from datetime import date, datetime, timezone
from typing import Any, Dict, List, Mapping, MutableMapping, Optional, Tuple

from .schema.types import FieldDescriptor, FieldType

logger = logging.getLogger(__name__)

TEMPORAL_FORMAT = "%Y-%m-%d %H:%M:%S"
_TEMPORAL_PARSE_FORMATS = (TEMPORAL_FORMAT, "%Y-%m-%dT%H:%M:%S", "%Y-%m-%d")

Fields = Mapping[str, FieldDescriptor]


def format_temporal(value: date) -> str:
    """Format a date/datetime with the fixed storage profile.

    Example:
        >>> format_temporal(datetime(2024, 5, 1, 9, 30, 15, 999))
        '2024-05-01 09:30:15'
    """
    if isinstance(value, datetime):
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        return value.strftime(TEMPORAL_FORMAT)
    return datetime(value.year, value.month, value.day).strftime(TEMPORAL_FORMAT)


def _json_default(value: Any) -> Any:
    if isinstance(value, date):
        return format_temporal(value)
    if isinstance(value, (set, frozenset)):
        return list(value)
    return str(value)


def to_json(value: Any) -> str:
    return json.dumps(value, default=_json_default, ensure_ascii=False, separators=(",", ":"))


def encode_value(value: Any) -> Any:
    """Encode a single value for storage or as a statement parameter."""
    if value is None:
        return None
    if isinstance(value, date):
        return format_temporal(value)
    if isinstance(value, (Mapping, list, tuple, set, frozenset)):
        return to_json(value)
    return value


def apply_defaults(document: MutableMapping[str, Any], fields: Fields) -> MutableMapping[str, Any]:
    """Fill declared defaults for absent fields, in place.

    Nested defaults are applied when the parent value is a mapping.
    """
    for name, descriptor in fields.items():
        if name not in document:
            if descriptor.has_default:
                document[name] = descriptor.resolve_default()
            continue
        value = document[name]
        if descriptor.nested and isinstance(value, MutableMapping):
            apply_defaults(value, descriptor.nested)
    return document


def encode_document(
    document: MutableMapping[str, Any],
    fields: Optional[Fields] = None,
) -> List[Tuple[str, Any]]:
    """Encode a document into ordered (column, value) pairs.

    Defaults are written back into the document, matching what is stored.

    Args:
        document: The document to encode
        fields: Declared field descriptors

    Returns:
        Ordered list of (column name, storage value)
    """
    if fields:
        apply_defaults(document, fields)
    return [(name, encode_value(value)) for name, value in document.items()]


def looks_structured(text: str) -> bool:
    return (text.startswith("{") and text.endswith("}")) or (
        text.startswith("[") and text.endswith("]")
    )


def decode_value(value: Any) -> Any:
    """Parse JSON-looking text; anything else is returned unchanged."""
    if not isinstance(value, str) or not looks_structured(value):
        return value
    try:
        return json.loads(value)
    except ValueError:
        return value


def _parse_temporal(text: str) -> Any:
    for fmt in _TEMPORAL_PARSE_FORMATS:
        try:
            return datetime.strptime(text, fmt)
        except ValueError:
            continue
    return text


def _restore(value: Any, descriptor: FieldDescriptor) -> Any:
    if value is None:
        return None
    if descriptor.type is FieldType.TEMPORAL and isinstance(value, str):
        return _parse_temporal(value)
    if descriptor.type is FieldType.BOOLEAN and isinstance(value, int) and not isinstance(value, bool):
        return bool(value)
    if descriptor.nested and isinstance(value, dict):
        for name, child in descriptor.nested.items():
            if name in value:
                value[name] = _restore(value[name], child)
    return value


def decode_row(row: Mapping[str, Any], fields: Optional[Fields] = None) -> Dict[str, Any]:
    """Decode a result row into a document.

    Args:
        row: Column name to raw value
        fields: Optional descriptors enabling temporal/boolean restoration

    Returns:
        A new document mapping
    """
    document = {name: decode_value(value) for name, value in row.items()}
    if fields:
        for name, descriptor in fields.items():
            if name in document:
                document[name] = _restore(document[name], descriptor)
    return document


def decode_rows(rows: List[Mapping[str, Any]], fields: Optional[Fields] = None) -> List[Dict[str, Any]]:
    return [decode_row(row, fields) for row in rows]
