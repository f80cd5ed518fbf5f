"""Convert native cell values into engine-agnostic generic values.

Every helper here is total: an unrecognized or unconvertible value degrades
to a string instead of raising, so a single odd cell can never abort a query.
"""

from __future__ import annotations

import datetime as dt
import math
import re
from decimal import Decimal
from typing import Any, Mapping

from bson import ObjectId

from .models import GenericValue

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1

BOOLEAN_TYPES = frozenset({"BOOLEAN", "BOOL"})
INTEGER_TYPES = frozenset(
    {
        "TINYINT",
        "SMALLINT",
        "MEDIUMINT",
        "INT",
        "INTEGER",
        "BIGINT",
        "INT2",
        "INT4",
        "INT8",
        "SMALLSERIAL",
        "SERIAL",
        "BIGSERIAL",
    }
)
FLOAT_TYPES = frozenset(
    {
        "REAL",
        "FLOAT",
        "FLOAT4",
        "FLOAT8",
        "DOUBLE",
        "DOUBLE PRECISION",
        "DECIMAL",
        "NUMERIC",
    }
)
TEXT_TYPES = frozenset(
    {
        "TEXT",
        "VARCHAR",
        "CHAR",
        "BPCHAR",
        "CHARACTER",
        "CHARACTER VARYING",
        "STRING",
        "NAME",
    }
)

_TYPE_PARAMS = re.compile(r"\(.*\)")


def canonical_type(declared_type: str | None) -> str:
    """Upper-case a declared type label and drop size/precision parameters."""

    if not declared_type:
        return ""
    label = _TYPE_PARAMS.sub("", str(declared_type)).upper()
    label = label.replace("UNSIGNED", "").replace("ZEROFILL", "")
    return " ".join(label.split())


def normalize_value(value: Any, declared_type: str | None = None) -> GenericValue:
    """Normalize one relational or key-value cell using its declared type label."""

    if value is None:
        return None
    label = canonical_type(declared_type)

    if label in BOOLEAN_TYPES:
        if isinstance(value, bool):
            return value
        if isinstance(value, int) and value in (0, 1):
            return bool(value)

    if label in INTEGER_TYPES:
        if isinstance(value, int) and not isinstance(value, bool) and INT64_MIN <= value <= INT64_MAX:
            return int(value)

    if label in FLOAT_TYPES:
        if isinstance(value, (int, float, Decimal)) and not isinstance(value, bool):
            number = _to_float(value)
            if number is not None:
                return number

    if label in TEXT_TYPES and isinstance(value, str):
        return value

    return _coerce_text(value, label)


def normalize_bson(value: Any) -> GenericValue:
    """Normalize a BSON value, recursing into embedded documents and arrays."""

    if value is None:
        return None
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return normalize_value(value, "BIGINT")
    if isinstance(value, float):
        return normalize_value(value, "DOUBLE")
    if isinstance(value, str):
        return value
    if isinstance(value, ObjectId):
        return str(value)
    if isinstance(value, Mapping):
        return {str(key): normalize_bson(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [normalize_bson(item) for item in value]
    return _coerce_text(value, type(value).__name__)


def normalize_document(document: Mapping[str, Any]) -> dict[str, GenericValue]:
    """Normalize a top-level document, keeping key order."""

    return {str(key): normalize_bson(value) for key, value in document.items()}


def document_type_label(value: GenericValue) -> str:
    """Column type label for a normalized document field."""

    if value is None:
        return "Null"
    if isinstance(value, bool):
        return "Boolean"
    if isinstance(value, int):
        return "Int64"
    if isinstance(value, float):
        return "Double"
    if isinstance(value, str):
        return "String"
    if isinstance(value, list):
        return "Array"
    if isinstance(value, dict):
        return "Document"
    return "String"


def sqlite_storage_class(value: Any) -> str:
    """Storage class of a cell returned by the embedded engine."""

    if value is None:
        return "NULL"
    if isinstance(value, bool) or isinstance(value, int):
        return "INTEGER"
    if isinstance(value, float):
        return "REAL"
    if isinstance(value, str):
        return "TEXT"
    return "BLOB"


def _to_float(value: int | float | Decimal) -> float | None:
    try:
        number = float(value)
    except (OverflowError, ValueError):
        return None
    if not math.isfinite(number):
        return None
    return number


def _coerce_text(value: Any, label: str) -> GenericValue:
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray, memoryview)):
        raw = bytes(value)
        try:
            return raw.decode("utf-8")
        except UnicodeDecodeError:
            return raw.hex()
    if isinstance(value, (dt.datetime, dt.date, dt.time)):
        return value.isoformat()
    try:
        return str(value)
    except Exception:
        return f"{type(value).__name__}({label or 'UNKNOWN'})"


__all__ = [
    "BOOLEAN_TYPES",
    "FLOAT_TYPES",
    "INTEGER_TYPES",
    "TEXT_TYPES",
    "canonical_type",
    "document_type_label",
    "normalize_bson",
    "normalize_document",
    "normalize_value",
    "sqlite_storage_class",
]
