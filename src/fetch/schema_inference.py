"""Schema inference and schema-driven row coercion.

This module infers column types for sources that carry no explicit schema,
and converts raw row values into the typed scalars a schema describes.
"""

from __future__ import annotations

import math
import re
from typing import Iterable, Mapping, Sequence

from core.types import Column, ColumnType, Row, Scalar, Table

# Code-like columns keep leading zeros, so they are never numeric.
CODE_COLUMNS = (
    "code",
    "sizeCode",
    "colorCode",
    "size_code",
    "color_code",
    "product_code",
    "productCode",
    "jan_code",
)
CODE_NAME_PATTERNS = ("コード", "code", "Code", "CODE")
BOOLEAN_FLAG_COLUMNS = ("is_published", "is_active", "is_deleted", "is_visible", "is_enabled")
NUMERIC_NAME_PARTS = (
    "quantity",
    "price",
    "cost",
    "weight",
    "height",
    "width",
    "depth",
    "order",
    "sort_order",
)

_NUMBER_PATTERN = re.compile(r"^[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?$")
_INTEGER_PATTERN = re.compile(r"^[+-]?\d+$")
_BOOLEAN_TEXT = {"true": True, "false": False}


def is_code_column(name: str) -> bool:
    """Return whether a column holds codes that must stay text."""
    return name in CODE_COLUMNS or any(pattern in name for pattern in CODE_NAME_PATTERNS)


def infer_schema(rows: Sequence[Mapping[str, Scalar]]) -> tuple[Column, ...]:
    """Infer a schema from row values.

    Column order follows the first row that has any keys. Code-like columns
    are TEXT; a column whose non-null values are all numeric is NUMBER; all
    boolean is BOOLEAN; anything else, including all-null columns, is TEXT.

    Args:
        rows: Rows with raw or typed values.

    Returns:
        Inferred columns; empty when no row has keys.
    """
    first_row = next((row for row in rows if row), None)
    if first_row is None:
        return ()
    return tuple(_infer_column(name, rows) for name in first_row)


def infer_schema_from_headers(headers: Iterable[str]) -> tuple[Column, ...]:
    """Classify header-only columns by name.

    Code-like names are TEXT, known flag names are NUMBER (0/1 flags),
    names containing a numeric hint are NUMBER, and the rest are TEXT.
    """
    columns: list[Column] = []
    for name in headers:
        if is_code_column(name):
            column_type = ColumnType.TEXT
        elif name in BOOLEAN_FLAG_COLUMNS:
            column_type = ColumnType.NUMBER
        elif any(part in name.lower() for part in NUMERIC_NAME_PARTS):
            column_type = ColumnType.NUMBER
        else:
            column_type = ColumnType.TEXT
        columns.append(Column(id=name, name=name, type=column_type))
    return tuple(columns)


def build_table(
    rows: Sequence[Mapping[str, Scalar]],
    schema: Sequence[Column] = (),
    headers: Sequence[str] = (),
) -> Table:
    """Build a typed table from raw rows.

    Args:
        rows: Raw rows.
        schema: Explicit schema; inferred when empty.
        headers: Header names used when there are no rows to infer from.

    Returns:
        Table whose rows are coerced through the schema.
    """
    columns = tuple(schema) or infer_schema(rows) or infer_schema_from_headers(headers)
    return Table(schema=columns, data=coerce_rows(rows, columns))


def coerce_rows(rows: Iterable[Mapping[str, Scalar]], schema: Sequence[Column]) -> list[Row]:
    """Convert row values to the types named by the schema.

    Fields missing from the schema are copied unchanged.
    """
    types_by_name = {column.name: column.type for column in schema}
    coerced: list[Row] = []
    for row in rows:
        coerced.append(
            {
                name: coerce_value(value, types_by_name[name]) if name in types_by_name else value
                for name, value in row.items()
            }
        )
    return coerced


def coerce_value(value: Scalar, column_type: ColumnType) -> Scalar:
    """Convert one value to a column type, keeping values that do not convert."""
    if value is None:
        return None
    if isinstance(value, str) and not value.strip():
        return None
    if column_type is ColumnType.TEXT:
        return _to_text(value)
    if column_type is ColumnType.NUMBER:
        if isinstance(value, bool):
            return int(value)
        if isinstance(value, str) and is_numeric_value(value):
            return parse_number(value)
        return value
    if isinstance(value, str) and value.strip().lower() in _BOOLEAN_TEXT:
        return _BOOLEAN_TEXT[value.strip().lower()]
    return value


def is_numeric_value(value: Scalar) -> bool:
    """Return whether a value is a finite number or numeric text."""
    if isinstance(value, bool) or value is None:
        return False
    if isinstance(value, (int, float)):
        return math.isfinite(value)
    if not isinstance(value, str):
        return False
    return bool(_NUMBER_PATTERN.match(value.strip()))


def is_boolean_value(value: Scalar) -> bool:
    """Return whether a value is a boolean or ``true``/``false`` text."""
    if isinstance(value, bool):
        return True
    return isinstance(value, str) and value.strip().lower() in _BOOLEAN_TEXT


def parse_number(text: str) -> int | float:
    """Parse numeric text, keeping integers as ``int``."""
    stripped = text.strip()
    if _INTEGER_PATTERN.match(stripped):
        return int(stripped)
    return float(stripped)


def _infer_column(name: str, rows: Sequence[Mapping[str, Scalar]]) -> Column:
    if is_code_column(name):
        return Column(id=name, name=name, type=ColumnType.TEXT)
    values = [row.get(name) for row in rows]
    present = [
        value
        for value in values
        if value is not None and not (isinstance(value, str) and not value.strip())
    ]
    column_type = ColumnType.TEXT
    if present and all(is_numeric_value(value) for value in present):
        column_type = ColumnType.NUMBER
    elif present and all(is_boolean_value(value) for value in present):
        column_type = ColumnType.BOOLEAN
    return Column(id=name, name=name, type=column_type)


def _to_text(value: Scalar) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)
