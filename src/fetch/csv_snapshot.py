"""Delimited snapshot text parsing and rendering.

This module turns snapshot CSV text into header names and raw string rows,
and renders rows back into CSV text for exports.
"""

from __future__ import annotations

import csv
from dataclasses import dataclass, field
import io
from typing import Iterable, Sequence

from core.errors import ParseError
from core.logging_config import get_logger
from core.types import Column, Row, Scalar

_LOGGER = get_logger(__name__)
_BYTE_ORDER_MARK = "\ufeff"


@dataclass(frozen=True)
class CsvSnapshot:
    """Parsed snapshot contents before typing.

    Attributes:
        headers: Trimmed, non-blank header names in file order.
        rows: Rows keyed by header; blank cells are None.
        skipped_rows: Number of rows dropped for a field count mismatch.
    """

    headers: tuple[str, ...]
    rows: list[dict[str, str | None]] = field(default_factory=list)
    skipped_rows: int = 0


def parse_csv_text(text: str, source_name: str = "CSV") -> CsvSnapshot:
    """Parse snapshot CSV text.

    The first non-blank line is the header. Quoted fields may contain commas,
    doubled quotes, and newlines. Blank lines are ignored and rows whose field
    count differs from the header are skipped with a warning.

    Args:
        text: Decoded snapshot text.
        source_name: Location used in log events and errors.

    Returns:
        Parsed headers and raw rows.

    Raises:
        ParseError: If the text is not valid delimited data.
    """
    if text.startswith(_BYTE_ORDER_MARK):
        text = text[len(_BYTE_ORDER_MARK) :]
    normalized = text.replace("\r\n", "\n").replace("\r", "\n")
    reader = csv.reader(io.StringIO(normalized))
    headers: tuple[str, ...] | None = None
    header_positions: list[tuple[int, str]] = []
    field_count = 0
    rows: list[dict[str, str | None]] = []
    skipped_rows = 0
    try:
        for values in reader:
            if _is_blank(values):
                continue
            if headers is None:
                header_positions = [
                    (index, value.strip()) for index, value in enumerate(values) if value.strip()
                ]
                headers = tuple(name for _, name in header_positions)
                if not headers:
                    return CsvSnapshot(headers=())
                field_count = len(values)
                continue
            if len(values) != field_count:
                skipped_rows += 1
                _LOGGER.warning(
                    "snapshot_row_skipped",
                    source=source_name,
                    line=reader.line_num,
                    expected_fields=field_count,
                    actual_fields=len(values),
                )
                continue
            row = {
                header: values[index] if values[index].strip() else None
                for index, header in header_positions
            }
            if any(value is not None for value in row.values()):
                rows.append(row)
    except csv.Error as error:
        raise ParseError(
            f"Failed to parse snapshot {source_name} near line {reader.line_num}: {error}. "
            "Fix the CSV quoting and reload."
        ) from error
    return CsvSnapshot(headers=headers or (), rows=rows, skipped_rows=skipped_rows)


def rows_to_csv(rows: Sequence[Row], columns: Iterable[Column] | None = None) -> str:
    """Render rows as CSV text.

    Args:
        rows: Rows to render.
        columns: Optional schema; header order defaults to the first row's keys.

    Returns:
        CSV text without a trailing newline; empty when there is no header.
    """
    headers = [column.name for column in columns] if columns is not None else []
    if not headers and rows:
        headers = list(rows[0].keys())
    if not headers:
        return ""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(headers)
    for row in rows:
        writer.writerow([_format_cell(row.get(header)) for header in headers])
    return buffer.getvalue().rstrip("\n")


def _format_cell(value: Scalar) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _is_blank(values: list[str]) -> bool:
    return all(not value.strip() for value in values)
