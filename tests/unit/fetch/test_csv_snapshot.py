"""Unit tests for snapshot CSV parsing and rendering."""

from __future__ import annotations

from core.types import Column, ColumnType
from fetch.csv_snapshot import parse_csv_text, rows_to_csv


def test_parse_reads_header_and_rows() -> None:
    """First non-blank line should become the header."""
    snapshot = parse_csv_text("\n\nid,name\n1,Alpha\n2,Beta\n\n\n")

    assert snapshot.headers == ("id", "name")
    assert snapshot.rows == [{"id": "1", "name": "Alpha"}, {"id": "2", "name": "Beta"}]


def test_parse_strips_byte_order_mark() -> None:
    """A leading BOM should not leak into the first header."""
    snapshot = parse_csv_text("\ufeffid,name\r\n1,Alpha\r\n")

    assert snapshot.headers == ("id", "name")


def test_parse_handles_quoted_fields() -> None:
    """Quoted fields may hold commas, doubled quotes, and newlines."""
    text = 'id,note\n1,"a, b"\n2,"say ""hi"""\n3,"line one\nline two"\n'

    snapshot = parse_csv_text(text)

    assert [row["note"] for row in snapshot.rows] == ["a, b", 'say "hi"', "line one\nline two"]


def test_parse_skips_rows_with_wrong_field_count() -> None:
    """Mismatched rows are skipped and counted."""
    snapshot = parse_csv_text("id,name\n1,Alpha\n2\n3,Gamma,extra\n4,Delta\n")

    assert [row["id"] for row in snapshot.rows] == ["1", "4"]
    assert snapshot.skipped_rows == 2


def test_parse_drops_blank_header_cells_and_empty_rows() -> None:
    """Blank header columns are ignored and empty cells become None."""
    snapshot = parse_csv_text(" id , name ,\n1,,\n,,\n,,orphan\n")

    assert snapshot.headers == ("id", "name")
    assert snapshot.rows == [{"id": "1", "name": None}]


def test_parse_empty_text_has_no_headers() -> None:
    """Empty input yields an empty snapshot."""
    assert parse_csv_text("").headers == ()


def test_rows_to_csv_quotes_special_fields() -> None:
    """Export should quote commas, quotes, and newlines."""
    rows = [{"id": 1, "note": 'a, "b"', "ok": True, "qty": 2.0, "empty": None}]
    columns = [
        Column(id="id", name="id", type=ColumnType.NUMBER),
        Column(id="note", name="note"),
        Column(id="ok", name="ok", type=ColumnType.BOOLEAN),
        Column(id="qty", name="qty", type=ColumnType.NUMBER),
        Column(id="empty", name="empty"),
    ]

    text = rows_to_csv(rows, columns)

    assert text == 'id,note,ok,qty,empty\n1,"a, ""b""",true,2,'
