"""Soft-deletion tombstones.

This module records row ids deleted per table so that later loads cannot
resurrect them. Tombstones live in memory until explicitly cleared.
"""

from __future__ import annotations

from typing import Iterable

from core.constants import DEFAULT_PRIMARY_KEY
from core.types import Row, Scalar


def row_id_key(value: Scalar) -> str | None:
    """Return the comparison key of a row id, or None for a missing id.

    Ids compare by string form; integral floats compare as integers.
    """
    if value is None:
        return None
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    key = str(value)
    return key if key.strip() else None


class DeletionTombstoneStore:
    """In-memory registry of deleted row ids per table."""

    def __init__(self) -> None:
        self._deleted: dict[str, set[str]] = {}

    def track(self, table_name: str, row_id: Scalar) -> None:
        """Record a deleted row id; tracking the same id again is a no-op."""
        key = row_id_key(row_id)
        if key is None:
            return
        self._deleted.setdefault(table_name, set()).add(key)

    def is_deleted(self, table_name: str, row_id: Scalar) -> bool:
        key = row_id_key(row_id)
        return key is not None and key in self._deleted.get(table_name, ())

    def deleted_ids(self, table_name: str) -> frozenset[str]:
        return frozenset(self._deleted.get(table_name, ()))

    def filter(
        self,
        table_name: str,
        rows: Iterable[Row],
        primary_key: str = DEFAULT_PRIMARY_KEY,
    ) -> list[Row]:
        """Return rows whose id is not tombstoned.

        When the table has tombstones, rows without an id are dropped too.
        The input rows are not modified.
        """
        deleted = self._deleted.get(table_name)
        if not deleted:
            return list(rows)
        kept: list[Row] = []
        for row in rows:
            key = row_id_key(row.get(primary_key))
            if key is not None and key not in deleted:
                kept.append(row)
        return kept

    def snapshot(self) -> dict[str, frozenset[str]]:
        """Return an immutable copy of all tombstones."""
        return {name: frozenset(ids) for name, ids in self._deleted.items() if ids}

    def clear(self, table_name: str) -> None:
        self._deleted.pop(table_name, None)

    def clear_all(self) -> None:
        self._deleted.clear()
