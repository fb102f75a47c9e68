"""Shared typed models.

This module defines the table, row, and naming models shared by the
registry, fetch, and merge layers to keep interfaces explicit and stable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping, Union

from core.constants import DEFAULT_PRIMARY_KEY
from core.errors import SchemaMismatchError

Scalar = Union[str, int, float, bool, None]
Row = dict[str, Scalar]
Location = str


class ColumnType(str, Enum):
    """Logical column types understood by the application."""

    TEXT = "TEXT"
    NUMBER = "NUMBER"
    BOOLEAN = "BOOLEAN"


class OperatingMode(str, Enum):
    """Process-wide data access mode."""

    REMOTE = "remote"
    SNAPSHOT_RO = "snapshot_ro"
    SNAPSHOT_RW = "snapshot_rw"

    @property
    def reads_snapshots(self) -> bool:
        """Return whether tables are read from flat-file snapshots."""
        return self is not OperatingMode.REMOTE


class TableKind(str, Enum):
    """Static storage classification of a logical table name."""

    SHARED = "shared"
    PARTITIONED = "partitioned"
    DUAL = "dual"
    DERIVED = "derived"


@dataclass(frozen=True)
class Column:
    """Schema column description.

    Attributes:
        id: Stable column identifier.
        name: Field name used as the row key.
        type: Logical column type.
    """

    id: str
    name: str
    type: ColumnType = ColumnType.TEXT

    @classmethod
    def from_payload(cls, payload: object) -> "Column":
        """Build a column from its JSON payload.

        Raises:
            SchemaMismatchError: If the payload is not a valid column object.
        """
        if not isinstance(payload, Mapping):
            raise SchemaMismatchError(
                f"Invalid column payload: expected object, got {type(payload).__name__}."
            )
        name = payload.get("name")
        if not isinstance(name, str) or not name:
            raise SchemaMismatchError("Invalid column payload: expected non-empty string 'name'.")
        raw_type = str(payload.get("type", ColumnType.TEXT.value)).upper()
        try:
            column_type = ColumnType(raw_type)
        except ValueError as error:
            raise SchemaMismatchError(
                f"Invalid column type '{raw_type}' for column '{name}'. "
                f"Expected one of {[item.value for item in ColumnType]}."
            ) from error
        column_id = payload.get("id")
        return cls(id=str(column_id) if column_id else name, name=name, type=column_type)

    def to_payload(self) -> dict[str, str]:
        """Return the JSON payload for this column."""
        return {"id": self.id, "name": self.name, "type": self.type.value}


@dataclass(frozen=True)
class Table:
    """One loaded table: schema plus rows.

    Attributes:
        schema: Ordered column descriptions; may be empty.
        data: Row mappings in source order.
    """

    schema: tuple[Column, ...] = ()
    data: list[Row] = field(default_factory=list)

    @classmethod
    def empty(cls) -> "Table":
        """Return a loaded-but-empty table."""
        return cls(schema=(), data=[])

    @classmethod
    def from_payload(cls, payload: object) -> "Table":
        """Build a table from a ``{schema, data}`` mapping.

        Raises:
            SchemaMismatchError: If the payload shape is invalid.
        """
        if isinstance(payload, Table):
            if not isinstance(payload.data, list):
                raise SchemaMismatchError("Invalid table: 'data' must be a list of rows.")
            return payload
        if not isinstance(payload, Mapping):
            raise SchemaMismatchError(
                f"Invalid table payload: expected object, got {type(payload).__name__}."
            )
        raw_schema = payload.get("schema") or []
        raw_data = payload.get("data")
        if not isinstance(raw_data, list):
            raise SchemaMismatchError("Invalid table payload: 'data' must be a list of rows.")
        if not isinstance(raw_schema, list):
            raise SchemaMismatchError("Invalid table payload: 'schema' must be a list.")
        rows: list[Row] = []
        for row in raw_data:
            if not isinstance(row, Mapping):
                raise SchemaMismatchError("Invalid table payload: every row must be an object.")
            rows.append(dict(row))
        return cls(schema=tuple(Column.from_payload(item) for item in raw_schema), data=rows)

    @property
    def primary_key(self) -> str:
        """Return the first schema column name, or the default key without a schema."""
        if self.schema:
            return self.schema[0].name
        return DEFAULT_PRIMARY_KEY

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON payload for this table."""
        return {
            "schema": [column.to_payload() for column in self.schema],
            "data": [dict(row) for row in self.data],
        }


Database = dict[str, Table]


@dataclass(frozen=True)
class ParsedTableName:
    """Result of parsing a possibly tenant-qualified table name.

    Attributes:
        logical_name: Tenant-agnostic table name.
        tenant_id: Tenant id when the name was tenant-qualified.
    """

    logical_name: str
    tenant_id: str | None = None

    @property
    def is_tenant_qualified(self) -> bool:
        """Return whether the parsed name carried a tenant id."""
        return self.tenant_id is not None


@dataclass(frozen=True)
class FetchOptions:
    """Options for one ``fetch_tables`` call.

    Attributes:
        lightweight: Ask the remote service for a reduced payload.
        tool_name: Route the remote call to ``<tool_name>-data.php``.
        tenant_id: Restrict tenant fan-out to a single tenant.
    """

    lightweight: bool = False
    tool_name: str | None = None
    tenant_id: str | None = None
