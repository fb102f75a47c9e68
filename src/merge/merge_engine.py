"""Merge of fetched tables into the in-memory dataset.

This module overlays a freshly fetched partial dataset onto the previous
one. Shared tables are upserted by primary key, tenant tables are replaced
wholesale, and tombstones filter every table touched.
"""

from __future__ import annotations

from typing import Iterable, Mapping

from core.constants import TENANT_CATALOG_TABLE
from core.errors import SchemaMismatchError, TenantDbNameError
from core.logging_config import get_logger
from core.types import Database, Row, Scalar, Table
from merge.deletion_tracker import DeletionTombstoneStore, row_id_key
from tables.table_names import catalog_tenant_ids, is_partitioned, parse_table_name, physical_name

_LOGGER = get_logger(__name__)


def get_table(db: Mapping[str, object], name: str, tenant_id: str | None = None) -> Table | None:
    """Look up a loaded table by logical or physical name.

    Args:
        db: Loaded dataset.
        name: Logical or tenant-qualified physical name.
        tenant_id: Tenant used for partitioned logical names.

    Returns:
        The table, or None when it is not loaded or has an invalid shape.
    """
    for key in _lookup_keys(name, tenant_id):
        if key not in db:
            continue
        try:
            return Table.from_payload(db[key])
        except SchemaMismatchError as error:
            _LOGGER.warning("stored_table_invalid", table=key, error=str(error))
            return None
    return None


def update_database_with_new_data(
    prev_db: Mapping[str, Table] | None,
    new_partial: Mapping[str, object],
    tombstones: DeletionTombstoneStore | None = None,
) -> Database:
    """Overlay fetched tables onto the previous dataset.

    Args:
        prev_db: Previous dataset; None is treated as empty.
        new_partial: Freshly fetched tables.
        tombstones: Deleted row ids applied to every table touched.

    Returns:
        A new dataset; neither input is modified.
    """
    merged: Database = dict(prev_db or {})
    for name, payload in new_partial.items():
        try:
            new_table = Table.from_payload(payload)
        except SchemaMismatchError as error:
            _LOGGER.warning("merge_table_skipped", table=name, error=str(error))
            continue
        parsed = parse_table_name(name)
        if parsed.is_tenant_qualified:
            merged[name] = _apply_tombstones(
                new_table, new_table.data, (name, parsed.logical_name), tombstones
            )
            continue
        previous = _existing_table(merged, name)
        if previous is None:
            rows = [dict(row) for row in new_table.data]
            merged[name] = _apply_tombstones(new_table, rows, (name,), tombstones)
            continue
        rows = merge_rows(previous.data, new_table.data, previous.primary_key)
        schema_table = new_table if new_table.schema else previous
        merged[name] = _apply_tombstones(schema_table, rows, (name,), tombstones)
    return merged


def merge_rows(existing: Iterable[Row], incoming: Iterable[Row], primary_key: str) -> list[Row]:
    """Upsert incoming rows into existing rows by primary key.

    Existing keys keep their position, new keys are appended in incoming
    order, and rows without a key are kept as distinct rows.
    """
    by_key: dict[object, Row] = {}
    for position, row in enumerate(existing):
        by_key[_merge_key(row, primary_key, ("existing", position))] = dict(row)
    for position, row in enumerate(incoming):
        by_key[_merge_key(row, primary_key, ("incoming", position))] = dict(row)
    return list(by_key.values())


def get_all_tenant_rows(db: Mapping[str, object], name: str) -> list[Row]:
    """Return the rows of a partitioned table across all loaded tenants.

    The logical table wins when it is loaded and non-empty. Otherwise tenant
    tables are read in catalog order, followed by every other tenant-qualified
    table of this name found in the dataset.
    """
    logical_table = get_table(db, name)
    if logical_table is not None and logical_table.data:
        return list(logical_table.data)
    rows: list[Row] = []
    for key in _tenant_table_keys(db, name):
        table = get_table(db, key)
        if table is not None:
            rows.extend(table.data)
    return rows


def find_in_tenant_table(
    db: Mapping[str, object],
    name: str,
    tenant_id: str,
    field: str,
    value: Scalar,
) -> Row | None:
    """Return the first row of one tenant's table whose field equals a value."""
    table = get_table(db, name, tenant_id)
    if table is None:
        return None
    return _find_row(table.data, field, value)


def find_in_all_tenant_tables(
    db: Mapping[str, object],
    name: str,
    field: str,
    value: Scalar,
) -> Row | None:
    """Return the first matching row across every tenant's table."""
    return _find_row(get_all_tenant_rows(db, name), field, value)


def _lookup_keys(name: str, tenant_id: str | None) -> list[str]:
    """Return candidate dataset keys; canonical tenant names come before legacy."""
    parsed = parse_table_name(name)
    if parsed.is_tenant_qualified or not tenant_id or not is_partitioned(parsed.logical_name):
        return [name]
    try:
        canonical = physical_name(parsed.logical_name, tenant_id)
    except TenantDbNameError as error:
        _LOGGER.warning("tenant_lookup_invalid", table=name, tenant=tenant_id, error=str(error))
        return []
    return [canonical, f"{parsed.logical_name}_{tenant_id}"]


def _tenant_table_keys(db: Mapping[str, object], name: str) -> list[str]:
    """Return loaded tenant keys of a table, catalog tenants first.

    Catalog ids may have been coerced to numbers, so keys the catalog does
    not match are still collected from the dataset.
    """
    catalog = get_table(db, TENANT_CATALOG_TABLE)
    tenant_ids = catalog_tenant_ids(catalog.data) if catalog is not None else []
    keys: list[str] = []
    for tenant_id in tenant_ids:
        candidates = (key for key in _lookup_keys(name, str(tenant_id)) if key != name)
        key = next((key for key in candidates if key in db), None)
        if key is not None and key not in keys:
            keys.append(key)
    for key in db:
        parsed = parse_table_name(key)
        if parsed.is_tenant_qualified and parsed.logical_name == name and key not in keys:
            keys.append(key)
    return keys


def _existing_table(db: Mapping[str, object], name: str) -> Table | None:
    if name not in db:
        return None
    try:
        return Table.from_payload(db[name])
    except SchemaMismatchError as error:
        _LOGGER.warning("stored_table_replaced", table=name, error=str(error))
        return None


def _apply_tombstones(
    template: Table,
    rows: list[Row],
    table_names: Iterable[str],
    tombstones: DeletionTombstoneStore | None,
) -> Table:
    if tombstones is not None:
        primary_key = template.primary_key
        for table_name in dict.fromkeys(table_names):
            rows = tombstones.filter(table_name, rows, primary_key)
    return Table(schema=template.schema, data=list(rows))


def _merge_key(row: Row, primary_key: str, fallback: tuple[str, int]) -> object:
    key = row_id_key(row.get(primary_key))
    return key if key is not None else fallback


def _find_row(rows: Iterable[Row], field: str, value: Scalar) -> Row | None:
    target = row_id_key(value)
    for row in rows:
        if row.get(field) == value or (target is not None and row_id_key(row.get(field)) == target):
            return row
    return None
