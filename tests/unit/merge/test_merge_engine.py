"""Unit tests for merging fetched tables into the dataset."""

from __future__ import annotations

import copy

from core.types import Column, Database, Table
from merge.deletion_tracker import DeletionTombstoneStore
from merge.merge_engine import (
    find_in_all_tenant_tables,
    find_in_tenant_table,
    get_all_tenant_rows,
    get_table,
    merge_rows,
    update_database_with_new_data,
)


def _table(*rows: dict, schema: tuple[Column, ...] = ()) -> Table:
    return Table(schema=schema, data=[dict(row) for row in rows])


def _ids(table: Table) -> list[object]:
    return [row["id"] for row in table.data]


def test_tenant_tables_are_replaced_not_merged() -> None:
    """A tenant fetch is complete for that tenant."""
    prev_db = {"t1_stock": _table(*({"id": f"s{index}"} for index in range(5)))}
    new_partial = {"t1_stock": _table({"id": "n1"}, {"id": "n2"})}

    merged = update_database_with_new_data(prev_db, new_partial)

    assert _ids(merged["t1_stock"]) == ["n1", "n2"]


def test_shared_tables_upsert_by_primary_key() -> None:
    """Existing keys keep their place and new keys are appended."""
    prev_db = {"customers": _table({"id": 1, "n": "a"}, {"id": 2, "n": "b"}, {"id": 3, "n": "c"})}
    new_partial = {"customers": _table({"id": "2", "n": "B"}, {"id": 4, "n": "d"})}

    merged = update_database_with_new_data(prev_db, new_partial)

    assert merged["customers"].data == [
        {"id": 1, "n": "a"},
        {"id": "2", "n": "B"},
        {"id": 3, "n": "c"},
        {"id": 4, "n": "d"},
    ]


def test_primary_key_is_first_schema_column() -> None:
    """Tables with a schema merge on their first column."""
    schema = (Column(id="key", name="key"), Column(id="value", name="value"))
    prev_db = {"settings": _table({"key": "theme", "value": "dark"}, schema=schema)}
    new_partial = {"settings": _table({"key": "theme", "value": "light"}, schema=schema)}

    merged = update_database_with_new_data(prev_db, new_partial)

    assert merged["settings"].data == [{"key": "theme", "value": "light"}]


def test_sequential_merges_equal_merging_the_union() -> None:
    """Merging twice matches one merge of the union with later rows winning."""
    prev_db = {"customers": _table({"id": 1, "n": "a"}, {"id": 2, "n": "b"})}
    first = {"customers": _table({"id": 2, "n": "b1"}, {"id": 3, "n": "c1"})}
    second = {"customers": _table({"id": 3, "n": "c2"}, {"id": 4, "n": "d2"})}
    union = {
        "customers": _table(
            {"id": 2, "n": "b1"}, {"id": 3, "n": "c2"}, {"id": 4, "n": "d2"}
        )
    }

    sequential = update_database_with_new_data(
        update_database_with_new_data(prev_db, first), second
    )
    combined = update_database_with_new_data(prev_db, union)

    assert sequential == combined


def test_tombstones_win_over_refetched_rows() -> None:
    """A deleted id never comes back, whatever the fetch order."""
    tombstones = DeletionTombstoneStore()
    tombstones.track("customers", 2)
    prev_db = {"customers": _table({"id": 1}, {"id": 2})}

    merged = update_database_with_new_data(
        prev_db, {"customers": _table({"id": "2"}, {"id": 3})}, tombstones
    )
    fresh = update_database_with_new_data(None, {"customers": _table({"id": 2})}, tombstones)

    assert _ids(merged["customers"]) == [1, 3]
    assert fresh["customers"].data == []


def test_tombstones_on_logical_name_filter_tenant_tables() -> None:
    """Deleting from a partitioned table hides the row in every tenant copy."""
    tombstones = DeletionTombstoneStore()
    tombstones.track("stock", "s1")

    merged = update_database_with_new_data(
        {}, {"t1_stock": _table({"id": "s1"}, {"id": "s2"})}, tombstones
    )

    assert _ids(merged["t1_stock"]) == ["s2"]


def test_merge_is_additive_and_does_not_mutate_inputs() -> None:
    """Tables missing from the new fetch stay, and inputs are untouched."""
    prev_db: Database = {"users": _table({"id": "u1"}), "customers": _table({"id": 1})}
    new_partial = {"customers": _table({"id": 2})}
    prev_copy = copy.deepcopy(prev_db)
    new_copy = copy.deepcopy(new_partial)

    merged = update_database_with_new_data(prev_db, new_partial)

    assert merged["users"] is prev_db["users"]
    assert _ids(merged["customers"]) == [1, 2]
    assert prev_db == prev_copy and new_partial == new_copy


def test_merge_is_deterministic() -> None:
    """Identical inputs give identical outputs."""
    tombstones = DeletionTombstoneStore()
    tombstones.track("customers", 3)
    prev_db = {"customers": _table({"id": 1}, {"id": 3})}
    new_partial = {"customers": _table({"id": 2}, {"id": 1, "n": "x"})}

    first = update_database_with_new_data(prev_db, new_partial, tombstones)
    second = update_database_with_new_data(prev_db, new_partial, tombstones)

    assert first == second


def test_invalid_new_table_is_skipped() -> None:
    """A malformed shared table leaves the previous one in place."""
    prev_db = {"customers": _table({"id": 1})}

    merged = update_database_with_new_data(prev_db, {"customers": {"data": "oops"}})

    assert merged == prev_db


def test_rows_without_keys_stay_distinct() -> None:
    """Rows lacking a primary key are never collapsed together."""
    rows = merge_rows([{"name": "a"}], [{"name": "b"}, {"id": 1}], "id")

    assert rows == [{"name": "a"}, {"name": "b"}, {"id": 1}]


def test_get_table_resolves_tenant_names() -> None:
    """Lookups accept physical names or logical name plus tenant."""
    db = {
        "t1_stock": _table({"id": "s1"}),
        "stock_t2": _table({"id": "s9"}),
        "settings": _table({"id": "x"}),
    }

    assert _ids(get_table(db, "t1_stock")) == ["s1"]
    assert _ids(get_table(db, "stock", "t1")) == ["s1"]
    assert _ids(get_table(db, "stock", "t2")) == ["s9"]
    assert _ids(get_table(db, "settings", "t1")) == ["x"]
    assert get_table(db, "quotes") is None


def test_get_table_reports_invalid_tables_as_absent() -> None:
    """Stored tables with a broken shape read as not loaded."""
    db = {"customers": {"schema": [], "data": "not rows"}}

    assert get_table(db, "customers") is None


def test_get_all_tenant_rows_follows_catalog_order() -> None:
    """Tenant rows are concatenated in catalog order."""
    db = {
        "manufacturers": _table({"id": "t2"}, {"id": "t1"}),
        "t1_stock": _table({"id": "s1"}),
        "t2_stock": _table({"id": "s9"}),
    }

    assert [row["id"] for row in get_all_tenant_rows(db, "stock")] == ["s9", "s1"]


def test_get_all_tenant_rows_prefers_logical_table_then_scans() -> None:
    """A loaded logical table wins; without a catalog every tenant table is scanned."""
    with_logical = {"stock": _table({"id": "all"}), "t1_stock": _table({"id": "s1"})}
    without_catalog = {"t1_stock": _table({"id": "s1"}), "stock_t2": _table({"id": "s9"})}

    assert get_all_tenant_rows(with_logical, "stock") == [{"id": "all"}]
    assert [row["id"] for row in get_all_tenant_rows(without_catalog, "stock")] == ["s1", "s9"]


def test_get_all_tenant_rows_keeps_tenants_missing_from_typed_catalog() -> None:
    """Zero-padded tenant ids coerced to numbers in the catalog still count."""
    db = {
        "manufacturers": _table({"id": 1}, {"id": 10}),
        "0001_stock": _table({"id": "a1"}),
        "10_stock": _table({"id": "b1"}),
    }

    assert sorted(row["id"] for row in get_all_tenant_rows(db, "stock")) == ["a1", "b1"]
    assert find_in_all_tenant_tables(db, "stock", "id", "a1") == {"id": "a1"}


def test_dual_table_duplicates_collapse_only_on_upsert() -> None:
    """A first merge keeps duplicate ids; merging onto an existing table upserts them."""
    fetched = {"tags": _table({"id": "tag-1", "src": "common"}, {"id": "tag-1", "src": "t1"})}

    first = update_database_with_new_data(None, fetched)
    second = update_database_with_new_data(first, fetched)

    assert len(first["tags"].data) == 2
    assert second["tags"].data == [{"id": "tag-1", "src": "t1"}]


def test_find_in_tenant_tables() -> None:
    """Row search works per tenant and across tenants."""
    db = {
        "manufacturers": _table({"id": "t1"}, {"id": "t2"}),
        "t1_stock": _table({"id": "s1", "product_code": "0001"}),
        "t2_stock": _table({"id": "s9", "product_code": "0100"}),
    }

    assert find_in_tenant_table(db, "stock", "t1", "product_code", "0001") == {
        "id": "s1",
        "product_code": "0001",
    }
    assert find_in_tenant_table(db, "stock", "t1", "product_code", "0100") is None
    assert find_in_all_tenant_tables(db, "stock", "id", "s9")["product_code"] == "0100"
