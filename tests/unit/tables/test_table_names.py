"""Unit tests for the table name registry."""

from __future__ import annotations

import pytest

from core.errors import TenantDbNameError
from core.types import ParsedTableName, TableKind
from tables.table_names import (
    DUAL_TABLES,
    PARTITIONED_TABLES,
    catalog_tenant_ids,
    is_partitioned,
    is_valid_tenant_id,
    parse_table_name,
    physical_name,
    strip_reserved_prefix,
    table_kind,
)

_TENANT_IDS = ("t1", "0001", "acme-co", "A9", "tenant.eu")


@pytest.mark.parametrize("name", PARTITIONED_TABLES + DUAL_TABLES)
def test_physical_name_parses_back_to_its_parts(name: str) -> None:
    """Parsing a constructed physical name should return the original pair."""
    for tenant_id in _TENANT_IDS:
        parsed = parse_table_name(physical_name(name, tenant_id))

        assert parsed == ParsedTableName(logical_name=name, tenant_id=tenant_id)


def test_physical_name_uses_alias() -> None:
    """product_details should shorten to details."""
    assert physical_name("product_details", "t1") == "t1_details"
    assert physical_name("stock", "t1") == "t1_stock"


def test_physical_name_rejects_shared_tables() -> None:
    """Shared tables have no tenant variants."""
    with pytest.raises(TenantDbNameError):
        physical_name("settings", "t1")


def test_physical_name_rejects_invalid_tenant() -> None:
    """Blank and placeholder tenant ids cannot build names."""
    with pytest.raises(TenantDbNameError):
        physical_name("stock", "undefined")


def test_physical_name_rejects_ambiguous_result() -> None:
    """A tenant id that makes the name read as another table should fail."""
    with pytest.raises(TenantDbNameError):
        physical_name("tags", "acme_product")


def test_parse_reads_legacy_names() -> None:
    """Legacy logical_tenant names should still parse."""
    assert parse_table_name("stock_t1") == ParsedTableName(logical_name="stock", tenant_id="t1")
    assert parse_table_name("product_details_0001") == ParsedTableName(
        logical_name="product_details", tenant_id="0001"
    )


def test_parse_keeps_registered_and_unknown_names() -> None:
    """Names matching no scheme come back unchanged without a tenant."""
    assert parse_table_name("stock_history") == ParsedTableName(logical_name="stock_history")
    assert parse_table_name("gallery_tags") == ParsedTableName(logical_name="gallery_tags")
    assert parse_table_name("custom_report") == ParsedTableName(logical_name="custom_report")


def test_table_kind_classifies_each_name_once() -> None:
    """Every logical name has exactly one storage kind."""
    assert table_kind("stock") is TableKind.PARTITIONED
    assert table_kind("tags") is TableKind.DUAL
    assert table_kind("colors_t1") is TableKind.DERIVED
    assert table_kind("settings") is TableKind.SHARED
    assert is_partitioned("stock") and not is_partitioned("settings")


def test_tenant_id_validation() -> None:
    """Whitespace, separators, and placeholders are not tenant ids."""
    assert is_valid_tenant_id("manu_0001")
    assert not is_valid_tenant_id("")
    assert not is_valid_tenant_id("null")
    assert not is_valid_tenant_id("a b")
    assert not is_valid_tenant_id("a/b")


def test_strip_reserved_prefix() -> None:
    """The manu_ prefix should be removed once."""
    assert strip_reserved_prefix("manu_0001") == "0001"
    assert strip_reserved_prefix("0001") == "0001"


def test_catalog_tenant_ids_skips_unusable_values() -> None:
    """Catalog ids should be unique, valid, and in row order."""
    rows = [
        {"id": "t2"},
        {"id": None},
        {"id": "undefined"},
        {"id": 3.0},
        {"id": "t2"},
        {"id": "t1"},
    ]

    assert catalog_tenant_ids(rows) == ["t2", "3", "t1"]
