"""Static table name registry.

This module fixes, for every logical table, whether it is shared, split
per tenant, shared with tenant supplements, or derived from other tables.
It converts between logical names and tenant-qualified physical names.
"""

from __future__ import annotations

from enum import Enum
from typing import Callable, Iterable, Mapping

from core.constants import INVALID_TENANT_IDS, RESERVED_TENANT_PREFIX, TENANT_ID_FIELD
from core.errors import TenantDbNameError
from core.types import ParsedTableName, Scalar, TableKind

PARTITIONED_TABLES = (
    "products_master",
    "product_details",
    "product_tags",
    "stock",
    "importer_mappings",
)
DUAL_TABLES = ("tags",)
RETIRED_PARTITIONED_TABLES = ("products_master", "product_tags")
DERIVED_TABLES = ("colors", "sizes")
DERIVED_TABLE_PREFIXES = ("colors_", "sizes_")

# Physical file/table suffix for tenant variants; unlisted names map to themselves.
_TENANT_ALIASES = {"product_details": "details"}

ALL_TABLE_NAMES = (
    "settings", "color_settings", "layout_settings", "behavior_settings",
    "pagination_settings", "plate_costs", "special_ink_costs",
    "additional_print_costs_by_size", "additional_print_costs_by_location",
    "print_pricing_tiers", "shipping_costs", "company_info", "partner_codes",
    "print_locations", "print_size_constraints", "sizes", "tags", "categories",
    "customers", "brands", "manufacturers", "colors", "products_master",
    "product_details", "product_tags", "stock", "additional_print_costs_by_tag",
    "print_cost_combination", "plate_cost_combination", "category_print_locations",
    "quotes", "quote_items", "quote_designs", "quote_history", "quote_status_master",
    "payment_status_master", "payment_methods", "time_units", "calculation_logic_types",
    "ink_product_types", "weight_volume_units", "free_input_item_types",
    "color_libraries", "color_library_types", "production_status_master",
    "shipping_status_master", "data_confirmation_status_master", "prefectures",
    "print_pricing_schedules", "category_pricing_schedules", "customer_groups",
    "shipping_carriers", "pricing_rules", "pricing_assignments",
    "volume_discount_schedules", "stock_history", "importer_mappings",
    "filename_rule_presets", "print_history", "print_history_positions",
    "print_history_images", "print_location_metrics", "ink_recipes",
    "ink_recipe_components", "ink_products", "ink_series", "ink_manufacturers",
    "pantone_colors", "dic_colors", "ink_recipe_usage", "users", "roles",
    "role_permissions", "id_formats", "dtf_consumables", "dtf_equipment",
    "dtf_labor_costs", "dtf_press_time_costs", "dtf_electricity_rates", "dtf_printers",
    "dtf_print_speeds", "gallery_images", "gallery_tags", "pdf_templates",
    "pdf_item_display_configs", "pdf_preview_zoom_configs", "additional_options",
    "app_logs", "dev_locks", "tool_migrations", "tool_dependencies", "dev_roadmap",
    "dev_constitution", "dev_guidelines_recommended", "dev_guidelines_prohibited",
    "task_master", "quote_tasks", "task_generation_rules", "task_time_settings",
    "bills", "bill_items", "invoice_parsing_templates", "emails", "email_attachments",
    "email_accounts", "email_labels", "email_label_ai_rules", "email_settings",
    "google_api_settings", "ai_settings", "email_templates", "email_general_settings",
    "work_sessions", "work_session_quotes", "sql_export_presets",
    "tool_visibility_settings", "mobile_tool_mappings", "language_settings",
    "language_settings_common", "language_settings_customer_management",
    "language_settings_order_management", "language_settings_product_management",
    "language_settings_user_manager", "language_settings_language_manager",
    "languages", "icons", "gemini_models", "modules_core", "modules_page_tool",
    "modules_service", "modules_other", "modules_ui_atoms", "modules_ui_molecules",
    "modules_ui_organisms", "modules_ui_modals", "google_fonts", "size_order_master",
    "server_config",
)

INITIAL_TABLE_NAMES = (
    "settings", "color_settings", "layout_settings", "behavior_settings",
    "users", "roles", "role_permissions", "dev_locks", "google_api_settings",
    "email_accounts", "tool_migrations", "app_logs", "tool_visibility_settings",
    "mobile_tool_mappings", "tool_dependencies", "icons", "ai_settings",
    "google_fonts", "modules_page_tool", "modules_core", "language_settings_common",
    "language_settings", "size_order_master",
)

_KNOWN_TABLE_NAMES = frozenset(ALL_TABLE_NAMES)


class NamingScheme(str, Enum):
    """Physical naming schemes, in the order ``parse_table_name`` tries them."""

    CANONICAL = "canonical"
    LEGACY = "legacy"


def is_partitioned(name: str) -> bool:
    """Return whether a logical table is stored once per tenant."""
    return name in PARTITIONED_TABLES


def is_derived(name: str) -> bool:
    """Return whether a table is computed from other tables instead of stored."""
    return name in DERIVED_TABLES or name.startswith(DERIVED_TABLE_PREFIXES)


def table_kind(name: str) -> TableKind:
    """Return the static storage classification of a logical table name."""
    if is_partitioned(name):
        return TableKind.PARTITIONED
    if name in DUAL_TABLES:
        return TableKind.DUAL
    if is_derived(name):
        return TableKind.DERIVED
    return TableKind.SHARED


def has_tenant_variants(name: str) -> bool:
    """Return whether a logical table has tenant-qualified physical names."""
    return name in PARTITIONED_TABLES or name in DUAL_TABLES


def is_known_table(name: str) -> bool:
    """Return whether a name is a registered logical table."""
    return name in _KNOWN_TABLE_NAMES


def tenant_alias(name: str) -> str:
    """Return the physical suffix used for tenant variants of a table."""
    return _TENANT_ALIASES.get(name, name)


def is_valid_tenant_id(tenant_id: str | None) -> bool:
    """Return whether a catalog value can be used as a tenant id.

    Blank ids, the literal strings ``undefined``/``null``, and ids containing
    whitespace or path separators are rejected.
    """
    if tenant_id is None:
        return False
    value = str(tenant_id)
    if not value.strip() or value in INVALID_TENANT_IDS:
        return False
    return not any(char.isspace() or char in "/\\" for char in value)


def catalog_tenant_ids(rows: Iterable[Mapping[str, Scalar]]) -> list[str]:
    """Return the usable tenant ids of catalog rows, first occurrence first.

    Integral float ids are written without a fraction so that ``1.0`` and
    ``1`` name the same tenant.
    """
    tenant_ids: list[str] = []
    for row in rows:
        value = row.get(TENANT_ID_FIELD)
        if value is None or isinstance(value, bool):
            continue
        if isinstance(value, float) and value.is_integer():
            value = int(value)
        tenant_id = str(value).strip()
        if is_valid_tenant_id(tenant_id) and tenant_id not in tenant_ids:
            tenant_ids.append(tenant_id)
    return tenant_ids


def strip_reserved_prefix(tenant_id: str) -> str:
    """Drop the reserved ``manu_`` prefix from a tenant id when present."""
    if tenant_id.startswith(RESERVED_TENANT_PREFIX):
        return tenant_id[len(RESERVED_TENANT_PREFIX) :]
    return tenant_id


def physical_name(name: str, tenant_id: str) -> str:
    """Build the canonical tenant-qualified physical name.

    Args:
        name: Logical table name with tenant variants.
        tenant_id: Tenant identifier.

    Returns:
        ``tenant_id + "_" + alias(name)``.

    Raises:
        TenantDbNameError: If the table has no tenant variants, the tenant id is
            invalid, or the result would not parse back to the same pair.
    """
    if not has_tenant_variants(name):
        raise TenantDbNameError(
            f"Table '{name}' is not tenant-partitioned; use the logical name directly."
        )
    if not is_valid_tenant_id(tenant_id):
        raise TenantDbNameError(
            f"Invalid tenant id '{tenant_id}' for table '{name}'. "
            "Use a non-blank id without whitespace or path separators."
        )
    result = f"{tenant_id}_{tenant_alias(name)}"
    if parse_table_name(result) != ParsedTableName(logical_name=name, tenant_id=tenant_id):
        raise TenantDbNameError(
            f"Tenant id '{tenant_id}' makes physical name '{result}' ambiguous with "
            "another table name. Choose a different tenant id."
        )
    return result


def parse_table_name(name: str) -> ParsedTableName:
    """Split a physical table name into logical name and tenant id.

    Registered logical names are returned unchanged. Otherwise each naming
    scheme is tried in ``NamingScheme`` order.

    Args:
        name: Physical or logical table name.

    Returns:
        Parsed name; ``tenant_id`` is None when no scheme matched.
    """
    if is_known_table(name):
        return ParsedTableName(logical_name=name)
    for scheme in NamingScheme:
        parsed = _SCHEME_MATCHERS[scheme](name)
        if parsed is not None:
            return parsed
    return ParsedTableName(logical_name=name)


def _match_canonical(name: str) -> ParsedTableName | None:
    """Match ``<tenant>_<alias>``, trying longer aliases first."""
    for logical_name in _BY_ALIAS_LENGTH:
        suffix = f"_{tenant_alias(logical_name)}"
        if name.endswith(suffix):
            tenant_id = name[: -len(suffix)]
            if is_valid_tenant_id(tenant_id):
                return ParsedTableName(logical_name=logical_name, tenant_id=tenant_id)
    return None


def _match_legacy(name: str) -> ParsedTableName | None:
    """Match ``<logical>_<tenant>``, trying longer logical names first."""
    for logical_name in _BY_NAME_LENGTH:
        prefix = f"{logical_name}_"
        if name.startswith(prefix):
            tenant_id = name[len(prefix) :]
            if is_valid_tenant_id(tenant_id):
                return ParsedTableName(logical_name=logical_name, tenant_id=tenant_id)
    return None


_TENANT_VARIANT_TABLES = PARTITIONED_TABLES + DUAL_TABLES
_BY_ALIAS_LENGTH = sorted(_TENANT_VARIANT_TABLES, key=lambda item: -len(tenant_alias(item)))
_BY_NAME_LENGTH = sorted(_TENANT_VARIANT_TABLES, key=lambda item: -len(item))
_SCHEME_MATCHERS: dict[NamingScheme, Callable[[str], ParsedTableName | None]] = {
    NamingScheme.CANONICAL: _match_canonical,
    NamingScheme.LEGACY: _match_legacy,
}
