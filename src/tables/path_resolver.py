"""Snapshot location resolution.

This module maps a logical table name, and optionally a tenant id, onto the
ordered snapshot file locations that may hold it. Locations are relative
POSIX paths under the snapshot root, most specific first.
"""

from __future__ import annotations

from core.constants import RESERVED_TENANT_PREFIX, SNAPSHOT_FILE_EXTENSION, SNAPSHOT_ROOT_DIR_NAME
from core.errors import TenantDbNameError
from core.types import Location, TableKind
from tables.table_names import (
    RETIRED_PARTITIONED_TABLES,
    is_derived,
    is_valid_tenant_id,
    parse_table_name,
    strip_reserved_prefix,
    table_kind,
    tenant_alias,
)

TENANT_FOLDER = "manufacturers"
COMMON_FOLDER = "common"
PINNED_ROOT_TABLES = ("server_config",)

_FOLDER_GROUPS: dict[str, tuple[str, ...]] = {
    "manufacturers": (
        "products_master", "product_details", "product_tags", "stock", "importer_mappings",
    ),
    "product-definition": (
        "time_units", "calculation_logic_types", "ink_product_types", "weight_volume_units",
        "free_input_item_types", "color_libraries", "color_library_types", "payment_methods",
    ),
    "email-management": (
        "email_accounts", "email_templates", "email_labels", "email_attachments", "emails",
        "email_general_settings", "email_settings", "email_label_ai_rules",
    ),
    "task-settings": ("task_master", "task_generation_rules", "task_time_settings", "quote_tasks"),
    "ink-mixing": (
        "ink_recipes", "ink_recipe_components", "ink_recipe_usage", "ink_products", "ink_series",
        "ink_manufacturers", "pantone_colors", "dic_colors",
    ),
    "order-management": (
        "quotes", "quote_items", "quote_designs", "quote_history", "quote_status_master",
        "payment_status_master", "production_status_master", "shipping_status_master",
        "data_confirmation_status_master", "shipping_carriers", "bills", "bill_items",
    ),
    "pricing": (
        "plate_costs", "special_ink_costs", "additional_print_costs_by_size",
        "additional_print_costs_by_location", "additional_print_costs_by_tag",
        "print_pricing_tiers", "print_pricing_schedules", "category_pricing_schedules",
        "pricing_rules", "pricing_assignments", "volume_discount_schedules",
        "print_cost_combination", "plate_cost_combination",
    ),
    "dtf": (
        "dtf_consumables", "dtf_equipment", "dtf_labor_costs", "dtf_press_time_costs",
        "dtf_electricity_rates", "dtf_printers", "dtf_print_speeds",
    ),
    "pdf": ("pdf_templates", "pdf_item_display_configs", "pdf_preview_zoom_configs"),
    "print-history": (
        "print_history", "print_history_positions", "print_history_images",
        "print_location_metrics",
    ),
    "system": (
        "settings", "color_settings", "layout_settings", "behavior_settings",
        "pagination_settings", "company_info", "partner_codes", "google_api_settings",
        "ai_settings", "gemini_models", "google_fonts", "icons", "users", "roles",
        "role_permissions", "id_formats", "tool_dependencies", "tool_migrations",
        "tool_visibility_settings", "mobile_tool_mappings", "sql_export_presets",
        "work_sessions", "work_session_quotes", "app_logs", "dev_locks",
    ),
    "dev": (
        "dev_constitution", "dev_guidelines_recommended", "dev_guidelines_prohibited",
        "dev_roadmap",
    ),
    "modules": (
        "modules_core", "modules_page_tool", "modules_service", "modules_other",
        "modules_ui_atoms", "modules_ui_molecules", "modules_ui_organisms", "modules_ui_modals",
    ),
    "common": (
        "manufacturers", "brands", "categories", "tags", "size_order_master",
        "print_locations", "print_size_constraints", "category_print_locations",
        "prefectures", "shipping_costs", "customer_groups", "customers",
        "additional_options", "gallery_images", "gallery_tags", "filename_rule_presets",
        "invoice_parsing_templates", "language_settings", "languages",
    ),
    "languages/common": ("language_settings_common",),
    "languages/customermanagement": ("language_settings_customer_management",),
    "languages/order-management": ("language_settings_order_management",),
    "languages/user-manager": ("language_settings_user_manager",),
    "languages/language-manager": ("language_settings_language_manager",),
    "languages/product-management": ("language_settings_product_management",),
    "languages/database-schema-manager": (
        "language_settings_database_schema_manager",
        "language_settings_database",
    ),
}

TOOL_FOLDERS: dict[str, str] = {
    table_name: folder for folder, names in _FOLDER_GROUPS.items() for table_name in names
}


def resolve_locations(name: str, tenant_id: str | None = None) -> list[Location]:
    """Resolve candidate snapshot locations for a table.

    Args:
        name: Logical or tenant-qualified physical table name.
        tenant_id: Optional tenant id; wins over a tenant parsed from ``name``.

    Returns:
        Ordered candidate locations; empty when the table has no physical
        backing for this request (derived tables, tenant tables without a
        tenant, retired tenant tables).

    Raises:
        TenantDbNameError: If the tenant id is not usable in a path.
    """
    if name in PINNED_ROOT_TABLES:
        return [_root_location(name)]
    if is_derived(name):
        return []
    parsed = parse_table_name(name)
    logical_name = parsed.logical_name
    tenant = tenant_id or parsed.tenant_id
    kind = table_kind(logical_name)
    if kind is TableKind.DERIVED:
        return []
    if kind is TableKind.DUAL:
        locations = [_folder_location(COMMON_FOLDER, logical_name)]
        if tenant:
            locations.append(tenant_location(logical_name, tenant))
        return locations
    if kind is TableKind.PARTITIONED:
        if not tenant or logical_name in RETIRED_PARTITIONED_TABLES:
            return []
        return [tenant_location(logical_name, tenant)]
    folder = TOOL_FOLDERS.get(logical_name)
    if folder:
        return [_folder_location(folder, logical_name), _root_location(logical_name)]
    return [_root_location(logical_name)]


def tenant_location(name: str, tenant_id: str) -> Location:
    """Return the per-tenant snapshot location for a table.

    Raises:
        TenantDbNameError: If the tenant id is not usable in a path.
    """
    if not is_valid_tenant_id(tenant_id):
        raise TenantDbNameError(
            f"Invalid tenant id '{tenant_id}' for snapshot table '{name}'. "
            "Use a non-blank id without whitespace or path separators."
        )
    tenant_dir = f"{RESERVED_TENANT_PREFIX}{strip_reserved_prefix(tenant_id)}"
    file_name = f"{tenant_dir}_{tenant_alias(name)}{SNAPSHOT_FILE_EXTENSION}"
    return f"{SNAPSHOT_ROOT_DIR_NAME}/{TENANT_FOLDER}/{tenant_dir}/{file_name}"


def is_tool_specific(name: str) -> bool:
    """Return whether a table is stored in a tool folder."""
    return name in TOOL_FOLDERS


def _folder_location(folder: str, name: str) -> Location:
    return f"{SNAPSHOT_ROOT_DIR_NAME}/{folder}/{name}{SNAPSHOT_FILE_EXTENSION}"


def _root_location(name: str) -> Location:
    return f"{SNAPSHOT_ROOT_DIR_NAME}/{name}{SNAPSHOT_FILE_EXTENSION}"
