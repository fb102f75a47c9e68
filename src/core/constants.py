"""Core constants used across tenantdb modules.

This module centralizes non-domain-specific constants.
Keeping values here avoids magic literals in business logic.
"""

from __future__ import annotations

from pathlib import Path

DEFAULT_API_BASE_URL = "http://localhost:8080/api"
DEFAULT_SNAPSHOT_ROOT = "."
DEFAULT_SNAPSHOT_ENCODING = "utf-8"
DEFAULT_STATE_FILE = Path(".tenantdb") / "state.json"
DEFAULT_PROBE_TIMEOUT_SECONDS = 2.0
DEFAULT_REQUEST_TIMEOUT_SECONDS = 30.0
GENERIC_ENDPOINT_FILE_NAME = "app-initialization-data.php"
TOOL_ENDPOINT_SUFFIX = "-data.php"
PROBE_TABLE_NAME = "settings"
JSON_CONTENT_TYPE = "application/json"
OPERATING_MODE_STATE_KEY = "operating_mode"
TENANT_CATALOG_TABLE = "manufacturers"
TENANT_ID_FIELD = "id"
DEFAULT_PRIMARY_KEY = "id"
RESERVED_TENANT_PREFIX = "manu_"
INVALID_TENANT_IDS = ("undefined", "null")
SNAPSHOT_ROOT_DIR_NAME = "templates"
SNAPSHOT_FILE_EXTENSION = ".csv"
ERROR_PREVIEW_CHARS = 200
