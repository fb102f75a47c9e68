"""Public SDK surface for tenantdb.

This module provides a stable import path for library users.
It re-exports the primary client, typed models, and name helpers.
"""

from __future__ import annotations

from core.config import TenantDbConfig
from core.errors import (
    EndpointNotFoundError,
    HttpStatusError,
    ParseError,
    ProtocolError,
    RemoteFetchError,
    SchemaMismatchError,
    TenantDbError,
    TransportError,
)
from core.types import Column, ColumnType, Database, FetchOptions, OperatingMode, Row, Table
from fetch.csv_snapshot import rows_to_csv
from merge.deletion_tracker import DeletionTombstoneStore
from merge.merge_engine import get_table, update_database_with_new_data
from store.data_client import TenantDataClient
from tables.path_resolver import resolve_locations
from tables.table_names import is_partitioned, parse_table_name, physical_name

__all__ = [
    "Column",
    "ColumnType",
    "Database",
    "DeletionTombstoneStore",
    "EndpointNotFoundError",
    "FetchOptions",
    "HttpStatusError",
    "OperatingMode",
    "ParseError",
    "ProtocolError",
    "RemoteFetchError",
    "Row",
    "SchemaMismatchError",
    "Table",
    "TenantDataClient",
    "TenantDbConfig",
    "TenantDbError",
    "TransportError",
    "get_table",
    "is_partitioned",
    "parse_table_name",
    "physical_name",
    "resolve_locations",
    "rows_to_csv",
    "update_database_with_new_data",
]
