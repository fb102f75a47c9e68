"""Python SDK for tenant-partitioned table access.

This module exposes the client that owns the in-memory dataset, applying
each fetch and its merge as one step against the current dataset.
"""

from __future__ import annotations

from typing import Sequence

import httpx

from core.config import TenantDbConfig
from core.types import Database, FetchOptions, OperatingMode, Row, Scalar, Table
from fetch.operating_mode import OperatingModeStore
from fetch.orchestrator import FetchOrchestrator
from fetch.remote_client import RemoteTableClient
from fetch.snapshot_source import create_snapshot_source
from merge.deletion_tracker import DeletionTombstoneStore
from merge.merge_engine import (
    find_in_all_tenant_tables,
    find_in_tenant_table,
    get_all_tenant_rows,
    get_table,
    update_database_with_new_data,
)
from store.state_store import JsonFileStateStore, StateStore
from tables.table_names import parse_table_name


class TenantDataClient:
    """Primary SDK entry point for loading and reading tables."""

    def __init__(
        self,
        config: TenantDbConfig | None = None,
        *,
        state_store: StateStore | None = None,
        tombstones: DeletionTombstoneStore | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Create SDK client.

        Args:
            config: Optional runtime configuration.
            state_store: Persistence for the operating mode; a JSON file by default.
            tombstones: Deleted row registry shared with other clients, if any.
            transport: Optional httpx transport for remote and snapshot HTTP calls.
        """
        self._config = config or TenantDbConfig.from_env()
        self._mode_store = OperatingModeStore(
            state_store or JsonFileStateStore(self._config.state_file)
        )
        self._tombstones = tombstones or DeletionTombstoneStore()
        self._orchestrator = FetchOrchestrator(
            self._mode_store,
            RemoteTableClient(self._config.api_base_url, self._config.request_timeout, transport),
            create_snapshot_source(self._config, transport),
            encoding=self._config.snapshot_encoding,
            probe_timeout=self._config.probe_timeout,
        )
        self._database: Database = {}

    @property
    def config(self) -> TenantDbConfig:
        return self._config

    @property
    def database(self) -> Database:
        """Return a shallow copy of the loaded dataset."""
        return dict(self._database)

    @property
    def tombstones(self) -> DeletionTombstoneStore:
        return self._tombstones

    @property
    def mode_store(self) -> OperatingModeStore:
        return self._mode_store

    @property
    def orchestrator(self) -> FetchOrchestrator:
        return self._orchestrator

    async def determine_mode(self) -> OperatingMode:
        """Return the persisted operating mode, probing when unset."""
        return await self._orchestrator.determine_mode()

    async def fetch(self, names: Sequence[str], options: FetchOptions | None = None) -> Database:
        """Fetch tables without merging them into the dataset."""
        return await self._orchestrator.fetch_tables(names, options)

    async def load(self, names: Sequence[str], options: FetchOptions | None = None) -> Database:
        """Fetch tables and merge them into the dataset.

        Args:
            names: Logical or tenant-qualified physical table names.
            options: Fetch options.

        Returns:
            The updated dataset.

        Raises:
            RemoteFetchError: For non-404 remote failures in REMOTE mode.
        """
        fresh = await self._orchestrator.fetch_tables(names, options)
        return self._merge(fresh)

    async def load_initial_database(self, mode: OperatingMode | None = None) -> Database:
        """Load the start-up tables and merge them into the dataset.

        Args:
            mode: Mode to persist first; the persisted or probed mode when None.

        Returns:
            The updated dataset.
        """
        fresh = await self._orchestrator.load_initial_database(mode)
        return self._merge(fresh)

    def get_table(self, name: str, tenant_id: str | None = None) -> Table | None:
        return get_table(self._database, name, tenant_id)

    def tenant_rows(self, name: str) -> list[Row]:
        """Return a partitioned table's rows across every loaded tenant."""
        return get_all_tenant_rows(self._database, name)

    def find_in_tenant_table(
        self, name: str, tenant_id: str, field: str, value: Scalar
    ) -> Row | None:
        return find_in_tenant_table(self._database, name, tenant_id, field, value)

    def find_in_all_tenant_tables(self, name: str, field: str, value: Scalar) -> Row | None:
        return find_in_all_tenant_tables(self._database, name, field, value)

    def mark_deleted(self, table_name: str, row_id: Scalar) -> None:
        """Tombstone a row id and drop it from the loaded tables.

        A logical name also reaches every loaded tenant-qualified copy of
        that table.

        Args:
            table_name: Logical or physical table name.
            row_id: Primary key value of the deleted row.
        """
        self._tombstones.track(table_name, row_id)
        updated = dict(self._database)
        for key in _tombstoned_keys(self._database, table_name):
            table = get_table(self._database, key)
            if table is None:
                continue
            rows = self._tombstones.filter(table_name, table.data, table.primary_key)
            updated[key] = Table(schema=table.schema, data=rows)
        self._database = updated

    def _merge(self, fresh: Database) -> Database:
        self._database = update_database_with_new_data(self._database, fresh, self._tombstones)
        return self.database


def _tombstoned_keys(db: Database, table_name: str) -> list[str]:
    parsed = parse_table_name(table_name)
    keys = [table_name] if table_name in db else []
    if parsed.is_tenant_qualified:
        return keys
    for key in db:
        key_parsed = parse_table_name(key)
        if key_parsed.is_tenant_qualified and key_parsed.logical_name == parsed.logical_name:
            keys.append(key)
    return keys
