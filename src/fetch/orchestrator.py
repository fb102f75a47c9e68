"""Mode-aware table fetch orchestration.

This module retrieves requested tables from the remote service or from
snapshot files. Remote 404s fall back to snapshots for a single call, and
tenant-partitioned tables fan out once per catalog tenant.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Sequence

from core.constants import (
    DEFAULT_PROBE_TIMEOUT_SECONDS,
    DEFAULT_SNAPSHOT_ENCODING,
    TENANT_CATALOG_TABLE,
)
from core.errors import (
    EndpointNotFoundError,
    ParseError,
    ProtocolError,
    TenantDbError,
    TenantDbNameError,
)
from core.logging_config import get_logger
from core.types import (
    Database,
    FetchOptions,
    Location,
    OperatingMode,
    ParsedTableName,
    Table,
    TableKind,
)
from fetch.csv_snapshot import CsvSnapshot, parse_csv_text
from fetch.operating_mode import OperatingModeStore, determine_mode
from fetch.remote_client import RemoteTableClient
from fetch.schema_inference import build_table
from fetch.snapshot_source import SnapshotSource
from tables.path_resolver import resolve_locations, tenant_location
from tables.table_names import (
    INITIAL_TABLE_NAMES,
    RETIRED_PARTITIONED_TABLES,
    catalog_tenant_ids,
    is_derived,
    is_valid_tenant_id,
    parse_table_name,
    physical_name,
    table_kind,
)

_LOGGER = get_logger(__name__)


class FetchOrchestrator:
    """Retrieve tables according to the persisted operating mode."""

    def __init__(
        self,
        mode_store: OperatingModeStore,
        remote: RemoteTableClient,
        snapshots: SnapshotSource,
        encoding: str = DEFAULT_SNAPSHOT_ENCODING,
        probe_timeout: float = DEFAULT_PROBE_TIMEOUT_SECONDS,
    ) -> None:
        """Create the orchestrator.

        Args:
            mode_store: Persisted operating mode.
            remote: Remote table service client.
            snapshots: Snapshot file reader.
            encoding: Text encoding of snapshot files.
            probe_timeout: Deadline in seconds for mode detection.
        """
        self._mode_store = mode_store
        self._remote = remote
        self._snapshots = snapshots
        self._encoding = encoding
        self._probe_timeout = probe_timeout

    @property
    def mode_store(self) -> OperatingModeStore:
        return self._mode_store

    async def determine_mode(self) -> OperatingMode:
        """Return the persisted mode, probing the remote service when unset."""
        return await determine_mode(self._mode_store, self._remote.probe, self._probe_timeout)

    async def fetch_tables(
        self,
        names: Sequence[str],
        options: FetchOptions | None = None,
    ) -> Database:
        """Fetch tables in the current operating mode.

        Args:
            names: Logical or tenant-qualified physical table names.
            options: Tool, tenant, and lightweight options.

        Returns:
            Fetched tables. Every requested non-derived name yields a table;
            partitioned logical names yield one table per tenant.

        Raises:
            RemoteFetchError: For non-404 remote failures in REMOTE mode.
            TenantDbNameError: If ``options.tenant_id`` is not a usable id.
        """
        if not names:
            return {}
        options = options or FetchOptions()
        mode = await self.determine_mode()
        if not mode.reads_snapshots:
            try:
                return await self._remote.fetch_tables(names, options)
            except EndpointNotFoundError as error:
                _LOGGER.warning(
                    "remote_fetch_degraded",
                    endpoint=error.endpoint,
                    tables=list(error.tables),
                    fallback=OperatingMode.SNAPSHOT_RO.value,
                )
        return await self.fetch_from_snapshots(names, options)

    async def fetch_from_snapshots(
        self,
        names: Sequence[str],
        options: FetchOptions | None = None,
    ) -> Database:
        """Fetch tables from snapshot files, reading all of them concurrently.

        Args:
            names: Logical or tenant-qualified physical table names.
            options: ``tenant_id`` restricts tenant fan-out to one tenant.

        Returns:
            Fetched tables keyed by logical or physical name.

        Raises:
            TenantDbNameError: If ``options.tenant_id`` is not a usable id.
        """
        options = options or FetchOptions()
        requested = list(dict.fromkeys(names))
        tenant_ids = await self._tenant_scope(requested, options)
        keys: list[str] = []
        jobs: list[Awaitable[Table]] = []
        for name in requested:
            for key, job in self._plan(name, tenant_ids):
                keys.append(key)
                jobs.append(job)
        tables = await asyncio.gather(*jobs)
        database = dict(zip(keys, tables))
        _LOGGER.info(
            "snapshot_tables_fetched",
            requested=len(requested),
            table_count=len(database),
        )
        return database

    async def load_initial_database(self, mode: OperatingMode | None = None) -> Database:
        """Fetch the start-up tables, demoting REMOTE on a protocol failure.

        Args:
            mode: Mode to persist before fetching; the current mode when None.

        Returns:
            The start-up tables.

        Raises:
            RemoteFetchError: For remote failures other than protocol errors.
        """
        if mode is not None:
            self._mode_store.set(mode)
        try:
            return await self.fetch_tables(INITIAL_TABLE_NAMES)
        except ProtocolError as error:
            if self._mode_store.get() is not OperatingMode.REMOTE:
                raise
            _LOGGER.warning(
                "operating_mode_demoted",
                endpoint=error.endpoint,
                mode=OperatingMode.SNAPSHOT_RO.value,
                error=str(error),
            )
            self._mode_store.set(OperatingMode.SNAPSHOT_RO)
            return await self.fetch_tables(INITIAL_TABLE_NAMES)

    async def _tenant_scope(self, names: Sequence[str], options: FetchOptions) -> list[str]:
        """Return the tenants that partitioned and dual names fan out over."""
        if options.tenant_id is not None:
            if not is_valid_tenant_id(options.tenant_id):
                raise TenantDbNameError(
                    f"Invalid tenant id '{options.tenant_id}' in fetch options. "
                    "Use a non-blank id without whitespace or path separators."
                )
            return [options.tenant_id]
        if not any(_needs_tenant_scope(parse_table_name(name)) for name in names):
            return []
        return await self.load_tenant_ids()

    async def load_tenant_ids(self) -> list[str]:
        """Read tenant ids from the snapshot tenant catalog.

        Ids are read as raw text so zero-padded ids keep their padding.
        """
        snapshot = await self._read_first_safely(
            TENANT_CATALOG_TABLE, resolve_locations(TENANT_CATALOG_TABLE)
        )
        if snapshot is None:
            _LOGGER.warning("tenant_catalog_missing", table=TENANT_CATALOG_TABLE)
            return []
        return catalog_tenant_ids(snapshot.rows)

    def _plan(self, name: str, tenant_ids: Sequence[str]) -> list[tuple[str, Awaitable[Table]]]:
        """Return (result key, read job) pairs for one requested name."""
        if is_derived(name):
            _LOGGER.debug("derived_table_skipped", table=name)
            return []
        parsed = parse_table_name(name)
        if parsed.is_tenant_qualified:
            return [(name, self._load_table(name, _tenant_locations(parsed)))]
        kind = table_kind(parsed.logical_name)
        if kind is TableKind.DUAL:
            return [(name, self._load_dual_table(name, tenant_ids))]
        if kind is TableKind.PARTITIONED:
            return self._plan_partitioned(name, tenant_ids)
        return [(name, self._load_table(name, resolve_locations(name)))]

    def _plan_partitioned(
        self,
        name: str,
        tenant_ids: Sequence[str],
    ) -> list[tuple[str, Awaitable[Table]]]:
        if not tenant_ids:
            _LOGGER.info("partitioned_table_without_tenants", table=name)
            return []
        planned: list[tuple[str, Awaitable[Table]]] = []
        for tenant_id in tenant_ids:
            try:
                key = physical_name(name, tenant_id)
            except TenantDbNameError as error:
                _LOGGER.warning(
                    "tenant_table_skipped", table=name, tenant=tenant_id, error=str(error)
                )
                continue
            planned.append((key, self._load_table(key, resolve_locations(name, tenant_id))))
        return planned

    async def _load_table(self, label: str, locations: Sequence[Location]) -> Table:
        snapshot = await self._read_first_safely(label, locations)
        if snapshot is None:
            return Table.empty()
        return build_table(snapshot.rows, headers=snapshot.headers)

    async def _load_dual_table(self, name: str, tenant_ids: Sequence[str]) -> Table:
        """Concatenate shared rows with each tenant's supplemental rows."""
        parts = [self._read_first_safely(name, resolve_locations(name))]
        for tenant_id in tenant_ids:
            parts.append(self._read_first_safely(name, [tenant_location(name, tenant_id)]))
        snapshots = [snapshot for snapshot in await asyncio.gather(*parts) if snapshot is not None]
        headers: list[str] = []
        rows: list[dict[str, str | None]] = []
        for snapshot in snapshots:
            headers.extend(header for header in snapshot.headers if header not in headers)
            rows.extend(snapshot.rows)
        return build_table(rows, headers=headers)

    async def _read_first_safely(
        self,
        label: str,
        locations: Sequence[Location],
    ) -> CsvSnapshot | None:
        """Read the first existing location, degrading failures to None."""
        try:
            return await self._read_first(label, locations)
        except TenantDbError as error:
            _LOGGER.warning("snapshot_table_degraded", table=label, error=str(error))
            return None

    async def _read_first(self, label: str, locations: Sequence[Location]) -> CsvSnapshot | None:
        """Read and parse the first location that exists.

        Raises:
            ParseError: If the file cannot be decoded or parsed.
            RemoteFetchError: If an HTTP snapshot server fails.
        """
        for location in locations:
            payload = await self._snapshots.read(location)
            if payload is None:
                continue
            try:
                text = payload.decode(self._encoding)
            except UnicodeDecodeError as error:
                raise ParseError(
                    f"Snapshot {location} for table '{label}' is not valid {self._encoding}: "
                    f"{error}. Set TENANTDB_SNAPSHOT_ENCODING to the file encoding."
                ) from error
            return parse_csv_text(text, location)
        _LOGGER.debug("snapshot_not_found", table=label, locations=list(locations))
        return None


def _needs_tenant_scope(parsed: ParsedTableName) -> bool:
    if parsed.is_tenant_qualified:
        return False
    return table_kind(parsed.logical_name) in (TableKind.PARTITIONED, TableKind.DUAL)


def _tenant_locations(parsed: ParsedTableName) -> list[Location]:
    """Locations of one tenant-qualified table; dual tables read the tenant file only."""
    if parsed.logical_name in RETIRED_PARTITIONED_TABLES or parsed.tenant_id is None:
        return []
    return [tenant_location(parsed.logical_name, parsed.tenant_id)]
