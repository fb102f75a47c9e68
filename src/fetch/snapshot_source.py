"""Snapshot byte sources.

This module reads snapshot files by relative location, either from a local
directory tree or from a static HTTP server. A missing file reads as None.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Protocol

import httpx

from core.config import TenantDbConfig
from core.errors import HttpStatusError, TransportError
from core.types import Location


class SnapshotSource(Protocol):
    """Reader for snapshot files addressed by relative location."""

    async def read(self, location: Location) -> bytes | None:
        """Return file bytes, or None when the location does not exist."""


class LocalSnapshotSource:
    """Snapshot reader over a local directory."""

    def __init__(self, root: Path) -> None:
        self._root = root

    @property
    def root(self) -> Path:
        return self._root

    async def read(self, location: Location) -> bytes | None:
        """Read a snapshot file off the event loop thread.

        Raises:
            TransportError: If an existing file cannot be read.
        """
        file_path = self._root / location
        if not file_path.is_file():
            return None
        try:
            return await asyncio.to_thread(file_path.read_bytes)
        except OSError as error:
            raise TransportError(
                f"Failed to read snapshot file {file_path}: {error}. Check file permissions.",
                str(file_path),
                [],
            ) from error


class HttpSnapshotSource:
    """Snapshot reader over a static HTTP server."""

    def __init__(
        self,
        base_url: str,
        timeout: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    async def read(self, location: Location) -> bytes | None:
        """Fetch a snapshot file over HTTP.

        Raises:
            TransportError: If the server is unreachable.
            HttpStatusError: For non-404 error statuses.
        """
        url = f"{self._base_url}/{location}"
        try:
            async with httpx.AsyncClient(
                timeout=self._timeout, transport=self._transport
            ) as client:
                response = await client.get(url)
        except httpx.HTTPError as error:
            raise TransportError(
                f"Snapshot server unreachable for {url}: {error}.", url, []
            ) from error
        if response.status_code == 404:
            return None
        if not response.is_success:
            raise HttpStatusError(
                f"Snapshot request for {url} failed: {response.status_code} "
                f"{response.reason_phrase}.",
                url,
                [],
                response.status_code,
            )
        return response.content


def create_snapshot_source(
    config: TenantDbConfig,
    transport: httpx.AsyncBaseTransport | None = None,
) -> SnapshotSource:
    """Build the snapshot source named by config."""
    if config.is_remote_snapshot_root():
        return HttpSnapshotSource(config.snapshot_root, config.request_timeout, transport)
    return LocalSnapshotSource(Path(config.snapshot_root).expanduser())
