"""tenantdb exception hierarchy.

This module defines traceable domain errors with clear boundaries.
Remote failures carry the endpoint and requested tables for debuggability.
"""

from __future__ import annotations

from typing import Sequence


class TenantDbError(Exception):
    """Base exception for all tenantdb failures."""


class TenantDbConfigError(TenantDbError):
    """Raised for invalid runtime configuration."""


class TenantDbNameError(TenantDbError):
    """Raised when a logical or physical table name cannot be built."""


class TenantDbStateError(TenantDbError):
    """Raised when persisted client state cannot be read or written."""


class RemoteFetchError(TenantDbError):
    """Raised when the remote table service fails for a batched request."""

    def __init__(self, message: str, endpoint: str, tables: Sequence[str]) -> None:
        super().__init__(message)
        self.endpoint = endpoint
        self.tables = tuple(tables)


class TransportError(RemoteFetchError):
    """Raised when the remote endpoint is unreachable or times out."""


class ProtocolError(RemoteFetchError):
    """Raised when the remote endpoint returns non-JSON or malformed JSON."""


class HttpStatusError(RemoteFetchError):
    """Raised for non-404, non-2xx remote responses."""

    def __init__(
        self,
        message: str,
        endpoint: str,
        tables: Sequence[str],
        status_code: int,
    ) -> None:
        super().__init__(message, endpoint, tables)
        self.status_code = status_code


class ParseError(TenantDbError):
    """Raised when a snapshot source cannot be parsed into rows."""


class SchemaMismatchError(TenantDbError):
    """Raised when a table payload has an invalid shape."""


class EndpointNotFoundError(HttpStatusError):
    """Raised when the remote endpoint answers 404; callers degrade to snapshots."""
