"""Remote table service client.

This module issues the single batched table request against the remote
service and decodes its JSON payload into typed tables.
"""

from __future__ import annotations

import json
from typing import Any, Mapping, Sequence

import httpx

from core.constants import (
    ERROR_PREVIEW_CHARS,
    GENERIC_ENDPOINT_FILE_NAME,
    JSON_CONTENT_TYPE,
    PROBE_TABLE_NAME,
    TOOL_ENDPOINT_SUFFIX,
)
from core.errors import (
    EndpointNotFoundError,
    HttpStatusError,
    ProtocolError,
    SchemaMismatchError,
    TransportError,
)
from core.logging_config import get_logger
from core.types import Column, Database, FetchOptions, Row, Table
from fetch.schema_inference import build_table

_LOGGER = get_logger(__name__)


class RemoteTableClient:
    """HTTP client for the remote table service."""

    def __init__(
        self,
        base_url: str,
        timeout: float,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """Create the client.

        Args:
            base_url: Service base URL, e.g. ``http://host/api``.
            timeout: Request timeout in seconds.
            transport: Optional httpx transport, used by tests.
        """
        self._base_url = base_url.rstrip("/")
        self._timeout = timeout
        self._transport = transport

    def endpoint_for(self, tool_name: str | None = None) -> str:
        """Return the generic or tool-scoped endpoint URL."""
        file_name = (
            f"{tool_name}{TOOL_ENDPOINT_SUFFIX}" if tool_name else GENERIC_ENDPOINT_FILE_NAME
        )
        return f"{self._base_url}/{file_name}"

    async def fetch_tables(
        self,
        names: Sequence[str],
        options: FetchOptions | None = None,
    ) -> Database:
        """Fetch all requested tables in one batched call.

        Args:
            names: Requested table names.
            options: Fetch options; ``tool_name`` and ``lightweight`` apply.

        Returns:
            Tables keyed by the names the service returned.

        Raises:
            EndpointNotFoundError: If the endpoint answered 404.
            HttpStatusError: For any other non-2xx status.
            TransportError: If the service is unreachable or times out.
            ProtocolError: If the body is not well-formed JSON.
        """
        options = options or FetchOptions()
        endpoint = self.endpoint_for(options.tool_name)
        params = {"tables": ",".join(names)}
        if options.lightweight:
            params["lightweight"] = "true"
        try:
            async with self._client() as client:
                response = await client.get(endpoint, params=params)
        except httpx.HTTPError as error:
            raise TransportError(
                f"Remote endpoint '{endpoint}' unreachable for tables ({', '.join(names)}): "
                f"{error}. Check the service or switch to snapshot mode.",
                endpoint,
                names,
            ) from error
        _raise_for_status(response, endpoint, names)
        payload = _parse_json_payload(response, endpoint, names)
        _LOGGER.info("remote_tables_fetched", endpoint=endpoint, table_count=len(payload))
        return decode_remote_tables(payload, endpoint)

    async def probe(self) -> bool:
        """Return whether the service answers on its generic endpoint.

        A HEAD request is tried first, then GET.
        """
        endpoint = self.endpoint_for()
        params = {"tables": PROBE_TABLE_NAME}
        async with self._client() as client:
            for method in ("HEAD", "GET"):
                try:
                    response = await client.request(method, endpoint, params=params)
                except httpx.HTTPError as error:
                    _LOGGER.debug("remote_probe_failed", method=method, error=str(error))
                    continue
                if response.is_success:
                    return True
        return False

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self._timeout, transport=self._transport)


def decode_remote_tables(payload: Mapping[str, Any], source: str = "remote") -> Database:
    """Decode a remote payload into typed tables.

    Each value is a bare row list (schema inferred) or a ``{schema, data}``
    object. A value with any other shape becomes an empty table.

    Args:
        payload: Parsed JSON object keyed by table name.
        source: Endpoint used in log events.

    Returns:
        Typed tables in payload order.
    """
    database: Database = {}
    for table_name, value in payload.items():
        try:
            database[table_name] = _decode_table(value)
        except SchemaMismatchError as error:
            _LOGGER.warning(
                "remote_table_degraded",
                source=source,
                table=table_name,
                error=str(error),
            )
            database[table_name] = Table.empty()
    return database


def _decode_table(value: object) -> Table:
    """Decode one remote table value.

    Raises:
        SchemaMismatchError: If the value has an unsupported shape.
    """
    if isinstance(value, list):
        return build_table(_valid_rows(value))
    if isinstance(value, Mapping) and "schema" in value and "data" in value:
        raw_schema = value["schema"] or []
        raw_data = value["data"] or []
        if not isinstance(raw_schema, list) or not isinstance(raw_data, list):
            raise SchemaMismatchError("Remote table 'schema' and 'data' must both be lists.")
        schema = tuple(Column.from_payload(item) for item in raw_schema)
        return build_table(_valid_rows(raw_data), schema)
    raise SchemaMismatchError(
        f"Unsupported remote table shape {type(value).__name__}; "
        "expected a row list or a {schema, data} object."
    )


def _valid_rows(raw_rows: list[object]) -> list[Row]:
    """Keep object rows that hold at least one non-blank value.

    Raises:
        SchemaMismatchError: If a row is not an object.
    """
    rows: list[Row] = []
    for raw_row in raw_rows:
        if not isinstance(raw_row, Mapping):
            raise SchemaMismatchError(
                f"Remote table row must be an object, got {type(raw_row).__name__}."
            )
        if any(_has_value(value) for value in raw_row.values()):
            rows.append(dict(raw_row))
    return rows


def _has_value(value: object) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def _raise_for_status(response: httpx.Response, endpoint: str, names: Sequence[str]) -> None:
    """Map non-2xx responses onto typed errors.

    Raises:
        EndpointNotFoundError: For 404.
        HttpStatusError: For other non-2xx statuses.
    """
    if response.is_success:
        return
    tables = ", ".join(names)
    if response.status_code == 404:
        raise EndpointNotFoundError(
            f"Remote endpoint '{endpoint}' not found (404) for tables ({tables}).",
            endpoint,
            names,
            404,
        )
    detail = _error_detail(response)
    raise HttpStatusError(
        f"Remote endpoint '{endpoint}' failed for tables ({tables}): "
        f"{response.status_code} {response.reason_phrase}. {detail}".rstrip(),
        endpoint,
        names,
        response.status_code,
    )


def _error_detail(response: httpx.Response) -> str:
    text = response.text
    try:
        payload = json.loads(text)
    except ValueError:
        return f"Response: {text[:ERROR_PREVIEW_CHARS]}" if text else ""
    if isinstance(payload, dict) and payload.get("error"):
        return f"Service error: {payload['error']}"
    return f"Response: {text[:ERROR_PREVIEW_CHARS]}"


def _parse_json_payload(
    response: httpx.Response,
    endpoint: str,
    names: Sequence[str],
) -> dict[str, Any]:
    """Validate content type and parse the JSON object body.

    Raises:
        ProtocolError: If the body is not a well-formed JSON object.
    """
    content_type = response.headers.get("content-type", "")
    text = response.text
    if JSON_CONTENT_TYPE not in content_type.lower():
        raise ProtocolError(
            f"Remote endpoint '{endpoint}' returned non-JSON response ({content_type or 'none'}). "
            f"This usually means a server error page. Preview: {text[:ERROR_PREVIEW_CHARS]}",
            endpoint,
            names,
        )
    if not text.strip():
        raise ProtocolError(
            f"Remote endpoint '{endpoint}' returned an empty response.", endpoint, names
        )
    try:
        payload = json.loads(text)
    except ValueError as error:
        raise ProtocolError(
            f"Remote endpoint '{endpoint}' returned invalid JSON: {error}. "
            f"Response length: {len(text)} chars. Start: {text[:ERROR_PREVIEW_CHARS]}",
            endpoint,
            names,
        ) from error
    if not isinstance(payload, dict):
        raise ProtocolError(
            f"Remote endpoint '{endpoint}' returned JSON {type(payload).__name__}; "
            "expected an object keyed by table name.",
            endpoint,
            names,
        )
    return payload
