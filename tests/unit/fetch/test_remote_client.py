"""Unit tests for the remote table service client."""

from __future__ import annotations

import httpx
import pytest

from core.errors import EndpointNotFoundError, HttpStatusError, ProtocolError, TransportError
from core.types import ColumnType, FetchOptions, Table
from fetch.remote_client import RemoteTableClient, decode_remote_tables

_BASE_URL = "http://api.test/api"


def _client(handler) -> RemoteTableClient:
    return RemoteTableClient(_BASE_URL, 5.0, httpx.MockTransport(handler))


def test_endpoint_for_generic_and_tool_calls() -> None:
    """Tool-scoped calls use <tool>-data.php."""
    client = RemoteTableClient(_BASE_URL + "/", 5.0)

    assert client.endpoint_for() == "http://api.test/api/app-initialization-data.php"
    assert client.endpoint_for("order-management") == (
        "http://api.test/api/order-management-data.php"
    )


@pytest.mark.asyncio
async def test_fetch_tables_sends_one_batched_request() -> None:
    """All names should go out in a single tables query."""
    seen: list[httpx.Request] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(
            200,
            json={
                "settings": [{"key": "page_size", "value": "50"}],
                "quotes": {
                    "schema": [{"id": "id", "name": "id", "type": "TEXT"}],
                    "data": [{"id": "q-1"}],
                },
            },
        )

    options = FetchOptions(lightweight=True, tool_name="order-management")
    database = await _client(handler).fetch_tables(["settings", "quotes"], options)

    assert len(seen) == 1
    assert seen[0].url.path == "/api/order-management-data.php"
    assert seen[0].url.params["tables"] == "settings,quotes"
    assert seen[0].url.params["lightweight"] == "true"
    assert database["settings"].data == [{"key": "page_size", "value": 50}]
    assert database["quotes"].data == [{"id": "q-1"}]


@pytest.mark.asyncio
async def test_fetch_tables_raises_not_found_for_404() -> None:
    """404 is reported separately so callers can fall back."""

    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(404)

    with pytest.raises(EndpointNotFoundError) as error_info:
        await _client(handler).fetch_tables(["settings"])

    assert error_info.value.status_code == 404
    assert error_info.value.tables == ("settings",)


@pytest.mark.asyncio
async def test_fetch_tables_raises_status_error_with_service_message() -> None:
    """Other error statuses carry the endpoint, tables, and service error."""

    async def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(500, json={"error": "database offline"})

    with pytest.raises(HttpStatusError) as error_info:
        await _client(handler).fetch_tables(["settings", "users"])

    assert error_info.value.status_code == 500
    assert error_info.value.endpoint.endswith("app-initialization-data.php")
    assert "database offline" in str(error_info.value)
    assert not isinstance(error_info.value, EndpointNotFoundError)


@pytest.mark.asyncio
async def test_fetch_tables_raises_transport_error_when_unreachable() -> None:
    """Connection failures become TransportError."""

    async def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(TransportError) as error_info:
        await _client(handler).fetch_tables(["settings"])

    assert error_info.value.tables == ("settings",)


@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, html="<html>Fatal error</html>"),
        httpx.Response(200, content=b"", headers={"content-type": "application/json"}),
        httpx.Response(200, content=b"{broken", headers={"content-type": "application/json"}),
        httpx.Response(200, json=[{"id": 1}]),
    ],
)
@pytest.mark.asyncio
async def test_fetch_tables_raises_protocol_error_for_bad_bodies(response: httpx.Response) -> None:
    """Non-JSON, empty, malformed, and non-object bodies are protocol errors."""

    async def handler(request: httpx.Request) -> httpx.Response:
        return response

    with pytest.raises(ProtocolError):
        await _client(handler).fetch_tables(["settings"])


def test_decode_remote_tables_degrades_bad_shapes() -> None:
    """One malformed table becomes empty without affecting the rest."""
    database = decode_remote_tables(
        {
            "broken": "not a table",
            "bad_rows": [1, 2],
            "users": [{"id": "u1", "is_active": "true"}, {"id": None, "is_active": ""}],
        }
    )

    assert database["broken"] == Table.empty()
    assert database["bad_rows"] == Table.empty()
    assert database["users"].data == [{"id": "u1", "is_active": True}]
    assert database["users"].schema[1].type is ColumnType.BOOLEAN


@pytest.mark.asyncio
async def test_probe_falls_back_from_head_to_get() -> None:
    """A rejected HEAD should be retried as GET."""
    methods: list[str] = []

    async def handler(request: httpx.Request) -> httpx.Response:
        methods.append(request.method)
        assert request.url.params["tables"] == "settings"
        if request.method == "HEAD":
            return httpx.Response(405)
        return httpx.Response(200, json={"settings": []})

    assert await _client(handler).probe()
    assert methods == ["HEAD", "GET"]


@pytest.mark.asyncio
async def test_probe_reports_unreachable_service() -> None:
    """Probe should return False when nothing answers."""

    async def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    assert not await _client(handler).probe()
