"""Tests for the httpx-based OData transport."""

from __future__ import annotations

import base64
import json

import httpx
import pytest

from sap_odata_mcp.config import Settings
from sap_odata_mcp.exceptions import TransportError
from sap_odata_mcp.transport.http import (
    HttpTransport,
    extract_error_message,
    sanitize_query_value,
)

BASE_URL = "https://sap.example.com"
SALES_PATH = "/sap/opu/odata/sap/SALES_SRV/"


class Recorder:
    """httpx mock handler that records requests and replays one response."""

    def __init__(self, response: httpx.Response | Exception) -> None:
        self.response = response
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if isinstance(self.response, Exception):
            raise self.response
        return self.response


def make_transport(response, **kwargs) -> tuple[HttpTransport, Recorder]:
    recorder = Recorder(response)
    client = httpx.AsyncClient(transport=httpx.MockTransport(recorder))
    return HttpTransport(BASE_URL, client=client, **kwargs), recorder


class TestHelpers:
    def test_sanitize_query_value(self) -> None:
        assert sanitize_query_value("Name eq 'X'\r\nand Id eq 1") == "Name eq 'X'  and Id eq 1"

    def test_v2_error_message(self) -> None:
        response = httpx.Response(400, json={"error": {"message": {"value": "Bad key"}}})
        assert extract_error_message(response) == "Bad key"

    def test_v4_error_message(self) -> None:
        response = httpx.Response(404, json={"error": {"message": "No such entity"}})
        assert extract_error_message(response) == "No such entity"

    def test_falls_back_to_reason_phrase(self) -> None:
        assert extract_error_message(httpx.Response(503, text="<html/>")) == "Service Unavailable"


class TestReads:
    @pytest.mark.asyncio
    async def test_fetch_entity_set(self) -> None:
        transport, recorder = make_transport(
            httpx.Response(200, json={"d": {"results": [{"OrderId": "1"}]}})
        )
        response = await transport.fetch_entity_set(
            SALES_PATH,
            "SalesOrderHeaderSet",
            {"$filter": "CustomerName eq 'ACME'", "$top": 5, "$select": ""},
        )
        request = recorder.requests[0]
        assert request.method == "GET"
        assert request.url.path == "/sap/opu/odata/sap/SALES_SRV/SalesOrderHeaderSet"
        assert request.url.params["$filter"] == "CustomerName eq 'ACME'"
        assert request.url.params["$top"] == "5"
        assert "$select" not in request.url.params
        assert request.headers["Accept"] == "application/json"
        assert response.status_code == 200
        assert response.data == {"d": {"results": [{"OrderId": "1"}]}}

    @pytest.mark.asyncio
    async def test_fetch_entity_by_key(self) -> None:
        transport, recorder = make_transport(httpx.Response(200, json={"d": {"OrderId": "1"}}))
        await transport.fetch_entity(SALES_PATH, "SalesOrderHeaderSet", "'1000'")
        assert recorder.requests[0].url.path == (
            "/sap/opu/odata/sap/SALES_SRV/SalesOrderHeaderSet('1000')"
        )

    @pytest.mark.asyncio
    async def test_fetch_metadata_returns_text(self) -> None:
        transport, recorder = make_transport(httpx.Response(200, text="<edmx:Edmx/>"))
        xml = await transport.fetch_metadata(SALES_PATH + "$metadata")
        assert xml == "<edmx:Edmx/>"
        assert recorder.requests[0].headers["Accept"] == "application/xml"

    @pytest.mark.asyncio
    async def test_fetch_service_catalog(self) -> None:
        transport, recorder = make_transport(httpx.Response(200, json={"d": {"results": []}}))
        assert await transport.fetch_service_catalog() == {"d": {"results": []}}
        assert recorder.requests[0].url.path.endswith("CATALOGSERVICE;v=2/ServiceCollection")


class TestWrites:
    @pytest.mark.asyncio
    async def test_create_without_body_uses_location(self) -> None:
        response = httpx.Response(
            201,
            headers={"Location": f"{BASE_URL}{SALES_PATH}SalesOrderItemSet(OrderId='A1',ItemNo=10)"},
        )
        transport, recorder = make_transport(response)
        result = await transport.create_entity(SALES_PATH, "SalesOrderItemSet", {"Material": "M"})
        request = recorder.requests[0]
        assert request.method == "POST"
        assert json.loads(request.content) == {"Material": "M"}
        assert result.status_code == 201
        assert result.data == {"Material": "M", "__key": "OrderId='A1',ItemNo=10"}

    @pytest.mark.asyncio
    async def test_create_returns_body(self) -> None:
        transport, _ = make_transport(httpx.Response(201, json={"d": {"Material": "M"}}))
        result = await transport.create_entity(SALES_PATH, "SalesOrderItemSet", {"Material": "M"})
        assert result.data == {"d": {"Material": "M"}}

    @pytest.mark.asyncio
    async def test_update_no_content(self) -> None:
        transport, recorder = make_transport(httpx.Response(204))
        result = await transport.update_entity(
            SALES_PATH, "SalesOrderHeaderSet", "'1000'", {"CustomerName": "ACME"}
        )
        assert recorder.requests[0].method == "PATCH"
        assert result.data == {
            "message": "Entity updated successfully with key: '1000'",
            "success": True,
            "key": "'1000'",
            "updatedFields": ["CustomerName"],
        }

    @pytest.mark.asyncio
    async def test_delete(self) -> None:
        transport, recorder = make_transport(httpx.Response(204))
        result = await transport.delete_entity(SALES_PATH, "SalesOrderHeaderSet", "'1000'")
        assert recorder.requests[0].method == "DELETE"
        assert result.status_code == 204
        assert result.data is None


class TestAuthentication:
    @pytest.mark.asyncio
    async def test_caller_token_wins(self) -> None:
        transport, recorder = make_transport(
            httpx.Response(200, json={}), token="technical", username="u", password="p"
        )
        await transport.fetch_entity(SALES_PATH, "SalesOrderHeaderSet", "'1'", token="user")
        assert recorder.requests[0].headers["Authorization"] == "Bearer user"

    @pytest.mark.asyncio
    async def test_technical_token(self) -> None:
        transport, recorder = make_transport(httpx.Response(200, json={}), token="technical")
        await transport.fetch_entity(SALES_PATH, "SalesOrderHeaderSet", "'1'")
        assert recorder.requests[0].headers["Authorization"] == "Bearer technical"

    @pytest.mark.asyncio
    async def test_basic_auth(self) -> None:
        transport, recorder = make_transport(
            httpx.Response(200, json={}), username="user", password="secret"
        )
        await transport.fetch_entity(SALES_PATH, "SalesOrderHeaderSet", "'1'")
        expected = base64.b64encode(b"user:secret").decode()
        assert recorder.requests[0].headers["Authorization"] == f"Basic {expected}"

    @pytest.mark.asyncio
    async def test_anonymous(self) -> None:
        transport, recorder = make_transport(httpx.Response(200, json={}))
        await transport.fetch_entity(SALES_PATH, "SalesOrderHeaderSet", "'1'")
        assert "Authorization" not in recorder.requests[0].headers


class TestFailures:
    @pytest.mark.asyncio
    async def test_error_status(self) -> None:
        transport, _ = make_transport(
            httpx.Response(404, json={"error": {"message": {"value": "Resource not found"}}})
        )
        with pytest.raises(TransportError) as exc_info:
            await transport.fetch_entity(SALES_PATH, "SalesOrderHeaderSet", "'9'")
        err = exc_info.value
        assert err.status_code == 404
        assert err.upstream_message == "Resource not found"
        assert err.message == "SAP API Error 404: Resource not found"

    @pytest.mark.asyncio
    async def test_timeout(self) -> None:
        transport, _ = make_transport(httpx.ReadTimeout("slow"), timeout=5.0)
        with pytest.raises(TransportError, match="timed out after 5.0s"):
            await transport.fetch_entity_set(SALES_PATH, "SalesOrderHeaderSet", {})

    @pytest.mark.asyncio
    async def test_connection_error(self) -> None:
        transport, _ = make_transport(httpx.ConnectError("refused"))
        with pytest.raises(TransportError, match="failed") as exc_info:
            await transport.fetch_entity_set(SALES_PATH, "SalesOrderHeaderSet", {})
        assert exc_info.value.status_code is None


class TestLifecycle:
    def test_from_settings(self) -> None:
        settings = Settings(base_url="https://sap.example.com/", username="u", password="p")
        transport = HttpTransport.from_settings(settings)
        assert transport.base_url == "https://sap.example.com"
        assert transport.timeout == 30.0

    @pytest.mark.asyncio
    async def test_context_manager_closes_client(self) -> None:
        transport, _ = make_transport(httpx.Response(200))
        async with transport:
            pass
        assert transport._client.is_closed
