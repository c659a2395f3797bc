"""Shared fixtures: the sample catalog, a recording transport and a tool-capturing MCP."""

from __future__ import annotations

from pathlib import Path
from typing import Any
from unittest.mock import Mock

import pytest

from sap_odata_mcp.catalog import Catalog, load_catalog_file
from sap_odata_mcp.exceptions import TransportError
from sap_odata_mcp.gateway import ODataGateway
from sap_odata_mcp.schema import Service
from sap_odata_mcp.transport.base import TransportResponse

FIXTURES = Path(__file__).parent / "fixtures"
CATALOG_PATH = FIXTURES / "sample_catalog.json"
METADATA_PATH = FIXTURES / "sample_metadata.xml"


class FakeTransport:
    """Records every call and answers with a canned response or error."""

    def __init__(self, data: Any = None, error: TransportError | None = None) -> None:
        self.data = data
        self.error = error
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def _answer(self, method: str, **kwargs: Any) -> TransportResponse:
        self.calls.append((method, kwargs))
        if self.error is not None:
            raise self.error
        return TransportResponse(200, self.data)

    async def fetch_entity_set(self, base_path, entity_set, query_options, token=None):
        return await self._answer(
            "fetch_entity_set",
            base_path=base_path,
            entity_set=entity_set,
            query_options=query_options,
            token=token,
        )

    async def fetch_entity(self, base_path, entity_set, key_expression, token=None):
        return await self._answer(
            "fetch_entity",
            base_path=base_path,
            entity_set=entity_set,
            key_expression=key_expression,
            token=token,
        )

    async def create_entity(self, base_path, entity_set, payload, token=None):
        return await self._answer(
            "create_entity",
            base_path=base_path,
            entity_set=entity_set,
            payload=payload,
            token=token,
        )

    async def update_entity(self, base_path, entity_set, key_expression, payload, token=None):
        return await self._answer(
            "update_entity",
            base_path=base_path,
            entity_set=entity_set,
            key_expression=key_expression,
            payload=payload,
            token=token,
        )

    async def delete_entity(self, base_path, entity_set, key_expression, token=None):
        return await self._answer(
            "delete_entity",
            base_path=base_path,
            entity_set=entity_set,
            key_expression=key_expression,
            token=token,
        )


@pytest.fixture
def services() -> list[Service]:
    return load_catalog_file(CATALOG_PATH)


@pytest.fixture
def catalog(services: list[Service]) -> Catalog:
    return Catalog(services)


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport(data={"d": {"results": [{"OrderId": "1000"}]}})


@pytest.fixture
def gateway(catalog: Catalog, transport: FakeTransport) -> ODataGateway:
    return ODataGateway(catalog, transport)


@pytest.fixture
def mock_mcp() -> Mock:
    """Create a mock FastMCP instance that captures registered tools, resources and prompts."""
    tools: dict = {}
    resources: dict = {}
    prompts: dict = {}

    def tool_decorator(*args, **kwargs):
        def wrapper(fn):
            tools[kwargs.get("name") or fn.__name__] = fn
            return fn

        return wrapper

    def resource_decorator(uri, **kwargs):
        def wrapper(fn):
            resources[uri] = fn
            return fn

        return wrapper

    def prompt_decorator(*args, **kwargs):
        def wrapper(fn):
            prompts[fn.__name__] = fn
            return fn

        return wrapper

    mcp = Mock()
    mcp.tool = tool_decorator
    mcp.resource = resource_decorator
    mcp.prompt = prompt_decorator
    mcp._tools = tools
    mcp._resources = resources
    mcp._prompts = prompts
    return mcp
