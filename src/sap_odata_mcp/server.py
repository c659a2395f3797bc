"""SAP OData MCP Server — entry point."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from fastmcp import FastMCP

from .catalog import Catalog, discover_services, filter_services, load_catalog_file
from .config import Settings
from .exceptions import ConfigurationError
from .gateway import ODataGateway
from .logging_config import create_logger, setup_logging
from .prompts import register_prompts
from .resources import register_catalog_resources
from .tools import (
    ToolNameAllocator,
    build_tool_registry,
    register_crud_router_tools,
    register_router_tools,
)
from .transport import HttpTransport

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .schema import Service
    from .transport.base import Transport

logger = create_logger(__name__)


async def load_services(settings: Settings) -> list[Service]:
    """Load the catalog from the configured file, or discover it live."""
    if settings.catalog_path:
        return filter_services(load_catalog_file(settings.catalog_path), settings)
    if settings.base_url:
        # Discovery gets its own client so the server's client is bound to the server's loop
        async with HttpTransport.from_settings(settings) as transport:
            return await discover_services(transport, settings)
    raise ConfigurationError(
        "No service catalog configured: set ODATA_MCP_CATALOG_PATH or ODATA_MCP_BASE_URL"
    )


def create_server(
    services: Iterable[Service] | None = None,
    settings: Settings | None = None,
    transport: Transport | None = None,
) -> FastMCP:
    """Create and configure the SAP OData MCP server."""
    settings = settings or Settings.from_env()
    for warning in settings.ensure_valid():
        logger.warning(f"Configuration: {warning}")

    if services is None:
        if not settings.catalog_path:
            raise ConfigurationError(
                "create_server needs services or ODATA_MCP_CATALOG_PATH; "
                "use load_services() for live discovery"
            )
        services = filter_services(load_catalog_file(settings.catalog_path), settings)

    if transport is None:
        if not settings.base_url:
            raise ConfigurationError("ODATA_MCP_BASE_URL is required to call OData services")
        transport = HttpTransport.from_settings(settings)

    catalog = Catalog(services)
    gateway = ODataGateway(catalog, transport)
    mcp = FastMCP("sap-odata-mcp")

    # The three stage tools are always visible to the LLM
    register_router_tools(mcp, gateway)

    if settings.tool_mode == "crud":
        registry = build_tool_registry(catalog, gateway.dispatcher, ToolNameAllocator())
        register_crud_router_tools(mcp, registry)
        logger.info(f"Static CRUD mode: {len(registry)} routed tools")

    # Register MCP resources (read-only catalog state)
    register_catalog_resources(mcp, gateway, settings)

    # Register MCP prompt templates
    register_prompts(mcp, gateway)

    logger.info(f"Server ready with {len(catalog)} services ({settings.tool_mode} mode)")
    return mcp


def main() -> None:
    """CLI entry point."""
    settings = Settings.from_env()
    setup_logging(settings.log_level)
    services = asyncio.run(load_services(settings))
    server = create_server(services, settings)
    server.run()


if __name__ == "__main__":
    main()
