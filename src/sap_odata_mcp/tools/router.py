"""Tool router — the MCP tool surface over the discovery engine.

Instead of exposing one tool per entity per operation (thousands for a large SAP
landscape, which overwhelms LLM context windows), we expose three stage tools:
  - discover-sap-data       search services and entities
  - get-entity-metadata     full schema of one entity
  - execute-sap-operation   CRUD on one entity

In static CRUD mode the per-entity tools are routed instead, through
list_tool_categories / get_category_tools / execute_tool / search_tools.
"""

from __future__ import annotations

import inspect
import json
from typing import TYPE_CHECKING, Any

from fastmcp import FastMCP
from fastmcp.exceptions import ToolError

from ..constants import MAX_RESPONSE_CHARS
from ..exceptions import ODataMcpError, TransportError
from ..logging_config import create_logger, new_request_id
from .keys import QueryOptions

if TYPE_CHECKING:
    from ..gateway import ODataGateway
    from .registry import ToolRegistry

logger = create_logger(__name__)

DISCOVER_TOOL = "discover-sap-data"
METADATA_TOOL = "get-entity-metadata"
EXECUTE_TOOL = "execute-sap-operation"


def _truncate_response(result: dict[str, Any]) -> dict[str, Any]:
    """Truncate oversized responses by trimming the largest list field."""
    try:
        raw = json.dumps(result, default=str)
    except (TypeError, ValueError):
        return result

    if len(raw) <= MAX_RESPONSE_CHARS:
        return result

    # Find the largest list-valued field
    largest_key = None
    largest_len = 0
    for key, value in result.items():
        if isinstance(value, list) and len(value) > largest_len:
            largest_key = key
            largest_len = len(value)

    if largest_key is None or largest_len == 0:
        return result

    # Pre-populate metadata so the binary search accounts for their size
    original_list = result[largest_key]
    result["_truncated"] = True
    result["_message"] = (
        f"Response truncated: '{largest_key}' reduced from {largest_len} to {largest_len} items. "
        "Use filter/top/skip or a narrower query for smaller results."
    )

    # Binary-search for a list length that fits
    lo, hi = 0, largest_len
    while lo < hi:
        mid = (lo + hi + 1) // 2
        result[largest_key] = original_list[:mid]
        try:
            if len(json.dumps(result, default=str)) <= MAX_RESPONSE_CHARS:
                lo = mid
            else:
                hi = mid - 1
        except (TypeError, ValueError):
            hi = mid - 1

    result[largest_key] = original_list[:lo]
    result["_message"] = (
        f"Response truncated: '{largest_key}' reduced from {largest_len} to {lo} items. "
        "Use filter/top/skip or a narrower query for smaller results."
    )
    return result


def _truncate_result(result: dict[str, Any]) -> dict[str, Any]:
    """Truncate an operation envelope, looking inside OData ``d.results`` too."""
    payload = result.get("result")
    if isinstance(payload, dict):
        inner = payload.get("d") if isinstance(payload.get("d"), dict) else payload
        if isinstance(inner.get("results"), list) or isinstance(inner.get("value"), list):
            list_key = "results" if isinstance(inner.get("results"), list) else "value"
            trimmed = _truncate_response({list_key: inner[list_key]})
            if trimmed.get("_truncated"):
                inner[list_key] = trimmed[list_key]
                result["_truncated"] = True
                result["_message"] = trimmed["_message"]
            return result
    return _truncate_response(result)


def _tool_error(e: TransportError) -> ToolError:
    """Backend failures surface as protocol-level tool errors."""
    logger.error(f"Backend call failed: {e.message}")
    return ToolError(json.dumps(e.to_dict(), default=str))


def register_router_tools(mcp: FastMCP, gateway: ODataGateway) -> None:
    """Register the three stage tools with the FastMCP server."""

    @mcp.tool(name=DISCOVER_TOOL)
    def discover_sap_data(
        query: str | None = None,
        category: str | None = None,
        limit: int | None = None,
    ) -> dict[str, Any]:
        """Search SAP services and entities by keyword.

        Start here. Returns service ids and entity names only; call
        get-entity-metadata next for the schema of one entity.

        Args:
            query: Text matched against service ids, titles and entity names.
                Omit to list every service.
            category: business-partner, sales, finance, procurement, hr,
                logistics or all (default).
            limit: Maximum results, 1-50 (default 20).
        """
        new_request_id()
        result = gateway.discover(query=query, category=category, limit=limit)
        return _truncate_response(result.to_dict())

    @mcp.tool(name=METADATA_TOOL)
    def get_entity_metadata(serviceId: str, entityName: str) -> dict[str, Any]:  # noqa: N803
        """Get the full schema of one entity: properties, keys and capabilities.

        Args:
            serviceId: Service id from discover-sap-data (not the title).
            entityName: Entity name from discover-sap-data.
        """
        new_request_id()
        try:
            description = gateway.describe(serviceId, entityName)
        except ODataMcpError as e:
            return e.to_dict()
        return _truncate_response(description.to_dict())

    @mcp.tool(name=EXECUTE_TOOL)
    async def execute_sap_operation(
        serviceId: str,  # noqa: N803
        entityName: str,  # noqa: N803
        operation: str,
        parameters: dict[str, Any] | None = None,
        filterString: str | None = None,  # noqa: N803
        selectString: str | None = None,  # noqa: N803
        expandString: str | None = None,  # noqa: N803
        orderbyString: str | None = None,  # noqa: N803
        topNumber: int | None = None,  # noqa: N803
        skipNumber: int | None = None,  # noqa: N803
        useUserToken: bool = True,  # noqa: N803
    ) -> dict[str, Any]:
        """Execute read, read-single, create, update or delete on one entity.

        Call get-entity-metadata first to learn keys and capabilities.

        Args:
            serviceId: Service id.
            entityName: Entity name.
            operation: read, read-single, create, update or delete.
            parameters: Key values for read-single/update/delete, field values
                for create/update.
            filterString: OData $filter for read.
            selectString: OData $select for read.
            expandString: OData $expand for read.
            orderbyString: OData $orderby for read.
            topNumber: OData $top for read.
            skipNumber: OData $skip for read.
            useUserToken: Call the backend as the current user (default true).
        """
        new_request_id()
        options = QueryOptions(
            filter=filterString,
            select=selectString,
            expand=expandString,
            orderby=orderbyString,
            top=topNumber,
            skip=skipNumber,
        )
        try:
            result = await gateway.execute(
                serviceId,
                entityName,
                operation,
                parameters=parameters,
                query_options=options,
                use_user_token=useUserToken,
            )
        except TransportError as e:
            raise _tool_error(e) from e
        except ODataMcpError as e:
            logger.info(f"{EXECUTE_TOOL} rejected: {e.message}")
            return e.to_dict()
        return _truncate_result(result.to_dict())


def register_crud_router_tools(mcp: FastMCP, registry: ToolRegistry) -> None:
    """Register the 4 router meta-tools over the per-entity CRUD tools."""

    @mcp.tool()
    def list_tool_categories() -> dict[str, Any]:
        """List every service with the CRUD tools available for it.

        Use get_category_tools with a service id to see tool parameters.
        """
        categories = registry.get_categories()
        return _truncate_response(
            {
                "categories": [
                    {"category": name, "tool_count": len(tools), "tools": [t.name for t in tools]}
                    for name, tools in sorted(categories.items())
                ]
            }
        )

    @mcp.tool()
    def get_category_tools(category: str) -> dict[str, Any]:
        """Get names, descriptions and parameter schemas of a service's tools.

        Args:
            category: Service id from list_tool_categories.
        """
        categories = registry.get_categories()
        if category not in categories:
            return {
                "error": (
                    f"Unknown category: {category!r}."
                    " Use list_tool_categories to see available categories."
                ),
            }
        return _truncate_response(
            {
                "category": category,
                "tools": [
                    {"name": t.name, "description": t.description, "parameters": t.parameters}
                    for t in categories[category]
                ],
            }
        )

    @mcp.tool()
    async def execute_tool(
        tool_name: str, arguments: dict[str, Any] | None = None
    ) -> dict[str, Any]:
        """Execute a CRUD tool by name with the given arguments.

        Args:
            tool_name: Name of the tool to execute.
            arguments: Tool arguments as a JSON object (optional).
        """
        new_request_id()
        spec = registry.get(tool_name)
        if spec is None:
            return {
                "error": (
                    f"Unknown tool: {tool_name!r}."
                    " Use search_tools or list_tool_categories to find tools."
                ),
            }

        try:
            result = spec.handler(**(arguments or {}))
            if inspect.isawaitable(result):
                result = await result
        except TransportError as e:
            raise _tool_error(e) from e
        except ODataMcpError as e:
            return e.to_dict()
        if isinstance(result, dict):
            result = _truncate_result(result)
        return result  # type: ignore[no-any-return]

    @mcp.tool()
    def search_tools(query: str) -> dict[str, Any]:
        """Search CRUD tools by name or description.

        Args:
            query: Search term (e.g., 'SalesOrder', 'create', 'BUSINESS_PARTNER').
        """
        results = [
            {
                "name": t.name,
                "description": t.description,
                "category": t.category,
                "operation": t.operation,
            }
            for t in registry.search(query)
        ]
        return _truncate_response({"query": query, "result_count": len(results), "tools": results})
