"""MCP Prompt templates — conversation starters for common SAP data tasks.

Prompts give LLMs a structured way into the three-step discovery flow with
the right context for the catalog that is actually loaded.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from fastmcp import FastMCP

from ..tools.router import DISCOVER_TOOL, EXECUTE_TOOL, METADATA_TOOL

if TYPE_CHECKING:
    from ..gateway import ODataGateway


def register_prompts(mcp: FastMCP, gateway: ODataGateway) -> None:
    """Register prompt templates with the MCP server."""

    @mcp.prompt()
    def explore_data(topic: str = "") -> str:
        """Find and inspect SAP data about a business topic.

        Args:
            topic: What to look for (e.g., 'sales orders', 'suppliers').
        """
        listing = gateway.catalog_listing()
        categories = ", ".join(listing["categories"]) or "all"
        focus = f"about '{topic}'" if topic else "available in this system"
        return (
            f"Help me explore SAP data {focus}.\n\n"
            f"The catalog has {listing['totalServices']} services "
            f"in these categories: {categories}.\n\n"
            f"Steps:\n"
            f"1. Call {DISCOVER_TOOL} with a short keyword"
            f"{f' such as {topic!r}' if topic else ''} to find services and entities\n"
            f"2. Pick the most relevant service id and entity name\n"
            f"3. Call {METADATA_TOOL} to see its properties, keys and capabilities\n"
            f"4. Call {EXECUTE_TOOL} with operation 'read' and a small topNumber "
            f"to show sample records\n\n"
            f"Summarize what each relevant entity contains before reading data."
        )

    @mcp.prompt()
    def troubleshoot_operation(error: str = "") -> str:
        """Help fix a failed execute-sap-operation call.

        Args:
            error: The error message or error_code that was returned.
        """
        return (
            f"Help me fix a failed SAP operation.\n\n"
            f"Error: {error or '(not provided)'}\n\n"
            f"Check, in order:\n"
            f"1. INVALID_OPERATION: use read, read-single, create, update or delete\n"
            f"2. SERVICE_NOT_FOUND: use the service id from {DISCOVER_TOOL}, not the title\n"
            f"3. ENTITY_NOT_FOUND: pick one of the available entities listed in the error\n"
            f"4. CAPABILITY_DENIED: the entity does not allow this write; "
            f"check capabilities with {METADATA_TOOL}\n"
            f"5. MISSING_KEY: pass every key property named in the error in 'parameters'\n"
            f"6. Backend errors (SAP API Error <status>): 401/403 mean the caller lacks "
            f"authorization, 404 means the key matched no record, 400 usually means a "
            f"malformed filter or a field value of the wrong type\n\n"
            f"Then retry {EXECUTE_TOOL} with the corrected arguments."
        )
