"""MCP Resources — read-only catalog state exposed to LLMs.

Resources provide structured data that LLMs can read without executing tools.
They're ideal for frequently-accessed, relatively static information.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

from fastmcp import FastMCP

from ..exceptions import ServiceNotFoundError
from ..tools.router import DISCOVER_TOOL, EXECUTE_TOOL, METADATA_TOOL

if TYPE_CHECKING:
    from ..config import Settings
    from ..gateway import ODataGateway

SYSTEM_INSTRUCTIONS = f"""# SAP OData MCP Server - Instructions

## Available Tools

### Step 1: {DISCOVER_TOOL}
- Search services and entities by keyword, optionally within a category
- Returns service ids, titles, entity names and categories only
- When nothing matches, every service in the category is returned instead
  (`returnedAllServices: true`)

### Step 2: {METADATA_TOOL}
- Full schema of one entity: properties, types, keys, nullability,
  navigation properties and capabilities
- Always call this before step 3

### Step 3: {EXECUTE_TOOL}
- Perform read, read-single, create, update or delete on one entity

## Workflow

1. {DISCOVER_TOOL} → find the service id and entity name
2. {METADATA_TOOL} → learn keys and capabilities
3. {EXECUTE_TOOL} → run the operation

Use the service **id**, never its title.

## Operations

### read
- Multiple records
- Query options: filterString, selectString, expandString, orderbyString,
  topNumber, skipNumber

### read-single
- One record by key; pass every key property in `parameters`

### create
- Requires `creatable: true`
- Pass field values in `parameters`; key and unknown fields are dropped

### update
- Requires `updatable: true`
- Pass all key properties plus the fields to change; keys are not sent in
  the payload

### delete
- Requires `deletable: true`
- Pass all key properties; there is no recovery

## Key formatting

- GUID: `guid'value'`
- String: `'value'` (single quotes doubled)
- Number: plain number
- Date: `datetime'value'`
- Composite keys: `OrderID='O1',LineNo=1`

## Errors

Validation errors come back as a result with `error: true`, an `error_code`
and the context needed to fix the call (valid operations, available entities,
missing keys, required capability). Backend failures are reported as tool
errors carrying the SAP status code and message.
"""


def auth_status(gateway: ODataGateway, settings: Settings) -> dict[str, Any]:
    """Describe which identity backend calls will run under."""
    technical = "bearer" if settings.token else "basic" if settings.username else "none"
    return {
        "authentication": {
            "userTokenPresent": gateway.has_user_token,
            "technicalCredentials": technical,
            "currentStatus": "user" if gateway.has_user_token else "technical",
        },
        "message": (
            "Operations run under the caller's identity"
            if gateway.has_user_token
            else "Operations run under the configured technical credentials"
        ),
        "serviceFilter": settings.filter_summary(),
    }


def service_metadata(gateway: ODataGateway, service_id: str) -> dict[str, Any]:
    service = gateway.catalog.get_service(service_id)
    return {
        "service": {
            "id": service.id,
            "title": service.title,
            "description": service.description,
            "url": service.url,
            "version": service.version,
            "odataVersion": service.odata_version,
        },
        "entities": [
            {
                "name": entity.name,
                "entitySet": entity.entity_set_name,
                "properties": [p.to_dict() for p in entity.properties],
                "keys": list(entity.keys),
                "operations": {
                    "creatable": entity.creatable,
                    "updatable": entity.updatable,
                    "deletable": entity.deletable,
                },
            }
            for entity in service.entity_types
        ],
    }


def register_catalog_resources(mcp: FastMCP, gateway: ODataGateway, settings: Settings) -> None:
    """Register catalog-related MCP resources."""

    @mcp.resource("sap://services")
    def sap_services() -> str:
        """All catalog services with entity counts and categories."""
        return json.dumps(gateway.catalog_listing(), indent=2)

    @mcp.resource("sap://service/{service_id}/metadata")
    def sap_service_metadata(service_id: str) -> str:
        """Entities, properties, keys and write capabilities of one service."""
        try:
            return json.dumps(service_metadata(gateway, service_id), indent=2)
        except ServiceNotFoundError as e:
            return json.dumps(e.to_dict())

    @mcp.resource("sap://system/instructions", mime_type="text/markdown")
    def system_instructions() -> str:
        """How to use the three-step discovery tools."""
        return SYSTEM_INSTRUCTIONS

    @mcp.resource("sap://auth/status")
    def authentication_status() -> str:
        """Whether calls run as the current user or with technical credentials."""
        return json.dumps(auth_status(gateway, settings), indent=2)
