"""Discovery stages, operation dispatch and the MCP tool surface."""

from .discovery import DiscoveryMatch, DiscoveryResult, ServiceDiscovery
from .dispatcher import Operation, OperationDispatcher, OperationRequest, OperationResult
from .keys import QueryOptions, build_key_expression, clean_payload, format_key_value
from .metadata import EntityDescription, MetadataResolver
from .naming import ToolNameAllocator
from .registry import ToolRegistry, ToolSpec, build_crud_tool_specs, build_tool_registry
from .router import register_crud_router_tools, register_router_tools

__all__ = [
    "DiscoveryMatch",
    "DiscoveryResult",
    "EntityDescription",
    "MetadataResolver",
    "Operation",
    "OperationDispatcher",
    "OperationRequest",
    "OperationResult",
    "QueryOptions",
    "ServiceDiscovery",
    "ToolNameAllocator",
    "ToolRegistry",
    "ToolSpec",
    "build_crud_tool_specs",
    "build_key_expression",
    "build_tool_registry",
    "clean_payload",
    "format_key_value",
    "register_crud_router_tools",
    "register_router_tools",
]
