"""Static CRUD tool registry — one routed tool per entity and permitted operation."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from ..exceptions import ConfigurationError
from ..logging_config import create_logger
from .dispatcher import Operation

if TYPE_CHECKING:
    from collections.abc import Callable, Iterator

    from ..catalog import Catalog
    from ..schema import EntityType, Property, Service
    from .dispatcher import OperationDispatcher
    from .naming import ToolNameAllocator

logger = create_logger(__name__)

# Query options accepted by every entity-set read tool
READ_QUERY_PARAMETERS: dict[str, Any] = {
    "filter": {"type": "string", "description": "OData $filter expression"},
    "select": {"type": "string", "description": "Comma-separated properties to return"},
    "expand": {"type": "string", "description": "Navigation properties to expand"},
    "orderby": {"type": "string", "description": "OData $orderby expression"},
    "top": {"type": "integer", "description": "Maximum number of records"},
    "skip": {"type": "integer", "description": "Number of records to skip"},
}

USER_TOKEN_PARAMETER: dict[str, Any] = {
    "type": "boolean",
    "description": "Call the backend as the current user (default true)",
}


@dataclass
class ToolSpec:
    """Declarative description of a single routed CRUD tool."""

    name: str
    description: str
    parameters: dict[str, Any]
    handler: Callable[..., Any]
    category: str = "general"  # the service id
    operation: str = ""
    entity_name: str = ""


class ToolRegistry:
    """Tool specs by name, grouped into categories for the router meta-tools."""

    def __init__(self) -> None:
        self._tools: dict[str, ToolSpec] = {}

    def __len__(self) -> int:
        return len(self._tools)

    def __iter__(self) -> Iterator[ToolSpec]:
        return iter(self._tools.values())

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def register(self, spec: ToolSpec) -> None:
        if spec.name in self._tools:
            raise ConfigurationError(f"Duplicate tool name: {spec.name}", tool_name=spec.name)
        self._tools[spec.name] = spec

    def get(self, name: str) -> ToolSpec | None:
        return self._tools.get(name)

    def get_categories(self) -> dict[str, list[ToolSpec]]:
        """Return tools grouped by category."""
        categories: dict[str, list[ToolSpec]] = {}
        for tool in self._tools.values():
            categories.setdefault(tool.category, []).append(tool)
        return categories

    def search(self, query: str) -> list[ToolSpec]:
        query_lower = query.lower()
        return [
            t
            for t in self._tools.values()
            if query_lower in t.name.lower() or query_lower in t.description.lower()
        ]


def json_schema_type(edm_type: str) -> str:
    """Map an Edm type tag to a JSON-schema primitive type."""
    t = (edm_type or "").lower().removeprefix("edm.")
    if t.startswith("int") or t in ("byte", "sbyte"):
        return "integer"
    if t in ("decimal", "double", "single", "float"):
        return "number"
    if t == "boolean":
        return "boolean"
    return "string"


def _property_schema(prop: Property) -> dict[str, Any]:
    schema: dict[str, Any] = {"type": json_schema_type(prop.type), "description": prop.type}
    if prop.max_length is not None and schema["type"] == "string":
        schema["maxLength"] = prop.max_length
    return schema


def parameter_schema(entity: EntityType, operation: Operation) -> dict[str, Any]:
    """JSON-schema-style parameter description for one operation on an entity."""
    properties: dict[str, Any] = {}
    required: list[str] = []

    if operation is Operation.READ:
        properties.update(READ_QUERY_PARAMETERS)
    else:
        if operation.needs_key:
            for key in entity.keys:
                prop = entity.get_property(key)
                if prop is not None:
                    properties[key] = _property_schema(prop)
                required.append(key)
        if operation in (Operation.CREATE, Operation.UPDATE):
            for prop in entity.properties:
                if entity.is_key(prop.name):
                    continue
                properties[prop.name] = _property_schema(prop)
                if operation is Operation.CREATE and not prop.nullable:
                    required.append(prop.name)

    properties["useUserToken"] = USER_TOKEN_PARAMETER
    return {"type": "object", "properties": properties, "required": required}


def permitted_operations(entity: EntityType) -> list[Operation]:
    """Operations an entity allows, in a fixed order."""
    ops = [Operation.READ]
    keyed = bool(entity.keys)
    if keyed:
        ops.append(Operation.READ_SINGLE)
    if entity.creatable:
        ops.append(Operation.CREATE)
    if entity.updatable and keyed:
        ops.append(Operation.UPDATE)
    if entity.deletable and keyed:
        ops.append(Operation.DELETE)
    return ops


_DESCRIPTIONS = {
    Operation.READ: "Read {entity} records from {service}, with optional OData query options",
    Operation.READ_SINGLE: "Read a single {entity} from {service} by key",
    Operation.CREATE: "Create a new {entity} in {service}",
    Operation.UPDATE: "Update an existing {entity} in {service} by key",
    Operation.DELETE: "Delete a {entity} from {service} by key",
}


def _make_handler(
    dispatcher: OperationDispatcher, service_id: str, entity_name: str, operation: Operation
) -> Callable[..., Any]:
    async def handler(**arguments: Any) -> dict[str, Any]:
        use_user_token = bool(arguments.pop("useUserToken", True))
        if operation is Operation.READ:
            result = await dispatcher.execute(
                service_id,
                entity_name,
                operation,
                query_options=arguments,
                use_user_token=use_user_token,
            )
        else:
            result = await dispatcher.execute(
                service_id,
                entity_name,
                operation,
                parameters=arguments,
                use_user_token=use_user_token,
            )
        return result.to_dict()

    return handler


def build_crud_tool_specs(
    catalog: Catalog, dispatcher: OperationDispatcher, allocator: ToolNameAllocator
) -> list[ToolSpec]:
    """Enumerate one tool per (service, entity, permitted operation)."""
    specs: list[ToolSpec] = []
    for service in catalog:
        for entity in service.entity_types:
            for operation in permitted_operations(entity):
                specs.append(_build_spec(service, entity, operation, dispatcher, allocator))
    logger.info(f"Built {len(specs)} CRUD tools for {len(catalog)} services")
    return specs


def _build_spec(
    service: Service,
    entity: EntityType,
    operation: Operation,
    dispatcher: OperationDispatcher,
    allocator: ToolNameAllocator,
) -> ToolSpec:
    return ToolSpec(
        name=allocator.allocate(operation.value, service.id, entity.name),
        description=_DESCRIPTIONS[operation].format(
            entity=entity.name, service=f"{service.title} ({service.id})"
        ),
        parameters=parameter_schema(entity, operation),
        handler=_make_handler(dispatcher, service.id, entity.name, operation),
        category=service.id,
        operation=operation.value,
        entity_name=entity.name,
    )


def build_tool_registry(
    catalog: Catalog, dispatcher: OperationDispatcher, allocator: ToolNameAllocator
) -> ToolRegistry:
    registry = ToolRegistry()
    for spec in build_crud_tool_specs(catalog, dispatcher, allocator):
        registry.register(spec)
    return registry
