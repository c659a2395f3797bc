"""Stage 3 — validate and dispatch a CRUD operation on one entity.

Every request is fully validated (operation, service, entity, capability, keys,
payload) before the transport is touched, so a validation failure never leaves
partial side effects. The only suspension point is the transport call.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from ..exceptions import CapabilityDeniedError, InvalidOperationError, TransportError
from ..logging_config import create_logger
from .keys import QueryOptions, build_key_expression, clean_payload

if TYPE_CHECKING:
    from ..catalog import Catalog
    from ..schema import EntityType, Service
    from ..transport.base import Transport, TransportResponse

logger = create_logger(__name__)


class Operation(str, Enum):
    READ = "read"
    READ_SINGLE = "read-single"
    CREATE = "create"
    UPDATE = "update"
    DELETE = "delete"

    @classmethod
    def parse(cls, value: str | Operation | None) -> Operation:
        if isinstance(value, Operation):
            return value
        try:
            return cls((value or "").strip().lower())
        except ValueError:
            raise InvalidOperationError(str(value), [op.value for op in cls]) from None

    @property
    def needs_key(self) -> bool:
        return self in (Operation.READ_SINGLE, Operation.UPDATE, Operation.DELETE)


# Capability flag required by each write operation
_REQUIRED_CAPABILITY = {
    Operation.CREATE: "creatable",
    Operation.UPDATE: "updatable",
    Operation.DELETE: "deletable",
}


@dataclass(frozen=True)
class OperationRequest:
    """Immutable description of one validated backend call."""

    operation: Operation
    service: Service
    entity: EntityType
    key_expression: str | None = None
    query_options: QueryOptions = field(default_factory=QueryOptions)
    payload: dict[str, Any] = field(default_factory=dict)

    @property
    def description(self) -> str:
        name = self.entity.name
        if self.operation is Operation.READ:
            text = f"Reading {name} records"
            if self.query_options.filter:
                text += f" with filter: {self.query_options.filter}"
            if self.query_options.top and self.query_options.top > 0:
                text += f" (top {self.query_options.top})"
            return text
        if self.operation is Operation.READ_SINGLE:
            return f"Reading single {name} with key: {self.key_expression}"
        if self.operation is Operation.CREATE:
            return f"Creating new {name}"
        if self.operation is Operation.UPDATE:
            return f"Updating {name} with key: {self.key_expression}"
        return f"Deleting {name} with key: {self.key_expression}"


@dataclass
class OperationResult:
    operation: Operation
    description: str
    data: Any
    key_expression: str | None = None
    status_code: int | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "success": True,
            "operation": self.operation.value,
            "description": self.description,
            "result": self.data,
        }
        if self.key_expression is not None:
            d["key"] = self.key_expression
        if self.status_code is not None:
            d["statusCode"] = self.status_code
        return d


class OperationDispatcher:
    """Validates operation requests against entity capabilities and dispatches them.

    Holds the current caller's token. Create one dispatcher per caller identity;
    never share an instance between concurrently active users.
    """

    def __init__(
        self, catalog: Catalog, transport: Transport, user_token: str | None = None
    ) -> None:
        self.catalog = catalog
        self.transport = transport
        self._user_token = user_token

    @property
    def has_user_token(self) -> bool:
        return self._user_token is not None

    def set_user_token(self, token: str | None) -> None:
        self._user_token = token
        logger.debug(f"User token {'set' if token else 'cleared'} for dispatcher")

    def build_request(
        self,
        service_id: str,
        entity_name: str,
        operation: str | Operation,
        parameters: dict[str, Any] | None = None,
        query_options: QueryOptions | dict[str, Any] | None = None,
    ) -> OperationRequest:
        """Validate everything and return the request, without any I/O."""
        op = Operation.parse(operation)
        service, entity = self.catalog.get_entity(service_id, entity_name)

        capability = _REQUIRED_CAPABILITY.get(op)
        if capability is not None and not getattr(entity, capability):
            raise CapabilityDeniedError(entity.name, op.value, capability)

        params = dict(parameters or {})
        key_expression = build_key_expression(entity, params) if op.needs_key else None

        payload: dict[str, Any] = {}
        if op is Operation.CREATE:
            payload = clean_payload(entity, params, strip_keys=True)
        elif op is Operation.UPDATE:
            update_data = {k: v for k, v in params.items() if not entity.is_key(k)}
            payload = clean_payload(entity, update_data, strip_keys=False)

        if isinstance(query_options, QueryOptions):
            options = query_options
        else:
            options = QueryOptions.from_dict(query_options)

        return OperationRequest(
            operation=op,
            service=service,
            entity=entity,
            key_expression=key_expression,
            query_options=options if op is Operation.READ else QueryOptions(),
            payload=payload,
        )

    async def execute(
        self,
        service_id: str,
        entity_name: str,
        operation: str | Operation,
        parameters: dict[str, Any] | None = None,
        query_options: QueryOptions | dict[str, Any] | None = None,
        *,
        use_user_token: bool = True,
    ) -> OperationResult:
        request = self.build_request(
            service_id, entity_name, operation, parameters, query_options
        )
        token = self._user_token if use_user_token else None
        logger.info(
            f"{request.description} (service={request.service.id}, "
            f"operation={request.operation.value})"
        )

        try:
            response = await self._dispatch(request, token)
        except TransportError as e:
            logger.error(
                f"{request.operation.value} on {request.service.id}/{request.entity.name} "
                f"failed: {e.message}"
            )
            raise TransportError(
                f"{request.description} failed: {e.message}",
                status_code=e.status_code,
                upstream_message=e.upstream_message,
                service_id=request.service.id,
                entity_name=request.entity.name,
                operation=request.operation.value,
                key=request.key_expression,
            ) from e

        if request.operation is Operation.DELETE:
            data: Any = {
                "message": f"Entity deleted successfully with key: {request.key_expression}",
                "success": True,
                "key": request.key_expression,
            }
        else:
            data = response.data

        return OperationResult(
            operation=request.operation,
            description=request.description,
            data=data,
            key_expression=request.key_expression,
            status_code=response.status_code,
        )

    async def _dispatch(self, request: OperationRequest, token: str | None) -> TransportResponse:
        base_path = request.service.url
        entity_set = request.entity.entity_set_name
        op = request.operation

        if op is Operation.READ:
            return await self.transport.fetch_entity_set(
                base_path, entity_set, request.query_options.to_params(), token=token
            )
        # Key expression is always set for keyed operations by build_request
        key = request.key_expression or ""
        if op is Operation.READ_SINGLE:
            return await self.transport.fetch_entity(base_path, entity_set, key, token=token)
        if op is Operation.CREATE:
            return await self.transport.create_entity(
                base_path, entity_set, request.payload, token=token
            )
        if op is Operation.UPDATE:
            return await self.transport.update_entity(
                base_path, entity_set, key, request.payload, token=token
            )
        return await self.transport.delete_entity(base_path, entity_set, key, token=token)
