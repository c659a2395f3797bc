"""Exception hierarchy for the discovery and dispatch engine.

Caller-correctable failures (unknown service or entity, missing keys, disallowed
operations) are typed so the MCP surface can return them as structured results
instead of protocol errors. Transport failures keep their upstream status code
and message.
"""

from __future__ import annotations

from typing import Any


class ODataMcpError(Exception):
    """Base exception for all SAP OData MCP errors."""

    error_code: str = ""

    def __init__(self, message: str, error_code: str | None = None, **kwargs: Any):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.__dict__.update(kwargs)

    def to_dict(self) -> dict[str, Any]:
        """Convert error to a serializable dict."""
        result: dict[str, Any] = {
            "error": True,
            "error_type": self.__class__.__name__,
            "error_code": self.error_code,
            "message": self.message,
        }
        result.update(
            {k: v for k, v in self.__dict__.items() if k not in ["message", "error_code"]}
        )
        return result


class InvalidOperationError(ODataMcpError):
    """Raised when the requested operation is not one of the supported verbs."""

    error_code = "INVALID_OPERATION"

    def __init__(self, operation: str, valid_operations: list[str], **kwargs: Any):
        super().__init__(
            f"Invalid operation: {operation!r}. Valid: {', '.join(valid_operations)}",
            "INVALID_OPERATION",
            operation=operation,
            valid_operations=valid_operations,
            **kwargs,
        )


class ResourceNotFoundError(ODataMcpError):
    """Raised when a requested catalog resource does not exist."""

    error_code = "NOT_FOUND"

    def __init__(self, message: str, resource_type: str | None = None, **kwargs: Any):
        super().__init__(message, "NOT_FOUND", resource_type=resource_type, **kwargs)


class ServiceNotFoundError(ResourceNotFoundError):
    """Raised when no service has the given identifier."""

    def __init__(self, service_id: str, **kwargs: Any):
        super().__init__(
            f"Service not found: {service_id}. Use the service 'id', not its title.",
            resource_type="service",
            service_id=service_id,
            **kwargs,
        )
        self.error_code = "SERVICE_NOT_FOUND"


class EntityNotFoundError(ResourceNotFoundError):
    """Raised when a service exists but has no entity with the given name."""

    def __init__(
        self, service_id: str, entity_name: str, available_entities: list[str], **kwargs: Any
    ):
        available = ", ".join(available_entities) or "none"
        super().__init__(
            f"Entity '{entity_name}' not found in service '{service_id}'. "
            f"Available entities: {available}",
            resource_type="entity",
            service_id=service_id,
            entity_name=entity_name,
            available_entities=available_entities,
            **kwargs,
        )
        self.error_code = "ENTITY_NOT_FOUND"


class MissingKeyError(ODataMcpError):
    """Raised when one or more key properties are absent or null."""

    error_code = "MISSING_KEY"

    def __init__(
        self,
        entity_name: str,
        missing_keys: list[str],
        key_properties: list[str],
        **kwargs: Any,
    ):
        if missing_keys:
            message = f"Missing required key properties: {', '.join(missing_keys)}"
        else:
            message = f"Entity '{entity_name}' declares no key properties"
        super().__init__(
            message,
            "MISSING_KEY",
            entity_name=entity_name,
            missing_keys=missing_keys,
            key_properties=key_properties,
            **kwargs,
        )


class CapabilityDeniedError(ODataMcpError):
    """Raised when an entity does not allow the requested write operation."""

    error_code = "CAPABILITY_DENIED"

    def __init__(self, entity_name: str, operation: str, capability: str, **kwargs: Any):
        super().__init__(
            f"Entity '{entity_name}' does not support {operation} operations "
            f"(requires {capability}=true)",
            "CAPABILITY_DENIED",
            entity_name=entity_name,
            operation=operation,
            required_capability=capability,
            **kwargs,
        )


class TransportError(ODataMcpError):
    """Raised when the backend request fails or returns an error status."""

    error_code = "TRANSPORT_ERROR"

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        upstream_message: str | None = None,
        **kwargs: Any,
    ):
        super().__init__(
            message,
            "TRANSPORT_ERROR",
            status_code=status_code,
            upstream_message=upstream_message,
            **kwargs,
        )


class ConfigurationError(ODataMcpError):
    """Raised when settings or the catalog are malformed at load time."""

    error_code = "CONFIGURATION_ERROR"

    def __init__(self, message: str, **kwargs: Any):
        super().__init__(message, "CONFIGURATION_ERROR", **kwargs)


__all__ = [
    "CapabilityDeniedError",
    "ConfigurationError",
    "EntityNotFoundError",
    "InvalidOperationError",
    "MissingKeyError",
    "ODataMcpError",
    "ResourceNotFoundError",
    "ServiceNotFoundError",
    "TransportError",
]
