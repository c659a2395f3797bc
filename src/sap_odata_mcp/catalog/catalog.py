"""In-memory service catalog — the read-only view every stage works against."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..exceptions import ConfigurationError, EntityNotFoundError, ServiceNotFoundError
from ..schema.categories import Categorizer, sorted_categories

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

    from ..schema import Category, EntityType, Service


class Catalog:
    """Services indexed by identifier, with their derived categories.

    The catalog is built once per load. Categories are computed at construction;
    building a new catalog is the only way to refresh them.
    """

    def __init__(self, services: Iterable[Service]) -> None:
        self._services: dict[str, Service] = {}
        for service in services:
            if service.id in self._services:
                raise ConfigurationError(
                    f"Duplicate service id in catalog: {service.id}", service_id=service.id
                )
            self._services[service.id] = service
        self.categorizer = Categorizer(self._services.values())

    def __len__(self) -> int:
        return len(self._services)

    def __iter__(self) -> Iterator[Service]:
        return iter(self._services.values())

    def __contains__(self, service_id: object) -> bool:
        return service_id in self._services

    def get_service(self, service_id: str) -> Service:
        """Look up a service by identifier, or raise ServiceNotFoundError."""
        service = self._services.get(service_id)
        if service is None:
            raise ServiceNotFoundError(service_id)
        return service

    def get_entity(self, service_id: str, entity_name: str) -> tuple[Service, EntityType]:
        """Look up a service and one of its entities, or raise a not-found error."""
        service = self.get_service(service_id)
        entity = service.get_entity_type(entity_name)
        if entity is None:
            raise EntityNotFoundError(service_id, entity_name, service.entity_names)
        return service, entity

    def categories_for(self, service_id: str) -> frozenset[Category]:
        return self.categorizer.categories_for(service_id)

    def listing(self) -> dict[str, Any]:
        """Catalog overview for administrative inspection."""
        return {
            "totalServices": len(self._services),
            "categories": self.categorizer.all_categories(),
            "services": [
                {
                    "id": service.id,
                    "title": service.title,
                    "description": service.description,
                    "entityCount": len(service.entity_types),
                    "categories": sorted_categories(self.categories_for(service.id)),
                }
                for service in self._services.values()
            ],
        }
