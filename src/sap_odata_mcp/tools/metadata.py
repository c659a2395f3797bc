"""Stage 2 — full schema for one chosen service/entity pair."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from ..catalog import Catalog
    from ..schema import EntityType, Service


@dataclass(frozen=True)
class EntityDescription:
    service: Service
    entity: EntityType

    @property
    def keys(self) -> list[str]:
        return list(self.entity.keys)

    def capabilities(self) -> dict[str, bool]:
        return {
            "readable": True,
            "creatable": self.entity.creatable,
            "updatable": self.entity.updatable,
            "deletable": self.entity.deletable,
        }

    def to_dict(self) -> dict[str, Any]:
        entity = self.entity
        return {
            "service": self.service.summary(),
            "entity": {
                "name": entity.name,
                "entitySet": entity.entity_set_name,
                "namespace": entity.namespace,
                "keyProperties": list(entity.keys),
                "propertyCount": len(entity.properties),
            },
            "capabilities": self.capabilities(),
            "properties": [
                {
                    "name": prop.name,
                    "type": prop.type,
                    "nullable": prop.nullable,
                    "maxLength": prop.max_length,
                    "isKey": entity.is_key(prop.name),
                }
                for prop in entity.properties
            ],
            "navigationProperties": [n.to_dict() for n in entity.navigation_properties],
        }


class MetadataResolver:
    """Resolves a (service, entity) pair to its complete schema."""

    def __init__(self, catalog: Catalog) -> None:
        self.catalog = catalog

    def describe(self, service_id: str, entity_name: str) -> EntityDescription:
        """Return the entity schema.

        Raises:
            ServiceNotFoundError: No service has ``service_id``.
            EntityNotFoundError: The service has no entity named ``entity_name``;
                the error lists the entities it does have.
        """
        service, entity = self.catalog.get_entity(service_id, entity_name)
        return EntityDescription(service=service, entity=entity)
