"""Typed data models for the OData service catalog."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from ..exceptions import ConfigurationError

ODATA_VERSIONS = ("v2", "v4")


@dataclass(frozen=True)
class Property:
    """A structural property of an entity type."""

    name: str
    type: str
    nullable: bool = True
    max_length: int | None = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {"name": self.name, "type": self.type, "nullable": self.nullable}
        if self.max_length is not None:
            d["maxLength"] = self.max_length
        return d

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Property:
        max_length = data.get("maxLength")
        return cls(
            name=data["name"],
            type=data.get("type", "Edm.String"),
            nullable=bool(data.get("nullable", True)),
            max_length=parse_max_length(max_length),
        )


@dataclass(frozen=True)
class NavigationProperty:
    """A navigation link from one entity type to another."""

    name: str
    type: str
    multiplicity: str = "*"  # "1", "0..1" or "*"

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "type": self.type, "multiplicity": self.multiplicity}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> NavigationProperty:
        return cls(
            name=data["name"],
            type=data.get("type", ""),
            multiplicity=data.get("multiplicity", "*"),
        )


@dataclass(frozen=True)
class EntityType:
    """A keyed record shape exposed by a service.

    Key names must all refer to declared properties; reading is always allowed,
    the three write capabilities are independent.
    """

    name: str
    namespace: str = ""
    properties: tuple[Property, ...] = ()
    keys: tuple[str, ...] = ()
    creatable: bool = False
    updatable: bool = False
    deletable: bool = False
    entity_set: str | None = None
    navigation_properties: tuple[NavigationProperty, ...] = ()

    def __post_init__(self) -> None:
        declared = {p.name for p in self.properties}
        undeclared = [k for k in self.keys if k not in declared]
        if undeclared:
            raise ConfigurationError(
                f"Entity '{self.name}' has key(s) without a matching property: "
                f"{', '.join(undeclared)}",
                entity_name=self.name,
                undeclared_keys=undeclared,
            )

    @property
    def entity_set_name(self) -> str:
        """Name of the entity set used in request URLs."""
        return self.entity_set or self.name

    @property
    def property_names(self) -> list[str]:
        return [p.name for p in self.properties]

    def get_property(self, name: str) -> Property | None:
        for prop in self.properties:
            if prop.name == name:
                return prop
        return None

    def is_key(self, name: str) -> bool:
        return name in self.keys

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "namespace": self.namespace,
            "entitySet": self.entity_set,
            "keys": list(self.keys),
            "properties": [p.to_dict() for p in self.properties],
            "navigationProperties": [n.to_dict() for n in self.navigation_properties],
            "creatable": self.creatable,
            "updatable": self.updatable,
            "deletable": self.deletable,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> EntityType:
        return cls(
            name=data["name"],
            namespace=data.get("namespace", ""),
            properties=tuple(Property.from_dict(p) for p in data.get("properties", [])),
            keys=tuple(data.get("keys", [])),
            creatable=bool(data.get("creatable", False)),
            updatable=bool(data.get("updatable", False)),
            deletable=bool(data.get("deletable", False)),
            entity_set=data.get("entitySet"),
            navigation_properties=tuple(
                NavigationProperty.from_dict(n) for n in data.get("navigationProperties", [])
            ),
        )


@dataclass(frozen=True)
class ServiceMetadata:
    """Resolved schema of one service."""

    entity_types: tuple[EntityType, ...] = ()
    namespace: str = ""
    version: str = "v2"

    def get_entity_type(self, name: str) -> EntityType | None:
        for entity in self.entity_types:
            if entity.name == name:
                return entity
        return None

    def to_dict(self) -> dict[str, Any]:
        return {
            "namespace": self.namespace,
            "version": self.version,
            "entityTypes": [e.to_dict() for e in self.entity_types],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ServiceMetadata:
        return cls(
            entity_types=tuple(EntityType.from_dict(e) for e in data.get("entityTypes", [])),
            namespace=data.get("namespace", ""),
            version=data.get("version", "v2"),
        )


@dataclass
class Service:
    """A remote OData service in the catalog.

    ``id`` is the only lookup key; ``title`` is for display. ``metadata`` stays
    ``None`` when it could not be resolved, which means the service has no entities.
    """

    id: str
    title: str
    description: str = ""
    odata_version: str = "v2"
    url: str = ""
    metadata_url: str = ""
    version: str = "0001"
    metadata: ServiceMetadata | None = field(default=None, repr=False)

    def __post_init__(self) -> None:
        if self.odata_version not in ODATA_VERSIONS:
            raise ConfigurationError(
                f"Service '{self.id}' has unsupported OData version {self.odata_version!r}",
                service_id=self.id,
            )

    @property
    def entity_types(self) -> tuple[EntityType, ...]:
        if self.metadata is None:
            return ()
        return self.metadata.entity_types

    @property
    def entity_names(self) -> list[str]:
        return [e.name for e in self.entity_types]

    def get_entity_type(self, name: str) -> EntityType | None:
        if self.metadata is None:
            return None
        return self.metadata.get_entity_type(name)

    def summary(self) -> dict[str, Any]:
        return {
            "serviceId": self.id,
            "serviceName": self.title,
            "description": self.description,
            "odataVersion": self.odata_version,
            "url": self.url,
        }

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "odataVersion": self.odata_version,
            "url": self.url,
            "metadataUrl": self.metadata_url,
            "version": self.version,
            "metadata": self.metadata.to_dict() if self.metadata is not None else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Service:
        url = data.get("url", "")
        metadata = data.get("metadata")
        return cls(
            id=data["id"],
            title=data.get("title") or data["id"],
            description=data.get("description") or f"OData service {data['id']}",
            odata_version=data.get("odataVersion", "v2"),
            url=url,
            metadata_url=data.get("metadataUrl") or f"{url}$metadata",
            version=data.get("version", "0001"),
            metadata=ServiceMetadata.from_dict(metadata) if metadata else None,
        )


def parse_max_length(value: Any) -> int | None:
    """MaxLength may be a number, a numeric string or "max"."""
    if value is None:
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None
