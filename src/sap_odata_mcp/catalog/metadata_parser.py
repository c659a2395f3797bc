"""CSDL ``$metadata`` parsing with lxml.

Elements are matched by local name so the same code reads V2 (EDMX 1.0) and
V4 (EDMX 4.0) documents. Write capabilities come from the SAP annotations on
the entity set and default to true, as the SAP gateway does.
"""

from __future__ import annotations

from lxml import etree

from ..exceptions import ConfigurationError
from ..logging_config import create_logger
from ..schema import EntityType, NavigationProperty, Property, ServiceMetadata
from ..schema.models import parse_max_length

logger = create_logger(__name__)

SAP_NS = "http://www.sap.com/Protocols/SAPData"

_PARSER = etree.XMLParser(resolve_entities=False, no_network=True, remove_comments=True)


def _children(element: etree._Element, local_name: str) -> list[etree._Element]:
    return element.xpath(f"./*[local-name()='{local_name}']")


def _sap_flag(element: etree._Element | None, name: str) -> bool:
    if element is None:
        return False
    return element.get(f"{{{SAP_NS}}}{name}", "true").lower() != "false"


def _simple_name(qualified: str) -> str:
    return qualified.rsplit(".", 1)[-1]


def parse_metadata(xml: str | bytes, odata_version: str = "v2") -> ServiceMetadata:
    """Parse a ``$metadata`` document into a ServiceMetadata.

    Raises:
        ConfigurationError: The document is not well-formed XML, has no schema,
            or declares a key without a matching property.
    """
    data = xml.encode("utf-8") if isinstance(xml, str) else xml
    try:
        root = etree.fromstring(data, parser=_PARSER)
    except etree.XMLSyntaxError as e:
        raise ConfigurationError(f"Invalid $metadata document: {e}") from e

    schemas = root.xpath("//*[local-name()='Schema']")
    if not schemas:
        raise ConfigurationError("No Schema element found in $metadata document")

    # EntitySets may live in a different Schema than their types
    entity_sets: dict[str, etree._Element] = {}
    associations: dict[str, etree._Element] = {}
    for schema in schemas:
        for container in _children(schema, "EntityContainer"):
            for es in _children(container, "EntitySet"):
                type_name = es.get("EntityType")
                if es.get("Name") and type_name:
                    entity_sets.setdefault(_simple_name(type_name), es)
        for assoc in _children(schema, "Association"):
            if assoc.get("Name"):
                associations[assoc.get("Name")] = assoc

    entity_types: list[EntityType] = []
    for schema in schemas:
        namespace = schema.get("Namespace", "")
        for et in _children(schema, "EntityType"):
            parsed = _parse_entity_type(et, namespace, entity_sets, associations)
            if parsed is not None:
                entity_types.append(parsed)

    logger.debug(f"Parsed {len(entity_types)} entity types from $metadata")
    return ServiceMetadata(
        entity_types=tuple(entity_types),
        namespace=schemas[0].get("Namespace", ""),
        version=odata_version,
    )


def _parse_entity_type(
    et: etree._Element,
    namespace: str,
    entity_sets: dict[str, etree._Element],
    associations: dict[str, etree._Element],
) -> EntityType | None:
    name = et.get("Name")
    if not name:
        return None

    keys: list[str] = []
    for key in _children(et, "Key"):
        keys.extend(ref.get("Name") for ref in _children(key, "PropertyRef") if ref.get("Name"))

    properties = [
        Property(
            name=prop.get("Name"),
            type=prop.get("Type", "Edm.String"),
            nullable=prop.get("Nullable", "true").lower() != "false",
            max_length=parse_max_length(prop.get("MaxLength")),
        )
        for prop in _children(et, "Property")
        if prop.get("Name")
    ]

    navigation = [
        _parse_navigation(nav, associations)
        for nav in _children(et, "NavigationProperty")
        if nav.get("Name")
    ]

    # Without an entity set the type is not addressable, so nothing can be written
    entity_set = entity_sets.get(name)
    return EntityType(
        name=name,
        namespace=namespace,
        properties=tuple(properties),
        keys=tuple(keys),
        creatable=_sap_flag(entity_set, "creatable"),
        updatable=_sap_flag(entity_set, "updatable"),
        deletable=_sap_flag(entity_set, "deletable"),
        entity_set=entity_set.get("Name") if entity_set is not None else None,
        navigation_properties=tuple(navigation),
    )


def _parse_navigation(
    nav: etree._Element, associations: dict[str, etree._Element]
) -> NavigationProperty:
    name = nav.get("Name")

    # V4: the target is declared inline
    nav_type = nav.get("Type")
    if nav_type:
        if nav_type.startswith("Collection(") and nav_type.endswith(")"):
            return NavigationProperty(name, nav_type[len("Collection(") : -1], "*")
        multiplicity = "1" if nav.get("Nullable", "true").lower() == "false" else "0..1"
        return NavigationProperty(name, nav_type, multiplicity)

    # V2: resolve the target role through the association
    relationship = _simple_name(nav.get("Relationship", ""))
    to_role = nav.get("ToRole")
    assoc = associations.get(relationship)
    if assoc is not None:
        for end in _children(assoc, "End"):
            if end.get("Role") == to_role:
                return NavigationProperty(name, end.get("Type", ""), end.get("Multiplicity", "*"))
    return NavigationProperty(name, to_role or "", "*")
