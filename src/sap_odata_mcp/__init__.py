"""SAP OData MCP — progressive discovery of OData services over MCP."""

from .catalog import Catalog
from .config import Settings
from .gateway import ODataGateway
from .schema import Category, EntityType, NavigationProperty, Property, Service, ServiceMetadata

__version__ = "0.1.0"

__all__ = [
    "Catalog",
    "Category",
    "EntityType",
    "NavigationProperty",
    "ODataGateway",
    "Property",
    "Service",
    "ServiceMetadata",
    "Settings",
    "__version__",
]
