"""Service catalog: in-memory lookup plus file and live loading."""

from .catalog import Catalog
from .loader import discover_services, filter_services, load_catalog_file, parse_v2_service_catalog
from .metadata_parser import parse_metadata

__all__ = [
    "Catalog",
    "discover_services",
    "filter_services",
    "load_catalog_file",
    "parse_metadata",
    "parse_v2_service_catalog",
]
