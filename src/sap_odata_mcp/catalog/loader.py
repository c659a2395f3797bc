"""Catalog loading — JSON catalog files and live discovery from an SAP gateway."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any
from urllib.parse import urlsplit

from ..exceptions import ConfigurationError, TransportError
from ..logging_config import create_logger
from ..schema import Service
from .metadata_parser import parse_metadata

if TYPE_CHECKING:
    from ..config import Settings
    from ..transport.http import HttpTransport

logger = create_logger(__name__)

ODATA_V2_ROOT = "/sap/opu/odata/"


def load_catalog_file(path: str | Path) -> list[Service]:
    """Load services from a JSON catalog file.

    The file holds either a list of service records or ``{"services": [...]}``,
    in the same camelCase shape ``Service.to_dict()`` produces.
    """
    file_path = Path(path)
    try:
        raw = json.loads(file_path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigurationError(f"Catalog file not found: {file_path}") from e
    except json.JSONDecodeError as e:
        raise ConfigurationError(f"Catalog file {file_path} is not valid JSON: {e}") from e

    records = raw.get("services") if isinstance(raw, dict) else raw
    if not isinstance(records, list):
        raise ConfigurationError(f"Catalog file {file_path} has no service list")

    try:
        services = [Service.from_dict(record) for record in records]
    except (KeyError, TypeError) as e:
        raise ConfigurationError(f"Malformed service record in {file_path}: {e}") from e
    logger.info(f"Loaded {len(services)} services from {file_path}")
    return services


def _service_base_path(record: dict[str, Any]) -> str:
    service_url = record.get("ServiceUrl", "")
    _, found, relative = service_url.partition(ODATA_V2_ROOT)
    if found:
        base = f"{ODATA_V2_ROOT}{relative.strip('/')}"
    else:
        base = "/" + urlsplit(service_url).path.strip("/")
    # Task processing services above version 1 are only reachable via the ;mo matrix
    technical_name = record.get("TechnicalServiceName", "")
    version = record.get("TechnicalServiceVersion") or "1"
    if "TASKPROCESSING" in technical_name and version.isdigit() and int(version) > 1:
        base += ";mo"
    return f"{base}/"


def parse_v2_service_catalog(data: Any) -> list[Service]:
    """Turn a V2 ``CATALOGSERVICE`` ``ServiceCollection`` response into services."""
    envelope = data.get("d") if isinstance(data, dict) else None
    results = envelope.get("results") if isinstance(envelope, dict) else None
    if not isinstance(results, list):
        return []

    services: list[Service] = []
    for record in results:
        service_id = record.get("ID")
        if not service_id or not record.get("ServiceUrl"):
            logger.debug(f"Skipping catalog entry without ID or ServiceUrl: {record}")
            continue
        base = _service_base_path(record)
        services.append(
            Service(
                id=service_id,
                title=record.get("Title") or service_id,
                description=record.get("Description") or f"OData service {service_id}",
                odata_version="v2",
                url=base,
                metadata_url=f"{base}$metadata",
                version=record.get("TechnicalServiceVersion") or "0001",
            )
        )
    return services


def filter_services(services: list[Service], settings: Settings) -> list[Service]:
    """Keep the services the configured patterns allow."""
    if settings.allow_all_services:
        logger.info("All services allowed - no filtering applied")
        return list(services)
    kept = [s for s in services if settings.is_service_allowed(s.id)]
    for service in kept:
        logger.debug(f"Service included: {service.id}")
    return kept


async def discover_services(transport: HttpTransport, settings: Settings) -> list[Service]:
    """Discover services from the gateway catalog and resolve their metadata.

    A service whose metadata cannot be fetched or parsed is kept with
    ``metadata=None`` (zero entities) so it still shows up in discovery.
    """
    logger.info(f"OData service discovery configuration: {settings.describe()}")
    catalog_data = await transport.fetch_service_catalog()
    services = parse_v2_service_catalog(catalog_data)

    filtered = filter_services(services, settings)
    logger.info(
        f"Discovered {len(services)} total services, {len(filtered)} match the filter criteria"
    )

    limited = filtered[: settings.max_services]
    if len(filtered) > settings.max_services:
        logger.warning(
            f"Service discovery limited to {settings.max_services} services "
            f"(configured maximum). {len(filtered) - settings.max_services} services "
            "were excluded."
        )

    for service in limited:
        logger.debug(f"Discovering metadata for service: {service.id} at {service.metadata_url}")
        try:
            xml = await transport.fetch_metadata(service.metadata_url)
            service.metadata = parse_metadata(xml, service.odata_version)
        except (TransportError, ConfigurationError) as e:
            logger.warning(f"Failed to get metadata for service {service.id}: {e.message}")

    logger.info(f"Successfully initialized {len(limited)} OData services")
    return limited
