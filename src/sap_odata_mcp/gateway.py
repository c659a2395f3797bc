"""Per-caller facade over the three discovery stages."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from .catalog import Catalog
from .logging_config import create_logger
from .tools.discovery import ServiceDiscovery
from .tools.dispatcher import OperationDispatcher
from .tools.metadata import MetadataResolver

if TYPE_CHECKING:
    from collections.abc import Iterable

    from .schema import Category, Service
    from .tools.discovery import DiscoveryResult
    from .tools.dispatcher import Operation, OperationResult
    from .tools.keys import QueryOptions
    from .tools.metadata import EntityDescription
    from .transport.base import Transport

logger = create_logger(__name__)


class ODataGateway:
    """Search, describe and execute against one catalog on behalf of one caller.

    The gateway owns the caller's token, so each identity needs its own
    instance. The catalog may be shared by building gateways from the same
    ``Catalog`` via ``from_catalog``.
    """

    def __init__(
        self,
        services: Iterable[Service] | Catalog,
        transport: Transport,
        user_token: str | None = None,
    ) -> None:
        self.catalog = services if isinstance(services, Catalog) else Catalog(services)
        self.transport = transport
        self.discovery = ServiceDiscovery(self.catalog)
        self.metadata = MetadataResolver(self.catalog)
        self.dispatcher = OperationDispatcher(self.catalog, transport, user_token)
        logger.debug(f"Gateway ready with {len(self.catalog)} services")

    @classmethod
    def from_catalog(
        cls, catalog: Catalog, transport: Transport, user_token: str | None = None
    ) -> ODataGateway:
        return cls(catalog, transport, user_token)

    @property
    def has_user_token(self) -> bool:
        return self.dispatcher.has_user_token

    def set_user_token(self, token: str | None) -> None:
        self.dispatcher.set_user_token(token)

    def discover(
        self,
        query: str | None = None,
        category: str | Category | None = None,
        limit: int | None = None,
    ) -> DiscoveryResult:
        return self.discovery.discover(query=query, category=category, limit=limit)

    def describe(self, service_id: str, entity_name: str) -> EntityDescription:
        return self.metadata.describe(service_id, entity_name)

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
        return await self.dispatcher.execute(
            service_id,
            entity_name,
            operation,
            parameters,
            query_options,
            use_user_token=use_user_token,
        )

    def catalog_listing(self) -> dict[str, Any]:
        return self.catalog.listing()
