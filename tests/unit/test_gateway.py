"""End-to-end search, describe and execute through the gateway facade."""

from __future__ import annotations

import pytest
from conftest import FakeTransport

from sap_odata_mcp import (
    Catalog,
    EntityType,
    ODataGateway,
    Property,
    Service,
    ServiceMetadata,
)
from sap_odata_mcp.exceptions import CapabilityDeniedError, ServiceNotFoundError


@pytest.fixture
def sales_gateway() -> tuple[ODataGateway, FakeTransport]:
    header = EntityType(
        name="SalesOrderHeader",
        properties=(
            Property("OrderId", "Edm.String", nullable=False),
            Property("CustomerName", "Edm.String"),
        ),
        keys=("OrderId",),
        creatable=False,
        updatable=True,
        deletable=True,
    )
    service = Service(
        id="SALES_SRV",
        title="Sales Orders",
        url="/sap/opu/odata/sap/SALES_SRV/",
        metadata=ServiceMetadata(entity_types=(header,)),
    )
    transport = FakeTransport(data={"d": {"OrderId": "1000", "CustomerName": "ACME"}})
    return ODataGateway([service], transport), transport


class TestSalesScenario:
    def test_discover(self, sales_gateway) -> None:
        gateway, _ = sales_gateway
        result = gateway.discover("sales")
        service_match = next(m for m in result.matches if m.type == "service")
        assert service_match.score == 0.9
        assert service_match.service_id == "SALES_SRV"
        assert "SalesOrderHeader" in service_match.entity_names
        assert result.returned_all_services is False

    def test_describe(self, sales_gateway) -> None:
        gateway, _ = sales_gateway
        d = gateway.describe("SALES_SRV", "SalesOrderHeader").to_dict()
        assert d["entity"]["keyProperties"] == ["OrderId"]
        assert d["capabilities"]["creatable"] is False

    @pytest.mark.asyncio
    async def test_create_denied(self, sales_gateway) -> None:
        gateway, transport = sales_gateway
        with pytest.raises(CapabilityDeniedError):
            await gateway.execute("SALES_SRV", "SalesOrderHeader", "create", {})
        assert transport.calls == []

    @pytest.mark.asyncio
    async def test_read_single(self, sales_gateway) -> None:
        gateway, transport = sales_gateway
        result = await gateway.execute(
            "SALES_SRV", "SalesOrderHeader", "read-single", {"OrderId": "1000"}
        )
        method, call = transport.calls[0]
        assert method == "fetch_entity"
        assert call["entity_set"] == "SalesOrderHeader"
        assert call["key_expression"] == "'1000'"
        assert result.data == {"d": {"OrderId": "1000", "CustomerName": "ACME"}}


class TestGateway:
    def test_shared_catalog_separate_tokens(self, catalog: Catalog) -> None:
        first = ODataGateway.from_catalog(catalog, FakeTransport(), user_token="alice")
        second = ODataGateway.from_catalog(catalog, FakeTransport())
        assert first.catalog is second.catalog
        assert first.has_user_token
        assert not second.has_user_token

    def test_set_user_token(self, gateway: ODataGateway) -> None:
        gateway.set_user_token("jwt")
        assert gateway.has_user_token
        assert gateway.dispatcher.has_user_token

    def test_catalog_listing(self, gateway: ODataGateway) -> None:
        listing = gateway.catalog_listing()
        assert listing["totalServices"] == 4

    def test_unknown_service(self, gateway: ODataGateway) -> None:
        with pytest.raises(ServiceNotFoundError):
            gateway.describe("Sales Orders", "SalesOrderHeader")
