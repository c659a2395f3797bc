"""Tests for keyword-based service categorization."""

from __future__ import annotations

from sap_odata_mcp.schema import Categorizer, Category, Service, categorize
from sap_odata_mcp.schema.categories import sorted_categories


def _service(service_id: str, title: str = "", description: str = "") -> Service:
    return Service(id=service_id, title=title or service_id, description=description)


class TestCategorize:
    def test_business_partner_by_id(self) -> None:
        assert Category.BUSINESS_PARTNER in categorize(_service("API_BUSINESS_PARTNER"))

    def test_sales_by_title(self) -> None:
        assert Category.SALES in categorize(_service("ZAPI_X1", title="Sales Documents"))

    def test_sales_by_description(self) -> None:
        cats = categorize(_service("ZAPI_X1", title="Documents", description="Sales data"))
        assert Category.SALES in cats

    def test_case_insensitive(self) -> None:
        assert Category.PROCUREMENT in categorize(_service("ZPURCHASEREQ"))

    def test_multiple_categories(self) -> None:
        cats = categorize(_service("CUSTOMER_ORDER"))
        assert cats == frozenset({Category.BUSINESS_PARTNER, Category.SALES})

    def test_no_match_is_all(self) -> None:
        assert categorize(_service("ZZ_MISC", title="Misc")) == frozenset({Category.ALL})

    def test_pure(self) -> None:
        service = _service("EMPLOYEE_SRV")
        assert categorize(service) == categorize(service) == frozenset({Category.HR})


class TestCategory:
    def test_coerce_known(self) -> None:
        assert Category.coerce("Sales") is Category.SALES
        assert Category.coerce("business-partner") is Category.BUSINESS_PARTNER

    def test_coerce_unknown_is_all(self) -> None:
        assert Category.coerce("marketing") is Category.ALL
        assert Category.coerce(None) is Category.ALL
        assert Category.coerce("") is Category.ALL

    def test_sorted_categories_in_declaration_order(self) -> None:
        cats = {Category.LOGISTICS, Category.BUSINESS_PARTNER, Category.SALES}
        assert sorted_categories(cats) == ["business-partner", "sales", "logistics"]


class TestCategorizer:
    def test_in_category(self, services) -> None:
        categorizer = Categorizer(services)
        assert categorizer.in_category("SALES_SRV", Category.SALES)
        assert not categorizer.in_category("SALES_SRV", Category.HR)
        assert categorizer.in_category("SALES_SRV", Category.ALL)

    def test_unknown_service_is_all(self, services) -> None:
        assert Categorizer(services).categories_for("NOPE") == frozenset({Category.ALL})

    def test_all_categories(self, services) -> None:
        assert Categorizer(services).all_categories() == [
            "business-partner",
            "sales",
            "hr",
            "all",
        ]
