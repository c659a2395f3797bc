"""Tests for the tool-name allocator."""

from __future__ import annotations

import threading

from sap_odata_mcp.tools.naming import (
    ToolNameAllocator,
    abbreviate_entity_name,
    abbreviate_service_id,
    short_hash,
)


class TestAbbreviation:
    def test_strip_prefix_and_suffix(self) -> None:
        assert abbreviate_service_id("ZBP_SALES_ORDER_SRV") == "SALES_ORDER"
        assert abbreviate_service_id("ZC_MATERIAL_CDS") == "MATERIAL"
        assert abbreviate_service_id("API_ITEM_SRV_0001") == "API_ITEM"

    def test_collapse_segments_then_truncate(self) -> None:
        assert abbreviate_service_id("ZC_PURCHASE_REQUISITION_MANAGE_SRV") == "PURCHASE_MAN"

    def test_single_long_segment_truncated(self) -> None:
        assert abbreviate_service_id("VERYLONGSERVICENAME") == "VERYLONGSERV"

    def test_entity_acronym(self) -> None:
        assert abbreviate_entity_name("SalesOrderItemPartner") == "SOIP"

    def test_short_camel_case_entity_still_abbreviated(self) -> None:
        assert abbreviate_entity_name("SalesOrder") == "SO"

    def test_entity_without_camel_case_truncated(self) -> None:
        assert abbreviate_entity_name("A_SALESORDERITEMTYPE") == "A_SALESORDER"

    def test_short_hash(self) -> None:
        assert len(short_hash("anything")) == 8
        assert short_hash("anything") == short_hash("anything")
        assert short_hash("a") != short_hash("b")


class TestAllocate:
    def test_verbatim_when_short(self) -> None:
        allocator = ToolNameAllocator()
        assert allocator.allocate("read", "SALES_SRV", "SalesOrder") == "read-SALES_SRV-SalesOrder"

    def test_abbreviated_when_long(self) -> None:
        allocator = ToolNameAllocator()
        name = allocator.allocate(
            "read-single", "ZC_PURCHASE_REQUISITION_MANAGE_SRV", "PurchaseRequisitionItemDetails"
        )
        assert name == "read-single-PURCHASE_MAN-PRID"

    def test_short_entity_abbreviated_with_long_service(self) -> None:
        allocator = ToolNameAllocator()
        name = allocator.allocate("read-single", "Z" * 60, "SalesOrder")
        assert name == "read-single-ZZZZZZZZZZZZ-SO"

    def test_hashed_when_abbreviation_too_long(self) -> None:
        allocator = ToolNameAllocator()
        operation = "o" * 50
        service_id = "SERVICE_" + "X" * 20
        entity = "entity" + "y" * 20
        name = allocator.allocate(operation, service_id, entity)
        assert name == f"{operation}-{short_hash(service_id)}-{short_hash(entity)}"[:64]
        assert len(name) == 64

    def test_hash_fragments(self) -> None:
        allocator = ToolNameAllocator()
        operation = "x" * 40
        service_id = "S" * 70
        entity = "E" * 30
        name = allocator.allocate(operation, service_id, entity)
        assert name == f"{operation}-{short_hash(service_id)}-{short_hash(entity)}"
        assert len(name) <= 64

    def test_idempotent(self) -> None:
        allocator = ToolNameAllocator()
        first = allocator.allocate("read", "SALES_SRV", "SalesOrder")
        second = allocator.allocate("read", "SALES_SRV", "SalesOrder")
        assert first == second
        assert len(allocator) == 1

    def test_collision_gets_suffix(self) -> None:
        allocator = ToolNameAllocator()
        long_entity_a = "PurchaseRequisitionItemDetails"
        long_entity_b = "PurchaseReportItemDetails"
        service_id = "ZC_PURCHASE_REQUISITION_MANAGE_SRV"
        a = allocator.allocate("read", service_id, long_entity_a)
        b = allocator.allocate("read", service_id, long_entity_b)
        assert a == "read-PURCHASE_MAN-PRID"
        assert b == "read-PURCHASE_MAN-PRID-1"

    def test_suffix_keeps_limit(self) -> None:
        allocator = ToolNameAllocator()
        operation = "x" * 40
        first = allocator.allocate(operation, "S" * 70, "E" * 30)
        assert len(first) == 58
        # Same hashes cannot collide, so force one through the mapping
        allocator._short_to_long["y" * 64] = "taken"
        name = allocator._deduplicate("y" * 64)
        assert name == "y" * 62 + "-1"
        assert len(name) == 64

    def test_mappings_are_bidirectional(self) -> None:
        allocator = ToolNameAllocator()
        name = allocator.allocate("delete", "SALES_SRV", "SalesOrder")
        assert allocator.long_name_for(name) == "delete--SALES_SRV--SalesOrder"
        assert allocator.short_name_for("delete", "SALES_SRV", "SalesOrder") == name
        assert allocator.mappings() == {name: "delete--SALES_SRV--SalesOrder"}
        assert allocator.short_name_for("read", "SALES_SRV", "SalesOrder") is None

    def test_mappings_snapshot_is_a_copy(self) -> None:
        allocator = ToolNameAllocator()
        allocator.allocate("read", "A", "B")
        allocator.mappings().clear()
        assert len(allocator) == 1

    def test_concurrent_allocations_unique(self) -> None:
        allocator = ToolNameAllocator()
        service_id = "ZC_PURCHASE_REQUISITION_MANAGE_SRV"
        entities = [f"PurchaseRequisitionItem{i}Details" for i in range(20)]
        names: list[str] = []
        lock = threading.Lock()

        def worker(entity: str) -> None:
            name = allocator.allocate("read", service_id, entity)
            with lock:
                names.append(name)

        threads = [threading.Thread(target=worker, args=(e,)) for e in entities]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(set(names)) == 20
        assert all(len(n) <= 64 for n in names)
