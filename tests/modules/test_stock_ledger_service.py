"""
Tests for StockLedgerService.

Runs against both record store backends.  Verifies that the item update and
its movement record are persisted together, that rejected movements write
nothing, and that a concurrent change is absorbed by re-running the ledger
on a fresh read.  Direct field edits never reach ledger-owned fields.
"""

from datetime import date
from decimal import Decimal

import pytest

from mill_kernel.exceptions import InvalidQuantityError
from mill_modules.inventory.config import InventoryConfig
from mill_modules.inventory.models import INVENTORY_COLLECTION, MOVEMENT_COLLECTION
from mill_modules.inventory.service import StockLedgerService


@pytest.fixture
def service(store, clock):
    return StockLedgerService(store, clock)


@pytest.fixture
def seeded_item(store, item_record):
    return store.create(INVENTORY_COLLECTION, item_record(), "INV")


class TestRecordMovement:

    def test_outbound_persists_item_and_movement(self, service, store, seeded_item):
        result = service.record_movement("INV-001", "out", 30, user="amina")

        assert result.success
        stored = store.get(INVENTORY_COLLECTION, "INV-001")
        assert stored.data["quantity"] == 70
        assert stored.version == 2

        movements = service.movements_for("INV-001")
        assert len(movements) == 1
        assert movements[0].previous_quantity == Decimal("100")
        assert movements[0].new_quantity == Decimal("70")
        assert movements[0].user == "amina"
        assert movements[0].created_at == "2025-03-15T09:30:00+00:00"

    def test_insufficient_stock_writes_nothing(self, service, store, item_record):
        store.create(INVENTORY_COLLECTION, item_record(quantity=50), "INV")

        result = service.record_movement("INV-001", "out", 80)

        assert result.code == "INSUFFICIENT_STOCK"
        stored = store.get(INVENTORY_COLLECTION, "INV-001")
        assert stored.data["quantity"] == 50
        assert stored.version == 1
        assert store.list(MOVEMENT_COLLECTION) == []

    def test_failure_log_carries_actor_and_record(self, service, item_record, store, captured_logs):
        store.create(INVENTORY_COLLECTION, item_record(quantity=50), "INV")

        service.record_movement("INV-001", "out", 80, user="amina")

        failed = [r for r in captured_logs() if r["message"] == "record_movement_failed"]
        assert failed[0]["record_id"] == "INV-001"
        assert failed[0]["actor_id"] == "amina"

    def test_unknown_item(self, service):
        result = service.record_movement("INV-404", "in", 5)
        assert result.code == "RECORD_NOT_FOUND"

    def test_soft_deleted_item_rejected(self, service, seeded_item):
        service.soft_delete_item("INV-001")
        assert service.record_movement("INV-001", "in", 5).code == "RECORD_NOT_FOUND"

        service.restore_item("INV-001")
        assert service.record_movement("INV-001", "in", 5).success

    def test_unowned_fields_preserved(self, service, store, seeded_item):
        service.record_movement("INV-001", "in", 5, on_date=date(2025, 3, 14))

        data = store.get(INVENTORY_COLLECTION, "INV-001").data
        assert data["createdAt"] == seeded_item["createdAt"]
        assert data["supplier"] == "Anatolia Yarns"
        assert data["price"] == 45.5
        assert data["lastRestocked"] == "2025-03-14"

    def test_sequence_of_movements(self, service, store, seeded_item):
        for operation, quantity in [("out", 30), ("in", 12.5), ("out", 2.5)]:
            assert service.record_movement("INV-001", operation, quantity).success

        assert store.get(INVENTORY_COLLECTION, "INV-001").data["quantity"] == 80
        summary = service.movement_summary("INV-001")
        assert summary.total_in == Decimal("12.5")
        assert summary.total_out == Decimal("32.5")
        assert summary.count == 3

    def test_high_precision_round_trip(self, service, store, seeded_item):
        quantity = Decimal("1234567890.123456789")

        inbound = service.record_movement("INV-001", "in", quantity).unwrap().movement
        outbound = service.record_movement("INV-001", "out", quantity).unwrap().movement

        assert outbound.previous_quantity == inbound.new_quantity
        assert outbound.new_quantity == Decimal("100")
        assert service.get_item("INV-001").value.quantity == Decimal("100")
        assert service.movements_for("INV-001")[0].quantity == quantity

    def test_configured_default_user(self, store, clock, seeded_item):
        service = StockLedgerService(store, clock, InventoryConfig(default_user="depot"))
        result = service.record_movement("INV-001", "in", 1)
        assert result.value.movement.user == "depot"


class TestConcurrency:

    def test_concurrent_change_is_not_lost(self, interfering_store, clock, item_record):
        # Another request takes 10 meters between our read and our write
        def take_ten(data):
            return {**data, "quantity": data["quantity"] - 10}

        store = interfering_store(INVENTORY_COLLECTION, "INV-001", take_ten)
        store.create(INVENTORY_COLLECTION, item_record(), "INV")
        service = StockLedgerService(store, clock)

        result = service.record_movement("INV-001", "out", 30)

        assert result.success
        assert result.value.movement.previous_quantity == Decimal("90")
        assert result.value.movement.new_quantity == Decimal("60")
        assert store.get(INVENTORY_COLLECTION, "INV-001").data["quantity"] == 60
        assert len(store.list(MOVEMENT_COLLECTION)) == 1

    def test_retry_sees_new_insufficient_stock(self, interfering_store, clock, item_record):
        def drain(data):
            return {**data, "quantity": 20}

        store = interfering_store(INVENTORY_COLLECTION, "INV-001", drain)
        store.create(INVENTORY_COLLECTION, item_record(), "INV")
        service = StockLedgerService(store, clock)

        result = service.record_movement("INV-001", "out", 30)

        assert result.code == "INSUFFICIENT_STOCK"
        assert result.error.available == Decimal("20")
        assert store.list(MOVEMENT_COLLECTION) == []

    def test_retries_bounded_by_config(self, interfering_store, clock, item_record):
        store = interfering_store(
            INVENTORY_COLLECTION, "INV-001", lambda data: dict(data), conflicts=10,
        )
        store.create(INVENTORY_COLLECTION, item_record(), "INV")
        service = StockLedgerService(store, clock, InventoryConfig(max_retries=2))

        result = service.record_movement("INV-001", "in", 1)

        assert result.code == "CONCURRENT_MODIFICATION"
        assert store.interference_count == 2


class TestItemsAndReads:

    def test_create_item(self, service, store):
        item = service.create_item("Silk", "Ivory", Decimal("12"), location="Shelf 3", barcode="42")
        assert item.id.startswith("INV-")
        assert item.unit == "meter"
        assert item.extra["barcode"] == "42"

        data = store.get(INVENTORY_COLLECTION, item.id).data
        assert data["location"] == "Shelf 3"
        assert data["quantity"] == 12
        assert data["isDeleted"] is False

    def test_get_item(self, service, seeded_item):
        assert service.get_item("INV-001").value.color == "Navy"
        assert service.get_item("INV-404").code == "RECORD_NOT_FOUND"

    def test_low_stock_items(self, service, store, item_record):
        store.create(INVENTORY_COLLECTION, item_record(id="INV-A", quantity=5), "INV")
        store.create(INVENTORY_COLLECTION, item_record(id="INV-B", quantity=40), "INV")
        store.create(
            INVENTORY_COLLECTION, item_record(id="INV-C", quantity=40, minimumThreshold=50), "INV",
        )
        assert [i.id for i in service.low_stock_items()] == ["INV-A", "INV-C"]

    def test_search_movements(self, service, seeded_item):
        service.record_movement("INV-001", "in", 5, notes="Delivery from Bursa")
        service.record_movement("INV-001", "out", 2, notes="Cutting floor")

        assert len(service.search_movements(search="bursa")) == 1
        assert len(service.search_movements(operation="out")) == 1
        assert len(service.all_movements()) == 2

    def test_empty_trash(self, service, store, seeded_item):
        service.record_movement("INV-001", "out", 1)
        service.soft_delete_item("INV-001")

        assert service.empty_trash() == 1
        assert service.list_items() == []
        # Movement history outlives the purged item
        assert len(service.all_movements()) == 1

    @pytest.mark.parametrize("quantity,price", [(100, 45), (12.5, 3.75), ("30", "9.90")])
    def test_create_item_accepts_form_numbers(self, service, store, quantity, price):
        item = service.create_item("Cotton", "Navy", quantity=quantity, price=price)
        assert item.quantity == Decimal(str(quantity))
        assert item.price == Decimal(str(price))
        assert store.get(INVENTORY_COLLECTION, item.id).version == 1

    @pytest.mark.parametrize(
        "kwargs,field",
        [
            ({"quantity": -1}, "quantity"),
            ({"quantity": "lots"}, "quantity"),
            ({"price": float("nan")}, "price"),
            ({"minimum_threshold": -5}, "minimum_threshold"),
        ],
    )
    def test_create_item_rejects_bad_numbers(self, service, store, kwargs, field):
        with pytest.raises(InvalidQuantityError) as exc_info:
            service.create_item("Cotton", "Navy", **kwargs)
        assert exc_info.value.field == field
        assert store.list(INVENTORY_COLLECTION) == []


class TestUpdateItem:

    def test_edits_fields_without_touching_quantity(self, service, store, seeded_item):
        result = service.update_item(
            "INV-001", price="52.25", location="Shelf 9", color="Midnight", barcode="7",
        )

        assert result.success
        data = store.get(INVENTORY_COLLECTION, "INV-001").data
        assert data["price"] == 52.25
        assert data["location"] == "Shelf 9"
        assert data["color"] == "Midnight"
        assert data["barcode"] == "7"
        assert data["quantity"] == 100
        assert data["supplier"] == "Anatolia Yarns"
        assert data["createdAt"] == seeded_item["createdAt"]
        assert store.list(MOVEMENT_COLLECTION) == []

    @pytest.mark.parametrize(
        "fields",
        [
            {"quantity": 5},
            {"lastRestocked": "2025-01-01"},
            {"is_deleted": True},
            {"price": 10, "quantity": 500},
            {"createdAt": "2020-01-01"},
        ],
    )
    def test_ledger_owned_fields_rejected(self, service, store, seeded_item, fields):
        result = service.update_item("INV-001", **fields)

        assert result.code == "PROTECTED_FIELD"
        stored = store.get(INVENTORY_COLLECTION, "INV-001")
        assert stored.version == 1
        assert stored.data["quantity"] == 100
        assert stored.data["price"] == 45.5

    def test_bad_values_rejected(self, service, store, seeded_item):
        assert service.update_item("INV-001", price=-3).code == "INVALID_QUANTITY"
        assert service.update_item("INV-001", type="  ").code == "INVALID_FIELD"
        assert store.get(INVENTORY_COLLECTION, "INV-001").version == 1

    def test_threshold_can_be_cleared(self, service, store, item_record):
        store.create(INVENTORY_COLLECTION, item_record(minimumThreshold=50), "INV")
        service.update_item("INV-001", minimum_threshold=None)
        assert "minimumThreshold" not in store.get(INVENTORY_COLLECTION, "INV-001").data

    def test_unknown_item(self, service):
        assert service.update_item("INV-404", price=1).code == "RECORD_NOT_FOUND"

    def test_edit_during_movement_keeps_both(self, interfering_store, clock, item_record):
        def take_ten(data):
            return {**data, "quantity": data["quantity"] - 10}

        store = interfering_store(INVENTORY_COLLECTION, "INV-001", take_ten)
        store.create(INVENTORY_COLLECTION, item_record(), "INV")
        service = StockLedgerService(store, clock)

        assert service.update_item("INV-001", price=60).success

        data = store.get(INVENTORY_COLLECTION, "INV-001").data
        assert data["price"] == 60
        assert data["quantity"] == 90
