"""
Stock Ledger Service (``mill_modules.inventory.service``).

Responsibility
--------------
Thin glue between the record store and the pure stock ledger: load the
item, run ``apply_movement``, persist the updated item and its movement
record as one atomic store commit.

Architecture
------------
Layer: **Modules** -- stateful orchestration wrapper.

1. ``LedgerRunner`` reads the item with its version.
2. ``apply_movement`` computes the outcome (pure).
3. The runner commits ``[item update, movement insert]`` guarded by the
   version read in step 1, re-running step 2 on a version conflict.

Failure Modes
-------------
Returned as failed ``LedgerResult``: ``RecordNotFoundError``,
``InvalidQuantityError``, ``InvalidOperationError``,
``InsufficientStockError``, ``ProtectedFieldError``, ``InvalidFieldError``,
``ConcurrentModificationError``.  ``create_item`` raises ``InvalidQuantityError``.
Store I/O errors propagate after the store has rolled back.

Usage::

    service = StockLedgerService(store, clock)
    result = service.record_movement("INV-001", "out", Decimal("30"), user="amina")
    if result.success:
        item, movement = result.value.updated_item, result.value.movement
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any

from mill_kernel.domain.clock import Clock, SystemClock
from mill_kernel.domain.result import LedgerResult
from mill_kernel.domain.values import require_non_negative
from mill_kernel.logging_config import LogContext, get_logger
from mill_kernel.services.ledger_runner import LedgerPlan, LedgerRunner
from mill_kernel.store.base import RecordStore, RecordWrite, StoredRecord
from mill_modules.inventory.config import InventoryConfig
from mill_modules.inventory.ledger import (
    MovementContext,
    MovementOutcome,
    apply_movement,
    edit_item,
    filter_movements,
    is_low_stock,
    summarize_movements,
)
from mill_modules.inventory.models import (
    INVENTORY_COLLECTION,
    ITEM_ID_PREFIX,
    MOVEMENT_COLLECTION,
    InventoryItem,
    MovementOperation,
    MovementSummary,
    StockMovement,
)

logger = get_logger("modules.inventory.service")


class StockLedgerService:
    """
    Orchestrates stock movements through the pure ledger and the store.

    Guarantees
    ----------
    - Atomicity: the item's new quantity and its movement record are written
      in a single ``RecordStore.commit``.
    - Freshness: the ledger always computes against the version it commits
      over; a concurrent change triggers a re-read and re-computation.
    - Direct field edits go through ``edit_item`` and can never change
      quantity.
    """

    def __init__(
        self,
        store: RecordStore,
        clock: Clock | None = None,
        config: InventoryConfig | None = None,
    ):
        self._store = store
        self._clock = clock or SystemClock()
        self._config = config or InventoryConfig.with_defaults()
        self._runner = LedgerRunner(store, max_attempts=self._config.max_retries)

    # =========================================================================
    # Items
    # =========================================================================

    def create_item(
        self,
        type: str,
        color: str,
        quantity: Any = Decimal("0"),
        unit: str | None = None,
        price: Any = Decimal("0"),
        **fields: Any,
    ) -> InventoryItem:
        """
        Create an inventory item; ``fields`` may carry location, supplier, etc.

        Numbers may arrive as form values (``int``, ``float``, ``str``).

        Raises:
            InvalidQuantityError: quantity, price or minimum_threshold is not
                a finite number >= 0.
        """
        threshold = fields.pop("minimum_threshold", None)
        draft = InventoryItem(
            id="pending",
            type=type,
            color=color,
            quantity=require_non_negative(quantity, "quantity"),
            unit=unit or self._config.default_unit,
            price=require_non_negative(price, "price"),
            location=fields.pop("location", None),
            supplier=fields.pop("supplier", None),
            minimum_threshold=(
                None if threshold is None else require_non_negative(threshold, "minimum_threshold")
            ),
            extra=fields,
        )
        body = draft.to_dict()
        del body["id"]
        stored = self._store.create(INVENTORY_COLLECTION, body, ITEM_ID_PREFIX)
        logger.info(
            "inventory_item_created",
            extra={"item_id": stored["id"], "type": type, "color": color},
        )
        return InventoryItem.from_dict(stored)

    def get_item(self, item_id: str) -> LedgerResult[InventoryItem]:
        loaded = self._runner.load(INVENTORY_COLLECTION, item_id)
        if not loaded.success:
            return LedgerResult.fail(loaded.error)  # type: ignore[arg-type]
        return LedgerResult.ok(InventoryItem.from_dict(loaded.unwrap().data))

    def update_item(self, item_id: str, **fields: Any) -> LedgerResult[InventoryItem]:
        """
        Direct field edit (type, color, price, location, ...) of a stored item.

        Quantity and restock date move only through ``record_movement``;
        naming them fails with ``ProtectedFieldError`` and writes nothing.
        """

        def compute(stored: StoredRecord) -> LedgerResult[LedgerPlan[InventoryItem]]:
            edited = edit_item(InventoryItem.from_dict(stored.data), fields)
            if not edited.success:
                return LedgerResult.fail(edited.error)  # type: ignore[arg-type]
            updated = edited.unwrap()
            write = RecordWrite(
                INVENTORY_COLLECTION,
                item_id,
                updated.to_dict(),
                expected_version=stored.version,
            )
            return LedgerResult.ok(LedgerPlan(writes=(write,), value=updated))

        with LogContext.bind(record_id=item_id):
            result = self._runner.run(INVENTORY_COLLECTION, item_id, compute)
            if not result.success:
                logger.info(
                    "update_item_failed",
                    extra={"item_id": item_id, "error_code": result.code},
                )
        return result

    def list_items(self) -> list[InventoryItem]:
        return [InventoryItem.from_dict(d) for d in self._store.list(INVENTORY_COLLECTION)]

    def low_stock_items(self) -> list[InventoryItem]:
        threshold = self._config.low_stock_threshold
        return [item for item in self.list_items() if is_low_stock(item, threshold)]

    def soft_delete_item(self, item_id: str) -> None:
        self._store.soft_delete(INVENTORY_COLLECTION, item_id)
        logger.info("inventory_item_soft_deleted", extra={"item_id": item_id})

    def restore_item(self, item_id: str) -> None:
        self._store.restore(INVENTORY_COLLECTION, item_id)
        logger.info("inventory_item_restored", extra={"item_id": item_id})

    def empty_trash(self) -> int:
        """Physically remove soft-deleted items; their movements stay in the log."""
        return self._store.purge_deleted(INVENTORY_COLLECTION)

    # =========================================================================
    # Movements
    # =========================================================================

    def record_movement(
        self,
        item_id: str,
        operation: MovementOperation | str,
        quantity: Any,
        user: str | None = None,
        on_date: date | None = None,
        notes: str = "",
    ) -> LedgerResult[MovementOutcome]:
        """
        Apply a movement to a stored item and persist item + movement together.

        Postconditions (on success):
            - Stored item quantity equals ``movement.new_quantity``.
            - The movement is appended to ``stock_movements``.
        """
        context = MovementContext(
            timestamp=self._clock.now(),
            user=user,
            date=on_date,
            notes=notes,
        )

        def compute(stored: StoredRecord) -> LedgerResult[LedgerPlan[MovementOutcome]]:
            item = InventoryItem.from_dict(stored.data)
            applied = apply_movement(
                item, operation, quantity, context,
                default_user=self._config.default_user,
            )
            if not applied.success:
                return LedgerResult.fail(applied.error)  # type: ignore[arg-type]
            outcome = applied.unwrap()
            writes = (
                RecordWrite(
                    INVENTORY_COLLECTION,
                    item_id,
                    outcome.updated_item.to_dict(),
                    expected_version=stored.version,
                ),
                RecordWrite(
                    MOVEMENT_COLLECTION,
                    outcome.movement.id,
                    outcome.movement.to_dict(),
                    create=True,
                ),
            )
            return LedgerResult.ok(LedgerPlan(writes=writes, value=outcome))

        with LogContext.bind(actor_id=user, record_id=item_id):
            result = self._runner.run(INVENTORY_COLLECTION, item_id, compute)
            if not result.success:
                logger.info(
                    "record_movement_failed",
                    extra={"item_id": item_id, "error_code": result.code},
                )
        return result

    def movements_for(self, item_id: str) -> list[StockMovement]:
        return [m for m in self.all_movements() if m.item_id == item_id]

    def all_movements(self) -> list[StockMovement]:
        return [
            StockMovement.from_dict(d)
            for d in self._store.list(MOVEMENT_COLLECTION, include_deleted=True)
        ]

    def search_movements(
        self,
        operation: MovementOperation | str | None = None,
        search: str = "",
    ) -> list[StockMovement]:
        return filter_movements(self.all_movements(), operation=operation, search=search)

    def movement_summary(self, item_id: str | None = None) -> MovementSummary:
        movements = self.movements_for(item_id) if item_id else self.all_movements()
        return summarize_movements(movements)
