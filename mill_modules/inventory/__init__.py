"""
Inventory Module (``mill_modules.inventory``).

Responsibility
--------------
Stock ledger for fabric items: validate and apply inbound/outbound
movements, keep every item's quantity non-negative, and keep an
append-only movement log.

Architecture
------------
Layer: **Modules** -- pure ledger functions in ``ledger``, frozen models in
``models``, settings in ``config`` and a thin orchestration service in
``service``.  It imports from ``mill_kernel`` but never the reverse.

Invariants
----------
- ``quantity >= 0`` for every item after every movement.
- ``movement.new_quantity == movement.previous_quantity +/- quantity``.
- Item update and movement record are committed together or not at all.
"""

from mill_modules.inventory.config import InventoryConfig
from mill_modules.inventory.ledger import (
    MovementContext,
    MovementOutcome,
    apply_movement,
    edit_item,
    filter_movements,
    format_quantity,
    is_low_stock,
    parse_operation,
    summarize_movements,
)
from mill_modules.inventory.models import (
    INVENTORY_COLLECTION,
    MOVEMENT_COLLECTION,
    InventoryItem,
    MovementOperation,
    MovementSummary,
    StockMovement,
)
from mill_modules.inventory.service import StockLedgerService

__all__ = [
    "INVENTORY_COLLECTION",
    "MOVEMENT_COLLECTION",
    "InventoryConfig",
    "InventoryItem",
    "MovementContext",
    "MovementOperation",
    "MovementOutcome",
    "MovementSummary",
    "StockLedgerService",
    "StockMovement",
    "apply_movement",
    "edit_item",
    "filter_movements",
    "format_quantity",
    "is_low_stock",
    "parse_operation",
    "summarize_movements",
]
