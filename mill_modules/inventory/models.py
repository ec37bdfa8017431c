"""
Inventory Domain Models (``mill_modules.inventory.models``).

Responsibility
--------------
Frozen dataclass value objects for the fabric store: inventory items and
the stock movements that change their quantity.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Consumed by the
stock ledger functions and ``StockLedgerService``.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* Quantities and prices use ``Decimal`` -- NEVER ``float``.
* ``InventoryItem.quantity >= 0``.
* ``StockMovement.quantity > 0`` and ``new_quantity >= 0``.

Record shape
------------
``to_dict()`` / ``from_dict()`` speak the stored JSON shape (camelCase keys:
``minimumThreshold``, ``previousQuantity``, ...).  Keys the model does not
own are carried in ``extra`` and written back untouched.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from mill_kernel.domain.values import (
    coerce_decimal,
    decimal_to_json,
    parse_iso_date,
    to_decimal,
)
from mill_kernel.logging_config import get_logger

logger = get_logger("modules.inventory.models")

INVENTORY_COLLECTION = "inventory"
MOVEMENT_COLLECTION = "stock_movements"

ITEM_ID_PREFIX = "INV"
MOVEMENT_ID_PREFIX = "MOV"

# Recorded on a movement when no user is given
DEFAULT_MOVEMENT_USER = "admin"
DEFAULT_UNIT = "meter"


class MovementOperation(str, Enum):
    """Direction of a stock movement."""
    IN = "in"
    OUT = "out"


_ITEM_KEYS = frozenset({
    "id", "type", "color", "quantity", "unit", "price", "location",
    "supplier", "minimumThreshold", "lastRestocked", "isDeleted",
})

# Fields a direct edit may change
ITEM_EDITABLE_FIELDS = frozenset({
    "type", "color", "unit", "price", "location", "supplier", "minimum_threshold",
})
# Owned by apply_movement, the trash or the store; stored key names included
ITEM_PROTECTED_FIELDS = (
    _ITEM_KEYS | {"quantity", "last_restocked", "is_deleted", "createdAt", "deletedAt"}
) - ITEM_EDITABLE_FIELDS


@dataclass(frozen=True)
class InventoryItem:
    """A stocked fabric (type + color) held in some unit, usually meters."""
    id: str
    type: str
    color: str
    quantity: Decimal
    unit: str = DEFAULT_UNIT
    price: Decimal = Decimal("0")
    location: str | None = None
    supplier: str | None = None
    minimum_threshold: Decimal | None = None
    last_restocked: date | None = None
    is_deleted: bool = False
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.quantity < 0:
            logger.warning(
                "inventory_item_negative_quantity",
                extra={"item_id": self.id, "quantity": str(self.quantity)},
            )
            raise ValueError("quantity cannot be negative")
        object.__setattr__(self, "extra", MappingProxyType(dict(self.extra)))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> InventoryItem:
        threshold = coerce_decimal(data.get("minimumThreshold"))
        return cls(
            id=str(data["id"]),
            type=str(data.get("type", "")),
            color=str(data.get("color", "")),
            quantity=to_decimal(data.get("quantity")),
            unit=str(data.get("unit") or DEFAULT_UNIT),
            price=to_decimal(data.get("price")),
            location=data.get("location"),
            supplier=data.get("supplier"),
            minimum_threshold=threshold,
            last_restocked=parse_iso_date(data.get("lastRestocked")),
            is_deleted=bool(data.get("isDeleted", False)),
            extra={k: v for k, v in data.items() if k not in _ITEM_KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = dict(self.extra)
        body.update({
            "id": self.id,
            "type": self.type,
            "color": self.color,
            "quantity": decimal_to_json(self.quantity),
            "unit": self.unit,
            "price": decimal_to_json(self.price),
            "isDeleted": self.is_deleted,
        })
        if self.location is not None:
            body["location"] = self.location
        if self.supplier is not None:
            body["supplier"] = self.supplier
        if self.minimum_threshold is not None:
            body["minimumThreshold"] = decimal_to_json(self.minimum_threshold)
        if self.last_restocked is not None:
            body["lastRestocked"] = self.last_restocked.isoformat()
        return body


@dataclass(frozen=True)
class StockMovement:
    """
    One inbound/outbound quantity change and its audit record.

    Immutable once created; appended to the movement log and never edited.
    """
    id: str
    item_id: str
    operation: MovementOperation
    quantity: Decimal
    previous_quantity: Decimal
    new_quantity: Decimal
    user: str
    date: date
    notes: str = ""
    type: str = ""
    color: str = ""
    created_at: str | None = None

    def __post_init__(self):
        if self.quantity <= 0:
            raise ValueError("movement quantity must be positive")
        if self.new_quantity < 0:
            raise ValueError("movement cannot leave negative stock")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> StockMovement:
        return cls(
            id=str(data["id"]),
            item_id=str(data["itemId"]),
            operation=MovementOperation(data["operation"]),
            quantity=to_decimal(data.get("quantity")),
            previous_quantity=to_decimal(data.get("previousQuantity")),
            new_quantity=to_decimal(data.get("newQuantity")),
            user=str(data.get("user", "")),
            date=parse_iso_date(data.get("date")) or date.min,
            notes=str(data.get("notes", "")),
            type=str(data.get("type", "")),
            color=str(data.get("color", "")),
            created_at=data.get("createdAt"),
        )

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "id": self.id,
            "itemId": self.item_id,
            "type": self.type,
            "color": self.color,
            "operation": self.operation.value,
            "quantity": decimal_to_json(self.quantity),
            "previousQuantity": decimal_to_json(self.previous_quantity),
            "newQuantity": decimal_to_json(self.new_quantity),
            "user": self.user,
            "date": self.date.isoformat(),
            "notes": self.notes,
        }
        if self.created_at is not None:
            body["createdAt"] = self.created_at
        return body


@dataclass(frozen=True)
class MovementSummary:
    """Totals over a set of movements, as shown above the movement table."""
    total_in: Decimal
    total_out: Decimal
    net_change: Decimal
    count: int
