"""
Stock Ledger Pure Functions (``mill_modules.inventory.ledger``).

Responsibility
--------------
Validates and applies inbound/outbound quantity movements against an
inventory item, producing the updated item and an immutable movement
record.  Also the read-side helpers used by the movement list: totals,
filtering, low-stock detection.

Architecture
------------
Layer: **Modules** -- pure functions.  No I/O, no store, no clock: the
caller supplies ``timestamp`` (and optionally ``date``) in the
``MovementContext``.

Invariants
----------
- ``new_quantity = previous_quantity + quantity`` for ``in`` and
  ``previous_quantity - quantity`` for ``out``; no intermediate rounding.
- ``new_quantity >= 0`` always.  An ``out`` movement that would break this
  is rejected before any movement is built, and the item is unchanged.
- Only ``quantity`` (and ``last_restocked`` on ``in``) change on the item.

Failure Modes
-------------
Returned, never raised:

- ``InvalidQuantityError``: quantity not a finite number > 0.
- ``InvalidOperationError``: operation not ``in`` / ``out``.
- ``InsufficientStockError``: ``out`` quantity exceeds on-hand quantity;
  carries ``requested`` and ``available``.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Iterable, Mapping, Sequence

from mill_kernel.domain.result import LedgerResult
from mill_kernel.domain.values import coerce_decimal, round_for_display
from mill_kernel.exceptions import (
    InsufficientStockError,
    InvalidFieldError,
    InvalidOperationError,
    InvalidQuantityError,
    ProtectedFieldError,
)
from mill_kernel.logging_config import get_logger
from mill_kernel.store.base import new_record_id
from mill_modules.inventory.models import (
    DEFAULT_MOVEMENT_USER,
    INVENTORY_COLLECTION,
    ITEM_PROTECTED_FIELDS,
    MOVEMENT_ID_PREFIX,
    InventoryItem,
    MovementOperation,
    MovementSummary,
    StockMovement,
)

logger = get_logger("modules.inventory.ledger")


@dataclass(frozen=True)
class MovementContext:
    """
    Who/when/why of a movement, as submitted by the movement form.

    ``timestamp`` is the injected "now"; ``date`` defaults to its calendar day.
    """
    timestamp: datetime
    user: str | None = None
    date: date | None = None
    notes: str = ""
    movement_id: str | None = None

    @property
    def effective_date(self) -> date:
        return self.date if self.date is not None else self.timestamp.date()


@dataclass(frozen=True)
class MovementOutcome:
    """Updated item and its movement; persisted together or not at all."""
    updated_item: InventoryItem
    movement: StockMovement


def parse_operation(operation: Any) -> MovementOperation | None:
    """Accept a ``MovementOperation`` or its string value (any case)."""
    if isinstance(operation, MovementOperation):
        return operation
    if isinstance(operation, str):
        try:
            return MovementOperation(operation.strip().lower())
        except ValueError:
            return None
    return None


def apply_movement(
    item: InventoryItem,
    operation: MovementOperation | str,
    quantity: Any,
    context: MovementContext,
    default_user: str = DEFAULT_MOVEMENT_USER,
) -> LedgerResult[MovementOutcome]:
    """
    Apply one inbound/outbound movement to ``item``.

    Preconditions:
        - ``quantity`` is a finite number > 0.
        - ``operation`` is ``in`` or ``out``.
        - For ``out``: ``quantity <= item.quantity``.

    Postconditions:
        - ``updated_item.quantity == movement.new_quantity``.
        - ``movement.previous_quantity == item.quantity``.
        - ``item`` itself is untouched (frozen).

    Returns:
        ``LedgerResult[MovementOutcome]``.
    """
    qty = coerce_decimal(quantity)
    if qty is None or qty <= 0:
        logger.info(
            "stock_movement_rejected",
            extra={"item_id": item.id, "reason": "invalid_quantity", "quantity": str(quantity)},
        )
        return LedgerResult.fail(InvalidQuantityError(quantity, field="quantity"))

    op = parse_operation(operation)
    if op is None:
        logger.info(
            "stock_movement_rejected",
            extra={"item_id": item.id, "reason": "invalid_operation", "operation": str(operation)},
        )
        return LedgerResult.fail(InvalidOperationError(operation))

    previous = item.quantity
    if op is MovementOperation.OUT and qty > previous:
        logger.info(
            "stock_movement_rejected",
            extra={
                "item_id": item.id,
                "reason": "insufficient_stock",
                "requested": str(qty),
                "available": str(previous),
            },
        )
        return LedgerResult.fail(InsufficientStockError(item.id, qty, previous))

    new_quantity = previous + qty if op is MovementOperation.IN else previous - qty
    on_date = context.effective_date

    movement = StockMovement(
        id=context.movement_id or new_record_id(MOVEMENT_ID_PREFIX),
        item_id=item.id,
        operation=op,
        quantity=qty,
        previous_quantity=previous,
        new_quantity=new_quantity,
        user=(context.user or "").strip() or default_user,
        date=on_date,
        notes=context.notes or "",
        type=item.type,
        color=item.color,
        created_at=context.timestamp.isoformat(),
    )

    if op is MovementOperation.IN:
        updated = replace(item, quantity=new_quantity, last_restocked=on_date)
    else:
        updated = replace(item, quantity=new_quantity)

    logger.info(
        "stock_movement_applied",
        extra={
            "item_id": item.id,
            "movement_id": movement.id,
            "operation": op.value,
            "quantity": str(qty),
            "previous_quantity": str(previous),
            "new_quantity": str(new_quantity),
        },
    )
    return LedgerResult.ok(MovementOutcome(updated_item=updated, movement=movement))


def _required_text(value: Any) -> str | None:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return None


def edit_item(
    item: InventoryItem,
    changes: Mapping[str, Any],
) -> LedgerResult[InventoryItem]:
    """
    Apply a direct field edit (name, price, location, ...) to ``item``.

    Keys in ``ITEM_EDITABLE_FIELDS`` replace the model field; any key that
    a ledger operation owns (``quantity``, ``lastRestocked``, ...) rejects
    the whole edit with ``ProtectedFieldError``; other keys are kept in
    ``extra``.  Quantity never changes here.
    """
    protected = sorted(k for k in changes if k in ITEM_PROTECTED_FIELDS)
    if protected:
        logger.info(
            "inventory_item_edit_rejected",
            extra={"item_id": item.id, "reason": "protected_field", "fields": protected},
        )
        return LedgerResult.fail(ProtectedFieldError(INVENTORY_COLLECTION, protected))

    updates: dict[str, Any] = {}
    extra = dict(item.extra)
    for key, value in changes.items():
        if key in ("type", "color", "unit"):
            text = _required_text(value)
            if text is None:
                return LedgerResult.fail(InvalidFieldError(key, value))
            updates[key] = text
        elif key in ("price", "minimum_threshold"):
            if key == "minimum_threshold" and value is None:
                updates[key] = None
                continue
            number = coerce_decimal(value)
            if number is None or number < 0:
                return LedgerResult.fail(InvalidQuantityError(value, field=key))
            updates[key] = number
        elif key in ("location", "supplier"):
            if value is not None and not isinstance(value, str):
                return LedgerResult.fail(InvalidFieldError(key, value))
            updates[key] = value
        else:
            extra[key] = value

    updated = replace(item, extra=extra, **updates)
    logger.info(
        "inventory_item_edited",
        extra={"item_id": item.id, "fields": sorted(changes)},
    )
    return LedgerResult.ok(updated)


def summarize_movements(movements: Iterable[StockMovement]) -> MovementSummary:
    """Total inbound, total outbound, and net change over ``movements``."""
    total_in = Decimal("0")
    total_out = Decimal("0")
    count = 0
    for movement in movements:
        count += 1
        if movement.operation is MovementOperation.IN:
            total_in += movement.quantity
        else:
            total_out += movement.quantity
    return MovementSummary(
        total_in=total_in,
        total_out=total_out,
        net_change=total_in - total_out,
        count=count,
    )


def filter_movements(
    movements: Sequence[StockMovement],
    operation: MovementOperation | str | None = None,
    search: str = "",
) -> list[StockMovement]:
    """
    Operation filter plus case-insensitive search over type, color, notes.

    ``operation`` of ``None`` or ``"all"`` keeps both directions.
    """
    op = None if operation in (None, "all") else parse_operation(operation)
    needle = search.strip().lower()
    result = []
    for movement in movements:
        if op is not None and movement.operation is not op:
            continue
        if needle and not any(
            needle in text.lower()
            for text in (movement.type, movement.color, movement.notes)
        ):
            continue
        result.append(movement)
    return result


def is_low_stock(item: InventoryItem, default_threshold: Decimal) -> bool:
    """True when quantity is at or below the item's (or default) threshold."""
    threshold = (
        item.minimum_threshold
        if item.minimum_threshold is not None
        else default_threshold
    )
    return item.quantity <= threshold


def format_quantity(quantity: Decimal) -> str:
    """Display form, rounded to 2 decimals."""
    return f"{round_for_display(quantity):,.2f}"
