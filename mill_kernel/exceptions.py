"""
Typed Exception Hierarchy for the Mill Ledgers.

===============================================================================
WHY TYPED ERRORS
===============================================================================

Ledger failures are user-facing: the presentation layer shows them inline
next to the form that produced them, localized on its side. That only works
if the failure can be identified by TYPE and CODE and carries its data as
attributes, never by parsing an English message.

  1. Every error has a TYPED class (catch or match by type, not message)
  2. Every class has a CODE attribute (machine-readable, API-safe)
  3. Errors carry structured DATA (requested/available, record id, ...)

Validation failures are NOT raised by the ledger functions. They are
instantiated and returned inside a ``LedgerResult`` (see
``mill_kernel.domain.result``). They remain ``Exception`` subclasses so that
``LedgerResult.unwrap()`` and the store layer can raise them when a caller
prefers exceptions.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    MillLedgerError (base)
    |
    +-- ValidationError
    |   +-- InvalidQuantityError
    |   +-- InvalidOperationError
    |   +-- InvalidTransactionError
    |   +-- InvalidFieldError
    |   +-- ProtectedFieldError
    |
    +-- StockError
    |   +-- InsufficientStockError
    |
    +-- StoreError
    |   +-- RecordNotFoundError
    |   +-- RecordAlreadyExistsError
    |
    +-- ConcurrencyError
        +-- OptimisticLockError
        +-- ConcurrentModificationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category      | Code                        | When
--------------|-----------------------------|-------------------------------------
Validation    | INVALID_QUANTITY            | Quantity/amount non-numeric or <= 0
              | INVALID_OPERATION           | Movement operation not in/out
              | INVALID_TRANSACTION         | Unknown salary type, zero amount,
              |                             | unknown attendance status
              | INVALID_FIELD               | Bad value for an editable field
              | PROTECTED_FIELD             | Edit names a ledger-owned field
--------------|-----------------------------|-------------------------------------
Stock         | INSUFFICIENT_STOCK          | Outbound movement exceeds on-hand
--------------|-----------------------------|-------------------------------------
Store         | RECORD_NOT_FOUND            | Item/employee id missing or deleted
              | RECORD_ALREADY_EXISTS       | Create with an id already in use
--------------|-----------------------------|-------------------------------------
Concurrency   | OPTIMISTIC_LOCK_CONFLICT    | Stored version moved since the read
              | CONCURRENT_MODIFICATION     | Retries exhausted on a hot record
"""

from decimal import Decimal
from typing import Any


class MillLedgerError(Exception):
    """
    Base exception for all mill ledger errors.

    All subclasses must have a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "MILL_LEDGER_ERROR"

    def to_dict(self) -> dict[str, Any]:
        """Structured payload for the presentation layer."""
        payload: dict[str, Any] = {"code": self.code, "message": str(self)}
        for key, val in vars(self).items():
            if key.startswith("_"):
                continue
            payload[key] = str(val) if isinstance(val, Decimal) else val
        return payload


# Validation errors


class ValidationError(MillLedgerError):
    """Base exception for rejected ledger inputs."""

    code: str = "VALIDATION_ERROR"


class InvalidQuantityError(ValidationError):
    """Quantity or amount is non-numeric, non-finite or not positive."""

    code: str = "INVALID_QUANTITY"

    def __init__(self, value: Any, field: str = "quantity"):
        self.value = value
        self.field = field
        super().__init__(f"Invalid {field}: {value!r} (must be a positive finite number)")


class InvalidOperationError(ValidationError):
    """Stock movement operation is not one of in/out."""

    code: str = "INVALID_OPERATION"

    def __init__(self, operation: Any):
        self.operation = operation
        super().__init__(f"Invalid stock operation: {operation!r} (expected 'in' or 'out')")


class InvalidTransactionError(ValidationError):
    """Salary transaction or attendance event cannot be applied."""

    code: str = "INVALID_TRANSACTION"

    def __init__(self, reason: str, transaction_type: Any = None, amount: Any = None):
        self.reason = reason
        self.transaction_type = transaction_type
        self.amount = amount
        super().__init__(f"Invalid transaction: {reason}")


class InvalidFieldError(ValidationError):
    """Value given for an editable record field is not acceptable."""

    code: str = "INVALID_FIELD"

    def __init__(self, field: str, value: Any):
        self.field = field
        self.value = value
        super().__init__(f"Invalid value for {field}: {value!r}")


class ProtectedFieldError(ValidationError):
    """
    Direct edit names a field only a ledger operation may change.

    Quantities, salary totals, counters and histories move through
    ``apply_movement`` / ``apply_transaction`` / ``mark_attendance`` only.
    """

    code: str = "PROTECTED_FIELD"

    def __init__(self, collection: str, fields: list[str]):
        self.collection = collection
        self.fields = fields
        super().__init__(
            f"Field(s) {', '.join(fields)} of {collection} cannot be edited directly"
        )


# Stock errors


class StockError(MillLedgerError):
    """Base exception for stock ledger errors."""

    code: str = "STOCK_ERROR"


class InsufficientStockError(StockError):
    """Outbound movement would drive on-hand quantity below zero."""

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, item_id: str, requested: Decimal, available: Decimal):
        self.item_id = item_id
        self.requested = requested
        self.available = available
        super().__init__(
            f"Insufficient stock for item {item_id}: "
            f"requested {requested}, available {available}"
        )


# Store errors


class StoreError(MillLedgerError):
    """Base exception for record store errors."""

    code: str = "STORE_ERROR"


class RecordNotFoundError(StoreError):
    """Record with given id does not exist in the collection."""

    code: str = "RECORD_NOT_FOUND"

    def __init__(self, collection: str, record_id: str):
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"Record not found: {collection}/{record_id}")


class RecordAlreadyExistsError(StoreError):
    """Record with given id already exists in the collection."""

    code: str = "RECORD_ALREADY_EXISTS"

    def __init__(self, collection: str, record_id: str):
        self.collection = collection
        self.record_id = record_id
        super().__init__(f"Record already exists: {collection}/{record_id}")


# Concurrency errors


class ConcurrencyError(MillLedgerError):
    """Base exception for concurrent-update errors."""

    code: str = "CONCURRENCY_ERROR"


class OptimisticLockError(ConcurrencyError):
    """Stored record version no longer matches the version that was read."""

    code: str = "OPTIMISTIC_LOCK_CONFLICT"

    def __init__(
        self,
        collection: str,
        record_id: str,
        expected_version: int,
        actual_version: int | None,
    ):
        self.collection = collection
        self.record_id = record_id
        self.expected_version = expected_version
        self.actual_version = actual_version
        super().__init__(
            f"Optimistic lock conflict on {collection}/{record_id}: "
            f"expected version {expected_version}, found {actual_version}"
        )


class ConcurrentModificationError(ConcurrencyError):
    """Ledger operation gave up after repeated optimistic lock conflicts."""

    code: str = "CONCURRENT_MODIFICATION"

    def __init__(self, collection: str, record_id: str, attempts: int):
        self.collection = collection
        self.record_id = record_id
        self.attempts = attempts
        super().__init__(
            f"Record {collection}/{record_id} kept changing; "
            f"gave up after {attempts} attempts"
        )
