"""
LedgerResult -- typed success/failure carrier for ledger operations.

Responsibility:
    Expected validation failures (bad quantity, insufficient stock, unknown
    transaction type, missing record) travel back to the caller as values,
    not as raised exceptions.  The carried error is still a coded
    ``MillLedgerError`` so the presentation layer can match on ``code`` and
    read structured attributes.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from mill_kernel.exceptions import MillLedgerError

T = TypeVar("T")


@dataclass(frozen=True)
class LedgerResult(Generic[T]):
    """
    Result of a ledger computation or service call.

    Attributes:
        success: Whether the operation was applied
        value: The outcome (if success)
        error: The typed error (if failed)
    """

    success: bool
    value: T | None = None
    error: MillLedgerError | None = None

    def __post_init__(self) -> None:
        if self.success and self.error is not None:
            raise ValueError("Successful result cannot carry an error")
        if not self.success and self.error is None:
            raise ValueError("Failed result must carry an error")

    @classmethod
    def ok(cls, value: T) -> LedgerResult[T]:
        """Successful result."""
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, error: MillLedgerError) -> LedgerResult[T]:
        """Failed result."""
        return cls(success=False, error=error)

    @property
    def code(self) -> str | None:
        return self.error.code if self.error is not None else None

    @property
    def message(self) -> str | None:
        return str(self.error) if self.error is not None else None

    def unwrap(self) -> T:
        """Return the value or raise the carried error."""
        if not self.success:
            assert self.error is not None
            raise self.error
        return self.value  # type: ignore[return-value]

    def to_dict(self) -> dict[str, Any]:
        """Shape returned to the presentation layer on failure."""
        if self.success:
            return {"success": True}
        assert self.error is not None
        return {"success": False, "error": self.error.to_dict()}
