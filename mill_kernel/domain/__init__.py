"""
Mill Kernel Domain Layer.

Pure primitives with ZERO I/O: the clock abstraction, the ledger result
carrier and numeric coercion helpers. Nothing here may import from
``mill_kernel.store`` or ``mill_kernel.db``.
"""

from mill_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from mill_kernel.domain.result import LedgerResult
from mill_kernel.domain.values import coerce_decimal

__all__ = [
    "Clock",
    "SystemClock",
    "DeterministicClock",
    "LedgerResult",
    "coerce_decimal",
]
