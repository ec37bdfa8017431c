"""
LedgerRunner -- read, compute, write-once loop for single-record ledgers.

Responsibility:
    Runs one ledger computation against one record id: read the record and
    its version, hand it to a pure ``compute`` callable, and commit the
    writes it plans as ONE atomic store batch guarded by the version that
    was read.  When the store reports an optimistic lock conflict, the
    record is re-read and the computation re-run from the fresh state.

Architecture position:
    Kernel > Services -- imperative shell.  Used by the module services
    (``StockLedgerService``, ``EmployeeLedgerService``).

Invariants enforced:
    - The computation never sees a stale record when it commits: a write is
      accepted only if the stored version still equals the version read.
    - ``max_attempts`` bounds the retry loop.
    - Soft-deleted records are reported as ``RecordNotFoundError``.

Failure modes (all returned as failed ``LedgerResult``):
    - RecordNotFoundError: id missing or soft-deleted.
    - Whatever typed error ``compute`` returns.
    - ConcurrentModificationError: every attempt hit a version conflict.
    Store I/O errors propagate as exceptions; the store has rolled back.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, TypeVar

from mill_kernel.domain.result import LedgerResult
from mill_kernel.exceptions import (
    ConcurrentModificationError,
    OptimisticLockError,
    RecordNotFoundError,
)
from mill_kernel.logging_config import LogContext, get_logger
from mill_kernel.store.base import RecordStore, RecordWrite, StoredRecord

logger = get_logger("services.ledger_runner")

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3


@dataclass(frozen=True)
class LedgerPlan(Generic[T]):
    """Writes to commit together plus the value handed back to the caller."""

    writes: tuple[RecordWrite, ...]
    value: T


class LedgerRunner:
    """
    Executes ledger computations against a ``RecordStore``.

    Contract:
        ``run()`` returns a ``LedgerResult``; expected failures never raise.
    """

    def __init__(self, store: RecordStore, max_attempts: int = DEFAULT_MAX_ATTEMPTS):
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        self._store = store
        self._max_attempts = max_attempts

    @property
    def store(self) -> RecordStore:
        return self._store

    def load(self, collection: str, record_id: str) -> LedgerResult[StoredRecord]:
        """Read a live (not soft-deleted) record."""
        try:
            stored = self._store.get(collection, record_id)
        except RecordNotFoundError as exc:
            return LedgerResult.fail(exc)
        if stored.is_deleted:
            return LedgerResult.fail(RecordNotFoundError(collection, record_id))
        return LedgerResult.ok(stored)

    def run(
        self,
        collection: str,
        record_id: str,
        compute: Callable[[StoredRecord], LedgerResult[LedgerPlan[T]]],
    ) -> LedgerResult[T]:
        with LogContext.bind(collection=collection, record_id=record_id):
            for attempt in range(1, self._max_attempts + 1):
                loaded = self.load(collection, record_id)
                if not loaded.success:
                    logger.info(
                        "ledger_record_missing",
                        extra={"attempt": attempt},
                    )
                    return LedgerResult.fail(loaded.error)  # type: ignore[arg-type]

                stored = loaded.unwrap()
                planned = compute(stored)
                if not planned.success:
                    return LedgerResult.fail(planned.error)  # type: ignore[arg-type]

                plan = planned.unwrap()
                try:
                    self._store.commit(plan.writes)
                except OptimisticLockError as exc:
                    logger.warning(
                        "ledger_version_conflict",
                        extra={
                            "attempt": attempt,
                            "max_attempts": self._max_attempts,
                            "expected_version": exc.expected_version,
                            "actual_version": exc.actual_version,
                        },
                    )
                    continue

                logger.debug(
                    "ledger_plan_committed",
                    extra={
                        "attempt": attempt,
                        "read_version": stored.version,
                        "write_count": len(plan.writes),
                    },
                )
                return LedgerResult.ok(plan.value)

            logger.error(
                "ledger_retries_exhausted",
                extra={"max_attempts": self._max_attempts},
            )
            return LedgerResult.fail(
                ConcurrentModificationError(collection, record_id, self._max_attempts)
            )
