"""
Employee Ledger Service (``mill_modules.payroll.service``).

Responsibility
--------------
Thin glue between the record store and the pure employee ledger: load the
employee, run ``apply_transaction`` / ``mark_attendance``, and save the
updated employee (its history entry included) as one versioned write.

Architecture
------------
Layer: **Modules** -- stateful orchestration wrapper over
``LedgerRunner``.  The performance score is recomputed from the stored
employee on every ``performance()`` call and never written back.

Failure Modes
-------------
Returned as failed ``LedgerResult``: ``RecordNotFoundError``,
``InvalidQuantityError``, ``InvalidTransactionError``, ``ProtectedFieldError``,
``InvalidFieldError``, ``ConcurrentModificationError``.  ``create_employee``
raises ``InvalidQuantityError``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any

from mill_kernel.domain.clock import Clock, SystemClock
from mill_kernel.domain.result import LedgerResult
from mill_kernel.domain.values import require_non_negative
from mill_kernel.exceptions import InvalidQuantityError
from mill_kernel.logging_config import LogContext, get_logger
from mill_kernel.services.ledger_runner import LedgerPlan, LedgerRunner
from mill_kernel.store.base import RecordStore, RecordWrite, StoredRecord
from mill_modules.payroll.config import PayrollConfig
from mill_modules.payroll.ledger import (
    TransactionOutcome,
    apply_transaction,
    edit_employee,
    mark_attendance,
)
from mill_modules.payroll.models import (
    EMPLOYEE_COLLECTION,
    EMPLOYEE_ID_PREFIX,
    AttendanceStatus,
    Employee,
    PayrollSummary,
    TransactionType,
)
from mill_modules.payroll.performance import (
    compute_performance_score,
    payment_ratio,
    performance_rating,
    summarize_payroll,
)

logger = get_logger("modules.payroll.service")


@dataclass(frozen=True)
class PerformanceReport:
    """Read-side view of one employee's performance."""
    employee_id: str
    score: Decimal
    rating: str
    payment_ratio: Decimal


class EmployeeLedgerService:
    """
    Orchestrates salary transactions and attendance through the pure
    ledger and the store.

    Guarantees
    ----------
    - The updated totals and the appended history entry land in the same
      versioned save.
    - A concurrent change to the same employee causes a re-read and a
      re-computation, never a lost update.
    """

    def __init__(
        self,
        store: RecordStore,
        clock: Clock | None = None,
        config: PayrollConfig | None = None,
    ):
        self._store = store
        self._clock = clock or SystemClock()
        self._config = config or PayrollConfig.with_defaults()
        self._runner = LedgerRunner(store, max_attempts=self._config.max_retries)

    # =========================================================================
    # Employees
    # =========================================================================

    def create_employee(
        self,
        name: str,
        position: str = "",
        salary: Any = Decimal("0"),
        paid: Any = Decimal("0"),
        **fields: Any,
    ) -> Employee:
        """
        Create an employee; extra ``fields`` (phone, email, ...) are kept as-is.

        Raises:
            InvalidQuantityError: salary is not a finite number >= 0, or paid
                is not within ``[0, salary]``.
        """
        salary_value = require_non_negative(salary, "salary")
        paid_value = require_non_negative(paid, "paid")
        if paid_value > salary_value:
            raise InvalidQuantityError(paid, field="paid")
        draft = Employee(
            id="pending",
            name=name,
            position=position,
            salary=salary_value,
            paid=paid_value,
            notes=fields.pop("notes", None),
            extra=fields,
        )
        body = draft.to_dict()
        del body["id"]
        stored = self._store.create(EMPLOYEE_COLLECTION, body, EMPLOYEE_ID_PREFIX)
        logger.info(
            "employee_created",
            extra={"employee_id": stored["id"], "position": position},
        )
        return Employee.from_dict(stored)

    def get_employee(self, employee_id: str) -> LedgerResult[Employee]:
        loaded = self._runner.load(EMPLOYEE_COLLECTION, employee_id)
        if not loaded.success:
            return LedgerResult.fail(loaded.error)  # type: ignore[arg-type]
        return LedgerResult.ok(Employee.from_dict(loaded.unwrap().data))

    def update_employee(self, employee_id: str, **fields: Any) -> LedgerResult[Employee]:
        """
        Direct field edit (name, position, status, notes, contact fields).

        Salary figures, counters and histories are changed only by
        ``record_transaction`` and ``mark_attendance``; naming one fails
        with ``ProtectedFieldError`` and writes nothing.
        """

        def compute(stored: StoredRecord) -> LedgerResult[LedgerPlan[Employee]]:
            edited = edit_employee(Employee.from_dict(stored.data), fields)
            if not edited.success:
                return LedgerResult.fail(edited.error)  # type: ignore[arg-type]
            updated = edited.unwrap()
            return LedgerResult.ok(self._save_plan(stored, updated, updated))

        with LogContext.bind(record_id=employee_id):
            result = self._runner.run(EMPLOYEE_COLLECTION, employee_id, compute)
            if not result.success:
                logger.info(
                    "update_employee_failed",
                    extra={"employee_id": employee_id, "error_code": result.code},
                )
        return result

    def list_employees(self) -> list[Employee]:
        return [Employee.from_dict(d) for d in self._store.list(EMPLOYEE_COLLECTION)]

    def soft_delete_employee(self, employee_id: str) -> None:
        self._store.soft_delete(EMPLOYEE_COLLECTION, employee_id)
        logger.info("employee_soft_deleted", extra={"employee_id": employee_id})

    def restore_employee(self, employee_id: str) -> None:
        self._store.restore(EMPLOYEE_COLLECTION, employee_id)
        logger.info("employee_restored", extra={"employee_id": employee_id})

    def empty_trash(self) -> int:
        return self._store.purge_deleted(EMPLOYEE_COLLECTION)

    # =========================================================================
    # Ledger operations
    # =========================================================================

    def _save_plan(self, stored: StoredRecord, updated: Employee, value: Any) -> LedgerPlan:
        write = RecordWrite(
            EMPLOYEE_COLLECTION,
            stored.record_id,
            updated.to_dict(),
            expected_version=stored.version,
        )
        return LedgerPlan(writes=(write,), value=value)

    def record_transaction(
        self,
        employee_id: str,
        tx_type: TransactionType | str,
        amount: Any,
        on_date: date | None = None,
    ) -> LedgerResult[TransactionOutcome]:
        """Apply a salary transaction and persist the employee with its history."""
        timestamp = self._clock.now()

        def compute(stored: StoredRecord) -> LedgerResult[LedgerPlan[TransactionOutcome]]:
            employee = Employee.from_dict(stored.data)
            applied = apply_transaction(
                employee, tx_type, amount, on_date, timestamp,
                currency_symbol=self._config.currency_symbol,
            )
            if not applied.success:
                return LedgerResult.fail(applied.error)  # type: ignore[arg-type]
            outcome = applied.unwrap()
            return LedgerResult.ok(self._save_plan(stored, outcome.updated_employee, outcome))

        with LogContext.bind(record_id=employee_id):
            result = self._runner.run(EMPLOYEE_COLLECTION, employee_id, compute)
            if not result.success:
                logger.info(
                    "record_transaction_failed",
                    extra={"employee_id": employee_id, "error_code": result.code},
                )
        return result

    def mark_attendance(
        self,
        employee_id: str,
        status: AttendanceStatus | str,
        on_date: date | None = None,
    ) -> LedgerResult[Employee]:
        timestamp = self._clock.now()

        def compute(stored: StoredRecord) -> LedgerResult[LedgerPlan[Employee]]:
            marked = mark_attendance(Employee.from_dict(stored.data), status, on_date, timestamp)
            if not marked.success:
                return LedgerResult.fail(marked.error)  # type: ignore[arg-type]
            updated = marked.unwrap()
            return LedgerResult.ok(self._save_plan(stored, updated, updated))

        with LogContext.bind(record_id=employee_id):
            result = self._runner.run(EMPLOYEE_COLLECTION, employee_id, compute)
            if not result.success:
                logger.info(
                    "mark_attendance_failed",
                    extra={"employee_id": employee_id, "error_code": result.code},
                )
        return result

    # =========================================================================
    # Read side
    # =========================================================================

    def performance(self, employee_id: str) -> LedgerResult[PerformanceReport]:
        """Recompute the score from the current stored state."""
        loaded = self.get_employee(employee_id)
        if not loaded.success:
            return LedgerResult.fail(loaded.error)  # type: ignore[arg-type]
        employee = loaded.unwrap()
        score = compute_performance_score(employee, self._clock.now())
        return LedgerResult.ok(PerformanceReport(
            employee_id=employee.id,
            score=score,
            rating=performance_rating(score),
            payment_ratio=payment_ratio(employee),
        ))

    def payroll_summary(self) -> PayrollSummary:
        return summarize_payroll(self.list_employees())
