"""
Employee Ledger Pure Functions (``mill_modules.payroll.ledger``).

Responsibility
--------------
Validates and applies salary transactions (payment, bonus, deduction,
overtime, absence) and attendance marks against an employee, producing the
updated employee and the history entry appended to it.

Architecture
------------
Layer: **Modules** -- pure functions.  No I/O, no store, no clock: the
caller supplies ``timestamp`` and, optionally, the calendar ``on_date``.

Invariants
----------
- ``remaining == salary - paid`` after every transaction (``remaining`` is
  derived on the model, never stored independently).
- A payment never pushes ``paid`` above ``salary``; a deduction or absence
  never pushes it below zero.
- The effect of a transaction depends on its type only; the sign of the
  entered amount is kept for display.
- Replaying the same sequence from the same starting employee yields the
  same final employee.

Failure Modes
-------------
Returned, never raised:

- ``InvalidQuantityError``: amount is not a finite number.
- ``InvalidTransactionError``: unknown transaction type, zero amount, or
  unknown attendance status.
- ``ProtectedFieldError`` / ``InvalidFieldError``: rejected direct edits.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime
from decimal import Decimal
from typing import Any, Mapping

from mill_kernel.domain.result import LedgerResult
from mill_kernel.domain.values import coerce_decimal
from mill_kernel.exceptions import (
    InvalidFieldError,
    InvalidQuantityError,
    InvalidTransactionError,
    ProtectedFieldError,
)
from mill_kernel.logging_config import get_logger
from mill_modules.payroll.models import (
    DEFAULT_CURRENCY_SYMBOL,
    EMPLOYEE_COLLECTION,
    EMPLOYEE_PROTECTED_FIELDS,
    OVERTIME_RATE_PER_HOUR,
    WORKDAY_HOURS,
    AttendanceRecord,
    AttendanceStatus,
    Employee,
    EmployeeStatus,
    SalaryTransaction,
    TransactionType,
)

logger = get_logger("modules.payroll.ledger")

_ZERO = Decimal("0")


@dataclass(frozen=True)
class TransactionOutcome:
    """Updated employee and the transaction appended to its history."""
    updated_employee: Employee
    transaction: SalaryTransaction


def parse_transaction_type(tx_type: Any) -> TransactionType | None:
    """Accept a ``TransactionType``, its stored label, or its English name."""
    if isinstance(tx_type, TransactionType):
        return tx_type
    if not isinstance(tx_type, str):
        return None
    text = tx_type.strip()
    try:
        return TransactionType(text)
    except ValueError:
        pass
    try:
        return TransactionType[text.upper()]
    except KeyError:
        return None


def parse_attendance_status(status: Any) -> AttendanceStatus | None:
    if isinstance(status, AttendanceStatus):
        return status
    if isinstance(status, str):
        try:
            return AttendanceStatus(status.strip().lower())
        except ValueError:
            return None
    return None


def describe_transaction(
    tx_type: TransactionType,
    amount: Decimal,
    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL,
) -> str:
    """Audit line such as ``"مكافأة: +100 ₺"``."""
    sign = "+" if amount >= 0 else ""
    return f"{tx_type.value}: {sign}{amount.normalize():f} {currency_symbol}"


def apply_transaction(
    employee: Employee,
    tx_type: TransactionType | str,
    amount: Any,
    on_date: date | None,
    timestamp: datetime,
    currency_symbol: str = DEFAULT_CURRENCY_SYMBOL,
) -> LedgerResult[TransactionOutcome]:
    """
    Apply one salary transaction to ``employee``.

    Effects, with ``a = |amount|``:

    ==========  ===============================================================
    payment     ``paid = min(paid + a, salary)``
    bonus       ``salary += a``; ``paid += a``
    deduction   ``paid = max(paid - a, 0)``
    overtime    ``salary += a``; ``paid += a``; ``overtime += floor(a / 50)``
    absence     ``paid = max(paid - a, 0)``; ``absences += 1``
    ==========  ===============================================================

    Returns:
        ``LedgerResult[TransactionOutcome]``.
    """
    value = coerce_decimal(amount)
    if value is None:
        logger.info(
            "salary_transaction_rejected",
            extra={"employee_id": employee.id, "reason": "invalid_amount", "amount": str(amount)},
        )
        return LedgerResult.fail(InvalidQuantityError(amount, field="amount"))

    kind = parse_transaction_type(tx_type)
    if kind is None:
        logger.info(
            "salary_transaction_rejected",
            extra={"employee_id": employee.id, "reason": "unknown_type", "type": str(tx_type)},
        )
        return LedgerResult.fail(InvalidTransactionError(
            f"unrecognized transaction type {tx_type!r}",
            transaction_type=tx_type,
            amount=value,
        ))

    if value == 0:
        logger.info(
            "salary_transaction_rejected",
            extra={"employee_id": employee.id, "reason": "zero_amount", "type": kind.name},
        )
        return LedgerResult.fail(InvalidTransactionError(
            "amount must not be zero",
            transaction_type=kind,
            amount=value,
        ))

    a = abs(value)
    salary = employee.salary
    paid = employee.paid
    overtime = employee.overtime
    absences = employee.absences

    if kind is TransactionType.PAYMENT:
        paid = min(paid + a, salary)
    elif kind is TransactionType.BONUS:
        salary += a
        paid += a
    elif kind is TransactionType.DEDUCTION:
        paid = max(paid - a, _ZERO)
    elif kind is TransactionType.OVERTIME:
        salary += a
        paid += a
        overtime += int(a // OVERTIME_RATE_PER_HOUR)
    else:
        paid = max(paid - a, _ZERO)
        absences += 1

    transaction = SalaryTransaction(
        date=on_date if on_date is not None else timestamp.date(),
        type=kind,
        amount=value,
        timestamp=timestamp.isoformat(),
        description=describe_transaction(kind, value, currency_symbol),
    )
    updated = replace(
        employee,
        salary=salary,
        paid=paid,
        overtime=overtime,
        absences=absences,
        salary_transactions=employee.salary_transactions + (transaction,),
    )

    logger.info(
        "salary_transaction_applied",
        extra={
            "employee_id": employee.id,
            "type": kind.name,
            "amount": str(value),
            "salary": str(updated.salary),
            "paid": str(updated.paid),
            "remaining": str(updated.remaining),
        },
    )
    return LedgerResult.ok(TransactionOutcome(updated_employee=updated, transaction=transaction))


def mark_attendance(
    employee: Employee,
    status: AttendanceStatus | str,
    on_date: date | None,
    timestamp: datetime,
) -> LedgerResult[Employee]:
    """
    Append an attendance record.

    ``present`` sets ``last_work_date``, credits one workday of hours and
    makes the employee active.  ``absent`` counts an absence and marks the
    employee absent.  Nothing else changes.
    """
    mark = parse_attendance_status(status)
    if mark is None:
        logger.info(
            "attendance_rejected",
            extra={"employee_id": employee.id, "status": str(status)},
        )
        return LedgerResult.fail(InvalidTransactionError(
            f"unrecognized attendance status {status!r}",
        ))

    day = on_date if on_date is not None else timestamp.date()
    record = AttendanceRecord(date=day, status=mark, timestamp=timestamp.isoformat())
    history = employee.attendance + (record,)

    if mark is AttendanceStatus.PRESENT:
        updated = replace(
            employee,
            attendance=history,
            last_work_date=day,
            hours_worked=employee.hours_worked + WORKDAY_HOURS,
            status=EmployeeStatus.ACTIVE,
        )
    else:
        updated = replace(
            employee,
            attendance=history,
            absences=employee.absences + 1,
            status=EmployeeStatus.ABSENT,
        )

    logger.info(
        "attendance_marked",
        extra={"employee_id": employee.id, "status": mark.value, "date": day},
    )
    return LedgerResult.ok(updated)


def edit_employee(
    employee: Employee,
    changes: Mapping[str, Any],
) -> LedgerResult[Employee]:
    """
    Apply a direct field edit (name, position, status, notes, contact
    fields) to ``employee``.

    Salary figures, counters and histories are owned by the ledger
    operations; naming any of them rejects the whole edit with
    ``ProtectedFieldError``.  Keys outside both sets land in ``extra``.
    """
    protected = sorted(k for k in changes if k in EMPLOYEE_PROTECTED_FIELDS)
    if protected:
        logger.info(
            "employee_edit_rejected",
            extra={"employee_id": employee.id, "reason": "protected_field", "fields": protected},
        )
        return LedgerResult.fail(ProtectedFieldError(EMPLOYEE_COLLECTION, protected))

    updates: dict[str, Any] = {}
    extra = dict(employee.extra)
    for key, value in changes.items():
        if key == "name":
            if not isinstance(value, str) or not value.strip():
                return LedgerResult.fail(InvalidFieldError(key, value))
            updates[key] = value.strip()
        elif key == "position":
            if not isinstance(value, str):
                return LedgerResult.fail(InvalidFieldError(key, value))
            updates[key] = value
        elif key == "status":
            try:
                updates[key] = EmployeeStatus(value)
            except ValueError:
                return LedgerResult.fail(InvalidFieldError(key, value))
        elif key == "notes":
            if value is not None and not isinstance(value, str):
                return LedgerResult.fail(InvalidFieldError(key, value))
            updates[key] = value
        else:
            extra[key] = value

    updated = replace(employee, extra=extra, **updates)
    logger.info(
        "employee_edited",
        extra={"employee_id": employee.id, "fields": sorted(changes)},
    )
    return LedgerResult.ok(updated)
