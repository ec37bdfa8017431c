"""
Payroll Domain Models (``mill_modules.payroll.models``).

Responsibility
--------------
Frozen dataclass value objects representing the nouns of the mill's
payroll: employees, their attendance records, and the salary transactions
that adjust what they are owed.

Architecture position
---------------------
**Modules layer** -- pure data definitions with ZERO I/O.  Consumed by the
payroll ledger functions and ``EmployeeLedgerService``.

Invariants enforced
-------------------
* All models are ``frozen=True`` (immutable after construction).
* All monetary fields use ``Decimal`` -- NEVER ``float``.
* ``Employee.remaining`` is derived as ``salary - paid``; it is written to
  the stored record but never read back from it.
* Attendance and salary transaction histories are tuples (append-only by
  replacement).

Failure modes
-------------
* Construction with invalid enum values raises ``ValueError``.
* Negative salary, or ``paid`` outside ``[0, salary]``, raises ``ValueError``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from mill_kernel.domain.values import decimal_to_json, parse_iso_date, to_decimal
from mill_kernel.logging_config import get_logger

logger = get_logger("modules.payroll.models")

EMPLOYEE_COLLECTION = "employees"
EMPLOYEE_ID_PREFIX = "EMP"

# Appended to salary transaction descriptions
DEFAULT_CURRENCY_SYMBOL = "₺"

# Currency units credited per overtime hour
OVERTIME_RATE_PER_HOUR = Decimal("50")
# Hours a full month of work is measured against
EXPECTED_MONTHLY_HOURS = Decimal("160")
# Hours credited per "present" attendance mark
WORKDAY_HOURS = Decimal("8")
PERFORMANCE_WINDOW_DAYS = 30


class TransactionType(str, Enum):
    """
    Salary transaction kinds.

    Values are the labels stored on the record; member names are the
    English names accepted from callers.
    """
    PAYMENT = "استلام راتب"
    BONUS = "مكافأة"
    DEDUCTION = "خصم"
    OVERTIME = "ساعات إضافية"
    ABSENCE = "غياب"

    @property
    def english_name(self) -> str:
        return self.name.lower()


class AttendanceStatus(str, Enum):
    PRESENT = "present"
    ABSENT = "absent"


class EmployeeStatus(str, Enum):
    ACTIVE = "active"
    ON_LEAVE = "on_leave"
    ABSENT = "absent"


@dataclass(frozen=True)
class AttendanceRecord:
    """One attendance mark for one day."""
    date: date
    status: AttendanceStatus
    timestamp: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> AttendanceRecord:
        return cls(
            date=parse_iso_date(data.get("date")) or date.min,
            status=AttendanceStatus(data["status"]),
            timestamp=str(data.get("timestamp", "")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "status": self.status.value,
            "timestamp": self.timestamp,
        }


@dataclass(frozen=True)
class SalaryTransaction:
    """
    Audit record of one salary adjustment.

    ``amount`` keeps the sign the caller entered; the effect on the
    employee depends on ``type`` alone.
    """
    date: date
    type: TransactionType
    amount: Decimal
    timestamp: str
    description: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SalaryTransaction:
        return cls(
            date=parse_iso_date(data.get("date")) or date.min,
            type=TransactionType(data["type"]),
            amount=to_decimal(data.get("amount")),
            timestamp=str(data.get("timestamp", "")),
            description=str(data.get("description", "")),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "type": self.type.value,
            "amount": decimal_to_json(self.amount),
            "timestamp": self.timestamp,
            "description": self.description,
        }


_EMPLOYEE_KEYS = frozenset({
    "id", "name", "position", "salary", "paid", "remaining", "hoursWorked",
    "overtime", "absences", "status", "lastWorkDate", "attendance",
    "salaryTransactions", "notes", "isDeleted",
})

# Fields a direct edit may change
EMPLOYEE_EDITABLE_FIELDS = frozenset({"name", "position", "status", "notes"})
# Owned by apply_transaction, mark_attendance, the trash or the store
EMPLOYEE_PROTECTED_FIELDS = (
    _EMPLOYEE_KEYS
    | {
        "salary", "paid", "remaining", "hours_worked", "overtime", "absences",
        "last_work_date", "attendance", "salary_transactions", "is_deleted",
        "createdAt", "deletedAt",
    }
) - EMPLOYEE_EDITABLE_FIELDS


@dataclass(frozen=True)
class Employee:
    """A mill employee with running salary, attendance and overtime totals."""
    id: str
    name: str
    position: str = ""
    salary: Decimal = Decimal("0")
    paid: Decimal = Decimal("0")
    hours_worked: Decimal = Decimal("0")
    overtime: int = 0
    absences: int = 0
    status: EmployeeStatus = EmployeeStatus.ACTIVE
    last_work_date: date | None = None
    attendance: tuple[AttendanceRecord, ...] = ()
    salary_transactions: tuple[SalaryTransaction, ...] = ()
    notes: str | None = None
    is_deleted: bool = False
    extra: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self):
        if self.salary < 0:
            logger.warning(
                "employee_negative_salary",
                extra={"employee_id": self.id, "salary": str(self.salary)},
            )
            raise ValueError("salary cannot be negative")
        if not Decimal("0") <= self.paid <= self.salary:
            logger.warning(
                "employee_paid_out_of_range",
                extra={
                    "employee_id": self.id,
                    "salary": str(self.salary),
                    "paid": str(self.paid),
                },
            )
            raise ValueError("paid must be between 0 and salary")
        object.__setattr__(self, "attendance", tuple(self.attendance))
        object.__setattr__(self, "salary_transactions", tuple(self.salary_transactions))
        object.__setattr__(self, "extra", MappingProxyType(dict(self.extra)))

    @property
    def remaining(self) -> Decimal:
        return self.salary - self.paid

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Employee:
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            position=str(data.get("position", "")),
            salary=to_decimal(data.get("salary")),
            paid=to_decimal(data.get("paid")),
            hours_worked=to_decimal(data.get("hoursWorked")),
            overtime=int(to_decimal(data.get("overtime"))),
            absences=int(to_decimal(data.get("absences"))),
            status=EmployeeStatus(data.get("status") or EmployeeStatus.ACTIVE.value),
            last_work_date=parse_iso_date(data.get("lastWorkDate")),
            attendance=tuple(
                AttendanceRecord.from_dict(a) for a in data.get("attendance") or ()
            ),
            salary_transactions=tuple(
                SalaryTransaction.from_dict(t)
                for t in data.get("salaryTransactions") or ()
            ),
            notes=data.get("notes"),
            is_deleted=bool(data.get("isDeleted", False)),
            extra={k: v for k, v in data.items() if k not in _EMPLOYEE_KEYS},
        )

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = dict(self.extra)
        body.update({
            "id": self.id,
            "name": self.name,
            "position": self.position,
            "salary": decimal_to_json(self.salary),
            "paid": decimal_to_json(self.paid),
            "remaining": decimal_to_json(self.remaining),
            "hoursWorked": decimal_to_json(self.hours_worked),
            "overtime": self.overtime,
            "absences": self.absences,
            "status": self.status.value,
            "attendance": [a.to_dict() for a in self.attendance],
            "salaryTransactions": [t.to_dict() for t in self.salary_transactions],
            "isDeleted": self.is_deleted,
        })
        if self.last_work_date is not None:
            body["lastWorkDate"] = self.last_work_date.isoformat()
        if self.notes is not None:
            body["notes"] = self.notes
        return body


@dataclass(frozen=True)
class PayrollSummary:
    """Totals shown above the employee list."""
    total_salaries: Decimal
    total_paid: Decimal
    total_remaining: Decimal
    headcount: int
