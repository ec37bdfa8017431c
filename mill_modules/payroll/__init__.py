"""
Payroll Module (``mill_modules.payroll``).

Responsibility
--------------
Employee ledger: salary transactions (payment, bonus, deduction, overtime,
absence), daily attendance marks, and the derived performance score.

Architecture
------------
Layer: **Modules** -- pure ledger functions in ``ledger`` and
``performance``, frozen models in ``models``, settings in ``config`` and a
thin orchestration service in ``service``.

Invariants
----------
- ``remaining == salary - paid`` after every transaction.
- Attendance and salary transaction histories are append-only.
- The performance score is recomputed on every read and never stored.
"""

from mill_modules.payroll.config import PayrollConfig
from mill_modules.payroll.ledger import (
    TransactionOutcome,
    apply_transaction,
    describe_transaction,
    edit_employee,
    mark_attendance,
    parse_attendance_status,
    parse_transaction_type,
)
from mill_modules.payroll.models import (
    EMPLOYEE_COLLECTION,
    EXPECTED_MONTHLY_HOURS,
    OVERTIME_RATE_PER_HOUR,
    PERFORMANCE_WINDOW_DAYS,
    WORKDAY_HOURS,
    AttendanceRecord,
    AttendanceStatus,
    Employee,
    EmployeeStatus,
    PayrollSummary,
    SalaryTransaction,
    TransactionType,
)
from mill_modules.payroll.performance import (
    compute_performance_score,
    payment_ratio,
    performance_rating,
    summarize_payroll,
)
from mill_modules.payroll.service import EmployeeLedgerService, PerformanceReport

__all__ = [
    "EMPLOYEE_COLLECTION",
    "EXPECTED_MONTHLY_HOURS",
    "OVERTIME_RATE_PER_HOUR",
    "PERFORMANCE_WINDOW_DAYS",
    "WORKDAY_HOURS",
    "AttendanceRecord",
    "AttendanceStatus",
    "Employee",
    "EmployeeLedgerService",
    "EmployeeStatus",
    "PayrollConfig",
    "PayrollSummary",
    "PerformanceReport",
    "SalaryTransaction",
    "TransactionOutcome",
    "TransactionType",
    "apply_transaction",
    "compute_performance_score",
    "describe_transaction",
    "edit_employee",
    "mark_attendance",
    "parse_attendance_status",
    "parse_transaction_type",
    "payment_ratio",
    "performance_rating",
    "summarize_payroll",
]
