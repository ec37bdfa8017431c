"""
Employee performance score and payroll read-side figures.

The score is derived from the employee's current ledger state on every
read and is never persisted.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Iterable

from mill_kernel.logging_config import get_logger
from mill_modules.payroll.models import (
    EXPECTED_MONTHLY_HOURS,
    PERFORMANCE_WINDOW_DAYS,
    AttendanceStatus,
    Employee,
    PayrollSummary,
)

logger = get_logger("modules.payroll.performance")

ATTENDANCE_WEIGHT = Decimal("0.7")
HOURS_WEIGHT = Decimal("0.15")
OVERTIME_POINTS_PER_HOUR = 2
OVERTIME_POINTS_CAP = Decimal("15")
PAYMENT_BONUS_POINTS = Decimal("5")
PAYMENT_BONUS_RATIO = Decimal("0.8")

EXCELLENT_THRESHOLD = Decimal("90")
GOOD_THRESHOLD = Decimal("70")

_ZERO = Decimal("0")
_ONE = Decimal("1")
_HUNDRED = Decimal("100")


def _window_counts(employee: Employee, today: date) -> tuple[int, int]:
    """(total days, present days) from attendance inside the trailing window."""
    start = today - timedelta(days=PERFORMANCE_WINDOW_DAYS)
    in_window = [a for a in employee.attendance if start < a.date <= today]
    if in_window:
        present = sum(1 for a in in_window if a.status is AttendanceStatus.PRESENT)
        return len(in_window), present
    # No recent marks: assume a full window less recorded absences
    return PERFORMANCE_WINDOW_DAYS, max(0, PERFORMANCE_WINDOW_DAYS - employee.absences)


def compute_performance_score(employee: Employee, now: datetime | date) -> Decimal:
    """
    Score in ``[0, 100]``.

    Weighted sum of attendance rate over the last 30 days (70 points),
    overtime hours (2 points each, at most 15), hours worked against a
    160-hour month (15 points), and 5 points when at least 80% of the
    salary has been paid.
    """
    today = now.date() if isinstance(now, datetime) else now
    total_days, present = _window_counts(employee, today)

    if total_days == 0:
        attendance_score = _ZERO
    else:
        attendance_score = Decimal(present) / Decimal(total_days) * _HUNDRED * ATTENDANCE_WEIGHT

    overtime_score = min(Decimal(employee.overtime * OVERTIME_POINTS_PER_HOUR), OVERTIME_POINTS_CAP)
    hours_score = min(employee.hours_worked / EXPECTED_MONTHLY_HOURS, _ONE) * _HUNDRED * HOURS_WEIGHT

    bonus = _ZERO
    if employee.salary > 0 and employee.paid / employee.salary >= PAYMENT_BONUS_RATIO:
        bonus = PAYMENT_BONUS_POINTS

    score = attendance_score + overtime_score + hours_score + bonus
    score = max(_ZERO, min(score, _HUNDRED))
    logger.debug(
        "performance_score_computed",
        extra={
            "employee_id": employee.id,
            "window_days": total_days,
            "present_days": present,
            "score": str(score),
        },
    )
    return score


def performance_rating(score: Decimal) -> str:
    """Rating label for a performance score."""
    if score >= EXCELLENT_THRESHOLD:
        return "excellent"
    if score >= GOOD_THRESHOLD:
        return "good"
    return "average"


def payment_ratio(employee: Employee) -> Decimal:
    """Percentage of salary already paid; 0 when salary is 0."""
    if employee.salary <= 0:
        return _ZERO
    return employee.paid / employee.salary * _HUNDRED


def summarize_payroll(employees: Iterable[Employee]) -> PayrollSummary:
    total_salaries = _ZERO
    total_paid = _ZERO
    headcount = 0
    for employee in employees:
        if employee.is_deleted:
            continue
        headcount += 1
        total_salaries += employee.salary
        total_paid += employee.paid
    return PayrollSummary(
        total_salaries=total_salaries,
        total_paid=total_paid,
        total_remaining=total_salaries - total_paid,
        headcount=headcount,
    )
