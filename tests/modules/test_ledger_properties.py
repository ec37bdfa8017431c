"""
Hypothesis-based property tests for the stock and employee ledgers.

Invariants checked over generated inputs:
- Stock quantity never goes negative; a rejected movement leaves it unchanged
- remaining == salary - paid after any transaction sequence
- A payment never pushes paid above salary
- The performance score stays in [0, 100]
"""

from datetime import date, datetime, timedelta, timezone
from decimal import Decimal

from hypothesis import HealthCheck, given, settings
from hypothesis import strategies as st

from mill_modules.inventory.ledger import MovementContext, apply_movement
from mill_modules.inventory.models import InventoryItem
from mill_modules.payroll.ledger import apply_transaction, mark_attendance
from mill_modules.payroll.models import AttendanceRecord, AttendanceStatus, Employee, TransactionType
from mill_modules.payroll.performance import compute_performance_score

NOW = datetime(2025, 3, 15, 9, 30, tzinfo=timezone.utc)

amounts = st.decimals(
    min_value=Decimal("-100000"),
    max_value=Decimal("100000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)
positive_quantities = st.decimals(
    min_value=Decimal("0.01"),
    max_value=Decimal("10000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)
money = st.decimals(
    min_value=Decimal("0"),
    max_value=Decimal("100000"),
    places=2,
    allow_nan=False,
    allow_infinity=False,
)


class TestStockProperties:

    @given(
        start=money,
        steps=st.lists(st.tuples(st.sampled_from(["in", "out"]), positive_quantities), max_size=25),
    )
    @settings(max_examples=100, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_quantity_never_negative(self, start, steps):
        item = InventoryItem(id="INV-P", type="Cotton", color="Navy", quantity=start)
        context = MovementContext(timestamp=NOW, movement_id="MOV-P")
        for operation, quantity in steps:
            result = apply_movement(item, operation, quantity, context)
            if result.success:
                movement = result.value.movement
                assert movement.previous_quantity == item.quantity
                item = result.value.updated_item
                assert item.quantity == movement.new_quantity
            else:
                assert result.code == "INSUFFICIENT_STOCK"
                assert quantity > item.quantity
            assert item.quantity >= 0


class TestEmployeeProperties:

    @given(
        salary=money,
        paid_share=st.decimals(min_value=Decimal("0"), max_value=Decimal("1"), places=2),
        steps=st.lists(st.tuples(st.sampled_from(list(TransactionType)), amounts), max_size=25),
    )
    @settings(max_examples=100, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_remaining_and_paid_bounds(self, salary, paid_share, steps):
        employee = Employee(id="EMP-P", name="P", salary=salary, paid=salary * paid_share)
        for tx_type, amount in steps:
            result = apply_transaction(employee, tx_type, amount, None, NOW)
            if amount == 0:
                assert result.code == "INVALID_TRANSACTION"
                continue
            employee = result.value.updated_employee
            assert employee.remaining == employee.salary - employee.paid
            assert Decimal("0") <= employee.paid <= employee.salary
        assert len(employee.salary_transactions) == sum(1 for _, a in steps if a != 0)

    @given(
        statuses=st.lists(st.sampled_from(list(AttendanceStatus)), max_size=40),
        offsets=st.lists(st.integers(min_value=-5, max_value=60), max_size=40),
        absences=st.integers(min_value=0, max_value=100),
        overtime=st.integers(min_value=0, max_value=200),
        hours=st.decimals(min_value=Decimal("0"), max_value=Decimal("1000"), places=1),
        salary=money,
        paid_share=st.decimals(min_value=Decimal("0"), max_value=Decimal("1"), places=2),
    )
    @settings(max_examples=150, deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_score_in_range(self, statuses, offsets, absences, overtime, hours, salary, paid_share):
        attendance = tuple(
            AttendanceRecord(date=NOW.date() - timedelta(days=offset), status=status, timestamp="")
            for status, offset in zip(statuses, offsets)
        )
        employee = Employee(
            id="EMP-P",
            name="P",
            salary=salary,
            paid=salary * paid_share,
            hours_worked=hours,
            overtime=overtime,
            absences=absences,
            attendance=attendance,
        )
        score = compute_performance_score(employee, NOW)
        assert Decimal("0") <= score <= Decimal("100")

    @given(marks=st.lists(st.sampled_from(["present", "absent"]), max_size=30))
    @settings(deadline=None, suppress_health_check=[HealthCheck.function_scoped_fixture])
    def test_attendance_counters(self, marks):
        employee = Employee(id="EMP-P", name="P")
        for offset, mark in enumerate(marks):
            employee = mark_attendance(employee, mark, date(2025, 1, 1) + timedelta(days=offset), NOW).value
        assert employee.absences == marks.count("absent")
        assert employee.hours_worked == Decimal("8") * marks.count("present")
        assert len(employee.attendance) == len(marks)
