"""
Pytest fixtures for the mill ledger test suite.

Provides:
- Structured logging configured once per session, with captured JSON logs
- A deterministic clock
- Record stores: in-memory fake and SQLAlchemy on SQLite in-memory
- Factory helpers for inventory items and employees

No database server is needed; the SQL store runs on ``sqlite:///:memory:``.
"""

import json
import logging
from datetime import datetime, timezone
from decimal import Decimal
from io import StringIO

import pytest

from mill_kernel.db.engine import (
    create_tables,
    get_session_factory,
    init_engine_from_url,
    reset_engine,
)
from mill_kernel.domain.clock import DeterministicClock
from mill_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from mill_kernel.store.base import RecordWrite
from mill_kernel.store.memory import InMemoryRecordStore
from mill_kernel.store.sql import SqlRecordStore

FIXED_NOW = datetime(2025, 3, 15, 9, 30, 0, tzinfo=timezone.utc)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture mill_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs):
            apply_movement(...)
            logs = captured_logs()
            assert any(r["message"] == "stock_movement_applied" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("mill_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Clock
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock(FIXED_NOW)


# =============================================================================
# Record stores
# =============================================================================


@pytest.fixture
def memory_store(clock) -> InMemoryRecordStore:
    return InMemoryRecordStore(clock)


@pytest.fixture
def sql_session_factory():
    """Fresh SQLite in-memory database per test."""
    engine = init_engine_from_url("sqlite:///:memory:")
    create_tables(engine)
    yield get_session_factory()
    reset_engine()


@pytest.fixture
def sql_store(sql_session_factory, clock) -> SqlRecordStore:
    return SqlRecordStore(sql_session_factory, clock)


@pytest.fixture(params=["memory", pytest.param("sql", marks=pytest.mark.sql)])
def store(request):
    """Runs the test once per ``RecordStore`` backend."""
    if request.param == "memory":
        return request.getfixturevalue("memory_store")
    return request.getfixturevalue("sql_store")


# =============================================================================
# Record factories
# =============================================================================


@pytest.fixture
def item_record():
    """Build a stored inventory item dict."""

    def _make(**overrides) -> dict:
        record = {
            "id": "INV-001",
            "type": "Cotton",
            "color": "Navy",
            "quantity": 100,
            "unit": "meter",
            "price": 45.5,
            "location": "Warehouse A",
            "supplier": "Anatolia Yarns",
            "isDeleted": False,
        }
        record.update(overrides)
        return record

    return _make


@pytest.fixture
def employee_record():
    """Build a stored employee dict."""

    def _make(**overrides) -> dict:
        record = {
            "id": "EMP-001",
            "name": "Selin Kaya",
            "position": "Weaver",
            "salary": 1000,
            "paid": 0,
            "remaining": 1000,
            "hoursWorked": 0,
            "overtime": 0,
            "absences": 0,
            "status": "active",
            "attendance": [],
            "salaryTransactions": [],
            "phone": "+90 555 000 0000",
            "isDeleted": False,
        }
        record.update(overrides)
        return record

    return _make


@pytest.fixture
def decimal_close():
    """Compare Decimals to a tolerance."""

    def _close(actual: Decimal, expected: str, tolerance: str = "0.01") -> bool:
        return abs(actual - Decimal(expected)) < Decimal(tolerance)

    return _close


# =============================================================================
# Concurrency
# =============================================================================


class InterferingStore(InMemoryRecordStore):
    """
    In-memory store that lets a "concurrent request" win the race.

    Before each of the first ``conflicts`` version-checked commits that touch
    the target record, it commits ``mutate(record)`` on that record first, so
    the caller's version is stale.
    """

    def __init__(self, clock, collection, record_id, mutate, conflicts=1):
        super().__init__(clock)
        self.target = (collection, record_id)
        self.mutate = mutate
        self.conflicts_left = conflicts
        self.interference_count = 0

    def commit(self, writes):
        guarded = any(
            (w.collection, w.record_id) == self.target and w.expected_version is not None
            for w in writes
        )
        if guarded and self.conflicts_left > 0:
            self.conflicts_left -= 1
            self.interference_count += 1
            stored = self.get(*self.target)
            super().commit([
                RecordWrite(
                    self.target[0],
                    self.target[1],
                    self.mutate(dict(stored.data)),
                    expected_version=stored.version,
                ),
            ])
        super().commit(writes)


@pytest.fixture
def interfering_store(clock):
    """Factory: ``interfering_store(collection, record_id, mutate, conflicts=1)``."""

    def _make(collection, record_id, mutate, conflicts=1) -> InterferingStore:
        return InterferingStore(clock, collection, record_id, mutate, conflicts)

    return _make
