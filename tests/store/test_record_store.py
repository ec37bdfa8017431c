"""
Record store contract tests.

Every test runs against both backends (in-memory fake and SQLAlchemy on
SQLite) through the ``store`` fixture, so the fake cannot drift from the
real store.

Verifies:
- Create stamps id, createdAt, isDeleted and starts at version 1
- Versions increase by one per update
- commit() is all-or-nothing
- Optimistic version checks
- Soft delete, restore and purge ("empty trash")
- Returned dicts are copies
"""

import pytest
from sqlalchemy import create_engine, update
from sqlalchemy.orm import sessionmaker

from mill_kernel.db.engine import create_tables
from mill_kernel.exceptions import (
    OptimisticLockError,
    RecordAlreadyExistsError,
    RecordNotFoundError,
)
from mill_kernel.store import RecordStore, RecordWrite, new_record_id
from mill_kernel.store.orm import RecordModel
from mill_kernel.store.sql import SqlRecordStore


class TestCreateAndGet:

    def test_store_satisfies_protocol(self, store):
        assert isinstance(store, RecordStore)

    def test_create_generates_prefixed_id(self, store):
        created = store.create("inventory", {"type": "Silk", "quantity": 5}, "INV")
        assert created["id"].startswith("INV-")
        assert created["isDeleted"] is False
        assert created["createdAt"] == "2025-03-15T09:30:00+00:00"

        stored = store.get("inventory", created["id"])
        assert stored.version == 1
        assert stored.data["type"] == "Silk"

    def test_create_keeps_given_id(self, store):
        created = store.create("inventory", {"id": "INV-001", "quantity": 1}, "INV")
        assert created["id"] == "INV-001"

    def test_create_duplicate_rejected(self, store):
        store.create("inventory", {"id": "INV-001"}, "INV")
        with pytest.raises(RecordAlreadyExistsError):
            store.create("inventory", {"id": "INV-001"}, "INV")

    def test_get_missing_raises(self, store):
        with pytest.raises(RecordNotFoundError) as exc_info:
            store.get("inventory", "INV-404")
        assert exc_info.value.record_id == "INV-404"

    def test_collections_are_separate(self, store):
        store.create("inventory", {"id": "X-1"}, "X")
        with pytest.raises(RecordNotFoundError):
            store.get("employees", "X-1")

    def test_returned_data_is_a_copy(self, store):
        store.create("employees", {"id": "EMP-1", "attendance": []}, "EMP")
        stored = store.get("employees", "EMP-1")
        stored.data["attendance"].append({"status": "present"})
        assert store.get("employees", "EMP-1").data["attendance"] == []

    def test_list_in_creation_order(self, store):
        for n in range(3):
            store.create("stock_movements", {"id": f"MOV-{n}"}, "MOV")
        assert [r["id"] for r in store.list("stock_movements")] == ["MOV-0", "MOV-1", "MOV-2"]


class TestVersioning:

    def test_save_bumps_version(self, store):
        store.create("inventory", {"id": "INV-1", "quantity": 10}, "INV")
        assert store.save("inventory", "INV-1", {"quantity": 20}, expected_version=1) == 2
        assert store.save("inventory", "INV-1", {"quantity": 30}) == 3
        stored = store.get("inventory", "INV-1")
        assert stored.data == {"id": "INV-1", "quantity": 30}

    def test_stale_version_rejected(self, store):
        store.create("inventory", {"id": "INV-1", "quantity": 10}, "INV")
        store.save("inventory", "INV-1", {"quantity": 20}, expected_version=1)

        with pytest.raises(OptimisticLockError) as exc_info:
            store.save("inventory", "INV-1", {"quantity": 99}, expected_version=1)
        assert exc_info.value.expected_version == 1
        assert exc_info.value.actual_version == 2
        assert store.get("inventory", "INV-1").data["quantity"] == 20

    def test_save_missing_raises(self, store):
        with pytest.raises(RecordNotFoundError):
            store.save("inventory", "INV-404", {"quantity": 1})


class TestAtomicCommit:

    def test_batch_applies_together(self, store):
        store.create("inventory", {"id": "INV-1", "quantity": 100}, "INV")
        store.commit([
            RecordWrite("inventory", "INV-1", {"quantity": 70}, expected_version=1),
            RecordWrite("stock_movements", "MOV-1", {"itemId": "INV-1"}, create=True),
        ])
        assert store.get("inventory", "INV-1").data["quantity"] == 70
        assert store.get("stock_movements", "MOV-1").version == 1

    def test_failed_version_check_writes_nothing(self, store):
        store.create("inventory", {"id": "INV-1", "quantity": 100}, "INV")
        with pytest.raises(OptimisticLockError):
            store.commit([
                RecordWrite("stock_movements", "MOV-1", {"itemId": "INV-1"}, create=True),
                RecordWrite("inventory", "INV-1", {"quantity": 70}, expected_version=5),
            ])
        assert store.list("stock_movements") == []
        stored = store.get("inventory", "INV-1")
        assert stored.data["quantity"] == 100
        assert stored.version == 1

    def test_duplicate_create_in_batch_writes_nothing(self, store):
        store.create("inventory", {"id": "INV-1", "quantity": 100}, "INV")
        store.create("stock_movements", {"id": "MOV-1"}, "MOV")
        with pytest.raises(RecordAlreadyExistsError):
            store.commit([
                RecordWrite("inventory", "INV-1", {"quantity": 70}, expected_version=1),
                RecordWrite("stock_movements", "MOV-1", {"itemId": "INV-1"}, create=True),
            ])
        assert store.get("inventory", "INV-1").data["quantity"] == 100


class TestTrash:

    def test_soft_delete_hides_from_list(self, store, clock):
        store.create("employees", {"id": "EMP-1"}, "EMP")
        store.create("employees", {"id": "EMP-2"}, "EMP")
        store.soft_delete("employees", "EMP-1")

        assert [r["id"] for r in store.list("employees")] == ["EMP-2"]
        everyone = store.list("employees", include_deleted=True)
        assert len(everyone) == 2

        stored = store.get("employees", "EMP-1")
        assert stored.is_deleted
        assert stored.data["deletedAt"] == clock.now().isoformat()

    def test_restore(self, store):
        store.create("employees", {"id": "EMP-1"}, "EMP")
        store.soft_delete("employees", "EMP-1")
        store.restore("employees", "EMP-1")

        stored = store.get("employees", "EMP-1")
        assert not stored.is_deleted
        assert "deletedAt" not in stored.data
        assert stored.version == 3

    def test_purge_removes_only_deleted(self, store, captured_logs):
        store.create("inventory", {"id": "INV-1"}, "INV")
        store.create("inventory", {"id": "INV-2"}, "INV")
        store.soft_delete("inventory", "INV-2")

        assert store.purge_deleted("inventory") == 1
        assert store.purge_deleted("inventory") == 0
        with pytest.raises(RecordNotFoundError):
            store.get("inventory", "INV-2")
        assert store.get("inventory", "INV-1").version == 1

        trash_logs = [r for r in captured_logs() if r["message"] == "store_trash_emptied"]
        assert [r["purged"] for r in trash_logs] == [1, 0]


def test_new_record_id_shape():
    first = new_record_id("mov")
    assert first.startswith("MOV-")
    assert len(first) == len("MOV-") + 12
    assert first != new_record_id("mov")


# =============================================================================
# SQL backend: a writer that commits between our read and our write
# =============================================================================


class _RacingSqlStore(SqlRecordStore):
    """
    Commits a competing update from a second connection right after
    ``_apply`` reads the row, before it writes.
    """

    def __init__(self, session_factory, clock, competing_data):
        super().__init__(session_factory, clock)
        self._competing_data = competing_data
        self.races = 0

    def _find(self, session, collection, record_id, for_update=False):
        row = super()._find(session, collection, record_id, for_update=for_update)
        if for_update and row is not None and self._competing_data is not None:
            data, self._competing_data = self._competing_data, None
            with self._session_factory() as other:
                other.execute(
                    update(RecordModel)
                    .where(
                        RecordModel.collection == collection,
                        RecordModel.record_id == record_id,
                    )
                    .values(data=data, version=RecordModel.version + 1)
                )
                other.commit()
            self.races += 1
        return row


@pytest.fixture
def file_session_factory(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'race.db'}")
    create_tables(engine)
    yield sessionmaker(bind=engine, expire_on_commit=False)
    engine.dispose()


@pytest.mark.sql
class TestSqlLostUpdate:

    def test_write_after_competing_commit_rejected(self, file_session_factory, clock):
        store = _RacingSqlStore(
            file_session_factory, clock, {"id": "INV-1", "quantity": 2},
        )
        store.create("inventory", {"id": "INV-1", "quantity": 10}, "INV")

        with pytest.raises(OptimisticLockError) as exc_info:
            store.commit([
                RecordWrite("inventory", "INV-1", {"quantity": 5}, expected_version=1),
            ])

        assert store.races == 1
        assert exc_info.value.expected_version == 1
        stored = store.get("inventory", "INV-1")
        assert stored.data["quantity"] == 2
        assert stored.version == 2

    def test_unversioned_save_does_not_overwrite_competing_commit(self, file_session_factory, clock):
        store = _RacingSqlStore(
            file_session_factory, clock, {"id": "INV-1", "quantity": 2},
        )
        store.create("inventory", {"id": "INV-1", "quantity": 10}, "INV")

        with pytest.raises(OptimisticLockError):
            store.save("inventory", "INV-1", {"quantity": 5})

        assert store.get("inventory", "INV-1").data["quantity"] == 2
