"""
SQL-backed record store.

Responsibility:
    ``RecordStore`` implementation on SQLAlchemy.  Each public write method
    owns its transaction boundary: it opens a session, applies the writes,
    commits on success and rolls back on any failure before re-raising.

Failure modes:
    - RecordNotFoundError / RecordAlreadyExistsError / OptimisticLockError
      from ``commit()``; the whole batch is rolled back.
    - SQLAlchemy errors (I/O, constraint) propagate after rollback.
"""

from __future__ import annotations

import copy
from typing import Any, Sequence

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, sessionmaker

from mill_kernel.db.engine import session_scope
from mill_kernel.domain.clock import Clock, SystemClock
from mill_kernel.exceptions import (
    OptimisticLockError,
    RecordAlreadyExistsError,
    RecordNotFoundError,
)
from mill_kernel.logging_config import get_logger
from mill_kernel.store.base import RecordWrite, StoredRecord, stamp_new_record
from mill_kernel.store.orm import RecordModel

logger = get_logger("store.sql")


class SqlRecordStore:
    """
    ``RecordStore`` persisted in the ``records`` table.

    Usage::

        engine = init_engine_from_url("sqlite:///mill.db")
        create_tables(engine)
        store = SqlRecordStore(get_session_factory(), clock)
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()

    @staticmethod
    def _find(
        session: Session,
        collection: str,
        record_id: str,
        for_update: bool = False,
    ) -> RecordModel | None:
        stmt = select(RecordModel).where(
            RecordModel.collection == collection,
            RecordModel.record_id == record_id,
        )
        if for_update:
            # Row-level lock where the dialect supports it (ignored by SQLite)
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        return session.execute(stmt).scalar_one_or_none()

    def get(self, collection: str, record_id: str) -> StoredRecord:
        with self._session_factory() as session:
            row = self._find(session, collection, record_id)
            if row is None:
                raise RecordNotFoundError(collection, record_id)
            return StoredRecord(
                collection=collection,
                record_id=record_id,
                data=copy.deepcopy(row.data),
                version=row.version,
            )

    def list(
        self, collection: str, include_deleted: bool = False,
    ) -> list[dict[str, Any]]:
        stmt = select(RecordModel).where(RecordModel.collection == collection)
        if not include_deleted:
            stmt = stmt.where(RecordModel.is_deleted.is_(False))
        stmt = stmt.order_by(RecordModel.seq)
        with self._session_factory() as session:
            return [copy.deepcopy(row.data) for row in session.execute(stmt).scalars()]

    def create(
        self, collection: str, data: dict[str, Any], id_prefix: str,
    ) -> dict[str, Any]:
        record = stamp_new_record(data, id_prefix, self._clock)
        self.commit([
            RecordWrite(collection, record["id"], record, create=True),
        ])
        return copy.deepcopy(record)

    def save(
        self,
        collection: str,
        record_id: str,
        data: dict[str, Any],
        expected_version: int | None = None,
    ) -> int:
        self.commit([
            RecordWrite(collection, record_id, data, expected_version=expected_version),
        ])
        return self.get(collection, record_id).version

    def commit(self, writes: Sequence[RecordWrite]) -> None:
        with session_scope(self._session_factory) as session:
            for write in writes:
                self._apply(session, write)
        logger.debug(
            "store_commit_applied",
            extra={"backend": "sql", "write_count": len(writes)},
        )

    def _apply(self, session: Session, write: RecordWrite) -> None:
        body = copy.deepcopy(write.data)
        body["id"] = write.record_id
        row = self._find(session, write.collection, write.record_id, for_update=True)

        if write.create:
            if row is not None:
                raise RecordAlreadyExistsError(write.collection, write.record_id)
            session.add(RecordModel(
                collection=write.collection,
                record_id=write.record_id,
                data=body,
                version=1,
                is_deleted=bool(body.get("isDeleted", False)),
            ))
            try:
                session.flush()
            except IntegrityError as exc:
                # Another transaction inserted the same id after our SELECT
                raise RecordAlreadyExistsError(write.collection, write.record_id) from exc
            return

        if row is None:
            raise RecordNotFoundError(write.collection, write.record_id)
        read_version = row.version
        if write.expected_version is not None and read_version != write.expected_version:
            raise OptimisticLockError(
                write.collection, write.record_id, write.expected_version, read_version,
            )

        # Compare-and-swap on the version that was read: a writer that
        # committed in between leaves zero matching rows.
        stmt = (
            update(RecordModel)
            .where(
                RecordModel.seq == row.seq,
                RecordModel.version == read_version,
            )
            .values(
                data=body,
                version=read_version + 1,
                is_deleted=bool(body.get("isDeleted", False)),
            )
            .execution_options(synchronize_session=False)
        )
        if session.execute(stmt).rowcount == 0:
            logger.warning(
                "store_version_conflict",
                extra={
                    "collection": write.collection,
                    "record_id": write.record_id,
                    "read_version": read_version,
                },
            )
            raise OptimisticLockError(
                write.collection,
                write.record_id,
                read_version if write.expected_version is None else write.expected_version,
                None,
            )

    def soft_delete(self, collection: str, record_id: str) -> None:
        stored = self.get(collection, record_id)
        data = dict(stored.data)
        data["isDeleted"] = True
        data["deletedAt"] = self._clock.now().isoformat()
        self.save(collection, record_id, data, expected_version=stored.version)

    def restore(self, collection: str, record_id: str) -> None:
        stored = self.get(collection, record_id)
        data = dict(stored.data)
        data["isDeleted"] = False
        data.pop("deletedAt", None)
        self.save(collection, record_id, data, expected_version=stored.version)

    def purge_deleted(self, collection: str) -> int:
        with session_scope(self._session_factory) as session:
            result = session.execute(
                delete(RecordModel).where(
                    RecordModel.collection == collection,
                    RecordModel.is_deleted.is_(True),
                ).execution_options(synchronize_session=False)
            )
            purged = result.rowcount or 0
        logger.info(
            "store_trash_emptied",
            extra={"collection": collection, "purged": purged},
        )
        return purged
