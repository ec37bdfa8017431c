"""
In-memory record store.

Fake used by tests and by callers that do not need durability.  Reads and
writes deep-copy so a caller holding a returned dict can never mutate the
stored state behind the store's back.
"""

from __future__ import annotations

import copy
import threading
from typing import Any, Sequence

from mill_kernel.domain.clock import Clock, SystemClock
from mill_kernel.exceptions import (
    OptimisticLockError,
    RecordAlreadyExistsError,
    RecordNotFoundError,
)
from mill_kernel.logging_config import get_logger
from mill_kernel.store.base import RecordWrite, StoredRecord, stamp_new_record

logger = get_logger("store.memory")


class InMemoryRecordStore:
    """
    Dict-backed ``RecordStore``.

    Guarantees:
        - ``commit()`` validates every write before applying any of them.
        - Insertion order is preserved by ``list()``.
    """

    def __init__(self, clock: Clock | None = None):
        self._clock = clock or SystemClock()
        # collection -> record_id -> (data, version)
        self._collections: dict[str, dict[str, tuple[dict[str, Any], int]]] = {}
        self._lock = threading.Lock()

    def _rows(self, collection: str) -> dict[str, tuple[dict[str, Any], int]]:
        return self._collections.setdefault(collection, {})

    def get(self, collection: str, record_id: str) -> StoredRecord:
        with self._lock:
            row = self._rows(collection).get(record_id)
            if row is None:
                raise RecordNotFoundError(collection, record_id)
            data, version = row
            return StoredRecord(
                collection=collection,
                record_id=record_id,
                data=copy.deepcopy(data),
                version=version,
            )

    def list(
        self, collection: str, include_deleted: bool = False,
    ) -> list[dict[str, Any]]:
        with self._lock:
            return [
                copy.deepcopy(data)
                for data, _ in self._rows(collection).values()
                if include_deleted or not data.get("isDeleted", False)
            ]

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
        with self._lock:
            for write in writes:
                self._check(write)
            for write in writes:
                rows = self._rows(write.collection)
                version = 1 if write.create else rows[write.record_id][1] + 1
                body = copy.deepcopy(write.data)
                body["id"] = write.record_id
                rows[write.record_id] = (body, version)
        logger.debug(
            "store_commit_applied",
            extra={"backend": "memory", "write_count": len(writes)},
        )

    def _check(self, write: RecordWrite) -> None:
        rows = self._rows(write.collection)
        row = rows.get(write.record_id)
        if write.create:
            if row is not None:
                raise RecordAlreadyExistsError(write.collection, write.record_id)
            return
        if row is None:
            raise RecordNotFoundError(write.collection, write.record_id)
        if write.expected_version is not None and row[1] != write.expected_version:
            raise OptimisticLockError(
                write.collection, write.record_id, write.expected_version, row[1],
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
        with self._lock:
            rows = self._rows(collection)
            doomed = [rid for rid, (data, _) in rows.items() if data.get("isDeleted")]
            for rid in doomed:
                del rows[rid]
        logger.info(
            "store_trash_emptied",
            extra={"collection": collection, "purged": len(doomed)},
        )
        return len(doomed)
