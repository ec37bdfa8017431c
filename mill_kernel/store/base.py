"""
Record store contract.

Responsibility:
    Defines the persistence capability the ledger services receive by
    constructor injection: read a record with its version, list a
    collection, create, save, soft-delete, restore, purge, and commit a
    batch of writes all-or-nothing.

Architecture position:
    Kernel > Store.  The ledger functions never see this module; only the
    services in ``mill_modules`` call it.

Invariants enforced:
    - ``commit()`` applies every write or none of them.
    - A write with ``expected_version`` fails with ``OptimisticLockError``
      when the stored version differs, and nothing in the batch is written.
    - Soft delete flips ``isDeleted``; records are only physically removed by
      ``purge_deleted()`` (the "empty trash" action).

Record shape:
    Records are plain JSON-compatible dicts keyed by ``id``.  The store owns
    ``id``, ``createdAt``, ``isDeleted`` and ``deletedAt``; every other key
    belongs to the caller.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol, Sequence, runtime_checkable
from uuid import uuid4

from mill_kernel.domain.clock import Clock


@dataclass(frozen=True)
class StoredRecord:
    """A record as read from the store, with its optimistic-lock version."""

    collection: str
    record_id: str
    data: dict[str, Any]
    version: int

    @property
    def is_deleted(self) -> bool:
        return bool(self.data.get("isDeleted", False))


@dataclass(frozen=True)
class RecordWrite:
    """
    One write inside an atomic ``commit()``.

    Attributes:
        collection: Target collection name
        record_id: Target record id
        data: Full record body (replaces the stored body)
        expected_version: Version read before computing ``data``; None skips the check
        create: Insert a new record; fails if the id already exists
    """

    collection: str
    record_id: str
    data: dict[str, Any] = field(default_factory=dict)
    expected_version: int | None = None
    create: bool = False


def new_record_id(prefix: str) -> str:
    """Generate ``<PREFIX>-<hex>`` ids, e.g. ``INV-3f2a...``."""
    return f"{prefix.upper()}-{uuid4().hex[:12]}"


def stamp_new_record(
    data: dict[str, Any],
    id_prefix: str,
    clock: Clock,
) -> dict[str, Any]:
    """Copy ``data`` and fill the store-owned fields for a new record."""
    record = dict(data)
    record.setdefault("id", new_record_id(id_prefix))
    record.setdefault("createdAt", clock.now().isoformat())
    record.setdefault("isDeleted", False)
    return record


@runtime_checkable
class RecordStore(Protocol):
    """Persistence capability consumed by the ledger services."""

    def get(self, collection: str, record_id: str) -> StoredRecord:
        """Raises RecordNotFoundError when absent."""
        ...

    def list(
        self, collection: str, include_deleted: bool = False,
    ) -> list[dict[str, Any]]:
        ...

    def create(
        self, collection: str, data: dict[str, Any], id_prefix: str,
    ) -> dict[str, Any]:
        ...

    def save(
        self,
        collection: str,
        record_id: str,
        data: dict[str, Any],
        expected_version: int | None = None,
    ) -> int:
        """Replace the record body; returns the new version."""
        ...

    def commit(self, writes: Sequence[RecordWrite]) -> None:
        ...

    def soft_delete(self, collection: str, record_id: str) -> None:
        ...

    def restore(self, collection: str, record_id: str) -> None:
        ...

    def purge_deleted(self, collection: str) -> int:
        ...
