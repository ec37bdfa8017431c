"""Record store - the persistence capability handed to the ledger services."""

from mill_kernel.store.base import (
    RecordStore,
    RecordWrite,
    StoredRecord,
    new_record_id,
)
from mill_kernel.store.memory import InMemoryRecordStore
from mill_kernel.store.sql import SqlRecordStore

__all__ = [
    "RecordStore",
    "RecordWrite",
    "StoredRecord",
    "new_record_id",
    "InMemoryRecordStore",
    "SqlRecordStore",
]
