"""
Module: mill_kernel.store.orm
Responsibility: SQLAlchemy ORM model backing ``SqlRecordStore``.  Every
    collection (inventory, stock_movements, employees, ...) shares one
    ``records`` table; the record body lives in a JSON column.

Invariants enforced:
    - (collection, record_id) is unique.
    - ``version`` starts at 1 and increases by one on every update.
    - ``is_deleted`` mirrors the body's ``isDeleted`` flag so trash queries
      do not need to look inside the JSON.
"""

from typing import Any

from sqlalchemy import JSON, Boolean, Index, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from mill_kernel.db.base import TrackedBase


class RecordModel(TrackedBase):
    """One stored record of any collection."""

    __tablename__ = "records"

    __table_args__ = (
        UniqueConstraint("collection", "record_id", name="uq_records_collection_id"),
        Index("idx_records_collection_deleted", "collection", "is_deleted"),
    )

    # Integer (not BigInteger) so SQLite treats it as ROWID and autoincrements
    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    collection: Mapped[str] = mapped_column(String(100), nullable=False)
    record_id: Mapped[str] = mapped_column(String(100), nullable=False)
    data: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    version: Mapped[int] = mapped_column(default=1, nullable=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)

    def __repr__(self) -> str:
        return (
            f"<RecordModel {self.collection}/{self.record_id} "
            f"v{self.version} deleted={self.is_deleted}>"
        )
