"""ORM tables backing the SQL document store and SQL queue.

These live on their own declarative base because each store may point at a
different database from the relational system of record.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Integer, String
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from vendor_mdm.core.clock import utcnow


class StoreBase(DeclarativeBase):
    """Base for store-internal tables (not managed by Alembic)."""


class DocumentItem(StoreBase):
    __tablename__ = "document_items"

    container: Mapped[str] = mapped_column(String(100), primary_key=True)
    partition_key: Mapped[str] = mapped_column(String(255), primary_key=True)
    id: Mapped[str] = mapped_column(String(255), primary_key=True)
    body: Mapped[Any] = mapped_column(JSON, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


class QueueMessageRow(StoreBase):
    __tablename__ = "queue_messages"

    message_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    queue_name: Mapped[str] = mapped_column(String(100), nullable=False, index=True)
    body: Mapped[Any] = mapped_column(JSON, nullable=False)
    # "pending" | "inflight"; acked and discarded rows are deleted
    status: Mapped[str] = mapped_column(String(20), nullable=False, index=True)
    delivery_count: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
