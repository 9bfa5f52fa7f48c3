"""Message queue backends: named FIFO queues with ack/nack delivery."""

from __future__ import annotations

import copy
import logging
import threading
import uuid
from abc import ABC, abstractmethod
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from sqlalchemy import delete, func, select, update

from vendor_mdm.core.clock import utcnow
from vendor_mdm.db.base import create_engine_for, create_session_factory
from vendor_mdm.stores.models import QueueMessageRow, StoreBase

logger = logging.getLogger(__name__)

# Queue names
INVITATION_EMAILS = "invitation-emails"
VENDOR_CHANGES = "vendor-changes"


@dataclass
class QueueMessage:
    message_id: str
    queue_name: str
    body: dict[str, Any]
    delivery_count: int = 0
    enqueued_at: datetime = field(default_factory=utcnow)


def _new_message_id() -> str:
    return f"msg_{uuid.uuid4().hex[:16]}"


class QueueBackend(ABC):
    """Interface every queue backend implements.

    ``dequeue`` moves a message in flight and bumps its delivery count;
    ``ack`` removes it; ``nack`` either puts it back at the head of its queue
    or discards it.
    """

    async def initialize(self) -> None:
        """Create backing tables if needed."""

    async def close(self) -> None:
        """Release connections."""

    @abstractmethod
    async def enqueue(self, queue_name: str, body: dict[str, Any]) -> QueueMessage: ...

    @abstractmethod
    async def dequeue(self, queue_name: str) -> QueueMessage | None: ...

    @abstractmethod
    async def ack(self, message_id: str) -> None: ...

    @abstractmethod
    async def nack(self, message_id: str, *, requeue: bool = True) -> QueueMessage | None: ...

    @abstractmethod
    async def pending_count(self, queue_name: str) -> int: ...

    @abstractmethod
    async def reset(self) -> None: ...


class InMemoryQueueBackend(QueueBackend):
    """Queue used by tests and single-process development."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._queues: dict[str, deque[QueueMessage]] = {}
        self._inflight: dict[str, QueueMessage] = {}

    async def enqueue(self, queue_name, body):
        with self._lock:
            msg = QueueMessage(
                message_id=_new_message_id(),
                queue_name=queue_name,
                body=copy.deepcopy(body),
            )
            self._queues.setdefault(queue_name, deque()).append(msg)
            return msg

    async def dequeue(self, queue_name):
        with self._lock:
            queue = self._queues.setdefault(queue_name, deque())
            if not queue:
                return None
            msg = queue.popleft()
            msg.delivery_count += 1
            self._inflight[msg.message_id] = msg
            return msg

    async def ack(self, message_id):
        with self._lock:
            self._inflight.pop(message_id, None)

    async def nack(self, message_id, *, requeue=True):
        with self._lock:
            msg = self._inflight.pop(message_id, None)
            if msg is None:
                return None
            if requeue:
                self._queues.setdefault(msg.queue_name, deque()).appendleft(msg)
            return msg

    async def pending_count(self, queue_name):
        with self._lock:
            return len(self._queues.get(queue_name, deque()))

    def peek_all(self, queue_name: str) -> list[QueueMessage]:
        """Return copies of the pending messages without consuming them."""
        with self._lock:
            return [copy.deepcopy(m) for m in self._queues.get(queue_name, deque())]

    async def reset(self) -> None:
        with self._lock:
            self._queues.clear()
            self._inflight.clear()


class SqlQueueBackend(QueueBackend):
    """Durable queue on a SQL table; survives restarts of the API and the worker."""

    def __init__(self, url: str) -> None:
        self._engine = create_engine_for(url)
        self._session_factory = create_session_factory(self._engine)

    async def initialize(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(
                StoreBase.metadata.create_all, tables=[QueueMessageRow.__table__]
            )

    async def close(self) -> None:
        await self._engine.dispose()

    @staticmethod
    def _to_message(row: QueueMessageRow) -> QueueMessage:
        return QueueMessage(
            message_id=row.message_id,
            queue_name=row.queue_name,
            body=dict(row.body),
            delivery_count=row.delivery_count,
            enqueued_at=row.created_at,
        )

    async def enqueue(self, queue_name, body):
        row = QueueMessageRow(
            message_id=_new_message_id(),
            queue_name=queue_name,
            body=body,
            status="pending",
            delivery_count=0,
            created_at=utcnow(),
        )
        async with self._session_factory() as session:
            session.add(row)
            await session.commit()
        return self._to_message(row)

    async def dequeue(self, queue_name):
        async with self._session_factory() as session:
            # Claim with a conditional update so two workers never take the same row
            while True:
                row = (
                    await session.execute(
                        select(QueueMessageRow)
                        .where(QueueMessageRow.queue_name == queue_name)
                        .where(QueueMessageRow.status == "pending")
                        .order_by(QueueMessageRow.created_at.asc(), QueueMessageRow.message_id.asc())
                        .limit(1)
                    )
                ).scalars().first()
                if row is None:
                    await session.commit()
                    return None
                claimed = await session.execute(
                    update(QueueMessageRow)
                    .where(QueueMessageRow.message_id == row.message_id)
                    .where(QueueMessageRow.status == "pending")
                    .values(
                        status="inflight",
                        delivery_count=QueueMessageRow.delivery_count + 1,
                        updated_at=utcnow(),
                    )
                    .execution_options(synchronize_session=False)
                )
                await session.commit()
                if claimed.rowcount:
                    msg = self._to_message(row)
                    msg.delivery_count += 1
                    return msg

    async def ack(self, message_id):
        async with self._session_factory() as session:
            await session.execute(
                delete(QueueMessageRow)
                .where(QueueMessageRow.message_id == message_id)
                .where(QueueMessageRow.status == "inflight")
            )
            await session.commit()

    async def nack(self, message_id, *, requeue=True):
        async with self._session_factory() as session:
            row = await session.get(QueueMessageRow, message_id)
            if row is None or row.status != "inflight":
                await session.commit()
                return None
            msg = self._to_message(row)
            if requeue:
                row.status = "pending"
            else:
                # Dropped for good, like an acked message
                await session.delete(row)
            await session.commit()
            return msg

    async def pending_count(self, queue_name):
        async with self._session_factory() as session:
            total = (
                await session.execute(
                    select(func.count())
                    .select_from(QueueMessageRow)
                    .where(QueueMessageRow.queue_name == queue_name)
                    .where(QueueMessageRow.status == "pending")
                )
            ).scalar_one()
        return int(total)

    async def reset(self) -> None:
        async with self._session_factory() as session:
            await session.execute(delete(QueueMessageRow))
            await session.commit()


def build_queue_backend(backend: str, url: str) -> QueueBackend:
    if backend == "memory":
        return InMemoryQueueBackend()
    if backend == "sql":
        return SqlQueueBackend(url)
    raise ValueError(f"Unsupported queue backend: {backend!r}")
