"""Document store: flexible JSON items addressed by container, partition key and id.

Holds the audit copies of submitted payloads, the domain event log and the
admin-editable metadata. Nothing here is authoritative; the relational store
is the system of record.
"""

from __future__ import annotations

import copy
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any

from sqlalchemy import delete, select

from vendor_mdm.core.exceptions import ConflictError
from vendor_mdm.db.base import create_engine_for, create_session_factory
from vendor_mdm.stores.models import DocumentItem, StoreBase

logger = logging.getLogger(__name__)

# Container names
CHANGE_REQUEST_DATA = "ChangeRequestData"
INVITATION_ARTIFACTS = "InvitationArtifacts"
DOMAIN_EVENTS = "DomainEvents"
REFERENCE_DATA = "ReferenceData"
VALIDATION_RULES = "ValidationRules"


def _matches(item: dict[str, Any], filters: dict[str, Any] | None) -> bool:
    if not filters:
        return True
    return all(item.get(key) == value for key, value in filters.items())


class DocumentStore(ABC):
    """Interface every document store backend implements.

    Items are JSON-safe dicts carrying an ``id`` key. ``upsert_item``
    replaces; ``create_item`` refuses to overwrite.
    """

    async def initialize(self) -> None:
        """Create backing tables/containers if needed."""

    async def close(self) -> None:
        """Release connections."""

    @abstractmethod
    async def upsert_item(
        self, container: str, item: dict[str, Any], partition_key: str
    ) -> dict[str, Any]: ...

    @abstractmethod
    async def create_item(
        self, container: str, item: dict[str, Any], partition_key: str
    ) -> dict[str, Any]: ...

    @abstractmethod
    async def read_item(
        self, container: str, item_id: str, partition_key: str
    ) -> dict[str, Any] | None: ...

    @abstractmethod
    async def query_items(
        self,
        container: str,
        *,
        partition_key: str | None = None,
        filters: dict[str, Any] | None = None,
    ) -> list[dict[str, Any]]: ...

    @abstractmethod
    async def delete_item(self, container: str, item_id: str, partition_key: str) -> bool: ...

    @abstractmethod
    async def reset(self) -> None: ...


class InMemoryDocumentStore(DocumentStore):
    """Process-local store for tests and single-process development."""

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._items: dict[tuple[str, str, str], dict[str, Any]] = {}

    async def upsert_item(self, container, item, partition_key):
        with self._lock:
            self._items[(container, partition_key, item["id"])] = copy.deepcopy(item)
            return copy.deepcopy(item)

    async def create_item(self, container, item, partition_key):
        with self._lock:
            key = (container, partition_key, item["id"])
            if key in self._items:
                raise ConflictError(f"Item '{item['id']}' already exists in {container}")
            self._items[key] = copy.deepcopy(item)
            return copy.deepcopy(item)

    async def read_item(self, container, item_id, partition_key):
        with self._lock:
            item = self._items.get((container, partition_key, item_id))
            return copy.deepcopy(item) if item is not None else None

    async def query_items(self, container, *, partition_key=None, filters=None):
        with self._lock:
            return [
                copy.deepcopy(item)
                for (c, pk, _), item in self._items.items()
                if c == container
                and (partition_key is None or pk == partition_key)
                and _matches(item, filters)
            ]

    async def delete_item(self, container, item_id, partition_key):
        with self._lock:
            return self._items.pop((container, partition_key, item_id), None) is not None

    async def reset(self) -> None:
        with self._lock:
            self._items.clear()


class SqlDocumentStore(DocumentStore):
    """Document store on a SQL database (JSON column), independent of the relational store.

    Every call runs in its own short transaction, so a document write never
    shares a commit with the relational write that preceded it.
    """

    def __init__(self, url: str) -> None:
        self._engine = create_engine_for(url)
        self._session_factory = create_session_factory(self._engine)

    async def initialize(self) -> None:
        async with self._engine.begin() as conn:
            await conn.run_sync(StoreBase.metadata.create_all, tables=[DocumentItem.__table__])

    async def close(self) -> None:
        await self._engine.dispose()

    async def upsert_item(self, container, item, partition_key):
        async with self._session_factory() as session:
            row = await session.get(DocumentItem, (container, partition_key, item["id"]))
            if row is None:
                session.add(
                    DocumentItem(
                        container=container, partition_key=partition_key, id=item["id"], body=item
                    )
                )
            else:
                row.body = item
            await session.commit()
        return item

    async def create_item(self, container, item, partition_key):
        async with self._session_factory() as session:
            existing = await session.get(DocumentItem, (container, partition_key, item["id"]))
            if existing is not None:
                raise ConflictError(f"Item '{item['id']}' already exists in {container}")
            session.add(
                DocumentItem(
                    container=container, partition_key=partition_key, id=item["id"], body=item
                )
            )
            await session.commit()
        return item

    async def read_item(self, container, item_id, partition_key):
        async with self._session_factory() as session:
            row = await session.get(DocumentItem, (container, partition_key, item_id))
            return dict(row.body) if row is not None else None

    async def query_items(self, container, *, partition_key=None, filters=None):
        q = select(DocumentItem).where(DocumentItem.container == container)
        if partition_key is not None:
            q = q.where(DocumentItem.partition_key == partition_key)
        q = q.order_by(DocumentItem.created_at.asc())
        async with self._session_factory() as session:
            rows = (await session.execute(q)).scalars().all()
        # JSON path filtering differs per dialect; filter in Python instead
        return [dict(row.body) for row in rows if _matches(row.body, filters)]

    async def delete_item(self, container, item_id, partition_key):
        async with self._session_factory() as session:
            result = await session.execute(
                delete(DocumentItem)
                .where(DocumentItem.container == container)
                .where(DocumentItem.partition_key == partition_key)
                .where(DocumentItem.id == item_id)
            )
            await session.commit()
        return (result.rowcount or 0) > 0

    async def reset(self) -> None:
        async with self._session_factory() as session:
            await session.execute(delete(DocumentItem))
            await session.commit()


def build_document_store(backend: str, url: str) -> DocumentStore:
    if backend == "memory":
        return InMemoryDocumentStore()
    if backend == "sql":
        return SqlDocumentStore(url)
    raise ValueError(f"Unsupported document store backend: {backend!r}")
