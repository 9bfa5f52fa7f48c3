"""Shared repository plumbing for the relational (authoritative) store."""

from __future__ import annotations

from typing import Any, ClassVar, Generic, TypeVar

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from vendor_mdm.core.pagination import PaginationParams
from vendor_mdm.db.base import Base

ModelT = TypeVar("ModelT", bound=Base)


class BaseRepository(Generic[ModelT]):
    """Lookups, paging and inserts for one ORM model.

    Repositories only ``flush``. The service owns the commit so that the
    primary write is durable before any side effect runs.
    """

    model: type[ModelT]
    sortable: ClassVar[frozenset[str]] = frozenset({"created_at", "updated_at"})
    default_sort: ClassVar[str] = "created_at"

    def __init__(self, session: AsyncSession):
        self._session = session

    def _where(self, query: Select, criteria: dict[str, Any]) -> Select:
        for column, value in criteria.items():
            if value is not None:
                query = query.where(getattr(self.model, column) == value)
        return query

    async def get(self, entity_id: str) -> ModelT | None:
        return await self._session.get(self.model, entity_id)

    async def find_one(self, **criteria: Any) -> ModelT | None:
        result = await self._session.execute(
            self._where(select(self.model), criteria).limit(1)
        )
        return result.scalars().first()

    async def page(
        self, pagination: PaginationParams, **criteria: Any
    ) -> tuple[list[ModelT], int]:
        """One page of rows matching *criteria* plus the total match count."""
        query = self._where(select(self.model), criteria)
        total = (
            await self._session.execute(select(func.count()).select_from(query.subquery()))
        ).scalar_one()

        sort = pagination.sort if pagination.sort in self.sortable else self.default_sort
        column = getattr(self.model, sort)
        query = (
            query.order_by(column.desc() if pagination.descending else column.asc())
            .offset(pagination.offset)
            .limit(pagination.page_size)
        )
        rows = (await self._session.execute(query)).scalars().all()
        return list(rows), total

    async def add(self, **values: Any) -> ModelT:
        row = self.model(**values)
        self._session.add(row)
        await self._session.flush()
        await self._session.refresh(row)
        return row

    async def save(self, row: ModelT) -> ModelT:
        self._session.add(row)
        await self._session.flush()
        return row
