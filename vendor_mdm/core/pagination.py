"""Pagination helpers for list endpoints."""


from fastapi import Query
from pydantic import BaseModel
from pydantic.alias_generators import to_camel, to_snake


class PaginationParams:
    """FastAPI dependency for `?page=1&limit=20&sort=createdAt&order=desc`.

    ``sort`` accepts camelCase or snake_case; repositories ignore columns they
    do not list as sortable.
    """

    def __init__(
        self,
        page: int = Query(default=1, ge=1, description="Page number (1-based)"),
        limit: int = Query(default=20, ge=1, le=200, description="Items per page"),
        sort: str = Query(default="createdAt", description="Sort field"),
        order: str = Query(default="desc", pattern="^(asc|desc)$", description="Sort order"),
    ):
        self.page = page
        self.page_size = limit
        self.sort = to_snake(sort)
        self.order = order

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.page_size

    @property
    def descending(self) -> bool:
        return self.order == "desc"


class PageMeta(BaseModel):
    total_count: int
    page: int
    page_size: int
    pages: int

    model_config = {"populate_by_name": True, "alias_generator": to_camel}
