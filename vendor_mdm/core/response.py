"""Standardized JSON response envelope helpers."""


import math
from typing import Generic, TypeVar

from pydantic import BaseModel
from pydantic.alias_generators import to_camel

from vendor_mdm.core.pagination import PageMeta

T = TypeVar("T")

_ENVELOPE_CONFIG = {
    "populate_by_name": True,
    "alias_generator": to_camel,
}


class DataResponse(BaseModel, Generic[T]):
    """Single-item response envelope: `{ data: {...} }`"""

    data: T

    model_config = _ENVELOPE_CONFIG


class SideEffectReport(BaseModel):
    """Outcome of one best-effort step that ran after the primary write."""

    name: str
    succeeded: bool
    error: str | None = None

    model_config = _ENVELOPE_CONFIG


class OutcomeResponse(BaseModel, Generic[T]):
    """Write response envelope: `{ data: {...}, sideEffects: [...] }`"""

    data: T
    side_effects: list[SideEffectReport] = []

    model_config = _ENVELOPE_CONFIG


class ListResponse(BaseModel, Generic[T]):
    """Paginated list response envelope: `{ data: [...], meta: {...} }`"""

    data: list[T]
    meta: PageMeta

    model_config = _ENVELOPE_CONFIG


def paginated(items: list, total: int, page: int, page_size: int) -> dict:
    """Build a paginated response dict for use with ListResponse."""
    return {
        "data": items,
        "meta": {
            "total_count": total,
            "page": page,
            "page_size": page_size,
            "pages": math.ceil(total / page_size) if page_size else 1,
        },
    }


def outcome(data, side_effects) -> dict:
    """Build an OutcomeResponse dict from a primary result and its side-effect results."""
    return {
        "data": data,
        "side_effects": [
            {"name": r.name, "succeeded": r.succeeded, "error": r.error} for r in side_effects
        ],
    }
