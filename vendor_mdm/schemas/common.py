"""Shared Pydantic schema base with camelCase aliases."""

from __future__ import annotations

from datetime import datetime
from typing import Annotated

from pydantic import AfterValidator, BaseModel
from pydantic.alias_generators import to_camel

from vendor_mdm.core.clock import ensure_utc

# SQLite returns naive datetimes; API output is always UTC-aware
UtcDatetime = Annotated[datetime, AfterValidator(ensure_utc)]


class CamelModel(BaseModel):
    """All API schemas inherit from this to auto-generate camelCase aliases."""

    model_config = {
        "populate_by_name": True,
        "alias_generator": to_camel,
        "from_attributes": True,
    }


def normalize_email(value: str) -> str:
    """Emails are compared case-insensitively everywhere; store them lower-cased."""
    value = value.strip().lower()
    if "@" not in value:
        raise ValueError("must be an email address")
    return value


class HealthResponse(BaseModel):
    """Health-check response returned by /health."""
    status: str = "ok"
    app: str
    env: str
