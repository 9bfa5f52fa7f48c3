"""Pydantic models for document-store items (stored as camelCase JSON)."""

from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import Any

from pydantic import Field

from vendor_mdm.core.clock import utcnow
from vendor_mdm.schemas.common import CamelModel


def _new_id() -> str:
    return str(uuid.uuid4())


class DocumentModel(CamelModel):
    def to_item(self) -> dict[str, Any]:
        """JSON-safe dict with camelCase keys, ready for the document store."""
        return self.model_dump(mode="json", by_alias=True)


class ChangeRequestData(DocumentModel):
    """Audit copy of a change request payload. ``id`` and ``request_id`` equal the SQL id."""

    id: str
    request_id: str  # partition key
    payload: Any = None
    old_value: Any = None  # snapshot of upstream data before the change
    new_value: Any = None


class InvitationArtifact(DocumentModel):
    id: str  # equals the SQL invitation id
    invitation_id: str  # partition key
    vendor_legal_name: str
    primary_contact_email: str
    invited_by: str
    invited_by_name: str
    token: str
    expires_at: datetime
    notes: str | None = None
    status: str
    full_payload: Any = None
    created_at: datetime = Field(default_factory=utcnow)


class InvitationCompletionArtifact(DocumentModel):
    id: str = Field(default_factory=_new_id)
    invitation_id: str  # partition key
    vendor_application_id: str
    submitted_data: Any = None
    completed_at: datetime = Field(default_factory=utcnow)


class DomainEvent(DocumentModel):
    id: str = Field(default_factory=_new_id)
    event_type: str  # partition key
    entity_id: str
    timestamp: datetime = Field(default_factory=utcnow)
    data: Any = None


class ReferenceDataItem(DocumentModel):
    id: str = ""  # e.g. "COUNTRY_US"; generated when blank
    category: str = Field(min_length=1)  # partition key: Country, Currency, VendorType
    code: str
    description: str = ""
    sap_code: str | None = None
    is_active: bool = True


class RuleType(enum.StrEnum):
    REQUIRED = "Required"
    REGEX = "Regex"


class ValidationRule(DocumentModel):
    id: str = ""
    entity_type: str = Field(min_length=1)  # partition key: VendorApplication, ...
    field_name: str = Field(min_length=1)
    rule_type: RuleType = RuleType.REGEX
    rule_value: str = ""  # regex pattern for Regex rules
    error_message: str = ""
