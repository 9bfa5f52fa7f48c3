"""Change request Pydantic schemas (request DTOs and response models)."""

from typing import Any

from pydantic import Field

from vendor_mdm.schemas.common import CamelModel, UtcDatetime

class ChangeRequestCreate(CamelModel):
    requester_id: str = Field(min_length=1, max_length=36)
    sap_vendor_id: str | None = Field(default=None, max_length=50)
    payload: dict[str, Any] = Field(default_factory=dict)

class ChangeRequestOut(CamelModel):
    id: str
    status: str
    sap_vendor_id: str | None = None
    requester_id: str
    vendor_application_id: str | None = None
    created_at: UtcDatetime
    updated_at: UtcDatetime

class ChangeRequestDetail(ChangeRequestOut):
    """Hybrid read: relational metadata plus the archived payload (if any)."""

    payload: Any = None

class AttachmentCreate(CamelModel):
    file_name: str = Field(min_length=1, max_length=255)
    blob_url: str = Field(min_length=1, max_length=1000)

class AttachmentOut(CamelModel):
    id: str
    linked_entity_id: str
    file_name: str
    blob_url: str
    uploaded_at: UtcDatetime
