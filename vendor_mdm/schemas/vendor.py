"""Vendor application and vendor lookup Pydantic schemas."""

from typing import Any

from pydantic import Field, field_validator

from vendor_mdm.schemas.common import CamelModel, UtcDatetime, normalize_email

class VendorApplicationCreate(CamelModel):
    company_name: str = Field(min_length=1, max_length=200)
    tax_id: str | None = Field(default=None, max_length=100)
    contact_name: str = Field(min_length=1, max_length=200)
    contact_email: str = Field(min_length=3, max_length=255)
    # Free-form remainder of the onboarding form (banking, addresses, ...)
    details: dict[str, Any] = Field(default_factory=dict)

    @field_validator("contact_email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return normalize_email(value)

class VendorApplicationOut(CamelModel):
    id: str
    company_name: str
    tax_id: str | None = None
    contact_name: str
    contact_email: str
    status: str
    registration_type: str
    invitation_id: str | None = None
    created_at: UtcDatetime
    updated_at: UtcDatetime

class VendorApplicationSubmitted(VendorApplicationOut):
    change_request_id: str

class VendorLookupOut(CamelModel):
    vendor_id: str
    name: str
    address: str
    source: str
