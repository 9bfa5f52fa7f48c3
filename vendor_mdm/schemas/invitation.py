"""Invitation Pydantic schemas (request DTOs and response models)."""

from pydantic import Field, field_validator

from vendor_mdm.schemas.common import CamelModel, UtcDatetime, normalize_email

class InvitationCreate(CamelModel):
    vendor_legal_name: str = Field(min_length=1, max_length=200)
    primary_contact_email: str = Field(min_length=3, max_length=255)
    expiration_days: int = Field(default=14, ge=1, le=365)
    notes: str | None = Field(default=None, max_length=1000)

    @field_validator("primary_contact_email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return normalize_email(value)

class InvitationCreated(CamelModel):
    invitation_id: str
    invitation_token: str
    invitation_link: str
    expires_at: UtcDatetime
    status: str

class InvitationValidation(CamelModel):
    is_valid: bool
    error_message: str | None = None
    vendor_legal_name: str | None = None
    primary_contact_email: str | None = None
    expires_at: UtcDatetime | None = None

class InvitationDetails(CamelModel):
    """Non-sensitive fields used to pre-fill the registration form."""

    vendor_legal_name: str
    primary_contact_email: str
    expires_at: UtcDatetime
    status: str

class InvitationOut(CamelModel):
    id: str
    vendor_legal_name: str
    primary_contact_email: str
    status: str
    invited_by_name: str
    created_at: UtcDatetime
    expires_at: UtcDatetime
    completed_at: UtcDatetime | None = None
    vendor_application_id: str | None = None

class InvitationRegistration(CamelModel):
    """Body of the registration form submitted through an invitation link."""

    company_name: str = Field(min_length=1, max_length=200)
    tax_id: str | None = Field(default=None, max_length=100)
    contact_name: str = Field(min_length=1, max_length=200)
    email: str = Field(min_length=3, max_length=255)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, value: str) -> str:
        return normalize_email(value)

class RegistrationResult(CamelModel):
    application_id: str
    status: str
    message: str

class ExpireSweepResult(CamelModel):
    expired_count: int

class InvitationEmailMessage(CamelModel):
    """Queue message consumed by the invitation email worker."""

    invitation_id: str
    vendor_name: str
    email: str
    token: str
    expires_at: UtcDatetime
    invited_by_name: str
    company_name: str | None = None
    notes: str | None = None

class EmailSendResult(CamelModel):
    success: bool
    message: str
