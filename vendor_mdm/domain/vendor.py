"""SQLAlchemy ORM model for vendor onboarding applications.

Domain model pattern:
  - Inherit Base, TimestampMixin
  - UUID primary key generated on insert
  - created_at / updated_at (from TimestampMixin)
"""

from __future__ import annotations

import enum
import uuid
from typing import Optional

from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from vendor_mdm.db.base import Base
from vendor_mdm.domain.mixins import TimestampMixin


class ApplicationStatus(enum.StrEnum):
    PENDING = "Pending"
    SUBMITTED = "Submitted"


class RegistrationType(enum.StrEnum):
    SELF_REGISTRATION = "SelfRegistration"
    INVITATION = "Invitation"


class VendorApplication(Base, TimestampMixin):
    __tablename__ = "vendor_applications"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    company_name: Mapped[str] = mapped_column(String(200), nullable=False, index=True)
    tax_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    contact_name: Mapped[str] = mapped_column(String(200), nullable=False)
    contact_email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)

    status: Mapped[str] = mapped_column(
        String(20), default=ApplicationStatus.PENDING, nullable=False
    )
    registration_type: Mapped[str] = mapped_column(
        String(20), default=RegistrationType.SELF_REGISTRATION, nullable=False
    )
    # Set when the application came in through an invitation link
    invitation_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
