"""SQLAlchemy ORM model for vendor invitations (tokenized registration links)."""

from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from vendor_mdm.db.base import Base
from vendor_mdm.domain.mixins import TimestampMixin


class InvitationStatus(enum.StrEnum):
    PENDING = "Pending"
    ACCEPTED = "Accepted"
    EXPIRED = "Expired"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"


# An email with an invitation in one of these states cannot be invited again
ACTIVE_INVITATION_STATUSES = (InvitationStatus.PENDING, InvitationStatus.ACCEPTED)


class VendorInvitation(Base, TimestampMixin):
    __tablename__ = "vendor_invitations"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    invitation_token: Mapped[str] = mapped_column(
        String(100), nullable=False, unique=True, index=True
    )
    vendor_legal_name: Mapped[str] = mapped_column(String(200), nullable=False)
    primary_contact_email: Mapped[str] = mapped_column(String(255), nullable=False, index=True)
    invited_by: Mapped[str] = mapped_column(String(36), nullable=False)
    invited_by_name: Mapped[str] = mapped_column(String(200), nullable=False)

    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), default=InvitationStatus.PENDING, nullable=False, index=True
    )
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    vendor_application_id: Mapped[Optional[str]] = mapped_column(String(36), nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
