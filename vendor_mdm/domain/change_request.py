"""SQLAlchemy ORM models for change requests and their attachments."""

from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, String
from sqlalchemy.orm import Mapped, mapped_column

from vendor_mdm.core.clock import utcnow
from vendor_mdm.db.base import Base
from vendor_mdm.domain.mixins import TimestampMixin


class ChangeRequestStatus(enum.StrEnum):
    DRAFT = "Draft"
    SUBMITTED = "Submitted"
    APPROVED = "Approved"
    INTEGRATED = "Integrated"


class ChangeRequest(Base, TimestampMixin):
    """A proposed modification to vendor master data.

    ``status`` is the single source of truth for workflow position; the
    submitted payload lives in the document store keyed by ``id``.
    """

    __tablename__ = "change_requests"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    status: Mapped[str] = mapped_column(
        String(20), default=ChangeRequestStatus.DRAFT, nullable=False, index=True
    )
    # Null for brand-new vendors
    sap_vendor_id: Mapped[Optional[str]] = mapped_column(String(50), index=True, nullable=True)
    requester_id: Mapped[str] = mapped_column(String(36), nullable=False)
    vendor_application_id: Mapped[Optional[str]] = mapped_column(
        String(36), index=True, nullable=True
    )


class Attachment(Base):
    __tablename__ = "attachments"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid.uuid4())
    )
    # ChangeRequest or VendorApplication id (not enforced)
    linked_entity_id: Mapped[str] = mapped_column(String(36), nullable=False, index=True)
    file_name: Mapped[str] = mapped_column(String(255), nullable=False)
    blob_url: Mapped[str] = mapped_column(String(1000), nullable=False)
    uploaded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
