"""Domain package: all ORM models are imported here so Alembic autogenerate detects them.

Folder intent:
  change_request.py - ChangeRequest workflow rows and Attachments
  vendor.py         - VendorApplication (self-service or invitation-derived)
  invitation.py     - VendorInvitation tokenized registration links
  mixins.py         - Shared TimestampMixin
"""

from vendor_mdm.domain.change_request import Attachment, ChangeRequest, ChangeRequestStatus
from vendor_mdm.domain.invitation import InvitationStatus, VendorInvitation
from vendor_mdm.domain.vendor import ApplicationStatus, RegistrationType, VendorApplication

__all__ = [
    "ApplicationStatus",
    "Attachment",
    "ChangeRequest",
    "ChangeRequestStatus",
    "InvitationStatus",
    "RegistrationType",
    "VendorApplication",
    "VendorInvitation",
]
