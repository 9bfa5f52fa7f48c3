"""Vendor invitation repository."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import select, update

from vendor_mdm.domain.invitation import (
    ACTIVE_INVITATION_STATUSES,
    InvitationStatus,
    VendorInvitation,
)
from vendor_mdm.repositories.base import BaseRepository


class InvitationRepository(BaseRepository[VendorInvitation]):
    model = VendorInvitation
    sortable = BaseRepository.sortable | {"expires_at", "vendor_legal_name", "status"}

    async def get_by_token(self, token: str) -> VendorInvitation | None:
        return await self.find_one(invitation_token=token)

    async def find_active_for_email(self, email: str) -> VendorInvitation | None:
        result = await self._session.execute(
            select(VendorInvitation)
            .where(VendorInvitation.primary_contact_email == email)
            .where(VendorInvitation.status.in_([s.value for s in ACTIVE_INVITATION_STATUSES]))
            .limit(1)
        )
        return result.scalars().first()

    async def expire_pending_before(self, cutoff: datetime) -> int:
        """Bulk-flip Pending invitations whose expiry is before *cutoff*; return the count."""
        result = await self._session.execute(
            update(VendorInvitation)
            .where(VendorInvitation.status == InvitationStatus.PENDING.value)
            .where(VendorInvitation.expires_at < cutoff)
            .values(status=InvitationStatus.EXPIRED.value, updated_at=cutoff)
            .execution_options(synchronize_session=False)
        )
        await self._session.flush()
        return result.rowcount or 0
