"""Vendor application repository."""


from vendor_mdm.domain.vendor import VendorApplication
from vendor_mdm.repositories.base import BaseRepository


class VendorApplicationRepository(BaseRepository[VendorApplication]):
    model = VendorApplication

    async def get_by_email(self, email: str) -> VendorApplication | None:
        return await self.find_one(contact_email=email)
