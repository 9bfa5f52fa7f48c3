"""Change request and attachment repositories."""


from sqlalchemy import select

from vendor_mdm.domain.change_request import Attachment, ChangeRequest
from vendor_mdm.repositories.base import BaseRepository


class ChangeRequestRepository(BaseRepository[ChangeRequest]):
    model = ChangeRequest


class AttachmentRepository(BaseRepository[Attachment]):
    model = Attachment

    async def list_for_entity(self, linked_entity_id: str) -> list[Attachment]:
        result = await self._session.execute(
            select(Attachment)
            .where(Attachment.linked_entity_id == linked_entity_id)
            .order_by(Attachment.uploaded_at.asc())
        )
        return list(result.scalars().all())
