"""Document-store writes shared by every write path: payload archives and domain events."""

from __future__ import annotations

import logging
from typing import Any

from vendor_mdm.schemas.documents import (
    ChangeRequestData,
    DomainEvent,
    InvitationArtifact,
    InvitationCompletionArtifact,
)
from vendor_mdm.stores.documents import (
    CHANGE_REQUEST_DATA,
    DOMAIN_EVENTS,
    INVITATION_ARTIFACTS,
    DocumentStore,
)

logger = logging.getLogger(__name__)


class ArtifactArchive:
    """Thin typed layer over the document store containers used for audit copies."""

    def __init__(self, store: DocumentStore):
        self._store = store

    async def save_change_request_data(self, request_id: str, payload: Any) -> None:
        doc = ChangeRequestData(
            id=request_id, request_id=request_id, payload=payload, new_value=payload
        )
        await self._store.upsert_item(CHANGE_REQUEST_DATA, doc.to_item(), request_id)

    async def get_change_request_payload(self, request_id: str) -> Any:
        item = await self._store.read_item(CHANGE_REQUEST_DATA, request_id, request_id)
        return item.get("payload") if item else None

    async def save_invitation_artifact(self, artifact: InvitationArtifact) -> None:
        await self._store.upsert_item(
            INVITATION_ARTIFACTS, artifact.to_item(), artifact.invitation_id
        )

    async def save_completion_artifact(self, artifact: InvitationCompletionArtifact) -> None:
        await self._store.upsert_item(
            INVITATION_ARTIFACTS, artifact.to_item(), artifact.invitation_id
        )

    async def emit_domain_event(self, event_type: str, entity_id: str, data: Any) -> DomainEvent:
        event = DomainEvent(event_type=event_type, entity_id=entity_id, data=data)
        # Append-only: create, never upsert
        await self._store.create_item(DOMAIN_EVENTS, event.to_item(), event_type)
        return event

    async def list_events(self, event_type: str, entity_id: str | None = None) -> list[dict]:
        filters = {"entityId": entity_id} if entity_id else None
        return await self._store.query_items(
            DOMAIN_EVENTS, partition_key=event_type, filters=filters
        )
