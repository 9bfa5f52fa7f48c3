"""Message bus: routes integration events to named queues."""

from __future__ import annotations

import logging
from typing import Any

from vendor_mdm.stores.queue import (
    INVITATION_EMAILS,
    VENDOR_CHANGES,
    QueueBackend,
    QueueMessage,
)

logger = logging.getLogger(__name__)

INVITATION_CREATED = "invitation-created"
VENDOR_APPLICATION_SUBMITTED = "vendor-application-submitted"
VENDOR_CHANGE_REQUEST = "vendor-change-request"

_EVENT_ROUTES: dict[str, str] = {
    INVITATION_CREATED: INVITATION_EMAILS,
    VENDOR_APPLICATION_SUBMITTED: VENDOR_CHANGES,
    VENDOR_CHANGE_REQUEST: VENDOR_CHANGES,
}


def queue_for_event(event_type: str) -> str:
    return _EVENT_ROUTES.get(event_type, VENDOR_CHANGES)


class MessageBus:
    """Publishes ``{eventType, data, properties}`` envelopes.

    Returns as soon as the backend accepted the message; consumption is
    entirely asynchronous.
    """

    def __init__(self, backend: QueueBackend, sap_environment_code: str):
        self._backend = backend
        self._sap_environment_code = sap_environment_code

    @property
    def backend(self) -> QueueBackend:
        return self._backend

    async def publish_event(
        self, event_type: str, data: dict[str, Any], queue_name: str | None = None
    ) -> QueueMessage:
        target = queue_name or queue_for_event(event_type)
        envelope = {
            "eventType": event_type,
            "data": data,
            "properties": {
                "sapEnvironmentCode": self._sap_environment_code,
                "eventType": event_type,
            },
        }
        msg = await self._backend.enqueue(target, envelope)
        logger.debug("Published %s to %s as %s", event_type, target, msg.message_id)
        return msg
