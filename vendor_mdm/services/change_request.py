"""Change request service: workflow transitions on vendor master-data changes.

Status moves Draft -> Submitted -> Approved -> Integrated (approval may skip
Submitted). Every transition commits the relational row first and then runs
the best-effort side effects through :class:`WriteOrchestrator`.

Rule: No SQLAlchemy queries / no FastAPI here. Pure Python business logic.
"""


import logging
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from vendor_mdm.core.actor import Actor
from vendor_mdm.core.clock import Clock, utcnow
from vendor_mdm.core.exceptions import BusinessRuleError, NotFoundError
from vendor_mdm.domain.change_request import Attachment, ChangeRequest, ChangeRequestStatus
from vendor_mdm.repositories.change_request import AttachmentRepository, ChangeRequestRepository
from vendor_mdm.schemas.change_request import AttachmentCreate, ChangeRequestCreate
from vendor_mdm.services.artifacts import ArtifactArchive
from vendor_mdm.services.orchestrator import SideEffect, WriteOrchestrator, WriteOutcome
from vendor_mdm.stores.bus import VENDOR_CHANGE_REQUEST, MessageBus
from vendor_mdm.stores.documents import DocumentStore

logger = logging.getLogger(__name__)

REQUEST_APPROVED = "RequestApproved"

class ChangeRequestService:
    def __init__(
        self,
        session: AsyncSession,
        documents: DocumentStore,
        bus: MessageBus,
        clock: Clock = utcnow,
    ):
        self._session = session
        self._repo = ChangeRequestRepository(session)
        self._attachments = AttachmentRepository(session)
        self._archive = ArtifactArchive(documents)
        self._bus = bus
        self._clock = clock
        self._orchestrator = WriteOrchestrator()

    async def _get_or_404(self, request_id: str) -> ChangeRequest:
        request = await self._repo.get(request_id)
        if not request:
            raise NotFoundError("Change request", request_id)
        return request

    async def create_change_request(self, data: ChangeRequestCreate) -> WriteOutcome[ChangeRequest]:
        async def primary() -> ChangeRequest:
            request = await self._repo.add(
                requester_id=data.requester_id,
                sap_vendor_id=data.sap_vendor_id,
                status=ChangeRequestStatus.DRAFT,
            )
            await self._session.commit()
            logger.info("Change request %s created by %s", request.id, data.requester_id)
            return request

        def side_effects(request: ChangeRequest) -> list[SideEffect]:
            return [
                SideEffect(
                    "archive_payload",
                    lambda: self._archive.save_change_request_data(request.id, data.payload),
                ),
                SideEffect(
                    "emit_event:ChangeRequestCreated",
                    lambda: self._archive.emit_domain_event(
                        "ChangeRequestCreated",
                        request.id,
                        {
                            "requestId": request.id,
                            "requesterId": request.requester_id,
                            "sapVendorId": request.sap_vendor_id,
                            "status": str(request.status),
                        },
                    ),
                ),
            ]

        return await self._orchestrator.execute(
            primary, side_effects, context=lambda r: f"change request {r.id}"
        )

    async def get_change_request(self, request_id: str) -> tuple[ChangeRequest, Any]:
        """Hybrid read: SQL row plus archived payload (None when unavailable)."""
        request = await self._get_or_404(request_id)
        try:
            payload = await self._archive.get_change_request_payload(request_id)
        except Exception as exc:
            logger.warning("Payload read failed for change request %s: %s", request_id, exc)
            payload = None
        return request, payload

    async def _transition(
        self,
        request: ChangeRequest,
        *,
        allowed_from: tuple[ChangeRequestStatus, ...],
        to: ChangeRequestStatus,
        event_type: str,
        event_data: dict[str, Any],
        publish: tuple[str, dict[str, Any]] | None = None,
    ) -> WriteOutcome[ChangeRequest]:
        if request.status not in allowed_from:
            raise BusinessRuleError(
                f"Change request '{request.id}' is {request.status}; cannot move to {to}"
            )

        async def primary() -> ChangeRequest:
            request.status = to
            request.updated_at = self._clock()
            await self._repo.save(request)
            await self._session.commit()
            logger.info("Change request %s moved to %s", request.id, to)
            return request

        def side_effects(r: ChangeRequest) -> list[SideEffect]:
            effects = [
                SideEffect(
                    f"emit_event:{event_type}",
                    lambda: self._archive.emit_domain_event(
                        event_type, r.id, {"requestId": r.id, "status": str(r.status), **event_data}
                    ),
                )
            ]
            if publish is not None:
                bus_event, body = publish
                effects.append(
                    SideEffect(
                        f"publish:{bus_event}",
                        lambda: self._bus.publish_event(bus_event, body),
                    )
                )
            return effects

        return await self._orchestrator.execute(
            primary, side_effects, context=lambda r: f"change request {r.id}"
        )

    async def submit_change_request(self, request_id: str, actor: Actor) -> WriteOutcome[ChangeRequest]:
        request = await self._get_or_404(request_id)
        return await self._transition(
            request,
            allowed_from=(ChangeRequestStatus.DRAFT,),
            to=ChangeRequestStatus.SUBMITTED,
            event_type="ChangeRequestSubmitted",
            event_data={"submittedBy": actor.id},
            publish=(
                VENDOR_CHANGE_REQUEST,
                {"requestId": request.id, "sapVendorId": request.sap_vendor_id},
            ),
        )

    async def approve_change_request(self, request_id: str, approver: Actor) -> WriteOutcome[ChangeRequest]:
        request = await self._get_or_404(request_id)
        return await self._transition(
            request,
            allowed_from=(ChangeRequestStatus.DRAFT, ChangeRequestStatus.SUBMITTED),
            to=ChangeRequestStatus.APPROVED,
            event_type=REQUEST_APPROVED,
            event_data={
                "approverId": approver.id,
                "approvedAt": self._clock().isoformat(),
            },
            publish=(
                REQUEST_APPROVED,
                {"requestId": request.id, "sapVendorId": request.sap_vendor_id},
            ),
        )

    async def integrate_change_request(self, request_id: str) -> WriteOutcome[ChangeRequest]:
        request = await self._get_or_404(request_id)
        return await self._transition(
            request,
            allowed_from=(ChangeRequestStatus.APPROVED,),
            to=ChangeRequestStatus.INTEGRATED,
            event_type="RequestIntegrated",
            event_data={"integratedAt": self._clock().isoformat()},
        )

    # ------------------------------------------------------------------
    # Attachments
    # ------------------------------------------------------------------

    async def add_attachment(self, request_id: str, data: AttachmentCreate) -> Attachment:
        await self._get_or_404(request_id)
        attachment = await self._attachments.add(
            linked_entity_id=request_id,
            file_name=data.file_name,
            blob_url=data.blob_url,
            uploaded_at=self._clock(),
        )
        await self._session.commit()
        logger.info("Attachment %s added to change request %s", attachment.id, request_id)
        return attachment

    async def list_attachments(self, request_id: str) -> list[Attachment]:
        await self._get_or_404(request_id)
        return await self._attachments.list_for_entity(request_id)
