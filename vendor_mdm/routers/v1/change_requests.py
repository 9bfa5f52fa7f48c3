"""Change request workflow routes: create, hybrid read, transitions, attachments."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from vendor_mdm.core.actor import Actor
from vendor_mdm.core.clock import Clock
from vendor_mdm.core.dependencies import (
    get_clock,
    get_current_actor,
    get_document_store,
    get_message_bus,
)
from vendor_mdm.core.response import DataResponse, OutcomeResponse, outcome
from vendor_mdm.db.base import get_db
from vendor_mdm.schemas.change_request import (
    AttachmentCreate,
    AttachmentOut,
    ChangeRequestCreate,
    ChangeRequestDetail,
    ChangeRequestOut,
)
from vendor_mdm.services.change_request import ChangeRequestService
from vendor_mdm.stores.bus import MessageBus
from vendor_mdm.stores.documents import DocumentStore

router = APIRouter(prefix="/change-requests", tags=["Change Requests"])


# ------------------------------------------------------------------
# Helper: instantiate service with session + app-scoped stores
# ------------------------------------------------------------------

def _svc(
    session: AsyncSession = Depends(get_db),
    documents: DocumentStore = Depends(get_document_store),
    bus: MessageBus = Depends(get_message_bus),
    clock: Clock = Depends(get_clock),
) -> ChangeRequestService:
    return ChangeRequestService(session, documents, bus, clock)


# ------------------------------------------------------------------
# Endpoints
# ------------------------------------------------------------------

@router.post(
    "", response_model=OutcomeResponse[ChangeRequestOut], status_code=status.HTTP_201_CREATED
)
async def create_change_request(
    body: ChangeRequestCreate,
    svc: ChangeRequestService = Depends(_svc),
):
    result = await svc.create_change_request(body)
    return outcome(ChangeRequestOut.model_validate(result.result), result.side_effects)


@router.get("/{request_id}", response_model=DataResponse[ChangeRequestDetail])
async def get_change_request(
    request_id: str,
    svc: ChangeRequestService = Depends(_svc),
):
    """Relational row plus the archived payload (null if the archive is unavailable)."""
    request, payload = await svc.get_change_request(request_id)
    detail = ChangeRequestDetail.model_validate(request).model_copy(update={"payload": payload})
    return {"data": detail}


@router.post("/{request_id}/submit", response_model=OutcomeResponse[ChangeRequestOut])
async def submit_change_request(
    request_id: str,
    actor: Actor = Depends(get_current_actor),
    svc: ChangeRequestService = Depends(_svc),
):
    result = await svc.submit_change_request(request_id, actor)
    return outcome(ChangeRequestOut.model_validate(result.result), result.side_effects)


@router.post("/{request_id}/approve", response_model=OutcomeResponse[ChangeRequestOut])
async def approve_change_request(
    request_id: str,
    actor: Actor = Depends(get_current_actor),
    svc: ChangeRequestService = Depends(_svc),
):
    result = await svc.approve_change_request(request_id, actor)
    return outcome(ChangeRequestOut.model_validate(result.result), result.side_effects)


@router.post("/{request_id}/integrate", response_model=OutcomeResponse[ChangeRequestOut])
async def integrate_change_request(
    request_id: str,
    svc: ChangeRequestService = Depends(_svc),
):
    result = await svc.integrate_change_request(request_id)
    return outcome(ChangeRequestOut.model_validate(result.result), result.side_effects)


@router.post(
    "/{request_id}/attachments",
    response_model=DataResponse[AttachmentOut],
    status_code=status.HTTP_201_CREATED,
)
async def add_attachment(
    request_id: str,
    body: AttachmentCreate,
    svc: ChangeRequestService = Depends(_svc),
):
    attachment = await svc.add_attachment(request_id, body)
    return {"data": AttachmentOut.model_validate(attachment)}


@router.get("/{request_id}/attachments", response_model=DataResponse[list[AttachmentOut]])
async def list_attachments(
    request_id: str,
    svc: ChangeRequestService = Depends(_svc),
):
    attachments = await svc.list_attachments(request_id)
    return {"data": [AttachmentOut.model_validate(a) for a in attachments]}
