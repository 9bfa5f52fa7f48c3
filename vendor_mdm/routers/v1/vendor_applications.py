"""Self-service vendor application routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from vendor_mdm.core.actor import Actor
from vendor_mdm.core.dependencies import (
    get_current_actor,
    get_document_store,
    get_message_bus,
    get_metadata_service,
)
from vendor_mdm.core.response import DataResponse, OutcomeResponse, outcome
from vendor_mdm.db.base import get_db
from vendor_mdm.schemas.vendor import (
    VendorApplicationCreate,
    VendorApplicationOut,
    VendorApplicationSubmitted,
)
from vendor_mdm.services.metadata import MetadataService
from vendor_mdm.services.vendor import VendorApplicationService
from vendor_mdm.stores.bus import MessageBus
from vendor_mdm.stores.documents import DocumentStore

router = APIRouter(prefix="/vendor-applications", tags=["Vendor Applications"])


def _svc(
    session: AsyncSession = Depends(get_db),
    documents: DocumentStore = Depends(get_document_store),
    bus: MessageBus = Depends(get_message_bus),
    metadata: MetadataService = Depends(get_metadata_service),
) -> VendorApplicationService:
    return VendorApplicationService(session, documents, bus, metadata)


@router.post(
    "",
    response_model=OutcomeResponse[VendorApplicationSubmitted],
    status_code=status.HTTP_201_CREATED,
)
async def submit_vendor_application(
    body: VendorApplicationCreate,
    actor: Actor = Depends(get_current_actor),
    svc: VendorApplicationService = Depends(_svc),
):
    """Submit an application; a linked change request is opened in status Submitted."""
    result = await svc.submit_application(body, actor)
    application, request = result.result
    data = VendorApplicationSubmitted.model_validate(
        {**VendorApplicationOut.model_validate(application).model_dump(), "change_request_id": request.id}
    )
    return outcome(data, result.side_effects)


@router.get("/{application_id}", response_model=DataResponse[VendorApplicationOut])
async def get_vendor_application(
    application_id: str,
    svc: VendorApplicationService = Depends(_svc),
):
    application = await svc.get_application(application_id)
    return {"data": VendorApplicationOut.model_validate(application)}
