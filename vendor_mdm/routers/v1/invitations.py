"""Vendor invitation routes.

Literal paths (``validate/``, ``details/``, ``complete/``, ``expire``,
``send-email``) are declared before ``/{invitation_id}/...`` routes.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from vendor_mdm.core.actor import Actor
from vendor_mdm.core.clock import Clock
from vendor_mdm.core.config import Settings
from vendor_mdm.core.dependencies import (
    get_clock,
    get_current_actor,
    get_document_store,
    get_message_bus,
    get_metadata_service,
    get_settings,
)
from vendor_mdm.core.pagination import PaginationParams
from vendor_mdm.core.response import DataResponse, ListResponse, OutcomeResponse, outcome, paginated
from vendor_mdm.db.base import get_db
from vendor_mdm.domain.vendor import ApplicationStatus
from vendor_mdm.schemas.invitation import (
    EmailSendResult,
    ExpireSweepResult,
    InvitationCreate,
    InvitationCreated,
    InvitationDetails,
    InvitationEmailMessage,
    InvitationOut,
    InvitationRegistration,
    InvitationValidation,
    RegistrationResult,
)
from vendor_mdm.services.email import LoggingEmailSender, render_invitation_email
from vendor_mdm.services.invitation import InvitationService, invitation_link
from vendor_mdm.services.metadata import MetadataService
from vendor_mdm.stores.bus import MessageBus
from vendor_mdm.stores.documents import DocumentStore

router = APIRouter(prefix="/invitations", tags=["Invitations"])


def _svc(
    session: AsyncSession = Depends(get_db),
    documents: DocumentStore = Depends(get_document_store),
    bus: MessageBus = Depends(get_message_bus),
    settings: Settings = Depends(get_settings),
    clock: Clock = Depends(get_clock),
    metadata: MetadataService = Depends(get_metadata_service),
) -> InvitationService:
    return InvitationService(session, documents, bus, settings, clock, metadata)


def _created(invitation) -> InvitationCreated:
    return InvitationCreated(
        invitation_id=invitation.id,
        invitation_token=invitation.invitation_token,
        invitation_link=invitation_link(invitation.invitation_token),
        expires_at=invitation.expires_at,
        status=str(invitation.status),
    )


# ------------------------------------------------------------------
# Collection
# ------------------------------------------------------------------

@router.post(
    "", response_model=OutcomeResponse[InvitationCreated], status_code=status.HTTP_201_CREATED
)
async def create_invitation(
    body: InvitationCreate,
    actor: Actor = Depends(get_current_actor),
    svc: InvitationService = Depends(_svc),
):
    """Invite a vendor contact. 400 if the email already has an open invitation or application."""
    result = await svc.create_invitation(body, actor)
    return outcome(_created(result.result), result.side_effects)


@router.get("", response_model=ListResponse[InvitationOut])
async def list_invitations(
    filter_status: Optional[str] = Query(default=None, alias="status", description="Filter by status"),
    pagination: PaginationParams = Depends(),
    svc: InvitationService = Depends(_svc),
):
    items, total = await svc.list_invitations(pagination, status=filter_status)
    return paginated(
        [InvitationOut.model_validate(i) for i in items],
        total, pagination.page, pagination.page_size,
    )


@router.post("/expire", response_model=DataResponse[ExpireSweepResult])
async def expire_invitations(svc: InvitationService = Depends(_svc)):
    """Flip every Pending invitation past its expiry to Expired."""
    count = await svc.expire_old_invitations()
    return {"data": ExpireSweepResult(expired_count=count)}


@router.post("/send-email", response_model=DataResponse[EmailSendResult])
async def send_invitation_email(
    body: InvitationEmailMessage,
    settings: Settings = Depends(get_settings),
):
    """Manual/testing trigger: render and send one invitation email immediately."""
    await LoggingEmailSender().send(render_invitation_email(body, settings.app_base_url))
    return {"data": EmailSendResult(success=True, message=f"Invitation email sent to {body.email}")}


# ------------------------------------------------------------------
# Token-addressed (public registration flow)
# ------------------------------------------------------------------

@router.get("/validate/{token}", response_model=DataResponse[InvitationValidation])
async def validate_invitation(token: str, svc: InvitationService = Depends(_svc)):
    return {"data": await svc.validate_invitation(token)}


@router.get("/details/{token}", response_model=DataResponse[InvitationDetails])
async def get_invitation_details(token: str, svc: InvitationService = Depends(_svc)):
    invitation = await svc.get_details(token)
    return {"data": InvitationDetails.model_validate(invitation)}


@router.post(
    "/complete/{token}",
    response_model=OutcomeResponse[RegistrationResult],
    status_code=status.HTTP_201_CREATED,
)
async def complete_registration(
    token: str,
    body: InvitationRegistration,
    svc: InvitationService = Depends(_svc),
):
    """Register the invited vendor and consume the invitation token."""
    result = await svc.register_vendor(token, body)
    data = RegistrationResult(
        application_id=result.result.id,
        status=ApplicationStatus.SUBMITTED,
        message="Registration submitted successfully.",
    )
    return outcome(data, result.side_effects)


# ------------------------------------------------------------------
# Id-addressed (buyer actions)
# ------------------------------------------------------------------

@router.get("/{invitation_id}", response_model=DataResponse[InvitationOut])
async def get_invitation(invitation_id: str, svc: InvitationService = Depends(_svc)):
    invitation = await svc.get_invitation(invitation_id)
    return {"data": InvitationOut.model_validate(invitation)}


@router.post("/{invitation_id}/resend", response_model=OutcomeResponse[InvitationCreated])
async def resend_invitation(
    invitation_id: str,
    actor: Actor = Depends(get_current_actor),
    svc: InvitationService = Depends(_svc),
):
    result = await svc.resend_invitation(invitation_id, actor)
    return outcome(_created(result.result), result.side_effects)


@router.post("/{invitation_id}/cancel", response_model=OutcomeResponse[InvitationOut])
async def cancel_invitation(
    invitation_id: str,
    actor: Actor = Depends(get_current_actor),
    svc: InvitationService = Depends(_svc),
):
    result = await svc.cancel_invitation(invitation_id, actor)
    return outcome(InvitationOut.model_validate(result.result), result.side_effects)
