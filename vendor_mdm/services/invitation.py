"""Invitation service: tokenized, time-boxed, single-use registration links.

State machine::

    Pending --validate past expiry / sweep--> Expired
    Pending|Accepted --register--> Completed
    Pending|Accepted|Expired --resend--> Pending (token rotated)
    Pending|Accepted --cancel--> Cancelled

Completed and Cancelled are terminal. Duplicate checks run before any write;
after the relational commit every document-store and bus step is best-effort.
"""

from __future__ import annotations

import logging
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncSession

from vendor_mdm.core.actor import Actor
from vendor_mdm.core.clock import Clock, ensure_utc, utcnow
from vendor_mdm.core.config import Settings
from vendor_mdm.core.exceptions import BusinessRuleError, NotFoundError
from vendor_mdm.core.pagination import PaginationParams
from vendor_mdm.core.tokens import generate_secure_token
from vendor_mdm.domain.invitation import (
    ACTIVE_INVITATION_STATUSES,
    InvitationStatus,
    VendorInvitation,
)
from vendor_mdm.domain.vendor import ApplicationStatus, RegistrationType, VendorApplication
from vendor_mdm.repositories.invitation import InvitationRepository
from vendor_mdm.repositories.vendor import VendorApplicationRepository
from vendor_mdm.schemas.documents import InvitationArtifact, InvitationCompletionArtifact
from vendor_mdm.schemas.invitation import (
    InvitationCreate,
    InvitationEmailMessage,
    InvitationRegistration,
    InvitationValidation,
)
from vendor_mdm.services.artifacts import ArtifactArchive
from vendor_mdm.services.metadata import MetadataService
from vendor_mdm.services.orchestrator import SideEffect, WriteOrchestrator, WriteOutcome
from vendor_mdm.services.vendor import VENDOR_APPLICATION_ENTITY
from vendor_mdm.stores.bus import INVITATION_CREATED, MessageBus
from vendor_mdm.stores.documents import DocumentStore

logger = logging.getLogger(__name__)

INVALID_TOKEN = "Invalid invitation link."
ALREADY_USED = "This invitation has already been used."
CANCELLED = "This invitation has been cancelled."
EXPIRED = "This invitation has expired. Please contact the buyer for a new invitation."


def invitation_link(token: str) -> str:
    """Relative registration link; the email worker prefixes APP_BASE_URL."""
    return f"/invitation/register/{token}"


class InvitationService:
    def __init__(
        self,
        session: AsyncSession,
        documents: DocumentStore,
        bus: MessageBus,
        settings: Settings,
        clock: Clock = utcnow,
        metadata: MetadataService | None = None,
    ):
        self._session = session
        self._repo = InvitationRepository(session)
        self._applications = VendorApplicationRepository(session)
        self._archive = ArtifactArchive(documents)
        self._bus = bus
        self._settings = settings
        self._clock = clock
        self._metadata = metadata
        self._orchestrator = WriteOrchestrator()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    async def _get_or_404(self, invitation_id: str) -> VendorInvitation:
        invitation = await self._repo.get(invitation_id)
        if not invitation:
            raise NotFoundError("Invitation", invitation_id)
        return invitation

    def _is_past_expiry(self, invitation: VendorInvitation) -> bool:
        return ensure_utc(invitation.expires_at) < self._clock()

    def email_message(self, invitation: VendorInvitation) -> dict:
        """Body published on ``invitation-created`` for the email worker."""
        return InvitationEmailMessage(
            invitation_id=invitation.id,
            vendor_name=invitation.vendor_legal_name,
            email=invitation.primary_contact_email,
            token=invitation.invitation_token,
            expires_at=ensure_utc(invitation.expires_at),
            invited_by_name=invitation.invited_by_name,
            company_name=self._settings.company_name,
            notes=invitation.notes,
        ).model_dump(mode="json", by_alias=True)

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create_invitation(
        self, data: InvitationCreate, actor: Actor
    ) -> WriteOutcome[VendorInvitation]:
        email = data.primary_contact_email
        if await self._repo.find_active_for_email(email):
            raise BusinessRuleError(f"An active invitation already exists for {email}")
        if await self._applications.get_by_email(email):
            raise BusinessRuleError(f"A vendor application already exists for {email}")

        async def primary() -> VendorInvitation:
            invitation = await self._repo.add(
                invitation_token=generate_secure_token(),
                vendor_legal_name=data.vendor_legal_name,
                primary_contact_email=email,
                invited_by=actor.id,
                invited_by_name=actor.name,
                expires_at=self._clock() + timedelta(days=data.expiration_days),
                status=InvitationStatus.PENDING,
                notes=data.notes,
            )
            await self._session.commit()
            logger.info("Invitation %s created for %s by %s", invitation.id, email, actor.name)
            return invitation

        def side_effects(invitation: VendorInvitation) -> list[SideEffect]:
            artifact = InvitationArtifact(
                id=invitation.id,
                invitation_id=invitation.id,
                vendor_legal_name=invitation.vendor_legal_name,
                primary_contact_email=invitation.primary_contact_email,
                invited_by=invitation.invited_by,
                invited_by_name=invitation.invited_by_name,
                token=invitation.invitation_token,
                expires_at=ensure_utc(invitation.expires_at),
                notes=invitation.notes,
                status=str(invitation.status),
                full_payload=data.model_dump(mode="json", by_alias=True),
                created_at=self._clock(),
            )
            return [
                SideEffect(
                    "archive_invitation",
                    lambda: self._archive.save_invitation_artifact(artifact),
                ),
                SideEffect(
                    "emit_event:InvitationCreated",
                    lambda: self._archive.emit_domain_event(
                        "InvitationCreated",
                        invitation.id,
                        {
                            "invitationId": invitation.id,
                            "email": invitation.primary_contact_email,
                            "vendorLegalName": invitation.vendor_legal_name,
                            "invitedBy": invitation.invited_by,
                        },
                    ),
                ),
                SideEffect(
                    f"publish:{INVITATION_CREATED}",
                    lambda: self._bus.publish_event(
                        INVITATION_CREATED, self.email_message(invitation)
                    ),
                ),
            ]

        return await self._orchestrator.execute(
            primary, side_effects, context=lambda inv: f"invitation {inv.id}"
        )

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    async def get_invitation(self, invitation_id: str) -> VendorInvitation:
        return await self._get_or_404(invitation_id)

    async def get_by_token(self, token: str) -> VendorInvitation | None:
        return await self._repo.get_by_token(token)

    async def get_details(self, token: str) -> VendorInvitation:
        invitation = await self._repo.get_by_token(token)
        if not invitation:
            raise NotFoundError("Invitation")
        return invitation

    async def list_invitations(self, pagination: PaginationParams, status: str | None = None):
        return await self._repo.page(pagination, status=status or None)

    async def validate_invitation(self, token: str) -> InvitationValidation:
        """Check a token. Flips a stale Pending/Accepted row to Expired as a side effect."""
        invitation = await self._repo.get_by_token(token)
        if invitation is None:
            return InvitationValidation(is_valid=False, error_message=INVALID_TOKEN)
        if invitation.status == InvitationStatus.COMPLETED:
            return InvitationValidation(is_valid=False, error_message=ALREADY_USED)
        if invitation.status == InvitationStatus.CANCELLED:
            return InvitationValidation(is_valid=False, error_message=CANCELLED)

        if invitation.status == InvitationStatus.EXPIRED or self._is_past_expiry(invitation):
            if invitation.status in ACTIVE_INVITATION_STATUSES:
                invitation.status = InvitationStatus.EXPIRED
                invitation.updated_at = self._clock()
                await self._repo.save(invitation)
                await self._session.commit()
                logger.info("Invitation %s expired on validation", invitation.id)
            return InvitationValidation(is_valid=False, error_message=EXPIRED)

        return InvitationValidation(
            is_valid=True,
            vendor_legal_name=invitation.vendor_legal_name,
            primary_contact_email=invitation.primary_contact_email,
            expires_at=ensure_utc(invitation.expires_at),
        )

    # ------------------------------------------------------------------
    # Registration / completion
    # ------------------------------------------------------------------

    async def complete_invitation(
        self, token: str, application_id: str, submitted_data: dict | None = None
    ) -> WriteOutcome[bool]:
        """Mark the invitation behind *token* as used. ``False`` means nothing changed."""
        invitation = await self._repo.get_by_token(token)
        if invitation is None or invitation.status not in ACTIVE_INVITATION_STATUSES:
            logger.warning("Completion refused for token ending %s", token[-6:])
            return WriteOutcome(result=False)

        async def primary() -> bool:
            now = self._clock()
            invitation.status = InvitationStatus.COMPLETED
            invitation.completed_at = now
            invitation.vendor_application_id = application_id
            invitation.updated_at = now
            await self._repo.save(invitation)
            await self._session.commit()
            logger.info(
                "Invitation %s completed by application %s", invitation.id, application_id
            )
            return True

        def side_effects(_: bool) -> list[SideEffect]:
            artifact = InvitationCompletionArtifact(
                invitation_id=invitation.id,
                vendor_application_id=application_id,
                submitted_data=submitted_data,
                completed_at=ensure_utc(invitation.completed_at),
            )
            return [
                SideEffect(
                    "archive_completion",
                    lambda: self._archive.save_completion_artifact(artifact),
                ),
                SideEffect(
                    "emit_event:InvitationCompleted",
                    lambda: self._archive.emit_domain_event(
                        "InvitationCompleted",
                        invitation.id,
                        {"invitationId": invitation.id, "vendorApplicationId": application_id},
                    ),
                ),
            ]

        return await self._orchestrator.execute(
            primary, side_effects, context=lambda _: f"invitation {invitation.id}"
        )

    async def register_vendor(
        self, token: str, data: InvitationRegistration
    ) -> WriteOutcome[VendorApplication]:
        """Create the vendor application behind an invitation and consume the token.

        The application insert and the invitation completion commit together.
        """
        validation = await self.validate_invitation(token)
        if not validation.is_valid:
            raise BusinessRuleError(validation.error_message or INVALID_TOKEN)
        form = data.model_dump(mode="json", by_alias=True)
        if self._metadata is not None:
            await self._metadata.validate_payload(VENDOR_APPLICATION_ENTITY, form)

        invitation = await self._repo.get_by_token(token)
        application = await self._applications.add(
            company_name=data.company_name,
            tax_id=data.tax_id,
            contact_name=data.contact_name,
            contact_email=data.email,
            status=ApplicationStatus.SUBMITTED,
            registration_type=RegistrationType.INVITATION,
            invitation_id=invitation.id,
        )
        completion = await self.complete_invitation(token, application.id, form)
        if not completion.result:
            # Unreachable unless the invitation changed since validation
            raise BusinessRuleError(INVALID_TOKEN)
        return WriteOutcome(result=application, side_effects=completion.side_effects)

    # ------------------------------------------------------------------
    # Resend / cancel / expire
    # ------------------------------------------------------------------

    async def resend_invitation(
        self, invitation_id: str, actor: Actor
    ) -> WriteOutcome[VendorInvitation]:
        invitation = await self._get_or_404(invitation_id)
        if invitation.status in (InvitationStatus.COMPLETED, InvitationStatus.CANCELLED):
            raise BusinessRuleError(
                f"Cannot resend an invitation that is {invitation.status}"
            )

        async def primary() -> VendorInvitation:
            now = self._clock()
            invitation.invitation_token = generate_secure_token()
            invitation.expires_at = now + timedelta(days=self._settings.invitation_resend_days)
            invitation.status = InvitationStatus.PENDING
            invitation.updated_at = now
            await self._repo.save(invitation)
            await self._session.commit()
            logger.info("Invitation %s resent by %s", invitation.id, actor.name)
            return invitation

        def side_effects(inv: VendorInvitation) -> list[SideEffect]:
            return [
                SideEffect(
                    "emit_event:InvitationResent",
                    lambda: self._archive.emit_domain_event(
                        "InvitationResent",
                        inv.id,
                        {
                            "invitationId": inv.id,
                            "resentBy": actor.id,
                            "expiresAt": ensure_utc(inv.expires_at).isoformat(),
                        },
                    ),
                ),
                SideEffect(
                    f"publish:{INVITATION_CREATED}",
                    lambda: self._bus.publish_event(INVITATION_CREATED, self.email_message(inv)),
                ),
            ]

        return await self._orchestrator.execute(
            primary, side_effects, context=lambda inv: f"invitation {inv.id}"
        )

    async def cancel_invitation(
        self, invitation_id: str, actor: Actor
    ) -> WriteOutcome[VendorInvitation]:
        invitation = await self._get_or_404(invitation_id)
        if invitation.status not in ACTIVE_INVITATION_STATUSES:
            raise BusinessRuleError(
                f"Cannot cancel an invitation that is {invitation.status}"
            )

        async def primary() -> VendorInvitation:
            invitation.status = InvitationStatus.CANCELLED
            invitation.updated_at = self._clock()
            await self._repo.save(invitation)
            await self._session.commit()
            logger.info("Invitation %s cancelled by %s", invitation.id, actor.name)
            return invitation

        def side_effects(inv: VendorInvitation) -> list[SideEffect]:
            return [
                SideEffect(
                    "emit_event:InvitationCancelled",
                    lambda: self._archive.emit_domain_event(
                        "InvitationCancelled",
                        inv.id,
                        {"invitationId": inv.id, "cancelledBy": actor.id},
                    ),
                ),
            ]

        return await self._orchestrator.execute(
            primary, side_effects, context=lambda inv: f"invitation {inv.id}"
        )

    async def expire_old_invitations(self) -> int:
        count = await self._repo.expire_pending_before(self._clock())
        await self._session.commit()
        if count:
            logger.info("Expired %d stale invitations", count)
        return count
