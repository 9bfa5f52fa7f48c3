"""Vendor application service and the upstream vendor lookup.

Self-registration creates two relational rows in one transaction: the
application itself and a Submitted change request that carries it through
the approval workflow. The full form is archived under the change request id.

Rule: No SQLAlchemy queries / no FastAPI here. Pure Python business logic.
"""


import logging

from sqlalchemy.ext.asyncio import AsyncSession

from vendor_mdm.core.actor import Actor
from vendor_mdm.core.exceptions import BusinessRuleError, NotFoundError
from vendor_mdm.domain.change_request import ChangeRequest, ChangeRequestStatus
from vendor_mdm.domain.vendor import ApplicationStatus, RegistrationType, VendorApplication
from vendor_mdm.repositories.change_request import ChangeRequestRepository
from vendor_mdm.repositories.invitation import InvitationRepository
from vendor_mdm.repositories.vendor import VendorApplicationRepository
from vendor_mdm.schemas.vendor import VendorApplicationCreate, VendorLookupOut
from vendor_mdm.services.artifacts import ArtifactArchive
from vendor_mdm.services.metadata import MetadataService
from vendor_mdm.services.orchestrator import SideEffect, WriteOrchestrator, WriteOutcome
from vendor_mdm.stores.bus import VENDOR_APPLICATION_SUBMITTED, MessageBus
from vendor_mdm.stores.documents import DocumentStore

logger = logging.getLogger(__name__)

VENDOR_APPLICATION_ENTITY = "VendorApplication"

class VendorApplicationService:
    def __init__(
        self,
        session: AsyncSession,
        documents: DocumentStore,
        bus: MessageBus,
        metadata: MetadataService,
    ):
        self._session = session
        self._repo = VendorApplicationRepository(session)
        self._requests = ChangeRequestRepository(session)
        self._invitations = InvitationRepository(session)
        self._archive = ArtifactArchive(documents)
        self._bus = bus
        self._metadata = metadata
        self._orchestrator = WriteOrchestrator()

    async def ensure_email_available(self, email: str) -> None:
        """Reject an email that already has an application or an open invitation."""
        if await self._repo.get_by_email(email):
            raise BusinessRuleError(f"A vendor application already exists for {email}")
        if await self._invitations.find_active_for_email(email):
            raise BusinessRuleError(
                f"An active invitation already exists for {email}; "
                "register through the invitation link instead"
            )

    async def submit_application(
        self, data: VendorApplicationCreate, actor: Actor
    ) -> WriteOutcome[tuple[VendorApplication, ChangeRequest]]:
        await self.ensure_email_available(data.contact_email)
        form = data.model_dump(mode="json", by_alias=True)
        await self._metadata.validate_payload(VENDOR_APPLICATION_ENTITY, {**data.details, **form})

        async def primary() -> tuple[VendorApplication, ChangeRequest]:
            application = await self._repo.add(
                company_name=data.company_name,
                tax_id=data.tax_id,
                contact_name=data.contact_name,
                contact_email=data.contact_email,
                status=ApplicationStatus.PENDING,
                registration_type=RegistrationType.SELF_REGISTRATION,
            )
            request = await self._requests.add(
                requester_id=actor.id,
                status=ChangeRequestStatus.SUBMITTED,
                vendor_application_id=application.id,
            )
            await self._session.commit()
            logger.info(
                "Vendor application %s submitted (change request %s)", application.id, request.id
            )
            return application, request

        def side_effects(result: tuple[VendorApplication, ChangeRequest]) -> list[SideEffect]:
            application, request = result
            summary = {
                "applicationId": application.id,
                "changeRequestId": request.id,
                "companyName": application.company_name,
                "contactEmail": application.contact_email,
            }
            return [
                SideEffect(
                    "archive_payload",
                    lambda: self._archive.save_change_request_data(request.id, form),
                ),
                SideEffect(
                    "emit_event:VendorApplicationSubmitted",
                    lambda: self._archive.emit_domain_event(
                        "VendorApplicationSubmitted", application.id, summary
                    ),
                ),
                SideEffect(
                    f"publish:{VENDOR_APPLICATION_SUBMITTED}",
                    lambda: self._bus.publish_event(VENDOR_APPLICATION_SUBMITTED, summary),
                ),
            ]

        return await self._orchestrator.execute(
            primary, side_effects, context=lambda r: f"vendor application {r[0].id}"
        )

    async def get_application(self, application_id: str) -> VendorApplication:
        application = await self._repo.get(application_id)
        if not application:
            raise NotFoundError("Vendor application", application_id)
        return application


class VendorLookupService:
    """Upstream ERP vendor lookup. Returns canned data until the SAP connector exists."""

    def __init__(self, sap_environment_code: str):
        self._source = f"SAP {sap_environment_code}"

    async def get_vendor(self, vendor_id: str) -> VendorLookupOut:
        logger.debug("Vendor lookup %s against %s", vendor_id, self._source)
        return VendorLookupOut(
            vendor_id=vendor_id,
            name="Acme Corp",
            address="123 SAP Street",
            source=self._source,
        )
