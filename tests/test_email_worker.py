import pytest

from vendor_mdm.schemas.invitation import InvitationEmailMessage
from vendor_mdm.services.email import EmailSender, render_invitation_email
from vendor_mdm.stores.bus import INVITATION_CREATED, MessageBus
from vendor_mdm.stores.queue import INVITATION_EMAILS, InMemoryQueueBackend
from vendor_mdm.workers.invitation_email import InvitationEmailWorker, main

pytestmark = pytest.mark.anyio

MESSAGE = {
    "invitationId": "inv-1",
    "vendorName": "Globex <Ltd>",
    "email": "ops@globex.com",
    "token": "tok_abc",
    "expiresAt": "2026-03-16T09:30:00Z",
    "invitedByName": "Dana Buyer",
    "companyName": "Contoso Procurement",
}


class RecordingSender(EmailSender):
    def __init__(self, failures: int = 0):
        self.sent = []
        self.failures = failures

    async def send(self, email):
        if self.failures:
            self.failures -= 1
            raise ConnectionError("smtp down")
        self.sent.append(email)


async def _publish(queue, data=MESSAGE):
    await MessageBus(queue, "D01").publish_event(INVITATION_CREATED, data)


async def test_render_invitation_email():
    email = render_invitation_email(
        InvitationEmailMessage.model_validate(MESSAGE), "https://vendors.example.com/"
    )
    assert email.to == "ops@globex.com"
    assert email.subject == "Action Required: Invitation to Register as Vendor with Contoso Procurement"
    assert email.link == "https://vendors.example.com/invitation/register/tok_abc"
    assert email.expires == "March 16, 2026 at 09:30 AM UTC"
    assert email.link in email.html
    assert "Globex &lt;Ltd&gt;" in email.html


async def test_render_falls_back_to_default_company():
    data = {**MESSAGE, "companyName": None}
    email = render_invitation_email(InvitationEmailMessage.model_validate(data), "https://x")
    assert email.subject.endswith("with Our Company")


async def test_render_escapes_notes_and_lists_requirements():
    data = {**MESSAGE, "notes": "<script>alert(1)</script> bring your W-9"}
    email = render_invitation_email(InvitationEmailMessage.model_validate(data), "https://x")
    assert "<script>" not in email.html
    assert "&lt;script&gt;alert(1)&lt;/script&gt; bring your W-9" in email.html
    assert "<li>Certificate of Insurance</li>" in email.html
    assert "mailto:vendorsupport@company.com" in email.html


async def test_render_omits_notes_paragraph_when_absent():
    email = render_invitation_email(InvitationEmailMessage.model_validate(MESSAGE), "https://x")
    assert "bring your" not in email.html
    assert "<p></p>" not in email.html


async def test_worker_sends_and_acks(settings):
    queue = InMemoryQueueBackend()
    await _publish(queue)
    sender = RecordingSender()

    stats = await InvitationEmailWorker(queue, settings, sender).run_once()

    assert stats.processed == 1 and stats.sent == 1
    assert [e.to for e in sender.sent] == ["ops@globex.com"]
    assert sender.sent[0].link == "https://vendors.example.com/invitation/register/tok_abc"
    assert await queue.pending_count(INVITATION_EMAILS) == 0


async def test_malformed_message_is_dropped(settings):
    queue = InMemoryQueueBackend()
    await queue.enqueue(INVITATION_EMAILS, {"eventType": INVITATION_CREATED, "data": {"email": "x"}})
    await queue.enqueue(INVITATION_EMAILS, {"unexpected": True})
    sender = RecordingSender()

    stats = await InvitationEmailWorker(queue, settings, sender).run_once()

    assert stats.malformed == 2
    assert sender.sent == []
    assert await queue.pending_count(INVITATION_EMAILS) == 0


async def test_send_failure_is_redelivered(settings):
    queue = InMemoryQueueBackend()
    await _publish(queue)
    sender = RecordingSender(failures=2)
    worker = InvitationEmailWorker(queue, settings, sender)

    stats = await worker.run_once()

    assert stats.requeued == 2
    assert stats.sent == 1
    assert len(sender.sent) == 1


async def test_send_failure_discarded_after_max_deliveries(settings):
    queue = InMemoryQueueBackend()
    await _publish(queue)
    sender = RecordingSender(failures=10)

    stats = await InvitationEmailWorker(queue, settings, sender).run_once()

    assert settings.queue_max_deliveries == 3
    assert stats.requeued == 2
    assert stats.discarded == 1
    assert await queue.pending_count(INVITATION_EMAILS) == 0


async def test_run_forever_stops_after_iterations(settings):
    queue = InMemoryQueueBackend()
    await _publish(queue)
    stats = await InvitationEmailWorker(queue, settings, RecordingSender()).run_forever(
        stop_after_iterations=1
    )
    assert stats.sent == 1


def test_cli_once_drains_memory_queue():
    assert main(["--once"]) == 0
