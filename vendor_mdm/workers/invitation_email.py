"""Invitation email worker: drains ``invitation-emails`` and sends each email.

Delivery semantics:
  - malformed message  -> logged and acked (dropped)
  - send failure       -> nacked for redelivery until ``queue_max_deliveries``,
                          then discarded
  - success            -> acked
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from dataclasses import asdict, dataclass

from pydantic import ValidationError

from vendor_mdm.core.config import Settings, settings as default_settings
from vendor_mdm.core.log_config import configure_logging
from vendor_mdm.schemas.invitation import InvitationEmailMessage
from vendor_mdm.services.email import EmailSender, LoggingEmailSender, render_invitation_email
from vendor_mdm.stores.queue import INVITATION_EMAILS, QueueBackend, build_queue_backend

logger = logging.getLogger(__name__)


@dataclass
class WorkerRunStats:
    processed: int = 0
    sent: int = 0
    malformed: int = 0
    requeued: int = 0
    discarded: int = 0

    def add(self, other: "WorkerRunStats") -> None:
        for key, value in asdict(other).items():
            setattr(self, key, getattr(self, key) + value)


class InvitationEmailWorker:
    def __init__(
        self,
        queue_backend: QueueBackend,
        settings: Settings,
        sender: EmailSender | None = None,
    ):
        self.queue_backend = queue_backend
        self.settings = settings
        self.sender = sender or LoggingEmailSender()

    async def process_next(self, stats: WorkerRunStats | None = None) -> bool:
        """Handle one message. Returns False when the queue was empty."""
        stats = stats if stats is not None else WorkerRunStats()
        msg = await self.queue_backend.dequeue(INVITATION_EMAILS)
        if msg is None:
            return False
        stats.processed += 1

        data = msg.body.get("data") if isinstance(msg.body, dict) else None
        try:
            message = InvitationEmailMessage.model_validate(data)
        except ValidationError as exc:
            logger.error("Invalid invitation email message %s: %s", msg.message_id, exc)
            await self.queue_backend.ack(msg.message_id)
            stats.malformed += 1
            return True

        try:
            await self.sender.send(render_invitation_email(message, self.settings.app_base_url))
        except Exception:
            logger.exception(
                "Error sending invitation email for %s (delivery %d)",
                message.invitation_id,
                msg.delivery_count,
            )
            if msg.delivery_count >= self.settings.queue_max_deliveries:
                await self.queue_backend.nack(msg.message_id, requeue=False)
                logger.error(
                    "Discarding invitation email %s after %d deliveries",
                    msg.message_id,
                    msg.delivery_count,
                )
                stats.discarded += 1
            else:
                await self.queue_backend.nack(msg.message_id, requeue=True)
                stats.requeued += 1
            return True

        await self.queue_backend.ack(msg.message_id)
        logger.info(
            "Invitation email sent to %s for invitation %s", message.email, message.invitation_id
        )
        stats.sent += 1
        return True

    async def run_once(self, max_messages: int = 100) -> WorkerRunStats:
        """Process until the queue is empty or *max_messages* were handled."""
        stats = WorkerRunStats()
        while stats.processed < max_messages:
            if not await self.process_next(stats):
                break
        return stats

    async def run_forever(self, *, stop_after_iterations: int | None = None) -> WorkerRunStats:
        aggregate = WorkerRunStats()
        iterations = 0
        while True:
            current = await self.run_once()
            aggregate.add(current)
            iterations += 1
            if stop_after_iterations is not None and iterations >= stop_after_iterations:
                break
            if current.processed == 0:
                await asyncio.sleep(self.settings.email_worker_poll_seconds)
        return aggregate


async def _run(settings: Settings, once: bool) -> WorkerRunStats:
    backend = build_queue_backend(settings.queue_backend, settings.queue_url)
    await backend.initialize()
    try:
        worker = InvitationEmailWorker(backend, settings)
        if once:
            return await worker.run_once()
        return await worker.run_forever()
    finally:
        await backend.close()


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Send queued vendor invitation emails.")
    parser.add_argument(
        "--once", action="store_true", help="drain the queue once and exit instead of polling"
    )
    args = parser.parse_args(argv)

    configure_logging(default_settings)
    stats = asyncio.run(_run(default_settings, once=args.once))
    logger.info("Email worker finished: %s", asdict(stats))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
