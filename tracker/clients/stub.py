from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
import logging

from tracker.domain.dto import EmailMessage
from tracker.domain.models import DeliveryResult, SubmissionSnapshot, SubmissionStatus
from tracker.notifications.catalog import MessageCatalog, default_catalog, render_whatsapp_message

logger = logging.getLogger("tracker.stub")


@dataclass
class StubWhatsAppDispatcher:
    """Records messages instead of sending them.

    Queued ``results`` are returned in order; once drained every call
    succeeds. Queue an exception to simulate a crashing gateway.
    """

    catalog: MessageCatalog = field(default_factory=default_catalog)
    results: deque[DeliveryResult | Exception] = field(default_factory=deque)
    sent: list[dict[str, str]] = field(default_factory=list)

    async def send(self, submission: SubmissionSnapshot, new_status: SubmissionStatus) -> DeliveryResult:
        message = render_whatsapp_message(catalog=self.catalog, submission=submission, status=new_status)
        self.sent.append(
            {
                "to": submission.whatsapp_number,
                "submission_id": submission.submission_id,
                "status": new_status.value,
                "message": message,
            }
        )
        logger.info("whatsapp stub message recorded", extra={"submission_id": submission.submission_id})
        if self.results:
            queued = self.results.popleft()
            if isinstance(queued, Exception):
                raise queued
            return queued
        return DeliveryResult(
            success=True,
            message="recorded by stub dispatcher",
            data={"dry_run": True, "to": submission.whatsapp_number},
        )


@dataclass
class StubEmailSender:
    results: deque[DeliveryResult | Exception] = field(default_factory=deque)
    sent: list[EmailMessage] = field(default_factory=list)

    async def send(self, message: EmailMessage) -> DeliveryResult:
        self.sent.append(message)
        logger.info("email stub message recorded", extra={"detail": message.subject})
        if self.results:
            queued = self.results.popleft()
            if isinstance(queued, Exception):
                raise queued
            return queued
        return DeliveryResult(
            success=True,
            message="recorded by stub sender",
            data={"dry_run": True, "id": f"stub-{len(self.sent)}"},
        )
