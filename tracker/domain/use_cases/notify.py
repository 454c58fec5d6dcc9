from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
import logging

from tracker.domain.contracts import EmailSender, SubmissionRepository, WhatsAppDispatcher
from tracker.domain.dto import EmailMessage, StatusUpdateNotice
from tracker.domain.models import (
    DeliveryResult,
    NotificationChannel,
    NotificationOutcome,
    SendStatus,
    SubmissionStatus,
)
from tracker.notifications.catalog import MessageCatalog
from tracker.notifications.email_templates import render_status_update_email

COMPONENT_ID = "domain.notifications.fan_out"

NOTIFICATION_DISPATCH_FAILURE = "NOTIFICATION_DISPATCH_FAILURE"

logger = logging.getLogger("tracker.notifications")


def dispatch_failure(exc: Exception) -> DeliveryResult:
    """Represent a collaborator that raised instead of reporting a result."""
    return DeliveryResult(
        success=False,
        message=str(exc) or type(exc).__name__,
        error={
            "code": NOTIFICATION_DISPATCH_FAILURE,
            "type": type(exc).__name__,
            "message": str(exc),
            "retryable": False,
        },
    )


def build_log_payload(*, to: str, status: SubmissionStatus, result: DeliveryResult) -> dict[str, object]:
    return {"to": to, "status": status.value, "result": result.to_payload()}


@dataclass(frozen=True)
class StatusNotifier:
    repository: SubmissionRepository
    whatsapp: WhatsAppDispatcher
    email_sender: EmailSender
    catalog: MessageCatalog
    base_url: str

    async def notify(self, notice: StatusUpdateNotice) -> tuple[NotificationOutcome, ...]:
        """Dispatch every applicable channel concurrently and log each outcome.

        WhatsApp is always attempted; email only when the submission has an
        address. Channels never cancel each other and both are awaited.
        """
        submission = notice.submission
        jobs: list[Awaitable[NotificationOutcome]] = [
            self._run_channel(
                notice=notice,
                channel=NotificationChannel.WHATSAPP,
                to=submission.whatsapp_number,
                send=lambda: self.whatsapp.send(submission, notice.new_status),
            )
        ]
        if submission.has_email:
            jobs.append(
                self._run_channel(
                    notice=notice,
                    channel=NotificationChannel.EMAIL,
                    to=str(submission.email),
                    send=lambda: self._send_status_email(notice),
                )
            )

        results = await asyncio.gather(*jobs, return_exceptions=True)
        outcomes: list[NotificationOutcome] = []
        for result in results:
            if isinstance(result, BaseException):
                logger.error(
                    "notification channel crashed",
                    exc_info=result,
                    extra={"submission_id": submission.submission_id},
                )
                continue
            outcomes.append(result)
        return tuple(outcomes)

    async def _send_status_email(self, notice: StatusUpdateNotice) -> DeliveryResult:
        submission = notice.submission
        rendered = render_status_update_email(
            catalog=self.catalog,
            name=submission.name,
            service_type=submission.service_type,
            tracking_code=submission.tracking_code,
            old_status=notice.old_status,
            new_status=notice.new_status,
            updated_at=notice.updated_at,
            base_url=self.base_url,
        )
        return await self.email_sender.send(
            EmailMessage(
                to=(str(submission.email),),
                subject=rendered.subject,
                html=rendered.html,
                text=rendered.text,
            )
        )

    async def _run_channel(
        self,
        *,
        notice: StatusUpdateNotice,
        channel: NotificationChannel,
        to: str,
        send: Callable[[], Awaitable[DeliveryResult]],
    ) -> NotificationOutcome:
        submission_id = notice.submission.submission_id
        extra = {"submission_id": submission_id, "channel": channel.value}
        try:
            result = await send()
        except Exception as exc:
            logger.exception("notification dispatch failed", extra=extra)
            result = dispatch_failure(exc)

        send_status = SendStatus.SUCCESS if result.success else SendStatus.FAILED
        if send_status is SendStatus.FAILED:
            logger.warning("notification not delivered", extra={**extra, "detail": result.message})

        # The outcome reflects the collaborator result, not the log write.
        try:
            log = await self.repository.append_notification_log(
                submission_id=submission_id,
                channel=channel,
                send_status=send_status,
                payload=build_log_payload(to=to, status=notice.new_status, result=result),
            )
        except Exception:
            logger.exception("notification log write failed", extra=extra)
            return NotificationOutcome(channel=channel, send_status=send_status, log_id=None)

        return NotificationOutcome(channel=channel, send_status=send_status, log_id=log.log_id)
