import asyncio
from collections import deque

import pytest

from tracker.clients.stub import StubEmailSender, StubWhatsAppDispatcher
from tracker.domain.dto import TransitionStatusCommand
from tracker.domain.error_taxonomy import classify_http_status
from tracker.domain.models import (
    DeliveryResult,
    NotificationChannel,
    NotificationLogSnapshot,
    SendStatus,
    SubmissionStatus,
)
from tracker.domain.use_cases.notify import NOTIFICATION_DISPATCH_FAILURE, build_log_payload
from tracker.domain.use_cases.transition import transition_status
from tracker.repositories.stub import InMemorySubmissionRepository
from tests.unit.tracker_seed import BASE_URL, build_notifier, create_submission


class FailingWhatsAppLogRepository(InMemorySubmissionRepository):
    async def append_notification_log(self, *, submission_id, channel, send_status, payload) -> NotificationLogSnapshot:
        if channel is NotificationChannel.WHATSAPP:
            raise RuntimeError("log table unavailable")
        return await super().append_notification_log(
            submission_id=submission_id,
            channel=channel,
            send_status=send_status,
            payload=payload,
        )


@pytest.mark.unit
def test_rate_limited_email_is_logged_and_transition_succeeds() -> None:
    repo = InMemorySubmissionRepository()
    rate_limited = classify_http_status(429, retry_after="30")
    email_sender = StubEmailSender(
        results=deque([DeliveryResult(success=False, message=rate_limited.message, error=rate_limited.to_payload())])
    )

    async def _run() -> None:
        submission = await create_submission(repo)
        result = await transition_status(
            TransitionStatusCommand(submission_id=submission.submission_id, requested_status="PROCESSING"),
            repository=repo,
            notifier=build_notifier(repo, email_sender=email_sender),
        )
        assert result.new_status is SubmissionStatus.PROCESSING

        logs = await repo.list_notification_logs(submission_id=submission.submission_id)
        by_channel = {log.channel: log for log in logs}
        assert by_channel[NotificationChannel.WHATSAPP].send_status is SendStatus.SUCCESS
        email_log = by_channel[NotificationChannel.EMAIL]
        assert email_log.send_status is SendStatus.FAILED
        assert email_log.payload["to"] == "applicant@example.com"
        assert email_log.payload["status"] == "PROCESSING"
        error = email_log.payload["result"]["error"]
        assert error["code"] == "RATE_LIMITED"
        assert error["retryable"] is True
        assert error["retry_after"] == 30

    asyncio.run(_run())


@pytest.mark.unit
def test_raising_dispatcher_is_recorded_as_failed_log() -> None:
    repo = InMemorySubmissionRepository()
    whatsapp = StubWhatsAppDispatcher(results=deque([ConnectionError("gateway down")]))

    async def _run() -> None:
        submission = await create_submission(repo)
        result = await transition_status(
            TransitionStatusCommand(submission_id=submission.submission_id, requested_status="PROCESSING"),
            repository=repo,
            notifier=build_notifier(repo, whatsapp=whatsapp),
        )
        outcomes = {outcome.channel: outcome for outcome in result.notifications}
        assert outcomes[NotificationChannel.WHATSAPP].send_status is SendStatus.FAILED
        assert outcomes[NotificationChannel.EMAIL].send_status is SendStatus.SUCCESS

        logs = await repo.list_notification_logs(submission_id=submission.submission_id)
        whatsapp_log = next(log for log in logs if log.channel is NotificationChannel.WHATSAPP)
        assert whatsapp_log.send_status is SendStatus.FAILED
        assert whatsapp_log.payload["result"]["error"]["code"] == NOTIFICATION_DISPATCH_FAILURE
        assert whatsapp_log.payload["result"]["message"] == "gateway down"

    asyncio.run(_run())


@pytest.mark.unit
def test_failed_log_write_does_not_block_other_channel() -> None:
    repo = FailingWhatsAppLogRepository()

    async def _run() -> None:
        submission = await create_submission(repo)
        result = await transition_status(
            TransitionStatusCommand(submission_id=submission.submission_id, requested_status="PROCESSING"),
            repository=repo,
            notifier=build_notifier(repo),
        )
        outcomes = {outcome.channel: outcome for outcome in result.notifications}
        assert outcomes[NotificationChannel.WHATSAPP].log_id is None
        assert outcomes[NotificationChannel.EMAIL].log_id is not None

        logs = await repo.list_notification_logs(submission_id=submission.submission_id)
        assert [log.channel for log in logs] == [NotificationChannel.EMAIL]

    asyncio.run(_run())


@pytest.mark.unit
def test_status_email_uses_catalog_copy_and_tracking_link() -> None:
    repo = InMemorySubmissionRepository()
    email_sender = StubEmailSender()
    whatsapp = StubWhatsAppDispatcher()

    async def _run() -> str:
        submission = await create_submission(repo, tracking_code="LPM-TEST000001")
        await transition_status(
            TransitionStatusCommand(submission_id=submission.submission_id, requested_status="PROCESSING"),
            repository=repo,
            notifier=build_notifier(repo, whatsapp=whatsapp, email_sender=email_sender),
        )
        return submission.submission_id

    submission_id = asyncio.run(_run())

    assert len(email_sender.sent) == 1
    message = email_sender.sent[0]
    assert message.to == ("applicant@example.com",)
    assert message.subject == "Submission status update"
    assert message.text is not None
    assert "Your submission status has changed from NEW to PROCESSING" in message.text
    assert f"{BASE_URL}/public?tracking=LPM-TEST000001" in message.text
    assert whatsapp.sent[0]["submission_id"] == submission_id
    assert "LPM-TEST000001" in whatsapp.sent[0]["message"]


@pytest.mark.unit
def test_log_payload_shape() -> None:
    payload = build_log_payload(
        to="+628120000001",
        status=SubmissionStatus.DONE,
        result=DeliveryResult(success=True, message="ok", data={"id": "m-1"}),
    )

    assert payload == {
        "to": "+628120000001",
        "status": "DONE",
        "result": {"success": True, "message": "ok", "data": {"id": "m-1"}},
    }
