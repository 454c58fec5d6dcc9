from __future__ import annotations

from typing import Protocol, runtime_checkable

from tracker.domain.dto import CreateSubmissionCommand, EmailMessage
from tracker.domain.models import (
    DeliveryResult,
    NotificationChannel,
    NotificationLogSnapshot,
    SendStatus,
    SubmissionSnapshot,
    SubmissionStatus,
)

CAS_SQL_CONTRACT = "UPDATE submissions SET status = $3 WHERE id = $1 AND status = $2"


@runtime_checkable
class SubmissionRepository(Protocol):
    """Persistence contract for submissions and their notification log.

    Status writes are compare-and-set: the update applies only while the
    stored status still equals ``expected_status``.
    """

    async def create_submission(self, cmd: CreateSubmissionCommand) -> SubmissionSnapshot: ...

    async def get_submission(self, *, submission_id: str) -> SubmissionSnapshot | None: ...

    async def find_by_tracking_code(self, *, tracking_code: str) -> SubmissionSnapshot | None: ...

    # Returns the updated snapshot, or None when the row is missing or its
    # status no longer equals expected_status.
    async def compare_and_set_status(
        self,
        *,
        submission_id: str,
        expected_status: SubmissionStatus,
        new_status: SubmissionStatus,
    ) -> SubmissionSnapshot | None: ...

    # Append-only. Notification logs are never updated.
    async def append_notification_log(
        self,
        *,
        submission_id: str,
        channel: NotificationChannel,
        send_status: SendStatus,
        payload: dict[str, object],
    ) -> NotificationLogSnapshot: ...

    async def list_notification_logs(self, *, submission_id: str) -> list[NotificationLogSnapshot]: ...


@runtime_checkable
class WhatsAppDispatcher(Protocol):
    async def send(self, submission: SubmissionSnapshot, new_status: SubmissionStatus) -> DeliveryResult: ...


@runtime_checkable
class EmailSender(Protocol):
    async def send(self, message: EmailMessage) -> DeliveryResult: ...
