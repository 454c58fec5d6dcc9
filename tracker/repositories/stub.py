from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import UTC, datetime

from tracker.domain.dto import CreateSubmissionCommand
from tracker.domain.errors import DomainInvariantError
from tracker.domain.ids import new_notification_log_id, new_submission_id, new_tracking_code
from tracker.domain.models import (
    NotificationChannel,
    NotificationLogSnapshot,
    SendStatus,
    SubmissionSnapshot,
    SubmissionStatus,
)


@dataclass
class _SubmissionRow:
    submission_id: str
    tracking_code: str
    name: str
    national_id: str
    whatsapp_number: str
    email: str | None
    service_type: str
    status: SubmissionStatus
    created_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(tz=UTC))


@dataclass
class InMemorySubmissionRepository:
    """Non-network repository with the same guards as the Postgres one."""

    submissions: dict[str, _SubmissionRow] = field(default_factory=dict)
    tracking_codes: dict[str, str] = field(default_factory=dict)
    notification_logs: list[NotificationLogSnapshot] = field(default_factory=list)
    status_writes: list[tuple[str, str, str]] = field(default_factory=list)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    async def create_submission(self, cmd: CreateSubmissionCommand) -> SubmissionSnapshot:
        tracking_code = cmd.tracking_code or new_tracking_code()
        if tracking_code in self.tracking_codes:
            raise DomainInvariantError(f"tracking code already exists: {tracking_code}")
        submission_id = new_submission_id()
        row = _SubmissionRow(
            submission_id=submission_id,
            tracking_code=tracking_code,
            name=cmd.name,
            national_id=cmd.national_id,
            whatsapp_number=cmd.whatsapp_number,
            email=cmd.email,
            service_type=cmd.service_type,
            status=cmd.status,
        )
        self.submissions[submission_id] = row
        self.tracking_codes[tracking_code] = submission_id
        return _snapshot(row)

    async def get_submission(self, *, submission_id: str) -> SubmissionSnapshot | None:
        row = self.submissions.get(submission_id)
        if row is None:
            return None
        return _snapshot(row)

    async def find_by_tracking_code(self, *, tracking_code: str) -> SubmissionSnapshot | None:
        submission_id = self.tracking_codes.get(tracking_code)
        if submission_id is None:
            return None
        return await self.get_submission(submission_id=submission_id)

    async def compare_and_set_status(
        self,
        *,
        submission_id: str,
        expected_status: SubmissionStatus,
        new_status: SubmissionStatus,
    ) -> SubmissionSnapshot | None:
        async with self._lock:
            row = self.submissions.get(submission_id)
            if row is None or row.status != expected_status:
                return None
            row.status = new_status
            row.updated_at = datetime.now(tz=UTC)
            self.status_writes.append((submission_id, expected_status.value, new_status.value))
            return _snapshot(row)

    async def append_notification_log(
        self,
        *,
        submission_id: str,
        channel: NotificationChannel,
        send_status: SendStatus,
        payload: dict[str, object],
    ) -> NotificationLogSnapshot:
        if submission_id not in self.submissions:
            raise DomainInvariantError("notification log references missing submission")
        log = NotificationLogSnapshot(
            log_id=new_notification_log_id(),
            submission_id=submission_id,
            channel=channel,
            send_status=send_status,
            payload=dict(payload),
            created_at=datetime.now(tz=UTC),
        )
        self.notification_logs.append(log)
        return log

    async def list_notification_logs(self, *, submission_id: str) -> list[NotificationLogSnapshot]:
        return [log for log in self.notification_logs if log.submission_id == submission_id]


def _snapshot(row: _SubmissionRow) -> SubmissionSnapshot:
    return SubmissionSnapshot(
        submission_id=row.submission_id,
        tracking_code=row.tracking_code,
        name=row.name,
        national_id=row.national_id,
        whatsapp_number=row.whatsapp_number,
        email=row.email,
        service_type=row.service_type,
        status=row.status,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )
