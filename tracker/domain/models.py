from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import StrEnum


# Canonical submission statuses.
#
# IMPORTANT:
# - Keep this enum synchronized with tracker/domain/lifecycle.py.
# - Keep this enum synchronized with the DB status CHECK constraint in
#   tracker/repositories/sql/bootstrap_up.sql.
# - Every status must have an entry in the notification message catalog.
class SubmissionStatus(StrEnum):
    NEW = "NEW"
    PROCESSING = "PROCESSING"
    DONE = "DONE"
    REJECTED = "REJECTED"


class NotificationChannel(StrEnum):
    WHATSAPP = "WHATSAPP"
    EMAIL = "EMAIL"


class SendStatus(StrEnum):
    SUCCESS = "SUCCESS"
    FAILED = "FAILED"


@dataclass(frozen=True)
class SubmissionSnapshot:
    submission_id: str
    tracking_code: str
    name: str
    national_id: str
    whatsapp_number: str
    email: str | None
    service_type: str
    status: SubmissionStatus
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def has_email(self) -> bool:
        return bool(self.email and self.email.strip())


@dataclass(frozen=True)
class NotificationLogSnapshot:
    log_id: str
    submission_id: str
    channel: NotificationChannel
    send_status: SendStatus
    payload: dict[str, object]
    created_at: datetime | None = None


@dataclass(frozen=True)
class DeliveryResult:
    """Outcome reported by an outbound collaborator (WhatsApp or email)."""

    success: bool
    message: str = ""
    data: dict[str, object] | None = None
    error: dict[str, object] | None = None

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {"success": self.success, "message": self.message}
        if self.data is not None:
            payload["data"] = dict(self.data)
        if self.error is not None:
            payload["error"] = dict(self.error)
        return payload


@dataclass(frozen=True)
class NotificationOutcome:
    channel: NotificationChannel
    send_status: SendStatus
    log_id: str | None


@dataclass(frozen=True)
class TransitionResult:
    submission_id: str
    old_status: SubmissionStatus
    new_status: SubmissionStatus
    notifications: tuple[NotificationOutcome, ...] = ()
