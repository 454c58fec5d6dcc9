from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from tracker.domain.models import SubmissionSnapshot, SubmissionStatus


@dataclass(frozen=True)
class EmailMessage:
    to: tuple[str, ...]
    subject: str
    html: str | None = None
    text: str | None = None
    from_address: str | None = None
    reply_to: str | None = None


@dataclass(frozen=True)
class RenderedEmail:
    subject: str
    html: str
    text: str


@dataclass(frozen=True)
class TransitionStatusCommand:
    submission_id: str
    requested_status: object


@dataclass(frozen=True)
class StatusUpdateNotice:
    submission: SubmissionSnapshot
    old_status: SubmissionStatus
    new_status: SubmissionStatus
    updated_at: datetime


@dataclass(frozen=True)
class CreateSubmissionCommand:
    name: str
    national_id: str
    whatsapp_number: str
    service_type: str
    email: str | None = None
    tracking_code: str | None = None
    status: SubmissionStatus = SubmissionStatus.NEW
