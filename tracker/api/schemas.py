from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from tracker.domain.models import NotificationChannel, SendStatus, SubmissionStatus


NOTIFICATION_LOG_ID_PATTERN = r"^ntf_[0-9A-HJKMNP-TV-Z]{26}$"
EMAIL_PATTERN = r"^[^\s@]+@[^\s@]+\.[^\s@]+$"


class ErrorResponse(BaseModel):
    message: str
    current_status: SubmissionStatus | None = None
    attempted_status: str | None = None
    allowed_statuses: list[SubmissionStatus] | None = None


class HealthResponse(BaseModel):
    status: str
    service: str
    mode: str


class ReadyResponse(BaseModel):
    status: str
    service: str
    mode: str
    database_initialized: bool


class UpdateStatusRequest(BaseModel):
    # Untyped so every bad value reaches the transition engine and gets a 400.
    status: Any = Field(default=None, examples=["PROCESSING"])


class UpdateStatusResponse(BaseModel):
    message: str
    old_status: SubmissionStatus
    new_status: SubmissionStatus
    submission_id: str


class SubmissionResponse(BaseModel):
    submission_id: str
    tracking_code: str
    name: str
    national_id: str
    whatsapp_number: str
    email: str | None
    service_type: str
    status: SubmissionStatus
    status_label: str
    allowed_next_statuses: list[SubmissionStatus]
    is_terminal: bool
    created_at: datetime | None = None
    updated_at: datetime | None = None


class TrackingResponse(BaseModel):
    tracking_code: str
    service_type: str
    status: SubmissionStatus
    status_label: str
    updated_at: datetime | None = None


class NotificationLogResponse(BaseModel):
    log_id: str = Field(pattern=NOTIFICATION_LOG_ID_PATTERN)
    submission_id: str
    channel: NotificationChannel
    send_status: SendStatus
    payload: dict[str, object]
    created_at: datetime | None = None


class NotificationLogListResponse(BaseModel):
    items: list[NotificationLogResponse]


class TestEmailResponse(BaseModel):
    success: bool
    message: str
    data: dict[str, object] | None = None
    error: dict[str, object] | str | None = None
