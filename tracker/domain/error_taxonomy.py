from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

# Canonical error vocabulary reported by the email sender.
EmailErrorCode = Literal[
    "UNAUTHORIZED",
    "UNPROCESSABLE_ENTITY",
    "RATE_LIMITED",
    "SERVER_ERROR",
    "UNKNOWN_ERROR",
    "VALIDATION_ERROR",
]

RetryClassification = Literal["recoverable", "terminal"]

CANONICAL_EMAIL_ERROR_CODES: tuple[EmailErrorCode, ...] = (
    "UNAUTHORIZED",
    "UNPROCESSABLE_ENTITY",
    "RATE_LIMITED",
    "SERVER_ERROR",
    "UNKNOWN_ERROR",
    "VALIDATION_ERROR",
)

SERVER_ERROR_STATUSES: frozenset[int] = frozenset({500, 502, 503, 504})

DEFAULT_RETRY_AFTER_SECONDS = 60


@dataclass(frozen=True)
class EmailError:
    code: EmailErrorCode
    message: str
    status_code: int | None
    retryable: bool
    retry_after: int | None = None

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {
            "code": self.code,
            "message": self.message,
            "status_code": self.status_code,
            "retryable": self.retryable,
        }
        if self.retry_after is not None:
            payload["retry_after"] = self.retry_after
        return payload


def is_canonical_error_code(code: str) -> bool:
    return code in CANONICAL_EMAIL_ERROR_CODES


def classify_retry(error: EmailError) -> RetryClassification:
    if error.retryable:
        return "recoverable"
    return "terminal"


def classify_http_status(
    status_code: int | None,
    *,
    message: str | None = None,
    retry_after: str | int | None = None,
) -> EmailError:
    """Map a provider HTTP status onto the email error vocabulary.

    A missing status (transport failure, timeout) is treated as 500.
    """
    status = status_code if status_code is not None else 500

    if status == 401:
        return EmailError(
            code="UNAUTHORIZED",
            message="Invalid API key. Check RESEND_API_KEY.",
            status_code=401,
            retryable=False,
        )
    if status == 422:
        return EmailError(
            code="UNPROCESSABLE_ENTITY",
            message="Sender domain is not verified with the email provider.",
            status_code=422,
            retryable=False,
        )
    if status == 429:
        return EmailError(
            code="RATE_LIMITED",
            message="Rate limit exceeded. Retry after some time.",
            status_code=429,
            retryable=True,
            retry_after=_parse_retry_after(retry_after),
        )
    if status in SERVER_ERROR_STATUSES:
        return EmailError(
            code="SERVER_ERROR",
            message="Email provider temporarily unavailable. Retry later.",
            status_code=status,
            retryable=True,
        )
    return EmailError(
        code="UNKNOWN_ERROR",
        message=message or "Unknown error occurred",
        status_code=status,
        retryable=status >= 500,
    )


def validation_error(message: str) -> EmailError:
    return EmailError(code="VALIDATION_ERROR", message=message, status_code=None, retryable=False)


def _parse_retry_after(value: str | int | None) -> int:
    if value is None:
        return DEFAULT_RETRY_AFTER_SECONDS
    try:
        parsed = int(value)
    except (TypeError, ValueError):
        return DEFAULT_RETRY_AFTER_SECONDS
    return parsed if parsed >= 0 else DEFAULT_RETRY_AFTER_SECONDS
