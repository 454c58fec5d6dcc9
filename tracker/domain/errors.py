from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from tracker.domain.models import SubmissionStatus


class DomainError(Exception):
    pass


class DomainValidationError(DomainError):
    pass


class DomainInvariantError(DomainError):
    pass


class InvalidStatusError(DomainValidationError):
    def __init__(self, value: object) -> None:
        self.value = value
        super().__init__("invalid status")


class SubmissionNotFoundError(DomainError):
    def __init__(self, submission_id: str) -> None:
        self.submission_id = submission_id
        super().__init__(f"submission not found: {submission_id}")


class NoOpTransitionError(DomainValidationError):
    def __init__(self, status: SubmissionStatus) -> None:
        self.current_status = status
        self.attempted_status = status
        super().__init__(f"status is already {status}")


class IllegalTransitionError(DomainInvariantError):
    def __init__(
        self,
        *,
        current_status: SubmissionStatus,
        attempted_status: SubmissionStatus,
        allowed_statuses: list[SubmissionStatus],
    ) -> None:
        self.current_status = current_status
        self.attempted_status = attempted_status
        self.allowed_statuses = allowed_statuses
        allowed = ", ".join(allowed_statuses) if allowed_statuses else "none (final status)"
        super().__init__(
            f'status cannot change from "{current_status}" to "{attempted_status}". '
            "Status only moves forward: NEW -> PROCESSING -> DONE. "
            f"Allowed statuses: {allowed}"
        )


class ConflictingTransitionError(DomainInvariantError):
    def __init__(
        self,
        *,
        submission_id: str,
        expected_status: SubmissionStatus,
        attempted_status: SubmissionStatus,
        current_status: SubmissionStatus | None,
    ) -> None:
        self.submission_id = submission_id
        self.expected_status = expected_status
        self.attempted_status = attempted_status
        self.current_status = current_status
        super().__init__(
            f"submission {submission_id} changed concurrently: "
            f"expected {expected_status}, found {current_status or 'unknown'}"
        )
