from __future__ import annotations

from collections.abc import Callable
from datetime import UTC, datetime
import logging

from tracker.domain.contracts import SubmissionRepository
from tracker.domain.dto import StatusUpdateNotice, TransitionStatusCommand
from tracker.domain.errors import (
    ConflictingTransitionError,
    IllegalTransitionError,
    NoOpTransitionError,
    SubmissionNotFoundError,
)
from tracker.domain.lifecycle import ALLOWED_TRANSITIONS, parse_status, sorted_statuses
from tracker.domain.models import SubmissionStatus, TransitionResult
from tracker.domain.use_cases.notify import StatusNotifier

COMPONENT_ID = "domain.submissions.transition_status"

logger = logging.getLogger("tracker.transition")


def _utcnow() -> datetime:
    return datetime.now(tz=UTC)


def validate_transition(current: SubmissionStatus, requested: SubmissionStatus) -> None:
    if requested == current:
        raise NoOpTransitionError(current)
    allowed = ALLOWED_TRANSITIONS[current]
    if requested not in allowed:
        raise IllegalTransitionError(
            current_status=current,
            attempted_status=requested,
            allowed_statuses=sorted_statuses(allowed),
        )


async def transition_status(
    cmd: TransitionStatusCommand,
    *,
    repository: SubmissionRepository,
    notifier: StatusNotifier,
    clock: Callable[[], datetime] = _utcnow,
) -> TransitionResult:
    """Move a submission to the requested status and notify the applicant.

    Validation failures raise before anything is written. Once the status is
    persisted, notification failures are recorded in the notification log
    and never fail the transition.
    """
    requested = parse_status(cmd.requested_status)

    submission = await repository.get_submission(submission_id=cmd.submission_id)
    if submission is None:
        raise SubmissionNotFoundError(cmd.submission_id)

    old_status = submission.status
    validate_transition(old_status, requested)

    updated = await repository.compare_and_set_status(
        submission_id=submission.submission_id,
        expected_status=old_status,
        new_status=requested,
    )
    if updated is None:
        current = await repository.get_submission(submission_id=submission.submission_id)
        if current is None:
            raise SubmissionNotFoundError(cmd.submission_id)
        raise ConflictingTransitionError(
            submission_id=submission.submission_id,
            expected_status=old_status,
            attempted_status=requested,
            current_status=current.status,
        )

    logger.info(
        "submission status changed",
        extra={
            "submission_id": updated.submission_id,
            "old_status": old_status.value,
            "new_status": requested.value,
        },
    )

    outcomes = await notifier.notify(
        StatusUpdateNotice(
            submission=updated,
            old_status=old_status,
            new_status=requested,
            updated_at=updated.updated_at or clock(),
        )
    )

    return TransitionResult(
        submission_id=updated.submission_id,
        old_status=old_status,
        new_status=requested,
        notifications=outcomes,
    )
