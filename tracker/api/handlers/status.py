from __future__ import annotations

from tracker.api.handlers.deps import ApiDeps
from tracker.api.schemas import UpdateStatusResponse
from tracker.domain.dto import TransitionStatusCommand
from tracker.domain.use_cases.transition import transition_status

COMPONENT_ID = "api.update_submission_status"


async def update_submission_status_handler(
    *,
    submission_id: str,
    status: object,
    api_deps: ApiDeps,
) -> UpdateStatusResponse:
    result = await transition_status(
        TransitionStatusCommand(submission_id=submission_id, requested_status=status),
        repository=api_deps.repository,
        notifier=api_deps.notifier,
    )
    return UpdateStatusResponse(
        message="Status updated successfully",
        old_status=result.old_status,
        new_status=result.new_status,
        submission_id=result.submission_id,
    )
