from __future__ import annotations

from tracker.api.handlers.deps import ApiDeps
from tracker.api.schemas import SubmissionResponse, TrackingResponse
from tracker.domain.lifecycle import ALLOWED_TRANSITIONS, is_terminal, sorted_statuses

COMPONENT_ID_GET = "api.get_submission"
COMPONENT_ID_TRACK = "api.track_submission"


async def get_submission_handler(*, submission_id: str, api_deps: ApiDeps) -> SubmissionResponse | None:
    submission = await api_deps.repository.get_submission(submission_id=submission_id)
    if submission is None:
        return None
    return SubmissionResponse(
        submission_id=submission.submission_id,
        tracking_code=submission.tracking_code,
        name=submission.name,
        national_id=submission.national_id,
        whatsapp_number=submission.whatsapp_number,
        email=submission.email,
        service_type=submission.service_type,
        status=submission.status,
        status_label=api_deps.catalog.label(submission.status),
        allowed_next_statuses=sorted_statuses(ALLOWED_TRANSITIONS[submission.status]),
        is_terminal=is_terminal(submission.status),
        created_at=submission.created_at,
        updated_at=submission.updated_at,
    )


async def track_submission_handler(*, tracking_code: str, api_deps: ApiDeps) -> TrackingResponse | None:
    """Public lookup by tracking code; exposes no applicant identity fields."""
    submission = await api_deps.repository.find_by_tracking_code(tracking_code=tracking_code.strip())
    if submission is None:
        return None
    return TrackingResponse(
        tracking_code=submission.tracking_code,
        service_type=submission.service_type,
        status=submission.status,
        status_label=api_deps.catalog.label(submission.status),
        updated_at=submission.updated_at,
    )
