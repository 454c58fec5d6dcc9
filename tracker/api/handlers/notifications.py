from __future__ import annotations

from tracker.api.handlers.deps import ApiDeps
from tracker.api.schemas import NotificationLogListResponse, NotificationLogResponse

COMPONENT_ID = "api.list_notifications"


async def list_notifications_handler(*, submission_id: str, api_deps: ApiDeps) -> NotificationLogListResponse | None:
    submission = await api_deps.repository.get_submission(submission_id=submission_id)
    if submission is None:
        return None
    items = await api_deps.repository.list_notification_logs(submission_id=submission_id)
    return NotificationLogListResponse(
        items=[
            NotificationLogResponse(
                log_id=item.log_id,
                submission_id=item.submission_id,
                channel=item.channel,
                send_status=item.send_status,
                payload=item.payload,
                created_at=item.created_at,
            )
            for item in items
        ]
    )
