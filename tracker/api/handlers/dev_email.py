from __future__ import annotations

from datetime import UTC, datetime

from tracker.api.handlers.deps import ApiDeps
from tracker.api.schemas import TestEmailResponse
from tracker.domain.dto import EmailMessage
from tracker.notifications.email_templates import render_test_email

COMPONENT_ID = "api.dev.test_email"


async def send_test_email_handler(*, to: str, api_deps: ApiDeps) -> TestEmailResponse:
    sent_at = datetime.now(tz=UTC)
    rendered = render_test_email(
        catalog=api_deps.catalog,
        sent_at=sent_at,
        environment=api_deps.settings.environment,
    )
    result = await api_deps.email_sender.send(
        EmailMessage(to=(to,), subject=rendered.subject, html=rendered.html, text=rendered.text)
    )
    if not result.success:
        return TestEmailResponse(success=False, message=result.message, error=result.error)
    data = result.data or {}
    return TestEmailResponse(
        success=True,
        message="Test email sent successfully",
        data={
            "email_id": data.get("id"),
            "to": to,
            "timestamp": sent_at.isoformat(),
            "environment": api_deps.settings.environment,
        },
    )
