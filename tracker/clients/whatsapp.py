from __future__ import annotations

from dataclasses import dataclass
import logging

import httpx

from tracker.domain.models import DeliveryResult, SubmissionSnapshot, SubmissionStatus
from tracker.notifications.catalog import MessageCatalog, render_whatsapp_message

COMPONENT_ID = "clients.whatsapp.http"

logger = logging.getLogger("tracker.whatsapp")


def normalize_whatsapp_number(value: str) -> str:
    return "".join(ch for ch in value if ch.isdigit() or ch == "+")


@dataclass
class HttpWhatsAppDispatcher:
    """Posts status messages to a WhatsApp gateway over HTTP."""

    api_url: str | None
    api_key: str | None
    catalog: MessageCatalog
    timeout_seconds: float = 15.0
    transport: httpx.AsyncBaseTransport | None = None

    async def send(self, submission: SubmissionSnapshot, new_status: SubmissionStatus) -> DeliveryResult:
        message = render_whatsapp_message(catalog=self.catalog, submission=submission, status=new_status)
        to = normalize_whatsapp_number(submission.whatsapp_number)
        if not self.api_url:
            return DeliveryResult(
                success=False,
                message="WhatsApp gateway is not configured",
                error={"code": "NOT_CONFIGURED", "retryable": False},
            )

        headers: dict[str, str] = {}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        body = {
            "to": to,
            "message": message,
            "submission_id": submission.submission_id,
            "tracking_code": submission.tracking_code,
            "status": new_status.value,
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout_seconds, transport=self.transport) as client:
                response = await client.post(self.api_url, json=body, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning(
                "whatsapp transport failed",
                extra={"submission_id": submission.submission_id, "detail": str(exc)},
            )
            return DeliveryResult(
                success=False,
                message=str(exc) or type(exc).__name__,
                error={"code": "TRANSPORT_ERROR", "retryable": True},
            )

        data = _json_object(response)
        if response.is_success:
            return DeliveryResult(success=True, message="WhatsApp message sent", data={"to": to, **data})
        return DeliveryResult(
            success=False,
            message=f"WhatsApp gateway responded with {response.status_code}",
            error={
                "code": "GATEWAY_REJECTED",
                "status_code": response.status_code,
                "retryable": response.status_code >= 500,
                "body": data,
            },
        )


def _json_object(response: httpx.Response) -> dict[str, object]:
    try:
        parsed = response.json()
    except ValueError:
        return {}
    if isinstance(parsed, dict):
        return parsed
    return {"body": parsed}
