from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
import logging

import httpx

from tracker.domain.dto import EmailMessage
from tracker.domain.error_taxonomy import EmailError, classify_http_status, validation_error
from tracker.domain.models import DeliveryResult
from tracker.settings import DEFAULT_RESEND_API_BASE

COMPONENT_ID = "clients.email.resend"

logger = logging.getLogger("tracker.email")


@dataclass
class ResendEmailSender:
    """Email sender backed by the Resend HTTP API.

    ``send`` reports the outcome as a DeliveryResult and never raises for
    provider or transport failures. With ``max_retries > 1`` it retries
    retryable errors before reporting.
    """

    api_key: str | None
    from_address: str
    reply_to: str | None = None
    api_base: str = DEFAULT_RESEND_API_BASE
    timeout_seconds: float = 15.0
    max_retries: int = 1
    retry_delay_ms: int = 1000
    transport: httpx.AsyncBaseTransport | None = None
    sleep: Callable[[float], Awaitable[None]] = asyncio.sleep

    async def send(self, message: EmailMessage) -> DeliveryResult:
        if self.max_retries > 1:
            return await self.send_with_retry(
                message,
                max_retries=self.max_retries,
                retry_delay_ms=self.retry_delay_ms,
            )
        return await self.send_once(message)

    async def send_once(self, message: EmailMessage) -> DeliveryResult:
        if not message.to or not message.subject or not (message.html or message.text):
            return _failure(validation_error("Missing required fields: to, subject, and (html or text)"))
        if not self.api_key:
            return _failure(classify_http_status(401))

        body: dict[str, object] = {
            "from": message.from_address or self.from_address,
            "to": list(message.to),
            "subject": message.subject,
        }
        if message.html:
            body["html"] = message.html
        if message.text:
            body["text"] = message.text
        reply_to = message.reply_to or self.reply_to
        if reply_to:
            body["reply_to"] = reply_to

        try:
            async with httpx.AsyncClient(
                base_url=self.api_base,
                timeout=self.timeout_seconds,
                transport=self.transport,
            ) as client:
                response = await client.post(
                    "/emails",
                    json=body,
                    headers={"Authorization": f"Bearer {self.api_key}"},
                )
        except httpx.HTTPError as exc:
            logger.warning("email transport failed", extra={"detail": str(exc)})
            return _failure(classify_http_status(None, message=str(exc)))

        if response.is_success:
            data = _json_object(response)
            logger.info("email sent", extra={"detail": str(data.get("id", ""))})
            return DeliveryResult(success=True, message="Email sent successfully", data=data)

        error = classify_http_status(
            response.status_code,
            message=_provider_message(response),
            retry_after=response.headers.get("retry-after"),
        )
        logger.warning("email rejected by provider", extra={"detail": error.code})
        return _failure(error)

    async def send_with_retry(
        self,
        message: EmailMessage,
        *,
        max_retries: int = 3,
        retry_delay_ms: int = 1000,
    ) -> DeliveryResult:
        attempts = max(max_retries, 1)
        for attempt in range(1, attempts):
            result = await self.send_once(message)
            if result.success:
                if attempt > 1:
                    logger.info("email sent after retry", extra={"attempt": attempt})
                return result

            error = result.error or {}
            if not error.get("retryable"):
                return result

            retry_after = error.get("retry_after")
            if isinstance(retry_after, int):
                delay_seconds = float(retry_after)
            else:
                delay_seconds = retry_delay_ms * (2 ** (attempt - 1)) / 1000
            logger.info("email retry scheduled", extra={"attempt": attempt + 1, "detail": f"{delay_seconds}s"})
            await self.sleep(delay_seconds)

        last = await self.send_once(message)
        if last.success:
            if attempts > 1:
                logger.info("email sent after retry", extra={"attempt": attempts})
            return last
        if not (last.error or {}).get("retryable"):
            return last
        return DeliveryResult(
            success=False,
            message=f"Failed after {attempts} attempts: {last.message}",
            error=last.error,
        )


def _failure(error: EmailError) -> DeliveryResult:
    return DeliveryResult(success=False, message=error.message, error=error.to_payload())


def _json_object(response: httpx.Response) -> dict[str, object]:
    try:
        parsed = response.json()
    except ValueError:
        return {}
    if isinstance(parsed, dict):
        return parsed
    return {"body": parsed}


def _provider_message(response: httpx.Response) -> str | None:
    parsed = _json_object(response)
    message = parsed.get("message")
    if isinstance(message, str) and message:
        return message
    return response.reason_phrase or None
