import asyncio
from collections import deque
import json

import httpx
import pytest

from tracker.clients.resend import ResendEmailSender
from tracker.domain.dto import EmailMessage

MESSAGE = EmailMessage(to=("applicant@example.com",), subject="Submission status update", text="Hello")


def _sender(responses: list[httpx.Response], *, sleeps: list[float] | None = None, **kwargs: object):
    queue = deque(responses)
    requests: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return queue.popleft()

    async def _sleep(seconds: float) -> None:
        if sleeps is not None:
            sleeps.append(seconds)

    sender = ResendEmailSender(
        api_key="re_test",
        from_address="noreply@tracker.example.test",
        transport=httpx.MockTransport(_handler),
        sleep=_sleep,
        **kwargs,
    )
    return sender, requests


@pytest.mark.unit
def test_send_posts_to_resend_with_bearer_token() -> None:
    sender, requests = _sender([httpx.Response(200, json={"id": "email-1"})], reply_to="desk@example.test")

    result = asyncio.run(sender.send(MESSAGE))

    assert result.success is True
    assert result.data == {"id": "email-1"}
    assert len(requests) == 1
    request = requests[0]
    assert request.url == "https://api.resend.com/emails"
    assert request.headers["Authorization"] == "Bearer re_test"
    assert json.loads(request.content) == {
        "from": "noreply@tracker.example.test",
        "to": ["applicant@example.com"],
        "subject": "Submission status update",
        "text": "Hello",
        "reply_to": "desk@example.test",
    }


@pytest.mark.unit
def test_missing_fields_fail_without_http_call() -> None:
    sender, requests = _sender([])

    result = asyncio.run(sender.send(EmailMessage(to=(), subject="x", text="y")))

    assert result.success is False
    assert result.error is not None
    assert result.error["code"] == "VALIDATION_ERROR"
    assert requests == []


@pytest.mark.unit
def test_missing_api_key_reports_unauthorized() -> None:
    sender = ResendEmailSender(api_key=None, from_address="noreply@tracker.example.test")

    result = asyncio.run(sender.send(MESSAGE))

    assert result.success is False
    assert result.error is not None
    assert result.error["code"] == "UNAUTHORIZED"


@pytest.mark.unit
def test_rate_limit_response_is_classified() -> None:
    sender, _ = _sender([httpx.Response(429, headers={"retry-after": "5"}, json={"message": "slow down"})])

    result = asyncio.run(sender.send(MESSAGE))

    assert result.success is False
    assert result.error == {
        "code": "RATE_LIMITED",
        "message": "Rate limit exceeded. Retry after some time.",
        "status_code": 429,
        "retryable": True,
        "retry_after": 5,
    }


@pytest.mark.unit
def test_transport_error_is_treated_as_server_error() -> None:
    def _handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    sender = ResendEmailSender(
        api_key="re_test",
        from_address="noreply@tracker.example.test",
        transport=httpx.MockTransport(_handler),
    )

    result = asyncio.run(sender.send(MESSAGE))

    assert result.success is False
    assert result.error is not None
    assert result.error["code"] == "SERVER_ERROR"
    assert result.error["retryable"] is True


@pytest.mark.unit
def test_retry_backs_off_and_recovers() -> None:
    sleeps: list[float] = []
    sender, requests = _sender(
        [httpx.Response(503), httpx.Response(502), httpx.Response(200, json={"id": "email-2"})],
        sleeps=sleeps,
    )

    result = asyncio.run(sender.send_with_retry(MESSAGE, max_retries=3, retry_delay_ms=100))

    assert result.success is True
    assert len(requests) == 3
    assert sleeps == [0.1, 0.2]


@pytest.mark.unit
def test_retry_stops_on_non_retryable_error() -> None:
    sleeps: list[float] = []
    sender, requests = _sender([httpx.Response(422, json={"message": "domain not verified"})], sleeps=sleeps)

    result = asyncio.run(sender.send_with_retry(MESSAGE, max_retries=3))

    assert result.success is False
    assert result.error is not None
    assert result.error["code"] == "UNPROCESSABLE_ENTITY"
    assert len(requests) == 1
    assert sleeps == []


@pytest.mark.unit
def test_retry_honours_retry_after_and_reports_exhaustion() -> None:
    sleeps: list[float] = []
    sender, requests = _sender(
        [httpx.Response(429, headers={"retry-after": "2"}), httpx.Response(429, headers={"retry-after": "2"})],
        sleeps=sleeps,
        max_retries=2,
    )

    result = asyncio.run(sender.send(MESSAGE))

    assert result.success is False
    assert result.message.startswith("Failed after 2 attempts:")
    assert len(requests) == 2
    assert sleeps == [2.0]


@pytest.mark.unit
def test_single_attempt_retry_reports_retryable_failure() -> None:
    sleeps: list[float] = []
    sender, requests = _sender([httpx.Response(503)], sleeps=sleeps)

    result = asyncio.run(sender.send_with_retry(MESSAGE, max_retries=0))

    assert result.success is False
    assert result.message.startswith("Failed after 1 attempts:")
    assert result.error is not None
    assert result.error["code"] == "SERVER_ERROR"
    assert len(requests) == 1
    assert sleeps == []
