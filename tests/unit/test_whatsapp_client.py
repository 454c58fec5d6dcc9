import asyncio
import json

import httpx
import pytest

from tracker.clients.whatsapp import HttpWhatsAppDispatcher, normalize_whatsapp_number
from tracker.domain.models import SubmissionSnapshot, SubmissionStatus
from tracker.notifications.catalog import default_catalog

SUBMISSION = SubmissionSnapshot(
    submission_id="sub_01HZY0000000000000000000AB",
    tracking_code="LPM-TEST000002",
    name="Ayu Pratiwi",
    national_id="3171010101900099",
    whatsapp_number="+62 812-0000-0099",
    email=None,
    service_type="Family Card",
    status=SubmissionStatus.PROCESSING,
)


@pytest.mark.unit
def test_normalize_whatsapp_number_keeps_digits_and_plus() -> None:
    assert normalize_whatsapp_number("+62 812-0000-0099") == "+6281200000099"


@pytest.mark.unit
def test_unconfigured_gateway_reports_failure() -> None:
    dispatcher = HttpWhatsAppDispatcher(api_url=None, api_key=None, catalog=default_catalog())

    result = asyncio.run(dispatcher.send(SUBMISSION, SubmissionStatus.DONE))

    assert result.success is False
    assert result.error == {"code": "NOT_CONFIGURED", "retryable": False}


@pytest.mark.unit
def test_gateway_receives_rendered_message() -> None:
    captured: list[httpx.Request] = []

    def _handler(request: httpx.Request) -> httpx.Response:
        captured.append(request)
        return httpx.Response(200, json={"message_id": "wa-1"})

    dispatcher = HttpWhatsAppDispatcher(
        api_url="https://wa.example.test/send",
        api_key="wa-key",
        catalog=default_catalog(),
        transport=httpx.MockTransport(_handler),
    )

    result = asyncio.run(dispatcher.send(SUBMISSION, SubmissionStatus.DONE))

    assert result.success is True
    assert result.data == {"to": "+6281200000099", "message_id": "wa-1"}
    body = json.loads(captured[0].content)
    assert captured[0].headers["Authorization"] == "Bearer wa-key"
    assert body["status"] == "DONE"
    assert body["tracking_code"] == "LPM-TEST000002"
    assert "Family Card" in body["message"]
    assert "complete" in body["message"]


@pytest.mark.unit
def test_gateway_rejection_is_reported() -> None:
    dispatcher = HttpWhatsAppDispatcher(
        api_url="https://wa.example.test/send",
        api_key=None,
        catalog=default_catalog(),
        transport=httpx.MockTransport(lambda request: httpx.Response(503, json={"error": "busy"})),
    )

    result = asyncio.run(dispatcher.send(SUBMISSION, SubmissionStatus.REJECTED))

    assert result.success is False
    assert result.error is not None
    assert result.error["code"] == "GATEWAY_REJECTED"
    assert result.error["status_code"] == 503
    assert result.error["retryable"] is True
