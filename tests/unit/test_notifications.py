"""Unit tests for the notification client: delivery is best-effort and never raises."""

import json

import httpx
import pytest
from libs.common.notifications import NotificationClient, RecipientKind, notify_safely
from tests.fakes import RecordingNotifier


def _client(handler, enabled=True) -> NotificationClient:
    return NotificationClient(
        base_url="http://notifications.test",
        enabled=enabled,
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_notify_posts_event():
    seen = {}

    def handler(request):
        seen["url"] = str(request.url)
        seen["body"] = json.loads(request.content)
        return httpx.Response(202)

    sent = await _client(handler).notify(
        "customer-1", RecipientKind.CUSTOMER, "order_placed", {"order_number": "KM-1"}
    )

    assert sent is True
    assert seen["url"] == "http://notifications.test/notifications"
    assert seen["body"] == {
        "recipient_id": "customer-1",
        "recipient_kind": "customer",
        "event": "order_placed",
        "payload": {"order_number": "KM-1"},
    }


@pytest.mark.asyncio
@pytest.mark.unit
async def test_notify_swallows_errors():
    def refused(request):
        raise httpx.ConnectError("connection refused", request=request)

    def rejected(request):
        return httpx.Response(500, text="boom")

    assert await _client(refused).notify("c", RecipientKind.CUSTOMER, "x") is False
    assert await _client(rejected).notify("c", RecipientKind.CUSTOMER, "x") is False


@pytest.mark.asyncio
@pytest.mark.unit
async def test_disabled_client_sends_nothing():
    def handler(request):
        raise AssertionError("should not be called")

    assert await _client(handler, enabled=False).notify(
        "c", RecipientKind.VENDOR, "x"
    ) is False


@pytest.mark.asyncio
@pytest.mark.unit
async def test_notify_safely_contains_notifier_exceptions():
    assert await notify_safely(
        RecordingNotifier(fail=True), "c", RecipientKind.CUSTOMER, "x"
    ) is False
    assert await notify_safely(None, "c", RecipientKind.CUSTOMER, "x") is False
