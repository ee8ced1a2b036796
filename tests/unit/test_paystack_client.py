"""Unit tests for the Paystack client against a mocked transport."""

import hashlib
import hmac
import json
from decimal import Decimal

import httpx
import pytest
from services.payments_service.paystack_client import (
    PaystackClient,
    PaystackError,
    verify_signature,
)


def _client(handler) -> PaystackClient:
    return PaystackClient(
        secret_key="sk_test_secret",
        base_url="https://api.paystack.test",
        http_client=httpx.AsyncClient(transport=httpx.MockTransport(handler)),
    )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_initialize_sends_minor_units():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["path"] = request.url.path
        seen["auth"] = request.headers["Authorization"]
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "status": True,
                "data": {
                    "authorization_url": "https://checkout.paystack.com/abc",
                    "access_code": "abc",
                    "reference": seen["body"]["reference"],
                },
            },
        )

    client = _client(handler)
    init = await client.initialize_transaction(
        email="ada@test.com", amount=Decimal("28.00"), reference="PAY-1"
    )
    await client.aclose()

    assert seen["path"] == "/transaction/initialize"
    assert seen["auth"] == "Bearer sk_test_secret"
    assert seen["body"]["amount"] == 2800
    assert init.authorization_url == "https://checkout.paystack.com/abc"
    assert init.reference == "PAY-1"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_verify_converts_amount_back():
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/transaction/verify/PAY-1"
        return httpx.Response(
            200,
            json={
                "status": True,
                "data": {
                    "reference": "PAY-1",
                    "status": "success",
                    "amount": 2800,
                    "currency": "NGN",
                    "paid_at": "2026-01-04T10:00:00.000Z",
                    "gateway_response": "Successful",
                },
            },
        )

    client = _client(handler)
    result = await client.verify_transaction("PAY-1")

    assert result.success
    assert not result.failed
    assert result.amount == Decimal("28.00")
    assert result.currency == "NGN"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_abandoned_transaction_is_a_failure():
    def handler(request):
        return httpx.Response(
            200,
            json={
                "status": True,
                "data": {"reference": "PAY-2", "status": "abandoned", "amount": 100},
            },
        )

    result = await _client(handler).verify_transaction("PAY-2")

    assert result.failed
    assert not result.success


@pytest.mark.asyncio
@pytest.mark.unit
async def test_timeout_raises_paystack_error():
    def handler(request):
        raise httpx.ReadTimeout("timed out", request=request)

    with pytest.raises(PaystackError):
        await _client(handler).verify_transaction("PAY-3")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_error_response_raises_with_provider_status():
    def handler(request):
        return httpx.Response(
            400, json={"status": False, "message": "Invalid key"}
        )

    with pytest.raises(PaystackError) as exc_info:
        await _client(handler).initialize_transaction(
            email="ada@test.com", amount=Decimal("1.00"), reference="PAY-4"
        )

    assert exc_info.value.provider_status == 400
    assert exc_info.value.message == "Invalid key"


@pytest.mark.asyncio
@pytest.mark.unit
async def test_refund_posts_transaction_and_amount():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["body"] = json.loads(request.content)
        return httpx.Response(
            200, json={"status": True, "data": {"status": "pending", "amount": 500}}
        )

    result = await _client(handler).refund_transaction("PAY-5", Decimal("5.00"))

    assert seen["path"] == "/refund"
    assert seen["body"] == {"transaction": "PAY-5", "amount": 500}
    assert result.amount == Decimal("5.00")


@pytest.mark.unit
def test_verify_signature():
    body = b'{"event":"charge.success"}'
    good = hmac.new(b"sk_test_secret", body, hashlib.sha512).hexdigest()

    assert verify_signature(body, good, secret_key="sk_test_secret")
    assert not verify_signature(body, "bad", secret_key="sk_test_secret")
    assert not verify_signature(body, None, secret_key="sk_test_secret")
