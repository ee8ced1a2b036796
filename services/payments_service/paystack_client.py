"""
Paystack API client for order payments.

Provides async methods for:
- Initializing a transaction (redirect URL + reference)
- Verifying a transaction with the provider
- Refunding a transaction, fully or partially
- Checking webhook signatures

Every transport failure, timeout or non-successful response is raised as
``PaystackError`` (an ``UpstreamGatewayError``), so callers can leave their
payment records untouched and let the customer retry.
"""

import hashlib
import hmac
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Optional, Protocol

import httpx
from fastapi import Request
from libs.common.config import get_settings
from libs.common.currency import from_minor_units, to_minor_units
from libs.common.errors import UpstreamGatewayError
from libs.common.logging import get_logger

logger = get_logger(__name__)

SUCCESS_STATUSES = frozenset({"success"})
FAILURE_STATUSES = frozenset({"failed", "abandoned", "reversed"})


@dataclass
class TransactionInit:
    """Result of initializing a transaction."""

    authorization_url: str
    access_code: str
    reference: str


@dataclass
class TransactionVerification:
    """Provider's view of a transaction."""

    reference: str
    status: str  # success, failed, abandoned, reversed, ongoing, pending, ...
    amount: Decimal
    currency: str
    paid_at: Optional[str] = None
    gateway_response: Optional[str] = None
    raw: dict = field(default_factory=dict)

    @property
    def success(self) -> bool:
        return self.status in SUCCESS_STATUSES

    @property
    def failed(self) -> bool:
        return self.status in FAILURE_STATUSES


@dataclass
class RefundResult:
    """Result of a refund request."""

    status: str  # pending, processing, processed, failed
    amount: Decimal
    raw: dict = field(default_factory=dict)


class PaystackError(UpstreamGatewayError):
    """Paystack unreachable, timed out or rejected the call."""

    def __init__(
        self,
        message: str,
        provider_status: int = None,
        response_data: dict = None,
    ):
        self.provider_status = provider_status
        self.response_data = response_data or {}
        super().__init__(message)


class PaymentGateway(Protocol):
    async def initialize_transaction(
        self,
        *,
        email: str,
        amount: Decimal,
        reference: str,
        currency: str = "NGN",
        callback_url: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> TransactionInit: ...

    async def verify_transaction(self, reference: str) -> TransactionVerification: ...

    async def refund_transaction(
        self, reference: str, amount: Optional[Decimal] = None
    ) -> RefundResult: ...


class PaystackClient:
    """Async client for the Paystack Transaction and Refund APIs.

    Owns one ``httpx.AsyncClient`` with a bounded timeout; call ``aclose()`` on
    shutdown.
    """

    def __init__(
        self,
        secret_key: str = None,
        base_url: str = None,
        timeout: float = None,
        http_client: httpx.AsyncClient = None,
    ):
        settings = get_settings()
        self.secret_key = secret_key or settings.PAYSTACK_SECRET_KEY
        self.base_url = (base_url or settings.PAYSTACK_API_BASE_URL).rstrip("/")
        self._headers = {
            "Authorization": f"Bearer {self.secret_key}",
            "Content-Type": "application/json",
        }
        self._client = http_client or httpx.AsyncClient(
            timeout=timeout or settings.PAYSTACK_TIMEOUT_SECONDS
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        endpoint: str,
        json_data: dict = None,
    ) -> dict:
        """Make an async request to Paystack API and return its ``data`` block."""
        if not self.secret_key:
            raise PaystackError("Paystack is not configured")

        url = f"{self.base_url}{endpoint}"
        try:
            response = await self._client.request(
                method=method,
                url=url,
                headers=self._headers,
                json=json_data,
            )
        except httpx.TimeoutException as e:
            logger.error("Paystack %s %s timed out: %s", method, endpoint, e)
            raise PaystackError("Payment provider timed out, please retry")
        except httpx.HTTPError as e:
            logger.error("Paystack %s %s failed: %s", method, endpoint, e)
            raise PaystackError("Payment provider unreachable, please retry")

        try:
            body = response.json()
        except ValueError:
            body = {"message": response.text}

        if not response.is_success:
            logger.error(
                "Paystack API error: %s %s -> %d %s",
                method,
                endpoint,
                response.status_code,
                body,
            )
            raise PaystackError(
                message=body.get("message", "Unknown Paystack error"),
                provider_status=response.status_code,
                response_data=body,
            )

        if not body.get("status"):
            raise PaystackError(
                message=body.get("message", "Paystack request failed"),
                provider_status=response.status_code,
                response_data=body,
            )

        return body.get("data") or {}

    # =========================================================================
    # Transactions
    # =========================================================================

    async def initialize_transaction(
        self,
        *,
        email: str,
        amount: Decimal,
        reference: str,
        currency: str = "NGN",
        callback_url: Optional[str] = None,
        metadata: Optional[dict[str, Any]] = None,
    ) -> TransactionInit:
        """
        Start a hosted checkout for ``amount`` (major units).

        Returns:
            TransactionInit with the redirect URL and the reference to verify later
        """
        payload = {
            "email": email,
            "amount": to_minor_units(amount),
            "currency": currency,
            "reference": reference,
            "metadata": metadata or {},
        }
        if callback_url:
            payload["callback_url"] = callback_url

        data = await self._request("POST", "/transaction/initialize", json_data=payload)
        return TransactionInit(
            authorization_url=data.get("authorization_url", ""),
            access_code=data.get("access_code", ""),
            reference=data.get("reference", reference),
        )

    async def verify_transaction(self, reference: str) -> TransactionVerification:
        data = await self._request("GET", f"/transaction/verify/{reference}")
        return TransactionVerification(
            reference=data.get("reference", reference),
            status=str(data.get("status") or "unknown").lower(),
            amount=from_minor_units(data.get("amount") or 0),
            currency=data.get("currency", "NGN"),
            paid_at=data.get("paid_at") or data.get("paidAt"),
            gateway_response=data.get("gateway_response"),
            raw=data,
        )

    async def refund_transaction(
        self, reference: str, amount: Optional[Decimal] = None
    ) -> RefundResult:
        """Refund a transaction. ``amount`` omitted means the full amount."""
        payload: dict[str, Any] = {"transaction": reference}
        if amount is not None:
            payload["amount"] = to_minor_units(amount)

        data = await self._request("POST", "/refund", json_data=payload)
        return RefundResult(
            status=str(data.get("status") or "pending").lower(),
            amount=from_minor_units(data.get("amount") or 0),
            raw=data,
        )


# =========================================================================
# Webhooks
# =========================================================================


def verify_signature(
    raw_body: bytes, signature: Optional[str], secret_key: Optional[str] = None
) -> bool:
    """Check ``x-paystack-signature`` (HMAC-SHA512 of the raw body)."""
    secret = secret_key or get_settings().PAYSTACK_SECRET_KEY
    if not signature or not secret:
        return False
    digest = hmac.new(secret.encode("utf-8"), raw_body, hashlib.sha512).hexdigest()
    return hmac.compare_digest(digest, signature)


def parse_paid_at(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None


def get_payment_gateway(request: Request) -> PaymentGateway:
    """FastAPI dependency returning the app-scoped gateway client."""
    return request.app.state.payment_gateway
