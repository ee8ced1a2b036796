"""
Test doubles for the external collaborators: the Paystack gateway and the
notifications service.
"""

from decimal import Decimal
from typing import Any, Awaitable, Callable, Optional

from libs.common.currency import to_money
from services.payments_service.paystack_client import (
    RefundResult,
    TransactionInit,
    TransactionVerification,
)


class FakeGateway:
    """
    In-memory stand-in for ``PaystackClient``.

    Verification reports ``success`` for the initialized amount unless a test
    overrides ``statuses`` / ``amounts`` for a reference, or sets ``error`` to
    make every call raise.
    """

    def __init__(self):
        self.initialized: list[dict[str, Any]] = []
        self.verify_calls: list[str] = []
        self.refunds: list[tuple[str, Optional[Decimal]]] = []
        self.statuses: dict[str, str] = {}
        self.amounts: dict[str, Decimal] = {}
        self.currency = "NGN"
        self.error: Optional[Exception] = None
        # Runs inside verify_transaction, before the provider "answers"
        self.before_verify: Optional[Callable[[str], Awaitable[None]]] = None

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
        if self.error:
            raise self.error
        self.initialized.append(
            {
                "email": email,
                "amount": to_money(amount),
                "reference": reference,
                "currency": currency,
                "callback_url": callback_url,
                "metadata": metadata or {},
            }
        )
        self.amounts.setdefault(reference, to_money(amount))
        return TransactionInit(
            authorization_url=f"https://checkout.paystack.test/{reference}",
            access_code=f"ac_{reference}",
            reference=reference,
        )

    async def verify_transaction(self, reference: str) -> TransactionVerification:
        self.verify_calls.append(reference)
        if self.before_verify:
            await self.before_verify(reference)
        if self.error:
            raise self.error
        status = self.statuses.get(reference, "success")
        return TransactionVerification(
            reference=reference,
            status=status,
            amount=self.amounts.get(reference, Decimal("0.00")),
            currency=self.currency,
            paid_at="2026-01-04T10:00:00.000Z" if status == "success" else None,
            gateway_response="Approved" if status == "success" else "Declined",
            raw={"reference": reference, "status": status},
        )

    async def refund_transaction(
        self, reference: str, amount: Optional[Decimal] = None
    ) -> RefundResult:
        if self.error:
            raise self.error
        self.refunds.append((reference, amount))
        return RefundResult(
            status="pending",
            amount=to_money(amount or 0),
            raw={"transaction": reference, "status": "pending"},
        )


class RecordingNotifier:
    """Collects notifications instead of sending them."""

    def __init__(self, fail: bool = False):
        self.sent: list[dict[str, Any]] = []
        self.fail = fail

    async def notify(self, recipient_id, recipient_kind, event, payload=None) -> bool:
        if self.fail:
            raise RuntimeError("notifications service down")
        self.sent.append(
            {
                "recipient_id": str(recipient_id),
                "recipient_kind": getattr(recipient_kind, "value", recipient_kind),
                "event": event,
                "payload": payload or {},
            }
        )
        return True

    def events(self, name: str) -> list[dict[str, Any]]:
        return [n for n in self.sent if n["event"] == name]
