"""Paystack webhook handler."""

import json

from fastapi import APIRouter, Depends, HTTPException, Request, status
from libs.common.errors import DomainError, UpstreamGatewayError
from libs.common.logging import get_logger
from libs.common.notifications import Notifier, get_notifier
from libs.db.session import get_async_db
from services.payments_service.paystack_client import (
    PaymentGateway,
    get_payment_gateway,
    verify_signature,
)
from services.payments_service.services import reconciliation
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/payments", tags=["payments"])
logger = get_logger(__name__)

FAILURE_EVENTS = frozenset({"charge.failed", "transaction.failed"})


@router.post("/webhooks/paystack")
async def paystack_webhook(
    request: Request,
    db: AsyncSession = Depends(get_async_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    notifier: Notifier = Depends(get_notifier),
):
    """
    Paystack webhook endpoint (no auth; verified by x-paystack-signature).

    ``charge.success`` is re-verified with Paystack and goes through the same
    idempotent reconciliation as customer verification.
    """
    raw = await request.body()
    signature = request.headers.get("x-paystack-signature")
    if not verify_signature(raw, signature):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid signature"
        )

    try:
        payload = json.loads(raw.decode("utf-8") or "{}")
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid payload"
        )
    if not isinstance(payload, dict):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid payload"
        )

    event = payload.get("event")
    data = payload.get("data") or {}
    if not isinstance(data, dict):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="Invalid payload"
        )
    reference = data.get("reference")
    if not reference:
        return {"received": True}

    if event == "charge.success":
        try:
            payment = await reconciliation.get_payment_by_reference(db, reference)
            await reconciliation.verify_payment(
                db,
                order_id=payment.order_id,
                reference=reference,
                gateway=gateway,
                notifier=notifier,
            )
        except UpstreamGatewayError:
            # Non-2xx makes Paystack redeliver later
            raise
        except DomainError as e:
            logger.warning(
                "Webhook %s for %s not applied: %s", event, reference, e.message
            )
    elif event in FAILURE_EVENTS:
        reason = data.get("gateway_response") or event
        await reconciliation.fail_pending_by_reference(db, reference, reason)
    else:
        logger.debug("Ignoring Paystack event %s for %s", event, reference)

    return {"received": True}
