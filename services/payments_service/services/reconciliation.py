"""Payment reconciliation: initialize, verify, refund and fail order payments.

Verification is idempotent. The ``pending -> completed`` move is a single
conditional UPDATE; only the request that wins it marks the order paid,
clears the cart and notifies the customer. Everyone else gets the current
state back.
"""

import uuid
from decimal import Decimal
from typing import Optional

from libs.auth.models import AuthUser
from libs.common.config import get_settings
from libs.common.currency import to_money
from libs.common.datetime_utils import utc_now
from libs.common.errors import (
    AlreadyPaidError,
    InvalidTransitionError,
    NotAuthorizedError,
    OrderNotFoundError,
    PaymentAmountMismatchError,
    PaymentNotCompletedError,
    PaymentRecordNotFoundError,
    UpstreamGatewayError,
    ValidationError,
)
from libs.common.logging import get_logger
from libs.common.notifications import Notifier, RecipientKind, notify_safely
from services.payments_service.models import Payment, PaymentStatus, RefundStatus
from services.payments_service.paystack_client import (
    PaymentGateway,
    TransactionInit,
    TransactionVerification,
    parse_paid_at,
)
from services.store_service.models import Order, OrderStatus, PaymentMethod
from services.store_service.services.cart_ops import clear_cart
from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

CLOSED_ORDER_STATUSES = frozenset({OrderStatus.CANCELLED, OrderStatus.REFUNDED})


# ---------------------------------------------------------------------------
# Lookups
# ---------------------------------------------------------------------------


async def _get_order(
    db: AsyncSession, order_id: uuid.UUID, *, for_update: bool = False
) -> Order:
    query = select(Order).where(Order.id == order_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    order = (await db.execute(query)).scalar_one_or_none()
    if order is None:
        raise OrderNotFoundError()
    return order


def _ensure_owner(order: Order, user: Optional[AuthUser]) -> None:
    if user is not None and not user.is_admin and order.customer_auth_id != user.user_id:
        raise NotAuthorizedError("Not your order")


async def get_payment_for_order(db: AsyncSession, order_id: uuid.UUID) -> Optional[Payment]:
    result = await db.execute(select(Payment).where(Payment.order_id == order_id))
    return result.scalar_one_or_none()


async def get_payment(
    db: AsyncSession, payment_id: uuid.UUID, *, for_update: bool = False
) -> Payment:
    query = select(Payment).where(Payment.id == payment_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    payment = (await db.execute(query)).scalar_one_or_none()
    if payment is None:
        raise PaymentRecordNotFoundError()
    return payment


async def get_payment_by_reference(db: AsyncSession, reference: str) -> Payment:
    result = await db.execute(select(Payment).where(Payment.reference == reference))
    payment = result.scalar_one_or_none()
    if payment is None:
        raise PaymentRecordNotFoundError()
    return payment


async def list_payments(
    db: AsyncSession,
    *,
    status: Optional[PaymentStatus] = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Payment], int]:
    query = select(Payment)
    if status:
        query = query.where(Payment.status == status)

    total = (
        await db.execute(select(func.count()).select_from(query.subquery()))
    ).scalar() or 0
    query = query.order_by(Payment.created_at.desc())
    query = query.offset((page - 1) * page_size).limit(page_size)
    result = await db.execute(query)
    return list(result.scalars().all()), total


# ---------------------------------------------------------------------------
# Initialize
# ---------------------------------------------------------------------------


async def initialize_payment(
    db: AsyncSession,
    *,
    order_id: uuid.UUID,
    email: str,
    gateway: PaymentGateway,
    user: Optional[AuthUser] = None,
    callback_url: Optional[str] = None,
) -> tuple[Payment, TransactionInit]:
    """Start (or restart) the online payment for an order.

    The payment row is written as Pending with a fresh reference before the
    provider is contacted, so a timeout leaves a retryable Pending record.
    """
    settings = get_settings()
    order = await _get_order(db, order_id, for_update=True)
    _ensure_owner(order, user)

    if order.is_paid:
        raise AlreadyPaidError()
    if order.payment_method != PaymentMethod.PAYSTACK:
        raise ValidationError("Order is not payable online")
    if order.order_status in CLOSED_ORDER_STATUSES:
        raise InvalidTransitionError(
            f"Order is {order.order_status.value} and can no longer be paid"
        )

    payment = await get_payment_for_order(db, order.id)
    if payment is not None and payment.status in (
        PaymentStatus.COMPLETED,
        PaymentStatus.REFUNDED,
    ):
        raise AlreadyPaidError()

    reference = Payment.generate_reference()
    if payment is None:
        payment = Payment(
            order_id=order.id,
            customer_auth_id=order.customer_auth_id,
            method=order.payment_method,
            currency=settings.CURRENCY,
        )
        db.add(payment)
    payment.reference = reference
    payment.payer_email = email
    payment.amount = order.total_price
    payment.status = PaymentStatus.PENDING
    payment.failure_reason = None
    payment.authorization_url = None
    payment.access_code = None
    await db.commit()

    init = await gateway.initialize_transaction(
        email=email,
        amount=payment.amount,
        reference=reference,
        currency=payment.currency,
        callback_url=callback_url or settings.PAYSTACK_CALLBACK_URL or None,
        metadata={
            "order_id": str(order.id),
            "order_number": order.order_number,
            "customer_auth_id": order.customer_auth_id,
        },
    )

    payment.authorization_url = init.authorization_url
    payment.access_code = init.access_code
    await db.commit()

    logger.info(
        "Initialized payment %s for order %s (amount=%s %s)",
        reference,
        order.order_number,
        payment.amount,
        payment.currency,
    )
    return payment, init


# ---------------------------------------------------------------------------
# Verify
# ---------------------------------------------------------------------------


async def _claim_completion(
    db: AsyncSession, payment: Payment, verification: TransactionVerification
) -> bool:
    """Atomically move the payment from pending to completed. True if this call won."""
    paid_at = parse_paid_at(verification.paid_at) or utc_now()
    result = await db.execute(
        update(Payment)
        .where(Payment.id == payment.id, Payment.status == PaymentStatus.PENDING)
        .values(
            status=PaymentStatus.COMPLETED,
            paid_at=paid_at,
            payment_details=verification.raw,
            failure_reason=None,
            updated_at=utc_now(),
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def _record_failure(
    db: AsyncSession, payment: Payment, verification: TransactionVerification
) -> bool:
    reason = verification.gateway_response or verification.status
    result = await db.execute(
        update(Payment)
        .where(Payment.id == payment.id, Payment.status == PaymentStatus.PENDING)
        .values(
            status=PaymentStatus.FAILED,
            failure_reason=reason,
            payment_details=verification.raw,
            updated_at=utc_now(),
        )
        .execution_options(synchronize_session=False)
    )
    return result.rowcount == 1


async def _flag_payment_on_closed_order(
    order: Order, payment: Payment, notifier: Optional[Notifier]
) -> None:
    """Money arrived for an order that is already closed. It stays closed and
    the payment is left Completed so an operator can refund it."""
    logger.error(
        "Payment %s completed for %s order %s; refund required",
        payment.reference,
        order.order_status.value,
        order.order_number,
    )
    payload = {
        "order_id": str(order.id),
        "order_number": order.order_number,
        "payment_id": str(payment.id),
        "amount": str(payment.amount),
        "order_status": order.order_status.value,
    }
    await notify_safely(
        notifier,
        order.customer_auth_id,
        RecipientKind.CUSTOMER,
        "payment_received_for_closed_order",
        payload,
    )
    await notify_safely(
        notifier, "operations", RecipientKind.ADMIN, "refund_required", payload
    )


async def verify_payment(
    db: AsyncSession,
    *,
    order_id: uuid.UUID,
    reference: str,
    gateway: PaymentGateway,
    user: Optional[AuthUser] = None,
    notifier: Optional[Notifier] = None,
) -> tuple[Order, Payment]:
    """Confirm a payment with the provider and apply it to the order.

    Safe to call repeatedly (client polling and webhooks race freely).
    """
    result = await db.execute(
        select(Payment).where(Payment.order_id == order_id, Payment.reference == reference)
    )
    payment = result.scalar_one_or_none()
    if payment is None:
        raise PaymentRecordNotFoundError()

    order = await _get_order(db, order_id)
    _ensure_owner(order, user)

    if payment.status in (PaymentStatus.COMPLETED, PaymentStatus.REFUNDED):
        return order, payment
    if payment.status == PaymentStatus.FAILED:
        raise InvalidTransitionError(
            "Payment failed; initialize a new payment for this order"
        )

    verification = await gateway.verify_transaction(reference)

    if verification.success:
        if (
            to_money(verification.amount) != to_money(payment.amount)
            or verification.currency != payment.currency
        ):
            logger.error(
                "Payment %s amount mismatch: provider %s %s, expected %s %s",
                reference,
                verification.amount,
                verification.currency,
                payment.amount,
                payment.currency,
            )
            raise PaymentAmountMismatchError()

        if not await _claim_completion(db, payment, verification):
            # Another request completed it first
            await db.rollback()
            await db.refresh(payment)
            await db.refresh(order)
            return order, payment

        # Re-read under lock: the order may have been cancelled while the
        # provider call was in flight
        order = await _get_order(db, order_id, for_update=True)
        now = utc_now()
        order.is_paid = True
        order.paid_at = parse_paid_at(verification.paid_at) or now
        order.payment_result = {
            "reference": verification.reference,
            "status": verification.status,
            "amount": str(verification.amount),
            "currency": verification.currency,
            "gateway_response": verification.gateway_response,
            "verified_at": now.isoformat(),
        }

        if order.order_status in CLOSED_ORDER_STATUSES:
            await db.commit()
            await db.refresh(payment)
            await _flag_payment_on_closed_order(order, payment, notifier)
            return order, payment

        if order.order_status == OrderStatus.PENDING:
            order.order_status = OrderStatus.CONFIRMED

        await clear_cart(db, order.customer_auth_id)
        await db.commit()
        await db.refresh(payment)

        logger.info(
            "Payment %s completed for order %s", reference, order.order_number
        )
        await notify_safely(
            notifier,
            order.customer_auth_id,
            RecipientKind.CUSTOMER,
            "payment_confirmed",
            {
                "order_id": str(order.id),
                "order_number": order.order_number,
                "amount": str(payment.amount),
            },
        )
        return order, payment

    if verification.failed:
        if await _record_failure(db, payment, verification):
            await db.commit()
            logger.info(
                "Payment %s for order %s failed at provider: %s",
                reference,
                order.order_number,
                verification.status,
            )
        else:
            await db.rollback()
        await db.refresh(payment)
        if payment.status == PaymentStatus.COMPLETED:
            return order, payment
        raise PaymentNotCompletedError(
            f"Payment {verification.status}: "
            f"{verification.gateway_response or 'not completed'}. You can try again."
        )

    logger.warning(
        "Payment %s still %s at provider, leaving pending", reference, verification.status
    )
    raise UpstreamGatewayError(
        f"Payment is still {verification.status} with the provider, please retry shortly"
    )


# ---------------------------------------------------------------------------
# Refund / fail
# ---------------------------------------------------------------------------


async def refund_payment(
    db: AsyncSession,
    *,
    payment_id: uuid.UUID,
    gateway: PaymentGateway,
    amount: Optional[Decimal] = None,
    reason: Optional[str] = None,
    notifier: Optional[Notifier] = None,
) -> Payment:
    """Refund a completed payment, fully (default) or partially.

    A full refund also moves the order to ``refunded`` unless it was cancelled;
    a partial refund leaves the order status alone.
    """
    payment = await get_payment(db, payment_id, for_update=True)
    if payment.status != PaymentStatus.COMPLETED:
        raise InvalidTransitionError(
            f"Only completed payments can be refunded (payment is {payment.status.value})"
        )

    refund_amount = to_money(payment.amount if amount is None else amount)
    if refund_amount <= 0:
        raise ValidationError("Refund amount must be positive")
    if refund_amount > to_money(payment.amount):
        raise ValidationError(
            f"Refund amount {refund_amount} exceeds payment amount {payment.amount}"
        )

    result = await gateway.refund_transaction(payment.reference, refund_amount)

    now = utc_now()
    is_full = refund_amount == to_money(payment.amount)
    payment.refund_amount = refund_amount
    payment.refund_status = RefundStatus.FULL if is_full else RefundStatus.PARTIAL
    payment.refund_reason = reason
    payment.refunded_at = now
    payment.status = PaymentStatus.REFUNDED
    payment.payment_details = {
        **(payment.payment_details or {}),
        "refund": result.raw,
    }

    order = await _get_order(db, payment.order_id, for_update=True)
    if is_full:
        order.refunded_at = now
        # Cancelled is terminal; the refund is recorded on the payment
        if order.order_status != OrderStatus.CANCELLED:
            order.order_status = OrderStatus.REFUNDED

    await db.commit()
    logger.info(
        "Refunded %s (%s) on payment %s for order %s",
        refund_amount,
        payment.refund_status.value,
        payment.reference,
        order.order_number,
    )
    await notify_safely(
        notifier,
        order.customer_auth_id,
        RecipientKind.CUSTOMER,
        "payment_refunded",
        {
            "order_id": str(order.id),
            "order_number": order.order_number,
            "amount": str(refund_amount),
            "refund_status": payment.refund_status.value,
        },
    )
    return payment


async def mark_failed(
    db: AsyncSession,
    *,
    payment_id: uuid.UUID,
    reason: Optional[str] = None,
) -> Payment:
    """Operator action: give up on a pending payment. The order is not touched."""
    payment = await get_payment(db, payment_id, for_update=True)
    if payment.status != PaymentStatus.PENDING:
        raise InvalidTransitionError(
            f"Only pending payments can be marked failed (payment is {payment.status.value})"
        )
    payment.status = PaymentStatus.FAILED
    payment.failure_reason = reason or "Marked failed by admin"
    await db.commit()
    logger.info("Payment %s marked failed: %s", payment.reference, payment.failure_reason)
    return payment


async def fail_pending_by_reference(
    db: AsyncSession, reference: str, reason: str
) -> Optional[Payment]:
    """Mark a still-pending payment failed (provider failure events)."""
    result = await db.execute(
        update(Payment)
        .where(Payment.reference == reference, Payment.status == PaymentStatus.PENDING)
        .values(status=PaymentStatus.FAILED, failure_reason=reason, updated_at=utc_now())
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != 1:
        await db.rollback()
        return None
    await db.commit()
    payment = await get_payment_by_reference(db, reference)
    await db.refresh(payment)
    logger.info("Payment %s failed via provider event: %s", reference, reason)
    return payment
