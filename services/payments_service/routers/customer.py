"""Customer payment endpoints: initialize and verify order payments."""

import uuid

from fastapi import APIRouter, Depends
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.errors import PaymentRecordNotFoundError, ValidationError
from libs.common.notifications import Notifier, get_notifier
from libs.db.session import get_async_db
from services.payments_service.paystack_client import (
    PaymentGateway,
    get_payment_gateway,
)
from services.payments_service.schemas import (
    InitializePaymentRequest,
    InitializePaymentResponse,
    OrderPaymentSummary,
    PaymentResponse,
    VerifyPaymentRequest,
    VerifyPaymentResponse,
)
from services.payments_service.services import reconciliation
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post("/initialize", response_model=InitializePaymentResponse)
async def initialize_payment(
    payload: InitializePaymentRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
):
    """Start a Paystack checkout for one of the caller's orders."""
    email = payload.email or current_user.email
    if not email:
        raise ValidationError("An email address is required to pay online")

    payment, init = await reconciliation.initialize_payment(
        db,
        order_id=payload.order_id,
        email=str(email),
        gateway=gateway,
        user=current_user,
        callback_url=payload.callback_url,
    )
    return InitializePaymentResponse(
        payment_id=payment.id,
        reference=payment.reference,
        authorization_url=init.authorization_url,
        access_code=init.access_code,
        amount=payment.amount,
        currency=payment.currency,
    )


@router.post("/verify", response_model=VerifyPaymentResponse)
async def verify_payment(
    payload: VerifyPaymentRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    notifier: Notifier = Depends(get_notifier),
):
    """Confirm a payment with Paystack after the customer returns from checkout."""
    order, payment = await reconciliation.verify_payment(
        db,
        order_id=payload.order_id,
        reference=payload.reference,
        gateway=gateway,
        user=current_user,
        notifier=notifier,
    )
    return VerifyPaymentResponse(
        order=OrderPaymentSummary.model_validate(order),
        payment=PaymentResponse.model_validate(payment),
    )


@router.get("/orders/{order_id}", response_model=PaymentResponse)
async def get_order_payment(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    payment = await reconciliation.get_payment_for_order(db, order_id)
    if payment is None or (
        payment.customer_auth_id != current_user.user_id and not current_user.is_admin
    ):
        raise PaymentRecordNotFoundError()
    return PaymentResponse.model_validate(payment)
