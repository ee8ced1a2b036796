"""Admin payment endpoints: listing, refunds and failure marking."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.logging import get_logger
from libs.common.notifications import Notifier, get_notifier
from libs.db.session import get_async_db
from services.payments_service.models import PaymentStatus
from services.payments_service.paystack_client import (
    PaymentGateway,
    get_payment_gateway,
)
from services.payments_service.schemas import (
    MarkFailedRequest,
    PaymentListResponse,
    PaymentResponse,
    RefundRequest,
)
from services.payments_service.services import reconciliation
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)
router = APIRouter(prefix="/admin/payments", tags=["admin-payments"])


@router.get("", response_model=PaymentListResponse)
async def list_payments(
    status: Optional[PaymentStatus] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    payments, total = await reconciliation.list_payments(
        db, status=status, page=page, page_size=page_size
    )
    return PaymentListResponse(
        items=[PaymentResponse.model_validate(p) for p in payments],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=(total + page_size - 1) // page_size,
    )


@router.post("/{payment_id}/refund", response_model=PaymentResponse)
async def refund_payment(
    payment_id: uuid.UUID,
    payload: RefundRequest,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    notifier: Notifier = Depends(get_notifier),
):
    logger.info("Admin %s requested refund on payment %s", admin.user_id, payment_id)
    payment = await reconciliation.refund_payment(
        db,
        payment_id=payment_id,
        gateway=gateway,
        amount=payload.amount,
        reason=payload.reason,
        notifier=notifier,
    )
    return PaymentResponse.model_validate(payment)


@router.post("/{payment_id}/mark-failed", response_model=PaymentResponse)
async def mark_payment_failed(
    payment_id: uuid.UUID,
    payload: MarkFailedRequest,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    payment = await reconciliation.mark_failed(
        db, payment_id=payment_id, reason=payload.reason
    )
    return PaymentResponse.model_validate(payment)
