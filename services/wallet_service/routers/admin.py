"""Admin wallet management endpoints."""

import uuid
from dataclasses import asdict
from typing import Optional

from fastapi import APIRouter, Depends
from libs.auth.dependencies import require_admin
from libs.auth.models import AuthUser
from libs.common.notifications import Notifier, get_notifier
from libs.db.session import get_async_db
from services.wallet_service.models import WithdrawalStatus
from services.wallet_service.schemas import (
    AdjustmentCreateRequest,
    AdjustmentResponse,
    BalanceResponse,
    WithdrawalResponse,
    WithdrawalStatusUpdate,
)
from services.wallet_service.services import ledger
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/admin/wallet", tags=["admin-wallet"])


@router.get("/vendors/{vendor_id}/balance", response_model=BalanceResponse)
async def get_vendor_balance(
    vendor_id: uuid.UUID,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    vendor = await ledger.get_vendor(db, vendor_id)
    balance = await ledger.get_balance(db, vendor)
    return BalanceResponse(
        vendor_id=vendor.id,
        withdrawable=balance.withdrawable,
        **asdict(balance),
    )


@router.get("/withdrawals", response_model=list[WithdrawalResponse])
async def list_withdrawals(
    status: Optional[WithdrawalStatus] = None,
    vendor_id: Optional[uuid.UUID] = None,
    _admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    withdrawals = await ledger.list_withdrawals(db, vendor_id=vendor_id, status=status)
    return [WithdrawalResponse.model_validate(w) for w in withdrawals]


@router.patch("/withdrawals/{withdrawal_id}", response_model=WithdrawalResponse)
async def update_withdrawal(
    withdrawal_id: uuid.UUID,
    payload: WithdrawalStatusUpdate,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
    notifier: Notifier = Depends(get_notifier),
):
    withdrawal = await ledger.update_withdrawal_status(
        db,
        withdrawal_id=withdrawal_id,
        new_status=payload.status,
        processed_by=admin.user_id,
        reason=payload.reason,
        notifier=notifier,
    )
    return WithdrawalResponse.model_validate(withdrawal)


@router.post(
    "/vendors/{vendor_id}/adjustments",
    response_model=AdjustmentResponse,
    status_code=201,
)
async def create_adjustment(
    vendor_id: uuid.UUID,
    payload: AdjustmentCreateRequest,
    admin: AuthUser = Depends(require_admin),
    db: AsyncSession = Depends(get_async_db),
):
    adjustment = await ledger.record_adjustment(
        db,
        vendor_id=vendor_id,
        amount=payload.amount,
        reason=payload.reason,
        created_by=admin.user_id,
    )
    return AdjustmentResponse.model_validate(adjustment)
