"""Vendor-facing wallet endpoints: balance, ledger and withdrawals."""

from dataclasses import asdict

from fastapi import APIRouter, Depends, Query
from libs.auth.dependencies import require_vendor
from libs.auth.models import AuthUser
from libs.common.notifications import Notifier, get_notifier
from libs.db.session import get_async_db
from services.store_service.services.catalog import get_vendor_by_auth_id
from services.wallet_service.schemas import (
    BalanceResponse,
    LedgerEntryListResponse,
    LedgerEntryResponse,
    WithdrawalCreateRequest,
    WithdrawalResponse,
)
from services.wallet_service.services import ledger
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/vendor/wallet", tags=["vendor-wallet"])


@router.get("/balance", response_model=BalanceResponse)
async def get_balance(
    current_user: AuthUser = Depends(require_vendor),
    db: AsyncSession = Depends(get_async_db),
):
    vendor = await get_vendor_by_auth_id(db, current_user.user_id)
    balance = await ledger.get_balance(db, vendor)
    return BalanceResponse(
        vendor_id=vendor.id,
        withdrawable=balance.withdrawable,
        **asdict(balance),
    )


@router.get("/transactions", response_model=LedgerEntryListResponse)
async def list_transactions(
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    current_user: AuthUser = Depends(require_vendor),
    db: AsyncSession = Depends(get_async_db),
):
    """Earnings, withdrawals and adjustments, newest first."""
    vendor = await get_vendor_by_auth_id(db, current_user.user_id)
    entries = await ledger.list_entries(db, vendor)
    start = (page - 1) * page_size
    return LedgerEntryListResponse(
        items=[
            LedgerEntryResponse(**asdict(entry))
            for entry in entries[start : start + page_size]
        ],
        total=len(entries),
        page=page,
        page_size=page_size,
    )


@router.post("/withdrawals", response_model=WithdrawalResponse, status_code=201)
async def request_withdrawal(
    payload: WithdrawalCreateRequest,
    current_user: AuthUser = Depends(require_vendor),
    db: AsyncSession = Depends(get_async_db),
    notifier: Notifier = Depends(get_notifier),
):
    vendor = await get_vendor_by_auth_id(db, current_user.user_id)
    withdrawal = await ledger.request_withdrawal(
        db,
        vendor_id=vendor.id,
        amount=payload.amount,
        method=payload.method,
        note=payload.note,
        notifier=notifier,
    )
    return WithdrawalResponse.model_validate(withdrawal)


@router.get("/withdrawals", response_model=list[WithdrawalResponse])
async def list_my_withdrawals(
    current_user: AuthUser = Depends(require_vendor),
    db: AsyncSession = Depends(get_async_db),
):
    vendor = await get_vendor_by_auth_id(db, current_user.user_id)
    withdrawals = await ledger.list_withdrawals(db, vendor_id=vendor.id)
    return [WithdrawalResponse.model_validate(w) for w in withdrawals]
