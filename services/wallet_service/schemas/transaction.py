"""Ledger entry schemas."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel
from services.wallet_service.models.enums import LedgerEntryType, WithdrawalStatus


class LedgerEntryResponse(BaseModel):
    type: LedgerEntryType
    amount: Decimal
    occurred_at: datetime
    # earning
    order_id: Optional[uuid.UUID] = None
    order_number: Optional[str] = None
    gross: Optional[Decimal] = None
    commission: Optional[Decimal] = None
    settled: Optional[bool] = None
    # withdrawal
    request_id: Optional[uuid.UUID] = None
    status: Optional[WithdrawalStatus] = None
    # adjustment
    adjustment_id: Optional[uuid.UUID] = None
    reason: Optional[str] = None


class LedgerEntryListResponse(BaseModel):
    items: list[LedgerEntryResponse]
    total: int
    page: int
    page_size: int
