"""Withdrawal and adjustment schemas."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from services.wallet_service.models.enums import WithdrawalStatus


class WithdrawalCreateRequest(BaseModel):
    amount: Decimal = Field(..., gt=0)
    method: str = Field(..., min_length=1, max_length=100)
    note: Optional[str] = Field(None, max_length=500)


class WithdrawalStatusUpdate(BaseModel):
    status: WithdrawalStatus
    reason: Optional[str] = Field(None, max_length=500)


class WithdrawalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    vendor_id: uuid.UUID
    amount: Decimal
    method: str
    note: Optional[str] = None
    status: WithdrawalStatus
    processed_by: Optional[str] = None
    rejection_reason: Optional[str] = None
    requested_at: datetime
    completed_at: Optional[datetime] = None


class AdjustmentCreateRequest(BaseModel):
    # Signed: negative reduces the vendor's balance
    amount: Decimal
    reason: str = Field(..., min_length=1, max_length=500)


class AdjustmentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    vendor_id: uuid.UUID
    amount: Decimal
    reason: str
    created_by: str
    created_at: datetime
