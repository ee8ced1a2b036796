"""Vendor balance schemas."""

import uuid
from decimal import Decimal

from pydantic import BaseModel


class BalanceResponse(BaseModel):
    vendor_id: uuid.UUID
    available: Decimal
    pending: Decimal
    total_earnings: Decimal
    total_withdrawn: Decimal
    total_adjustments: Decimal
    outstanding_withdrawals: Decimal
    withdrawable: Decimal
    commission_rate: Decimal
