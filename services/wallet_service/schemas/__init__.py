"""Wallet Service schemas package.

Re-exports all schemas so that routers import from one place.
"""

from services.wallet_service.schemas.balance import BalanceResponse  # noqa: F401
from services.wallet_service.schemas.transaction import (  # noqa: F401
    LedgerEntryListResponse,
    LedgerEntryResponse,
)
from services.wallet_service.schemas.withdrawal import (  # noqa: F401
    AdjustmentCreateRequest,
    AdjustmentResponse,
    WithdrawalCreateRequest,
    WithdrawalResponse,
    WithdrawalStatusUpdate,
)

__all__ = [
    "AdjustmentCreateRequest",
    "AdjustmentResponse",
    "BalanceResponse",
    "LedgerEntryListResponse",
    "LedgerEntryResponse",
    "WithdrawalCreateRequest",
    "WithdrawalResponse",
    "WithdrawalStatusUpdate",
]
