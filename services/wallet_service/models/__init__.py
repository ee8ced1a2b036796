"""Wallet Service models package.

Re-exports all models and enums so that SQLAlchemy's mapper registry and
Alembic see every model class on import.
"""

from services.wallet_service.models.enums import (  # noqa: F401
    LedgerEntryType,
    WithdrawalStatus,
)
from services.wallet_service.models.withdrawal import (  # noqa: F401
    VendorWalletAdjustment,
    VendorWithdrawal,
)

__all__ = [
    "LedgerEntryType",
    "VendorWalletAdjustment",
    "VendorWithdrawal",
    "WithdrawalStatus",
]
