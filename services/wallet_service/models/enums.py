"""Enum definitions for wallet service models."""

import enum


def enum_values(enum_cls):
    """Return persistent DB values for SAEnum mappings."""
    return [member.value for member in enum_cls]


class WithdrawalStatus(str, enum.Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    REJECTED = "rejected"


class LedgerEntryType(str, enum.Enum):
    EARNING = "earning"
    WITHDRAWAL = "withdrawal"
    ADJUSTMENT = "adjustment"
