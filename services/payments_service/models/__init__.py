"""Payments Service models package."""

from services.payments_service.models.core import Payment
from services.payments_service.models.enums import PaymentStatus, RefundStatus

__all__ = [
    "Payment",
    "PaymentStatus",
    "RefundStatus",
]
