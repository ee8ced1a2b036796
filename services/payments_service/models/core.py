import uuid
from datetime import datetime
from decimal import Decimal

from libs.common.datetime_utils import dated_reference, utc_now
from libs.db.base import Base, JSONDict
from services.payments_service.models.enums import (
    PaymentStatus,
    RefundStatus,
    enum_values,
)
from services.store_service.models.enums import PaymentMethod
from sqlalchemy import CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Numeric, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column


class Payment(Base):
    """One payment per order; a retried initialization reuses the same row."""

    __tablename__ = "payments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("orders.id"), unique=True, index=True, nullable=False
    )
    # Provider transaction reference; regenerated on every initialization
    reference: Mapped[str] = mapped_column(
        String(64), unique=True, index=True, nullable=False
    )

    customer_auth_id: Mapped[str] = mapped_column(String, index=True, nullable=False)
    payer_email: Mapped[str | None] = mapped_column(String, nullable=True)

    method: Mapped[PaymentMethod] = mapped_column(
        SAEnum(
            PaymentMethod,
            name="payment_method_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=PaymentMethod.PAYSTACK,
        nullable=False,
    )
    amount: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    currency: Mapped[str] = mapped_column(String(8), default="NGN", nullable=False)

    status: Mapped[PaymentStatus] = mapped_column(
        SAEnum(
            PaymentStatus,
            name="payment_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=PaymentStatus.PENDING,
        nullable=False,
        index=True,
    )

    authorization_url: Mapped[str | None] = mapped_column(String, nullable=True)
    access_code: Mapped[str | None] = mapped_column(String(128), nullable=True)
    # Last verification payload returned by the provider
    payment_details: Mapped[dict | None] = mapped_column(JSONDict, nullable=True)
    failure_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    paid_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    refund_amount: Mapped[Decimal | None] = mapped_column(
        Numeric(12, 2), nullable=True
    )
    refund_status: Mapped[RefundStatus] = mapped_column(
        SAEnum(
            RefundStatus,
            name="refund_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=RefundStatus.NONE,
        nullable=False,
    )
    refund_reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    refunded_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    __table_args__ = (
        CheckConstraint(
            "refund_amount IS NULL OR refund_amount <= amount",
            name="ck_payment_refund_within_amount",
        ),
    )

    @staticmethod
    def generate_reference() -> str:
        return dated_reference("PAY", length=8)

    def __repr__(self):
        return f"<Payment {self.reference} status={self.status}>"
