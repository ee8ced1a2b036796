"""Catalog models read by checkout: vendors and their products.

Catalog CRUD belongs to another part of the platform; the store service only
needs price, owning vendor and the vendor's delivery fee at checkout time.
"""

import uuid
from datetime import datetime
from decimal import Decimal

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, Numeric, String
from sqlalchemy import Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship


class Vendor(Base):
    """Restaurant vendor account."""

    __tablename__ = "vendors"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    auth_id: Mapped[str] = mapped_column(
        String(255), unique=True, index=True, nullable=False
    )
    business_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    delivery_fee: Mapped[Decimal] = mapped_column(
        Numeric(12, 2), default=Decimal("0.00"), nullable=False
    )
    # Percentage retained by the platform, e.g. 15.00
    commission_rate: Mapped[Decimal] = mapped_column(
        Numeric(5, 2), default=Decimal("15.00"), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    products = relationship("Product", back_populates="vendor")

    __table_args__ = (
        CheckConstraint("delivery_fee >= 0", name="ck_vendor_delivery_fee_positive"),
        CheckConstraint(
            "commission_rate >= 0 AND commission_rate <= 100",
            name="ck_vendor_commission_rate_range",
        ),
    )

    def __repr__(self):
        return f"<Vendor {self.business_name}>"


class Product(Base):
    """Menu item sold by one vendor."""

    __tablename__ = "products"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    vendor_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("vendors.id", ondelete="CASCADE"), index=True, nullable=False
    )
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    price: Mapped[Decimal] = mapped_column(Numeric(12, 2), nullable=False)
    is_available: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now
    )

    vendor = relationship("Vendor", back_populates="products", lazy="selectin")

    __table_args__ = (CheckConstraint("price >= 0", name="ck_product_price_positive"),)

    def __repr__(self):
        return f"<Product {self.name}>"
