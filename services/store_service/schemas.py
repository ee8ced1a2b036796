"""Pydantic schemas for store service."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from services.store_service.models import (
    OrderStatus,
    PaymentMethod,
    VendorOrderStatus,
)

# ============================================================================
# CART SCHEMAS
# ============================================================================


class SelectedOption(BaseModel):
    name: str = Field(..., max_length=100)
    choice: str = Field(..., max_length=100)


class CartItemCreate(BaseModel):
    product_id: uuid.UUID
    quantity: int = Field(1, ge=1)
    selected_options: list[SelectedOption] = []


class CartItemUpdate(BaseModel):
    quantity: int = Field(..., ge=1)


class CartItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: uuid.UUID
    quantity: int
    selected_options: list[SelectedOption] = []
    unit_price: Decimal
    line_total: Decimal = Decimal("0")


class CartResponse(BaseModel):
    id: Optional[uuid.UUID] = None  # None until the first item is added
    items: list[CartItemResponse] = []
    item_count: int = 0
    total_price: Decimal = Decimal("0")


# ============================================================================
# CHECKOUT SCHEMAS
# ============================================================================


class ShippingAddress(BaseModel):
    full_name: str = Field(..., max_length=255)
    address: str = Field(..., max_length=500)
    city: str = Field(..., max_length=100)
    state: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    country: str = Field("Nigeria", max_length=100)
    phone: Optional[str] = Field(None, max_length=50)


class CheckoutRequest(BaseModel):
    shipping_address: ShippingAddress
    payment_method: PaymentMethod
    tax_price: Decimal = Field(Decimal("0"), ge=0)
    # Optional client-side breakdown; rejected if it disagrees with the cart
    items_price: Optional[Decimal] = Field(None, ge=0)
    shipping_price: Optional[Decimal] = Field(None, ge=0)
    total_price: Optional[Decimal] = Field(None, ge=0)
    special_instructions: Optional[str] = Field(None, max_length=500)


class CancelOrderRequest(BaseModel):
    status: OrderStatus = OrderStatus.CANCELLED


class VendorOrderStatusUpdate(BaseModel):
    status: VendorOrderStatus


# ============================================================================
# ORDER SCHEMAS
# ============================================================================


class OrderItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    product_id: uuid.UUID
    name: str
    quantity: int
    selected_options: list[SelectedOption] = []
    price: Decimal


class VendorOrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    vendor_id: uuid.UUID
    vendor_name: str
    subtotal: Decimal
    delivery_fee: Decimal
    status: VendorOrderStatus
    status_updated_at: Optional[datetime] = None
    items: list[OrderItemResponse] = []


class OrderResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_number: str
    customer_auth_id: str
    shipping_address: dict
    payment_method: PaymentMethod

    items_price: Decimal
    tax_price: Decimal
    shipping_price: Decimal
    total_price: Decimal

    is_paid: bool
    paid_at: Optional[datetime] = None
    order_status: OrderStatus
    is_delivered: bool
    delivered_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None
    refunded_at: Optional[datetime] = None
    special_instructions: Optional[str] = None

    items: list[OrderItemResponse] = []
    vendor_orders: list[VendorOrderResponse] = []

    created_at: datetime
    updated_at: datetime


class OrderListResponse(BaseModel):
    items: list[OrderResponse]
    total: int
    page: int
    page_size: int
    total_pages: int
