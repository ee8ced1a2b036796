"""Pydantic schemas for the payments service."""

import uuid
from datetime import datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field
from services.payments_service.models import PaymentStatus, RefundStatus
from services.store_service.models import OrderStatus, PaymentMethod


class InitializePaymentRequest(BaseModel):
    order_id: uuid.UUID
    # Defaults to the email on the caller's token
    email: Optional[EmailStr] = None
    callback_url: Optional[str] = None


class InitializePaymentResponse(BaseModel):
    payment_id: uuid.UUID
    reference: str
    authorization_url: str
    access_code: Optional[str] = None
    amount: Decimal
    currency: str


class VerifyPaymentRequest(BaseModel):
    order_id: uuid.UUID
    reference: str = Field(..., max_length=64)


class RefundRequest(BaseModel):
    # Omit for a full refund
    amount: Optional[Decimal] = Field(None, gt=0)
    reason: Optional[str] = Field(None, max_length=500)


class MarkFailedRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=500)


class PaymentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_id: uuid.UUID
    reference: str
    customer_auth_id: str
    payer_email: Optional[str] = None
    method: PaymentMethod
    amount: Decimal
    currency: str
    status: PaymentStatus
    failure_reason: Optional[str] = None
    paid_at: Optional[datetime] = None
    refund_amount: Optional[Decimal] = None
    refund_status: RefundStatus
    refunded_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime


class PaymentListResponse(BaseModel):
    items: list[PaymentResponse]
    total: int
    page: int
    page_size: int
    total_pages: int


class OrderPaymentSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    order_number: str
    is_paid: bool
    paid_at: Optional[datetime] = None
    order_status: OrderStatus
    total_price: Decimal


class VerifyPaymentResponse(BaseModel):
    order: OrderPaymentSummary
    payment: PaymentResponse
