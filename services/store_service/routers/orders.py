"""Store orders router: checkout, order history and customer cancellation."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.notifications import Notifier, get_notifier
from libs.db.session import get_async_db
from services.store_service.models import OrderStatus
from services.store_service.schemas import (
    CancelOrderRequest,
    CheckoutRequest,
    OrderListResponse,
    OrderResponse,
)
from services.store_service.services import checkout as checkout_service
from services.store_service.services import fulfillment, order_queries
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["orders"])


# ============================================================================
# CHECKOUT
# ============================================================================


@router.post("/orders", response_model=OrderResponse, status_code=201)
async def checkout(
    payload: CheckoutRequest,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
    notifier: Notifier = Depends(get_notifier),
):
    """Place an order from the caller's cart."""
    order = await checkout_service.checkout(
        db,
        customer_auth_id=current_user.user_id,
        customer_email=current_user.email,
        shipping_address=payload.shipping_address.model_dump(),
        payment_method=payload.payment_method,
        tax_price=payload.tax_price,
        items_price=payload.items_price,
        shipping_price=payload.shipping_price,
        total_price=payload.total_price,
        special_instructions=payload.special_instructions,
        notifier=notifier,
    )
    return OrderResponse.model_validate(order)


# ============================================================================
# ORDER HISTORY
# ============================================================================


@router.get("/orders", response_model=OrderListResponse)
async def list_my_orders(
    status: Optional[OrderStatus] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    orders, total = await order_queries.list_customer_orders(
        db, current_user.user_id, status=status, page=page, page_size=page_size
    )
    return OrderListResponse(
        items=[OrderResponse.model_validate(o) for o in orders],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=(total + page_size - 1) // page_size,
    )


@router.get("/orders/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    order = await order_queries.get_order_for_user(db, order_id, current_user)
    return OrderResponse.model_validate(order)


@router.post("/orders/{order_id}/cancel", response_model=OrderResponse)
async def cancel_order(
    order_id: uuid.UUID,
    payload: Optional[CancelOrderRequest] = None,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
    notifier: Notifier = Depends(get_notifier),
):
    """Cancel an order that no vendor has started preparing."""
    order = await fulfillment.cancel_order(
        db,
        order_id=order_id,
        customer_auth_id=current_user.user_id,
        requested_status=payload.status if payload else OrderStatus.CANCELLED,
        notifier=notifier,
    )
    return OrderResponse.model_validate(order)
