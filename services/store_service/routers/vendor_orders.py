"""Vendor-facing order routes: incoming orders and sub-order status updates."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query
from libs.auth.dependencies import require_vendor
from libs.auth.models import AuthUser
from libs.common.notifications import Notifier, get_notifier
from libs.db.session import get_async_db
from services.store_service.models import VendorOrderStatus
from services.store_service.schemas import (
    OrderListResponse,
    OrderResponse,
    VendorOrderResponse,
    VendorOrderStatusUpdate,
)
from services.store_service.services import fulfillment, order_queries
from services.store_service.services.catalog import get_vendor_by_auth_id
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["vendor-orders"])


@router.get("/orders", response_model=OrderListResponse)
async def list_incoming_orders(
    status: Optional[VendorOrderStatus] = None,
    page: int = Query(1, ge=1),
    page_size: int = Query(20, ge=1, le=100),
    current_user: AuthUser = Depends(require_vendor),
    db: AsyncSession = Depends(get_async_db),
):
    """Orders that contain a sub-order for the calling vendor."""
    vendor = await get_vendor_by_auth_id(db, current_user.user_id)
    orders, total = await order_queries.list_vendor_orders(
        db, vendor.id, status=status, page=page, page_size=page_size
    )
    return OrderListResponse(
        items=[OrderResponse.model_validate(o) for o in orders],
        total=total,
        page=page,
        page_size=page_size,
        total_pages=(total + page_size - 1) // page_size,
    )


@router.put("/orders/{order_id}/status", response_model=VendorOrderResponse)
async def update_order_status(
    order_id: uuid.UUID,
    payload: VendorOrderStatusUpdate,
    current_user: AuthUser = Depends(require_vendor),
    db: AsyncSession = Depends(get_async_db),
    notifier: Notifier = Depends(get_notifier),
):
    vendor = await get_vendor_by_auth_id(db, current_user.user_id)
    _, vendor_order = await fulfillment.update_vendor_order_status(
        db,
        order_id=order_id,
        vendor=vendor,
        new_status=payload.status,
        notifier=notifier,
    )
    return VendorOrderResponse.model_validate(vendor_order)
