"""Read-side order queries for customers, vendors and admins."""

import uuid
from typing import Optional

from libs.auth.models import AuthUser
from libs.common.errors import NotAuthorizedError, OrderNotFoundError
from services.store_service.models import (
    Order,
    OrderStatus,
    VendorOrder,
    VendorOrderStatus,
)
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession


async def _paginate(db: AsyncSession, query, page: int, page_size: int):
    count_query = select(func.count()).select_from(query.subquery())
    total = (await db.execute(count_query)).scalar() or 0

    query = query.order_by(Order.created_at.desc())
    query = query.offset((page - 1) * page_size).limit(page_size)
    result = await db.execute(query)
    return list(result.scalars().all()), total


async def list_customer_orders(
    db: AsyncSession,
    customer_auth_id: str,
    *,
    status: Optional[OrderStatus] = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Order], int]:
    """Customer's own orders, newest first."""
    query = select(Order).where(Order.customer_auth_id == customer_auth_id)
    if status:
        query = query.where(Order.order_status == status)
    return await _paginate(db, query, page, page_size)


async def list_vendor_orders(
    db: AsyncSession,
    vendor_id: uuid.UUID,
    *,
    status: Optional[VendorOrderStatus] = None,
    page: int = 1,
    page_size: int = 20,
) -> tuple[list[Order], int]:
    """Orders containing a sub-order for ``vendor_id``, optionally by sub-order status."""
    query = (
        select(Order)
        .join(VendorOrder, VendorOrder.order_id == Order.id)
        .where(VendorOrder.vendor_id == vendor_id)
    )
    if status:
        query = query.where(VendorOrder.status == status)
    return await _paginate(db, query, page, page_size)


async def get_order_for_user(
    db: AsyncSession, order_id: uuid.UUID, user: AuthUser
) -> Order:
    """Fetch an order the caller is allowed to see (its customer or an admin)."""
    order = await db.get(Order, order_id)
    if order is None:
        raise OrderNotFoundError()
    if order.customer_auth_id != user.user_id and not user.is_admin:
        raise NotAuthorizedError("Not your order")
    return order
