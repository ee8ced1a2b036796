"""Fulfillment state machine for vendor orders and the aggregate order status.

Vendor orders move forward along::

    pending -> confirmed -> preparing -> ready -> picked_up -> delivered

(steps may be skipped) or to ``cancelled`` while still pending/confirmed. The
order's status is derived from the set of vendor order statuses after every
change and never moves backwards.
"""

import uuid
from typing import Iterable, Optional

from libs.common.datetime_utils import utc_now
from libs.common.errors import (
    InvalidTransitionError,
    NotAuthorizedError,
    OrderNotFoundError,
    ValidationError,
)
from libs.common.logging import get_logger
from libs.common.notifications import Notifier, RecipientKind, notify_safely
from services.store_service.models import (
    Order,
    OrderStatus,
    PaymentMethod,
    Vendor,
    VendorOrder,
    VendorOrderStatus,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

# ---------------------------------------------------------------------------
# Rules
# ---------------------------------------------------------------------------

VENDOR_ORDER_FLOW = (
    VendorOrderStatus.PENDING,
    VendorOrderStatus.CONFIRMED,
    VendorOrderStatus.PREPARING,
    VendorOrderStatus.READY,
    VendorOrderStatus.PICKED_UP,
    VendorOrderStatus.DELIVERED,
)
VENDOR_CANCELLABLE = frozenset({VendorOrderStatus.PENDING, VendorOrderStatus.CONFIRMED})
VENDOR_IN_PROGRESS = frozenset(
    {VendorOrderStatus.CONFIRMED, VendorOrderStatus.PREPARING, VendorOrderStatus.READY}
)
VENDOR_TERMINAL = frozenset({VendorOrderStatus.DELIVERED, VendorOrderStatus.CANCELLED})

ORDER_TERMINAL = frozenset(
    {OrderStatus.COMPLETED, OrderStatus.CANCELLED, OrderStatus.REFUNDED}
)
CUSTOMER_CANCELLABLE = frozenset({OrderStatus.PENDING, OrderStatus.CONFIRMED})


def can_transition(current: VendorOrderStatus, new: VendorOrderStatus) -> bool:
    """Whether a vendor order may move from ``current`` to ``new``."""
    if current in VENDOR_TERMINAL:
        return False
    if new == VendorOrderStatus.CANCELLED:
        return current in VENDOR_CANCELLABLE
    return VENDOR_ORDER_FLOW.index(new) > VENDOR_ORDER_FLOW.index(current)


def derive_order_status(
    current: OrderStatus, vendor_statuses: Iterable[VendorOrderStatus]
) -> OrderStatus:
    """Aggregate order status implied by its vendor orders.

    - every vendor order delivered -> completed
    - any vendor order cancelled -> processing
    - every vendor order confirmed/preparing/ready -> processing
    - otherwise unchanged
    """
    statuses = list(vendor_statuses)
    if not statuses:
        return current
    if all(s == VendorOrderStatus.DELIVERED for s in statuses):
        return OrderStatus.COMPLETED
    if any(s == VendorOrderStatus.CANCELLED for s in statuses):
        return OrderStatus.PROCESSING
    if all(s in VENDOR_IN_PROGRESS for s in statuses):
        return OrderStatus.PROCESSING
    return current


def apply_aggregate_status(order: Order) -> OrderStatus:
    """Recompute ``order.order_status`` in place and stamp delivery on completion."""
    new_status = derive_order_status(
        order.order_status, (vo.status for vo in order.vendor_orders)
    )
    if new_status == OrderStatus.COMPLETED and not order.is_delivered:
        now = utc_now()
        order.is_delivered = True
        order.delivered_at = now
        # Cash is collected on delivery
        if order.payment_method == PaymentMethod.CASH_ON_DELIVERY and not order.is_paid:
            order.is_paid = True
            order.paid_at = now
    order.order_status = new_status
    return new_status


# ---------------------------------------------------------------------------
# Persistence
# ---------------------------------------------------------------------------


async def get_order(
    db: AsyncSession, order_id: uuid.UUID, *, for_update: bool = False
) -> Order:
    query = select(Order).where(Order.id == order_id)
    if for_update:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    order = result.scalar_one_or_none()
    if order is None:
        raise OrderNotFoundError()
    return order


async def update_vendor_order_status(
    db: AsyncSession,
    *,
    order_id: uuid.UUID,
    vendor: Vendor,
    new_status: VendorOrderStatus,
    notifier: Optional[Notifier] = None,
) -> tuple[Order, VendorOrder]:
    """Move the calling vendor's sub-order to ``new_status`` and re-derive the order."""
    order = await get_order(db, order_id, for_update=True)

    vendor_order = order.vendor_order_for(vendor.id)
    if vendor_order is None:
        raise NotAuthorizedError("You have no items in this order")

    if vendor_order.status == new_status:
        return order, vendor_order

    if order.order_status in ORDER_TERMINAL:
        raise InvalidTransitionError(
            f"Order {order.order_number} is {order.order_status.value}"
        )
    if not can_transition(vendor_order.status, new_status):
        raise InvalidTransitionError(
            f"Cannot move vendor order from {vendor_order.status.value} to {new_status.value}"
        )

    previous = vendor_order.status
    vendor_order.status = new_status
    vendor_order.status_updated_at = utc_now()
    order_status = apply_aggregate_status(order)

    await db.commit()

    logger.info(
        "Order %s vendor %s: %s -> %s (order status %s)",
        order.order_number,
        vendor.id,
        previous.value,
        new_status.value,
        order_status.value,
    )
    await notify_safely(
        notifier,
        order.customer_auth_id,
        RecipientKind.CUSTOMER,
        "vendor_order_status_changed",
        {
            "order_id": str(order.id),
            "order_number": order.order_number,
            "vendor_name": vendor_order.vendor_name,
            "status": new_status.value,
            "order_status": order_status.value,
        },
    )
    return order, vendor_order


async def cancel_order(
    db: AsyncSession,
    *,
    order_id: uuid.UUID,
    customer_auth_id: str,
    requested_status: OrderStatus = OrderStatus.CANCELLED,
    notifier: Optional[Notifier] = None,
) -> Order:
    """Customer-initiated cancellation, allowed only before any vendor starts preparing."""
    if requested_status != OrderStatus.CANCELLED:
        raise ValidationError("Customers can only cancel an order")

    order = await get_order(db, order_id, for_update=True)
    if order.customer_auth_id != customer_auth_id:
        raise NotAuthorizedError("Not your order")

    if order.order_status not in CUSTOMER_CANCELLABLE:
        raise InvalidTransitionError(
            f"Order cannot be cancelled once it is {order.order_status.value}"
        )
    started = [vo for vo in order.vendor_orders if vo.status not in VENDOR_CANCELLABLE]
    if started:
        raise InvalidTransitionError(
            f"{started[0].vendor_name} has already started preparing this order"
        )

    now = utc_now()
    for vendor_order in order.vendor_orders:
        vendor_order.status = VendorOrderStatus.CANCELLED
        vendor_order.status_updated_at = now
    order.order_status = OrderStatus.CANCELLED
    order.cancelled_at = now

    await db.commit()
    logger.info("Order %s cancelled by customer %s", order.order_number, customer_auth_id)

    vendor_ids = [vo.vendor_id for vo in order.vendor_orders]
    result = await db.execute(select(Vendor).where(Vendor.id.in_(vendor_ids)))
    for vendor in result.scalars().all():
        await notify_safely(
            notifier,
            vendor.auth_id,
            RecipientKind.VENDOR,
            "order_cancelled",
            {"order_id": str(order.id), "order_number": order.order_number},
        )
    return order
