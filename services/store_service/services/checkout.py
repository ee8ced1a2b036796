"""Checkout: turn a cart into one order with a vendor order per vendor.

The order, its vendor orders and its items are built in memory and written in
a single commit, so readers never see a partially decomposed order.
"""

import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Optional

from libs.common.config import get_settings
from libs.common.currency import ZERO, line_total, money_sum, to_money
from libs.common.datetime_utils import dated_reference
from libs.common.errors import EmptyCartError, ValidationError
from libs.common.logging import get_logger
from libs.common.notifications import Notifier, RecipientKind, notify_safely
from services.store_service.models import (
    CartItem,
    Order,
    OrderItem,
    OrderStatus,
    PaymentMethod,
    Product,
    Vendor,
    VendorOrder,
    VendorOrderStatus,
)
from services.store_service.services.cart_ops import get_cart
from services.store_service.services.catalog import get_products
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)

ORDER_NUMBER_PREFIX = "KM"
ORDER_NUMBER_ATTEMPTS = 5


@dataclass
class VendorGroup:
    """Cart lines belonging to one vendor, in cart order."""

    vendor: Vendor
    lines: list[tuple[CartItem, Product]] = field(default_factory=list)

    @property
    def subtotal(self) -> Decimal:
        return money_sum(line_total(item.unit_price, item.quantity) for item, _ in self.lines)

    @property
    def delivery_fee(self) -> Decimal:
        return to_money(self.vendor.delivery_fee)


@dataclass
class PriceBreakdown:
    items_price: Decimal
    tax_price: Decimal
    shipping_price: Decimal

    @property
    def total_price(self) -> Decimal:
        return self.items_price + self.tax_price + self.shipping_price


def group_by_vendor(lines: list[tuple[CartItem, Product]]) -> list[VendorGroup]:
    """Group lines by vendor, keeping vendors in order of first appearance."""
    groups: dict[uuid.UUID, VendorGroup] = {}
    for item, product in lines:
        group = groups.get(product.vendor_id)
        if group is None:
            group = groups[product.vendor_id] = VendorGroup(vendor=product.vendor)
        group.lines.append((item, product))
    return list(groups.values())


def compute_breakdown(groups: list[VendorGroup], tax_price: Any = ZERO) -> PriceBreakdown:
    tax = to_money(tax_price)
    if tax < ZERO:
        raise ValidationError("Tax price cannot be negative")
    return PriceBreakdown(
        items_price=money_sum(group.subtotal for group in groups),
        tax_price=tax,
        shipping_price=money_sum(group.delivery_fee for group in groups),
    )


def check_client_breakdown(
    breakdown: PriceBreakdown,
    *,
    items_price: Optional[Any] = None,
    shipping_price: Optional[Any] = None,
    total_price: Optional[Any] = None,
) -> None:
    """Reject a client-side price breakdown that disagrees with the cart."""
    expected = {
        "items_price": (items_price, breakdown.items_price),
        "shipping_price": (shipping_price, breakdown.shipping_price),
        "total_price": (total_price, breakdown.total_price),
    }
    for name, (supplied, actual) in expected.items():
        if supplied is not None and to_money(supplied) != actual:
            raise ValidationError(
                f"{name} {to_money(supplied)} does not match the cart ({actual})"
            )


async def generate_order_number(db: AsyncSession) -> str:
    for _ in range(ORDER_NUMBER_ATTEMPTS):
        candidate = dated_reference(ORDER_NUMBER_PREFIX)
        existing = await db.execute(
            select(Order.id).where(Order.order_number == candidate)
        )
        if existing.scalar_one_or_none() is None:
            return candidate
    raise RuntimeError("Could not allocate a unique order number")


def build_order(
    *,
    order_number: str,
    customer_auth_id: str,
    customer_email: Optional[str],
    shipping_address: dict,
    payment_method: PaymentMethod,
    special_instructions: Optional[str],
    groups: list[VendorGroup],
    breakdown: PriceBreakdown,
) -> Order:
    """Assemble the order aggregate (not yet added to a session)."""
    order = Order(
        order_number=order_number,
        customer_auth_id=customer_auth_id,
        customer_email=customer_email,
        shipping_address=shipping_address,
        payment_method=payment_method,
        items_price=breakdown.items_price,
        tax_price=breakdown.tax_price,
        shipping_price=breakdown.shipping_price,
        total_price=breakdown.total_price,
        is_paid=False,
        is_delivered=False,
        order_status=OrderStatus.PENDING,
        special_instructions=special_instructions,
        vendor_orders=[],
        items=[],
    )

    position = 0
    for vendor_position, group in enumerate(groups):
        vendor_order = VendorOrder(
            vendor_id=group.vendor.id,
            vendor_name=group.vendor.business_name,
            position=vendor_position,
            subtotal=group.subtotal,
            delivery_fee=group.delivery_fee,
            status=VendorOrderStatus.PENDING,
            items=[],
        )
        order.vendor_orders.append(vendor_order)

        for cart_item, product in group.lines:
            order_item = OrderItem(
                product_id=product.id,
                name=product.name,
                quantity=cart_item.quantity,
                selected_options=list(cart_item.selected_options or []),
                price=to_money(cart_item.unit_price),
                position=position,
            )
            vendor_order.items.append(order_item)
            order.items.append(order_item)
            position += 1

    return order


async def checkout(
    db: AsyncSession,
    *,
    customer_auth_id: str,
    customer_email: Optional[str],
    shipping_address: dict,
    payment_method: PaymentMethod,
    tax_price: Any = ZERO,
    items_price: Optional[Any] = None,
    shipping_price: Optional[Any] = None,
    total_price: Optional[Any] = None,
    special_instructions: Optional[str] = None,
    notifier: Optional[Notifier] = None,
) -> Order:
    """Create an order from the customer's cart.

    Cash on delivery empties the cart in the same commit. Paystack orders keep
    the cart until payment verification succeeds.
    """
    settings = get_settings()
    if (
        special_instructions
        and len(special_instructions) > settings.SPECIAL_INSTRUCTIONS_MAX_LENGTH
    ):
        raise ValidationError(
            f"Special instructions cannot exceed {settings.SPECIAL_INSTRUCTIONS_MAX_LENGTH} characters"
        )
    if not shipping_address:
        raise ValidationError("Shipping address is required")

    cart = await get_cart(db, customer_auth_id)
    if cart is None or not cart.items:
        raise EmptyCartError()

    products = await get_products(db, (item.product_id for item in cart.items))
    lines = [(item, products[item.product_id]) for item in cart.items]
    groups = group_by_vendor(lines)

    breakdown = compute_breakdown(groups, tax_price)
    check_client_breakdown(
        breakdown,
        items_price=items_price,
        shipping_price=shipping_price,
        total_price=total_price,
    )

    order = build_order(
        order_number=await generate_order_number(db),
        customer_auth_id=customer_auth_id,
        customer_email=customer_email,
        shipping_address=shipping_address,
        payment_method=payment_method,
        special_instructions=special_instructions,
        groups=groups,
        breakdown=breakdown,
    )
    db.add(order)

    if payment_method == PaymentMethod.CASH_ON_DELIVERY:
        cart.items.clear()

    await db.commit()

    logger.info(
        "Order %s placed by %s: %d vendor order(s), total=%s, method=%s",
        order.order_number,
        customer_auth_id,
        len(order.vendor_orders),
        order.total_price,
        payment_method.value,
    )

    await notify_safely(
        notifier,
        customer_auth_id,
        RecipientKind.CUSTOMER,
        "order_placed",
        {"order_id": str(order.id), "order_number": order.order_number},
    )
    for group in groups:
        await notify_safely(
            notifier,
            group.vendor.auth_id,
            RecipientKind.VENDOR,
            "order_placed",
            {
                "order_id": str(order.id),
                "order_number": order.order_number,
                "subtotal": str(group.subtotal),
            },
        )

    return order
