"""Cart operations: one cart per customer, lines keyed by product and options."""

import uuid
from decimal import Decimal
from typing import Any, Optional

from libs.common.currency import line_total, money_sum
from libs.common.errors import CartItemNotFoundError, ValidationError
from libs.common.logging import get_logger
from services.store_service.models import Cart, CartItem
from services.store_service.services.catalog import get_product
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


def normalize_options(selected_options: Optional[list[Any]]) -> list[dict[str, str]]:
    """Canonical ``[{"name", "choice"}]`` form. Order is preserved, it is part of the line's identity."""
    normalized = []
    for option in selected_options or []:
        if isinstance(option, dict):
            name, choice = option.get("name"), option.get("choice")
        else:
            name, choice = option.name, option.choice
        normalized.append({"name": str(name), "choice": str(choice)})
    return normalized


def cart_total(cart: Optional[Cart]) -> Decimal:
    if cart is None:
        return money_sum([])
    return money_sum(line_total(item.unit_price, item.quantity) for item in cart.items)


async def get_cart(db: AsyncSession, customer_auth_id: str) -> Optional[Cart]:
    result = await db.execute(
        select(Cart).where(Cart.customer_auth_id == customer_auth_id)
    )
    return result.scalar_one_or_none()


async def get_or_create_cart(db: AsyncSession, customer_auth_id: str) -> Cart:
    """Return the customer's cart, creating it on first use."""
    cart = await get_cart(db, customer_auth_id)
    if cart is not None:
        return cart

    cart = Cart(customer_auth_id=customer_auth_id, items=[])
    db.add(cart)
    try:
        await db.flush()
    except IntegrityError:
        # A concurrent request created it first
        await db.rollback()
        cart = await get_cart(db, customer_auth_id)
        if cart is None:
            raise
    return cart


def _find_item(cart: Cart, item_id: uuid.UUID) -> CartItem:
    for item in cart.items:
        if item.id == item_id:
            return item
    raise CartItemNotFoundError()


async def add_item(
    db: AsyncSession,
    *,
    customer_auth_id: str,
    product_id: uuid.UUID,
    quantity: int = 1,
    selected_options: Optional[list[Any]] = None,
) -> Cart:
    """Add a product to the cart.

    A line with the same product and identical options absorbs the quantity;
    otherwise a new line is appended with the current price as its snapshot.
    """
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1")

    product = await get_product(db, product_id)
    if not product.is_available:
        raise ValidationError(f"{product.name} is currently unavailable")

    options = normalize_options(selected_options)
    cart = await get_or_create_cart(db, customer_auth_id)

    for item in cart.items:
        if item.product_id == product.id and item.selected_options == options:
            item.quantity += quantity
            break
    else:
        next_position = max((item.position for item in cart.items), default=-1) + 1
        cart.items.append(
            CartItem(
                product_id=product.id,
                quantity=quantity,
                selected_options=options,
                unit_price=product.price,
                position=next_position,
            )
        )

    await db.commit()
    logger.info(
        "Cart %s: added product %s x%d for %s",
        cart.id,
        product.id,
        quantity,
        customer_auth_id,
    )
    return cart


async def update_item_quantity(
    db: AsyncSession,
    *,
    customer_auth_id: str,
    item_id: uuid.UUID,
    quantity: int,
) -> Cart:
    if quantity < 1:
        raise ValidationError("Quantity must be at least 1")

    cart = await get_cart(db, customer_auth_id)
    if cart is None:
        raise CartItemNotFoundError()

    item = _find_item(cart, item_id)
    item.quantity = quantity
    await db.commit()
    return cart


async def remove_item(
    db: AsyncSession,
    *,
    customer_auth_id: str,
    item_id: uuid.UUID,
) -> Cart:
    cart = await get_cart(db, customer_auth_id)
    if cart is None:
        raise CartItemNotFoundError()

    cart.items.remove(_find_item(cart, item_id))
    await db.commit()
    return cart


async def clear_cart(db: AsyncSession, customer_auth_id: str) -> bool:
    """Empty the customer's cart within the caller's transaction (no commit).

    Returns True when there was anything to remove.
    """
    cart = await get_cart(db, customer_auth_id)
    if cart is None or not cart.items:
        return False
    cart.items.clear()
    await db.flush()
    logger.info("Cleared cart %s for %s", cart.id, customer_auth_id)
    return True
