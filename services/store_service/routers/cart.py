"""Store cart router: the customer's cart."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.currency import line_total
from libs.db.session import get_async_db
from services.store_service.models import Cart
from services.store_service.schemas import (
    CartItemCreate,
    CartItemResponse,
    CartItemUpdate,
    CartResponse,
)
from services.store_service.services import cart_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["cart"])


def to_cart_response(cart: Optional[Cart]) -> CartResponse:
    if cart is None:
        return CartResponse()

    items = []
    for item in cart.items:
        response = CartItemResponse.model_validate(item)
        response.line_total = line_total(item.unit_price, item.quantity)
        items.append(response)

    return CartResponse(
        id=cart.id,
        items=items,
        item_count=sum(item.quantity for item in cart.items),
        total_price=cart_ops.cart_total(cart),
    )


@router.get("/cart", response_model=CartResponse)
async def get_cart(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Get the caller's cart (empty if nothing was added yet)."""
    cart = await cart_ops.get_cart(db, current_user.user_id)
    return to_cart_response(cart)


@router.post("/cart/items", response_model=CartResponse, status_code=201)
async def add_to_cart(
    payload: CartItemCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    cart = await cart_ops.add_item(
        db,
        customer_auth_id=current_user.user_id,
        product_id=payload.product_id,
        quantity=payload.quantity,
        selected_options=payload.selected_options,
    )
    return to_cart_response(cart)


@router.patch("/cart/items/{item_id}", response_model=CartResponse)
async def update_cart_item(
    item_id: uuid.UUID,
    payload: CartItemUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    cart = await cart_ops.update_item_quantity(
        db,
        customer_auth_id=current_user.user_id,
        item_id=item_id,
        quantity=payload.quantity,
    )
    return to_cart_response(cart)


@router.delete("/cart/items/{item_id}", response_model=CartResponse)
async def remove_cart_item(
    item_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    cart = await cart_ops.remove_item(
        db, customer_auth_id=current_user.user_id, item_id=item_id
    )
    return to_cart_response(cart)


@router.delete("/cart", response_model=CartResponse)
async def clear_cart(
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    await cart_ops.clear_cart(db, current_user.user_id)
    await db.commit()
    cart = await cart_ops.get_cart(db, current_user.user_id)
    return to_cart_response(cart)
