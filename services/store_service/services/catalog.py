"""Catalog lookups consumed by the cart and checkout."""

import uuid
from typing import Iterable

from libs.common.errors import ProductNotFoundError, VendorNotFoundError
from services.store_service.models import Product, Vendor
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession


async def get_product(db: AsyncSession, product_id: uuid.UUID) -> Product:
    """Return the product with its vendor loaded, or raise ProductNotFoundError."""
    result = await db.execute(select(Product).where(Product.id == product_id))
    product = result.scalar_one_or_none()
    if product is None or product.vendor is None:
        raise ProductNotFoundError(f"Product {product_id} not found")
    return product


async def get_products(
    db: AsyncSession, product_ids: Iterable[uuid.UUID]
) -> dict[uuid.UUID, Product]:
    """Resolve several products at once. Every id must resolve to a vendor's product."""
    wanted = set(product_ids)
    if not wanted:
        return {}
    result = await db.execute(select(Product).where(Product.id.in_(wanted)))
    products = {product.id: product for product in result.scalars().all()}

    for product_id in wanted:
        product = products.get(product_id)
        if product is None or product.vendor is None:
            raise ProductNotFoundError(
                f"Product {product_id} is no longer available in the catalog"
            )
    return products


async def get_vendor_by_auth_id(db: AsyncSession, auth_id: str) -> Vendor:
    result = await db.execute(select(Vendor).where(Vendor.auth_id == auth_id))
    vendor = result.scalar_one_or_none()
    if vendor is None:
        raise VendorNotFoundError("No vendor profile for this account")
    return vendor
