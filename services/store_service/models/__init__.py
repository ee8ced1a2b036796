"""Store Service models package."""

from services.store_service.models.catalog import Product, Vendor
from services.store_service.models.commerce import (
    Cart,
    CartItem,
    Order,
    OrderItem,
    VendorOrder,
)
from services.store_service.models.enums import (
    OrderStatus,
    PaymentMethod,
    VendorOrderStatus,
)

__all__ = [
    "Cart",
    "CartItem",
    "Order",
    "OrderItem",
    "OrderStatus",
    "PaymentMethod",
    "Product",
    "Vendor",
    "VendorOrder",
    "VendorOrderStatus",
]
