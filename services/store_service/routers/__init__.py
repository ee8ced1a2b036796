"""Store service routers package."""

from services.store_service.routers.cart import router as cart_router
from services.store_service.routers.orders import router as orders_router
from services.store_service.routers.vendor_orders import router as vendor_orders_router

__all__ = [
    "cart_router",
    "orders_router",
    "vendor_orders_router",
]
