"""Routers package."""

from services.payments_service.routers.admin import router as admin_router
from services.payments_service.routers.customer import router as customer_router
from services.payments_service.routers.webhooks import router as webhooks_router

__all__ = [
    "admin_router",
    "customer_router",
    "webhooks_router",
]
