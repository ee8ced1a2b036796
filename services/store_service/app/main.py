"""FastAPI application for the Store Service."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from libs.common.errors import register_exception_handlers
from libs.common.middleware import add_observability_middleware
from libs.common.notifications import NotificationClient
from libs.db.config import dispose_engine, init_engine
from services.store_service.routers import (
    cart_router,
    orders_router,
    vendor_orders_router,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_engine()
    app.state.notifier = NotificationClient()
    yield
    await app.state.notifier.aclose()
    await dispose_engine()


def create_app() -> FastAPI:
    """Create and configure the Store Service FastAPI app."""
    app = FastAPI(
        title="KitchenMode Store Service",
        version="0.1.0",
        description="Cart, checkout and multi-vendor order fulfillment.",
        lifespan=lifespan,
    )

    add_observability_middleware(app)
    register_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "store"}

    app.include_router(cart_router, prefix="/store")
    app.include_router(orders_router, prefix="/store")
    app.include_router(vendor_orders_router, prefix="/vendor")

    return app


app = create_app()
