"""FastAPI application for the Payments Service."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from libs.common.errors import register_exception_handlers
from libs.common.middleware import add_observability_middleware
from libs.common.notifications import NotificationClient
from libs.db.config import dispose_engine, init_engine
from services.payments_service.paystack_client import PaystackClient
from services.payments_service.routers import (
    admin_router,
    customer_router,
    webhooks_router,
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_engine()
    app.state.payment_gateway = PaystackClient()
    app.state.notifier = NotificationClient()
    yield
    await app.state.payment_gateway.aclose()
    await app.state.notifier.aclose()
    await dispose_engine()


def create_app() -> FastAPI:
    """Create and configure the Payments Service FastAPI app."""
    app = FastAPI(
        title="KitchenMode Payments Service",
        version="0.1.0",
        description="Order payments through Paystack: initialize, verify, refund.",
        lifespan=lifespan,
    )

    add_observability_middleware(app)
    register_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "payments"}

    app.include_router(customer_router)
    app.include_router(webhooks_router)
    app.include_router(admin_router)

    return app


app = create_app()
