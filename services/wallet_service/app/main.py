"""FastAPI application for the Wallet Service."""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from libs.common.errors import register_exception_handlers
from libs.common.middleware import add_observability_middleware
from libs.common.notifications import NotificationClient
from libs.db.config import dispose_engine, init_engine
from services.wallet_service.routers import admin_router, vendor_router


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_engine()
    app.state.notifier = NotificationClient()
    yield
    await app.state.notifier.aclose()
    await dispose_engine()


def create_app() -> FastAPI:
    """Create and configure the Wallet Service FastAPI app."""
    app = FastAPI(
        title="KitchenMode Wallet Service",
        version="0.1.0",
        description="Vendor earnings, balances and withdrawals.",
        lifespan=lifespan,
    )

    add_observability_middleware(app)
    register_exception_handlers(app)

    @app.get("/health", tags=["system"])
    async def health_check() -> dict[str, str]:
        """Health check endpoint."""
        return {"status": "ok", "service": "wallet"}

    # Vendor-facing routes
    app.include_router(vendor_router)

    # Admin routes
    app.include_router(admin_router)

    return app


app = create_app()
