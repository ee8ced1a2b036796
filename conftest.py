import os
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

# Tests run against an in-memory SQLite database and never reach Paystack or
# the notifications service. Set before settings are first read.
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["PAYSTACK_SECRET_KEY"] = "sk_test_secret"
os.environ["NOTIFICATIONS_ENABLED"] = "false"

from libs.common.config import get_settings  # noqa: E402

# Clear cached settings to reload with new env vars
get_settings.cache_clear()

from libs.auth.dependencies import get_current_user  # noqa: E402
from libs.common.notifications import get_notifier  # noqa: E402
from libs.db.base import Base  # noqa: E402
from libs.db.session import get_async_db  # noqa: E402

# Import all models so metadata includes every table
from services.payments_service import models as _payment_models  # noqa: E402,F401
from services.payments_service.paystack_client import get_payment_gateway  # noqa: E402
from services.store_service import models as _store_models  # noqa: E402,F401
from services.wallet_service import models as _wallet_models  # noqa: E402,F401
from tests.fakes import FakeGateway, RecordingNotifier  # noqa: E402
from tests.factories import make_customer_user  # noqa: E402


@pytest_asyncio.fixture
async def test_engine():
    """
    Fresh in-memory database per test.
    StaticPool keeps the single connection alive so every session sees the same tables.
    """
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    session_factory = async_sessionmaker(
        bind=test_engine,
        class_=AsyncSession,
        expire_on_commit=False,
        autoflush=False,
    )
    async with session_factory() as session:
        yield session


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()


def _wire(app, db_session, notifier, gateway=None):
    """Point an app's infrastructure dependencies at the test doubles."""
    app.dependency_overrides[get_async_db] = lambda: db_session
    app.dependency_overrides[get_notifier] = lambda: notifier
    if gateway is not None:
        app.dependency_overrides[get_payment_gateway] = lambda: gateway
    # Fallback caller for tests that don't override auth explicitly
    app.dependency_overrides[get_current_user] = lambda: make_customer_user()


@pytest_asyncio.fixture
async def store_client(db_session, notifier) -> AsyncGenerator[AsyncClient, None]:
    from services.store_service.app.main import app

    _wire(app, db_session, notifier)
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def payments_client(
    db_session, notifier, gateway
) -> AsyncGenerator[AsyncClient, None]:
    from services.payments_service.app.main import app

    _wire(app, db_session, notifier, gateway)
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest_asyncio.fixture
async def wallet_client(db_session, notifier) -> AsyncGenerator[AsyncClient, None]:
    from services.wallet_service.app.main import app

    _wire(app, db_session, notifier)
    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac
    app.dependency_overrides.clear()
