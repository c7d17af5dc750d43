"""Shared fixtures for subscriber tests.

Tests run against an in-memory SQLite database through aiosqlite, so no
PostgreSQL server is needed. Outbound hub and topic traffic goes through
an httpx.MockTransport whose handler each test can replace.
"""

import uuid
from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from websub_subscriber.core.config import settings
from websub_subscriber.core.database import create_schema
from websub_subscriber.models.subscription import Subscription
from websub_subscriber.services.subscription_state import SubscriptionState

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"

TEST_HOST = "http://test"
TEST_TOPIC = "https://publisher.example/feed"
TEST_HUB = "https://hub.example/"

# Fixed "now" for handshake tests
FIXED_NOW = datetime(2026, 1, 15, 12, 0, tzinfo=UTC)

HubHandler = Callable[[httpx.Request], httpx.Response]


def callback_url(subscription_id: uuid.UUID, host: str = TEST_HOST) -> str:
    """Callback URL the app derives for a subscription id."""
    return f"{host}{settings.websub_base_path}/callback/{subscription_id}"


class HubRecorder:
    """Records outbound requests and answers them with a swappable handler."""

    def __init__(self) -> None:
        self.requests: list[httpx.Request] = []
        self.handler: HubHandler = lambda _request: httpx.Response(202)

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.handler(request)


@pytest_asyncio.fixture(scope="function")
async def db_engine():
    """In-memory database engine with the schema created."""
    # StaticPool keeps one connection so every session sees the same database.
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    await create_schema(engine)

    yield engine

    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def db_session(db_engine) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session."""
    async_session = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session() as session:
        yield session
        await session.rollback()


@pytest.fixture
def make_subscription(db_session: AsyncSession):
    """Factory that inserts a subscription in a given state."""

    async def _make(
        state: SubscriptionState = SubscriptionState.PENDING_SUBSCRIPTION,
        *,
        topic: str = TEST_TOPIC,
        hub: str = TEST_HUB,
        subscription_id: uuid.UUID | None = None,
        callback: str | None = None,
    ) -> Subscription:
        subscription_id = subscription_id or uuid.uuid4()
        subscription = Subscription(
            id=subscription_id,
            topic=topic,
            hub=hub,
            callback=callback or callback_url(subscription_id),
            state=state.value,
        )
        db_session.add(subscription)
        await db_session.flush()
        await db_session.refresh(subscription)
        return subscription

    return _make


@pytest.fixture
def hub_recorder() -> HubRecorder:
    """Outbound HTTP recorder; set .handler to change the answers."""
    return HubRecorder()


@pytest_asyncio.fixture
async def client(
    db_engine,
    hub_recorder: HubRecorder,
) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client for API tests.

    Sets up:
    - Test database connection via dependency override
    - Hub client on a MockTransport backed by hub_recorder
    - Callback host matching the client's base URL
    - Rate limiting disabled

    Yields:
        Configured AsyncClient for making API requests.
    """
    from websub_subscriber.api.deps import get_hub_client
    from websub_subscriber.core.database import get_db
    from websub_subscriber.core.rate_limiting import limiter
    from websub_subscriber.main import app
    from websub_subscriber.services.hub_client import HubClient

    test_session_factory = async_sessionmaker(
        db_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with test_session_factory() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    async def override_get_hub_client() -> AsyncGenerator[HubClient, None]:
        transport = httpx.MockTransport(hub_recorder)
        async with httpx.AsyncClient(transport=transport) as http_client:
            yield HubClient(http_client)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_hub_client] = override_get_hub_client

    original_host = settings.websub_host
    original_limiter_enabled = limiter.enabled
    settings.websub_host = TEST_HOST
    limiter.enabled = False

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url=TEST_HOST) as ac:
        yield ac

    # Cleanup
    settings.websub_host = original_host
    limiter.enabled = original_limiter_enabled
    app.dependency_overrides.clear()
