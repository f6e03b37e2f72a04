"""Pytest configuration and fixtures"""
import os
import pytest
from typing import AsyncGenerator
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import NullPool
from httpx import AsyncClient, ASGITransport

from leadboard.core.config import settings
from leadboard.core.database import Base
from leadboard.core.seed import seed_stages, seed_tenant
from leadboard.main import app
from leadboard.api.deps import get_db
from leadboard.models import Lead, Seller, SellerRole, Stage, Tenant
from leadboard.services.change_feed import ChangeFeed
from leadboard.services.notifications import NotificationSink
from leadboard.services.stage_rules import StageRules
from leadboard.services.stage_service import list_stages
import leadboard.middleware.tenant as tenant_middleware


class RecordingSink(NotificationSink):
    """Collects notifications instead of delivering them"""

    def __init__(self):
        self.messages = []

    async def notify(self, title: str, body: str, lead_id=None, seller_id=None) -> None:
        self.messages.append(
            {"title": title, "body": body, "lead_id": lead_id, "seller_id": seller_id}
        )

    def titled(self, title: str) -> list:
        return [m for m in self.messages if m["title"] == title]


@pytest.fixture(scope="function")
def test_engine(tmp_path):
    """
    Engine over a throwaway database.

    A file-based SQLite database by default so the tenant middleware can
    open its own connections; set TEST_DATABASE_URL to run on PostgreSQL.
    """
    url = os.getenv("TEST_DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    return create_async_engine(url, poolclass=NullPool)


@pytest.fixture(scope="function")
def session_factory(test_engine) -> async_sessionmaker:
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture(scope="function")
async def test_db(test_engine, session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create test database session"""
    async with test_engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)

    async with session_factory() as session:
        yield session

    await test_engine.dispose()


@pytest.fixture
async def client(test_db: AsyncSession, session_factory, monkeypatch) -> AsyncGenerator[AsyncClient, None]:
    """Create test client"""
    async def override_get_db():
        yield test_db

    app.dependency_overrides[get_db] = override_get_db
    monkeypatch.setattr(tenant_middleware, "AsyncSessionLocal", session_factory)

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


@pytest.fixture
async def tenant(test_db: AsyncSession) -> Tenant:
    tenant = await seed_tenant(test_db, settings.DEFAULT_TENANT_SLUG, "Test Company")
    await test_db.commit()
    return tenant


@pytest.fixture
async def stages(test_db: AsyncSession, tenant: Tenant) -> dict[str, Stage]:
    """Default pipeline keyed by stage key"""
    await seed_stages(test_db, tenant)
    await test_db.commit()

    return {stage.key: stage for stage in await list_stages(test_db, tenant.id)}


@pytest.fixture
async def admin(test_db: AsyncSession, tenant: Tenant) -> Seller:
    seller = Seller(tenant_id=tenant.id, full_name="Alice Admin", role=SellerRole.ADMIN)
    test_db.add(seller)
    await test_db.commit()
    await test_db.refresh(seller)
    return seller


@pytest.fixture
async def seller(test_db: AsyncSession, tenant: Tenant) -> Seller:
    seller = Seller(tenant_id=tenant.id, full_name="Bob Seller", role=SellerRole.SELLER)
    test_db.add(seller)
    await test_db.commit()
    await test_db.refresh(seller)
    return seller


@pytest.fixture
async def lead(test_db: AsyncSession, tenant: Tenant, stages, seller: Seller) -> Lead:
    """Lead in the first column owned by `seller`"""
    lead = Lead(
        tenant_id=tenant.id,
        seller_id=seller.id,
        stage_id=stages["new"].id,
        customer_name="Dilshod Karimov",
        customer_phone="+998901234567",
    )
    test_db.add(lead)
    await test_db.commit()
    await test_db.refresh(lead)
    return lead


@pytest.fixture
def rules() -> StageRules:
    return StageRules.from_settings()


@pytest.fixture
def feed() -> ChangeFeed:
    return ChangeFeed()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def admin_headers(admin: Seller) -> dict:
    return {settings.USER_ID_HEADER: str(admin.id)}


@pytest.fixture
def seller_headers(seller: Seller) -> dict:
    return {settings.USER_ID_HEADER: str(seller.id)}
