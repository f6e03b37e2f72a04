"""Integration tests for tenant resolution"""
import bcrypt
import pytest
from httpx import AsyncClient

from leadboard.core.config import settings
from leadboard.core.seed import seed_stages
from leadboard.models import Seller, SellerRole, Tenant, TenantStatus

API_KEY = "ac_0123456789abcdef0123456789abcdef"


@pytest.fixture
def multi_tenant(monkeypatch):
    monkeypatch.setattr(settings, "MULTI_TENANT_ENABLED", True)


@pytest.fixture
async def acme(test_db) -> Tenant:
    tenant = Tenant(
        slug="acme",
        name="Acme",
        config={"stage_rules": {"exempt": ["new", "negotiation"]}},
        api_key_hash=bcrypt.hashpw(API_KEY.encode("utf-8"), bcrypt.gensalt()).decode("utf-8"),
        api_key_prefix=API_KEY[:8],
        status=TenantStatus.ACTIVE,
    )
    test_db.add(tenant)
    await test_db.commit()
    await seed_stages(test_db, tenant)
    await test_db.commit()
    return tenant


@pytest.fixture
async def acme_admin(test_db, acme) -> Seller:
    seller = Seller(tenant_id=acme.id, full_name="Acme Admin", role=SellerRole.ADMIN)
    test_db.add(seller)
    await test_db.commit()
    return seller


def acme_headers(seller: Seller, api_key: str = API_KEY) -> dict:
    return {
        settings.TENANT_ID_HEADER: "acme",
        settings.API_KEY_HEADER: api_key,
        settings.USER_ID_HEADER: str(seller.id),
    }


@pytest.mark.asyncio
async def test_default_tenant_missing(client: AsyncClient, test_db):
    response = await client.get("/api/v1/stages")

    assert response.status_code == 500
    assert response.json()["error"] == "Default tenant not configured"


@pytest.mark.asyncio
async def test_multi_tenant_requires_headers(client: AsyncClient, multi_tenant, acme):
    response = await client.get("/api/v1/stages")

    assert response.status_code == 400


@pytest.mark.asyncio
async def test_multi_tenant_rejects_bad_key(client: AsyncClient, multi_tenant, acme, acme_admin):
    response = await client.get("/api/v1/stages", headers=acme_headers(acme_admin, api_key="wrong"))

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_multi_tenant_unknown_slug(client: AsyncClient, multi_tenant, acme, acme_admin):
    headers = acme_headers(acme_admin)
    headers[settings.TENANT_ID_HEADER] = "nope"

    response = await client.get("/api/v1/stages", headers=headers)

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_multi_tenant_uses_tenant_stage_rules(client: AsyncClient, test_db, multi_tenant, acme, acme_admin):
    """Acme exempts negotiation, so the move commits without annotation"""
    from leadboard.services.stage_service import list_stages
    from leadboard.models import Lead

    stages = {s.key: s for s in await list_stages(test_db, acme.id)}
    lead = Lead(tenant_id=acme.id, seller_id=acme_admin.id, stage_id=stages["new"].id, customer_name="X")
    test_db.add(lead)
    await test_db.commit()

    response = await client.post(
        f"/api/v1/leads/{lead.id}/stage",
        json={"stage_id": str(stages["negotiation"].id)},
        headers=acme_headers(acme_admin),
    )

    assert response.status_code == 200
    assert response.json()["outcome"] == "committed"
    assert response.headers["X-Tenant-Slug"] == "acme"


@pytest.mark.asyncio
async def test_seller_of_other_tenant_rejected(client: AsyncClient, multi_tenant, acme, seller):
    """A valid Acme key with a seller id from another tenant"""
    response = await client.get("/api/v1/stages", headers=acme_headers(seller))

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_malformed_user_id_rejected(client: AsyncClient, tenant, stages):
    response = await client.get("/api/v1/stages", headers={settings.USER_ID_HEADER: "not-a-uuid"})

    assert response.status_code == 400
    assert response.json()["error"] == f"Invalid {settings.USER_ID_HEADER} header"


@pytest.mark.asyncio
async def test_inactive_seller_rejected_before_routing(client: AsyncClient, test_db, stages, seller, seller_headers):
    seller.is_active = False
    await test_db.commit()

    response = await client.get("/api/v1/board", headers=seller_headers)

    assert response.status_code == 403
    assert response.json()["error"] == "Seller not found for this tenant"
