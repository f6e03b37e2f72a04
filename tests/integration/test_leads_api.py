"""Integration tests for the lead and stage transition API"""
import pytest
from httpx import AsyncClient

from leadboard.core.config import settings


@pytest.mark.asyncio
async def test_health_needs_no_tenant(client: AsyncClient):
    response = await client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "healthy"}


@pytest.mark.asyncio
async def test_missing_user_header(client: AsyncClient, tenant, stages):
    response = await client.get("/api/v1/leads")

    assert response.status_code == 401


@pytest.mark.asyncio
async def test_unknown_user(client: AsyncClient, tenant, stages):
    import uuid

    response = await client.get("/api/v1/leads", headers={settings.USER_ID_HEADER: str(uuid.uuid4())})

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_create_and_get_lead(client: AsyncClient, stages, seller_headers, seller):
    response = await client.post(
        "/api/v1/leads",
        json={"customer_name": "Javlon Tursunov", "customer_phone": "+998911112233"},
        headers=seller_headers,
    )

    assert response.status_code == 201
    data = response.json()
    assert data["stage_id"] == str(stages["new"].id)
    assert data["seller_id"] == str(seller.id)

    response = await client.get(f"/api/v1/leads/{data['id']}", headers=seller_headers)
    assert response.status_code == 200
    assert response.json()["customer_name"] == "Javlon Tursunov"
    assert response.headers["X-Tenant-Slug"] == settings.DEFAULT_TENANT_SLUG


@pytest.mark.asyncio
async def test_seller_only_lists_own_leads(client: AsyncClient, stages, lead, admin, seller_headers):
    await client.post(
        "/api/v1/leads",
        json={"customer_name": "Other", "seller_id": str(admin.id)},
        headers={settings.USER_ID_HEADER: str(admin.id)},
    )

    response = await client.get("/api/v1/leads", headers=seller_headers)

    assert response.status_code == 200
    assert [l["id"] for l in response.json()] == [str(lead.id)]


@pytest.mark.asyncio
async def test_exempt_stage_change_commits(client: AsyncClient, stages, lead, seller_headers):
    response = await client.post(
        f"/api/v1/leads/{lead.id}/stage",
        json={"stage_id": str(stages["lost"].id)},
        headers=seller_headers,
    )

    assert response.status_code == 200
    data = response.json()
    assert data["outcome"] == "committed"
    assert data["lead"]["stage_id"] == str(stages["lost"].id)


@pytest.mark.asyncio
async def test_gated_stage_change_then_annotated_submit(client: AsyncClient, stages, lead, seller_headers):
    response = await client.post(
        f"/api/v1/leads/{lead.id}/stage",
        json={"stage_id": str(stages["negotiation"].id)},
        headers=seller_headers,
    )
    data = response.json()
    assert data["outcome"] == "annotation_required"
    assert data["task_required"] is True
    assert data["lead"]["stage_id"] == str(stages["new"].id)

    # Comment only is not enough for a task-required stage
    response = await client.post(
        f"/api/v1/leads/{lead.id}/stage/annotated",
        json={"stage_id": str(stages["negotiation"].id), "comment": "Discussed pricing"},
        headers=seller_headers,
    )
    assert response.status_code == 422
    assert set(response.json()["errors"]) == {"task_title", "task_due_date"}

    response = await client.post(
        f"/api/v1/leads/{lead.id}/stage/annotated",
        json={
            "stage_id": str(stages["negotiation"].id),
            "comment": "ok",
            "task_title": "Call back",
            "task_due_date": "2026-11-02",
            "task_due_time": "14:30",
        },
        headers=seller_headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["lead"]["stage_id"] == str(stages["negotiation"].id)
    assert data["comment"]["comment"] == "ok"
    assert data["task"]["title"] == "Call back"
    assert data["task"]["due_date"].startswith("2026-11-02T14:30")
    assert data["task"]["status"] == "pending"

    response = await client.get(f"/api/v1/leads/{lead.id}/comments", headers=seller_headers)
    assert [c["comment"] for c in response.json()] == ["ok"]


@pytest.mark.asyncio
async def test_annotated_submit_for_exempt_stage_conflicts(client: AsyncClient, stages, lead, seller_headers):
    response = await client.post(
        f"/api/v1/leads/{lead.id}/stage/annotated",
        json={"stage_id": str(stages["lost"].id), "comment": "Not needed"},
        headers=seller_headers,
    )

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_stage_change_unknown_lead(client: AsyncClient, stages, seller_headers):
    import uuid

    response = await client.post(
        f"/api/v1/leads/{uuid.uuid4()}/stage",
        json={"stage_id": str(stages["lost"].id)},
        headers=seller_headers,
    )

    assert response.status_code == 404
    assert "error" in response.json()


@pytest.mark.asyncio
async def test_reassign_requires_admin(client: AsyncClient, stages, lead, admin, seller_headers, admin_headers):
    response = await client.post(
        f"/api/v1/leads/{lead.id}/seller",
        json={"seller_id": str(admin.id)},
        headers=seller_headers,
    )
    assert response.status_code == 403

    response = await client.post(
        f"/api/v1/leads/{lead.id}/seller",
        json={"seller_id": str(admin.id)},
        headers=admin_headers,
    )
    assert response.status_code == 200
    assert response.json()["seller_id"] == str(admin.id)


@pytest.mark.asyncio
async def test_update_lead_price_in_won_stage(client: AsyncClient, stages, lead, seller_headers):
    await client.post(
        f"/api/v1/leads/{lead.id}/stage",
        json={"stage_id": str(stages["sold"].id)},
        headers=seller_headers,
    )

    response = await client.patch(f"/api/v1/leads/{lead.id}", json={"price": None}, headers=seller_headers)

    assert response.status_code == 422
    assert "price" in response.json()["errors"]
