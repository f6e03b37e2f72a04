"""Unit tests for pipeline and seller reports"""
import pytest
from datetime import datetime, timedelta
from decimal import Decimal

from leadboard.models import Lead, Task, TaskStatus
from leadboard.services import report_service

NOW = datetime(2026, 11, 2, 15, 0)


@pytest.fixture
async def pipeline_data(test_db, tenant, stages, seller, admin):
    leads = [
        Lead(tenant_id=tenant.id, seller_id=seller.id, stage_id=stages["sold"].id,
             customer_name="A", price=Decimal("1000.00")),
        Lead(tenant_id=tenant.id, seller_id=seller.id, stage_id=stages["sold"].id,
             customer_name="B", price=Decimal("500.00")),
        Lead(tenant_id=tenant.id, seller_id=seller.id, stage_id=stages["new"].id, customer_name="C"),
        Lead(tenant_id=tenant.id, seller_id=admin.id, stage_id=stages["new"].id, customer_name="D"),
    ]
    test_db.add_all(leads)
    await test_db.commit()

    test_db.add_all([
        Task(tenant_id=tenant.id, lead_id=leads[2].id, seller_id=seller.id, title="Overdue",
             due_date=NOW - timedelta(hours=1), status=TaskStatus.PENDING),
        Task(tenant_id=tenant.id, lead_id=leads[2].id, seller_id=seller.id, title="Upcoming",
             due_date=NOW + timedelta(days=1), status=TaskStatus.PENDING),
        Task(tenant_id=tenant.id, lead_id=leads[0].id, seller_id=seller.id, title="Done",
             due_date=NOW - timedelta(days=1), status=TaskStatus.COMPLETED),
    ])
    await test_db.commit()
    return leads


@pytest.mark.asyncio
async def test_pipeline_summary(test_db, tenant, stages, pipeline_data):
    summary = {row["key"]: row for row in await report_service.pipeline_summary(test_db, tenant.id)}

    assert list(summary)[0] == "new"
    assert summary["new"]["lead_count"] == 2
    assert summary["sold"]["lead_count"] == 2
    assert summary["sold"]["total_price"] == Decimal("1500")
    assert summary["sold"]["category"] == "won"
    assert summary["lost"]["lead_count"] == 0


@pytest.mark.asyncio
async def test_pipeline_summary_for_seller(test_db, tenant, stages, pipeline_data, admin):
    summary = {row["key"]: row for row in await report_service.pipeline_summary(test_db, tenant.id, admin.id)}

    assert summary["new"]["lead_count"] == 1
    assert summary["sold"]["lead_count"] == 0


@pytest.mark.asyncio
async def test_seller_stats(test_db, tenant, stages, pipeline_data, seller, admin):
    stats = {row["seller_id"]: row for row in await report_service.seller_stats(test_db, tenant.id, now=NOW)}

    bob = stats[seller.id]
    assert bob["total_leads"] == 3
    assert bob["won_leads"] == 2
    assert bob["revenue"] == Decimal("1500")
    assert bob["conversion_rate"] == pytest.approx(66.67)
    assert bob["pending_tasks"] == 2
    assert bob["overdue_tasks"] == 1

    alice = stats[admin.id]
    assert alice["total_leads"] == 1
    assert alice["won_leads"] == 0
    assert alice["conversion_rate"] == 0.0
