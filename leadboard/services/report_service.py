"""Pipeline and seller statistics"""
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import select, func, case
from sqlalchemy.ext.asyncio import AsyncSession

from leadboard.models.lead import Lead
from leadboard.models.seller import Seller
from leadboard.models.stage import Stage, StageCategory
from leadboard.models.task import Task, TaskStatus
from leadboard.utils.clock import local_now


async def pipeline_summary(
    db: AsyncSession,
    tenant_id: UUID,
    seller_id: Optional[UUID] = None,
) -> list[dict]:
    """Lead count and price total per stage, in board order"""
    join_on = Lead.stage_id == Stage.id
    if seller_id is not None:
        join_on = join_on & (Lead.seller_id == seller_id)

    result = await db.execute(
        select(
            Stage.id,
            Stage.key,
            Stage.name,
            Stage.category,
            func.count(Lead.id),
            func.coalesce(func.sum(Lead.price), 0),
        )
        .outerjoin(Lead, join_on)
        .where(Stage.tenant_id == tenant_id)
        .group_by(Stage.id, Stage.key, Stage.name, Stage.category, Stage.display_order)
        .order_by(Stage.display_order)
    )

    return [
        {
            "stage_id": stage_id,
            "key": key,
            "name": name,
            "category": category.value if category else None,
            "lead_count": lead_count,
            "total_price": Decimal(str(total or 0)),
        }
        for stage_id, key, name, category, lead_count, total in result.all()
    ]


async def seller_stats(
    db: AsyncSession,
    tenant_id: UUID,
    now: Optional[datetime] = None,
) -> list[dict]:
    """
    Per active seller: total leads, won leads, revenue, conversion rate and
    pending/overdue task counts.
    """
    now = now or local_now()

    sellers = (
        await db.execute(
            select(Seller)
            .where(Seller.tenant_id == tenant_id, Seller.is_active.is_(True))
            .order_by(Seller.full_name)
        )
    ).scalars().all()

    won = Stage.category == StageCategory.WON
    lead_rows = await db.execute(
        select(
            Lead.seller_id,
            func.count(Lead.id),
            func.sum(case((won, 1), else_=0)),
            func.coalesce(func.sum(case((won, Lead.price), else_=0)), 0),
        )
        .join(Stage, Lead.stage_id == Stage.id)
        .where(Lead.tenant_id == tenant_id)
        .group_by(Lead.seller_id)
    )
    leads_by_seller = {row[0]: row[1:] for row in lead_rows.all()}

    pending = Task.status == TaskStatus.PENDING
    task_rows = await db.execute(
        select(
            Task.seller_id,
            func.sum(case((pending, 1), else_=0)),
            func.sum(case((pending & (Task.due_date < now), 1), else_=0)),
        )
        .where(Task.tenant_id == tenant_id)
        .group_by(Task.seller_id)
    )
    tasks_by_seller = {row[0]: row[1:] for row in task_rows.all()}

    stats = []
    for seller in sellers:
        total_leads, won_leads, revenue = leads_by_seller.get(seller.id, (0, 0, 0))
        pending_tasks, overdue_tasks = tasks_by_seller.get(seller.id, (0, 0))
        total_leads = int(total_leads or 0)
        won_leads = int(won_leads or 0)
        stats.append({
            "seller_id": seller.id,
            "full_name": seller.full_name,
            "total_leads": total_leads,
            "won_leads": won_leads,
            "revenue": Decimal(str(revenue or 0)),
            "conversion_rate": round(won_leads / total_leads * 100, 2) if total_leads else 0.0,
            "pending_tasks": int(pending_tasks or 0),
            "overdue_tasks": int(overdue_tasks or 0),
        })
    return stats
