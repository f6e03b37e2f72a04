"""Follow-up task operations"""
from datetime import datetime
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leadboard.core.exceptions import TaskNotFound, ValidationFailed
from leadboard.models.task import Task, TaskStatus
from leadboard.services.change_feed import change_feed
from leadboard.services.lead_service import get_seller
from leadboard.services.transition_gate import get_lead
from leadboard.utils.clock import to_local_naive
from leadboard.utils.logger import logger


async def create_task(
    db: AsyncSession,
    tenant_id: UUID,
    title: str,
    due_date: datetime,
    seller_id: Optional[UUID] = None,
    lead_id: Optional[UUID] = None,
    description: Optional[str] = None,
) -> Task:
    """Tasks linked to a lead default to the lead's seller"""
    if not (title or "").strip():
        raise ValidationFailed({"title": "Task title is required"})

    if lead_id is not None:
        lead = await get_lead(db, tenant_id, lead_id)
        seller_id = seller_id or lead.seller_id
    if seller_id is None:
        raise ValidationFailed({"seller_id": "Seller is required for tasks without a lead"})
    await get_seller(db, tenant_id, seller_id)
    due_date = to_local_naive(due_date)

    task = Task(
        tenant_id=tenant_id,
        lead_id=lead_id,
        seller_id=seller_id,
        title=title.strip(),
        description=(description or "").strip() or None,
        due_date=due_date,
        status=TaskStatus.PENDING,
    )
    db.add(task)
    await db.commit()
    await db.refresh(task)

    logger.info(f"Created task {task.id} for seller {seller_id} due {due_date}")
    change_feed.publish("task.created", tenant_id, task_id=str(task.id))
    return task


async def get_task(db: AsyncSession, tenant_id: UUID, task_id: UUID) -> Task:
    result = await db.execute(
        select(Task).where(Task.id == task_id, Task.tenant_id == tenant_id)
    )
    task = result.scalar_one_or_none()
    if not task:
        raise TaskNotFound(task_id)
    return task


async def list_tasks(
    db: AsyncSession,
    tenant_id: UUID,
    seller_id: Optional[UUID] = None,
    lead_id: Optional[UUID] = None,
    status: Optional[TaskStatus] = None,
) -> list[Task]:
    query = select(Task).where(Task.tenant_id == tenant_id)
    if seller_id is not None:
        query = query.where(Task.seller_id == seller_id)
    if lead_id is not None:
        query = query.where(Task.lead_id == lead_id)
    if status is not None:
        query = query.where(Task.status == status)
    result = await db.execute(query.order_by(Task.due_date))
    return list(result.scalars().all())


async def set_task_status(
    db: AsyncSession,
    tenant_id: UUID,
    task_id: UUID,
    status: Optional[TaskStatus] = None,
) -> Task:
    """Set a status, or toggle pending <-> completed when none is given"""
    task = await get_task(db, tenant_id, task_id)
    if status is None:
        status = TaskStatus.PENDING if task.status == TaskStatus.COMPLETED else TaskStatus.COMPLETED
    task.status = status
    task.updated_at = datetime.utcnow()
    await db.commit()
    await db.refresh(task)

    change_feed.publish("task.updated", tenant_id, task_id=str(task.id), status=status.value)
    return task
