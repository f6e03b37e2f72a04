"""Task API endpoints"""
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from leadboard.api.deps import get_db, get_tenant_id, get_current_seller, require_admin, get_reminder_sweep
from leadboard.core.exceptions import CRMError
from leadboard.models import Seller
from leadboard.models.task import TaskStatus
from leadboard.schemas.task import TaskCreate, TaskStatusUpdate, TaskResponse, SweepResponse
from leadboard.services import task_service
from leadboard.services.reminder_sweep import TaskReminderSweep
from leadboard.utils.logger import logger

router = APIRouter()


@router.get("/tasks", response_model=list[TaskResponse])
async def list_tasks(
    lead_id: Optional[UUID] = None,
    seller_id: Optional[UUID] = None,
    status: Optional[TaskStatus] = None,
    db: AsyncSession = Depends(get_db),
    tenant_id: UUID = Depends(get_tenant_id),
    seller: Seller = Depends(get_current_seller),
):
    """Tasks ordered by due date. Sellers only see their own."""
    if not seller.is_admin_or_rop:
        seller_id = seller.id
    return await task_service.list_tasks(db, tenant_id, seller_id=seller_id, lead_id=lead_id, status=status)


@router.post("/tasks", response_model=TaskResponse, status_code=201)
async def create_task(
    task_data: TaskCreate,
    db: AsyncSession = Depends(get_db),
    tenant_id: UUID = Depends(get_tenant_id),
    seller: Seller = Depends(get_current_seller),
):
    """
    Create a follow-up task

    - **lead_id**: optional; standalone tasks belong to the caller
    - **due_date**: wall clock time in the deployment timezone
    """
    seller_id = task_data.seller_id
    if seller_id is None and task_data.lead_id is None:
        seller_id = seller.id

    try:
        return await task_service.create_task(
            db,
            tenant_id,
            title=task_data.title,
            due_date=task_data.due_date,
            seller_id=seller_id,
            lead_id=task_data.lead_id,
            description=task_data.description,
        )
    except (HTTPException, CRMError):
        raise
    except Exception as e:
        logger.error(f"Error creating task: {e}", exc_info=True)
        await db.rollback()
        raise HTTPException(status_code=500, detail=str(e))


@router.patch("/tasks/{task_id}/status", response_model=TaskResponse)
async def update_task_status(
    task_id: UUID,
    data: TaskStatusUpdate,
    db: AsyncSession = Depends(get_db),
    tenant_id: UUID = Depends(get_tenant_id),
    seller: Seller = Depends(get_current_seller),
):
    """Set the status, or toggle it when the body has none"""
    task = await task_service.get_task(db, tenant_id, task_id)
    if task.seller_id != seller.id and not seller.is_admin_or_rop:
        raise HTTPException(status_code=403, detail="Task belongs to another seller")
    return await task_service.set_task_status(db, tenant_id, task_id, data.status)


@router.post("/tasks/sweep", response_model=SweepResponse)
async def run_sweep(
    db: AsyncSession = Depends(get_db),
    admin: Seller = Depends(require_admin),
    sweep: TaskReminderSweep = Depends(get_reminder_sweep),
):
    """
    Run one reminder pass now.

    Shares notification memory with the background runner, so tasks that
    were already announced are not announced again.
    """
    report = await sweep.run_once(db)
    return report.to_dict()
