"""Stage registry API endpoints"""
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from leadboard.api.deps import get_db, get_tenant_id, get_current_seller, require_admin
from leadboard.core.exceptions import CRMError
from leadboard.models import Seller
from leadboard.schemas.stage import StageCreate, StageUpdate, StageOrder, StageResponse
from leadboard.services import stage_service
from leadboard.utils.logger import logger

router = APIRouter()


@router.get("/stages", response_model=list[StageResponse])
async def list_stages(
    db: AsyncSession = Depends(get_db),
    tenant_id: UUID = Depends(get_tenant_id),
    seller: Seller = Depends(get_current_seller),
):
    """List stages in board order"""
    return await stage_service.list_stages(db, tenant_id)


@router.post("/stages", response_model=StageResponse, status_code=201)
async def create_stage(
    stage_data: StageCreate,
    db: AsyncSession = Depends(get_db),
    tenant_id: UUID = Depends(get_tenant_id),
    admin: Seller = Depends(require_admin),
):
    """
    Create a stage at the end of the board

    - **key**: stable identifier referenced by stage rules
    - **name**: display name (free to rename later)
    - **category**: normal, won or lost
    """
    try:
        return await stage_service.create_stage(
            db,
            tenant_id,
            key=stage_data.key,
            name=stage_data.name,
            color=stage_data.color,
            category=stage_data.category,
        )
    except (HTTPException, CRMError):
        raise
    except Exception as e:
        logger.error(f"Error creating stage: {e}", exc_info=True)
        await db.rollback()
        raise HTTPException(status_code=500, detail=str(e))


@router.patch("/stages/{stage_id}", response_model=StageResponse)
async def update_stage(
    stage_id: UUID,
    stage_data: StageUpdate,
    db: AsyncSession = Depends(get_db),
    tenant_id: UUID = Depends(get_tenant_id),
    admin: Seller = Depends(require_admin),
):
    """Rename, recolor or recategorize a stage"""
    try:
        return await stage_service.update_stage(
            db,
            tenant_id,
            stage_id,
            name=stage_data.name,
            color=stage_data.color,
            category=stage_data.category,
        )
    except (HTTPException, CRMError):
        raise
    except Exception as e:
        logger.error(f"Error updating stage: {e}", exc_info=True)
        await db.rollback()
        raise HTTPException(status_code=500, detail=str(e))


@router.delete("/stages/{stage_id}", status_code=204)
async def delete_stage(
    stage_id: UUID,
    db: AsyncSession = Depends(get_db),
    tenant_id: UUID = Depends(get_tenant_id),
    admin: Seller = Depends(require_admin),
):
    """Delete an empty stage (409 while leads still use it)"""
    try:
        await stage_service.delete_stage(db, tenant_id, stage_id)
    except (HTTPException, CRMError):
        raise
    except Exception as e:
        logger.error(f"Error deleting stage: {e}", exc_info=True)
        await db.rollback()
        raise HTTPException(status_code=500, detail=str(e))


@router.put("/stages/order", response_model=list[StageResponse])
async def reorder_stages(
    order: StageOrder,
    db: AsyncSession = Depends(get_db),
    tenant_id: UUID = Depends(get_tenant_id),
    admin: Seller = Depends(require_admin),
):
    """Persist a new column order as display_order 1..N"""
    return await stage_service.reorder_stages(db, tenant_id, order.stage_ids)
