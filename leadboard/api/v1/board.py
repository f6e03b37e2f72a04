"""Board and report endpoints"""
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from leadboard.api.deps import get_db, get_tenant_id, get_current_seller, require_admin
from leadboard.models import Seller
from leadboard.schemas.board import BoardResponse, StageSummary, SellerStats
from leadboard.services import report_service
from leadboard.services.board import load_board

router = APIRouter()


def _visible_seller(seller: Seller, requested: Optional[UUID]) -> Optional[UUID]:
    """Admins see any seller (or everyone); sellers only themselves"""
    if seller.is_admin_or_rop:
        return requested
    return seller.id


@router.get("/board", response_model=BoardResponse)
async def get_board(
    seller_id: Optional[UUID] = None,
    db: AsyncSession = Depends(get_db),
    tenant_id: UUID = Depends(get_tenant_id),
    seller: Seller = Depends(get_current_seller),
):
    """Kanban columns in display order with their leads"""
    board = await load_board(db, tenant_id, _visible_seller(seller, seller_id))
    return BoardResponse.model_validate(board)


@router.get("/reports/pipeline", response_model=list[StageSummary])
async def pipeline_report(
    seller_id: Optional[UUID] = None,
    db: AsyncSession = Depends(get_db),
    tenant_id: UUID = Depends(get_tenant_id),
    seller: Seller = Depends(get_current_seller),
):
    return await report_service.pipeline_summary(db, tenant_id, _visible_seller(seller, seller_id))


@router.get("/reports/sellers", response_model=list[SellerStats])
async def seller_report(
    db: AsyncSession = Depends(get_db),
    tenant_id: UUID = Depends(get_tenant_id),
    admin: Seller = Depends(require_admin),
):
    """Per-seller leads, revenue, conversion and task load"""
    return await report_service.seller_stats(db, tenant_id)
