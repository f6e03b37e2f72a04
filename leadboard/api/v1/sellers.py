"""Seller API endpoints"""
from datetime import datetime
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leadboard.api.deps import get_db, get_tenant_id, get_current_seller, require_admin
from leadboard.models import Seller
from leadboard.schemas.seller import SellerCreate, SellerUpdate, SellerResponse
from leadboard.utils.logger import logger

router = APIRouter()


@router.get("/sellers", response_model=list[SellerResponse])
async def list_sellers(
    include_inactive: bool = False,
    db: AsyncSession = Depends(get_db),
    tenant_id: UUID = Depends(get_tenant_id),
    seller: Seller = Depends(get_current_seller),
):
    """List sellers of the current tenant"""
    query = select(Seller).where(Seller.tenant_id == tenant_id)
    if not include_inactive:
        query = query.where(Seller.is_active.is_(True))
    result = await db.execute(query.order_by(Seller.full_name))
    return result.scalars().all()


@router.get("/sellers/me", response_model=SellerResponse)
async def get_me(seller: Seller = Depends(get_current_seller)):
    return seller


@router.post("/sellers", response_model=SellerResponse, status_code=201)
async def create_seller(
    seller_data: SellerCreate,
    db: AsyncSession = Depends(get_db),
    tenant_id: UUID = Depends(get_tenant_id),
    admin: Seller = Depends(require_admin),
):
    try:
        seller = Seller(tenant_id=tenant_id, **seller_data.model_dump())
        db.add(seller)
        await db.commit()
        await db.refresh(seller)

        logger.info(f"Created seller {seller.id} ({seller.full_name}, {seller.role.value})")
        return seller
    except Exception as e:
        logger.error(f"Error creating seller: {e}", exc_info=True)
        await db.rollback()
        raise HTTPException(status_code=500, detail=str(e))


@router.patch("/sellers/{seller_id}", response_model=SellerResponse)
async def update_seller(
    seller_id: UUID,
    seller_data: SellerUpdate,
    db: AsyncSession = Depends(get_db),
    tenant_id: UUID = Depends(get_tenant_id),
    admin: Seller = Depends(require_admin),
):
    """Update profile, role or deactivate a seller"""
    result = await db.execute(
        select(Seller).where(Seller.id == seller_id, Seller.tenant_id == tenant_id)
    )
    seller = result.scalar_one_or_none()
    if not seller:
        raise HTTPException(status_code=404, detail="Seller not found")

    for key, value in seller_data.model_dump(exclude_unset=True).items():
        setattr(seller, key, value)
    seller.updated_at = datetime.utcnow()

    await db.commit()
    await db.refresh(seller)
    return seller
