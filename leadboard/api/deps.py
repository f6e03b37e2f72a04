"""API dependencies"""
from typing import AsyncGenerator
from uuid import UUID
from fastapi import Depends, Request, HTTPException
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from leadboard.core.config import settings
from leadboard.core.database import AsyncSessionLocal
from leadboard.models import Seller, Tenant
from leadboard.services.reminder_sweep import TaskReminderSweep
from leadboard.services.stage_rules import StageRules


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Dependency for getting async database session"""
    async with AsyncSessionLocal() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


async def get_current_tenant(request: Request) -> Tenant:
    """
    Dependency to get current tenant from request state.

    The tenant is injected by TenantMiddleware.
    """
    if not hasattr(request.state, "tenant"):
        raise HTTPException(
            status_code=500,
            detail="Tenant not found in request state. Ensure TenantMiddleware is configured."
        )

    return request.state.tenant


async def get_tenant_id(request: Request) -> UUID:
    """Convenience dependency for routes that only need the tenant ID"""
    if not hasattr(request.state, "tenant_id"):
        raise HTTPException(
            status_code=500,
            detail="Tenant ID not found in request state. Ensure TenantMiddleware is configured."
        )

    return request.state.tenant_id


async def get_current_seller(
    request: Request,
    db: AsyncSession = Depends(get_db),
    tenant_id: UUID = Depends(get_tenant_id),
) -> Seller:
    """
    Load the caller bound by TenantMiddleware.

    The middleware has already checked that the id belongs to an active
    seller of the current tenant.
    """
    seller_id = getattr(request.state, "seller_id", None)
    if seller_id is None:
        raise HTTPException(status_code=401, detail=f"Missing {settings.USER_ID_HEADER} header")

    result = await db.execute(
        select(Seller).where(Seller.id == seller_id, Seller.tenant_id == tenant_id)
    )
    seller = result.scalar_one_or_none()
    if not seller:
        raise HTTPException(status_code=403, detail="Seller not found for this tenant")

    return seller


async def require_admin(seller: Seller = Depends(get_current_seller)) -> Seller:
    """Admins and heads of sales only"""
    if not seller.is_admin_or_rop:
        raise HTTPException(status_code=403, detail="Admin or head of sales role required")
    return seller


async def get_stage_rules(tenant: Tenant = Depends(get_current_tenant)) -> StageRules:
    return StageRules.for_tenant(tenant)


async def get_reminder_sweep(request: Request) -> TaskReminderSweep:
    return request.app.state.reminder_sweep
