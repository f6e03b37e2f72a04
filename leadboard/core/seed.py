"""Database seed: default tenant, admin seller and pipeline stages"""
from typing import Optional
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession
from leadboard.core.config import settings
from leadboard.core.database import AsyncSessionLocal
from leadboard.models import Seller, SellerRole, Stage, StageCategory, Tenant, TenantStatus
from leadboard.utils.logger import logger


DEFAULT_STAGES = [
    {"key": "new", "name": "New", "color": "bg-blue-500", "category": StageCategory.NORMAL},
    {"key": "contacted", "name": "Contacted", "color": "bg-yellow-500", "category": StageCategory.NORMAL},
    {"key": "negotiation", "name": "Negotiation", "color": "bg-purple-500", "category": StageCategory.NORMAL},
    {"key": "clarify", "name": "Needs clarification", "color": "bg-orange-500", "category": StageCategory.NORMAL},
    {"key": "important", "name": "Important", "color": "bg-red-500", "category": StageCategory.NORMAL},
    {"key": "sold", "name": "Sold", "color": "bg-green-500", "category": StageCategory.WON},
    {"key": "lost", "name": "Lost", "color": "bg-gray-500", "category": StageCategory.LOST},
]


async def check_if_seeded() -> bool:
    """True once the default tenant has at least one stage"""
    try:
        async with AsyncSessionLocal() as session:
            result = await session.execute(
                select(Stage.id)
                .join(Tenant, Stage.tenant_id == Tenant.id)
                .where(Tenant.slug == settings.DEFAULT_TENANT_SLUG)
                .limit(1)
            )
            return result.scalar_one_or_none() is not None
    except SQLAlchemyError as e:
        # Tables don't exist yet before the first migration
        if "does not exist" not in str(e).lower() and "no such table" not in str(e).lower():
            logger.warning(f"Database error checking if seeded: {e}")
        return False


async def seed_tenant(session: AsyncSession, slug: str, name: str) -> Tenant:
    result = await session.execute(select(Tenant).where(Tenant.slug == slug))
    tenant = result.scalar_one_or_none()
    if tenant:
        return tenant

    tenant = Tenant(slug=slug, name=name, config={}, status=TenantStatus.ACTIVE, is_active=True)
    session.add(tenant)
    await session.flush()
    logger.info(f"Created tenant '{slug}'")
    return tenant


async def seed_stages(session: AsyncSession, tenant: Tenant) -> int:
    """Create any missing default stages; returns how many were added"""
    result = await session.execute(select(Stage).where(Stage.tenant_id == tenant.id))
    existing = {stage.key: stage for stage in result.scalars().all()}
    next_order = max((s.display_order for s in existing.values()), default=0) + 1

    created_count = 0
    for stage_data in DEFAULT_STAGES:
        if stage_data["key"] in existing:
            logger.debug(f"Stage {stage_data['key']} already exists for tenant {tenant.slug}, skipping")
            continue
        session.add(Stage(tenant_id=tenant.id, display_order=next_order, **stage_data))
        next_order += 1
        created_count += 1

    await session.flush()
    return created_count


async def seed_admin(session: AsyncSession, tenant: Tenant, full_name: str = "Administrator") -> Optional[Seller]:
    """Create an admin seller when the tenant has none"""
    result = await session.execute(
        select(Seller).where(Seller.tenant_id == tenant.id, Seller.role == SellerRole.ADMIN).limit(1)
    )
    if result.scalar_one_or_none():
        return None

    admin = Seller(tenant_id=tenant.id, full_name=full_name, role=SellerRole.ADMIN, is_active=True)
    session.add(admin)
    await session.flush()
    logger.info(f"Created admin seller {admin.id} for tenant {tenant.slug}")
    return admin


async def run_seed():
    """Run all seed functions against the default tenant"""
    async with AsyncSessionLocal() as session:
        try:
            logger.info("Starting database seed...")
            tenant = await seed_tenant(session, settings.DEFAULT_TENANT_SLUG, settings.APP_NAME)
            created = await seed_stages(session, tenant)
            await seed_admin(session, tenant)
            await session.commit()
            logger.info(f"Database seed completed ({created} stage(s) created)")
        except Exception as e:
            logger.error(f"Error during seed: {e}", exc_info=True)
            await session.rollback()
            raise
