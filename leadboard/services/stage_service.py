"""Stage registry: ordered, per-tenant pipeline stages"""
from typing import Optional, Sequence
from uuid import UUID

from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from leadboard.core.exceptions import InvalidStage, PersistenceFailed, StageInUse, ValidationFailed
from leadboard.models.lead import Lead
from leadboard.models.stage import Stage, StageCategory
from leadboard.utils.logger import logger


async def list_stages(db: AsyncSession, tenant_id: UUID) -> list[Stage]:
    """All stages of a tenant ordered by display_order"""
    result = await db.execute(
        select(Stage)
        .where(Stage.tenant_id == tenant_id)
        .order_by(Stage.display_order, Stage.created_at)
    )
    return list(result.scalars().all())


async def get_stage(db: AsyncSession, tenant_id: UUID, stage_id: UUID) -> Stage:
    result = await db.execute(
        select(Stage).where(Stage.id == stage_id, Stage.tenant_id == tenant_id)
    )
    stage = result.scalar_one_or_none()
    if not stage:
        raise InvalidStage(stage_id)
    return stage


async def create_stage(
    db: AsyncSession,
    tenant_id: UUID,
    key: str,
    name: str,
    color: str = "bg-blue-500",
    category: StageCategory = StageCategory.NORMAL,
) -> Stage:
    """Append a stage at the end of the board"""
    existing = await db.execute(
        select(Stage).where(Stage.tenant_id == tenant_id, Stage.key == key)
    )
    if existing.scalar_one_or_none():
        raise ValidationFailed({"key": f"Stage key '{key}' already exists"})

    max_order = await db.execute(
        select(func.max(Stage.display_order)).where(Stage.tenant_id == tenant_id)
    )
    next_order = (max_order.scalar() or 0) + 1

    stage = Stage(
        tenant_id=tenant_id,
        key=key,
        name=name,
        color=color,
        category=category,
        display_order=next_order,
    )
    db.add(stage)
    await db.commit()
    await db.refresh(stage)

    logger.info(f"Created stage {key} at position {next_order} for tenant {tenant_id}")
    return stage


async def update_stage(
    db: AsyncSession,
    tenant_id: UUID,
    stage_id: UUID,
    name: Optional[str] = None,
    color: Optional[str] = None,
    category: Optional[StageCategory] = None,
) -> Stage:
    stage = await get_stage(db, tenant_id, stage_id)
    if name is not None:
        stage.name = name
    if color is not None:
        stage.color = color
    if category is not None:
        stage.category = category
    await db.commit()
    await db.refresh(stage)
    return stage


async def delete_stage(db: AsyncSession, tenant_id: UUID, stage_id: UUID) -> None:
    """
    Delete a stage that no lead references, then re-densify the order.

    Raises StageInUse while leads still sit in the stage.
    """
    stage = await get_stage(db, tenant_id, stage_id)

    count_result = await db.execute(
        select(func.count(Lead.id)).where(Lead.stage_id == stage.id)
    )
    lead_count = count_result.scalar() or 0
    if lead_count:
        raise StageInUse(stage_id, lead_count)

    await db.delete(stage)
    await db.flush()

    remaining = await list_stages(db, tenant_id)
    for position, remaining_stage in enumerate(remaining, start=1):
        remaining_stage.display_order = position
    await db.commit()

    logger.info(f"Deleted stage {stage_id} for tenant {tenant_id}")


async def reorder_stages(db: AsyncSession, tenant_id: UUID, ordered_ids: Sequence[UUID]) -> list[Stage]:
    """
    Persist a new column order as a dense 1..N display_order sequence.

    `ordered_ids` must be a permutation of the tenant's stage ids. The whole
    reorder is one transaction: on failure nothing is changed and the caller
    should reload from the database.
    """
    stages = await list_stages(db, tenant_id)
    by_id = {stage.id: stage for stage in stages}

    if len(ordered_ids) != len(by_id) or set(ordered_ids) != set(by_id):
        raise ValidationFailed({"stage_ids": "Order must list every stage exactly once"})

    try:
        for position, stage_id in enumerate(ordered_ids, start=1):
            by_id[stage_id].display_order = position
        await db.commit()
    except SQLAlchemyError as e:
        logger.error(f"Error reordering stages for tenant {tenant_id}: {e}")
        await db.rollback()
        raise PersistenceFailed("stage order", e) from e

    logger.info(f"Reordered {len(ordered_ids)} stages for tenant {tenant_id}")
    return await list_stages(db, tenant_id)
