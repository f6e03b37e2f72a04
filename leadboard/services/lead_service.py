"""Lead store operations outside the stage gate"""
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from leadboard.core.exceptions import InvalidStage, PermissionDenied, ValidationFailed
from leadboard.models.comment import LeadComment
from leadboard.models.lead import Lead
from leadboard.models.seller import Seller
from leadboard.models.stage import StageCategory
from leadboard.models.task import Task
from leadboard.services.change_feed import change_feed
from leadboard.services.stage_service import get_stage, list_stages
from leadboard.services.transition_gate import get_lead
from leadboard.utils.logger import logger

_UNSET = object()


async def get_seller(db: AsyncSession, tenant_id: UUID, seller_id: UUID) -> Seller:
    result = await db.execute(
        select(Seller).where(Seller.id == seller_id, Seller.tenant_id == tenant_id)
    )
    seller = result.scalar_one_or_none()
    if not seller:
        raise ValidationFailed({"seller_id": f"Seller '{seller_id}' not found"})
    return seller


async def create_lead(
    db: AsyncSession,
    tenant_id: UUID,
    seller_id: UUID,
    customer_name: str,
    customer_phone: Optional[str] = None,
    stage_id: Optional[UUID] = None,
    price: Optional[Decimal] = None,
    notes: Optional[str] = None,
    source: Optional[str] = None,
) -> Lead:
    """
    Create a lead owned by `seller_id`.

    Without an explicit stage the lead lands in the first column.
    """
    if not (customer_name or "").strip():
        raise ValidationFailed({"customer_name": "Customer name is required"})

    await get_seller(db, tenant_id, seller_id)

    if stage_id is not None:
        stage = await get_stage(db, tenant_id, stage_id)
    else:
        stages = await list_stages(db, tenant_id)
        if not stages:
            raise InvalidStage("<first>")
        stage = stages[0]

    lead = Lead(
        tenant_id=tenant_id,
        seller_id=seller_id,
        stage_id=stage.id,
        customer_name=customer_name.strip(),
        customer_phone=customer_phone,
        price=price,
        notes=notes,
        source=source,
    )
    db.add(lead)
    await db.commit()
    await db.refresh(lead)

    logger.info(f"Created lead {lead.id} ({lead.customer_name}) in stage {stage.key}")
    change_feed.publish("lead.created", tenant_id, lead_id=str(lead.id))
    return lead


async def list_leads(
    db: AsyncSession,
    tenant_id: UUID,
    seller_id: Optional[UUID] = None,
    stage_id: Optional[UUID] = None,
    skip: int = 0,
    limit: int = 100,
) -> list[Lead]:
    query = select(Lead).where(Lead.tenant_id == tenant_id)
    if seller_id is not None:
        query = query.where(Lead.seller_id == seller_id)
    if stage_id is not None:
        query = query.where(Lead.stage_id == stage_id)
    result = await db.execute(
        query.order_by(Lead.created_at.desc()).offset(skip).limit(limit)
    )
    return list(result.scalars().all())


async def update_lead_details(
    db: AsyncSession,
    tenant_id: UUID,
    lead_id: UUID,
    price=_UNSET,
    notes=_UNSET,
    customer_name=_UNSET,
    customer_phone=_UNSET,
    delivery_status=_UNSET,
    action_status=_UNSET,
) -> Lead:
    """Edit lead fields; a lead in a won stage must keep a price"""
    lead = await get_lead(db, tenant_id, lead_id)

    if price is not _UNSET and price is None:
        stage = await get_stage(db, tenant_id, lead.stage_id)
        if stage.category == StageCategory.WON:
            raise ValidationFailed({"price": f"Price is required in stage '{stage.name}'"})

    changes = {
        "price": price,
        "notes": notes,
        "customer_name": customer_name,
        "customer_phone": customer_phone,
        "delivery_status": delivery_status,
        "action_status": action_status,
    }
    for name, value in changes.items():
        if value is not _UNSET:
            setattr(lead, name, value)
    lead.updated_at = datetime.utcnow()

    await db.commit()
    await db.refresh(lead)
    change_feed.publish("lead.updated", tenant_id, lead_id=str(lead.id))
    return lead


async def reassign_seller(
    db: AsyncSession,
    tenant_id: UUID,
    lead_id: UUID,
    new_seller_id: UUID,
    actor: Seller,
) -> Lead:
    """Give the lead and all of its tasks to another seller"""
    if not actor.is_admin_or_rop:
        raise PermissionDenied("Only admins and heads of sales can reassign leads")

    lead = await get_lead(db, tenant_id, lead_id)
    if lead.seller_id == new_seller_id:
        return lead
    await get_seller(db, tenant_id, new_seller_id)

    previous_seller_id = lead.seller_id
    lead.seller_id = new_seller_id
    lead.updated_at = datetime.utcnow()
    await db.execute(
        update(Task).where(Task.lead_id == lead.id).values(seller_id=new_seller_id)
    )
    await db.commit()
    await db.refresh(lead)

    logger.info(f"Lead {lead_id} reassigned {previous_seller_id} -> {new_seller_id} by {actor.id}")
    change_feed.publish("lead.updated", tenant_id, lead_id=str(lead.id))
    return lead


async def add_comment(
    db: AsyncSession,
    tenant_id: UUID,
    lead_id: UUID,
    user_id: UUID,
    text: str,
) -> LeadComment:
    if not (text or "").strip():
        raise ValidationFailed({"comment": "Comment is required"})
    lead = await get_lead(db, tenant_id, lead_id)

    comment = LeadComment(lead_id=lead.id, user_id=user_id, comment=text.strip())
    db.add(comment)
    await db.commit()
    await db.refresh(comment)

    change_feed.publish("comment.created", tenant_id, lead_id=str(lead.id), comment_id=str(comment.id))
    return comment


async def list_comments(db: AsyncSession, tenant_id: UUID, lead_id: UUID) -> list[LeadComment]:
    """Comments newest first"""
    lead = await get_lead(db, tenant_id, lead_id)
    result = await db.execute(
        select(LeadComment)
        .where(LeadComment.lead_id == lead.id)
        .order_by(LeadComment.created_at.desc())
    )
    return list(result.scalars().all())
