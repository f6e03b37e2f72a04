"""Lead API endpoints"""
from typing import Optional
from uuid import UUID
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from leadboard.api.deps import get_db, get_tenant_id, get_current_seller, get_stage_rules
from leadboard.core.exceptions import CRMError
from leadboard.models import Seller
from leadboard.schemas.lead import (
    LeadCreate, LeadUpdate, LeadReassign, LeadResponse, CommentCreate, CommentResponse
)
from leadboard.schemas.task import TaskResponse
from leadboard.schemas.transition import (
    StageChangeRequest, StageChangeResponse,
    AnnotatedStageChangeRequest, AnnotatedStageChangeResponse,
)
from leadboard.services import lead_service
from leadboard.services.annotation import AnnotationForm, open_annotation
from leadboard.services.stage_rules import StageRules
from leadboard.services.transition_gate import get_lead, request_stage_change
from leadboard.utils.logger import logger

router = APIRouter()


@router.get("/leads", response_model=list[LeadResponse])
async def list_leads(
    seller_id: Optional[UUID] = None,
    stage_id: Optional[UUID] = None,
    skip: int = 0,
    limit: int = 100,
    db: AsyncSession = Depends(get_db),
    tenant_id: UUID = Depends(get_tenant_id),
    seller: Seller = Depends(get_current_seller),
):
    """
    List leads, newest first.

    Sellers only see their own leads; admins may filter by any seller.
    """
    if not seller.is_admin_or_rop:
        seller_id = seller.id
    return await lead_service.list_leads(db, tenant_id, seller_id, stage_id, skip, limit)


@router.post("/leads", response_model=LeadResponse, status_code=201)
async def create_lead(
    lead_data: LeadCreate,
    db: AsyncSession = Depends(get_db),
    tenant_id: UUID = Depends(get_tenant_id),
    seller: Seller = Depends(get_current_seller),
):
    """Create a lead; it goes to the first stage unless one is given"""
    owner_id = lead_data.seller_id or seller.id
    if owner_id != seller.id and not seller.is_admin_or_rop:
        raise HTTPException(status_code=403, detail="Only admins can assign leads to other sellers")

    try:
        return await lead_service.create_lead(
            db,
            tenant_id,
            seller_id=owner_id,
            customer_name=lead_data.customer_name,
            customer_phone=lead_data.customer_phone,
            stage_id=lead_data.stage_id,
            price=lead_data.price,
            notes=lead_data.notes,
            source=lead_data.source,
        )
    except (HTTPException, CRMError):
        raise
    except Exception as e:
        logger.error(f"Error creating lead: {e}", exc_info=True)
        await db.rollback()
        raise HTTPException(status_code=500, detail=str(e))


@router.get("/leads/{lead_id}", response_model=LeadResponse)
async def get_lead_by_id(
    lead_id: UUID,
    db: AsyncSession = Depends(get_db),
    tenant_id: UUID = Depends(get_tenant_id),
    seller: Seller = Depends(get_current_seller),
):
    return await get_lead(db, tenant_id, lead_id)


@router.patch("/leads/{lead_id}", response_model=LeadResponse)
async def update_lead(
    lead_id: UUID,
    lead_data: LeadUpdate,
    db: AsyncSession = Depends(get_db),
    tenant_id: UUID = Depends(get_tenant_id),
    seller: Seller = Depends(get_current_seller),
):
    """Update price, notes and status fields (stage changes go through /stage)"""
    try:
        return await lead_service.update_lead_details(
            db, tenant_id, lead_id, **lead_data.model_dump(exclude_unset=True)
        )
    except (HTTPException, CRMError):
        raise
    except Exception as e:
        logger.error(f"Error updating lead {lead_id}: {e}", exc_info=True)
        await db.rollback()
        raise HTTPException(status_code=500, detail=str(e))


@router.post("/leads/{lead_id}/seller", response_model=LeadResponse)
async def reassign_lead(
    lead_id: UUID,
    data: LeadReassign,
    db: AsyncSession = Depends(get_db),
    tenant_id: UUID = Depends(get_tenant_id),
    seller: Seller = Depends(get_current_seller),
):
    """Move the lead and its tasks to another seller"""
    return await lead_service.reassign_seller(db, tenant_id, lead_id, data.seller_id, actor=seller)


@router.post("/leads/{lead_id}/stage", response_model=StageChangeResponse)
async def change_stage(
    lead_id: UUID,
    data: StageChangeRequest,
    db: AsyncSession = Depends(get_db),
    tenant_id: UUID = Depends(get_tenant_id),
    seller: Seller = Depends(get_current_seller),
    rules: StageRules = Depends(get_stage_rules),
):
    """
    Request a stage change (drag/drop or menu).

    Exempt stages commit immediately. Any other stage returns
    `annotation_required` and leaves the lead unchanged.
    """
    decision = await request_stage_change(db, tenant_id, lead_id, data.stage_id, rules)
    lead = await get_lead(db, tenant_id, lead_id)
    return StageChangeResponse(
        outcome=decision.outcome.value,
        lead=LeadResponse.model_validate(lead),
        target_stage_id=decision.target_stage.id if decision.target_stage else None,
        task_required=decision.task_required,
    )


@router.post("/leads/{lead_id}/stage/annotated", response_model=AnnotatedStageChangeResponse)
async def change_stage_annotated(
    lead_id: UUID,
    data: AnnotatedStageChangeRequest,
    db: AsyncSession = Depends(get_db),
    tenant_id: UUID = Depends(get_tenant_id),
    seller: Seller = Depends(get_current_seller),
    rules: StageRules = Depends(get_stage_rules),
):
    """
    Submit the annotation form for a gated stage change.

    Writes the comment, the task (when a title is given) and the new stage.
    Returns 422 with field errors when the form is incomplete.
    """
    workflow = await open_annotation(db, tenant_id, lead_id, data.stage_id, seller.id, rules)
    form = AnnotationForm(
        comment=data.comment,
        task_title=data.task_title,
        task_description=data.task_description,
        task_due_date=data.task_due_date,
        task_due_time=data.task_due_time,
    )
    result = await workflow.submit(db, form)
    return AnnotatedStageChangeResponse(
        lead=LeadResponse.model_validate(result.lead),
        comment=CommentResponse.model_validate(result.comment),
        task=TaskResponse.model_validate(result.task) if result.task else None,
    )


@router.get("/leads/{lead_id}/comments", response_model=list[CommentResponse])
async def list_comments(
    lead_id: UUID,
    db: AsyncSession = Depends(get_db),
    tenant_id: UUID = Depends(get_tenant_id),
    seller: Seller = Depends(get_current_seller),
):
    """Comments on a lead, newest first"""
    return await lead_service.list_comments(db, tenant_id, lead_id)


@router.post("/leads/{lead_id}/comments", response_model=CommentResponse, status_code=201)
async def add_comment(
    lead_id: UUID,
    data: CommentCreate,
    db: AsyncSession = Depends(get_db),
    tenant_id: UUID = Depends(get_tenant_id),
    seller: Seller = Depends(get_current_seller),
):
    return await lead_service.add_comment(db, tenant_id, lead_id, seller.id, data.comment)
