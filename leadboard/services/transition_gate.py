"""Transition gate: decides how a requested stage change may proceed"""
import enum
from dataclasses import dataclass
from datetime import datetime
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from leadboard.core.exceptions import InvalidStage, LeadNotFound, PersistenceFailed
from leadboard.models.lead import Lead
from leadboard.models.stage import Stage
from leadboard.services.change_feed import ChangeFeed, change_feed
from leadboard.services.stage_rules import StageRules
from leadboard.services.stage_service import list_stages
from leadboard.utils.logger import logger


class TransitionOutcome(str, enum.Enum):
    """What the gate decided"""
    NOOP = "noop"
    COMMIT = "committed"
    ANNOTATE = "annotation_required"


@dataclass(frozen=True)
class TransitionDecision:
    outcome: TransitionOutcome
    target_stage: Optional[Stage] = None
    task_required: bool = False


def decide_transition(
    current_stage_id,
    requested_stage_id,
    stages: Iterable[Stage],
    rules: StageRules,
) -> TransitionDecision:
    """
    Pure decision step: no I/O, deterministic in its inputs.

    Raises InvalidStage when the requested stage is not in `stages`.
    """
    if str(requested_stage_id) == str(current_stage_id):
        return TransitionDecision(TransitionOutcome.NOOP)

    target = next((s for s in stages if str(s.id) == str(requested_stage_id)), None)
    if target is None:
        raise InvalidStage(requested_stage_id)

    if rules.is_exempt(target):
        return TransitionDecision(TransitionOutcome.COMMIT, target_stage=target)

    return TransitionDecision(
        TransitionOutcome.ANNOTATE,
        target_stage=target,
        task_required=not rules.is_task_optional(target),
    )


async def get_lead(db: AsyncSession, tenant_id: UUID, lead_id: UUID) -> Lead:
    result = await db.execute(
        select(Lead).where(Lead.id == lead_id, Lead.tenant_id == tenant_id)
    )
    lead = result.scalar_one_or_none()
    if not lead:
        raise LeadNotFound(lead_id)
    return lead


async def request_stage_change(
    db: AsyncSession,
    tenant_id: UUID,
    lead_id: UUID,
    requested_stage_id: UUID,
    rules: StageRules,
    feed: ChangeFeed = change_feed,
) -> TransitionDecision:
    """
    Apply the gate to a lead.

    Exempt targets are committed here. Gated targets are returned with
    outcome ANNOTATE and the lead is left untouched until the annotation
    workflow commits.
    """
    lead = await get_lead(db, tenant_id, lead_id)
    stages = await list_stages(db, tenant_id)

    decision = decide_transition(lead.stage_id, requested_stage_id, stages, rules)

    if decision.outcome is TransitionOutcome.COMMIT:
        previous_stage_id = lead.stage_id
        try:
            lead.stage_id = decision.target_stage.id
            lead.updated_at = datetime.utcnow()
            await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Error committing stage change for lead {lead_id}: {e}")
            await db.rollback()
            raise PersistenceFailed("stage", e) from e

        logger.info(f"Lead {lead_id} moved {previous_stage_id} -> {decision.target_stage.key} (exempt)")
        feed.publish(
            "lead.stage_changed",
            tenant_id,
            lead_id=str(lead_id),
            stage_id=str(decision.target_stage.id),
        )
    elif decision.outcome is TransitionOutcome.ANNOTATE:
        logger.info(
            f"Lead {lead_id} -> {decision.target_stage.key} requires annotation "
            f"(task_required={decision.task_required})"
        )

    return decision
