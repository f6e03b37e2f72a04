"""Annotation workflow for gated stage transitions"""
import enum
import re
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from leadboard.core.exceptions import PersistenceFailed, ValidationFailed, WorkflowStateError
from leadboard.models.comment import LeadComment
from leadboard.models.lead import Lead
from leadboard.models.stage import Stage
from leadboard.models.task import Task, TaskStatus
from leadboard.services.change_feed import ChangeFeed, change_feed
from leadboard.services.stage_rules import StageRules
from leadboard.services.stage_service import list_stages
from leadboard.services.transition_gate import TransitionOutcome, decide_transition, get_lead
from leadboard.utils.logger import logger

DEFAULT_DUE_TIME = "12:00"
_TIME_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")


class WorkflowState(str, enum.Enum):
    IDLE = "idle"
    OPEN = "open"
    VALIDATING = "validating"
    COMMITTED = "committed"
    CANCELLED = "cancelled"


@dataclass
class AnnotationForm:
    comment: str = ""
    task_title: str = ""
    task_description: str = ""
    task_due_date: Optional[date] = None
    task_due_time: str = DEFAULT_DUE_TIME


@dataclass
class AnnotationResult:
    lead: Lead
    comment: LeadComment
    task: Optional[Task]


def combine_due_date(due_date: date, due_time: str) -> datetime:
    """'14:30' on D -> D 14:30 (naive, deployment timezone)"""
    match = _TIME_PATTERN.match((due_time or DEFAULT_DUE_TIME).strip())
    if not match:
        raise ValueError(f"Invalid time '{due_time}'")
    return datetime.combine(due_date, time(int(match.group(1)), int(match.group(2))))


class AnnotationWorkflow:
    """
    idle -> open(target) -> validating -> committed | cancelled

    A failed validation returns to open. Cancel is only accepted while open;
    once submit starts the three writes run to completion or failure.
    """

    def __init__(self, lead: Lead, actor_id, rules: StageRules, feed: ChangeFeed = change_feed):
        self.lead = lead
        self.lead_id = lead.id
        self.actor_id = actor_id
        self.rules = rules
        self.feed = feed
        self.state = WorkflowState.IDLE
        self.target_stage: Optional[Stage] = None
        self.errors: dict[str, str] = {}

    @property
    def task_required(self) -> bool:
        if self.target_stage is None:
            return False
        return not self.rules.is_task_optional(self.target_stage)

    def open(self, target_stage: Stage) -> "AnnotationWorkflow":
        if self.state is not WorkflowState.IDLE:
            raise WorkflowStateError(f"Cannot open workflow in state {self.state.value}")
        self.target_stage = target_stage
        self.state = WorkflowState.OPEN
        self.errors = {}
        return self

    def cancel(self) -> None:
        if self.state is not WorkflowState.OPEN:
            raise WorkflowStateError(f"Cannot cancel workflow in state {self.state.value}")
        self.state = WorkflowState.CANCELLED
        logger.debug(f"Annotation for lead {self.lead_id} cancelled")

    def validate(self, form: AnnotationForm) -> dict[str, str]:
        errors = {}
        if not (form.comment or "").strip():
            errors["comment"] = "Comment is required"

        has_title = bool((form.task_title or "").strip())
        if self.task_required and not has_title:
            errors["task_title"] = "Task title is required"
        if (self.task_required or has_title) and form.task_due_date is None:
            errors["task_due_date"] = "Task due date is required"
        if has_title and not _TIME_PATTERN.match((form.task_due_time or DEFAULT_DUE_TIME).strip()):
            errors["task_due_time"] = "Task due time must be HH:MM"
        return errors

    async def submit(self, db: AsyncSession, form: AnnotationForm) -> AnnotationResult:
        if self.state is not WorkflowState.OPEN:
            raise WorkflowStateError(f"Cannot submit workflow in state {self.state.value}")

        self.state = WorkflowState.VALIDATING
        self.errors = self.validate(form)
        if self.errors:
            self.state = WorkflowState.OPEN
            raise ValidationFailed(self.errors)

        step = "comment"
        try:
            comment = await self._write_comment(db, form)
            step = "task"
            task = await self._write_task(db, form)
            step = "stage"
            await self._commit_stage(db)
            await db.commit()
        except SQLAlchemyError as e:
            logger.error(f"Error persisting {step} for lead {self.lead_id}: {e}")
            await db.rollback()
            self.state = WorkflowState.OPEN
            raise PersistenceFailed(step, e) from e

        self.state = WorkflowState.COMMITTED
        logger.info(
            f"Lead {self.lead.id} moved to {self.target_stage.key} with comment"
            f"{' and task ' + str(task.id) if task else ''}"
        )

        tenant_id = self.lead.tenant_id
        self.feed.publish("comment.created", tenant_id, lead_id=str(self.lead.id), comment_id=str(comment.id))
        if task is not None:
            self.feed.publish("task.created", tenant_id, lead_id=str(self.lead.id), task_id=str(task.id))
        self.feed.publish(
            "lead.stage_changed",
            tenant_id,
            lead_id=str(self.lead.id),
            stage_id=str(self.target_stage.id),
        )
        return AnnotationResult(lead=self.lead, comment=comment, task=task)

    async def _write_comment(self, db: AsyncSession, form: AnnotationForm) -> LeadComment:
        comment = LeadComment(
            lead_id=self.lead.id,
            user_id=self.actor_id,
            comment=form.comment.strip(),
        )
        db.add(comment)
        await db.flush()
        return comment

    async def _write_task(self, db: AsyncSession, form: AnnotationForm) -> Optional[Task]:
        title = (form.task_title or "").strip()
        if not title:
            return None
        task = Task(
            tenant_id=self.lead.tenant_id,
            lead_id=self.lead.id,
            seller_id=self.lead.seller_id,
            title=title,
            description=(form.task_description or "").strip() or None,
            due_date=combine_due_date(form.task_due_date, form.task_due_time),
            status=TaskStatus.PENDING,
        )
        db.add(task)
        await db.flush()
        return task

    async def _commit_stage(self, db: AsyncSession) -> None:
        self.lead.stage_id = self.target_stage.id
        self.lead.updated_at = datetime.utcnow()
        await db.flush()


async def open_annotation(
    db: AsyncSession,
    tenant_id,
    lead_id,
    target_stage_id,
    actor_id,
    rules: StageRules,
    feed: ChangeFeed = change_feed,
) -> AnnotationWorkflow:
    """Run the gate and open a workflow for a gated target stage"""
    lead = await get_lead(db, tenant_id, lead_id)
    stages = await list_stages(db, tenant_id)
    decision = decide_transition(lead.stage_id, target_stage_id, stages, rules)

    if decision.outcome is not TransitionOutcome.ANNOTATE:
        raise WorkflowStateError(
            f"Stage change for lead {lead_id} does not require annotation ({decision.outcome.value})"
        )

    return AnnotationWorkflow(lead, actor_id, rules, feed=feed).open(decision.target_stage)
