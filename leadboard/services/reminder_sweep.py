"""Task reminder sweep: overdue/near-due notifications and lead escalation"""
import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Callable, Optional

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from leadboard.core.config import settings
from leadboard.core.database import AsyncSessionLocal
from leadboard.core.exceptions import SweepStepFailed
from leadboard.models.comment import LeadComment
from leadboard.models.lead import Lead
from leadboard.models.stage import Stage
from leadboard.models.task import Task, TaskStatus
from leadboard.models.tenant import Tenant
from leadboard.services.change_feed import ChangeFeed, change_feed
from leadboard.services.notifications import NotificationSink
from leadboard.services.stage_rules import StageRules
from leadboard.utils.clock import local_now
from leadboard.utils.logger import logger


@dataclass(frozen=True)
class DueTask:
    """Plain snapshot of a pending task row and its lead"""
    id: object
    tenant_id: object
    seller_id: object
    title: str
    due_date: datetime
    lead_id: object = None
    lead_stage_id: object = None
    customer_name: Optional[str] = None


@dataclass(frozen=True)
class EscalationTarget:
    trigger_stage_ids: frozenset
    escalation_stage_id: object
    escalation_stage_name: str


@dataclass
class SweepReport:
    checked: int = 0
    escalated_lead_ids: list = field(default_factory=list)
    overdue_notified: list = field(default_factory=list)
    near_due_notified: list = field(default_factory=list)
    failures: list = field(default_factory=list)

    @property
    def escalated(self) -> int:
        return len(self.escalated_lead_ids)

    def to_dict(self) -> dict:
        return {
            "checked": self.checked,
            "escalated": self.escalated,
            "escalated_lead_ids": [str(i) for i in self.escalated_lead_ids],
            "overdue_notified": len(self.overdue_notified),
            "near_due_notified": len(self.near_due_notified),
            "failures": len(self.failures),
        }


class TaskReminderSweep:
    """
    One instance per polling session.

    The notified-id sets live for the life of the instance, so repeated
    passes over the same overdue tasks notify once. Escalation is guarded
    by a conditional update on the lead's current stage, so repeated passes
    escalate once.
    """

    def __init__(
        self,
        sink: NotificationSink,
        near_due_window: timedelta = timedelta(minutes=settings.NEAR_DUE_WINDOW_MINUTES),
        rules_for_tenant: Callable[[Tenant], StageRules] = StageRules.for_tenant,
        feed: ChangeFeed = change_feed,
    ):
        self.sink = sink
        self.near_due_window = near_due_window
        self.rules_for_tenant = rules_for_tenant
        self.feed = feed
        self.notified_overdue: set = set()
        self.notified_near_due: set = set()

    async def _load_due_tasks(self, db: AsyncSession, now: datetime) -> list[DueTask]:
        result = await db.execute(
            select(
                Task.id,
                Task.tenant_id,
                Task.seller_id,
                Task.title,
                Task.due_date,
                Task.lead_id,
                Lead.stage_id,
                Lead.customer_name,
            )
            .outerjoin(Lead, Task.lead_id == Lead.id)
            .where(
                Task.status == TaskStatus.PENDING,
                Task.due_date < now + self.near_due_window,
            )
            .order_by(Task.due_date)
        )
        return [DueTask(*row) for row in result.all()]

    async def _load_targets(self, db: AsyncSession, tenant_ids: set) -> dict:
        """Resolve per-tenant trigger/escalation stage ids before any write"""
        if not tenant_ids:
            return {}
        tenants = (await db.execute(select(Tenant).where(Tenant.id.in_(list(tenant_ids))))).scalars().all()
        stages = (await db.execute(select(Stage).where(Stage.tenant_id.in_(list(tenant_ids))))).scalars().all()

        targets = {}
        for tenant in tenants:
            rules = self.rules_for_tenant(tenant)
            tenant_stages = [s for s in stages if s.tenant_id == tenant.id]
            escalation = rules.resolve_escalation(tenant_stages)
            triggers = rules.resolve_triggers(tenant_stages)
            if escalation is None or not triggers:
                logger.debug(f"Tenant {tenant.slug} has no escalation configured")
                continue
            targets[tenant.id] = EscalationTarget(
                trigger_stage_ids=frozenset(s.id for s in triggers),
                escalation_stage_id=escalation.id,
                escalation_stage_name=escalation.name,
            )
        return targets

    async def _escalate(self, db: AsyncSession, task: DueTask, target: EscalationTarget) -> bool:
        """
        Move the lead into the escalation stage and append a system comment,
        in one transaction. Returns False when the lead already left the
        trigger stages.
        """
        try:
            result = await db.execute(
                update(Lead)
                .where(
                    Lead.id == task.lead_id,
                    Lead.stage_id.in_(list(target.trigger_stage_ids)),
                )
                .values(stage_id=target.escalation_stage_id, updated_at=datetime.utcnow())
            )
            if result.rowcount == 0:
                await db.rollback()
                return False

            db.add(
                LeadComment(
                    lead_id=task.lead_id,
                    user_id=task.seller_id,
                    comment=(
                        f'Task "{task.title}" is overdue. Lead was moved to '
                        f'"{target.escalation_stage_name}" automatically.'
                    ),
                    is_system=True,
                )
            )
            await db.commit()
        except SQLAlchemyError as e:
            await db.rollback()
            raise SweepStepFailed(task.id, e) from e
        return True

    async def run_once(self, db: AsyncSession, now: Optional[datetime] = None) -> SweepReport:
        """One sweep pass; a failing task never aborts the pass"""
        now = now or local_now()
        report = SweepReport()

        tasks = await self._load_due_tasks(db, now)
        report.checked = len(tasks)
        targets = await self._load_targets(db, {t.tenant_id for t in tasks})
        escalated_names = []

        for task in tasks:
            overdue = task.due_date < now

            if overdue and task.lead_id is not None:
                target = targets.get(task.tenant_id)
                if (
                    target is not None
                    and task.lead_stage_id in target.trigger_stage_ids
                    and task.lead_id not in report.escalated_lead_ids
                ):
                    try:
                        if await self._escalate(db, task, target):
                            report.escalated_lead_ids.append(task.lead_id)
                            escalated_names.append(task.customer_name or str(task.lead_id))
                            logger.info(
                                f"Lead {task.lead_id} escalated to {target.escalation_stage_name} "
                                f"(task {task.id} overdue since {task.due_date})"
                            )
                            self.feed.publish(
                                "lead.stage_changed",
                                task.tenant_id,
                                lead_id=str(task.lead_id),
                                stage_id=str(target.escalation_stage_id),
                            )
                    except SweepStepFailed as e:
                        logger.error(e.message)
                        report.failures.append(e)

            if overdue and task.id not in self.notified_overdue:
                self.notified_overdue.add(task.id)
                report.overdue_notified.append(task.id)
                await self.sink.notify(
                    "Task overdue",
                    self._describe(task),
                    lead_id=task.lead_id,
                    seller_id=task.seller_id,
                )
            elif not overdue and task.id not in self.notified_near_due:
                self.notified_near_due.add(task.id)
                report.near_due_notified.append(task.id)
                await self.sink.notify(
                    "Task due soon",
                    self._describe(task),
                    lead_id=task.lead_id,
                    seller_id=task.seller_id,
                )

        # Ids that left the due window (completed or deleted) are forgotten
        due_ids = {t.id for t in tasks}
        self.notified_overdue &= due_ids
        self.notified_near_due &= due_ids

        if report.escalated:
            await self.sink.notify(
                "Leads escalated",
                f"{report.escalated} lead(s) moved automatically: {', '.join(escalated_names)}",
            )

        logger.info(
            f"Sweep done: checked={report.checked} escalated={report.escalated} "
            f"overdue_notified={len(report.overdue_notified)} "
            f"near_due_notified={len(report.near_due_notified)} failures={len(report.failures)}"
        )
        return report

    @staticmethod
    def _describe(task: DueTask) -> str:
        parts = [task.title, f"due {task.due_date:%d.%m.%Y %H:%M}"]
        if task.customer_name:
            parts.append(f"customer: {task.customer_name}")
        return " | ".join(parts)


class ReminderRunner:
    """
    Background loop around a TaskReminderSweep.

    Task changes on the change feed wake the loop early; the interval timer
    is the resync fallback.
    """

    WAKE_TOPICS = ("task.", "lead.")

    def __init__(
        self,
        sweep: TaskReminderSweep,
        interval_seconds: float = settings.SWEEP_INTERVAL_SECONDS,
        session_factory: async_sessionmaker = AsyncSessionLocal,
        feed: ChangeFeed = change_feed,
    ):
        self.sweep = sweep
        self.interval_seconds = interval_seconds
        self.session_factory = session_factory
        self.feed = feed
        self._task: Optional[asyncio.Task] = None
        self._wake = asyncio.Event()
        self._stopping = False

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            return
        self._stopping = False
        self._task = asyncio.create_task(self._loop(), name="task-reminder-sweep")
        logger.info(f"Task reminder sweep started (interval={self.interval_seconds}s)")

    async def stop(self) -> None:
        self._stopping = True
        self._wake.set()
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None
        logger.info("Task reminder sweep stopped")

    def wake(self) -> None:
        self._wake.set()

    async def run_pass(self) -> SweepReport:
        async with self.session_factory() as db:
            return await self.sweep.run_once(db)

    async def _watch_feed(self) -> None:
        queue = self.feed.subscribe()
        try:
            while True:
                event = await queue.get()
                if event.topic.startswith(self.WAKE_TOPICS):
                    self._wake.set()
        finally:
            self.feed.unsubscribe(queue)

    async def _loop(self) -> None:
        watcher = asyncio.create_task(self._watch_feed())
        try:
            while not self._stopping:
                # Changes published during a pass trigger another pass
                self._wake.clear()
                try:
                    await self.run_pass()
                except Exception as e:
                    logger.error(f"Task reminder sweep pass failed: {e}", exc_info=True)

                try:
                    await asyncio.wait_for(self._wake.wait(), timeout=self.interval_seconds)
                except asyncio.TimeoutError:
                    pass
        finally:
            watcher.cancel()
