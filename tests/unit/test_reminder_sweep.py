"""Unit tests for the task reminder sweep"""
import asyncio
import pytest
from datetime import datetime, timedelta
from sqlalchemy import select

from leadboard.core.exceptions import SweepStepFailed
from leadboard.models import Lead, LeadComment, Task, TaskStatus
from leadboard.services.reminder_sweep import (
    DueTask,
    EscalationTarget,
    ReminderRunner,
    TaskReminderSweep,
)

NOW = datetime(2026, 11, 2, 15, 0)


@pytest.fixture
def sweep(sink, feed):
    return TaskReminderSweep(sink, near_due_window=timedelta(minutes=5), feed=feed)


@pytest.fixture
async def clarify_lead(test_db, tenant, stages, seller) -> Lead:
    lead = Lead(
        tenant_id=tenant.id,
        seller_id=seller.id,
        stage_id=stages["clarify"].id,
        customer_name="Nodira Saidova",
    )
    test_db.add(lead)
    await test_db.commit()
    await test_db.refresh(lead)
    return lead


async def add_task(db, lead: Lead, due: datetime, title: str = "Call back", status=TaskStatus.PENDING) -> Task:
    task = Task(
        tenant_id=lead.tenant_id,
        lead_id=lead.id,
        seller_id=lead.seller_id,
        title=title,
        due_date=due,
        status=status,
    )
    db.add(task)
    await db.commit()
    await db.refresh(task)
    return task


async def system_comments(db, lead_id):
    result = await db.execute(
        select(LeadComment).where(LeadComment.lead_id == lead_id, LeadComment.is_system.is_(True))
    )
    return result.scalars().all()


@pytest.mark.asyncio
async def test_overdue_task_escalates_lead_once(test_db, stages, clarify_lead, sweep, sink):
    """Overdue by 10 minutes in a trigger stage: moved once, one system comment"""
    await add_task(test_db, clarify_lead, NOW - timedelta(minutes=10))

    report = await sweep.run_once(test_db, now=NOW)

    assert report.escalated_lead_ids == [clarify_lead.id]
    await test_db.refresh(clarify_lead)
    assert clarify_lead.stage_id == stages["important"].id

    comments = await system_comments(test_db, clarify_lead.id)
    assert len(comments) == 1
    assert comments[0].user_id == clarify_lead.seller_id
    assert '"Important"' in comments[0].comment

    second = await sweep.run_once(test_db, now=NOW)

    assert second.escalated == 0
    await test_db.refresh(clarify_lead)
    assert clarify_lead.stage_id == stages["important"].id
    assert len(await system_comments(test_db, clarify_lead.id)) == 1


@pytest.mark.asyncio
async def test_overdue_notification_sent_once_per_task(test_db, clarify_lead, sweep, sink):
    task = await add_task(test_db, clarify_lead, NOW - timedelta(minutes=10))

    await sweep.run_once(test_db, now=NOW)
    await sweep.run_once(test_db, now=NOW + timedelta(minutes=1))

    overdue = sink.titled("Task overdue")
    assert len(overdue) == 1
    assert overdue[0]["seller_id"] == clarify_lead.seller_id
    assert task.id in sweep.notified_overdue
    assert len(sink.titled("Leads escalated")) == 1


@pytest.mark.asyncio
async def test_two_overdue_tasks_on_one_lead_escalate_once(test_db, clarify_lead, sweep):
    await add_task(test_db, clarify_lead, NOW - timedelta(minutes=30), title="First")
    await add_task(test_db, clarify_lead, NOW - timedelta(minutes=10), title="Second")

    report = await sweep.run_once(test_db, now=NOW)

    assert report.escalated == 1
    assert len(report.overdue_notified) == 2
    assert len(await system_comments(test_db, clarify_lead.id)) == 1


@pytest.mark.asyncio
async def test_near_due_task_notified_once_without_escalation(test_db, stages, clarify_lead, sweep, sink):
    await add_task(test_db, clarify_lead, NOW + timedelta(minutes=3))

    report = await sweep.run_once(test_db, now=NOW)
    await sweep.run_once(test_db, now=NOW + timedelta(seconds=30))

    assert report.escalated == 0
    assert len(sink.titled("Task due soon")) == 1
    await test_db.refresh(clarify_lead)
    assert clarify_lead.stage_id == stages["clarify"].id


@pytest.mark.asyncio
async def test_near_due_then_overdue_notifies_both(test_db, clarify_lead, sweep, sink):
    await add_task(test_db, clarify_lead, NOW + timedelta(minutes=3))

    await sweep.run_once(test_db, now=NOW)
    await sweep.run_once(test_db, now=NOW + timedelta(minutes=4))

    assert len(sink.titled("Task due soon")) == 1
    assert len(sink.titled("Task overdue")) == 1


@pytest.mark.asyncio
async def test_lead_outside_trigger_stages_not_escalated(test_db, stages, lead, sweep, sink):
    await add_task(test_db, lead, NOW - timedelta(hours=1))

    report = await sweep.run_once(test_db, now=NOW)

    assert report.escalated == 0
    assert len(sink.titled("Task overdue")) == 1
    await test_db.refresh(lead)
    assert lead.stage_id == stages["new"].id


@pytest.mark.asyncio
async def test_completed_and_future_tasks_ignored(test_db, clarify_lead, sweep, sink):
    await add_task(test_db, clarify_lead, NOW - timedelta(hours=1), status=TaskStatus.COMPLETED)
    await add_task(test_db, clarify_lead, NOW + timedelta(hours=1))

    report = await sweep.run_once(test_db, now=NOW)

    assert report.checked == 0
    assert sink.messages == []


@pytest.mark.asyncio
async def test_completed_tasks_are_forgotten(test_db, clarify_lead, sweep):
    overdue = await add_task(test_db, clarify_lead, NOW - timedelta(minutes=10), title="Late")
    soon = await add_task(test_db, clarify_lead, NOW + timedelta(minutes=2), title="Soon")

    await sweep.run_once(test_db, now=NOW)
    assert sweep.notified_overdue == {overdue.id}
    assert sweep.notified_near_due == {soon.id}

    overdue.status = TaskStatus.COMPLETED
    soon.status = TaskStatus.COMPLETED
    await test_db.commit()
    await sweep.run_once(test_db, now=NOW)

    assert sweep.notified_overdue == set()
    assert sweep.notified_near_due == set()


@pytest.mark.asyncio
async def test_escalate_skips_lead_that_already_moved(test_db, tenant, stages, clarify_lead, sweep):
    """The conditional update is a no-op when the lead left the trigger stage"""
    task = await add_task(test_db, clarify_lead, NOW - timedelta(minutes=10))
    clarify_lead.stage_id = stages["sold"].id
    await test_db.commit()

    snapshot = DueTask(
        id=task.id,
        tenant_id=tenant.id,
        seller_id=task.seller_id,
        title=task.title,
        due_date=task.due_date,
        lead_id=clarify_lead.id,
        lead_stage_id=stages["clarify"].id,
    )
    target = EscalationTarget(
        trigger_stage_ids=frozenset({stages["clarify"].id}),
        escalation_stage_id=stages["important"].id,
        escalation_stage_name="Important",
    )

    assert await sweep._escalate(test_db, snapshot, target) is False
    await test_db.refresh(clarify_lead)
    assert clarify_lead.stage_id == stages["sold"].id
    assert await system_comments(test_db, clarify_lead.id) == []


@pytest.mark.asyncio
async def test_failing_escalation_does_not_abort_pass(test_db, tenant, stages, seller, sweep, sink, monkeypatch):
    leads = []
    for name in ("First", "Second"):
        lead = Lead(tenant_id=tenant.id, seller_id=seller.id, stage_id=stages["clarify"].id, customer_name=name)
        test_db.add(lead)
        leads.append(lead)
    await test_db.commit()
    for lead in leads:
        await add_task(test_db, lead, NOW - timedelta(minutes=10))

    real_escalate = sweep._escalate
    calls = []

    async def flaky_escalate(db, task, target):
        calls.append(task.lead_id)
        if len(calls) == 1:
            raise SweepStepFailed(task.id, RuntimeError("deadlock"))
        return await real_escalate(db, task, target)

    monkeypatch.setattr(sweep, "_escalate", flaky_escalate)

    report = await sweep.run_once(test_db, now=NOW)

    assert len(report.failures) == 1
    assert report.escalated == 1
    assert len(sink.titled("Task overdue")) == 2


@pytest.mark.asyncio
async def test_tenant_without_escalation_stage_only_notifies(test_db, tenant, stages, clarify_lead, sink, feed):
    from leadboard.services.stage_rules import StageRules

    sweep = TaskReminderSweep(
        sink,
        rules_for_tenant=lambda t: StageRules.build(escalation_trigger=["clarify"], escalation="missing"),
        feed=feed,
    )
    await add_task(test_db, clarify_lead, NOW - timedelta(minutes=10))

    report = await sweep.run_once(test_db, now=NOW)

    assert report.escalated == 0
    assert len(sink.titled("Task overdue")) == 1


@pytest.mark.asyncio
async def test_report_to_dict(test_db, clarify_lead, sweep):
    await add_task(test_db, clarify_lead, NOW - timedelta(minutes=10))

    data = (await sweep.run_once(test_db, now=NOW)).to_dict()

    assert data["checked"] == 1
    assert data["escalated"] == 1
    assert data["escalated_lead_ids"] == [str(clarify_lead.id)]
    assert data["overdue_notified"] == 1
    assert data["failures"] == 0


@pytest.mark.asyncio
async def test_runner_wakes_on_task_change(sink, feed, session_factory, test_db):
    """A task event on the feed triggers a pass before the interval elapses"""
    passes = []

    class CountingSweep(TaskReminderSweep):
        async def run_once(self, db, now=None):
            passes.append(now)
            return await super().run_once(db, now)

    runner = ReminderRunner(
        CountingSweep(sink, feed=feed),
        interval_seconds=60,
        session_factory=session_factory,
        feed=feed,
    )
    runner.start()
    try:
        for _ in range(50):
            if passes and feed.subscriber_count:
                break
            await asyncio.sleep(0.01)
        assert len(passes) == 1

        feed.publish("task.created", None, task_id="x")
        for _ in range(100):
            if len(passes) >= 2:
                break
            await asyncio.sleep(0.01)
        assert len(passes) == 2
    finally:
        await runner.stop()

    assert not runner.running
