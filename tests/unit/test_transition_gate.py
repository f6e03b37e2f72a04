"""Unit tests for stage rules and the transition gate"""
import pytest
import uuid
from sqlalchemy import select, func

from leadboard.core.exceptions import InvalidStage, LeadNotFound
from leadboard.models import LeadComment, Stage, Task, Tenant
from leadboard.services.stage_rules import StageRules
from leadboard.services.transition_gate import (
    TransitionOutcome,
    decide_transition,
    request_stage_change,
)


def make_stage(key: str, name: str = None) -> Stage:
    return Stage(id=uuid.uuid4(), key=key, name=name or key.title())


@pytest.fixture
def pipeline():
    return {key: make_stage(key) for key in ("new", "contacted", "negotiation", "sold", "lost")}


def test_rules_match_by_key_not_name():
    """Renaming a stage keeps its rules"""
    rules = StageRules.build(exempt=["sold"])
    stage = make_stage("sold", name="Sotildi")

    assert rules.is_exempt(stage)
    stage.name = "Closed"
    assert rules.is_exempt(stage)
    assert not rules.is_exempt(make_stage("closed", name="Sold"))


def test_rules_match_by_id():
    stage = make_stage("custom")
    rules = StageRules.build(task_optional=[stage.id])

    assert rules.is_task_optional(stage)


def test_rules_for_tenant_override_defaults():
    tenant = Tenant(slug="acme", name="Acme", config={"stage_rules": {"exempt": ["new"], "escalation": "urgent"}})
    rules = StageRules.for_tenant(tenant)
    defaults = StageRules.from_settings()

    assert rules.exempt == frozenset({"new"})
    assert rules.escalation == "urgent"
    assert rules.task_optional == defaults.task_optional


def test_rules_for_tenant_single_key_is_one_identifier():
    """A bare string is a stage key, not a set of characters"""
    tenant = Tenant(
        slug="acme",
        name="Acme",
        config={"stage_rules": {"escalation_trigger": "clarify", "exempt": "new"}},
    )
    rules = StageRules.for_tenant(tenant)

    assert rules.escalation_trigger == frozenset({"clarify"})
    assert rules.exempt == frozenset({"new"})
    assert rules.is_escalation_trigger(make_stage("clarify"))
    assert not rules.is_exempt(make_stage("negotiation"))


def test_rules_build_accepts_single_id_and_none():
    stage = make_stage("custom")
    rules = StageRules.build(exempt=stage.id, task_optional=None)

    assert rules.is_exempt(stage)
    assert rules.task_optional == frozenset()


def test_rules_for_tenant_without_config_uses_settings():
    assert StageRules.for_tenant(Tenant(slug="x", name="X", config={})) == StageRules.from_settings()


def test_resolve_triggers_excludes_escalation_stage():
    stages = [make_stage("clarify"), make_stage("important")]
    rules = StageRules.build(escalation_trigger=["clarify", "important"], escalation="important")

    assert [s.key for s in rules.resolve_triggers(stages)] == ["clarify"]
    assert rules.resolve_escalation(stages).key == "important"


def test_decide_same_stage_is_noop(pipeline, rules):
    decision = decide_transition(pipeline["new"].id, pipeline["new"].id, pipeline.values(), rules)

    assert decision.outcome is TransitionOutcome.NOOP
    assert decision.target_stage is None


def test_decide_exempt_target_commits(pipeline, rules):
    decision = decide_transition(pipeline["negotiation"].id, pipeline["lost"].id, pipeline.values(), rules)

    assert decision.outcome is TransitionOutcome.COMMIT
    assert decision.target_stage is pipeline["lost"]


def test_decide_gated_target_requires_task(pipeline, rules):
    decision = decide_transition(pipeline["new"].id, pipeline["negotiation"].id, pipeline.values(), rules)

    assert decision.outcome is TransitionOutcome.ANNOTATE
    assert decision.task_required is True


def test_decide_task_optional_target():
    stages = [make_stage("new"), make_stage("sold")]
    rules = StageRules.build(exempt=["new"], task_optional=["sold"])

    decision = decide_transition(stages[0].id, stages[1].id, stages, rules)

    assert decision.outcome is TransitionOutcome.ANNOTATE
    assert decision.task_required is False


def test_decide_unknown_stage_raises(pipeline, rules):
    with pytest.raises(InvalidStage):
        decide_transition(pipeline["new"].id, uuid.uuid4(), pipeline.values(), rules)


@pytest.mark.asyncio
async def test_request_exempt_change_commits_without_annotation(test_db, tenant, stages, lead, rules, feed):
    """Exempt stages commit immediately with zero comment or task writes"""
    queue = feed.subscribe()

    decision = await request_stage_change(test_db, tenant.id, lead.id, stages["lost"].id, rules, feed=feed)

    assert decision.outcome is TransitionOutcome.COMMIT
    await test_db.refresh(lead)
    assert lead.stage_id == stages["lost"].id

    comments = await test_db.scalar(select(func.count(LeadComment.id)))
    tasks = await test_db.scalar(select(func.count(Task.id)))
    assert comments == 0
    assert tasks == 0

    event = queue.get_nowait()
    assert event.topic == "lead.stage_changed"
    assert event.payload["stage_id"] == str(stages["lost"].id)


@pytest.mark.asyncio
async def test_request_gated_change_leaves_lead_untouched(test_db, tenant, stages, lead, rules, feed):
    decision = await request_stage_change(
        test_db, tenant.id, lead.id, stages["negotiation"].id, rules, feed=feed
    )

    assert decision.outcome is TransitionOutcome.ANNOTATE
    await test_db.refresh(lead)
    assert lead.stage_id == stages["new"].id


@pytest.mark.asyncio
async def test_request_change_for_missing_lead(test_db, tenant, stages, rules):
    with pytest.raises(LeadNotFound):
        await request_stage_change(test_db, tenant.id, uuid.uuid4(), stages["lost"].id, rules)


@pytest.mark.asyncio
async def test_request_change_to_unknown_stage(test_db, tenant, stages, lead, rules):
    with pytest.raises(InvalidStage):
        await request_stage_change(test_db, tenant.id, lead.id, uuid.uuid4(), rules)
