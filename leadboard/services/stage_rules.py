"""Stage rule sets used by the transition gate and the reminder sweep"""
from dataclasses import dataclass, field
from typing import Iterable, Optional
from uuid import UUID

from leadboard.core.config import settings
from leadboard.models.stage import Stage


def _normalize(identifiers) -> frozenset:
    if identifiers is None:
        return frozenset()
    # A lone key or id is one identifier, not a sequence of characters
    if isinstance(identifiers, (str, UUID)):
        identifiers = [identifiers]
    return frozenset(str(i) for i in identifiers if i is not None and str(i) != "")


@dataclass(frozen=True)
class StageRules:
    """
    Stage identity rules.

    Every set matches a stage by its id or its stable `key`. Display names
    are never consulted, so renaming a stage does not change behaviour.

    exempt:             stages reachable without comment/task
    task_optional:      gated stages that need a comment but no task
    escalation_trigger: stages an overdue task escalates a lead out of
    escalation:         the single stage escalated leads are moved into
    """

    exempt: frozenset = field(default_factory=frozenset)
    task_optional: frozenset = field(default_factory=frozenset)
    escalation_trigger: frozenset = field(default_factory=frozenset)
    escalation: Optional[str] = None

    @classmethod
    def build(
        cls,
        exempt: Iterable = (),
        task_optional: Iterable = (),
        escalation_trigger: Iterable = (),
        escalation=None,
    ) -> "StageRules":
        return cls(
            exempt=_normalize(exempt),
            task_optional=_normalize(task_optional),
            escalation_trigger=_normalize(escalation_trigger),
            escalation=str(escalation) if escalation else None,
        )

    @classmethod
    def from_settings(cls) -> "StageRules":
        return cls.build(
            exempt=settings.EXEMPT_STAGE_KEYS,
            task_optional=settings.TASK_OPTIONAL_STAGE_KEYS,
            escalation_trigger=settings.ESCALATION_TRIGGER_STAGE_KEYS,
            escalation=settings.ESCALATION_STAGE_KEY,
        )

    @classmethod
    def for_tenant(cls, tenant) -> "StageRules":
        """Settings defaults overridden by `tenant.config["stage_rules"]`"""
        defaults = cls.from_settings()
        overrides = ((tenant.config or {}) if tenant is not None else {}).get("stage_rules") or {}
        if not overrides:
            return defaults
        return cls.build(
            exempt=overrides.get("exempt", defaults.exempt),
            task_optional=overrides.get("task_optional", defaults.task_optional),
            escalation_trigger=overrides.get("escalation_trigger", defaults.escalation_trigger),
            escalation=overrides.get("escalation", defaults.escalation),
        )

    @staticmethod
    def _matches(stage: Stage, identifiers: frozenset) -> bool:
        return str(stage.id) in identifiers or stage.key in identifiers

    def is_exempt(self, stage: Stage) -> bool:
        return self._matches(stage, self.exempt)

    def is_task_optional(self, stage: Stage) -> bool:
        return self._matches(stage, self.task_optional)

    def is_escalation_trigger(self, stage: Stage) -> bool:
        return self._matches(stage, self.escalation_trigger)

    def is_escalation(self, stage: Stage) -> bool:
        return self.escalation is not None and self._matches(stage, frozenset([self.escalation]))

    def resolve_escalation(self, stages: Iterable[Stage]) -> Optional[Stage]:
        for stage in stages:
            if self.is_escalation(stage):
                return stage
        return None

    def resolve_triggers(self, stages: Iterable[Stage]) -> list[Stage]:
        return [s for s in stages if self.is_escalation_trigger(s) and not self.is_escalation(s)]
