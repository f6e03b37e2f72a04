"""Domain exceptions for the CRM core"""
from typing import Optional


class CRMError(Exception):
    """Base exception carrying an HTTP status for the API layer"""

    status_code = 400

    def __init__(self, message: str, status_code: Optional[int] = None):
        self.message = message
        if status_code is not None:
            self.status_code = status_code
        super().__init__(self.message)

    def to_dict(self) -> dict:
        return {"error": self.message}


class InvalidStage(CRMError):
    """Requested stage does not exist for the tenant"""

    status_code = 404

    def __init__(self, stage_id):
        self.stage_id = stage_id
        super().__init__(f"Stage '{stage_id}' not found")


class LeadNotFound(CRMError):
    status_code = 404

    def __init__(self, lead_id):
        self.lead_id = lead_id
        super().__init__(f"Lead '{lead_id}' not found")


class TaskNotFound(CRMError):
    status_code = 404

    def __init__(self, task_id):
        self.task_id = task_id
        super().__init__(f"Task '{task_id}' not found")


class ValidationFailed(CRMError):
    """
    Field-level validation failure.

    `errors` maps a form field name to a user-facing message. Nothing has
    been written when this is raised.
    """

    status_code = 422

    def __init__(self, errors: dict[str, str]):
        self.errors = errors
        super().__init__("Validation failed: " + ", ".join(sorted(errors)))

    def to_dict(self) -> dict:
        return {"error": self.message, "errors": self.errors}


class PersistenceFailed(CRMError):
    """A write step failed; `step` names which one"""

    status_code = 500

    def __init__(self, step: str, cause: Optional[BaseException] = None):
        self.step = step
        self.cause = cause
        super().__init__(f"Failed to persist {step}: {cause}" if cause else f"Failed to persist {step}")

    def to_dict(self) -> dict:
        return {"error": self.message, "step": self.step}


class StageInUse(CRMError):
    status_code = 409

    def __init__(self, stage_id, lead_count: int):
        self.stage_id = stage_id
        self.lead_count = lead_count
        super().__init__(f"Stage '{stage_id}' still has {lead_count} lead(s)")


class WorkflowStateError(CRMError):
    """Operation not allowed in the workflow's current state"""

    status_code = 409


class PermissionDenied(CRMError):
    status_code = 403


class SweepStepFailed(CRMError):
    """One task in a sweep pass could not be processed"""

    status_code = 500

    def __init__(self, task_id, cause: BaseException):
        self.task_id = task_id
        self.cause = cause
        super().__init__(f"Sweep step failed for task {task_id}: {cause}")
