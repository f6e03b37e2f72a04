"""Stage transition schemas"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import date
from uuid import UUID

from leadboard.schemas.lead import CommentResponse, LeadResponse
from leadboard.schemas.task import TaskResponse


class StageChangeRequest(BaseModel):
    """Move a lead to another stage (drag/drop or menu)"""
    stage_id: UUID


class StageChangeResponse(BaseModel):
    """
    Outcome of the transition gate.

    `annotation_required` means nothing was written; submit the annotated
    endpoint with a comment (and a task when `task_required`).
    """
    outcome: str = Field(..., description="noop | committed | annotation_required")
    lead: LeadResponse
    target_stage_id: Optional[UUID] = None
    task_required: bool = False


class AnnotatedStageChangeRequest(BaseModel):
    """Annotation form for a gated stage change"""
    stage_id: UUID
    comment: str = ""
    task_title: str = ""
    task_description: str = ""
    task_due_date: Optional[date] = None
    task_due_time: str = "12:00"


class AnnotatedStageChangeResponse(BaseModel):
    lead: LeadResponse
    comment: CommentResponse
    task: Optional[TaskResponse] = None
