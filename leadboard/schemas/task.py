"""Task schemas"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from uuid import UUID
from leadboard.models.task import TaskStatus
from leadboard.utils.clock import to_local_naive


class TaskCreate(BaseModel):
    """Schema for creating a task"""
    title: str = Field(..., min_length=1)
    description: Optional[str] = None
    due_date: datetime = Field(..., description="Wall clock time in the deployment timezone")
    lead_id: Optional[UUID] = None
    seller_id: Optional[UUID] = Field(None, description="Defaults to the lead's seller, then the caller")

    @field_validator("due_date")
    @classmethod
    def due_date_to_local(cls, v: datetime) -> datetime:
        return to_local_naive(v)


class TaskStatusUpdate(BaseModel):
    """Omit status to toggle pending <-> completed"""
    status: Optional[TaskStatus] = None


class TaskResponse(BaseModel):
    """Schema for task response"""
    id: UUID
    lead_id: Optional[UUID] = None
    seller_id: UUID
    title: str
    description: Optional[str] = None
    due_date: datetime
    status: TaskStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SweepResponse(BaseModel):
    checked: int
    escalated: int
    escalated_lead_ids: list[str]
    overdue_notified: int
    near_due_notified: int
    failures: int
