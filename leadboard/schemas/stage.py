"""Stage schemas"""
from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
from uuid import UUID
from leadboard.models.stage import StageCategory


class StageCreate(BaseModel):
    """Schema for creating a stage"""
    key: str = Field(..., description="Stable identifier used by stage rules (e.g., 'sold')", min_length=2, max_length=50)
    name: str = Field(..., description="Display name", min_length=1)
    color: str = Field(default="bg-blue-500", description="Column color class")
    category: StageCategory = Field(default=StageCategory.NORMAL)

    @field_validator('key')
    @classmethod
    def validate_key(cls, v):
        """Validate key format"""
        import re
        if not re.match(r'^[a-z0-9_-]+$', v):
            raise ValueError('Key must contain only lowercase letters, numbers, hyphens and underscores')
        return v


class StageUpdate(BaseModel):
    """Schema for updating a stage"""
    name: Optional[str] = None
    color: Optional[str] = None
    category: Optional[StageCategory] = None


class StageOrder(BaseModel):
    """New column order, left to right"""
    stage_ids: list[UUID] = Field(..., min_length=1)


class StageResponse(BaseModel):
    """Schema for stage response"""
    id: UUID
    key: str
    name: str
    color: str
    display_order: int
    category: StageCategory
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
