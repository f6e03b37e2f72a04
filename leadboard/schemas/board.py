"""Board and report schemas"""
from pydantic import BaseModel
from typing import Optional
from decimal import Decimal
from uuid import UUID

from leadboard.schemas.lead import LeadResponse
from leadboard.schemas.stage import StageResponse


class BoardColumnResponse(BaseModel):
    stage: StageResponse
    leads: list[LeadResponse]

    class Config:
        from_attributes = True


class BoardResponse(BaseModel):
    columns: list[BoardColumnResponse]

    class Config:
        from_attributes = True


class StageSummary(BaseModel):
    stage_id: UUID
    key: str
    name: str
    category: Optional[str] = None
    lead_count: int
    total_price: Decimal


class SellerStats(BaseModel):
    seller_id: UUID
    full_name: str
    total_leads: int
    won_leads: int
    revenue: Decimal
    conversion_rate: float
    pending_tasks: int
    overdue_tasks: int
