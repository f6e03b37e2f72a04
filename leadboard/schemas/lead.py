"""Lead and comment schemas"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from decimal import Decimal
from uuid import UUID


class LeadCreate(BaseModel):
    """Schema for creating a lead"""
    customer_name: str = Field(..., min_length=1)
    customer_phone: Optional[str] = None
    seller_id: Optional[UUID] = Field(None, description="Owner; defaults to the caller")
    stage_id: Optional[UUID] = Field(None, description="Initial stage; defaults to the first column")
    price: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None
    source: Optional[str] = None


class LeadUpdate(BaseModel):
    """Partial lead update; only fields that are sent are changed"""
    customer_name: Optional[str] = None
    customer_phone: Optional[str] = None
    price: Optional[Decimal] = Field(None, ge=0)
    notes: Optional[str] = None
    delivery_status: Optional[str] = None
    action_status: Optional[str] = None


class LeadReassign(BaseModel):
    seller_id: UUID


class LeadResponse(BaseModel):
    """Schema for lead response"""
    id: UUID
    customer_name: str
    customer_phone: Optional[str] = None
    stage_id: UUID
    seller_id: UUID
    price: Optional[Decimal] = None
    notes: Optional[str] = None
    source: Optional[str] = None
    delivery_status: Optional[str] = None
    action_status: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class CommentCreate(BaseModel):
    comment: str = Field(..., min_length=1)


class CommentResponse(BaseModel):
    id: UUID
    lead_id: UUID
    user_id: UUID
    comment: str
    is_system: bool
    created_at: datetime

    class Config:
        from_attributes = True
