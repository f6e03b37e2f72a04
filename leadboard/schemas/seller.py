"""Seller schemas"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime
from uuid import UUID
from leadboard.models.seller import SellerRole


class SellerBase(BaseModel):
    """Base seller schema"""
    phone: Optional[str] = None
    telegram_chat_id: Optional[str] = None


class SellerCreate(SellerBase):
    """Schema for creating a seller"""
    full_name: str = Field(..., min_length=1)
    role: SellerRole = SellerRole.SELLER


class SellerUpdate(SellerBase):
    """Schema for updating a seller"""
    full_name: Optional[str] = None
    role: Optional[SellerRole] = None
    is_active: Optional[bool] = None


class SellerResponse(SellerBase):
    """Schema for seller response"""
    id: UUID
    full_name: str
    role: SellerRole
    is_active: bool
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
