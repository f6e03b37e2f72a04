"""Seller model"""
import uuid
import enum
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, Uuid, Enum as SQLEnum
from leadboard.core.database import Base


class SellerRole(str, enum.Enum):
    """Seller role enumeration"""
    ADMIN = "admin"
    ROP = "rop"  # head of sales
    SELLER = "seller"


class Seller(Base):
    """Employee who owns leads and tasks"""
    __tablename__ = "sellers"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    full_name = Column(String, nullable=False)
    phone = Column(String, nullable=True)
    role = Column(SQLEnum(SellerRole), default=SellerRole.SELLER, nullable=False)
    telegram_chat_id = Column(String, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    @property
    def is_admin_or_rop(self) -> bool:
        return self.role in (SellerRole.ADMIN, SellerRole.ROP)

    def __repr__(self):
        return f"<Seller {self.full_name} ({self.role.value})>"
