"""Tenant model for multi-tenant support"""
import uuid
import enum
from datetime import datetime
from sqlalchemy import Column, String, Boolean, DateTime, JSON, Uuid, Enum as SQLEnum
from sqlalchemy.dialects.postgresql import JSONB
from leadboard.core.database import Base


class TenantStatus(str, enum.Enum):
    """Tenant status enumeration"""
    ACTIVE = "active"
    TRIAL = "trial"
    SUSPENDED = "suspended"
    CANCELLED = "cancelled"


class Tenant(Base):
    """Tenant model representing a company using the CRM"""
    __tablename__ = "tenants"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    slug = Column(String, unique=True, nullable=False, index=True)  # URL-safe identifier (e.g., "acme")
    name = Column(String, nullable=False)

    # Configuration (JSONB on PostgreSQL)
    config = Column(JSON().with_variant(JSONB, "postgresql"), nullable=False, default=dict)
    # Expected config structure:
    # {
    #   "currency": "UZS",
    #   "stage_rules": {
    #     "exempt": ["new", "sold", "lost"],
    #     "task_optional": ["sold"],
    #     "escalation_trigger": ["clarify"],
    #     "escalation": "important"
    #   }
    # }

    # Authentication
    api_key_hash = Column(String, nullable=True)  # bcrypt hash of API key
    api_key_prefix = Column(String, nullable=True)  # First 8 chars for identification

    # Status
    status = Column(SQLEnum(TenantStatus), default=TenantStatus.ACTIVE, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    # Timestamps
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self):
        return f"<Tenant {self.slug} - {self.name} ({self.status.value})>"
