"""Lead model"""
import uuid
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, Numeric, Text, Index, Uuid
from leadboard.core.database import Base


class Lead(Base):
    """Sales opportunity sitting in exactly one stage"""
    __tablename__ = "leads"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    seller_id = Column(Uuid, ForeignKey("sellers.id"), nullable=False)
    stage_id = Column(Uuid, ForeignKey("stages.id"), nullable=False)
    customer_name = Column(String, nullable=False)
    customer_phone = Column(String, nullable=True)
    price = Column(Numeric(14, 2), nullable=True)
    notes = Column(Text, nullable=True)
    source = Column(String, nullable=True)
    delivery_status = Column(String, nullable=True)
    action_status = Column(String, nullable=True)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Indexes
    __table_args__ = (
        Index('idx_lead_tenant_stage', 'tenant_id', 'stage_id'),
        Index('idx_lead_tenant_seller', 'tenant_id', 'seller_id'),
    )

    def __repr__(self):
        return f"<Lead {self.customer_name} - stage={self.stage_id}>"
