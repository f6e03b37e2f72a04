"""Lead comment model"""
import uuid
from datetime import datetime
from sqlalchemy import Column, Boolean, DateTime, ForeignKey, Text, Index, Uuid
from leadboard.core.database import Base


class LeadComment(Base):
    """Append-only note on a lead"""
    __tablename__ = "lead_comments"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    lead_id = Column(Uuid, ForeignKey("leads.id", ondelete="CASCADE"), nullable=False)
    user_id = Column(Uuid, ForeignKey("sellers.id"), nullable=False)
    comment = Column(Text, nullable=False)
    is_system = Column(Boolean, default=False, nullable=False)  # Written by the reminder sweep
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index('idx_comment_lead_created', 'lead_id', 'created_at'),
    )

    def __repr__(self):
        return f"<LeadComment lead={self.lead_id}>"
