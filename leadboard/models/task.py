"""Follow-up task model"""
import uuid
import enum
from datetime import datetime
from sqlalchemy import Column, String, DateTime, ForeignKey, Text, Index, Uuid, Enum as SQLEnum
from leadboard.core.database import Base


class TaskStatus(str, enum.Enum):
    """Task status enumeration"""
    PENDING = "pending"
    COMPLETED = "completed"


class Task(Base):
    """Follow-up task owned by a seller, optionally linked to a lead"""
    __tablename__ = "tasks"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    lead_id = Column(Uuid, ForeignKey("leads.id", ondelete="CASCADE"), nullable=True)
    seller_id = Column(Uuid, ForeignKey("sellers.id"), nullable=False)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    due_date = Column(DateTime, nullable=False)  # Wall clock in settings.TIMEZONE
    status = Column(SQLEnum(TaskStatus), default=TaskStatus.PENDING, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        Index('idx_task_status_due', 'status', 'due_date'),
        Index('idx_task_seller_status', 'seller_id', 'status'),
    )

    def __repr__(self):
        return f"<Task {self.title} ({self.status.value})>"
