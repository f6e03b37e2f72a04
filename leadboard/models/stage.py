"""Pipeline stage model"""
import uuid
import enum
from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, ForeignKey, UniqueConstraint, Index, Uuid, Enum as SQLEnum
from leadboard.core.database import Base


class StageCategory(str, enum.Enum):
    """Semantic category of a stage, independent of its display name"""
    NORMAL = "normal"
    WON = "won"
    LOST = "lost"


class Stage(Base):
    """Kanban column a lead currently occupies"""
    __tablename__ = "stages"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    tenant_id = Column(Uuid, ForeignKey("tenants.id", ondelete="CASCADE"), nullable=False, index=True)
    key = Column(String, nullable=False)  # Stable slug used by stage rules (e.g., "sold")
    name = Column(String, nullable=False)  # Display only
    color = Column(String, nullable=False, default="bg-blue-500")
    display_order = Column(Integer, nullable=False, default=1)
    category = Column(SQLEnum(StageCategory), default=StageCategory.NORMAL, nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint('tenant_id', 'key', name='uq_stage_tenant_key'),
        Index('idx_stage_tenant_order', 'tenant_id', 'display_order'),
    )

    def __repr__(self):
        return f"<Stage {self.key} #{self.display_order}>"
