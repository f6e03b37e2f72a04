"""Database models"""
from leadboard.models.tenant import Tenant, TenantStatus
from leadboard.models.seller import Seller, SellerRole
from leadboard.models.stage import Stage, StageCategory
from leadboard.models.lead import Lead
from leadboard.models.comment import LeadComment
from leadboard.models.task import Task, TaskStatus

__all__ = [
    "Tenant",
    "TenantStatus",
    "Seller",
    "SellerRole",
    "Stage",
    "StageCategory",
    "Lead",
    "LeadComment",
    "Task",
    "TaskStatus",
]
