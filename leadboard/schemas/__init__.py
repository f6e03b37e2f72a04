"""Pydantic schemas for request/response validation"""
from leadboard.schemas.stage import StageCreate, StageUpdate, StageOrder, StageResponse
from leadboard.schemas.seller import SellerCreate, SellerUpdate, SellerResponse
from leadboard.schemas.lead import (
    LeadCreate,
    LeadUpdate,
    LeadReassign,
    LeadResponse,
    CommentCreate,
    CommentResponse,
)
from leadboard.schemas.task import TaskCreate, TaskStatusUpdate, TaskResponse, SweepResponse
from leadboard.schemas.transition import (
    StageChangeRequest,
    StageChangeResponse,
    AnnotatedStageChangeRequest,
    AnnotatedStageChangeResponse,
)
from leadboard.schemas.board import BoardColumnResponse, BoardResponse, StageSummary, SellerStats

__all__ = [
    "StageCreate",
    "StageUpdate",
    "StageOrder",
    "StageResponse",
    "SellerCreate",
    "SellerUpdate",
    "SellerResponse",
    "LeadCreate",
    "LeadUpdate",
    "LeadReassign",
    "LeadResponse",
    "CommentCreate",
    "CommentResponse",
    "TaskCreate",
    "TaskStatusUpdate",
    "TaskResponse",
    "SweepResponse",
    "StageChangeRequest",
    "StageChangeResponse",
    "AnnotatedStageChangeRequest",
    "AnnotatedStageChangeResponse",
    "BoardColumnResponse",
    "BoardResponse",
    "StageSummary",
    "SellerStats",
]
