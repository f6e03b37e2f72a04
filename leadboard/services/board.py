"""Kanban board model and drag controller"""
from dataclasses import dataclass, field
from typing import Optional
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from leadboard.core.exceptions import CRMError, LeadNotFound, PersistenceFailed, WorkflowStateError
from leadboard.models.lead import Lead
from leadboard.models.stage import Stage
from leadboard.services.stage_rules import StageRules
from leadboard.services.stage_service import list_stages, reorder_stages
from leadboard.services.transition_gate import (
    TransitionDecision,
    TransitionOutcome,
    request_stage_change,
)
from leadboard.utils.logger import logger


@dataclass
class BoardColumn:
    stage: Stage
    leads: list[Lead] = field(default_factory=list)


@dataclass
class Board:
    columns: list[BoardColumn] = field(default_factory=list)

    def column(self, stage_id) -> Optional[BoardColumn]:
        for column in self.columns:
            if str(column.stage.id) == str(stage_id):
                return column
        return None

    def locate(self, lead_id) -> tuple[BoardColumn, Lead]:
        for column in self.columns:
            for lead in column.leads:
                if str(lead.id) == str(lead_id):
                    return column, lead
        raise LeadNotFound(lead_id)

    @property
    def stage_order(self) -> list:
        return [column.stage.id for column in self.columns]


async def load_board(db: AsyncSession, tenant_id: UUID, seller_id: Optional[UUID] = None) -> Board:
    """Columns in display_order; leads newest first inside each column"""
    stages = await list_stages(db, tenant_id)

    query = select(Lead).where(Lead.tenant_id == tenant_id)
    if seller_id is not None:
        query = query.where(Lead.seller_id == seller_id)
    result = await db.execute(query.order_by(Lead.created_at.desc()))
    leads = result.scalars().all()

    columns = {stage.id: BoardColumn(stage=stage) for stage in stages}
    for lead in leads:
        column = columns.get(lead.stage_id)
        if column is None:
            logger.warning(f"Lead {lead.id} references unknown stage {lead.stage_id}")
            continue
        column.leads.append(lead)

    return Board(columns=[columns[stage.id] for stage in stages])


class DragController:
    """
    Session-scoped drag state over a Board.

    Dropping a card on another column goes through the transition gate.
    In-column order is local to this controller and never persisted.
    """

    def __init__(
        self,
        db: AsyncSession,
        tenant_id: UUID,
        rules: StageRules,
        board: Board,
        seller_id: Optional[UUID] = None,
    ):
        self.db = db
        self.tenant_id = tenant_id
        self.rules = rules
        self.board = board
        self.seller_id = seller_id
        self.active_lead_id = None

    @classmethod
    async def load(cls, db: AsyncSession, tenant_id: UUID, rules: StageRules, seller_id=None) -> "DragController":
        board = await load_board(db, tenant_id, seller_id)
        return cls(db, tenant_id, rules, board, seller_id=seller_id)

    async def refresh(self) -> Board:
        self.board = await load_board(self.db, self.tenant_id, self.seller_id)
        return self.board

    def begin_drag(self, lead_id) -> Lead:
        _, lead = self.board.locate(lead_id)
        self.active_lead_id = lead.id
        return lead

    def cancel_drag(self) -> None:
        self.active_lead_id = None

    async def drop(self, target_stage_id=None) -> Optional[TransitionDecision]:
        """
        Release the active card.

        Returns None when nothing is being dragged or the card was released
        outside any column. Otherwise returns the gate decision; committed
        moves are reflected on the board immediately.
        """
        lead_id = self.active_lead_id
        self.active_lead_id = None
        if lead_id is None:
            return None

        target_column = self.board.column(target_stage_id) if target_stage_id is not None else None
        if target_column is None:
            logger.debug(f"Drop of lead {lead_id} outside any column cancelled")
            return None

        source_column, lead = self.board.locate(lead_id)
        if source_column is target_column:
            return TransitionDecision(TransitionOutcome.NOOP)

        decision = await request_stage_change(
            self.db, self.tenant_id, lead_id, target_column.stage.id, self.rules
        )
        if decision.outcome is TransitionOutcome.COMMIT:
            source_column.leads.remove(lead)
            target_column.leads.insert(0, lead)
        return decision

    def reorder_within_column(self, stage_id, lead_id, new_index: int) -> list[Lead]:
        column = self.board.column(stage_id)
        if column is None:
            raise WorkflowStateError(f"Stage {stage_id} is not on the board")
        lead = next((l for l in column.leads if str(l.id) == str(lead_id)), None)
        if lead is None:
            raise LeadNotFound(lead_id)
        column.leads.remove(lead)
        new_index = max(0, min(new_index, len(column.leads)))
        column.leads.insert(new_index, lead)
        return column.leads

    async def move_column(self, stage_id, new_index: int) -> Board:
        """
        Move a column and persist the dense display order.

        On failure the board is reloaded from the database so it matches
        storage again, then the error is raised.
        """
        order = self.board.stage_order
        moving = next((sid for sid in order if str(sid) == str(stage_id)), None)
        if moving is None:
            raise WorkflowStateError(f"Stage {stage_id} is not on the board")
        order.remove(moving)
        order.insert(max(0, min(new_index, len(order))), moving)

        try:
            stages = await reorder_stages(self.db, self.tenant_id, order)
        except (CRMError, SQLAlchemyError) as e:
            logger.warning(f"Column reorder failed, reverting board: {e}")
            await self.refresh()
            if isinstance(e, CRMError):
                raise
            raise PersistenceFailed("stage order", e) from e

        by_id = {column.stage.id: column for column in self.board.columns}
        self.board.columns = [by_id[stage.id] for stage in stages]
        return self.board
