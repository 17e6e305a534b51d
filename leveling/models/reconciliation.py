"""Reconciliation Pydantic models.

Proposed mutations produced by reconciling a freeform submission against a
subcontractor's open item bids. The caller persists them.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field

from models.submission import ItemBidStatus


class ReconciliationMode(str, Enum):
    """How a freeform submission was applied."""

    STRUCTURED = "structured"
    LUMP_SUM = "lump_sum"
    CLARIFICATION_REQUIRED = "clarification_required"
    NO_OP = "no_op"


class LumpSumPolicy(str, Enum):
    """How a lump sum is spread over open items."""

    FULL = "full"    # Full amount on the first item, others included at zero
    EVEN = "even"    # Split evenly across all open items


class SkipReason(str, Enum):
    """Why a line entry was not applied."""

    NO_AMOUNT = "no_amount"
    UNMATCHED = "unmatched"


class ItemSubmissionUpdate(BaseModel):
    """Proposed update to one open item-level submission."""

    submission_id: str = Field(..., description="Item submission to update")
    item_id: str = Field(..., description="Scope item ID")
    amount: float = Field(..., description="New amount")
    status: ItemBidStatus = Field(default=ItemBidStatus.SUBMITTED)
    notes: Optional[str] = Field(default=None)
    entry_index: Optional[int] = Field(
        default=None, ge=0, description="Line entry that produced this amount"
    )
    match_score: Optional[int] = Field(default=None, ge=0)


class SkippedEntry(BaseModel):
    """Line entry that produced no update."""

    entry_index: int = Field(..., ge=0)
    reason: SkipReason


class ReconciliationResult(BaseModel):
    """Outcome of reconciling one freeform submission."""

    mode: ReconciliationMode
    item_updates: List[ItemSubmissionUpdate] = Field(default_factory=list)
    skipped_entries: List[SkippedEntry] = Field(default_factory=list)
    reason: Optional[str] = Field(default=None, description="Diagnostic for no-op results")

    @property
    def needs_clarification(self) -> bool:
        return self.mode == ReconciliationMode.CLARIFICATION_REQUIRED

    @property
    def is_no_op(self) -> bool:
        return self.mode == ReconciliationMode.NO_OP

    @property
    def applied_total(self) -> float:
        """Sum of the amounts assigned to open items."""
        return round(sum(update.amount for update in self.item_updates), 2)
