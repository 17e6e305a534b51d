"""Clarification Pydantic models.

A clarification request tracks an open ambiguity: a subcontractor sent one
lump sum for several invited packages and must be asked for a per-package
breakdown. At most one request is pending per (project, subcontractor).
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional, Tuple
import uuid

from pydantic import BaseModel, Field

from models.reconciliation import ReconciliationResult
from models.scope import ScopeItem, ScopePackage
from models.submission import ItemSubmission, PackageSubmission


class ClarificationStatus(str, Enum):
    """Status of a clarification request."""

    PENDING = "pending"
    RESOLVED = "resolved"


class ClarificationAction(str, Enum):
    """What the workflow did with a submission."""

    NONE = "none"
    REQUESTED = "requested"
    MERGED = "merged"
    RESOLVED = "resolved"


class ClarificationRequest(BaseModel):
    """Request for a per-package breakdown of a lump sum."""

    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    project_id: str = Field(..., description="Project ID")
    subcontractor_id: str = Field(..., description="Subcontractor ID")
    requested_packages: List[str] = Field(
        default_factory=list, description="Package names needing a breakdown"
    )
    lump_sum_amount: Optional[float] = Field(default=None, description="Original lump sum")
    status: ClarificationStatus = Field(default=ClarificationStatus.PENDING)
    package_amounts: Optional[Dict[str, Optional[float]]] = Field(
        default=None, description="Per-package amounts received"
    )
    source_submission_id: Optional[str] = Field(default=None)
    sent_at: Optional[datetime] = Field(default=None)
    updated_at: Optional[datetime] = Field(default=None)
    responded_at: Optional[datetime] = Field(default=None)

    @property
    def key(self) -> Tuple[str, str]:
        """Uniqueness key: (project, subcontractor)."""
        return (self.project_id, self.subcontractor_id)

    @property
    def is_pending(self) -> bool:
        return self.status == ClarificationStatus.PENDING


class ClarificationIntent(BaseModel):
    """Instruction to send a clarification request.

    Delivery (email, notification) is left to the caller.
    """

    clarification_id: str
    project_id: str
    subcontractor_id: str
    packages: List[str] = Field(default_factory=list)
    lump_sum_amount: Optional[float] = None
    subject: str
    message: str


class SubmissionContext(BaseModel):
    """Everything the workflow needs to know about a (project, subcontractor) pair."""

    invited_packages: List[ScopePackage] = Field(
        default_factory=list, description="Packages the subcontractor was invited to, in order"
    )
    open_bids: List[ItemSubmission] = Field(
        default_factory=list, description="Item-level submissions for the pair"
    )
    items: List[ScopeItem] = Field(default_factory=list, description="Project scope items")
    pending_clarification: Optional[ClarificationRequest] = Field(default=None)
    project_name: Optional[str] = Field(default=None)


class ClarificationOutcome(BaseModel):
    """Result of running a freeform submission through the workflow."""

    action: ClarificationAction = ClarificationAction.NONE
    request: Optional[ClarificationRequest] = None
    intent: Optional[ClarificationIntent] = None
    package_submissions: List[PackageSubmission] = Field(default_factory=list)
    reconciliation: Optional[ReconciliationResult] = None
    unknown_packages: List[str] = Field(
        default_factory=list, description="Breakdown names matching no invited package"
    )
