"""Submission Pydantic models for bid leveling.

A submission is one price assertion from a subcontractor for a project.
Submissions come in three shapes, modelled as a tagged union on ``kind``:

- item: a price for a single scope item
- package: a single price for a whole scope package
- freeform: amounts extracted from correspondence that still need to be
  reconciled into item or package submissions
"""

from enum import Enum
from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# ENUMS
# =============================================================================


class ItemBidStatus(str, Enum):
    """Status of an item-level bid."""

    INVITED = "invited"
    SUBMITTED = "submitted"
    AWARDED = "awarded"
    DECLINED = "declined"
    WITHDRAWN = "withdrawn"


class PackageBidStatus(str, Enum):
    """Status of a package-level bid."""

    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"


class PackageBidSource(str, Enum):
    """How a package-level bid was received."""

    DIRECT_ENTRY = "direct_entry"
    EXTRACTED_FROM_CORRESPONDENCE = "extracted_from_correspondence"
    CLARIFICATION_RESPONSE = "clarification_response"


# =============================================================================
# ITEM-LEVEL SUBMISSION
# =============================================================================


class ItemSubmission(BaseModel):
    """Price for a single scope item from one subcontractor."""

    kind: Literal["item"] = "item"
    id: str = Field(..., description="Submission ID")
    subcontractor_id: str = Field(..., description="Subcontractor ID")
    subcontractor_name: Optional[str] = Field(default=None, description="Company name")
    project_id: Optional[str] = Field(default=None, description="Project ID")
    item_id: str = Field(..., description="Scope item ID")
    amount: Optional[float] = Field(default=None, description="Bid amount")
    status: ItemBidStatus = Field(default=ItemBidStatus.INVITED, description="Bid status")
    notes: Optional[str] = Field(default=None, description="Reviewer notes")


# =============================================================================
# PACKAGE-LEVEL SUBMISSION
# =============================================================================


class PackageSubmission(BaseModel):
    """Single price covering every item of a scope package."""

    kind: Literal["package"] = "package"
    id: str = Field(..., description="Submission ID")
    subcontractor_id: str = Field(..., description="Subcontractor ID")
    subcontractor_name: Optional[str] = Field(default=None, description="Company name")
    project_id: Optional[str] = Field(default=None, description="Project ID")
    package_id: str = Field(..., description="Scope package ID")
    amount: float = Field(..., ge=0, description="Package bid amount")
    status: PackageBidStatus = Field(
        default=PackageBidStatus.PENDING_APPROVAL, description="Bid status"
    )
    source: PackageBidSource = Field(
        default=PackageBidSource.DIRECT_ENTRY, description="How the bid was received"
    )
    clarification_id: Optional[str] = Field(
        default=None, description="Clarification request this bid answers"
    )
    notes: Optional[str] = Field(default=None, description="Notes")


# =============================================================================
# FREEFORM (EXTRACTED) SUBMISSION
# =============================================================================


class LineEntry(BaseModel):
    """One described amount extracted from correspondence.

    Amounts are already currency-parsed by the extraction service.
    """

    description: Optional[str] = Field(default=None, description="Best-effort description")
    trade: Optional[str] = Field(default=None, description="Trade hint (e.g., 'Electrical')")
    total: Optional[float] = Field(default=None, description="Line total")
    unit_price: Optional[float] = Field(default=None, description="Unit price")

    @property
    def amount(self) -> float:
        """Usable amount: the line total, falling back to the unit price."""
        return self.total or self.unit_price or 0.0

    @property
    def is_usable(self) -> bool:
        return self.amount > 0


class FreeformSubmission(BaseModel):
    """Bid data extracted from an email or document, not yet reconciled."""

    kind: Literal["freeform"] = "freeform"
    id: Optional[str] = Field(default=None, description="Submission ID")
    subcontractor_id: str = Field(..., description="Subcontractor ID")
    project_id: str = Field(..., description="Project ID")
    total_amount: Optional[float] = Field(default=None, description="Total amount quoted")
    line_entries: List[LineEntry] = Field(default_factory=list, description="Ordered line entries")
    confidence: float = Field(default=0.0, ge=0.0, le=1.0, description="Extraction confidence (0-1)")
    is_lump_sum: bool = Field(default=False, description="Single price covers all work")
    lump_sum_for_multiple: bool = Field(
        default=False,
        description="Amount likely covers multiple packages without breakdown",
    )
    amounts_by_package: Optional[Dict[str, Optional[float]]] = Field(
        default=None, description="Per-package amounts keyed by package name"
    )

    @field_validator("amounts_by_package")
    @classmethod
    def drop_empty_breakdown(
        cls, v: Optional[Dict[str, Optional[float]]]
    ) -> Optional[Dict[str, Optional[float]]]:
        """Treat an empty breakdown the same as no breakdown."""
        return v or None

    @property
    def has_usable_line_entries(self) -> bool:
        """Check whether any line entry carries a usable amount."""
        return any(entry.is_usable for entry in self.line_entries)

    @property
    def has_breakdown(self) -> bool:
        return bool(self.amounts_by_package)

    @property
    def is_unbroken_lump_sum(self) -> bool:
        """Lump sum that was not split by package."""
        return self.lump_sum_for_multiple or (self.is_lump_sum and not self.has_breakdown)


Submission = Annotated[
    Union[ItemSubmission, PackageSubmission, FreeformSubmission],
    Field(discriminator="kind"),
]
