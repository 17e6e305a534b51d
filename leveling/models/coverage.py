"""Coverage Pydantic models for bid leveling.

Derived (never persisted) results of analysing one scope package: which
bidders priced which member items, which combinations of partial bidders
complete the package, and the cheapest way to buy it.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


# =============================================================================
# ENUMS
# =============================================================================


class ContributionOrigin(str, Enum):
    """Where a per-item amount came from."""

    ITEM_BID = "item_bid"
    PACKAGE_BID = "package_bid"  # Even share of an approved package bid


class OptionKind(str, Enum):
    """Type of leveling option."""

    SINGLE_BIDDER = "single_bidder"
    COMBINATION = "combination"


class TruncationReason(str, Enum):
    """Why the combination search stopped early."""

    PARTIAL_BIDDER_LIMIT = "partial_bidder_limit"
    TIME_BUDGET = "time_budget"


# =============================================================================
# BIDDER COVERAGE
# =============================================================================


class ItemContribution(BaseModel):
    """Amount one bidder asks for one package item."""

    item_id: str = Field(..., description="Scope item ID")
    amount: float = Field(..., description="Amount for this item")
    origin: ContributionOrigin = Field(..., description="Item bid or package share")
    submission_id: Optional[str] = Field(default=None, description="Source submission ID")


class BidderCoverage(BaseModel):
    """One bidder's coverage of a package."""

    subcontractor_id: str = Field(..., description="Subcontractor ID")
    subcontractor_name: Optional[str] = Field(default=None, description="Company name")
    contributions: List[ItemContribution] = Field(
        default_factory=list, description="Per-item amounts in package order"
    )
    covered_item_ids: List[str] = Field(default_factory=list, description="Covered items")
    missing_item_ids: List[str] = Field(default_factory=list, description="Uncovered items")
    total: float = Field(default=0.0, description="Sum of contributions")
    is_complete: bool = Field(default=False, description="Covers every package item")
    coverage_percent: float = Field(default=0.0, ge=0, le=100, description="Covered share (0-100)")

    def amount_for(self, item_id: str) -> Optional[float]:
        """Get this bidder's amount for an item, or None if not covered."""
        for contribution in self.contributions:
            if contribution.item_id == item_id:
                return contribution.amount
        return None


# =============================================================================
# COMBINATIONS
# =============================================================================


class CompletingCombination(BaseModel):
    """Two or three partial bidders whose coverage unions to the full package."""

    members: List[BidderCoverage] = Field(..., min_length=2, max_length=3)
    total: float = Field(..., description="Combined total of all members")

    @property
    def subcontractor_ids(self) -> List[str]:
        return [m.subcontractor_id for m in self.members]

    @property
    def covered_item_ids(self) -> set:
        """Union of the members' covered items."""
        covered = set()
        for member in self.members:
            covered.update(member.covered_item_ids)
        return covered


class CombinationSearch(BaseModel):
    """Result of a bounded combination search."""

    combinations: List[CompletingCombination] = Field(default_factory=list)
    truncated: bool = Field(default=False, description="Search stopped before finishing")
    truncation_reason: Optional[TruncationReason] = Field(default=None)
    candidates_tested: int = Field(default=0, ge=0, description="Subsets examined")


# =============================================================================
# PACKAGE RESULT
# =============================================================================


class LevelingOption(BaseModel):
    """Cheapest way to buy a complete package."""

    kind: OptionKind
    subcontractor_ids: List[str] = Field(default_factory=list)
    total: float = Field(..., description="Total price of this option")


class CoverageResult(BaseModel):
    """Coverage analysis for one scope package."""

    package_id: str = Field(..., description="Scope package ID")
    package_name: Optional[str] = Field(default=None, description="Package name")
    item_ids: List[str] = Field(default_factory=list, description="Package member items")
    bidders: List[BidderCoverage] = Field(
        default_factory=list, description="Complete bidders first, then partial"
    )
    combinations: List[CompletingCombination] = Field(default_factory=list)
    search_truncated: bool = Field(default=False)
    truncation_reason: Optional[TruncationReason] = Field(default=None)
    best_option: Optional[LevelingOption] = Field(default=None)

    @property
    def complete_bidders(self) -> List[BidderCoverage]:
        return [b for b in self.bidders if b.is_complete]

    @property
    def partial_bidders(self) -> List[BidderCoverage]:
        return [b for b in self.bidders if not b.is_complete]

    @property
    def has_complete_coverage(self) -> bool:
        """Check whether any single bidder or combination completes the package."""
        return self.best_option is not None

    def bidder(self, subcontractor_id: str) -> Optional[BidderCoverage]:
        """Look up a bidder's coverage by subcontractor ID."""
        for bidder in self.bidders:
            if bidder.subcontractor_id == subcontractor_id:
                return bidder
        return None
