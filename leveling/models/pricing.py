"""Pricing Pydantic models for the client-facing roll-up.

Markup is applied per item and never shown as its own line. General
conditions sit under the General Requirements division; overhead/profit,
contingency and custom items are separate bottom-line items.
"""

from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field

from models.coverage import ContributionOrigin, CoverageResult


# =============================================================================
# ENUMS
# =============================================================================


class PriceSource(str, Enum):
    """Where an item's base amount came from."""

    BID = "bid"
    MANUAL = "manual"
    NONE = "none"


# =============================================================================
# INPUTS
# =============================================================================


class WinningBid(BaseModel):
    """The selected price for one scope item."""

    item_id: str
    amount: float = Field(..., ge=0)
    subcontractor_id: Optional[str] = None
    subcontractor_name: Optional[str] = None
    origin: ContributionOrigin = ContributionOrigin.ITEM_BID
    package_id: Optional[str] = None
    submission_id: Optional[str] = None


class CustomLineItem(BaseModel):
    """Ad hoc line item added to the bottom of the proposal."""

    description: str = Field(default="", description="Line description")
    amount: float = Field(default=0.0, description="Line amount")


class PricingConfig(BaseModel):
    """Caller-supplied pricing inputs."""

    markup_percent: float = Field(default=0.0, ge=0, description="Hidden per-item markup (%)")
    general_conditions: float = Field(default=0.0, ge=0, description="General conditions amount")
    overhead_profit: float = Field(default=0.0, ge=0, description="Overhead & profit amount")
    contingency: float = Field(default=0.0, ge=0, description="Contingency amount")
    custom_line_items: List[CustomLineItem] = Field(default_factory=list)


# =============================================================================
# OUTPUTS
# =============================================================================


class PricedItem(BaseModel):
    """One scope item in the roll-up."""

    item_id: str
    description: str = ""
    base_amount: float = Field(..., ge=0, description="Winning bid or manual price")
    amount: float = Field(..., ge=0, description="Base amount with markup applied")
    source: PriceSource = PriceSource.NONE
    subcontractor_id: Optional[str] = None
    from_package_bid: bool = False


class DivisionBreakdown(BaseModel):
    """Items and total for one division."""

    code: str
    name: str
    items: List[PricedItem] = Field(default_factory=list)
    general_conditions: float = Field(default=0.0, ge=0)
    total: float = 0.0


class BottomLineItem(BaseModel):
    """Labelled amount below the division breakdown."""

    label: str
    amount: float


class PriceRollup(BaseModel):
    """Client-facing price breakdown and totals."""

    divisions: List[DivisionBreakdown] = Field(default_factory=list)
    subtotal: float = 0.0
    markup_amount: float = Field(default=0.0, description="Hidden markup included in subtotal")
    general_conditions: float = 0.0
    overhead_profit: float = 0.0
    contingency: float = 0.0
    custom_line_items: List[CustomLineItem] = Field(default_factory=list)
    bottom_line: List[BottomLineItem] = Field(default_factory=list)
    grand_total: float = 0.0

    @property
    def custom_total(self) -> float:
        return sum(item.amount for item in self.custom_line_items)

    def division(self, code: str) -> Optional[DivisionBreakdown]:
        """Look up a division breakdown by code."""
        for division in self.divisions:
            if division.code == code:
                return division
        return None


# =============================================================================
# PROJECT
# =============================================================================


class ProjectLeveling(BaseModel):
    """Leveling results for every package of a project."""

    results: List[CoverageResult] = Field(default_factory=list, description="One result per package")
    winners: Dict[str, WinningBid] = Field(default_factory=dict, description="Selected price per item ID")
    ignored_freeform: int = Field(default=0, description="Freeform submissions left out of the analysis")
    rollup: Optional[PriceRollup] = Field(default=None)

    def result(self, package_id: str) -> Optional[CoverageResult]:
        """Look up a package's coverage result."""
        for result in self.results:
            if result.package_id == package_id:
                return result
        return None
