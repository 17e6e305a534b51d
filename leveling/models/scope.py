"""Scope Pydantic models for bid leveling.

This module defines the read-only value types describing the work to be
priced: scope items, the trade divisions they belong to, and the
GC-defined scope packages that bundle items the way trades actually bid.
"""

from typing import Dict, Iterable, List, Optional

from pydantic import BaseModel, Field, field_validator

from config.errors import ScopeInvariantError


DEFAULT_DIVISION_CODE = "01"
DEFAULT_DIVISION_NAME = "General Requirements"


# =============================================================================
# DIVISION
# =============================================================================


class Division(BaseModel):
    """Trade division (e.g., 26 - Electrical)."""

    code: str = Field(..., description="Division code (e.g., '26')")
    name: str = Field(..., description="Division or trade name")

    model_config = {"frozen": True}


# =============================================================================
# SCOPE ITEM
# =============================================================================


class ScopeItem(BaseModel):
    """A unit of work to be priced.

    Belongs to exactly one division. Items without a division code roll up
    under the default General Requirements division.
    """

    id: str = Field(..., description="Scope item ID")
    division_code: Optional[str] = Field(
        default=None, description="Trade/division code (e.g., '26')"
    )
    trade_name: Optional[str] = Field(
        default=None, description="Trade name (e.g., 'Electrical')"
    )
    description: str = Field(default="", description="Work description")
    quantity: Optional[float] = Field(default=None, ge=0, description="Quantity")
    unit: Optional[str] = Field(default=None, description="Unit of measurement")
    manual_price: Optional[float] = Field(
        default=None, ge=0, description="Fallback price used when no bid exists"
    )

    model_config = {"frozen": True}

    def division(
        self,
        default_code: str = DEFAULT_DIVISION_CODE,
        default_name: str = DEFAULT_DIVISION_NAME,
    ) -> Division:
        """Get the division this item rolls up under."""
        if not self.division_code:
            return Division(code=default_code, name=default_name)
        return Division(code=self.division_code, name=self.trade_name or default_name)


# =============================================================================
# SCOPE PACKAGE
# =============================================================================


class ScopePackage(BaseModel):
    """GC-defined bundle of scope items (e.g., "Complete Electrical").

    Member item IDs keep their order; duplicates collapse to the first
    occurrence.
    """

    id: str = Field(..., description="Scope package ID")
    name: str = Field(..., description="Package name")
    description: Optional[str] = Field(default=None, description="Package description")
    item_ids: List[str] = Field(default_factory=list, description="Ordered member item IDs")

    model_config = {"frozen": True}

    @field_validator("item_ids")
    @classmethod
    def dedupe_item_ids(cls, v: List[str]) -> List[str]:
        """Collapse duplicate member IDs, keeping first occurrence order."""
        return list(dict.fromkeys(v))

    @property
    def item_id_set(self) -> frozenset:
        """Member item IDs as a set."""
        return frozenset(self.item_ids)

    @property
    def is_empty(self) -> bool:
        return not self.item_ids


def ensure_exclusive_packages(packages: Iterable[ScopePackage]) -> Dict[str, str]:
    """Check that no scope item is claimed by more than one package.

    Args:
        packages: Scope packages for one project.

    Returns:
        Mapping of item ID -> owning package ID.

    Raises:
        ScopeInvariantError: If an item belongs to two packages.
    """
    owners: Dict[str, str] = {}
    for package in packages:
        for item_id in package.item_ids:
            owner = owners.get(item_id)
            if owner is not None and owner != package.id:
                raise ScopeInvariantError(item_id=item_id, package_ids=(owner, package.id))
            owners[item_id] = package.id
    return owners


def index_items(items: Iterable[ScopeItem]) -> Dict[str, ScopeItem]:
    """Index scope items by ID, preserving input order."""
    return {item.id: item for item in items}
