"""
Coverage Analyzer for bid leveling.

Computes, per scope package, which subcontractors priced which member items
and at what total, then asks the Combination Finder to fill the gaps.

Handles the "apples to apples" comparison problem:
- Electrician 1: Wiring + Low Voltage + Fire Alarm = $50k (complete)
- Electrician 2: Wiring only = $35k
- Low Voltage Sub: Low Voltage + Fire Alarm = $18k

Shows $50k vs $53k (35k + 18k) for the complete electrical package.
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

import structlog

from models.coverage import (
    BidderCoverage,
    ContributionOrigin,
    CoverageResult,
    ItemContribution,
    LevelingOption,
    OptionKind,
)
from models.scope import ScopePackage
from models.submission import (
    ItemBidStatus,
    ItemSubmission,
    PackageBidStatus,
    PackageSubmission,
)
from services.combination_finder import find_completing_combinations

logger = structlog.get_logger(__name__)


@dataclass
class _BidderAccumulator:
    """Per-bidder contributions collected while scanning submissions."""

    subcontractor_id: str
    subcontractor_name: Optional[str] = None
    contributions: Dict[str, ItemContribution] = field(default_factory=dict)

    def offer(self, contribution: ItemContribution) -> None:
        """Record a contribution; a real item bid is never replaced by a package share."""
        current = self.contributions.get(contribution.item_id)
        if (
            current is not None
            and current.origin == ContributionOrigin.ITEM_BID
            and contribution.origin == ContributionOrigin.PACKAGE_BID
        ):
            return
        self.contributions[contribution.item_id] = contribution


def expand_package_submission(
    submission: PackageSubmission,
    package: ScopePackage,
) -> List[ItemContribution]:
    """Spread a package bid evenly over the package's member items.

    Args:
        submission: Package-level bid.
        package: The package it prices.

    Returns:
        One virtual contribution per member item (amount / member count).
    """
    if package.is_empty or not submission.amount:
        return []
    share = submission.amount / len(package.item_ids)
    return [
        ItemContribution(
            item_id=item_id,
            amount=share,
            origin=ContributionOrigin.PACKAGE_BID,
            submission_id=submission.id,
        )
        for item_id in package.item_ids
    ]


def _summarize(acc: _BidderAccumulator, package: ScopePackage) -> BidderCoverage:
    ordered = [acc.contributions[i] for i in package.item_ids if i in acc.contributions]
    covered = [c.item_id for c in ordered]
    missing = [i for i in package.item_ids if i not in acc.contributions]
    return BidderCoverage(
        subcontractor_id=acc.subcontractor_id,
        subcontractor_name=acc.subcontractor_name,
        contributions=ordered,
        covered_item_ids=covered,
        missing_item_ids=missing,
        total=round(sum(c.amount for c in ordered), 2),
        is_complete=not missing,
        coverage_percent=round(len(covered) / len(package.item_ids) * 100, 2),
    )


def _sort_key(bidder: BidderCoverage):
    # Complete bidders first by total; partial by coverage desc, then total
    if bidder.is_complete:
        return (0, 0.0, bidder.total)
    return (1, -bidder.coverage_percent, bidder.total)


def _best_option(result: CoverageResult) -> Optional[LevelingOption]:
    complete = result.complete_bidders
    cheapest_complete = min(complete, key=lambda b: b.total) if complete else None
    cheapest_combo = result.combinations[0] if result.combinations else None

    if cheapest_complete and (cheapest_combo is None or cheapest_complete.total <= cheapest_combo.total):
        return LevelingOption(
            kind=OptionKind.SINGLE_BIDDER,
            subcontractor_ids=[cheapest_complete.subcontractor_id],
            total=cheapest_complete.total,
        )
    if cheapest_combo:
        return LevelingOption(
            kind=OptionKind.COMBINATION,
            subcontractor_ids=cheapest_combo.subcontractor_ids,
            total=cheapest_combo.total,
        )
    return None


def analyze_package_coverage(
    package: ScopePackage,
    item_submissions: Iterable[ItemSubmission] = (),
    package_submissions: Iterable[PackageSubmission] = (),
    max_combinations: Optional[int] = None,
    max_triple_bidders: Optional[int] = None,
    time_budget_seconds: Optional[float] = None,
) -> CoverageResult:
    """Analyze bidder coverage for a scope package.

    Args:
        package: The scope package to level.
        item_submissions: Item-level bids; only ``submitted`` bids on member
            items qualify.
        package_submissions: Package-level bids; only ``approved`` bids for
            this package qualify.
        max_combinations: Override for the number of combinations returned.
        max_triple_bidders: Override for the triple search bound.
        time_budget_seconds: Override for the triple search time budget.

    Returns:
        CoverageResult with bidders sorted (complete first) and completing
        combinations.
    """
    if package.is_empty:
        return CoverageResult(package_id=package.id, package_name=package.name)

    member_ids = package.item_id_set
    bidders: Dict[str, _BidderAccumulator] = {}

    def accumulator(subcontractor_id: str, name: Optional[str]) -> _BidderAccumulator:
        acc = bidders.get(subcontractor_id)
        if acc is None:
            acc = bidders[subcontractor_id] = _BidderAccumulator(subcontractor_id, name)
        elif name and not acc.subcontractor_name:
            acc.subcontractor_name = name
        return acc

    for pkg_bid in package_submissions:
        if pkg_bid.package_id != package.id or pkg_bid.status != PackageBidStatus.APPROVED:
            continue
        shares = expand_package_submission(pkg_bid, package)
        if not shares:
            continue
        acc = accumulator(pkg_bid.subcontractor_id, pkg_bid.subcontractor_name)
        for share in shares:
            acc.offer(share)

    for bid in item_submissions:
        if bid.status != ItemBidStatus.SUBMITTED or bid.item_id not in member_ids:
            continue
        accumulator(bid.subcontractor_id, bid.subcontractor_name).offer(
            ItemContribution(
                item_id=bid.item_id,
                amount=float(bid.amount or 0),
                origin=ContributionOrigin.ITEM_BID,
                submission_id=bid.id,
            )
        )

    coverage = sorted(
        (_summarize(acc, package) for acc in bidders.values()),
        key=_sort_key,
    )

    search = find_completing_combinations(
        [b for b in coverage if not b.is_complete],
        package.item_ids,
        max_combinations=max_combinations,
        max_triple_bidders=max_triple_bidders,
        time_budget_seconds=time_budget_seconds,
    )

    result = CoverageResult(
        package_id=package.id,
        package_name=package.name,
        item_ids=list(package.item_ids),
        bidders=coverage,
        combinations=search.combinations,
        search_truncated=search.truncated,
        truncation_reason=search.truncation_reason,
    )
    result.best_option = _best_option(result)

    logger.info(
        "package_coverage_analyzed",
        package_id=package.id,
        items=len(package.item_ids),
        bidders=len(coverage),
        complete_bidders=len(result.complete_bidders),
        combinations=len(result.combinations),
        best_total=result.best_option.total if result.best_option else None,
        truncated=search.truncated
    )
    return result
