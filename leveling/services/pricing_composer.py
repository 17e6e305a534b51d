"""
Pricing Composer for bid leveling.

Selects one price per scope item and rolls the project up into a
client-facing proposal:

- Per item: the winning bid, else the manual price, else zero
- Markup applied to each item and hidden (no markup line)
- Items grouped by division, General Requirements always present and
  carrying general conditions
- Overhead/profit, contingency and custom items listed below the subtotal
"""

from typing import Dict, Iterable, List, Mapping, Optional

import structlog

from config.settings import Settings, settings as default_settings
from models.coverage import ContributionOrigin, CoverageResult, OptionKind
from models.pricing import (
    BottomLineItem,
    DivisionBreakdown,
    PricedItem,
    PriceRollup,
    PriceSource,
    PricingConfig,
    WinningBid,
)
from models.scope import ScopeItem, ScopePackage
from models.submission import (
    ItemBidStatus,
    ItemSubmission,
    PackageBidStatus,
    PackageSubmission,
)

logger = structlog.get_logger(__name__)


# =============================================================================
# Winner selection
# =============================================================================


def select_lowest_bids(
    items: Iterable[ScopeItem],
    item_submissions: Iterable[ItemSubmission],
    package_submissions: Iterable[PackageSubmission] = (),
    packages: Iterable[ScopePackage] = (),
) -> Dict[str, WinningBid]:
    """Pick the lowest positive amount per item.

    Candidates are submitted item bids and even shares of approved package
    bids. Item bids are considered first; on equal amounts the first
    candidate seen keeps the win.

    Returns:
        Mapping of item ID -> WinningBid, in item order. Items without a
        positive candidate are absent.
    """
    item_ids = [item.id for item in items]
    wanted = set(item_ids)
    best: Dict[str, WinningBid] = {}

    def offer(candidate: WinningBid) -> None:
        current = best.get(candidate.item_id)
        if current is None or candidate.amount < current.amount:
            best[candidate.item_id] = candidate

    for bid in item_submissions:
        if bid.status != ItemBidStatus.SUBMITTED or bid.item_id not in wanted:
            continue
        if not bid.amount or bid.amount <= 0:
            continue
        offer(WinningBid(
            item_id=bid.item_id,
            amount=bid.amount,
            subcontractor_id=bid.subcontractor_id,
            subcontractor_name=bid.subcontractor_name,
            origin=ContributionOrigin.ITEM_BID,
            submission_id=bid.id,
        ))

    packages_by_id = {p.id: p for p in packages}
    for pkg_bid in package_submissions:
        package = packages_by_id.get(pkg_bid.package_id)
        if package is None or package.is_empty:
            continue
        if pkg_bid.status != PackageBidStatus.APPROVED or pkg_bid.amount <= 0:
            continue
        share = pkg_bid.amount / len(package.item_ids)
        for item_id in package.item_ids:
            if item_id not in wanted:
                continue
            offer(WinningBid(
                item_id=item_id,
                amount=share,
                subcontractor_id=pkg_bid.subcontractor_id,
                subcontractor_name=pkg_bid.subcontractor_name,
                origin=ContributionOrigin.PACKAGE_BID,
                package_id=package.id,
                submission_id=pkg_bid.id,
            ))

    return {item_id: best[item_id] for item_id in item_ids if item_id in best}


def winners_from_coverage(results: Iterable[CoverageResult]) -> Dict[str, WinningBid]:
    """Derive per-item winners from each package's best option.

    For a single complete bidder every item takes that bidder's amount. For
    a combination each item takes the cheapest member contribution (first
    member on ties).
    """
    winners: Dict[str, WinningBid] = {}
    for result in results:
        option = result.best_option
        if option is None:
            continue
        members = [result.bidder(sid) for sid in option.subcontractor_ids]
        members = [m for m in members if m is not None]
        if option.kind == OptionKind.SINGLE_BIDDER:
            members = members[:1]

        for item_id in result.item_ids:
            chosen = None
            for member in members:
                for contribution in member.contributions:
                    if contribution.item_id != item_id:
                        continue
                    if chosen is None or contribution.amount < chosen[1].amount:
                        chosen = (member, contribution)
            if chosen is None:
                continue
            member, contribution = chosen
            winners[item_id] = WinningBid(
                item_id=item_id,
                amount=max(contribution.amount, 0.0),
                subcontractor_id=member.subcontractor_id,
                subcontractor_name=member.subcontractor_name,
                origin=contribution.origin,
                package_id=result.package_id,
                submission_id=contribution.submission_id,
            )
    return winners


def merge_winners(
    primary: Mapping[str, WinningBid],
    fallback: Mapping[str, WinningBid],
) -> Dict[str, WinningBid]:
    """Combine two winner maps; ``primary`` wins for items in both."""
    merged = dict(fallback)
    merged.update(primary)
    return merged


# =============================================================================
# Roll-up
# =============================================================================


def _price_item(item: ScopeItem, winner: Optional[WinningBid], markup_percent: float) -> PricedItem:
    if winner is not None and winner.amount > 0:
        base, source = winner.amount, PriceSource.BID
    elif item.manual_price and item.manual_price > 0:
        base, source = item.manual_price, PriceSource.MANUAL
    else:
        base, source = 0.0, PriceSource.NONE

    return PricedItem(
        item_id=item.id,
        description=item.description,
        base_amount=round(base, 2),
        amount=round(base * (1 + markup_percent / 100), 2),
        source=source,
        subcontractor_id=winner.subcontractor_id if source == PriceSource.BID else None,
        from_package_bid=source == PriceSource.BID and winner.origin == ContributionOrigin.PACKAGE_BID,
    )


def compose_price_rollup(
    items: Iterable[ScopeItem],
    winners: Mapping[str, WinningBid],
    config: Optional[PricingConfig] = None,
    settings: Optional[Settings] = None,
) -> PriceRollup:
    """Compose the client-facing price roll-up.

    Args:
        items: Project scope items.
        winners: Selected price per item ID.
        config: Markup, general conditions, overhead/profit, contingency and
            custom line items.
        settings: Supplies the default division (code and name).

    Returns:
        PriceRollup with divisions sorted by code. Grand total equals
        subtotal + general conditions + overhead/profit + contingency +
        custom items.
    """
    config = config or PricingConfig()
    settings = settings or default_settings
    default_code = settings.default_division_code
    default_name = settings.default_division_name

    divisions: Dict[str, DivisionBreakdown] = {
        default_code: DivisionBreakdown(code=default_code, name=default_name)
    }
    priced: List[PricedItem] = []

    for item in items:
        ref = item.division(default_code, default_name)
        division = divisions.get(ref.code)
        if division is None:
            division = divisions[ref.code] = DivisionBreakdown(code=ref.code, name=ref.name)
        line = _price_item(item, winners.get(item.id), config.markup_percent)
        division.items.append(line)
        division.total = round(division.total + line.amount, 2)
        priced.append(line)

    if config.general_conditions > 0:
        general = divisions[default_code]
        general.general_conditions = config.general_conditions
        general.total = round(general.total + config.general_conditions, 2)

    subtotal = round(sum(line.amount for line in priced), 2)
    markup_amount = round(sum(line.amount - line.base_amount for line in priced), 2)
    custom_total = sum(line.amount for line in config.custom_line_items)
    grand_total = round(
        subtotal + config.general_conditions + config.overhead_profit + config.contingency + custom_total,
        2,
    )

    bottom_line = [BottomLineItem(label="Subtotal", amount=subtotal)]
    if config.overhead_profit > 0:
        bottom_line.append(BottomLineItem(label="Overhead & Profit", amount=config.overhead_profit))
    if config.contingency > 0:
        bottom_line.append(BottomLineItem(label="Contingency", amount=config.contingency))
    for custom in config.custom_line_items:
        if custom.amount:
            bottom_line.append(BottomLineItem(label=custom.description or "Custom", amount=custom.amount))
    bottom_line.append(BottomLineItem(label="Grand Total", amount=grand_total))

    rollup = PriceRollup(
        divisions=[divisions[code] for code in sorted(divisions)],
        subtotal=subtotal,
        markup_amount=markup_amount,
        general_conditions=config.general_conditions,
        overhead_profit=config.overhead_profit,
        contingency=config.contingency,
        custom_line_items=list(config.custom_line_items),
        bottom_line=bottom_line,
        grand_total=grand_total,
    )

    logger.info(
        "price_rollup_composed",
        items=len(priced),
        divisions=len(rollup.divisions),
        priced_from_bids=sum(1 for line in priced if line.source == PriceSource.BID),
        subtotal=subtotal,
        grand_total=grand_total
    )
    return rollup
