"""
Leveling Service: project-level orchestration.

Runs the leveling pipeline across every package of a project:

1. Check that packages are mutually exclusive
2. Split submissions by kind (freeform submissions are reported and left
   out; they must be reconciled first)
3. Analyze coverage per package (with completing combinations)
4. Select a price per item: the package's best option first, then the
   lowest item bid or package share
5. Optionally compose the client-facing roll-up
"""

from typing import Iterable, List, Optional

import structlog

from config.settings import Settings, settings as default_settings
from models.pricing import PricingConfig, ProjectLeveling
from models.scope import ScopeItem, ScopePackage, ensure_exclusive_packages
from models.submission import FreeformSubmission, ItemSubmission, PackageSubmission
from services.coverage_analyzer import analyze_package_coverage
from services.pricing_composer import (
    compose_price_rollup,
    merge_winners,
    select_lowest_bids,
    winners_from_coverage,
)
from utils.leveling_logger import log_package_coverage

logger = structlog.get_logger(__name__)


def level_project(
    items: Iterable[ScopeItem],
    packages: Iterable[ScopePackage],
    submissions: Iterable,
    settings: Optional[Settings] = None,
    verbose: bool = False,
) -> ProjectLeveling:
    """Level every package of a project.

    Args:
        items: Project scope items.
        packages: Project scope packages.
        submissions: Item, package and freeform submissions (any order).
        settings: Search bounds; defaults to the module settings.
        verbose: Print a console summary per package.

    Returns:
        ProjectLeveling with one CoverageResult per package and the
        selected price per item.

    Raises:
        ScopeInvariantError: If an item belongs to two packages.
    """
    settings = settings or default_settings
    items = list(items)
    packages = list(packages)
    ensure_exclusive_packages(packages)

    item_bids: List[ItemSubmission] = []
    package_bids: List[PackageSubmission] = []
    ignored = 0
    for submission in submissions:
        if isinstance(submission, ItemSubmission):
            item_bids.append(submission)
        elif isinstance(submission, PackageSubmission):
            package_bids.append(submission)
        elif isinstance(submission, FreeformSubmission):
            ignored += 1
        else:
            raise TypeError(f"Unsupported submission type: {type(submission).__name__}")

    if ignored:
        logger.warning("freeform_submissions_ignored", count=ignored)

    results = []
    for package in packages:
        result = analyze_package_coverage(
            package,
            item_submissions=item_bids,
            package_submissions=package_bids,
            max_combinations=settings.max_combinations,
            max_triple_bidders=settings.max_triple_bidders,
            time_budget_seconds=settings.combination_time_budget_seconds,
        )
        if verbose:
            log_package_coverage(result)
        results.append(result)

    winners = merge_winners(
        winners_from_coverage(results),
        select_lowest_bids(items, item_bids, package_bids, packages),
    )

    logger.info(
        "project_leveled",
        packages=len(results),
        covered_packages=sum(1 for r in results if r.has_complete_coverage),
        items=len(items),
        priced_items=len(winners),
        ignored_freeform=ignored
    )

    return ProjectLeveling(results=results, winners=winners, ignored_freeform=ignored)


def price_project(
    items: Iterable[ScopeItem],
    packages: Iterable[ScopePackage],
    submissions: Iterable,
    config: Optional[PricingConfig] = None,
    settings: Optional[Settings] = None,
    verbose: bool = False,
) -> ProjectLeveling:
    """Level a project and compose its price roll-up.

    Returns:
        ProjectLeveling with ``rollup`` set.
    """
    items = list(items)
    leveling = level_project(items, packages, submissions, settings=settings, verbose=verbose)
    leveling.rollup = compose_price_rollup(items, leveling.winners, config, settings=settings)
    return leveling
