"""
Combination Finder for bid leveling.

Searches small subsets of partial bidders for combinations whose coverage
unions to the full package.

Architecture:
- Brute-force enumeration: all pairs, then all triples only if no pair
  completes the package
- Bounded: partial bidders per package are expected to number in the tens
  at most; the triple search is skipped above ``max_triple_bidders`` and
  stopped when the wall-clock budget runs out
- No general set-cover solver; enumeration order fixes tie-breaks
"""

from itertools import combinations as subsets
from typing import Iterable, List, Optional, Sequence
import time

import structlog

from config.settings import settings
from models.coverage import (
    BidderCoverage,
    CombinationSearch,
    CompletingCombination,
    TruncationReason,
)

logger = structlog.get_logger(__name__)


def _completes(members: Sequence[BidderCoverage], full_item_ids: frozenset) -> bool:
    """Check whether the members' covered items union to exactly the full set."""
    covered = set()
    for member in members:
        covered.update(member.covered_item_ids)
    return covered == full_item_ids


def _build(members: Sequence[BidderCoverage]) -> CompletingCombination:
    return CompletingCombination(
        members=list(members),
        total=round(sum(m.total for m in members), 2),
    )


def find_completing_combinations(
    partial_bidders: Sequence[BidderCoverage],
    full_item_ids: Iterable[str],
    max_combinations: Optional[int] = None,
    max_triple_bidders: Optional[int] = None,
    time_budget_seconds: Optional[float] = None,
) -> CombinationSearch:
    """Find pairs (or, failing that, triples) of partial bidders that complete a package.

    Args:
        partial_bidders: Bidders that do not cover the whole package alone.
        full_item_ids: Every item ID of the package.
        max_combinations: Maximum combinations returned (cheapest first).
        max_triple_bidders: Above this many partial bidders the triple search
            is skipped.
        time_budget_seconds: Wall-clock budget for the triple search.

    Returns:
        CombinationSearch with combinations sorted ascending by total and a
        truncation flag when a guard fired.
    """
    if max_combinations is None:
        max_combinations = settings.max_combinations
    if max_triple_bidders is None:
        max_triple_bidders = settings.max_triple_bidders
    if time_budget_seconds is None:
        time_budget_seconds = settings.combination_time_budget_seconds

    full_set = frozenset(full_item_ids)
    bidders = [b for b in partial_bidders if not b.is_complete and b.covered_item_ids]
    found: List[CompletingCombination] = []
    tested = 0
    truncation_reason = None

    if not full_set or len(bidders) < 2:
        return CombinationSearch()

    for pair in subsets(bidders, 2):
        tested += 1
        if _completes(pair, full_set):
            found.append(_build(pair))

    if not found and len(bidders) >= 3:
        if len(bidders) > max_triple_bidders:
            truncation_reason = TruncationReason.PARTIAL_BIDDER_LIMIT
            logger.warning(
                "triple_search_skipped",
                partial_bidders=len(bidders),
                limit=max_triple_bidders
            )
        else:
            deadline = time.monotonic() + time_budget_seconds
            for triple in subsets(bidders, 3):
                if time.monotonic() > deadline:
                    truncation_reason = TruncationReason.TIME_BUDGET
                    logger.warning(
                        "triple_search_time_budget_exceeded",
                        partial_bidders=len(bidders),
                        tested=tested,
                        budget_seconds=time_budget_seconds
                    )
                    break
                tested += 1
                if _completes(triple, full_set):
                    found.append(_build(triple))

    found.sort(key=lambda c: c.total)

    logger.debug(
        "combination_search_complete",
        partial_bidders=len(bidders),
        tested=tested,
        found=len(found),
        truncated=truncation_reason is not None
    )

    return CombinationSearch(
        combinations=found[:max_combinations],
        truncated=truncation_reason is not None,
        truncation_reason=truncation_reason,
        candidates_tested=tested,
    )
