"""
Line-Item Reconciler for bid leveling.

Applies a freeform (extracted) submission to a subcontractor's open item
bids for one project.

Modes:
- Structured: each line entry with an amount goes to the best-scoring
  open item (trade hint + description word overlap); an item is never
  matched twice
- Lump sum: a single total goes to the first open item and the rest are
  marked as included at zero (or, with the ``even`` policy, the total is
  split across all open items)
- Clarification required: a lump sum covering several invited packages is
  not spread over items; the Clarification Workflow asks for a breakdown

Matching is token/substring based. Ties go to the open item encountered
first, so results follow the input order of the open bids.
"""

from typing import Iterable, List, Mapping, Optional, Set, Union

import structlog

from config.settings import settings
from models.reconciliation import (
    ItemSubmissionUpdate,
    LumpSumPolicy,
    ReconciliationMode,
    ReconciliationResult,
    SkippedEntry,
    SkipReason,
)
from models.scope import ScopeItem, index_items
from models.submission import FreeformSubmission, ItemBidStatus, ItemSubmission, LineEntry

logger = structlog.get_logger(__name__)

ItemsArg = Union[Mapping[str, ScopeItem], Iterable[ScopeItem]]


def _items_by_id(items: ItemsArg) -> Mapping[str, ScopeItem]:
    if isinstance(items, Mapping):
        return items
    return index_items(items)


def score_match(
    entry: LineEntry,
    item: Optional[ScopeItem],
    trade_match_weight: Optional[int] = None,
    min_word_length: Optional[int] = None,
) -> int:
    """Score how well a line entry describes a scope item.

    Args:
        entry: Extracted line entry.
        item: Candidate scope item (None scores zero).
        trade_match_weight: Points for a trade hint match.
        min_word_length: Description words must be longer than this.

    Returns:
        ``trade_match_weight`` if the trade hint and the item's trade name
        contain one another (case-insensitive), plus one point per entry
        description word overlapping some item description word.
    """
    if item is None:
        return 0
    if trade_match_weight is None:
        trade_match_weight = settings.trade_match_weight
    if min_word_length is None:
        min_word_length = settings.min_word_length

    score = 0
    entry_trade = (entry.trade or "").lower()
    item_trade = (item.trade_name or "").lower()
    if entry_trade and item_trade and (entry_trade in item_trade or item_trade in entry_trade):
        score += trade_match_weight

    entry_desc = (entry.description or "").lower()
    item_desc = (item.description or "").lower()
    if entry_desc and item_desc:
        item_words = item_desc.split()
        score += sum(
            1
            for word in entry_desc.split()
            if len(word) > min_word_length and any(iw in word or word in iw for iw in item_words)
        )
    return score


def match_line_entries(
    entries: List[LineEntry],
    open_bids: List[ItemSubmission],
    items: Mapping[str, ScopeItem],
    used_entries: Optional[Set[int]] = None,
) -> List[ItemSubmissionUpdate]:
    """Assign line entry amounts to the best-matching open bids.

    Args:
        entries: Line entries in input order.
        open_bids: Candidate open bids in input order.
        items: Scope items by ID.
        used_entries: Indexes of entries already consumed; matched indexes
            are added to it.

    Returns:
        One update per matched entry. No bid appears twice.
    """
    used = used_entries if used_entries is not None else set()
    remaining = list(open_bids)
    updates: List[ItemSubmissionUpdate] = []

    for index, entry in enumerate(entries):
        if index in used or not entry.is_usable or not remaining:
            continue

        best_bid = None
        best_score = 0
        for bid in remaining:
            score = score_match(entry, items.get(bid.item_id))
            if score > best_score:
                best_score = score
                best_bid = bid

        if best_bid is None:
            continue

        updates.append(
            ItemSubmissionUpdate(
                submission_id=best_bid.id,
                item_id=best_bid.item_id,
                amount=round(entry.amount, 2),
                entry_index=index,
                match_score=best_score,
            )
        )
        used.add(index)
        remaining.remove(best_bid)

    return updates


def skipped_entries(entries: List[LineEntry], used_entries: Set[int]) -> List[SkippedEntry]:
    """List the entries that produced no update, with the reason."""
    skipped = []
    for index, entry in enumerate(entries):
        if index in used_entries:
            continue
        reason = SkipReason.UNMATCHED if entry.is_usable else SkipReason.NO_AMOUNT
        skipped.append(SkippedEntry(entry_index=index, reason=reason))
    return skipped


def apply_lump_sum(
    total: float,
    open_bids: List[ItemSubmission],
    items: Mapping[str, ScopeItem],
    policy: LumpSumPolicy = LumpSumPolicy.FULL,
) -> List[ItemSubmissionUpdate]:
    """Spread a lump sum over open bids without double counting.

    Args:
        total: Lump sum amount.
        open_bids: Open bids in input order.
        items: Scope items by ID (used for the "see <trade>" note).
        policy: FULL puts the whole total on the first bid and zero on the
            rest; EVEN splits it, with the rounding remainder on the last bid.

    Returns:
        One update per open bid, all marked submitted.
    """
    count = len(open_bids)
    if count == 0:
        return []
    if count == 1:
        only = open_bids[0]
        return [ItemSubmissionUpdate(submission_id=only.id, item_id=only.item_id, amount=round(total, 2))]

    if policy == LumpSumPolicy.EVEN:
        share = round(total / count, 2)
        last = round(total - share * (count - 1), 2)
        note = f"Split from lump sum of ${total:,.2f}"
        return [
            ItemSubmissionUpdate(
                submission_id=bid.id,
                item_id=bid.item_id,
                amount=last if position == count - 1 else share,
                notes=note,
            )
            for position, bid in enumerate(open_bids)
        ]

    first = open_bids[0]
    first_item = items.get(first.item_id)
    see = (first_item.trade_name if first_item else None) or "first item"
    updates = [
        ItemSubmissionUpdate(
            submission_id=first.id,
            item_id=first.item_id,
            amount=round(total, 2),
            notes=f"Lump sum for {count} items",
        )
    ]
    for bid in open_bids[1:]:
        updates.append(
            ItemSubmissionUpdate(
                submission_id=bid.id,
                item_id=bid.item_id,
                amount=0.0,
                notes=f"Included in lump sum (see {see})",
            )
        )
    return updates


def select_open_bids(
    submission: FreeformSubmission,
    bids: Iterable[ItemSubmission],
) -> List[ItemSubmission]:
    """Filter to invited bids for the submission's subcontractor and project."""
    return [
        bid for bid in bids
        if bid.status == ItemBidStatus.INVITED
        and bid.subcontractor_id == submission.subcontractor_id
        and (bid.project_id is None or bid.project_id == submission.project_id)
    ]


def requires_clarification(submission: FreeformSubmission, invited_package_count: int) -> bool:
    """Check for a lump sum spanning several invited packages without a breakdown."""
    return (
        invited_package_count > 1
        and bool(submission.total_amount)
        and submission.is_unbroken_lump_sum
    )


def reconcile_submission(
    submission: FreeformSubmission,
    open_bids: Iterable[ItemSubmission],
    items: ItemsArg,
    invited_package_count: int = 0,
    lump_sum_policy: Optional[LumpSumPolicy] = None,
) -> ReconciliationResult:
    """Reconcile a freeform submission against open item bids.

    Args:
        submission: Extracted freeform submission.
        open_bids: Item-level bids; only invited bids for the same
            subcontractor and project are considered, in input order.
        items: Scope items (mapping by ID or iterable).
        invited_package_count: Number of packages the subcontractor was
            invited to.
        lump_sum_policy: FULL or EVEN; defaults to the configured policy.

    Returns:
        ReconciliationResult. Malformed or unusable input yields a no-op
        result with a diagnostic reason instead of raising.
    """
    items_by_id = _items_by_id(items)
    policy = lump_sum_policy or LumpSumPolicy(settings.lump_sum_policy)
    candidates = select_open_bids(submission, open_bids)
    log = logger.bind(
        project_id=submission.project_id,
        subcontractor_id=submission.subcontractor_id,
        submission_id=submission.id
    )

    if requires_clarification(submission, invited_package_count):
        log.info("reconciliation_needs_clarification", invited_packages=invited_package_count)
        return ReconciliationResult(mode=ReconciliationMode.CLARIFICATION_REQUIRED)

    has_entries = submission.has_usable_line_entries
    if not has_entries and not (submission.total_amount and submission.total_amount > 0):
        log.warning("reconciliation_no_usable_amount", line_entries=len(submission.line_entries))
        return ReconciliationResult(
            mode=ReconciliationMode.NO_OP,
            reason="no_usable_amount",
            skipped_entries=skipped_entries(submission.line_entries, set()),
        )

    if not candidates:
        log.warning("reconciliation_no_open_items")
        return ReconciliationResult(mode=ReconciliationMode.NO_OP, reason="no_open_items")

    if has_entries:
        used: Set[int] = set()
        updates = match_line_entries(submission.line_entries, candidates, items_by_id, used)
        result = ReconciliationResult(
            mode=ReconciliationMode.STRUCTURED,
            item_updates=updates,
            skipped_entries=skipped_entries(submission.line_entries, used),
        )
    else:
        result = ReconciliationResult(
            mode=ReconciliationMode.LUMP_SUM,
            item_updates=apply_lump_sum(submission.total_amount, candidates, items_by_id, policy),
        )

    log.info(
        "submission_reconciled",
        mode=result.mode.value,
        updates=len(result.item_updates),
        skipped=len(result.skipped_entries),
        applied_total=result.applied_total
    )
    return result
