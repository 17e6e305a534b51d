"""
Clarification Workflow for bid leveling.

State machine for lump sums that cover several invited packages:

    none --(unbroken multi-package lump sum)--> pending
    pending --(another unbroken lump sum)--> pending (merged, latest amount wins)
    pending --(per-package breakdown)--> resolved

The workflow returns the tracking record and a "send" intent; it never
delivers messages or writes to storage. Callers must serialize the
read-merge-write cycle per (project, subcontractor) pair; see
services.clarification_ledger for a reference implementation.
"""

from datetime import datetime, timezone
from typing import Dict, List, Optional, Sequence, Set, Tuple
import uuid

import structlog

from config.errors import WorkflowError
from models.clarification import (
    ClarificationAction,
    ClarificationIntent,
    ClarificationOutcome,
    ClarificationRequest,
    ClarificationStatus,
    SubmissionContext,
)
from models.reconciliation import LumpSumPolicy, ReconciliationMode, ReconciliationResult
from models.scope import ScopePackage, index_items
from models.submission import (
    FreeformSubmission,
    PackageBidSource,
    PackageBidStatus,
    PackageSubmission,
)
from services.line_item_reconciler import (
    match_line_entries,
    reconcile_submission,
    select_open_bids,
    skipped_entries,
)

logger = structlog.get_logger(__name__)


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _format_amount(amount: Optional[float]) -> str:
    if amount is None:
        return "an unspecified amount"
    return f"${amount:,.0f}"


# =============================================================================
# Transitions
# =============================================================================


def open_clarification(
    submission: FreeformSubmission,
    invited_packages: Sequence[ScopePackage],
    now: Optional[datetime] = None,
) -> ClarificationRequest:
    """Create a pending request for a multi-package lump sum (none -> pending)."""
    now = now or _now()
    return ClarificationRequest(
        project_id=submission.project_id,
        subcontractor_id=submission.subcontractor_id,
        requested_packages=[p.name for p in invited_packages],
        lump_sum_amount=submission.total_amount,
        status=ClarificationStatus.PENDING,
        source_submission_id=submission.id,
        sent_at=now,
        updated_at=now,
    )


def merge_clarification(
    pending: ClarificationRequest,
    submission: FreeformSubmission,
    invited_packages: Sequence[ScopePackage],
    now: Optional[datetime] = None,
) -> ClarificationRequest:
    """Replace a pending request's amount and packages with the latest lump sum.

    Raises:
        WorkflowError: If the request is not pending.
    """
    if not pending.is_pending:
        raise WorkflowError(
            "Only a pending clarification can be merged",
            clarification_id=pending.id,
            current_status=pending.status.value,
        )
    return pending.model_copy(update={
        "requested_packages": [p.name for p in invited_packages],
        "lump_sum_amount": submission.total_amount,
        "source_submission_id": submission.id,
        "updated_at": now or _now(),
    })


def resolve_clarification(
    pending: ClarificationRequest,
    package_amounts: Dict[str, Optional[float]],
    now: Optional[datetime] = None,
) -> ClarificationRequest:
    """Record the per-package breakdown (pending -> resolved).

    Raises:
        WorkflowError: If the request is not pending.
    """
    if not pending.is_pending:
        raise WorkflowError(
            "Only a pending clarification can be resolved",
            clarification_id=pending.id,
            current_status=pending.status.value,
        )
    now = now or _now()
    return pending.model_copy(update={
        "status": ClarificationStatus.RESOLVED,
        "package_amounts": dict(package_amounts),
        "responded_at": now,
        "updated_at": now,
    })


def build_clarification_intent(
    request: ClarificationRequest,
    project_name: Optional[str] = None,
) -> ClarificationIntent:
    """Compose the outbound request asking for a per-package breakdown."""
    project_label = project_name or request.project_id
    package_lines = "\n".join(f"- {name}: $" for name in request.requested_packages)
    message = (
        f"We received your lump sum bid of {_format_amount(request.lump_sum_amount)}, "
        "which appears to cover multiple bid packages. To properly evaluate your proposal "
        "and ensure accurate comparison with other bidders, we need a breakdown of pricing "
        "by package.\n\n"
        "Please reply with the amount for each package:\n"
        f"{package_lines}\n"
    )
    return ClarificationIntent(
        clarification_id=request.id,
        project_id=request.project_id,
        subcontractor_id=request.subcontractor_id,
        packages=list(request.requested_packages),
        lump_sum_amount=request.lump_sum_amount,
        subject=f"Pricing breakdown requested - {project_label}",
        message=message,
    )


# =============================================================================
# Package-level submissions
# =============================================================================


def build_package_submissions(
    submission: FreeformSubmission,
    invited_packages: Sequence[ScopePackage],
    package_amounts: Dict[str, Optional[float]],
    status: PackageBidStatus,
    source: PackageBidSource,
    clarification_id: Optional[str] = None,
) -> Tuple[List[Tuple[ScopePackage, PackageSubmission]], List[str]]:
    """Turn a per-package amount map into package-level submissions.

    Package names match invited packages case-insensitively. Names with no
    match, and amounts that are missing or not positive, are skipped.

    Returns:
        ([(package, submission), ...], unknown package names)
    """
    by_name = {p.name.lower(): p for p in invited_packages}
    created: List[Tuple[ScopePackage, PackageSubmission]] = []
    unknown: List[str] = []

    for name, amount in package_amounts.items():
        package = by_name.get(name.lower())
        if package is None:
            logger.warning("breakdown_package_not_found", package_name=name)
            unknown.append(name)
            continue
        if not amount or amount <= 0:
            logger.warning("breakdown_amount_not_positive", package_name=name, amount=amount)
            continue
        created.append((
            package,
            PackageSubmission(
                id=str(uuid.uuid4()),
                subcontractor_id=submission.subcontractor_id,
                project_id=submission.project_id,
                package_id=package.id,
                amount=round(float(amount), 2),
                status=status,
                source=source,
                clarification_id=clarification_id,
                notes=f"Package bid for {package.name}",
            ),
        ))
    return created, unknown


# =============================================================================
# Workflow entry point
# =============================================================================


def _apply_breakdown(
    submission: FreeformSubmission,
    context: SubmissionContext,
    pending: Optional[ClarificationRequest],
    now: datetime,
) -> ClarificationOutcome:
    if pending is not None:
        status, source = PackageBidStatus.APPROVED, PackageBidSource.CLARIFICATION_RESPONSE
    else:
        status, source = PackageBidStatus.PENDING_APPROVAL, PackageBidSource.EXTRACTED_FROM_CORRESPONDENCE

    created, unknown = build_package_submissions(
        submission,
        context.invited_packages,
        submission.amounts_by_package,
        status=status,
        source=source,
        clarification_id=pending.id if pending else None,
    )

    # Resolve member items package by package; entries are consumed once.
    reconciliation = None
    if submission.has_usable_line_entries:
        items = index_items(context.items)
        candidates = select_open_bids(submission, context.open_bids)
        used: Set[int] = set()
        updates = []
        for package, _ in created:
            pool = [bid for bid in candidates if bid.item_id in package.item_id_set]
            updates.extend(match_line_entries(submission.line_entries, pool, items, used))
        reconciliation = ReconciliationResult(
            mode=ReconciliationMode.STRUCTURED,
            item_updates=updates,
            skipped_entries=skipped_entries(submission.line_entries, used),
        )

    outcome = ClarificationOutcome(
        package_submissions=[sub for _, sub in created],
        reconciliation=reconciliation,
        unknown_packages=unknown,
    )
    if pending is not None:
        outcome.action = ClarificationAction.RESOLVED
        outcome.request = resolve_clarification(pending, submission.amounts_by_package, now)
        logger.info(
            "clarification_resolved",
            clarification_id=pending.id,
            project_id=submission.project_id,
            subcontractor_id=submission.subcontractor_id,
            packages=len(created)
        )
    return outcome


def process_freeform_submission(
    submission: FreeformSubmission,
    context: SubmissionContext,
    now: Optional[datetime] = None,
    lump_sum_policy: Optional[LumpSumPolicy] = None,
) -> ClarificationOutcome:
    """Run a freeform submission through reconciliation and the clarification state machine.

    Args:
        submission: Extracted freeform submission.
        context: Invited packages, open bids, scope items and the pending
            clarification (if any) for the submission's pair.
        now: Timestamp for state changes (defaults to current UTC time).
        lump_sum_policy: Override for the reconciler's lump-sum policy.

    Returns:
        ClarificationOutcome with the action taken, the new or updated
        request, an optional send intent, new package submissions and the
        reconciliation result.

    Raises:
        WorkflowError: If the pending clarification belongs to another pair.
    """
    now = now or _now()
    pending = context.pending_clarification
    if pending is not None and not pending.is_pending:
        pending = None
    if pending is not None and pending.key != (submission.project_id, submission.subcontractor_id):
        raise WorkflowError(
            "Pending clarification belongs to a different project/subcontractor pair",
            clarification_id=pending.id,
            current_status=pending.status.value,
        )

    if submission.has_breakdown:
        return _apply_breakdown(submission, context, pending, now)

    invited = context.invited_packages
    reconciliation = reconcile_submission(
        submission,
        context.open_bids,
        context.items,
        invited_package_count=len(invited),
        lump_sum_policy=lump_sum_policy,
    )
    outcome = ClarificationOutcome(reconciliation=reconciliation)

    if reconciliation.needs_clarification:
        if pending is None:
            request = open_clarification(submission, invited, now)
            outcome.action = ClarificationAction.REQUESTED
            outcome.request = request
            outcome.intent = build_clarification_intent(request, context.project_name)
            logger.info(
                "clarification_requested",
                clarification_id=request.id,
                project_id=submission.project_id,
                subcontractor_id=submission.subcontractor_id,
                packages=request.requested_packages,
                amount=request.lump_sum_amount
            )
        else:
            outcome.action = ClarificationAction.MERGED
            outcome.request = merge_clarification(pending, submission, invited, now)
            logger.info(
                "clarification_merged",
                clarification_id=pending.id,
                previous_amount=pending.lump_sum_amount,
                amount=submission.total_amount
            )
        return outcome

    if len(invited) == 1 and submission.total_amount and submission.total_amount > 0:
        created, _ = build_package_submissions(
            submission,
            invited,
            {invited[0].name: submission.total_amount},
            status=PackageBidStatus.PENDING_APPROVAL,
            source=PackageBidSource.EXTRACTED_FROM_CORRESPONDENCE,
        )
        outcome.package_submissions = [sub for _, sub in created]

    return outcome
