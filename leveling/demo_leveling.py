#!/usr/bin/env python3
"""Demo script to run the bid leveling engine locally.

This script:
1. Levels an electrical package where two partial bidders beat a complete one
2. Sends a multi-package lump sum through the clarification workflow
3. Applies the per-package breakdown that answers the clarification
4. Composes the client-facing price roll-up

Usage:
    cd leveling
    python demo_leveling.py
"""

import json
from typing import Any, Dict, List

import structlog

from models.clarification import SubmissionContext
from models.pricing import CustomLineItem, PricingConfig
from models.scope import ScopeItem, ScopePackage
from models.submission import FreeformSubmission, ItemBidStatus, ItemSubmission
from services.clarification_ledger import ClarificationLedger
from services.leveling_service import price_project
from utils.leveling_logger import (
    configure_logging,
    log_clarification,
    log_leveling_start,
    log_price_rollup,
    log_summary,
)

logger = structlog.get_logger()

PROJECT_ID = "proj-demo"


# =============================================================================
# MOCK DATA
# =============================================================================


def build_scope() -> Dict[str, Any]:
    """Build the demo scope: four items in two packages plus one loose item."""
    items = [
        ScopeItem(id="e-1", division_code="26", trade_name="Electrical", description="Branch wiring and devices"),
        ScopeItem(id="e-2", division_code="26", trade_name="Electrical", description="Lighting fixtures"),
        ScopeItem(id="f-1", division_code="28", trade_name="Fire Alarm", description="Fire alarm panel"),
        ScopeItem(id="f-2", division_code="28", trade_name="Fire Alarm", description="Smoke detectors and horns"),
        ScopeItem(id="g-1", description="Temporary protection", manual_price=1500.0),
    ]
    packages = [
        ScopePackage(id="pkg-elec", name="Electrical", item_ids=["e-1", "e-2"]),
        ScopePackage(id="pkg-fa", name="Fire Alarm", item_ids=["f-1", "f-2"]),
    ]
    return {"items": items, "packages": packages}


def build_item_bids() -> List[ItemSubmission]:
    """Electrical bids: X is complete, Y and Z together are cheaper."""
    bids = []
    for sub_id, name, amounts in (
        ("sub-x", "Volt Brothers", {"e-1": 100.0, "e-2": 120.0}),
        ("sub-y", "Wire Works", {"e-1": 90.0}),
        ("sub-z", "Bright Lights", {"e-2": 110.0}),
    ):
        for item_id, amount in amounts.items():
            bids.append(ItemSubmission(
                id=f"{sub_id}-{item_id}",
                subcontractor_id=sub_id,
                subcontractor_name=name,
                project_id=PROJECT_ID,
                item_id=item_id,
                amount=amount,
                status=ItemBidStatus.SUBMITTED,
            ))
    return bids


def build_open_bids(items: List[ScopeItem]) -> List[ItemSubmission]:
    """Invitations for the fire protection subcontractor on every packaged item."""
    return [
        ItemSubmission(
            id=f"sub-spark-{item.id}",
            subcontractor_id="sub-spark",
            subcontractor_name="Spark Fire & Electric",
            project_id=PROJECT_ID,
            item_id=item.id,
        )
        for item in items
        if item.id != "g-1"
    ]


# =============================================================================
# DEMO
# =============================================================================


def run_demo() -> Dict[str, Any]:
    """Run every demo step and return a JSON-serializable summary."""
    scope = build_scope()
    items, packages = scope["items"], scope["packages"]
    item_bids = build_item_bids()
    open_bids = build_open_bids(items)

    log_leveling_start(PROJECT_ID, len(packages), len(item_bids))

    # Step 1-2: multi-package lump sum -> clarification request
    ledger = ClarificationLedger()

    def context_factory() -> SubmissionContext:
        return SubmissionContext(
            invited_packages=packages,
            open_bids=open_bids,
            items=items,
            project_name="Demo Medical Office",
        )

    lump_sum = FreeformSubmission(
        id="email-1",
        subcontractor_id="sub-spark",
        project_id=PROJECT_ID,
        total_amount=50000.0,
        is_lump_sum=True,
        lump_sum_for_multiple=True,
        confidence=0.9,
    )
    requested = ledger.process(lump_sum, context_factory)
    log_clarification(requested)

    # Step 3: breakdown -> resolved, approved package bids
    breakdown = FreeformSubmission(
        id="email-2",
        subcontractor_id="sub-spark",
        project_id=PROJECT_ID,
        total_amount=50000.0,
        amounts_by_package={"Electrical": 32000.0, "Fire Alarm": 18000.0},
        confidence=0.95,
    )
    resolved = ledger.process(breakdown, context_factory)
    log_clarification(resolved)

    # Step 4: level and price
    config = PricingConfig(
        markup_percent=10.0,
        general_conditions=2500.0,
        overhead_profit=1200.0,
        contingency=800.0,
        custom_line_items=[CustomLineItem(description="Permit allowance", amount=450.0)],
    )
    leveling = price_project(
        items,
        packages,
        [*item_bids, *resolved.package_submissions],
        config=config,
        verbose=True,
    )
    log_price_rollup(leveling.rollup, show_items=True)

    electrical = leveling.result("pkg-elec")
    summary = {
        "electrical_best_option": electrical.best_option.model_dump(mode="json") if electrical.best_option else None,
        "electrical_combinations": [
            {"subcontractors": c.subcontractor_ids, "total": c.total} for c in electrical.combinations
        ],
        "clarification_requested": requested.action.value,
        "clarification_status": resolved.request.status.value if resolved.request else None,
        "package_amounts": resolved.request.package_amounts if resolved.request else None,
        "package_submissions": [
            {"package_id": s.package_id, "amount": s.amount, "status": s.status.value}
            for s in resolved.package_submissions
        ],
        "winners": {item_id: w.amount for item_id, w in leveling.winners.items()},
        "subtotal": leveling.rollup.subtotal,
        "grand_total": leveling.rollup.grand_total,
    }
    log_summary("Demo summary", summary)
    logger.info("demo_complete", grand_total=summary["grand_total"])
    return summary


def main() -> None:
    configure_logging()
    summary = run_demo()
    print(json.dumps(summary, indent=2))


if __name__ == "__main__":
    main()
