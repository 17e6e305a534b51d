"""Leveling Output Logger.

Provides highly visible, formatted console summaries for leveling runs,
alongside structured log events for log aggregation.
"""

import json
import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog

from config.settings import settings
from models.clarification import ClarificationOutcome
from models.coverage import CoverageResult
from models.pricing import PriceRollup

logger = structlog.get_logger(__name__)

# Visual markers for different log types
BANNER_WIDTH = 80
RUN_BANNER_CHAR = "█"
PACKAGE_BANNER_CHAR = "═"
CLARIFICATION_BANNER_CHAR = "░"
PRICING_BANNER_CHAR = "─"


def configure_logging(level: Optional[str] = None) -> None:
    """Configure structlog for console output.

    Args:
        level: Log level name; defaults to LOG_LEVEL from settings.
    """
    level_name = (level or settings.log_level).upper()
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.dev.ConsoleRenderer()
        ],
        wrapper_class=structlog.make_filtering_bound_logger(getattr(logging, level_name, logging.INFO)),
    )


def _create_banner(char: str, text: str, width: int = BANNER_WIDTH) -> str:
    """Create a centered banner with given character."""
    text_with_spaces = f" {text} "
    padding = (width - len(text_with_spaces)) // 2
    return char * padding + text_with_spaces + char * (width - padding - len(text_with_spaces))


def _format_json(data: Dict[str, Any], indent: int = 2) -> str:
    """Format dictionary as pretty JSON string."""
    try:
        return json.dumps(data, indent=indent, default=str, ensure_ascii=False)
    except (TypeError, ValueError):
        return str(data)


def _money(amount: Optional[float]) -> str:
    return "n/a" if amount is None else f"${amount:,.2f}"


def log_leveling_start(project_id: str, package_count: int, submission_count: int) -> None:
    """Log the start of a project leveling run."""
    timestamp = datetime.now(timezone.utc).isoformat()

    print("\n")
    print(RUN_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(RUN_BANNER_CHAR, "BID LEVELING STARTED"))
    print(RUN_BANNER_CHAR * BANNER_WIDTH)
    print(f"║ Project ID   : {project_id}")
    print(f"║ Timestamp    : {timestamp}")
    print(f"║ Packages     : {package_count}")
    print(f"║ Submissions  : {submission_count}")
    print(RUN_BANNER_CHAR * BANNER_WIDTH)

    logger.info(
        "leveling_start_logged",
        project_id=project_id,
        packages=package_count,
        submissions=submission_count
    )


def log_package_coverage(result: CoverageResult) -> None:
    """Log one package's bidders, combinations and best option."""
    print("\n")
    print(PACKAGE_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(PACKAGE_BANNER_CHAR, f"PACKAGE: {(result.package_name or result.package_id).upper()}"))
    print(PACKAGE_BANNER_CHAR * BANNER_WIDTH)
    print(f"║ Items        : {len(result.item_ids)}")
    print(f"║ Bidders      : {len(result.bidders)} ({len(result.complete_bidders)} complete)")

    for bidder in result.bidders:
        label = bidder.subcontractor_name or bidder.subcontractor_id
        marker = "✓" if bidder.is_complete else f"{bidder.coverage_percent:.0f}%"
        print(f"║   • {label}: {_money(bidder.total)} [{marker}]")

    if result.combinations:
        print("║ COMBINATIONS:")
        for combo in result.combinations:
            print(f"║   → {' + '.join(combo.subcontractor_ids)}: {_money(combo.total)}")
    if result.search_truncated:
        print(f"║ Search truncated ({result.truncation_reason.value})")

    best = result.best_option
    if best:
        print(f"║ Best option  : {best.kind.value} {', '.join(best.subcontractor_ids)} at {_money(best.total)}")
    else:
        print("║ Best option  : none (package not fully covered)")
    print(PACKAGE_BANNER_CHAR * BANNER_WIDTH)

    logger.info(
        "package_coverage_logged",
        package_id=result.package_id,
        bidders=len(result.bidders),
        combinations=len(result.combinations),
        best_total=best.total if best else None
    )


def log_clarification(outcome: ClarificationOutcome) -> None:
    """Log what the clarification workflow did with a submission."""
    request = outcome.request

    print("\n")
    print(CLARIFICATION_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(CLARIFICATION_BANNER_CHAR, f"CLARIFICATION: {outcome.action.value.upper()}"))
    print(CLARIFICATION_BANNER_CHAR * BANNER_WIDTH)
    if request:
        print(f"░ Request ID   : {request.id}")
        print(f"░ Status       : {request.status.value}")
        print(f"░ Packages     : {', '.join(request.requested_packages)}")
        print(f"░ Lump sum     : {_money(request.lump_sum_amount)}")
        if request.package_amounts:
            print("░ BREAKDOWN:")
            for name, amount in request.package_amounts.items():
                print(f"░   → {name}: {_money(amount)}")
    if outcome.intent:
        print(CLARIFICATION_BANNER_CHAR * BANNER_WIDTH)
        print(f"░ Subject      : {outcome.intent.subject}")
        for line in outcome.intent.message.split('\n'):
            print(f"░   {line}")
    if outcome.package_submissions:
        print(f"░ Package bids : {len(outcome.package_submissions)} created")
    print(CLARIFICATION_BANNER_CHAR * BANNER_WIDTH)

    logger.info(
        "clarification_logged",
        action=outcome.action.value,
        clarification_id=request.id if request else None,
        package_submissions=len(outcome.package_submissions)
    )


def log_price_rollup(rollup: PriceRollup, show_items: bool = False) -> None:
    """Log the client-facing roll-up by division and bottom line."""
    print("\n")
    print(PRICING_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(PRICING_BANNER_CHAR, "PRICE ROLL-UP"))
    print(PRICING_BANNER_CHAR * BANNER_WIDTH)
    for division in rollup.divisions:
        print(f"│ {division.code} - {division.name}: {_money(division.total)}")
        if show_items:
            for item in division.items:
                print(f"│     {item.item_id}: {_money(item.amount)} ({item.source.value})")
        if division.general_conditions:
            print(f"│     General Conditions: {_money(division.general_conditions)}")
    print(PRICING_BANNER_CHAR * BANNER_WIDTH)
    for line in rollup.bottom_line:
        print(f"│ {line.label:<20}: {_money(line.amount)}")
    print(PRICING_BANNER_CHAR * BANNER_WIDTH)

    logger.info(
        "price_rollup_logged",
        divisions=len(rollup.divisions),
        subtotal=rollup.subtotal,
        grand_total=rollup.grand_total
    )


def log_summary(title: str, data: Dict[str, Any]) -> None:
    """Log an arbitrary summary dictionary as formatted JSON."""
    print("\n")
    print(RUN_BANNER_CHAR * BANNER_WIDTH)
    print(_create_banner(RUN_BANNER_CHAR, title.upper()))
    print(RUN_BANNER_CHAR * BANNER_WIDTH)
    for line in _format_json(data).split('\n'):
        print(f"  {line}")
    print(RUN_BANNER_CHAR * BANNER_WIDTH)

    logger.info("summary_logged", title=title, keys=list(data.keys()))
