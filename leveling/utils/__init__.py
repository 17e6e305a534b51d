"""Utility modules for bid leveling."""

from utils.leveling_logger import (
    configure_logging,
    log_leveling_start,
    log_package_coverage,
    log_clarification,
    log_price_rollup,
    log_summary,
)

__all__ = [
    "configure_logging",
    "log_leveling_start",
    "log_package_coverage",
    "log_clarification",
    "log_price_rollup",
    "log_summary",
]
