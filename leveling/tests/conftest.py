"""Pytest configuration and shared fixtures for bid leveling tests."""

import os
import sys
import pytest


# ============================================================================
# Ensure local imports work (models/, services/, config/)
# ============================================================================
#
# The codebase uses absolute imports like `from models...` / `from services...`.
# This guarantees that `leveling/` is importable as the top-level module root.
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)


from tests.fixtures.mock_bid_data import (  # noqa: E402
    get_electrical_project,
    get_xyz_package,
    get_xyz_submissions,
)


# ============================================================================
# Scope Fixtures
# ============================================================================

@pytest.fixture
def xyz_package():
    """Package P = {A, B}."""
    return get_xyz_package()


@pytest.fixture
def xyz_submissions():
    """Bidder X covers A and B; Y covers A; Z covers B."""
    return get_xyz_submissions()


@pytest.fixture
def electrical_project():
    """Electrical + Fire Alarm project with one invited subcontractor."""
    return get_electrical_project()


# ============================================================================
# Settings Fixtures
# ============================================================================

@pytest.fixture
def leveling_settings():
    """Settings with deterministic defaults, independent of the environment."""
    from config.settings import Settings

    return Settings(
        max_combinations=5,
        max_triple_bidders=12,
        combination_time_budget_seconds=2.0,
        trade_match_weight=10,
        min_word_length=3,
        lump_sum_policy="full",
        default_division_code="01",
        default_division_name="General Requirements",
        clarification_max_retries=3,
        log_level="INFO",
    )
