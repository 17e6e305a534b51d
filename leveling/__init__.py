"""Bid Leveling & Package Reconciliation Engine.

This package contains the Python library that turns inconsistent
subcontractor quotes into an apples-to-apples comparison.

Architecture:
- Coverage Analyzer + Combination Finder: who covers each scope package,
  alone or in combination, and at what price
- Line-Item Reconciler: applies freeform (extracted) submissions to open items
- Clarification Workflow: requests and applies per-package breakdowns
- Pricing Composer: client-facing roll-up with markup and overhead
"""

__version__ = "1.0.0"
