"""Bid leveling configuration.

This package contains:
- settings: Environment variables and configuration
- errors: Custom exceptions and error codes
"""

from config.settings import settings, Settings
from config.errors import BidLevelingError, ErrorCode

__all__ = [
    "settings",
    "Settings",
    "BidLevelingError",
    "ErrorCode",
]
