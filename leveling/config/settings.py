"""Bid leveling configuration settings.

Loads configuration from environment variables with sensible defaults.
Pricing inputs (markup, overhead, contingency) are not settings: they come
from the caller with each request as a PricingConfig.
"""

import os
from dataclasses import dataclass, field
from dotenv import load_dotenv

# Load .env file for local overrides (search bounds, log level, etc.)
load_dotenv()

LUMP_SUM_POLICIES = ("full", "even")


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    # Combination search bounds
    max_combinations: int = field(default_factory=lambda: int(os.getenv("LEVELING_MAX_COMBINATIONS", "5")))
    max_triple_bidders: int = field(default_factory=lambda: int(os.getenv("LEVELING_MAX_TRIPLE_BIDDERS", "12")))
    combination_time_budget_seconds: float = field(
        default_factory=lambda: float(os.getenv("LEVELING_COMBINATION_TIME_BUDGET_SECONDS", "2.0"))
    )

    # Line-item matching
    trade_match_weight: int = field(default_factory=lambda: int(os.getenv("LEVELING_TRADE_MATCH_WEIGHT", "10")))
    min_word_length: int = field(default_factory=lambda: int(os.getenv("LEVELING_MIN_WORD_LENGTH", "3")))
    lump_sum_policy: str = field(default_factory=lambda: os.getenv("LEVELING_LUMP_SUM_POLICY", "full").lower())

    # Pricing roll-up
    default_division_code: str = field(default_factory=lambda: os.getenv("LEVELING_DEFAULT_DIVISION_CODE", "01"))
    default_division_name: str = field(
        default_factory=lambda: os.getenv("LEVELING_DEFAULT_DIVISION_NAME", "General Requirements")
    )

    # Clarification ledger
    clarification_max_retries: int = field(default_factory=lambda: int(os.getenv("CLARIFICATION_MAX_RETRIES", "3")))

    # Logging
    log_level: str = field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))

    def validate(self) -> None:
        """Validate settings are coherent.

        Raises:
            ValueError: If a setting is out of range.
        """
        if self.max_combinations < 1:
            raise ValueError("LEVELING_MAX_COMBINATIONS must be at least 1")
        if self.max_triple_bidders < 3:
            raise ValueError("LEVELING_MAX_TRIPLE_BIDDERS must be at least 3")
        if self.combination_time_budget_seconds <= 0:
            raise ValueError("LEVELING_COMBINATION_TIME_BUDGET_SECONDS must be positive")
        if self.lump_sum_policy not in LUMP_SUM_POLICIES:
            raise ValueError(
                f"LEVELING_LUMP_SUM_POLICY must be one of {LUMP_SUM_POLICIES}, got {self.lump_sum_policy!r}"
            )
        if self.clarification_max_retries < 1:
            raise ValueError("CLARIFICATION_MAX_RETRIES must be at least 1")


# Singleton settings instance
settings = Settings()
