"""Tests for configuration settings and error types."""

import pytest

from config.errors import (
    BidLevelingError,
    ConcurrencyConflictError,
    ErrorCode,
    ValidationError,
    WorkflowError,
)
from config.settings import Settings


class TestSettings:
    """Test environment-driven settings."""

    def test_defaults(self, monkeypatch):
        for name in ("LEVELING_MAX_COMBINATIONS", "LEVELING_MAX_TRIPLE_BIDDERS", "LEVELING_LUMP_SUM_POLICY"):
            monkeypatch.delenv(name, raising=False)
        settings = Settings()

        assert settings.max_combinations == 5
        assert settings.max_triple_bidders == 12
        assert settings.lump_sum_policy == "full"

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("LEVELING_MAX_COMBINATIONS", "7")
        monkeypatch.setenv("LEVELING_LUMP_SUM_POLICY", "EVEN")
        settings = Settings()

        assert settings.max_combinations == 7
        assert settings.lump_sum_policy == "even"

    def test_validate_accepts_defaults(self, leveling_settings):
        leveling_settings.validate()

    @pytest.mark.parametrize(
        "overrides",
        [
            {"max_combinations": 0},
            {"max_triple_bidders": 2},
            {"combination_time_budget_seconds": 0},
            {"lump_sum_policy": "proportional"},
            {"clarification_max_retries": 0},
        ],
    )
    def test_validate_rejects(self, leveling_settings, overrides):
        for key, value in overrides.items():
            setattr(leveling_settings, key, value)

        with pytest.raises(ValueError):
            leveling_settings.validate()


class TestErrors:
    """Test structured error payloads."""

    def test_base_error_to_dict(self):
        error = BidLevelingError(code=ErrorCode.VALIDATION_ERROR, message="bad", details={"id": "x"})

        assert error.to_dict() == {"code": "VALIDATION_ERROR", "message": "bad", "details": {"id": "x"}}
        assert str(error) == "bad"

    def test_validation_error_field(self):
        error = ValidationError("Missing amount", field="amount")

        assert error.code == ErrorCode.VALIDATION_ERROR
        assert error.details["field"] == "amount"

    def test_workflow_error_details(self):
        error = WorkflowError("nope", clarification_id="c-1", current_status="resolved")

        assert error.code == ErrorCode.INVALID_TRANSITION
        assert error.details == {"clarification_id": "c-1", "current_status": "resolved"}

    def test_conflict_is_leveling_error(self):
        error = ConcurrencyConflictError(project_id="p", subcontractor_id="s", existing_id="c-1")

        assert isinstance(error, BidLevelingError)
        assert error.details["existing_id"] == "c-1"
