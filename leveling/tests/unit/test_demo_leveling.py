"""Tests for the end-to-end demo runner."""

import json

import pytest

from demo_leveling import run_demo


class TestRunDemo:
    """Run the demo and check its summary."""

    @pytest.fixture(scope="class")
    def summary(self):
        return run_demo()

    def test_combination_beats_complete_bidder(self, summary):
        best = summary["electrical_best_option"]

        assert best["kind"] == "combination"
        assert best["subcontractor_ids"] == ["sub-y", "sub-z"]
        assert best["total"] == 200.0

    def test_clarification_cycle(self, summary):
        assert summary["clarification_requested"] == "requested"
        assert summary["clarification_status"] == "resolved"
        assert summary["package_amounts"] == {"Electrical": 32000.0, "Fire Alarm": 18000.0}
        assert [s["status"] for s in summary["package_submissions"]] == ["approved", "approved"]

    def test_price_rollup(self, summary):
        assert summary["winners"]["e-1"] == 90.0
        assert summary["winners"]["f-1"] == 9000.0
        assert summary["subtotal"] == pytest.approx(21670.0)
        assert summary["grand_total"] == pytest.approx(21670.0 + 2500.0 + 1200.0 + 800.0 + 450.0)

    def test_summary_is_json_serializable(self, summary):
        assert json.loads(json.dumps(summary)) == summary
