"""Tests for the Coverage Analyzer."""

import pytest

from models.coverage import ContributionOrigin, OptionKind
from models.scope import ScopePackage
from models.submission import ItemBidStatus, PackageBidStatus
from services.coverage_analyzer import analyze_package_coverage, expand_package_submission
from tests.fixtures.mock_bid_data import make_item_bid, make_package_bid


class TestXYZScenario:
    """X covers A+B for $220; Y covers A for $90; Z covers B for $110."""

    def test_complete_bucket_has_only_x(self, xyz_package, xyz_submissions):
        result = analyze_package_coverage(xyz_package, xyz_submissions)

        assert [b.subcontractor_id for b in result.complete_bidders] == ["X"]
        assert result.complete_bidders[0].total == 220.0

    def test_combination_of_y_and_z(self, xyz_package, xyz_submissions):
        result = analyze_package_coverage(xyz_package, xyz_submissions)

        assert len(result.combinations) == 1
        combo = result.combinations[0]
        assert combo.subcontractor_ids == ["Y", "Z"]
        assert combo.total == 200.0
        assert set(combo.covered_item_ids) == {"A", "B"}

    def test_cheapest_option_is_combination(self, xyz_package, xyz_submissions):
        result = analyze_package_coverage(xyz_package, xyz_submissions)

        assert result.best_option.kind == OptionKind.COMBINATION
        assert result.best_option.total == 200.0
        assert result.has_complete_coverage

    def test_bidder_order_complete_first(self, xyz_package, xyz_submissions):
        result = analyze_package_coverage(xyz_package, xyz_submissions)

        assert [b.subcontractor_id for b in result.bidders] == ["X", "Y", "Z"]
        y = result.bidder("Y")
        assert y.missing_item_ids == ["B"]
        assert y.coverage_percent == 50.0


class TestContributions:
    """Test which submissions count toward coverage."""

    def test_package_bid_expanded_evenly(self):
        package = ScopePackage(id="P", name="P", item_ids=["A", "B", "C"])
        shares = expand_package_submission(make_package_bid("W", "P", 300.0), package)

        assert [s.amount for s in shares] == [100.0, 100.0, 100.0]
        assert all(s.origin == ContributionOrigin.PACKAGE_BID for s in shares)

    def test_approved_package_bid_makes_complete_bidder(self, xyz_package):
        result = analyze_package_coverage(
            xyz_package,
            package_submissions=[make_package_bid("W", "P", 300.0)],
        )

        bidder = result.bidder("W")
        assert bidder.is_complete
        assert bidder.total == 300.0
        assert bidder.amount_for("A") == 150.0

    def test_unapproved_package_bid_ignored(self, xyz_package):
        result = analyze_package_coverage(
            xyz_package,
            package_submissions=[make_package_bid("W", "P", 300.0, status=PackageBidStatus.PENDING_APPROVAL)],
        )

        assert result.bidders == []
        assert result.best_option is None

    def test_real_item_bid_replaces_package_share(self, xyz_package):
        result = analyze_package_coverage(
            xyz_package,
            item_submissions=[make_item_bid("X", "A", 100.0)],
            package_submissions=[make_package_bid("X", "P", 400.0)],
        )

        bidder = result.bidder("X")
        assert bidder.amount_for("A") == 100.0
        assert bidder.amount_for("B") == 200.0
        assert bidder.total == 300.0

    def test_zero_amount_included_item_counts_as_coverage(self, xyz_package):
        result = analyze_package_coverage(
            xyz_package,
            [make_item_bid("X", "A", 500.0), make_item_bid("X", "B", 0.0)],
        )

        bidder = result.bidder("X")
        assert bidder.is_complete
        assert bidder.total == 500.0

    def test_invited_bids_and_foreign_items_ignored(self, xyz_package):
        result = analyze_package_coverage(
            xyz_package,
            [
                make_item_bid("X", "A", status=ItemBidStatus.INVITED),
                make_item_bid("Y", "Q", 50.0),
            ],
        )

        assert result.bidders == []

    def test_later_item_bid_supersedes_earlier(self, xyz_package):
        first = make_item_bid("X", "A", 100.0)
        second = first.model_copy(update={"id": "X-A-revised", "amount": 80.0})
        result = analyze_package_coverage(xyz_package, [first, second])

        assert result.bidder("X").amount_for("A") == 80.0


class TestBestOption:
    """Test selection of the overall cheapest option."""

    def test_complete_bidder_wins_tie_with_combination(self, xyz_package):
        result = analyze_package_coverage(
            xyz_package,
            [
                make_item_bid("X", "A", 100.0),
                make_item_bid("X", "B", 100.0),
                make_item_bid("Y", "A", 90.0),
                make_item_bid("Z", "B", 110.0),
            ],
        )

        assert result.best_option.kind == OptionKind.SINGLE_BIDDER
        assert result.best_option.subcontractor_ids == ["X"]
        assert result.best_option.total == 200.0

    def test_single_complete_bidder_is_sole_complete_candidate(self, xyz_package):
        result = analyze_package_coverage(
            xyz_package,
            [make_item_bid("X", "A", 100.0), make_item_bid("X", "B", 120.0), make_item_bid("Y", "A", 90.0)],
        )

        assert [b.subcontractor_id for b in result.complete_bidders] == ["X"]
        assert result.combinations == []
        assert result.best_option.total == 220.0

    def test_empty_package_yields_empty_result(self):
        result = analyze_package_coverage(ScopePackage(id="E", name="Empty", item_ids=[]))

        assert result.package_id == "E"
        assert result.bidders == []
        assert result.combinations == []
        assert result.best_option is None

    def test_partial_bidders_sorted_by_coverage_then_total(self):
        package = ScopePackage(id="P", name="P", item_ids=["A", "B", "C"])
        result = analyze_package_coverage(
            package,
            [
                make_item_bid("S", "A", 10.0),
                make_item_bid("T", "A", 40.0),
                make_item_bid("T", "B", 40.0),
                make_item_bid("U", "B", 30.0),
                make_item_bid("U", "C", 30.0),
            ],
        )

        assert [b.subcontractor_id for b in result.bidders] == ["U", "T", "S"]
        assert result.best_option is not None
        assert [c.total for c in result.combinations] == [pytest.approx(70.0), pytest.approx(140.0)]
        assert result.best_option.total == pytest.approx(70.0)
