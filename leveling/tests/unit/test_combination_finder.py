"""Tests for the Combination Finder."""

from typing import List

from models.coverage import BidderCoverage, TruncationReason
from services.combination_finder import find_completing_combinations


def partial(sub_id: str, covered: List[str], total: float, item_count: int = 3) -> BidderCoverage:
    """Build a partial bidder summary."""
    return BidderCoverage(
        subcontractor_id=sub_id,
        covered_item_ids=covered,
        total=total,
        is_complete=False,
        coverage_percent=round(len(covered) / item_count * 100, 2),
    )


class TestPairsAndTriples:
    """Test enumeration order and exact coverage."""

    def test_pairs_returned_cheapest_first(self):
        bidders = [
            partial("P1", ["A", "B"], 100.0),
            partial("P2", ["C"], 50.0),
            partial("Q1", ["A"], 10.0),
            partial("Q2", ["B"], 10.0),
            partial("Q3", ["C"], 10.0),
        ]
        search = find_completing_combinations(bidders, ["A", "B", "C"])

        assert [c.subcontractor_ids for c in search.combinations] == [["P1", "Q3"], ["P1", "P2"]]
        assert [c.total for c in search.combinations] == [110.0, 150.0]
        assert not search.truncated

    def test_never_returns_triple_when_pair_exists(self):
        bidders = [
            partial("P1", ["A", "B"], 100.0),
            partial("P2", ["C"], 50.0),
            partial("Q1", ["A"], 1.0),
            partial("Q2", ["B"], 1.0),
            partial("Q3", ["C"], 1.0),
        ]
        search = find_completing_combinations(bidders, ["A", "B", "C"])

        assert search.combinations
        assert all(len(c.members) == 2 for c in search.combinations)

    def test_triples_when_no_pair_completes(self):
        bidders = [
            partial("A1", ["A"], 10.0),
            partial("B1", ["B"], 20.0),
            partial("C1", ["C"], 30.0),
        ]
        search = find_completing_combinations(bidders, ["A", "B", "C"])

        assert len(search.combinations) == 1
        combo = search.combinations[0]
        assert combo.subcontractor_ids == ["A1", "B1", "C1"]
        assert combo.total == 60.0

    def test_union_must_equal_full_set(self):
        bidders = [partial("A1", ["A"], 10.0), partial("B1", ["B"], 20.0)]
        search = find_completing_combinations(bidders, ["A", "B", "C"])

        assert search.combinations == []

    def test_every_returned_union_is_exact(self):
        bidders = [
            partial("S", ["A"], 10.0),
            partial("T", ["A", "B"], 40.0),
            partial("U", ["B", "C"], 30.0),
            partial("V", ["C"], 5.0),
        ]
        search = find_completing_combinations(bidders, ["A", "B", "C"])

        assert search.combinations
        for combo in search.combinations:
            assert combo.covered_item_ids == {"A", "B", "C"}

    def test_fewer_than_two_bidders(self):
        search = find_completing_combinations([partial("A1", ["A"], 10.0)], ["A", "B"])

        assert search.combinations == []
        assert search.candidates_tested == 0


class TestBounds:
    """Test result limits and search guards."""

    def test_max_combinations_limit(self):
        bidders = [partial(f"a{i}", ["A"], 10.0 * i, 2) for i in range(1, 5)]
        bidders += [partial(f"b{i}", ["B"], 1.0 * i, 2) for i in range(1, 4)]
        search = find_completing_combinations(bidders, ["A", "B"], max_combinations=5)

        totals = [c.total for c in search.combinations]
        assert len(totals) == 5
        assert totals == sorted(totals)
        assert totals[0] == 11.0

    def test_partial_bidder_limit_skips_triples(self):
        items = ["A", "B", "C"]
        bidders = [partial(f"s{i}", [items[i % 3]], 10.0) for i in range(13)]
        search = find_completing_combinations(bidders, items, max_triple_bidders=12)

        assert search.combinations == []
        assert search.truncated
        assert search.truncation_reason == TruncationReason.PARTIAL_BIDDER_LIMIT

    def test_zero_limits_are_honoured(self):
        pair_bidders = [partial("a", ["A"], 10.0, 2), partial("b", ["B"], 20.0, 2)]
        no_results = find_completing_combinations(pair_bidders, ["A", "B"], max_combinations=0)

        assert no_results.combinations == []
        assert no_results.candidates_tested == 1

        items = ["A", "B", "C"]
        triple_bidders = [partial(f"s{i}", [items[i]], 10.0) for i in range(3)]
        no_triples = find_completing_combinations(triple_bidders, items, max_triple_bidders=0)

        assert no_triples.combinations == []
        assert no_triples.truncation_reason == TruncationReason.PARTIAL_BIDDER_LIMIT

    def test_pairs_still_searched_above_limit(self):
        bidders = [partial(f"a{i}", ["A"], 10.0, 2) for i in range(7)]
        bidders += [partial(f"b{i}", ["B"], 10.0, 2) for i in range(7)]
        search = find_completing_combinations(bidders, ["A", "B"], max_triple_bidders=12)

        assert len(search.combinations) == 5
        assert not search.truncated

    def test_time_budget_stops_triple_search(self, monkeypatch):
        clock = iter([0.0, 0.5])
        monkeypatch.setattr(
            "services.combination_finder.time.monotonic",
            lambda: next(clock, 10.0),
        )
        bidders = [
            partial("a", ["A"], 10.0),
            partial("b", ["B"], 10.0),
            partial("c", ["C"], 10.0),
            partial("d", ["A"], 5.0),
        ]
        search = find_completing_combinations(bidders, ["A", "B", "C"], time_budget_seconds=1.0)

        assert search.truncated
        assert search.truncation_reason == TruncationReason.TIME_BUDGET
        assert [c.subcontractor_ids for c in search.combinations] == [["a", "b", "c"]]
