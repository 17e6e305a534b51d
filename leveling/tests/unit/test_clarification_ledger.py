"""Tests for the in-memory Clarification Ledger."""

import pytest
from tenacity import wait_none

from config.errors import ConcurrencyConflictError, ErrorCode
from models.clarification import ClarificationAction, ClarificationRequest, ClarificationStatus, SubmissionContext
from services.clarification_ledger import ClarificationLedger
from tests.fixtures.mock_bid_data import PROJECT_ID, make_freeform

KEY = (PROJECT_ID, "sub-spark")


@pytest.fixture
def ledger():
    return ClarificationLedger(max_retries=3, wait=wait_none())


@pytest.fixture
def context_factory(electrical_project):
    def factory():
        return SubmissionContext(
            invited_packages=electrical_project["packages"],
            open_bids=electrical_project["open_bids"],
            items=electrical_project["items"],
        )
    return factory


class TestProcess:
    """Test the read-merge-write cycle."""

    def test_repeated_lump_sums_keep_one_pending(self, ledger, context_factory):
        first = ledger.process(make_freeform(total=50000.0, lump_sum_for_multiple=True), context_factory)
        second = ledger.process(make_freeform(id="ff-2", total=52000.0, lump_sum_for_multiple=True), context_factory)

        assert first.action == ClarificationAction.REQUESTED
        assert second.action == ClarificationAction.MERGED
        assert second.request.id == first.request.id
        assert len(ledger.list_requests(KEY)) == 1
        assert ledger.get_pending(KEY).lump_sum_amount == 52000.0

    def test_breakdown_resolves_and_clears_pending(self, ledger, context_factory):
        requested = ledger.process(make_freeform(total=50000.0, lump_sum_for_multiple=True), context_factory)
        resolved = ledger.process(
            make_freeform(id="ff-3", amounts_by_package={"Electrical": 32000.0, "Fire Alarm": 18000.0}),
            context_factory,
        )

        assert resolved.action == ClarificationAction.RESOLVED
        assert ledger.get_pending(KEY) is None
        stored = ledger.get(requested.request.id)
        assert stored.status == ClarificationStatus.RESOLVED
        assert stored.package_amounts == {"Electrical": 32000.0, "Fire Alarm": 18000.0}

    def test_conflict_retried_and_merged(self, ledger, context_factory):
        competing = ClarificationRequest(
            project_id=PROJECT_ID,
            subcontractor_id="sub-spark",
            requested_packages=["Electrical", "Fire Alarm"],
            lump_sum_amount=40000.0,
        )
        calls = []

        def racing_factory():
            calls.append(1)
            if len(calls) == 1:
                # Another writer stores a pending request after our read
                ledger.save(competing)
            return context_factory()

        outcome = ledger.process(make_freeform(total=50000.0, lump_sum_for_multiple=True), racing_factory)

        assert len(calls) == 2
        assert outcome.action == ClarificationAction.MERGED
        assert outcome.request.id == competing.id
        assert ledger.get_pending(KEY).lump_sum_amount == 50000.0
        assert len(ledger.list_requests(KEY)) == 1

    def test_conflict_reraised_after_max_retries(self, context_factory):
        ledger = ClarificationLedger(max_retries=2, wait=wait_none())
        calls = []

        def always_conflicting():
            calls.append(1)
            raise ConcurrencyConflictError(project_id=PROJECT_ID, subcontractor_id="sub-spark")

        with pytest.raises(ConcurrencyConflictError):
            ledger.process(make_freeform(total=50000.0, lump_sum_for_multiple=True), always_conflicting)

        assert len(calls) == 2


class TestSave:
    """Test the conditional write."""

    def test_second_pending_for_same_pair_rejected(self, ledger):
        ledger.save(ClarificationRequest(project_id=PROJECT_ID, subcontractor_id="sub-spark"))

        with pytest.raises(ConcurrencyConflictError) as exc_info:
            ledger.save(ClarificationRequest(project_id=PROJECT_ID, subcontractor_id="sub-spark"))

        assert exc_info.value.code == ErrorCode.CONCURRENCY_CONFLICT

    def test_other_pairs_independent(self, ledger):
        ledger.save(ClarificationRequest(project_id=PROJECT_ID, subcontractor_id="sub-spark"))
        ledger.save(ClarificationRequest(project_id=PROJECT_ID, subcontractor_id="sub-other"))

        assert ledger.get_pending((PROJECT_ID, "sub-other")) is not None

    def test_lock_is_per_pair(self, ledger):
        assert ledger.lock(KEY) is ledger.lock(KEY)
        assert ledger.lock(KEY) is not ledger.lock((PROJECT_ID, "sub-other"))
