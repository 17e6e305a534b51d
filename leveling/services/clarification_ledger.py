"""
In-memory clarification ledger.

Reference store for clarification requests keyed by (project,
subcontractor). Provides the guarantees the workflow needs from storage:

- per-key locking around the read-merge-write cycle
- atomic conditional write: at most one pending request per key
- retry of the whole cycle on a write conflict
"""

import threading
from typing import Callable, Dict, List, Optional, Tuple

import structlog
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from config.errors import ConcurrencyConflictError
from config.settings import settings
from models.clarification import ClarificationOutcome, ClarificationRequest, SubmissionContext
from models.submission import FreeformSubmission
from services.clarification_workflow import process_freeform_submission

logger = structlog.get_logger(__name__)

LedgerKey = Tuple[str, str]


class ClarificationLedger:
    """Thread-safe in-memory store of clarification requests."""

    def __init__(self, max_retries: Optional[int] = None, wait=None):
        """Initialize the ledger.

        Args:
            max_retries: Attempts for the read-merge-write cycle.
            wait: tenacity wait strategy between attempts.
        """
        self.max_retries = max_retries or settings.clarification_max_retries
        self.wait = wait if wait is not None else wait_exponential(multiplier=0.1, min=0.1, max=2)
        self._requests: Dict[str, ClarificationRequest] = {}
        self._pending: Dict[LedgerKey, str] = {}
        self._store_lock = threading.Lock()
        self._locks: Dict[LedgerKey, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    def lock(self, key: LedgerKey) -> threading.Lock:
        """Get the lock serializing work for one (project, subcontractor) pair."""
        with self._locks_guard:
            lock = self._locks.get(key)
            if lock is None:
                lock = self._locks[key] = threading.Lock()
            return lock

    def get(self, clarification_id: str) -> Optional[ClarificationRequest]:
        with self._store_lock:
            return self._requests.get(clarification_id)

    def get_pending(self, key: LedgerKey) -> Optional[ClarificationRequest]:
        """Get the pending request for a pair, if any."""
        with self._store_lock:
            request_id = self._pending.get(key)
            return self._requests.get(request_id) if request_id else None

    def list_requests(self, key: Optional[LedgerKey] = None) -> List[ClarificationRequest]:
        with self._store_lock:
            return [r for r in self._requests.values() if key is None or r.key == key]

    def save(self, request: ClarificationRequest, expected_pending_id: Optional[str] = None) -> None:
        """Write a request if the pair's pending request is the one expected.

        Args:
            request: New or updated request.
            expected_pending_id: ID of the pending request the caller read
                (None when it read none).

        Raises:
            ConcurrencyConflictError: If another writer changed the pair's
                pending request since it was read.
        """
        key = request.key
        with self._store_lock:
            current_id = self._pending.get(key)
            if current_id != expected_pending_id or (
                request.is_pending and current_id not in (None, request.id)
            ):
                raise ConcurrencyConflictError(
                    project_id=request.project_id,
                    subcontractor_id=request.subcontractor_id,
                    existing_id=current_id,
                )

            self._requests[request.id] = request
            if request.is_pending:
                self._pending[key] = request.id
            elif current_id == request.id:
                del self._pending[key]

        logger.debug(
            "clarification_saved",
            clarification_id=request.id,
            status=request.status.value,
            project_id=request.project_id,
            subcontractor_id=request.subcontractor_id
        )

    def process(
        self,
        submission: FreeformSubmission,
        context_factory: Callable[[], SubmissionContext],
    ) -> ClarificationOutcome:
        """Run the workflow for a submission and persist the resulting request.

        Reads the pending request, builds the context, runs the workflow and
        writes the result under the pair's lock. The whole cycle is retried
        on ConcurrencyConflictError.

        Args:
            submission: Freeform submission to process.
            context_factory: Builds the submission context; its pending
                clarification is replaced with the one read from the ledger.

        Returns:
            ClarificationOutcome from the workflow.

        Raises:
            ConcurrencyConflictError: If every attempt conflicted.
        """
        key = (submission.project_id, submission.subcontractor_id)
        retrying = Retrying(
            stop=stop_after_attempt(self.max_retries),
            wait=self.wait,
            retry=retry_if_exception_type(ConcurrencyConflictError),
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                if attempt.retry_state.attempt_number > 1:
                    logger.warning(
                        "clarification_cycle_retry",
                        project_id=key[0],
                        subcontractor_id=key[1],
                        attempt=attempt.retry_state.attempt_number
                    )
                with self.lock(key):
                    pending = self.get_pending(key)
                    context = context_factory().model_copy(update={"pending_clarification": pending})
                    outcome = process_freeform_submission(submission, context)
                    if outcome.request is not None:
                        self.save(outcome.request, expected_pending_id=pending.id if pending else None)
        return outcome
