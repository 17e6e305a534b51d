"""Bid leveling error handling.

Custom exceptions and error codes for the leveling and reconciliation engine.

Business-level input problems (malformed submissions, unmatched line
entries, truncated combination searches) are reported as diagnostics on
result objects and never raised. The exceptions below cover invariant
violations and illegal workflow transitions.
"""

from typing import Optional, Dict, Any


# Error Codes
class ErrorCode:
    """Error code constants."""

    # Validation Errors
    VALIDATION_ERROR = "VALIDATION_ERROR"

    # Scope Errors
    SCOPE_INVARIANT_VIOLATION = "SCOPE_INVARIANT_VIOLATION"

    # Clarification Workflow Errors
    INVALID_TRANSITION = "INVALID_TRANSITION"
    CONCURRENCY_CONFLICT = "CONCURRENCY_CONFLICT"


class BidLevelingError(Exception):
    """Base exception for bid leveling errors.

    Provides structured error information for the consuming layer.

    Attributes:
        code: Error code from ErrorCode constants
        message: Human-readable error message
        details: Additional error context
    """

    def __init__(
        self,
        code: str,
        message: str,
        details: Optional[Dict[str, Any]] = None
    ):
        """Initialize BidLevelingError.

        Args:
            code: Error code from ErrorCode constants
            message: Human-readable error message
            details: Additional error context
        """
        super().__init__(message)
        self.code = code
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary for API response.

        Returns:
            Dictionary with code, message, and details.
        """
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details
        }

    def __repr__(self) -> str:
        return f"BidLevelingError(code={self.code!r}, message={self.message!r})"


class ValidationError(BidLevelingError):
    """Validation-specific error."""

    def __init__(self, message: str, field: Optional[str] = None, details: Optional[Dict] = None):
        super().__init__(
            code=ErrorCode.VALIDATION_ERROR,
            message=message,
            details={**(details or {}), "field": field} if field else details
        )


class ScopeInvariantError(BidLevelingError):
    """A scope item is claimed by more than one package."""

    def __init__(
        self,
        item_id: str,
        package_ids: tuple,
        details: Optional[Dict] = None
    ):
        super().__init__(
            code=ErrorCode.SCOPE_INVARIANT_VIOLATION,
            message=(
                f"Scope item {item_id!r} is claimed by packages "
                f"{package_ids[0]!r} and {package_ids[1]!r}"
            ),
            details={**(details or {}), "item_id": item_id, "package_ids": list(package_ids)}
        )
        self.item_id = item_id
        self.package_ids = package_ids


class WorkflowError(BidLevelingError):
    """Clarification workflow transition error."""

    def __init__(
        self,
        message: str,
        clarification_id: Optional[str] = None,
        current_status: Optional[str] = None,
        details: Optional[Dict] = None
    ):
        super().__init__(
            code=ErrorCode.INVALID_TRANSITION,
            message=message,
            details={
                **(details or {}),
                "clarification_id": clarification_id,
                "current_status": current_status
            }
        )
        self.clarification_id = clarification_id
        self.current_status = current_status


class ConcurrencyConflictError(BidLevelingError):
    """A second pending clarification was detected at write time.

    Callers retry the read-merge-write cycle.
    """

    def __init__(
        self,
        project_id: str,
        subcontractor_id: str,
        existing_id: Optional[str] = None,
        details: Optional[Dict] = None
    ):
        super().__init__(
            code=ErrorCode.CONCURRENCY_CONFLICT,
            message=(
                f"A pending clarification already exists for project {project_id!r} "
                f"and subcontractor {subcontractor_id!r}"
            ),
            details={
                **(details or {}),
                "project_id": project_id,
                "subcontractor_id": subcontractor_id,
                "existing_id": existing_id
            }
        )
        self.project_id = project_id
        self.subcontractor_id = subcontractor_id
        self.existing_id = existing_id
