"""Submission payload parsing and validation.

Raw submission payloads arrive duck-typed from forms, imports and the
extraction service. This module turns them into the tagged Submission union.

- parse_submission: strict, raises ValidationError
- validate_submission: tolerant, infers a missing ``kind`` and reports
  problems on the result instead of raising
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Union

from pydantic import TypeAdapter, ValidationError as PydanticValidationError
import structlog

from config.errors import ValidationError
from models.submission import FreeformSubmission, ItemSubmission, PackageSubmission, Submission

logger = structlog.get_logger(__name__)

EXACTLY_ONE_TARGET = "Submission must set exactly one of item_id or package_id"

FREEFORM_FIELDS = ("line_entries", "total_amount", "amounts_by_package")

_submission_adapter = TypeAdapter(Submission)

ParsedSubmission = Union[ItemSubmission, PackageSubmission, FreeformSubmission]


@dataclass
class ValidationResult:
    """Result of submission validation."""
    is_valid: bool = True
    errors: List[str] = field(default_factory=list)
    parsed: Optional[ParsedSubmission] = None
    raw_data: Dict[str, Any] = None


def _format_errors(exc: PydanticValidationError) -> List[str]:
    return [f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in exc.errors()]


def parse_submission(data: Dict[str, Any]) -> ParsedSubmission:
    """Parse a tagged payload into a typed submission.

    Args:
        data: Raw dictionary with a ``kind`` of item, package or freeform

    Returns:
        ItemSubmission, PackageSubmission or FreeformSubmission

    Raises:
        ValidationError: If the payload does not match its variant.
    """
    try:
        return _submission_adapter.validate_python(data)
    except PydanticValidationError as e:
        raise ValidationError(
            "Invalid submission payload",
            field="kind" if isinstance(data, dict) and "kind" not in data else None,
            details={"errors": _format_errors(e)},
        ) from e


def infer_kind(data: Dict[str, Any]) -> Optional[str]:
    """Guess the submission kind from the fields present.

    Returns:
        "item", "package", "freeform", or None when the payload is ambiguous.
    """
    has_item = data.get("item_id") is not None
    has_package = data.get("package_id") is not None
    if has_item and has_package:
        return None
    if has_item:
        return "item"
    if has_package:
        return "package"
    if any(data.get(name) is not None for name in FREEFORM_FIELDS):
        return "freeform"
    return None


def validate_submission(data: Any) -> ValidationResult:
    """Validate a raw submission payload and return the result.

    Checks, in order:
    - the payload is a dictionary
    - structured payloads set exactly one of item_id or package_id
    - the payload matches its variant's schema

    Args:
        data: Raw payload

    Returns:
        ValidationResult with is_valid, errors and the parsed submission
    """
    if not isinstance(data, dict):
        return ValidationResult(
            is_valid=False,
            errors=[f"Submission must be an object, got {type(data).__name__}"],
            raw_data=None,
        )

    kind = data.get("kind")
    both_targets = data.get("item_id") is not None and data.get("package_id") is not None

    if kind is None:
        kind = infer_kind(data)
        if kind is None:
            logger.warning("submission_kind_not_inferred", keys=sorted(data.keys()))
            return ValidationResult(is_valid=False, errors=[EXACTLY_ONE_TARGET], raw_data=data)
    elif kind in ("item", "package") and both_targets:
        return ValidationResult(is_valid=False, errors=[EXACTLY_ONE_TARGET], raw_data=data)

    try:
        parsed = _submission_adapter.validate_python({**data, "kind": kind})
    except PydanticValidationError as e:
        errors = _format_errors(e)
        logger.warning("submission_validation_failed", kind=kind, errors=errors)
        return ValidationResult(is_valid=False, errors=errors, raw_data=data)

    return ValidationResult(is_valid=True, errors=[], parsed=parsed, raw_data=data)
