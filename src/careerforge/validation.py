"""Extraction and validation of structured model output."""

import json
from typing import Any, TypeVar

import structlog
from pydantic import ValidationError as PydanticValidationError

from careerforge.exceptions import ExtractionError, ValidationError, ValidationReason
from careerforge.schemas.results import TaskShape

logger = structlog.get_logger(__name__)

T = TypeVar("T", bound=TaskShape)

MAX_RESPONSE_PREVIEW_LENGTH = 200

_RANGE_ERRORS = {"greater_than", "greater_than_equal", "less_than", "less_than_equal"}
_MISSING_ERRORS = {"missing", "string_too_short"}
_CHOICE_ERRORS = {"literal_error", "enum"}


def extract_json_object(text: str) -> Any:
    """
    Parse the span between the first ``{`` and the last ``}`` in text.

    Prose before and after the object (``"Sure! {...} Let me know."``) and
    markdown fences are tolerated.

    Raises:
        ExtractionError: If there is no brace pair or the span is not JSON
    """
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end <= start:
        raise ExtractionError("No JSON object found in response")

    try:
        return json.loads(text[start:end + 1])
    except json.JSONDecodeError as e:
        raise ExtractionError(
            f"Invalid JSON object in response: {e.msg} at line {e.lineno}, column {e.colno}"
        ) from e
    except RecursionError as e:
        raise ExtractionError("JSON object in response is nested too deeply") from e


def _error_location(loc: tuple) -> str:
    return ".".join(str(part) for part in loc) or "<root>"


def _classify(errors: list[dict]) -> tuple[ValidationReason, str]:
    """Pick the most telling reason across pydantic errors."""
    by_reason: dict[ValidationReason, str] = {}
    for error in errors:
        error_type = error.get("type", "")
        if error_type in _MISSING_ERRORS:
            reason = ValidationReason.MISSING_FIELD
        elif error_type in _RANGE_ERRORS:
            reason = ValidationReason.OUT_OF_RANGE
        elif error_type in _CHOICE_ERRORS:
            reason = ValidationReason.INVALID_CHOICE
        else:
            reason = ValidationReason.WRONG_TYPE
        by_reason.setdefault(reason, _error_location(error.get("loc", ())))

    for reason in (
        ValidationReason.MISSING_FIELD,
        ValidationReason.OUT_OF_RANGE,
        ValidationReason.INVALID_CHOICE,
        ValidationReason.WRONG_TYPE,
    ):
        if reason in by_reason:
            return reason, by_reason[reason]
    return ValidationReason.WRONG_TYPE, "<root>"


def validate_shape(data: Any, shape: type[T]) -> T:
    """
    Validate parsed data against a task shape, filling defaults.

    Args:
        data: Parsed JSON value
        shape: Task shape model

    Returns:
        Validated model instance

    Raises:
        ValidationError: With reason and offending field
    """
    if not isinstance(data, dict):
        raise ValidationError(
            f"{shape.__name__} expects a JSON object, got {type(data).__name__}",
            reason=ValidationReason.NOT_AN_OBJECT,
        )

    try:
        return shape.model_validate(data)
    except PydanticValidationError as e:
        errors = e.errors()
        reason, field = _classify(errors)
        raise ValidationError(
            f"{shape.__name__} failed validation ({reason.value}) at {field}: "
            f"{errors[0].get('msg', 'invalid value')}",
            reason=reason,
            field=field,
        ) from e


def parse_structured(text: str, shape: type[T]) -> T:
    """Extract the JSON object from raw model text and validate it."""
    try:
        data = extract_json_object(text)
    except ExtractionError:
        logger.warning(
            "extraction_failed",
            shape=shape.__name__,
            response_length=len(text),
            response_preview=text[:MAX_RESPONSE_PREVIEW_LENGTH],
        )
        raise
    return validate_shape(data, shape)
