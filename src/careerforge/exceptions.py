"""Custom exceptions for CareerForge."""

from enum import Enum


class CareerForgeError(Exception):
    """Base exception for CareerForge."""
    pass


class ConfigError(CareerForgeError):
    """Invalid or missing configuration or credentials. Never retried."""
    pass


class ProviderError(CareerForgeError):
    """Provider/network/SDK failure."""

    def __init__(self, message: str, *, provider: str | None = None, status_code: int | None = None):
        super().__init__(message)
        self.provider = provider
        self.status_code = status_code


class TransientProviderError(ProviderError):
    """Network, timeout, rate limit or 5xx failure."""
    pass


class PermanentProviderError(ProviderError):
    """Client-side rejection (4xx) or unusable output."""
    pass


class FormatError(ProviderError):
    """Model/route not found or field rejected for this API version."""
    pass


class ProviderExhaustedError(ProviderError):
    """Every provider candidate for a task failed."""

    def __init__(self, message: str, *, last_error: ProviderError | None = None, attempts: list | None = None):
        super().__init__(
            message,
            provider=last_error.provider if last_error else None,
            status_code=last_error.status_code if last_error else None,
        )
        self.last_error = last_error
        self.attempts = attempts or []


class ExtractionError(CareerForgeError):
    """No parseable JSON object in a model response."""
    pass


class ValidationReason(str, Enum):
    """Why a structured response failed validation."""

    NOT_AN_OBJECT = "not_an_object"
    MISSING_FIELD = "missing_field"
    WRONG_TYPE = "wrong_type"
    OUT_OF_RANGE = "out_of_range"
    INVALID_CHOICE = "invalid_choice"


class ValidationError(CareerForgeError):
    """Structured data does not conform to the expected shape."""

    def __init__(self, message: str, *, reason: ValidationReason = ValidationReason.WRONG_TYPE, field: str | None = None):
        super().__init__(message)
        self.reason = reason
        self.field = field


class NotFoundError(CareerForgeError):
    """No persisted result exists for the requested user and task."""
    pass


class StorageError(CareerForgeError):
    """Result store failure (backend unreachable, corrupt record)."""
    pass
