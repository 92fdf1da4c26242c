"""Base provider interface."""

import re
from abc import ABC, abstractmethod

import structlog
from tenacity import (
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from careerforge.exceptions import (
    CareerForgeError,
    ConfigError,
    FormatError,
    PermanentProviderError,
    TransientProviderError,
)

logger = structlog.get_logger(__name__)

# Constants
DEFAULT_TIMEOUT_SECONDS = 45
DEFAULT_MAX_RETRIES = 1
DEFAULT_TEMPERATURE = 0.3
MAX_ERROR_BODY_LENGTH = 500

TRANSIENT_STATUS_CODES = {408, 429}
_FIELD_REJECTED_RE = re.compile(r"unknown name|unrecognized|unsupported (?:field|parameter)", re.IGNORECASE)


def classify_status(provider: str, status_code: int, message: str) -> CareerForgeError:
    """
    Map a non-2xx provider response to an error class.

    401/403 mean the credential is wrong, which will not fix itself, so
    they surface as configuration errors.
    """
    body = (message or "")[:MAX_ERROR_BODY_LENGTH]
    text = f"{provider} API error ({status_code}): {body}"

    if status_code in (401, 403):
        return ConfigError(f"{provider} rejected the configured credentials ({status_code}): {body}")
    if status_code == 404:
        return FormatError(text, provider=provider, status_code=status_code)
    if status_code == 400 and _FIELD_REJECTED_RE.search(body):
        return FormatError(text, provider=provider, status_code=status_code)
    if status_code in TRANSIENT_STATUS_CODES or status_code >= 500:
        return TransientProviderError(text, provider=provider, status_code=status_code)
    return PermanentProviderError(text, provider=provider, status_code=status_code)


class BaseProvider(ABC):
    """Abstract base class for completion providers."""

    name = "base"

    def __init__(
        self,
        api_key: str,
        model: str,
        timeout_seconds: int = DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_MAX_RETRIES,
    ):
        """
        Initialize provider.

        Args:
            api_key: API key for the provider
            model: Default model identifier
            timeout_seconds: Per-request timeout in seconds
            max_retries: Retries for transient failures (total attempts = max_retries + 1)
        """
        if not api_key:
            raise ConfigError(f"Missing API key for {self.name}")
        self.api_key = api_key
        self.model = model
        self.timeout_seconds = timeout_seconds
        self.max_retries = max_retries
        self.logger = logger.bind(provider=self.name, model=model)

    def complete(
        self,
        system_prompt: str,
        user_content: str,
        *,
        temperature: float | None = None,
        model: str | None = None,
    ) -> str:
        """
        Run one logical completion and return the first completion's text.

        Transient failures are retried here; everything else propagates as a
        classified error.

        Raises:
            ConfigError: Credentials rejected
            TransientProviderError: Network/5xx/timeout after retries
            FormatError: Model or field unknown to the API
            PermanentProviderError: Other 4xx, or empty text
        """
        model = model or self.model
        temperature = DEFAULT_TEMPERATURE if temperature is None else temperature

        retry_strategy = Retrying(
            stop=stop_after_attempt(self.max_retries + 1),
            wait=wait_exponential(multiplier=1, min=1, max=8),
            retry=retry_if_exception_type(TransientProviderError),
            reraise=True,
        )

        self.logger.info(
            "completion_requested",
            model=model,
            temperature=temperature,
            prompt_length=len(user_content),
            system_prompt_length=len(system_prompt),
            max_retries=self.max_retries,
        )

        text = None
        for attempt in retry_strategy:
            with attempt:
                text = self._send(system_prompt, user_content, temperature=temperature, model=model)

        text = (text or "").strip()
        if not text:
            raise PermanentProviderError(f"{self.name} returned empty response", provider=self.name)

        self.logger.info("completion_received", model=model, response_length=len(text))
        return text

    @abstractmethod
    def _send(self, system_prompt: str, user_content: str, *, temperature: float, model: str) -> str | None:
        """
        Perform a single HTTP round trip.

        Returns:
            Raw text of the first completion (may be empty)
        """
        pass
