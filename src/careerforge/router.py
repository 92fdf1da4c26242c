"""Ordered provider fallback for a single task invocation."""

from dataclasses import dataclass, field
from typing import Callable

import structlog

from careerforge.config import ProviderCandidate
from careerforge.exceptions import ConfigError, ProviderError, ProviderExhaustedError
from careerforge.prompts import PromptPair
from careerforge.providers.base import BaseProvider

logger = structlog.get_logger(__name__)

ProviderFactory = Callable[[ProviderCandidate], BaseProvider]


@dataclass(frozen=True)
class Attempt:
    """One failed candidate call."""

    candidate: ProviderCandidate
    error_type: str
    message: str


@dataclass
class RoutedCompletion:
    """Raw text from the first candidate that answered."""

    text: str
    candidate: ProviderCandidate
    attempts: list[Attempt] = field(default_factory=list)


class FallbackRouter:
    """
    Try provider candidates strictly in order, one call in flight at a time.

    Provider failures move on to the next candidate. A configuration error
    stops the walk immediately because later candidates cannot fix it.
    """

    def __init__(self, provider_factory: ProviderFactory):
        """
        Args:
            provider_factory: Builds a provider for a candidate; raises
                ConfigError when credentials are missing
        """
        self.provider_factory = provider_factory
        self.logger = logger.bind(component="FallbackRouter")

    def route(
        self,
        task_name: str,
        candidates: list[ProviderCandidate],
        prompt: PromptPair,
        *,
        temperature: float | None = None,
    ) -> RoutedCompletion:
        """
        Return the first successful completion.

        Args:
            task_name: Task being served (for logging)
            candidates: Ordered candidates; first has highest priority
            prompt: System/user prompt pair
            temperature: Task default, overridden by a candidate's own setting

        Raises:
            ConfigError: From any candidate, or if the list is empty
            ProviderExhaustedError: Every candidate failed
        """
        if not candidates:
            raise ConfigError(f"No provider candidates for task '{task_name}'")

        log = self.logger.bind(task=task_name)
        attempts: list[Attempt] = []
        last_error: ProviderError | None = None

        for position, candidate in enumerate(candidates, start=1):
            log.info("candidate_started", candidate=candidate.label(), position=position)
            try:
                provider = self.provider_factory(candidate)
                text = provider.complete(
                    prompt.system,
                    prompt.user,
                    temperature=candidate.temperature if candidate.temperature is not None else temperature,
                    model=candidate.model,
                )
            except ConfigError:
                log.error("candidate_misconfigured", candidate=candidate.label())
                raise
            except ProviderError as e:
                attempts.append(Attempt(candidate, type(e).__name__, str(e)))
                last_error = e
                log.warning(
                    "candidate_failed",
                    candidate=candidate.label(),
                    error_type=type(e).__name__,
                    status_code=e.status_code,
                )
                continue

            log.info("candidate_succeeded", candidate=candidate.label(), failed_before=len(attempts))
            return RoutedCompletion(text=text, candidate=candidate, attempts=attempts)

        raise ProviderExhaustedError(
            f"All {len(candidates)} provider candidates failed for task '{task_name}': {last_error}",
            last_error=last_error,
            attempts=attempts,
        )
