"""Task orchestrator for CareerForge."""

from enum import Enum, auto
from typing import TYPE_CHECKING

import structlog

from careerforge.cache import KeyedLocks, ResultStore, create_result_store
from careerforge.exceptions import (
    ConfigError,
    ExtractionError,
    NotFoundError,
    ProviderExhaustedError,
    ValidationError,
)
from careerforge.providers import create_provider, resolve_candidates
from careerforge.router import FallbackRouter
from careerforge.schemas.evidence import EvidenceBundle
from careerforge.schemas.records import CachedResult, ResultOrigin
from careerforge.tasks import build_tasks

if TYPE_CHECKING:
    from careerforge.config import Config
    from careerforge.tasks.base import BaseTask

logger = structlog.get_logger(__name__)


class InvocationState(Enum):
    """States of a single task invocation."""

    CACHE_LOOKUP = auto()
    ASSEMBLE = auto()
    ROUTER_CALL = auto()
    VALIDATE = auto()
    HEURISTIC_FALLBACK = auto()
    PERSIST = auto()
    RETURNED = auto()


class TaskOrchestrator:
    """
    Serves task results with stable, cached output.

    An invocation either returns the stored record for its fingerprint or
    computes one (provider first, heuristic on failure), stores it and
    returns whichever record the store kept.
    """

    def __init__(
        self,
        config: "Config",
        store: ResultStore,
        router: FallbackRouter,
        tasks: dict[str, "BaseTask"],
    ):
        """
        Initialize orchestrator.

        Args:
            config: Configuration object (from load_config)
            store: Result store used as the stabilization cache
            router: Fallback router for provider calls
            tasks: Dictionary mapping task names to task instances
        """
        self.config = config
        self.store = store
        self.router = router
        self.tasks = tasks
        self.locks = KeyedLocks()
        self.logger = logger.bind(orchestrator="TaskOrchestrator")

    def _get_task(self, task_name: str) -> "BaseTask":
        task = self.tasks.get(task_name)
        if task is None:
            raise ConfigError(f"Unknown task: {task_name}")
        return task

    def execute(self, task_name: str, user_id: str, evidence: EvidenceBundle) -> CachedResult:
        """
        Return the stable result for (user, task, evidence).

        Args:
            task_name: Registered task name
            user_id: Owner of the evidence
            evidence: Caller-supplied evidence bundle

        Returns:
            The stored record (cached, freshly computed, or a concurrent winner)

        Raises:
            ConfigError: Unknown task, missing chain or missing credentials
            ValidationError: Evidence the task cannot work with
        """
        task = self._get_task(task_name)
        task.validate_evidence(evidence)

        fingerprint = task.fingerprint(evidence)
        log = self.logger.bind(task=task_name, user_id=user_id, fingerprint=fingerprint[:16])

        with self.locks.hold((user_id, task_name, fingerprint)):
            log.info("state_entered", state=InvocationState.CACHE_LOOKUP.name)
            cached = self.store.get(user_id, task_name, fingerprint)
            if cached is not None:
                log.info("cache_hit", generated_at=cached.generated_at.isoformat())
                log.info("state_entered", state=InvocationState.RETURNED.name)
                return cached
            log.info("cache_miss")

            record = self._compute(task, user_id, fingerprint, evidence, log)

            log.info("state_entered", state=InvocationState.PERSIST.name, origin=record.origin.value)
            stored = self.store.put_if_absent(record)
            if stored is not record:
                log.info("concurrent_result_kept", generated_at=stored.generated_at.isoformat())

        log.info("state_entered", state=InvocationState.RETURNED.name)
        return stored

    def _compute(
        self,
        task: "BaseTask",
        user_id: str,
        fingerprint: str,
        evidence: EvidenceBundle,
        log,
    ) -> CachedResult:
        """Run ASSEMBLE → ROUTER_CALL → VALIDATE, falling back to the heuristic."""
        log.info("state_entered", state=InvocationState.ASSEMBLE.name)
        prompt = task.build_prompt(evidence)
        log.debug("prompt_assembled", user_chars=len(prompt.user))

        log.info("state_entered", state=InvocationState.ROUTER_CALL.name)
        candidates = resolve_candidates(task.name, self.config)
        try:
            completion = self.router.route(task.name, candidates, prompt, temperature=task.temperature)
        except ProviderExhaustedError as e:
            log.warning("providers_exhausted", attempts=len(e.attempts), last_error=str(e.last_error))
            return self._fallback(task, user_id, fingerprint, evidence, log)

        log.info("state_entered", state=InvocationState.VALIDATE.name, candidate=completion.candidate.label())
        try:
            result = task.finalize(task.parse_response(completion.text))
        except (ExtractionError, ValidationError) as e:
            log.warning(
                "response_rejected",
                error_type=type(e).__name__,
                reason=getattr(e, "reason", None),
                field=getattr(e, "field", None),
            )
            return self._fallback(task, user_id, fingerprint, evidence, log)

        return CachedResult(
            user_id=user_id,
            task=task.name,
            fingerprint=fingerprint,
            origin=ResultOrigin.PROVIDER,
            provider=completion.candidate.provider,
            model=completion.candidate.model,
            payload=result.to_payload(),
        )

    def _fallback(
        self,
        task: "BaseTask",
        user_id: str,
        fingerprint: str,
        evidence: EvidenceBundle,
        log,
    ) -> CachedResult:
        log.info("state_entered", state=InvocationState.HEURISTIC_FALLBACK.name)
        result = task.fallback(evidence)
        log.info("heuristic_fallback")
        return CachedResult(
            user_id=user_id,
            task=task.name,
            fingerprint=fingerprint,
            origin=ResultOrigin.HEURISTIC,
            payload=result.to_payload(),
        )

    def latest(self, user_id: str, task_name: str) -> CachedResult:
        """
        Most recent stored result for (user, task).

        Raises:
            NotFoundError: Nothing has been computed yet
        """
        self._get_task(task_name)
        record = self.store.latest(user_id, task_name)
        if record is None:
            raise NotFoundError(f"No {task_name} result found for user")
        return record


def build_orchestrator(config: "Config", disable_cache: bool = False) -> TaskOrchestrator:
    """
    Wire the default store, router and tasks from configuration.

    Args:
        config: Configuration object
        disable_cache: Use a no-op store (for --no-cache flag)
    """
    store = create_result_store(config.cache, disable_cache=disable_cache)
    router = FallbackRouter(lambda candidate: create_provider(candidate, config))
    return TaskOrchestrator(config, store, router, build_tasks(config.tasks))
