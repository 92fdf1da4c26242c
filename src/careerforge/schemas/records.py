"""Persisted result records owned by the stabilization cache."""

from datetime import datetime, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class ResultOrigin(str, Enum):
    """Where a cached payload came from."""

    PROVIDER = "provider"
    HEURISTIC = "heuristic"


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class CachedResult(BaseModel):
    """
    One computed result for (user_id, task, fingerprint).

    Records are immutable once stored; a changed fingerprint produces a new
    record rather than an update.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    task: str
    fingerprint: str
    generated_at: datetime = Field(default_factory=utc_now)
    origin: ResultOrigin
    provider: str | None = None
    model: str | None = None
    payload: dict[str, Any]

    @property
    def key(self) -> tuple[str, str, str]:
        return (self.user_id, self.task, self.fingerprint)

    def response(self) -> dict[str, Any]:
        """Payload as returned to the caller, stamped with generatedAt."""
        return {**self.payload, "generatedAt": self.generated_at.isoformat()}
