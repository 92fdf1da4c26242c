"""Deterministic content fingerprints used as result-cache keys."""

import hashlib
import json
from typing import Any, Iterable

FIELD_SEPARATOR = "|"


def hash_text(value: str) -> str:
    """SHA-256 hex digest of UTF-8 text."""
    return hashlib.sha256(value.encode("utf-8")).hexdigest()


def field_token(name: str, value: str | None) -> str:
    """
    Canonical token for one evidence field.

    An absent field becomes the sentinel ``no-<name>``; a present field,
    including an empty string, becomes ``<name>:<sha256>``.
    """
    if value is None:
        return f"no-{name}"
    return f"{name}:{hash_text(value)}"


def compute_fingerprint(
    prompt_version: str,
    fields: Iterable[tuple[str, str | None]],
    extras: Iterable[tuple[str, Any]] = (),
) -> str:
    """
    Compute the fingerprint for a task invocation.

    Args:
        prompt_version: Task prompt/shape version tag; bumping it invalidates
            every fingerprint computed under the previous tag
        fields: Ordered (name, text) evidence pairs
        extras: Other output-affecting values, serialized as canonical JSON

    Returns:
        64-character hex digest
    """
    parts = [prompt_version]
    parts.extend(field_token(name, value) for name, value in fields)
    for name, value in extras:
        parts.append(f"{name}={json.dumps(value, sort_keys=True, separators=(',', ':'))}")
    return hash_text(FIELD_SEPARATOR.join(parts))
