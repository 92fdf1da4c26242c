"""Plain-text normalization for model answers."""

import re

MAX_EVIDENCE_CHARS = 12000

_FENCE_RE = re.compile(r"^\s*```[\w-]*\s*$", re.MULTILINE)
_HEADING_RE = re.compile(r"^\s{0,3}#{1,6}\s+", re.MULTILINE)
_BOLD_RE = re.compile(r"(\*\*|__)(.+?)\1")
_ITALIC_RE = re.compile(r"(?<![\w*])\*(?!\s)([^*\n]+?)(?<!\s)\*(?![\w*])")
_BULLET_RE = re.compile(r"^(\s*)(?:[*+•])\s+", re.MULTILINE)
_TRAILING_WS_RE = re.compile(r"[ \t]+$", re.MULTILINE)
_BLANK_RUN_RE = re.compile(r"\n{3,}")


def normalize_answer(text: str) -> str:
    """
    Strip markdown decoration from a plain-text answer.

    Removes code fences, heading markers and emphasis, rewrites ``*``, ``+``
    and ``•`` bullets as ``- ``, and collapses runs of blank lines.
    """
    text = text.replace("\r\n", "\n")
    text = _FENCE_RE.sub("", text)
    text = _HEADING_RE.sub("", text)
    text = _BULLET_RE.sub(r"\1- ", text)
    text = _BOLD_RE.sub(r"\2", text)
    text = _ITALIC_RE.sub(r"\1", text)
    text = _TRAILING_WS_RE.sub("", text)
    text = _BLANK_RUN_RE.sub("\n\n", text)
    return text.strip()


def truncate(text: str, limit: int = MAX_EVIDENCE_CHARS) -> str:
    """Bound text length, marking the cut."""
    if len(text) <= limit:
        return text
    return text[:limit].rstrip() + "\n[truncated]"
