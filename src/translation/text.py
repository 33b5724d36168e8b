"""Post-processing for Swedish LinkedIn text returned by the LLM."""

from __future__ import annotations

from typing import Tuple


SWEDISH_HARD_LIMIT = 3000
TRUNCATE_WINDOW = 2990
SENTENCE_BOUNDARY_FLOOR = 2500
ELLIPSIS = "..."

# Lead-ins the model tends to prepend despite being told not to.
UNWANTED_PREFIXES: Tuple[str, ...] = (
    "Here is the Swedish LinkedIn post:",
    "Swedish LinkedIn post:",
    "LinkedIn post in Swedish:",
    "Swedish translation:",
    "Svensk LinkedIn-post:",
    "Här är LinkedIn-inlägget på svenska:",
)


def strip_preamble(text: str) -> str:
    cleaned = (text or "").strip()
    lowered = cleaned.lower()
    for prefix in UNWANTED_PREFIXES:
        if lowered.startswith(prefix.lower()):
            return cleaned[len(prefix):].strip()
    return cleaned


def fit_to_limit(text: str, *, limit: int = SWEDISH_HARD_LIMIT) -> str:
    """
    Keep `text` within `limit` characters.

    Over-long text is cut to a window ten characters under the limit; if a
    sentence terminator sits past the boundary floor the cut lands right after
    it, otherwise an ellipsis marks the cut.
    """
    if len(text) <= limit:
        return text

    window = max(limit - (SWEDISH_HARD_LIMIT - TRUNCATE_WINDOW), 0)
    floor = limit - (SWEDISH_HARD_LIMIT - SENTENCE_BOUNDARY_FLOOR)
    trimmed = text[:window]
    last_sentence_end = max(trimmed.rfind("."), trimmed.rfind("!"), trimmed.rfind("?"))
    if last_sentence_end > floor:
        return trimmed[: last_sentence_end + 1]
    return trimmed + ELLIPSIS


def clean_swedish_content(text: str, *, limit: int = SWEDISH_HARD_LIMIT) -> str:
    return fit_to_limit(strip_preamble(text), limit=limit)
