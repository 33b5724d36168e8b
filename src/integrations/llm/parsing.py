"""Helpers for pulling structured payloads out of free-form LLM replies."""

from __future__ import annotations

import json
import re
from typing import Any, List

from src.core.errors import UpstreamError


_JSON_ARRAY_RE = re.compile(r"\[[\s\S]*\]")


def extract_json_array(text: str) -> List[Any]:
    """Decode the outermost `[...]` block of a reply; the model often wraps it in prose."""

    match = _JSON_ARRAY_RE.search(text or "")
    if match is None:
        raise UpstreamError("llm_response_unparseable: no JSON array found")
    try:
        loaded = json.loads(match.group(0))
    except ValueError as exc:
        raise UpstreamError("llm_response_unparseable: invalid JSON array") from exc
    if not isinstance(loaded, list):
        raise UpstreamError("llm_response_unparseable: payload is not a list")
    return loaded
