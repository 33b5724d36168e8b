"""HTTP client for the hosted LLM (Anthropic Messages API)."""

from __future__ import annotations

from functools import lru_cache
from typing import Any, Dict, Optional

import httpx

from src.core.config import get_settings
from src.core.errors import (
    UPSTREAM_KIND_AUTH,
    UPSTREAM_KIND_GENERIC,
    UPSTREAM_KIND_RATE_LIMIT,
    UpstreamError,
)
from src.core.logger import get_logger
from src.core.metrics import record_llm_error


logger = get_logger("contentos.llm")

_AUTH_SIGNATURES = ("api key", "api_key", "authentication", "unauthorized", "invalid x-api-key")
_RATE_LIMIT_SIGNATURES = ("rate limit", "rate_limit", "too many requests", "overloaded")


def classify_upstream_failure(*, status: Optional[int], message: str) -> str:
    """Map an upstream status/message to auth, rate_limit or generic."""

    lowered = (message or "").lower()
    if status in {401, 403} or any(signature in lowered for signature in _AUTH_SIGNATURES):
        return UPSTREAM_KIND_AUTH
    if status in {429, 529} or any(signature in lowered for signature in _RATE_LIMIT_SIGNATURES):
        return UPSTREAM_KIND_RATE_LIMIT
    return UPSTREAM_KIND_GENERIC


class LLMClient:
    def __init__(
        self,
        *,
        api_key: str,
        model: str,
        base_url: str = "https://api.anthropic.com",
        api_version: str = "2023-06-01",
        timeout_seconds: int = 60,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self._api_key = api_key.strip()
        self._model = model.strip()
        self._base_url = base_url.rstrip("/")
        self._api_version = api_version
        self._timeout_seconds = max(1, timeout_seconds)
        self._client = client

    @property
    def configured(self) -> bool:
        return bool(self._api_key)

    def _fail(self, message: str, *, status: Optional[int] = None, kind: Optional[str] = None) -> UpstreamError:
        resolved_kind = kind or classify_upstream_failure(status=status, message=message)
        record_llm_error(kind=resolved_kind)
        logger.error("llm_request_failed", kind=resolved_kind, status=status, error=message)
        return UpstreamError(message, kind=resolved_kind, status=status)

    def _headers(self) -> Dict[str, str]:
        if not self._api_key:
            raise self._fail("Claude API key is not configured", kind=UPSTREAM_KIND_AUTH)
        return {
            "x-api-key": self._api_key,
            "anthropic-version": self._api_version,
            "content-type": "application/json",
        }

    def _post_messages(self, body: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self._base_url}/v1/messages"
        headers = self._headers()
        try:
            if self._client is not None:
                response = self._client.post(url, headers=headers, json=body)
            else:
                with httpx.Client(timeout=self._timeout_seconds) as client:
                    response = client.post(url, headers=headers, json=body)
        except httpx.HTTPError as exc:
            raise self._fail(f"LLM request failed: {exc}") from exc

        if response.status_code < 200 or response.status_code >= 300:
            detail = response.text.strip()
            if len(detail) > 240:
                detail = detail[:240] + "..."
            raise self._fail(
                f"LLM request failed status={response.status_code} detail={detail}",
                status=response.status_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise self._fail("LLM returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise self._fail("LLM returned invalid payload format")
        return payload

    def complete(
        self,
        *,
        system: Optional[str],
        user: str,
        max_tokens: int,
        temperature: float,
    ) -> str:
        """Send one user message and return the first text block of the reply."""

        body: Dict[str, Any] = {
            "model": self._model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "messages": [{"role": "user", "content": user}],
        }
        if system:
            body["system"] = system

        payload = self._post_messages(body)
        for block in payload.get("content") or []:
            if isinstance(block, dict) and block.get("type") == "text":
                text = block.get("text")
                if isinstance(text, str):
                    return text
        raise self._fail("No text content in LLM response")

    def ping(self) -> bool:
        payload = self._post_messages(
            {
                "model": self._model,
                "max_tokens": 1,
                "temperature": 0,
                "messages": [{"role": "user", "content": "ok"}],
            }
        )
        return bool(payload.get("id"))


@lru_cache(maxsize=1)
def _build_llm_client() -> LLMClient:
    settings = get_settings()
    return LLMClient(
        api_key=settings.claude_api_key,
        model=settings.llm_model,
        base_url=settings.llm_api_base_url,
        api_version=settings.llm_api_version,
        timeout_seconds=settings.llm_timeout_seconds,
    )


def get_llm_client() -> LLMClient:
    return _build_llm_client()


def reset_llm_client_cache() -> None:
    _build_llm_client.cache_clear()
