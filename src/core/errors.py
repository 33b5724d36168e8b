"""Error taxonomy shared by services and mapped to HTTP responses at the edge."""

from __future__ import annotations

from typing import Optional


UPSTREAM_KIND_AUTH = "auth"
UPSTREAM_KIND_RATE_LIMIT = "rate_limit"
UPSTREAM_KIND_GENERIC = "generic"


class ContentOSError(RuntimeError):
    """Base error carrying an HTTP status and a message safe to show clients."""

    status_code = 500
    public_message = "Internal server error"

    def __init__(self, message: str, *, public_message: Optional[str] = None) -> None:
        super().__init__(message)
        if public_message is not None:
            self.public_message = public_message


class ValidationError(ContentOSError):
    """Raised for malformed or missing input."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message, public_message=message)


class NotFoundError(ContentOSError):
    status_code = 404

    def __init__(self, message: str = "Postcard not found") -> None:
        super().__init__(message, public_message=message)


class StorageError(ContentOSError):
    """Raised when a database query or mutation fails."""

    status_code = 500
    public_message = "Storage operation failed"

    def __init__(self, message: str, *, detail: Optional[str] = None) -> None:
        super().__init__(message)
        self.detail = detail


class UpstreamError(ContentOSError):
    """Raised when the LLM API call fails; `kind` separates auth, rate-limit and generic failures."""

    def __init__(self, message: str, *, kind: str = UPSTREAM_KIND_GENERIC, status: Optional[int] = None) -> None:
        super().__init__(message)
        self.kind = kind
        self.upstream_status = status
        if kind == UPSTREAM_KIND_AUTH:
            self.status_code = 500
            self.public_message = "LLM API configuration error"
        elif kind == UPSTREAM_KIND_RATE_LIMIT:
            self.status_code = 429
            self.public_message = "LLM API rate limit reached, please retry later"
        else:
            self.status_code = 500
            self.public_message = "LLM request failed"
