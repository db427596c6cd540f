"""
Centralized error handling for chat, store and upstream failures.
Error types, status codes and a reusable mapping so routes stay thin and new error types are easy to add.
"""
from __future__ import annotations

from typing import Any, Callable

# ---------------------------------------------------------------------------
# Constants: status codes and user-facing messages
# ---------------------------------------------------------------------------

# AI / OpenAI
OPENAI_BILLING_URL = "https://platform.openai.com/account/billing"
MSG_AI_QUOTA_EXCEEDED = (
    "AI service quota exceeded. Check your OpenAI plan and billing at {url}"
).format(url=OPENAI_BILLING_URL)
MSG_GENERATION_FAILED = "Failed to generate response"
MSG_UPSTREAM_UNAVAILABLE = "Market data is temporarily unavailable"
MSG_NOT_FOUND = "Chat not found"
MSG_PERSISTENCE_FAILED = "Failed to save chat data"
MSG_INTERNAL_ERROR = "Internal server error"

STATUS_BAD_REQUEST = 400
STATUS_NOT_FOUND = 404
STATUS_INTERNAL_ERROR = 500
STATUS_SERVICE_UNAVAILABLE = 503  # quota, rate limit, provider down


# ---------------------------------------------------------------------------
# Error types
# ---------------------------------------------------------------------------


class PerpologyError(Exception):
    """Base error; message is internal unless the rule table says otherwise."""

    def __init__(self, message: str, details: Any | None = None):
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationError(PerpologyError):
    """Missing identity/title/role/content. User-correctable."""


class NotFoundOrForbidden(PerpologyError):
    """Chat does not exist or belongs to another identity."""


class UpstreamUnavailable(PerpologyError):
    """Market feed or completion provider failure."""


class GenerationFailed(UpstreamUnavailable):
    """Completion provider call failed."""


class PersistenceError(PerpologyError):
    """Store operation failed; details are logged, never exposed."""


# ---------------------------------------------------------------------------
# Error rules: (predicate, status_code, detail_message)
# Add new rules here instead of scattering checks in routes.
# detail None means the error's own message is safe to show.
# ---------------------------------------------------------------------------


def _is_quota_error(msg: str) -> bool:
    lower = msg.lower()
    return (
        "429" in msg
        or "insufficient_quota" in lower
        or "quota" in lower
        or "rate limit" in lower
    )


def _is_quota_generation_failure(exc: Exception) -> bool:
    if not isinstance(exc, GenerationFailed):
        return False
    cause = exc.__cause__
    return cause is not None and _is_quota_error(str(cause))


def _is(kind: type[Exception]) -> Callable[[Exception], bool]:
    return lambda exc: isinstance(exc, kind)


# List of (predicate, status_code, detail). First match wins.
ERROR_RULES: list[tuple[Callable[[Exception], bool], int, str | None]] = [
    (_is(ValidationError), STATUS_BAD_REQUEST, None),
    (_is(NotFoundOrForbidden), STATUS_NOT_FOUND, MSG_NOT_FOUND),
    (_is_quota_generation_failure, STATUS_SERVICE_UNAVAILABLE, MSG_AI_QUOTA_EXCEEDED),
    (_is(GenerationFailed), STATUS_SERVICE_UNAVAILABLE, MSG_GENERATION_FAILED),
    (_is(UpstreamUnavailable), STATUS_SERVICE_UNAVAILABLE, MSG_UPSTREAM_UNAVAILABLE),
    (_is(PersistenceError), STATUS_INTERNAL_ERROR, MSG_PERSISTENCE_FAILED),
]


def error_to_status(exc: Exception) -> tuple[int, str]:
    """
    Map an exception into (status_code, public message).
    Uses ERROR_RULES for known error types; otherwise 500 with a generic message (raw text is never exposed).
    """
    for predicate, status_code, detail in ERROR_RULES:
        if predicate(exc):
            if detail is None:
                return status_code, getattr(exc, "message", None) or str(exc)
            return status_code, detail
    return STATUS_INTERNAL_ERROR, MSG_INTERNAL_ERROR


def error_body(message: str) -> dict[str, Any]:
    """Failure body shared by every route."""
    return {"success": False, "error": message}
