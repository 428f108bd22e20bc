"""Normalisation of backend SDK exceptions into the Roundtable error taxonomy."""

import re

from ..core.exceptions import (
    AgentError,
    APIAuthError,
    APINetworkError,
    APIRateLimitError,
    APITimeoutError,
    RoundtableError,
)

_RATE_LIMIT = re.compile(r"rate.?limit|too.?many.?requests|quota|resource.?exhausted|throttl|overloaded", re.I)
_AUTH = re.compile(
    r"unauthenticated|unauthorized|forbidden|api.?key|invalid.?key|permission|access.?denied|credential",
    re.I,
)
_TIMEOUT = re.compile(r"timeout|timed.?out|deadline", re.I)
_NETWORK = re.compile(r"network|connection|econnrefused|econnreset|enotfound|socket|dns", re.I)


def _status_code(error: BaseException) -> int | None:
    for attr in ("code", "status_code", "status"):
        value = getattr(error, attr, None)
        if isinstance(value, int):
            return value
    return None


def normalize_error(error: BaseException, provider: str) -> RoundtableError:
    """Map an arbitrary backend exception onto a ``RoundtableError``.

    HTTP status codes win over message heuristics. Errors that are already
    normalised pass through unchanged.
    """
    if isinstance(error, RoundtableError):
        return error

    message = str(error) or type(error).__name__
    status = _status_code(error)

    if status == 429 or _RATE_LIMIT.search(message):
        return APIRateLimitError(message, provider=provider, cause=error)
    if status in (401, 403) or _AUTH.search(message):
        return APIAuthError(message, provider=provider, cause=error)
    if isinstance(error, TimeoutError) or status in (408, 504) or _TIMEOUT.search(message):
        return APITimeoutError(message, provider=provider, cause=error)
    if isinstance(error, ConnectionError) or _NETWORK.search(message):
        return APINetworkError(message, provider=provider, cause=error)
    if status is not None and status >= 500:
        # Transient server-side failures are worth another attempt
        return AgentError(message, code="API_SERVER_ERROR", retryable=True, provider=provider, cause=error)
    return AgentError(message, provider=provider, cause=error)
