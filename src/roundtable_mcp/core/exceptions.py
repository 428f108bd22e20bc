"""Custom exceptions for the Roundtable MCP Server."""


class RoundtableError(Exception):
    """Base exception for Roundtable errors.

    Attributes:
        code: Stable machine-readable error code
        retryable: Whether the bounded retry policy may re-attempt the call
        provider: Backend provider the error originated from, if any
        cause: Underlying exception, if any
    """

    default_code = "ROUNDTABLE_ERROR"
    default_retryable = False

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        retryable: bool | None = None,
        provider: str | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.retryable = self.default_retryable if retryable is None else retryable
        self.provider = provider
        self.cause = cause

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            "name": type(self).__name__,
            "message": self.message,
            "code": self.code,
            "provider": self.provider,
            "retryable": self.retryable,
            "cause": str(self.cause) if self.cause else None,
        }


class APIRateLimitError(RoundtableError):
    """Backend rate limit or quota exceeded."""

    default_code = "API_RATE_LIMIT"
    default_retryable = True


class APIAuthError(RoundtableError):
    """Backend rejected our credentials."""

    default_code = "API_AUTH_FAILED"


class APINetworkError(RoundtableError):
    """Connection-level failure talking to a backend."""

    default_code = "API_NETWORK_ERROR"
    default_retryable = True


class APITimeoutError(RoundtableError):
    """Backend call did not finish in time."""

    default_code = "API_TIMEOUT"
    default_retryable = True


class AgentError(RoundtableError):
    """Agent-level failure."""

    default_code = "AGENT_ERROR"


class SessionError(RoundtableError):
    """Session lookup or state error."""

    default_code = "SESSION_ERROR"


class InvalidTransitionError(SessionError):
    """Requested status change is not allowed from the current status."""

    default_code = "INVALID_TRANSITION"


class StorageError(RoundtableError):
    """Session store read/write failure."""

    default_code = "STORAGE_ERROR"


class ConfigurationError(RoundtableError):
    """Invalid wiring or configuration."""

    default_code = "CONFIGURATION_ERROR"
