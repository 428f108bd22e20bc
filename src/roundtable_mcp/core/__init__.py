"""Core modules for the Roundtable MCP Server."""

from .exceptions import (
    AgentError,
    APIAuthError,
    APINetworkError,
    APIRateLimitError,
    APITimeoutError,
    ConfigurationError,
    InvalidTransitionError,
    RoundtableError,
    SessionError,
    StorageError,
)
from .retry import with_retry
from .types import (
    AgentResponse,
    Citation,
    ConsensusResult,
    ContextRequest,
    ContextResult,
    DebateContext,
    RequestPriority,
    RoundResult,
    RoundStatus,
    Session,
    SessionStatus,
    Stance,
    ToolCallRecord,
)

__all__ = [
    "AgentError",
    "AgentResponse",
    "APIAuthError",
    "APINetworkError",
    "APIRateLimitError",
    "APITimeoutError",
    "Citation",
    "ConfigurationError",
    "ConsensusResult",
    "ContextRequest",
    "ContextResult",
    "DebateContext",
    "InvalidTransitionError",
    "RequestPriority",
    "RoundResult",
    "RoundStatus",
    "RoundtableError",
    "Session",
    "SessionError",
    "SessionStatus",
    "Stance",
    "StorageError",
    "ToolCallRecord",
    "with_retry",
]
