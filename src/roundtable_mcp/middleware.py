"""Bearer-token authentication and JSON audit logging for the roundtable server.

``BearerAuthMiddleware`` speaks raw ASGI rather than subclassing Starlette's
``BaseHTTPMiddleware``; the latter buffers streaming bodies, which stalls the
SSE transport.

Ref: https://github.com/encode/starlette/discussions/1729
"""

import hmac
import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

from .config import config

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Audit log: one JSON object per tool call or auth rejection
# ---------------------------------------------------------------------------
_audit_logger = logging.getLogger("roundtable_mcp.audit")


class _AuditFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        entry: dict = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "event": record.getMessage(),
        }
        entry.update(getattr(record, "audit_data", {}))
        # Enum members, lists of agent ids and the like
        return json.dumps(entry, default=str)


def _setup_audit_logger() -> None:
    """Attach a stdout JSON handler to the audit logger once."""
    if _audit_logger.handlers:
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(_AuditFormatter())
    _audit_logger.addHandler(handler)
    _audit_logger.setLevel(logging.INFO)
    _audit_logger.propagate = False


def audit_event(event: str, **fields: Any) -> None:
    """Emit an audit record; fields set to ``None`` are left out.

    Does nothing unless ``config.audit_log`` is enabled.
    """
    if not config.audit_log:
        return
    record = _audit_logger.makeRecord(_audit_logger.name, logging.INFO, "", 0, event, (), None)
    record.audit_data = {k: v for k, v in fields.items() if v is not None}  # type: ignore[attr-defined]
    _audit_logger.handle(record)


def audit_tool_call(tool: str, **fields: Any) -> None:
    """Audit an MCP tool invocation."""
    audit_event("tool_call", tool=tool, **fields)


if config.audit_log:
    _setup_audit_logger()


# ---------------------------------------------------------------------------
# Bearer auth (pure ASGI)
# ---------------------------------------------------------------------------
def _bearer_token(scope: dict) -> str | None:
    """Token from the ``Authorization`` header, or None if absent or not Bearer."""
    for key, value in scope.get("headers", []):
        if key != b"authorization":
            continue
        scheme, _, token = value.decode("latin-1").partition(" ")
        # Scheme is case-insensitive per RFC 7235
        if scheme.lower() == "bearer" and token:
            return token
        return None
    return None


async def _reject(send: Any) -> None:
    body = json.dumps({"error": "unauthorized"}).encode()
    await send(
        {
            "type": "http.response.start",
            "status": 401,
            "headers": [
                (b"content-type", b"application/json"),
                (b"content-length", str(len(body)).encode()),
                (b"www-authenticate", b"Bearer"),
            ],
        }
    )
    await send({"type": "http.response.body", "body": body})


class BearerAuthMiddleware:
    """Require ``Authorization: Bearer <token>`` on HTTP requests.

    Tokens are compared with ``hmac.compare_digest``. Paths in
    ``EXEMPT_PATHS`` stay open so load balancers can probe ``/health``.
    """

    EXEMPT_PATHS = frozenset({"/health"})

    def __init__(self, app: Any, token: str = "") -> None:
        self.app = app
        self._expected = token.encode()

    async def __call__(self, scope: dict, receive: Any, send: Any) -> None:
        if scope["type"] != "http" or scope.get("path", "") in self.EXEMPT_PATHS:
            await self.app(scope, receive, send)
            return

        token = _bearer_token(scope)
        if token is None or not hmac.compare_digest(token.encode(), self._expected):
            audit_event("auth_rejected", path=scope.get("path", ""))
            await _reject(send)
            return

        await self.app(scope, receive, send)
