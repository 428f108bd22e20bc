"""JSON file store for debate sessions and their responses."""

import json
import logging
from pathlib import Path

from filelock import FileLock, Timeout

from ..config import config
from ..core.exceptions import StorageError
from ..core.types import AgentResponse, Session, SessionStatus

logger = logging.getLogger(__name__)

_TERMINAL = {SessionStatus.COMPLETED, SessionStatus.ERROR}


class SessionStore:
    """Persistent storage for sessions with file locking and a session quota.

    Layout under ``data_dir``::

        sessions/<id>.json    session record
        responses/<id>.json   list of responses, unique per (round_number, agent_id)

    Every file gets a ``.lock`` sidecar. A lock that cannot be acquired
    raises :class:`StorageError` (retryable) instead of writing unlocked.
    """

    def __init__(self, data_dir: Path | None = None, max_sessions: int | None = None) -> None:
        root = Path(data_dir) if data_dir is not None else config.data_dir
        self.sessions_dir = root / "sessions"
        self.responses_dir = root / "responses"
        self.sessions_dir.mkdir(parents=True, exist_ok=True)
        self.responses_dir.mkdir(parents=True, exist_ok=True)
        self.max_sessions = max_sessions or config.max_sessions

    def _lock_for(self, path: Path) -> FileLock:
        return FileLock(str(path) + ".lock", timeout=5)

    def _session_file(self, session_id: str) -> Path:
        return self.sessions_dir / f"{session_id}.json"

    def _responses_file(self, session_id: str) -> Path:
        return self.responses_dir / f"{session_id}.json"

    # -------------------------------------------------------------------------
    # Low-level read/write
    # -------------------------------------------------------------------------
    def _read_json(self, path: Path):
        if not path.exists():
            return None
        try:
            with self._lock_for(path):
                return json.loads(path.read_text())
        except Timeout as e:
            raise StorageError(f"Lock timeout reading {path.name}", retryable=True, cause=e) from e
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to read {path.name}: {e}", cause=e) from e

    def _write_json(self, path: Path, data) -> None:
        try:
            with self._lock_for(path):
                path.write_text(json.dumps(data, indent=2))
        except Timeout as e:
            raise StorageError(f"Lock timeout writing {path.name}", retryable=True, cause=e) from e
        except OSError as e:
            raise StorageError(f"Failed to write {path.name}: {e}", cause=e) from e

    # -------------------------------------------------------------------------
    # Sessions
    # -------------------------------------------------------------------------
    def save_session(self, session: Session) -> None:
        """Write the session record (responses are stored separately)."""
        self._write_json(self._session_file(session.id), session.to_dict())
        self._enforce_quota()

    def load_session(self, session_id: str) -> Session | None:
        data = self._read_json(self._session_file(session_id))
        if data is None:
            return None
        session = Session.from_dict(data)
        session.responses = self.load_responses(session_id)
        return session

    def delete_session(self, session_id: str) -> bool:
        removed = False
        for path in (self._session_file(session_id), self._responses_file(session_id)):
            if path.exists():
                path.unlink(missing_ok=True)
                removed = True
            Path(str(path) + ".lock").unlink(missing_ok=True)
        return removed

    def list_sessions(self) -> list[Session]:
        """All session records, most recently updated first, without responses."""
        sessions = []
        for path in self.sessions_dir.glob("*.json"):
            try:
                data = self._read_json(path)
            except StorageError as e:
                logger.warning(f"Skipping unreadable session file {path.name}: {e}")
                continue
            if data:
                sessions.append(Session.from_dict(data))
        sessions.sort(key=lambda s: s.updated_at, reverse=True)
        return sessions

    def _enforce_quota(self) -> None:
        """Remove the oldest finished sessions when over quota."""
        sessions = self.list_sessions()
        excess = len(sessions) - self.max_sessions
        if excess <= 0:
            return
        finished = sorted((s for s in sessions if s.status in _TERMINAL), key=lambda s: s.updated_at)
        for session in finished[:excess]:
            self.delete_session(session.id)
            logger.debug(f"Pruned old session: {session.id}")

    # -------------------------------------------------------------------------
    # Responses
    # -------------------------------------------------------------------------
    def load_responses(self, session_id: str) -> list[AgentResponse]:
        data = self._read_json(self._responses_file(session_id)) or []
        return [AgentResponse.from_dict(r) for r in data]

    def append_response(self, session_id: str, response: AgentResponse) -> None:
        """Add ``response``, replacing any earlier one for the same round and agent."""
        path = self._responses_file(session_id)
        try:
            with self._lock_for(path):
                existing = json.loads(path.read_text()) if path.exists() else []
                key = (response.round_number, response.agent_id)
                kept = [r for r in existing if (r.get("round_number"), r.get("agent_id")) != key]
                kept.append(response.to_dict())
                path.write_text(json.dumps(kept, indent=2))
        except Timeout as e:
            raise StorageError(f"Lock timeout writing {path.name}", retryable=True, cause=e) from e
        except (OSError, json.JSONDecodeError) as e:
            raise StorageError(f"Failed to append response to {path.name}: {e}", cause=e) from e
