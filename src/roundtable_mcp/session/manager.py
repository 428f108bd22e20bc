"""Session lifecycle, round bookkeeping and response history.

``SessionManager`` is the only writer to the :class:`SessionStore`; other
components read sessions through it and report back through it.
"""

import logging
import re
import uuid
from datetime import datetime

from ..core.exceptions import InvalidTransitionError, SessionError
from ..core.types import AgentResponse, Session, SessionStatus
from .store import SessionStore

logger = logging.getLogger(__name__)

# action -> (allowed from, target)
TRANSITIONS: dict[str, tuple[frozenset[SessionStatus], SessionStatus]] = {
    "pause": (frozenset({SessionStatus.ACTIVE}), SessionStatus.PAUSED),
    "resume": (frozenset({SessionStatus.PAUSED}), SessionStatus.ACTIVE),
    "stop": (frozenset({SessionStatus.ACTIVE, SessionStatus.PAUSED}), SessionStatus.COMPLETED),
    "complete": (frozenset({SessionStatus.ACTIVE}), SessionStatus.COMPLETED),
    "fail": (frozenset({SessionStatus.ACTIVE, SessionStatus.PAUSED}), SessionStatus.ERROR),
}

_WORD = re.compile(r"[a-z0-9]{3,}")
_MAX_EVIDENCE = 5


def _words(text: str) -> set[str]:
    return set(_WORD.findall(text.lower()))


class SessionManager:
    def __init__(self, store: SessionStore | None = None) -> None:
        self.store = store or SessionStore()

    # -------------------------------------------------------------------------
    # CRUD
    # -------------------------------------------------------------------------
    def create_session(
        self, topic: str, mode: str, agent_ids: list[str], total_rounds: int = 3
    ) -> Session:
        if total_rounds < 1:
            raise SessionError(f"total_rounds must be >= 1, got {total_rounds}", code="INVALID_ROUNDS")
        session = Session(
            id=str(uuid.uuid4()),
            topic=topic,
            mode=mode,
            agent_ids=list(agent_ids),
            total_rounds=total_rounds,
        )
        self.store.save_session(session)
        logger.info(f"Created session {session.id} ({mode}, {len(agent_ids)} agents, {total_rounds} rounds)")
        return session

    def get_session(self, session_id: str) -> Session | None:
        return self.store.load_session(session_id)

    def require_session(self, session_id: str) -> Session:
        """Like :meth:`get_session` but raises ``SESSION_NOT_FOUND``."""
        session = self.get_session(session_id)
        if session is None:
            raise SessionError(f"Session {session_id} not found", code="SESSION_NOT_FOUND")
        return session

    def list_sessions(
        self,
        status: SessionStatus | str | None = None,
        mode: str | None = None,
        limit: int = 20,
    ) -> list[Session]:
        sessions = self.store.list_sessions()
        if status:
            sessions = [s for s in sessions if s.status == status]
        if mode:
            sessions = [s for s in sessions if s.mode == mode]
        return sessions[:limit]

    def delete_session(self, session_id: str) -> bool:
        deleted = self.store.delete_session(session_id)
        if deleted:
            logger.info(f"Deleted session {session_id}")
        return deleted

    # -------------------------------------------------------------------------
    # State machine
    # -------------------------------------------------------------------------
    def transition(self, session_id: str, action: str) -> Session:
        """Apply ``action`` (pause, resume, stop, complete, fail).

        Completed and error sessions accept no further actions.

        Raises:
            SessionError: Unknown session or action
            InvalidTransitionError: Action not allowed from the current status
        """
        rule = TRANSITIONS.get(action)
        if rule is None:
            raise SessionError(
                f"Unknown action '{action}'. Valid actions: {', '.join(TRANSITIONS)}",
                code="INVALID_ACTION",
            )
        allowed, target = rule

        session = self.require_session(session_id)
        if session.status not in allowed:
            raise InvalidTransitionError(
                f"Cannot {action} session {session_id}: status is {session.status.value}"
            )

        session.status = target
        session.updated_at = datetime.now()
        self.store.save_session(session)
        logger.info(f"Session {session_id}: {action} -> {target.value}")
        return session

    def update_round(self, session_id: str, round_number: int) -> Session:
        """Advance ``current_round``. Never moves backwards or past ``total_rounds``."""
        session = self.require_session(session_id)
        if round_number < session.current_round or round_number > session.total_rounds:
            raise SessionError(
                f"Invalid round {round_number} for session {session_id} "
                f"(current {session.current_round}, total {session.total_rounds})",
                code="INVALID_ROUND",
            )
        session.current_round = round_number
        session.updated_at = datetime.now()
        self.store.save_session(session)
        return session

    # -------------------------------------------------------------------------
    # Responses
    # -------------------------------------------------------------------------
    def add_response(self, session_id: str, response: AgentResponse, round_number: int) -> AgentResponse:
        """Persist ``response`` tagged with ``round_number``."""
        self.require_session(session_id)
        tagged = response.with_round(round_number)
        self.store.append_response(session_id, tagged)
        return tagged

    def get_responses(self, session_id: str) -> list[AgentResponse]:
        return self.store.load_responses(session_id)

    def get_responses_for_round(self, session_id: str, round_number: int) -> list[AgentResponse]:
        return [r for r in self.get_responses(session_id) if r.round_number == round_number]

    # -------------------------------------------------------------------------
    # Evidence lookup for fact_check
    # -------------------------------------------------------------------------
    async def find_related_evidence(self, session_id: str, claim: str) -> list[dict]:
        """Earlier responses in the session that share vocabulary with ``claim``."""
        claim_words = _words(claim)
        if not claim_words:
            return []

        scored = []
        for response in self.get_responses(session_id):
            overlap = claim_words & _words(f"{response.position} {response.reasoning}")
            if overlap:
                scored.append((len(overlap) / len(claim_words), response))

        scored.sort(key=lambda item: item[0], reverse=True)
        return [
            {
                "agent_id": r.agent_id,
                "agent_name": r.agent_name,
                "round_number": r.round_number,
                "position": r.position,
                "confidence": r.confidence,
                "relevance": round(score, 2),
            }
            for score, r in scored[:_MAX_EVIDENCE]
        ]
