"""Roundtable tools exposed to MCP clients.

Each function returns a plain dict. Failures are reported as
``{"error": "...", "code": "..."}`` rather than raised.
"""

import logging
from dataclasses import dataclass

from ..agents.registry import ProviderRegistry
from ..config import config
from ..consensus.analyzer import ConsensusAnalyzer
from ..core.exceptions import RoundtableError, SessionError
from ..core.types import AgentResponse, ContextResult, RoundResult, RoundStatus, Session, SessionStatus
from ..debate.engine import DebateEngine
from ..modes.registry import ModeRegistry
from ..session.manager import SessionManager
from .toolkit import AgentToolkit

logger = logging.getLogger(__name__)

MAX_TOPIC_CHARS = 2000
CONTROL_ACTIONS = ("pause", "resume", "stop")


# =============================================================================
# Wiring
# =============================================================================
@dataclass
class Roundtable:
    """Everything the tools need, built once per process."""

    registry: ProviderRegistry
    modes: ModeRegistry
    sessions: SessionManager
    toolkit: AgentToolkit
    analyzer: ConsensusAnalyzer
    engine: DebateEngine


def build_roundtable(
    registry: ProviderRegistry | None = None,
    sessions: SessionManager | None = None,
    modes: ModeRegistry | None = None,
    search_provider=None,
) -> Roundtable:
    """Assemble the components. Without a registry, Gemini agents are set up from config."""
    if registry is None:
        from ..agents.setup import setup_agents

        registry = ProviderRegistry()
        setup_agents(registry)
        if search_provider is None and config.web_search_grounding and registry.registered_providers():
            from ..agents.gemini import GeminiSearchProvider

            search_provider = GeminiSearchProvider()

    sessions = sessions or SessionManager()
    modes = modes or ModeRegistry()
    toolkit = AgentToolkit(search_provider=search_provider, session_data_provider=sessions)
    analyzer = ConsensusAnalyzer(registry, preferred_provider=config.consensus_provider)
    return Roundtable(
        registry=registry,
        modes=modes,
        sessions=sessions,
        toolkit=toolkit,
        analyzer=analyzer,
        engine=DebateEngine(toolkit, analyzer, modes),
    )


_roundtable: Roundtable | None = None


def get_roundtable() -> Roundtable:
    """Get the global roundtable, building it on first use."""
    global _roundtable
    if _roundtable is None:
        _roundtable = build_roundtable()
    return _roundtable


def set_roundtable(roundtable: Roundtable | None) -> None:
    """Replace the global roundtable (``None`` rebuilds on next use)."""
    global _roundtable
    _roundtable = roundtable


# =============================================================================
# Output helpers
# =============================================================================
def _error(error: RoundtableError, **fields) -> dict:
    logger.warning(f"{error.code}: {error.message}")
    return {**fields, "error": error.message, "code": error.code}


def _response_summary(response: AgentResponse) -> dict:
    data = response.to_dict()
    data.pop("tool_calls", None)
    data["tool_call_count"] = len(response.tool_calls)
    return data


def _round_summary(result: RoundResult) -> dict:
    data = {
        "round_number": result.round_number,
        "status": result.status.value,
        "responses": [_response_summary(r) for r in result.responses],
        "consensus": result.consensus.to_dict(),
    }
    if result.context_requests:
        data["context_requests"] = [c.to_dict() for c in result.context_requests]
    if result.exit is not None:
        data["exit"] = result.exit.to_dict()
    return data


def _session_summary(session: Session) -> dict:
    return {
        "session_id": session.id,
        "topic": session.topic,
        "mode": session.mode,
        "status": session.status.value,
        "current_round": session.current_round,
        "total_rounds": session.total_rounds,
        "agent_ids": session.agent_ids,
        "created_at": session.created_at.isoformat(),
        "updated_at": session.updated_at.isoformat(),
    }


# =============================================================================
# Round execution + persistence
# =============================================================================
async def _run_rounds(
    rt: Roundtable,
    session: Session,
    num_rounds: int = 1,
    focus_question: str | None = None,
    context_results: list[ContextResult] | None = None,
) -> dict:
    """Execute up to ``num_rounds`` rounds, persist them, and complete the session when done.

    The session completes after its last planned round or as soon as a
    round meets an exit criterion.
    """
    agents = rt.registry.get_agents(session.agent_ids)
    results = await rt.engine.execute_rounds(
        agents,
        session,
        num_rounds,
        focus_question=focus_question,
        context_results=context_results,
    )
    if not results:
        raise SessionError(f"Session {session.id} has no rounds left", code="NO_ROUNDS_LEFT")
    result = results[-1]

    rt.sessions.update_round(session.id, session.current_round)
    for executed in results:
        for response in executed.responses:
            rt.sessions.add_response(session.id, response, executed.round_number)

    if result.exit is not None or session.current_round >= session.total_rounds:
        session = rt.sessions.transition(session.id, "complete")
    else:
        session = rt.sessions.require_session(session.id)

    output = {
        **_session_summary(session),
        "round": _round_summary(result),
        "rounds_executed": len(results),
        "rounds_remaining": session.total_rounds - session.current_round,
    }
    if len(results) > 1:
        output["earlier_rounds"] = [_round_summary(r) for r in results[:-1]]
    if result.exit is not None:
        output["exit_reason"] = result.exit.reason.value
        output["exit_details"] = result.exit.details
    if result.status == RoundStatus.NEEDS_CONTEXT:
        output["message"] = (
            "Agents requested required context. Answer each request and pass the answers "
            "as context_results to continue_roundtable."
        )
    return output


# =============================================================================
# Tools
# =============================================================================
async def start_roundtable(
    topic: str,
    mode: str | None = None,
    agents: list[str] | None = None,
    rounds: int | None = None,
) -> dict:
    """Create a session and run its first round.

    Args:
        topic: Question or proposition to debate
        mode: Dialogue mode (default ``config.default_mode``)
        agents: Agent ids (default: every registered agent)
        rounds: Total rounds planned (default ``config.default_rounds``)

    Returns:
        Session summary plus the first round's responses and consensus
    """
    mode = mode or config.default_mode
    rounds = config.default_rounds if rounds is None else rounds

    topic = topic.strip()
    if not topic:
        return {"action": "start", "error": "Topic must not be empty", "code": "INVALID_INPUT"}
    if len(topic) > MAX_TOPIC_CHARS:
        return {
            "action": "start",
            "error": f"Topic too long ({len(topic):,} chars). Maximum: {MAX_TOPIC_CHARS:,}",
            "code": "INVALID_INPUT",
        }
    if not 1 <= rounds <= config.max_rounds:
        return {
            "action": "start",
            "error": f"rounds must be 1-{config.max_rounds}, got {rounds}",
            "code": "INVALID_INPUT",
        }

    rt = get_roundtable()
    agent_ids = list(dict.fromkeys(agents)) if agents else rt.registry.all_agent_ids()
    if not agent_ids:
        return {
            "action": "start",
            "error": "No agents available. Configure GOOGLE_API_KEY or run 'gemini login'.",
            "code": "NO_AGENTS",
        }
    if len(agent_ids) > config.max_agents:
        return {
            "action": "start",
            "error": f"Too many agents ({len(agent_ids)}). Maximum: {config.max_agents}",
            "code": "INVALID_INPUT",
        }

    try:
        rt.modes.get(mode)
        rt.registry.get_agents(agent_ids)
        session = rt.sessions.create_session(topic, mode, agent_ids, total_rounds=rounds)
    except RoundtableError as e:
        return _error(e, action="start")

    try:
        return await _run_rounds(rt, session)
    except RoundtableError as e:
        # First round failed
        try:
            rt.sessions.transition(session.id, "fail")
        except RoundtableError as transition_error:
            logger.error(f"Could not mark session {session.id} as failed: {transition_error}")
        return _error(e, action="start", session_id=session.id)


async def continue_roundtable(
    session_id: str,
    focus_question: str | None = None,
    context_results: list[dict] | None = None,
    rounds: int = 1,
) -> dict:
    """Run the next round(s) of an active session.

    Args:
        session_id: Session to continue
        focus_question: Optional question to steer these rounds
        context_results: Answers to earlier context requests
            (``{"request_id", "success", "result"?, "error"?}``)
        rounds: Rounds to run before returning; fewer run if the session
            ends, an exit criterion is met, or agents need context
    """
    if rounds < 1:
        return {
            "session_id": session_id,
            "error": f"rounds must be >= 1, got {rounds}",
            "code": "INVALID_INPUT",
        }
    rt = get_roundtable()
    try:
        session = rt.sessions.require_session(session_id)
        if session.status != SessionStatus.ACTIVE:
            raise SessionError(
                f"Session {session_id} is not active (status: {session.status.value})",
                code="SESSION_NOT_ACTIVE",
            )
        results = [ContextResult.from_dict(r) for r in context_results or []]
        return await _run_rounds(rt, session, rounds, focus_question, results)
    except RoundtableError as e:
        return _error(e, session_id=session_id)


async def get_consensus(session_id: str, round_number: int | None = None) -> dict:
    """Analyze consensus for one round (default: the latest)."""
    rt = get_roundtable()
    try:
        session = rt.sessions.require_session(session_id)
    except RoundtableError as e:
        return _error(e, session_id=session_id)

    target = session.current_round if round_number is None else round_number
    if target < 1 or target > session.current_round:
        return {
            "session_id": session_id,
            "error": f"Round {target} has not been run (current round: {session.current_round})",
            "code": "INVALID_ROUND",
        }

    responses = rt.sessions.get_responses_for_round(session_id, target)
    try:
        strategy = rt.modes.get(session.mode)
    except RoundtableError as e:
        return _error(e, session_id=session_id)
    consensus = await rt.analyzer.analyze_consensus(
        responses,
        session.topic,
        include_groupthink=strategy.needs_groupthink_detection,
    )
    return {
        "session_id": session_id,
        "round_number": target,
        "response_count": len(responses),
        "consensus": consensus.to_dict(),
    }


async def get_citations(
    session_id: str,
    round_number: int | None = None,
    agent_id: str | None = None,
) -> dict:
    """Unique sources cited in a session, optionally filtered by round or agent."""
    rt = get_roundtable()
    try:
        rt.sessions.require_session(session_id)
        responses = rt.sessions.get_responses(session_id)
    except RoundtableError as e:
        return _error(e, session_id=session_id)

    if round_number is not None:
        responses = [r for r in responses if r.round_number == round_number]
    if agent_id:
        responses = [r for r in responses if r.agent_id == agent_id]

    seen: set[str] = set()
    citations = []
    for response in responses:
        for citation in response.citations:
            key = citation.url or citation.title
            if key in seen:
                continue
            seen.add(key)
            citations.append(
                {
                    **citation.to_dict(),
                    "agent_id": response.agent_id,
                    "round_number": response.round_number,
                }
            )

    return {
        "session_id": session_id,
        "round_number": round_number,
        "agent_id": agent_id,
        "citations": citations,
        "total_citations": len(citations),
    }


async def get_round_details(session_id: str, round_number: int) -> dict:
    """All responses of one round plus a fresh consensus analysis."""
    rt = get_roundtable()
    try:
        session = rt.sessions.require_session(session_id)
        responses = rt.sessions.get_responses_for_round(session_id, round_number)
    except RoundtableError as e:
        return _error(e, session_id=session_id)

    if not responses:
        return {
            "session_id": session_id,
            "error": f"No responses found for round {round_number}",
            "code": "INVALID_ROUND",
        }

    consensus = await rt.analyzer.analyze_consensus(responses, session.topic)
    return {
        "session_id": session_id,
        "round_number": round_number,
        "responses": [_response_summary(r) for r in responses],
        "consensus": consensus.to_dict(),
    }


async def get_agent_history(session_id: str, agent_id: str) -> dict:
    """Every response one agent gave in a session, with its confidence trend."""
    rt = get_roundtable()
    try:
        rt.sessions.require_session(session_id)
        responses = [r for r in rt.sessions.get_responses(session_id) if r.agent_id == agent_id]
    except RoundtableError as e:
        return _error(e, session_id=session_id)

    if not responses:
        return {
            "session_id": session_id,
            "error": f"No responses found for agent {agent_id}",
            "code": "AGENT_NOT_FOUND",
        }

    responses.sort(key=lambda r: r.round_number or 0)
    return {
        "session_id": session_id,
        "agent_id": agent_id,
        "agent_name": responses[0].agent_name,
        "total_responses": len(responses),
        "responses": [_response_summary(r) for r in responses],
        "confidence_evolution": [
            {"round": r.round_number, "confidence": r.confidence} for r in responses
        ],
    }


async def control_session(session_id: str, action: str) -> dict:
    """Pause, resume or stop a session."""
    if action not in CONTROL_ACTIONS:
        return {
            "session_id": session_id,
            "error": f"Unknown action '{action}'. Valid actions: {', '.join(CONTROL_ACTIONS)}",
            "code": "INVALID_ACTION",
        }

    rt = get_roundtable()
    try:
        previous = rt.sessions.require_session(session_id).status
        session = rt.sessions.transition(session_id, action)
    except RoundtableError as e:
        return _error(e, session_id=session_id, action=action)

    return {
        "session_id": session_id,
        "action": action,
        "previous_status": previous.value,
        "new_status": session.status.value,
        "session": _session_summary(session),
    }


async def list_sessions(
    status: str | None = None,
    mode: str | None = None,
    limit: int = 20,
) -> dict:
    """Recent sessions, newest first."""
    if status and status not in {s.value for s in SessionStatus}:
        valid = ", ".join(s.value for s in SessionStatus)
        return {"error": f"Unknown status '{status}'. Valid statuses: {valid}", "code": "INVALID_INPUT"}

    rt = get_roundtable()
    try:
        sessions = rt.sessions.list_sessions(status=status, mode=mode, limit=max(1, limit))
    except RoundtableError as e:
        return _error(e)

    return {
        "sessions": [_session_summary(s) for s in sessions],
        "count": len(sessions),
    }


async def list_agents(refresh: bool = False) -> dict:
    """Registered agents with health, plus available modes."""
    rt = get_roundtable()
    agents = await rt.registry.refresh_health() if refresh else rt.registry.health_status()
    return {
        "agents": agents,
        "count": len(agents),
        "active": sum(1 for a in agents if a["active"]),
        "modes": rt.modes.available_modes(),
    }


async def analysis_diagnostics() -> dict:
    """Why consensus analysis is or is not backed by a model right now."""
    return get_roundtable().analyzer.get_diagnostics()
