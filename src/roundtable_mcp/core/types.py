"""Type definitions shared across the debate engine."""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import StrEnum
from typing import Any


class Stance(StrEnum):
    """Declared position polarity of a response."""

    YES = "YES"
    NO = "NO"
    NEUTRAL = "NEUTRAL"


class SessionStatus(StrEnum):
    """Session lifecycle states."""

    ACTIVE = "active"
    PAUSED = "paused"
    COMPLETED = "completed"
    ERROR = "error"


class RoundStatus(StrEnum):
    """Status reported for an executed round."""

    NEEDS_CONTEXT = "needs_context"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class RequestPriority(StrEnum):
    """Priority of an agent's context request."""

    REQUIRED = "required"
    OPTIONAL = "optional"


class ExitReason(StrEnum):
    """Why a debate stopped before (or at) its last round."""

    CONSENSUS = "consensus"
    CONVERGENCE = "convergence"
    CONFIDENCE = "confidence"
    MAX_ROUNDS = "max_rounds"


class DebateMode(StrEnum):
    """Built-in dialogue modes."""

    COLLABORATIVE = "collaborative"
    ADVERSARIAL = "adversarial"
    SOCRATIC = "socratic"
    EXPERT_PANEL = "expert-panel"
    DELPHI = "delphi"
    DEVILS_ADVOCATE = "devils-advocate"
    RED_TEAM_BLUE_TEAM = "red-team-blue-team"


def clamp_unit(value: Any, default: float = 0.5) -> float:
    """Coerce ``value`` to a float in [0, 1]."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return default
    if number != number:  # NaN
        return default
    return max(0.0, min(1.0, number))


def _parse_stance(value: Any) -> Stance | None:
    if value is None or value == "":
        return None
    try:
        return Stance(str(value).strip().upper())
    except ValueError:
        return None


def _parse_time(value: Any) -> datetime:
    if isinstance(value, datetime):
        return value
    if value:
        return datetime.fromisoformat(value)
    return datetime.now()


# ---------------------------------------------------------------------------
# Responses
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class Citation:
    """Source cited by an agent."""

    title: str
    url: str = ""
    snippet: str = ""

    def to_dict(self) -> dict:
        return {"title": self.title, "url": self.url, "snippet": self.snippet}

    @classmethod
    def from_dict(cls, data: dict) -> "Citation":
        return cls(
            title=data.get("title", ""),
            url=data.get("url", ""),
            snippet=data.get("snippet", ""),
        )


@dataclass(frozen=True)
class ToolCallRecord:
    """A tool invocation made while an agent generated its response."""

    name: str
    input: dict = field(default_factory=dict)
    output: Any = None
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "input": self.input,
            "output": self.output,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "ToolCallRecord":
        return cls(
            name=data.get("name", ""),
            input=data.get("input") or {},
            output=data.get("output"),
            timestamp=_parse_time(data.get("timestamp")),
        )


@dataclass(frozen=True)
class AgentResponse:
    """One agent's contribution to one round.

    Instances are immutable; validators derive new instances with
    ``dataclasses.replace``. ``confidence`` is clamped to [0, 1] on
    construction regardless of what the model produced.
    """

    agent_id: str
    agent_name: str
    position: str
    reasoning: str
    confidence: float = 0.5
    stance: Stance | None = None
    citations: list[Citation] = field(default_factory=list)
    tool_calls: list[ToolCallRecord] = field(default_factory=list)
    timestamp: datetime = field(default_factory=datetime.now)
    round_number: int | None = None
    # Role-based modes record the assigned role and flag stance drift
    role: str | None = None
    expected_stance: Stance | None = None
    stance_mismatch: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "confidence", clamp_unit(self.confidence))
        if self.stance is not None and not isinstance(self.stance, Stance):
            object.__setattr__(self, "stance", _parse_stance(self.stance))

    def with_round(self, round_number: int) -> "AgentResponse":
        """Return a copy tagged with ``round_number``."""
        return replace(self, round_number=round_number)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        result: dict[str, Any] = {
            "agent_id": self.agent_id,
            "agent_name": self.agent_name,
            "position": self.position,
            "reasoning": self.reasoning,
            "confidence": self.confidence,
            "timestamp": self.timestamp.isoformat(),
        }
        if self.stance:
            result["stance"] = self.stance.value
        if self.citations:
            result["citations"] = [c.to_dict() for c in self.citations]
        if self.tool_calls:
            result["tool_calls"] = [t.to_dict() for t in self.tool_calls]
        if self.round_number is not None:
            result["round_number"] = self.round_number
        if self.role:
            result["role"] = self.role
        if self.expected_stance:
            result["expected_stance"] = self.expected_stance.value
            result["stance_mismatch"] = self.stance_mismatch
        return result

    @classmethod
    def from_dict(cls, data: dict) -> "AgentResponse":
        """Create from dictionary."""
        return cls(
            agent_id=data["agent_id"],
            agent_name=data.get("agent_name", data["agent_id"]),
            position=data.get("position", ""),
            reasoning=data.get("reasoning", ""),
            confidence=data.get("confidence", 0.5),
            stance=_parse_stance(data.get("stance")),
            citations=[Citation.from_dict(c) for c in data.get("citations", [])],
            tool_calls=[ToolCallRecord.from_dict(t) for t in data.get("tool_calls", [])],
            timestamp=_parse_time(data.get("timestamp")),
            round_number=data.get("round_number"),
            role=data.get("role"),
            expected_stance=_parse_stance(data.get("expected_stance")),
            stance_mismatch=bool(data.get("stance_mismatch", False)),
        )


# ---------------------------------------------------------------------------
# Context requests
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class ContextRequest:
    """An agent's mid-round demand for externally supplied information."""

    id: str
    agent_id: str
    query: str
    reason: str
    priority: RequestPriority = RequestPriority.OPTIONAL
    timestamp: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "agent_id": self.agent_id,
            "query": self.query,
            "reason": self.reason,
            "priority": self.priority.value,
            "timestamp": self.timestamp.isoformat(),
        }


@dataclass(frozen=True)
class ContextResult:
    """Caller-supplied answer to a previous ContextRequest."""

    request_id: str
    success: bool
    result: str | None = None
    error: str | None = None

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"request_id": self.request_id, "success": self.success}
        if self.result is not None:
            data["result"] = self.result
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "ContextResult":
        return cls(
            request_id=str(data.get("request_id") or data.get("requestId") or ""),
            success=bool(data.get("success", False)),
            result=data.get("result"),
            error=data.get("error"),
        )


# ---------------------------------------------------------------------------
# Per-call debate context
# ---------------------------------------------------------------------------
@dataclass(frozen=True)
class RoundState:
    """Role assignment for one round, carried on the context.

    ``agent_index`` maps agent id to its position in the round's agent list.
    """

    agent_index: dict[str, int]
    total_agents: int

    def index_of(self, agent_id: str, default: int = 0) -> int:
        return self.agent_index.get(agent_id, default)


@dataclass(frozen=True)
class DebateContext:
    """Everything an agent sees for one call.

    Rebuilt from the session for every round; strategies derive per-agent
    variants with :meth:`evolve` instead of mutating shared state.
    """

    session_id: str
    topic: str
    mode: str
    current_round: int
    total_rounds: int
    previous_responses: tuple[AgentResponse, ...] = ()
    focus_question: str | None = None
    mode_prompt: str = ""
    context_results: tuple[ContextResult, ...] = ()
    round_state: RoundState | None = None
    agent_role: str | None = None

    def evolve(self, **changes: Any) -> "DebateContext":
        """Return a copy with ``changes`` applied."""
        if "previous_responses" in changes:
            changes["previous_responses"] = tuple(changes["previous_responses"])
        return replace(self, **changes)

    @property
    def is_final_round(self) -> bool:
        return self.current_round >= self.total_rounds


# ---------------------------------------------------------------------------
# Consensus
# ---------------------------------------------------------------------------
@dataclass
class ConsensusCluster:
    """Group of agents sharing a position theme."""

    theme: str
    agent_ids: list[str] = field(default_factory=list)
    summary: str = ""

    def to_dict(self) -> dict:
        return {"theme": self.theme, "agent_ids": self.agent_ids, "summary": self.summary}


@dataclass
class ConsensusNuances:
    """Softer signals the analysis model reported."""

    partial_agreements: list[str] = field(default_factory=list)
    conditional_positions: list[str] = field(default_factory=list)
    uncertainties: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "partial_agreements": self.partial_agreements,
            "conditional_positions": self.conditional_positions,
            "uncertainties": self.uncertainties,
        }


@dataclass
class GroupthinkWarning:
    """Groupthink indicators flagged by the analysis model."""

    detected: bool = True
    indicators: list[str] = field(default_factory=list)
    recommendation: str = ""

    def to_dict(self) -> dict:
        return {
            "detected": self.detected,
            "indicators": self.indicators,
            "recommendation": self.recommendation,
        }


@dataclass
class ConsensusResult:
    """Agreement assessment over one round of responses."""

    agreement_level: float
    common_ground: list[str] = field(default_factory=list)
    disagreement_points: list[str] = field(default_factory=list)
    summary: str = ""
    clusters: list[ConsensusCluster] | None = None
    nuances: ConsensusNuances | None = None
    groupthink_warning: GroupthinkWarning | None = None
    reasoning: str = ""
    analyzer_id: str | None = None

    def __post_init__(self) -> None:
        self.agreement_level = clamp_unit(self.agreement_level)

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        result: dict[str, Any] = {
            "agreement_level": self.agreement_level,
            "common_ground": self.common_ground,
            "disagreement_points": self.disagreement_points,
            "summary": self.summary,
        }
        if self.clusters:
            result["clusters"] = [c.to_dict() for c in self.clusters]
        if self.nuances:
            result["nuances"] = self.nuances.to_dict()
        if self.groupthink_warning:
            result["groupthink_warning"] = self.groupthink_warning.to_dict()
        if self.reasoning:
            result["reasoning"] = self.reasoning
        if self.analyzer_id:
            result["analyzer_id"] = self.analyzer_id
        return result

    @classmethod
    def from_dict(cls, data: dict) -> "ConsensusResult":
        """Create from dictionary."""
        clusters = data.get("clusters")
        nuances = data.get("nuances")
        warning = data.get("groupthink_warning")
        return cls(
            agreement_level=data.get("agreement_level", 0.5),
            common_ground=list(data.get("common_ground", [])),
            disagreement_points=list(data.get("disagreement_points", [])),
            summary=data.get("summary", ""),
            clusters=[ConsensusCluster(**c) for c in clusters] if clusters else None,
            nuances=ConsensusNuances(**nuances) if nuances else None,
            groupthink_warning=GroupthinkWarning(**warning) if warning else None,
            reasoning=data.get("reasoning", ""),
            analyzer_id=data.get("analyzer_id"),
        )


@dataclass(frozen=True)
class ExitResult:
    """Outcome of an exit-criteria check."""

    should_exit: bool
    reason: ExitReason | None = None
    details: str = ""

    def to_dict(self) -> dict:
        return {
            "should_exit": self.should_exit,
            "reason": self.reason.value if self.reason else None,
            "details": self.details,
        }


@dataclass
class RoundResult:
    """Outcome of one executed round."""

    round_number: int
    responses: list[AgentResponse]
    consensus: ConsensusResult
    context_requests: list[ContextRequest] = field(default_factory=list)
    status: RoundStatus = RoundStatus.IN_PROGRESS
    # Set when the round triggered an early exit
    exit: ExitResult | None = None

    def to_dict(self) -> dict:
        data = {
            "round_number": self.round_number,
            "status": self.status.value,
            "responses": [r.to_dict() for r in self.responses],
            "consensus": self.consensus.to_dict(),
            "context_requests": [c.to_dict() for c in self.context_requests],
        }
        if self.exit is not None:
            data["exit"] = self.exit.to_dict()
        return data


# ---------------------------------------------------------------------------
# Sessions
# ---------------------------------------------------------------------------
@dataclass
class Session:
    """A debate session as owned by the SessionManager."""

    id: str
    topic: str
    mode: str
    agent_ids: list[str]
    status: SessionStatus = SessionStatus.ACTIVE
    current_round: int = 0
    total_rounds: int = 3
    responses: list[AgentResponse] = field(default_factory=list)
    created_at: datetime = field(default_factory=datetime.now)
    updated_at: datetime = field(default_factory=datetime.now)

    def to_dict(self, include_responses: bool = False) -> dict:
        """Convert to dictionary."""
        data: dict[str, Any] = {
            "id": self.id,
            "topic": self.topic,
            "mode": self.mode,
            "agent_ids": self.agent_ids,
            "status": self.status.value,
            "current_round": self.current_round,
            "total_rounds": self.total_rounds,
            "created_at": self.created_at.isoformat(),
            "updated_at": self.updated_at.isoformat(),
        }
        if include_responses:
            data["responses"] = [r.to_dict() for r in self.responses]
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Session":
        """Create from dictionary."""
        return cls(
            id=data["id"],
            topic=data["topic"],
            mode=data["mode"],
            agent_ids=list(data.get("agent_ids", [])),
            status=SessionStatus(data.get("status", SessionStatus.ACTIVE)),
            current_round=data.get("current_round", 0),
            total_rounds=data.get("total_rounds", 3),
            responses=[AgentResponse.from_dict(r) for r in data.get("responses", [])],
            created_at=_parse_time(data.get("created_at")),
            updated_at=_parse_time(data.get("updated_at")),
        )
