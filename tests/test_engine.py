"""Tests for the debate engine."""

import asyncio
import json

import pytest
from conftest import FailingAgent, FakeAgent, make_context, make_response

from roundtable_mcp.consensus.analyzer import ConsensusAnalyzer
from roundtable_mcp.core.exceptions import AgentError, ConfigurationError
from roundtable_mcp.core.types import ContextResult, ExitReason, RoundStatus, Session
from roundtable_mcp.debate.engine import DebateEngine
from roundtable_mcp.modes import ModeRegistry
from roundtable_mcp.tools.toolkit import AgentToolkit

REQUIRED_REQUEST = ("request_context", {"query": "Budget?", "reason": "Need numbers", "priority": "required"})
GROUPTHINK_JSON = json.dumps(
    {
        "agreementLevel": 0.8,
        "groupthinkWarning": {"detected": True, "indicators": ["all 95%"], "recommendation": "Add dissent"},
        "summary": "Agree",
    }
)


@pytest.fixture
def engine(registry, toolkit):
    return DebateEngine(toolkit, ConsensusAnalyzer(registry), ModeRegistry())


def _session(**overrides):
    values = {"id": "s1", "topic": "Adopt four-day week?", "mode": "collaborative", "agent_ids": ["a", "b"]}
    values.update(overrides)
    return Session(**values)


class TestConstruction:
    """Required collaborators."""

    def test_missing_toolkit(self, registry):
        """A toolkit is required."""
        with pytest.raises(ConfigurationError):
            DebateEngine(None, ConsensusAnalyzer(registry), ModeRegistry())

    def test_missing_analyzer(self):
        """A consensus analyzer is required."""
        with pytest.raises(ConfigurationError):
            DebateEngine(AgentToolkit(), None, ModeRegistry())


class TestExecuteRound:
    """Tests for DebateEngine.execute_round."""

    @pytest.mark.asyncio
    async def test_in_progress(self, engine):
        """A mid-debate round reports in_progress with tagged responses."""
        result = await engine.execute_round([FakeAgent("a"), FakeAgent("b")], make_context())

        assert result.status == RoundStatus.IN_PROGRESS
        assert result.round_number == 1
        assert [r.round_number for r in result.responses] == [1, 1]
        assert result.consensus.agreement_level == 0.8

    @pytest.mark.asyncio
    async def test_final_round_completed(self, engine):
        """The last round reports completed."""
        result = await engine.execute_round([FakeAgent("a")], make_context(current_round=3))
        assert result.status == RoundStatus.COMPLETED

    @pytest.mark.asyncio
    async def test_required_request_needs_context(self, engine):
        """A queued required request sets needs_context."""
        agents = [FakeAgent("a", tool_calls=[REQUIRED_REQUEST]), FakeAgent("b")]

        result = await engine.execute_round(agents, make_context())

        assert result.status == RoundStatus.NEEDS_CONTEXT
        assert [r.agent_id for r in result.context_requests] == ["a"]

    @pytest.mark.asyncio
    async def test_required_request_rejected_in_final_round(self, engine):
        """The final round never ends in needs_context."""
        agent = FakeAgent("a", tool_calls=[REQUIRED_REQUEST])

        result = await engine.execute_round([agent], make_context(current_round=3))

        assert result.status == RoundStatus.COMPLETED
        assert result.context_requests == []
        assert agent.tool_results[0]["success"] is False

    @pytest.mark.asyncio
    async def test_pending_requests_cleared_between_rounds(self, engine):
        """Requests from an earlier round do not leak into the next."""
        await engine.execute_round([FakeAgent("a", tool_calls=[REQUIRED_REQUEST])], make_context())
        result = await engine.execute_round([FakeAgent("a")], make_context(current_round=2))
        assert result.status == RoundStatus.IN_PROGRESS
        assert result.context_requests == []

    @pytest.mark.asyncio
    async def test_all_agents_failed(self, engine):
        """Every agent failing raises ALL_AGENTS_FAILED."""
        with pytest.raises(AgentError) as exc_info:
            await engine.execute_round([FailingAgent("a"), FailingAgent("b")], make_context())
        assert exc_info.value.code == "ALL_AGENTS_FAILED"

    @pytest.mark.asyncio
    async def test_partial_failure(self, engine):
        """Surviving agents still produce a round."""
        result = await engine.execute_round([FailingAgent("a"), FakeAgent("b")], make_context())
        assert [r.agent_id for r in result.responses] == ["b"]
        assert result.consensus.agreement_level == 1.0

    @pytest.mark.asyncio
    async def test_unknown_mode(self, engine):
        """Unknown modes surface as ConfigurationError."""
        with pytest.raises(ConfigurationError):
            await engine.execute_round([FakeAgent("a")], make_context(mode="chaos"))

    @pytest.mark.asyncio
    async def test_toolkit_bound_to_context(self, engine):
        """Agents' tools see the round being executed."""
        agent = FakeAgent("a", tool_calls=[("get_context", {})])
        await engine.execute_round([agent], make_context(current_round=2))
        assert agent.tool_results[0]["data"]["current_round"] == 2

    @pytest.mark.asyncio
    async def test_concurrent_sessions_isolated(self, engine):
        """Rounds of two sessions running at once keep their own context requests."""
        slow = FakeAgent("a", tool_calls=[REQUIRED_REQUEST], delay=0.05)
        fast = FakeAgent("b", tool_calls=[REQUIRED_REQUEST], delay=0.01)

        first, second = await asyncio.gather(
            engine.execute_round([slow], make_context(session_id="A", current_round=1, total_rounds=3)),
            engine.execute_round([fast], make_context(session_id="B", current_round=3)),
        )

        assert first.status == RoundStatus.NEEDS_CONTEXT
        assert [r.agent_id for r in first.context_requests] == ["a"]
        assert second.status == RoundStatus.COMPLETED
        assert second.context_requests == []
        assert fast.tool_results[0]["success"] is False

    @pytest.mark.asyncio
    async def test_groupthink_follows_mode(self, engine, registry):
        """Modes built on opposition get no groupthink warning or prompt section."""
        judge = registry.get_agent("alpha")
        judge.raw_completion = GROUPTHINK_JSON
        agents = [FakeAgent("a"), FakeAgent("b")]

        collaborative = await engine.execute_round(agents, make_context())
        adversarial = await engine.execute_round(agents, make_context(mode="adversarial"))

        assert collaborative.consensus.groupthink_warning.indicators == ["all 95%"]
        assert "groupthinkWarning" in judge.raw_prompts[0]
        assert adversarial.consensus.groupthink_warning is None
        assert "groupthinkWarning" not in judge.raw_prompts[1]


class TestExecuteRounds:
    """Tests for DebateEngine.execute_rounds."""

    @pytest.mark.asyncio
    async def test_rounds_build_on_each_other(self, engine):
        """Later rounds see earlier responses; the session is updated in memory."""
        agent = FakeAgent("a")
        session = _session()

        results = await engine.execute_rounds([agent], session, 2)

        assert [r.round_number for r in results] == [1, 2]
        assert session.current_round == 2
        assert len(session.responses) == 2
        assert agent.contexts[0].previous_responses == ()
        assert [r.agent_id for r in agent.contexts[1].previous_responses] == ["a"]

    @pytest.mark.asyncio
    async def test_stops_at_total_rounds(self, engine):
        """No round runs past total_rounds."""
        session = _session(total_rounds=2, current_round=1)
        results = await engine.execute_rounds([FakeAgent("a")], session, 5)
        assert [r.round_number for r in results] == [2]

    @pytest.mark.asyncio
    async def test_nothing_left(self, engine):
        """A finished session runs nothing."""
        session = _session(total_rounds=1, current_round=1)
        assert await engine.execute_rounds([FakeAgent("a")], session, 1) == []

    @pytest.mark.asyncio
    async def test_context_results_first_round_only(self, engine):
        """Context results are shown to the first executed round only."""
        agent = FakeAgent("a")
        answers = [ContextResult(request_id="ctx-1", success=True, result="42")]

        await engine.execute_rounds([agent], _session(), 2, context_results=answers)

        assert agent.contexts[0].context_results == tuple(answers)
        assert agent.contexts[1].context_results == ()

    @pytest.mark.asyncio
    async def test_focus_question_passed(self, engine):
        """The focus question reaches every agent."""
        agent = FakeAgent("a")
        await engine.execute_rounds([agent], _session(), 1, focus_question="What about cost?")
        assert agent.contexts[0].focus_question == "What about cost?"

    @pytest.mark.asyncio
    async def test_existing_responses_visible(self, engine):
        """Responses already on the session are shown to the next round."""
        agent = FakeAgent("b")
        session = _session(current_round=1, responses=[make_response("a", round_number=1)])

        await engine.execute_rounds([agent], session, 1)

        assert [r.agent_id for r in agent.contexts[0].previous_responses] == ["a"]


class TestEarlyExit:
    """Exit criteria applied by execute_rounds."""

    @pytest.mark.asyncio
    async def test_consensus_exit(self, engine, registry):
        """High agreement ends the run after the round that reached it."""
        registry.get_agent("alpha").raw_completion = '{"agreementLevel": 0.95, "summary": "Aligned"}'
        session = _session(total_rounds=5)

        results = await engine.execute_rounds([FakeAgent("a"), FakeAgent("b")], session, 5)

        [result] = results
        assert result.exit.reason == ExitReason.CONSENSUS
        assert "95.0%" in result.exit.details
        assert result.status == RoundStatus.COMPLETED
        assert session.current_round == 1

    @pytest.mark.asyncio
    async def test_convergence_exit(self, engine):
        """Unchanged positions over two transitions end the run."""
        agents = [FakeAgent("a", position="Adopt it"), FakeAgent("b", position="Reject it")]
        session = _session(total_rounds=5)

        results = await engine.execute_rounds(agents, session, 5)

        assert [r.round_number for r in results] == [1, 2, 3]
        assert [r.exit for r in results[:2]] == [None, None]
        assert results[-1].exit.reason == ExitReason.CONVERGENCE

    @pytest.mark.asyncio
    async def test_confidence_exit(self, engine):
        """Every agent above the confidence threshold ends the run."""
        agents = [FakeAgent("a", confidence=0.9), FakeAgent("b", confidence=0.88)]

        results = await engine.execute_rounds(agents, _session(total_rounds=5), 5)

        [result] = results
        assert result.exit.reason == ExitReason.CONFIDENCE

    @pytest.mark.asyncio
    async def test_max_rounds_exit(self, engine):
        """The last planned round reports max_rounds."""
        results = await engine.execute_rounds([FakeAgent("a"), FakeAgent("b")], _session(total_rounds=2), 5)

        assert [r.round_number for r in results] == [1, 2]
        assert results[0].exit is None
        assert results[1].exit.reason == ExitReason.MAX_ROUNDS
        assert results[1].exit.details == "Maximum rounds reached (2/2)"

    @pytest.mark.asyncio
    async def test_disabled(self, engine, monkeypatch):
        """With exit criteria off every requested round runs."""
        monkeypatch.setattr("roundtable_mcp.debate.engine.config.exit_criteria_enabled", False)
        agents = [FakeAgent("a", confidence=0.95), FakeAgent("b", confidence=0.95)]

        results = await engine.execute_rounds(agents, _session(total_rounds=4), 4)

        assert len(results) == 4
        assert all(r.exit is None for r in results)

    @pytest.mark.asyncio
    async def test_needs_context_stops_without_exit(self, engine):
        """A round waiting on the caller stops the run and is never an exit."""
        agents = [FakeAgent("a", confidence=0.95, tool_calls=[REQUIRED_REQUEST])]
        session = _session(total_rounds=4)

        results = await engine.execute_rounds(agents, session, 4)

        [result] = results
        assert result.status == RoundStatus.NEEDS_CONTEXT
        assert result.exit is None
        assert session.current_round == 1
