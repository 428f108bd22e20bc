"""Tests for agents, the provider registry and agent setup."""

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest
from conftest import FailingAgent, FakeAgent, make_context, make_response

from roundtable_mcp.agents.gemini import GeminiAgent
from roundtable_mcp.agents.registry import ProviderRegistry
from roundtable_mcp.agents.setup import setup_agents
from roundtable_mcp.core.exceptions import AgentError, APIAuthError, ConfigurationError
from roundtable_mcp.core.types import ContextResult, Stance
from roundtable_mcp.tools.toolkit import AgentToolkit


def _model_reply(text=None, function_calls=None):
    return SimpleNamespace(
        text=text,
        function_calls=function_calls,
        candidates=[SimpleNamespace(content=MagicMock(name="model_content"))],
    )


def _gemini(*replies, side_effect=None):
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(side_effect=side_effect or list(replies))
    return GeminiAgent("gemini-pro", "Gemini Pro", "gemini-test", client=client), client


class TestProviderRegistry:
    """Tests for ProviderRegistry."""

    def test_create_agent(self):
        """Agents are built through the provider factory with its default model."""
        registry = ProviderRegistry()
        registry.register_provider("fake", lambda i, n, m: FakeAgent(i, n, model=m), "fake-1")

        agent = registry.create_agent("a", "Agent A", "fake")

        assert agent.model == "fake-1"
        assert registry.get_agent("a") is agent
        assert registry.registered_providers() == ["fake"]

    def test_unknown_provider(self):
        """Unknown providers raise ConfigurationError."""
        with pytest.raises(ConfigurationError):
            ProviderRegistry().create_agent("a", "A", "nope")

    def test_duplicate_agent(self, registry):
        """Agent ids are unique."""
        with pytest.raises(AgentError) as exc_info:
            registry.create_agent("alpha", "Alpha", "fake")
        assert exc_info.value.code == "AGENT_EXISTS"

    def test_get_agents_in_order(self, registry):
        """get_agents resolves ids in the order given."""
        assert [a.id for a in registry.get_agents(["gamma", "alpha"])] == ["gamma", "alpha"]

    def test_get_agents_missing(self, registry):
        """Unknown ids are listed in the error."""
        with pytest.raises(AgentError) as exc_info:
            registry.get_agents(["alpha", "zeta", "omega"])
        assert exc_info.value.code == "AGENT_NOT_FOUND"
        assert "zeta, omega" in str(exc_info.value)

    def test_activation(self, registry):
        """Deactivated agents drop out of active_agents."""
        registry.deactivate_agent("beta", "timeout")
        assert [a.id for a in registry.active_agents()] == ["alpha", "gamma"]
        registry.activate_agent("beta")
        assert registry.is_active("beta") is True

    @pytest.mark.asyncio
    async def test_refresh_health(self, registry):
        """Health checks update active flags and record errors."""
        registry.add_agent(FailingAgent("broken"))

        status = await registry.refresh_health()

        broken = next(s for s in status if s["id"] == "broken")
        assert broken["active"] is False
        assert broken["error"] == "connection reset"
        assert registry.is_active("alpha") is True

    def test_reset(self, registry):
        """reset clears providers and agents."""
        registry.reset()
        assert registry.registered_providers() == []
        assert registry.all_agent_ids() == []


class TestSetupAgents:
    """Tests for setup_agents."""

    def test_without_credentials(self, monkeypatch):
        """No credentials: nothing registered, a warning explains why."""
        monkeypatch.setattr("roundtable_mcp.agents.setup.has_credentials", lambda: False)
        registry = ProviderRegistry()

        result = setup_agents(registry)

        assert result.providers == []
        assert result.agents == []
        assert "GOOGLE_API_KEY" in result.warnings[0]
        assert registry.all_agent_ids() == []

    def test_with_credentials(self, monkeypatch):
        """Configured agent ids become Gemini agents; flash ids use the light model."""
        monkeypatch.setattr("roundtable_mcp.agents.setup.has_credentials", lambda: True)
        monkeypatch.setattr("roundtable_mcp.agents.setup.config.default_agents", "gemini-pro, gemini-flash")
        monkeypatch.setattr("roundtable_mcp.agents.setup.config.default_model", "pro-model")
        monkeypatch.setattr("roundtable_mcp.agents.setup.config.light_model", "light-model")
        registry = ProviderRegistry()

        result = setup_agents(registry)

        assert result.providers == ["gemini"]
        assert result.agents == ["gemini-pro", "gemini-flash"]
        flash = registry.get_agent("gemini-flash")
        assert flash.name == "Gemini Flash"
        assert flash.model == "light-model"
        assert registry.get_agent("gemini-pro").model == "pro-model"

    def test_existing_agents_kept(self, monkeypatch):
        """Ids already registered are skipped."""
        monkeypatch.setattr("roundtable_mcp.agents.setup.has_credentials", lambda: True)
        registry = ProviderRegistry()
        registry.add_agent(FakeAgent("gemini-pro"))

        result = setup_agents(registry, ["gemini-pro", "gemini-lite"])

        assert result.agents == ["gemini-lite"]
        assert isinstance(registry.get_agent("gemini-pro"), FakeAgent)


class TestBaseAgentPrompts:
    """Prompt construction shared by every agent."""

    def test_system_prompt_layers(self):
        """Persona, mode instructions and round framing are combined."""
        agent = FakeAgent("a", "Ada")
        prompt = agent.build_system_prompt(make_context(mode_prompt="MODE RULES", focus_question="Cost?"))
        assert prompt.index("You are Ada") < prompt.index("MODE RULES") < prompt.index("Round 1 of 3")
        assert "Focus question: Cost?" in prompt

    def test_user_message_history_and_answers(self):
        """Previous responses and context answers are shown."""
        agent = FakeAgent("a")
        context = make_context(
            previous_responses=(make_response("beta", confidence=0.55),),
            context_results=(
                ContextResult(request_id="ctx-1", success=True, result="Revenue was 1.2M"),
                ContextResult(request_id="ctx-2", success=False, error="not found"),
            ),
        )
        message = agent.build_user_message(context)
        assert "--- Beta ---" in message
        assert "Confidence: 55%" in message
        assert "- [ctx-1] Revenue was 1.2M" in message
        assert "- [ctx-2] unavailable: not found" in message


class TestParseResponse:
    """Tests for BaseAgent.parse_response."""

    @pytest.mark.parametrize(("raw", "expected"), [(1.5, 1.0), (-0.3, 0.0), ("0.4", 0.4)])
    def test_confidence_clamped(self, raw, expected):
        """Confidence is clamped into [0, 1]."""
        fields = FakeAgent("a").parse_response(json.dumps({"position": "p", "reasoning": "r", "confidence": raw}))
        assert fields["confidence"] == expected

    def test_stance_parsed(self):
        """Stance is case-insensitive; unknown stances are dropped."""
        agent = FakeAgent("a")
        assert agent.parse_response('{"position": "p", "stance": "no"}')["stance"] == Stance.NO
        assert agent.parse_response('{"position": "p", "stance": "maybe"}')["stance"] is None

    def test_fenced_json(self):
        """JSON inside fences with repairable syntax is accepted."""
        fields = FakeAgent("a").parse_response("```json\n{position: 'Yes', reasoning: 'Because', confidence: 0.9,}\n```")
        assert fields["position"] == "Yes"
        assert fields["confidence"] == 0.9

    def test_missing_comma_repaired(self):
        """A dropped comma does not push the response into the plain-text fallback."""
        fields = FakeAgent("a").parse_response('{"position": "Yes" "reasoning": "Cheaper", "confidence": 0.6}')
        assert fields["position"] == "Yes"
        assert fields["reasoning"] == "Cheaper"
        assert fields["confidence"] == 0.6

    def test_plain_text_fallback(self):
        """Non-JSON text becomes the position and reasoning."""
        fields = FakeAgent("a").parse_response("I think we should do it.")
        assert fields["position"] == "I think we should do it."
        assert fields["reasoning"] == "I think we should do it."
        assert fields["confidence"] == 0.5

    def test_empty_fields_defaulted(self):
        """Empty strings are never returned."""
        fields = FakeAgent("a").parse_response('{"position": "", "confidence": 0.2}')
        assert fields["position"] == "Unable to determine position"
        assert fields["reasoning"] == "Unable to determine reasoning"


class TestGeminiAgent:
    """Tests for GeminiAgent with a mocked client."""

    @pytest.mark.asyncio
    async def test_plain_response(self):
        """A text reply is parsed into an AgentResponse."""
        agent, client = _gemini(_model_reply('{"position": "Yes", "reasoning": "R", "confidence": 0.8}'))

        response = await agent.generate_response(make_context())

        assert response.agent_id == "gemini-pro"
        assert response.position == "Yes"
        assert response.confidence == 0.8
        assert client.aio.models.generate_content.await_args.kwargs["model"] == "gemini-test"

    @pytest.mark.asyncio
    async def test_tool_loop_collects_citations(self):
        """Function calls run through the toolkit and search results become citations."""
        provider = AsyncMock()
        provider.search.return_value = [{"title": "Study", "url": "https://example.com", "snippet": "s"}]
        toolkit = AgentToolkit(search_provider=provider).bind(make_context())
        call = SimpleNamespace(name="search_web", args={"query": "four-day week"})
        agent, client = _gemini(
            _model_reply(function_calls=[call]),
            _model_reply('{"position": "Yes", "reasoning": "Evidence", "confidence": 0.7}'),
        )

        response = await agent.generate_response(make_context(), toolkit)

        assert client.aio.models.generate_content.await_count == 2
        assert [t.name for t in response.tool_calls] == ["search_web"]
        assert response.citations[0].url == "https://example.com"
        provider.search.assert_awaited_once_with("four-day week", max_results=5)

    @pytest.mark.asyncio
    async def test_submit_response_wins(self):
        """A submit_response call supplies the final fields."""
        submit = SimpleNamespace(
            name="submit_response",
            args={"position": "Submitted", "reasoning": "Via tool", "confidence": 0.6, "stance": "NO"},
        )
        agent, _ = _gemini(_model_reply(function_calls=[submit]), _model_reply("ignored text"))

        response = await agent.generate_response(make_context(), AgentToolkit().bind(make_context()))

        assert response.position == "Submitted"
        assert response.stance == Stance.NO

    @pytest.mark.asyncio
    async def test_backend_error_normalized(self):
        """SDK failures surface as taxonomy errors without retrying auth failures."""
        agent, client = _gemini(side_effect=Exception("API key not valid"))

        with pytest.raises(APIAuthError) as exc_info:
            await agent.generate_response(make_context())

        assert exc_info.value.provider == "gemini"
        assert client.aio.models.generate_content.await_count == 1

    @pytest.mark.asyncio
    async def test_raw_completion(self):
        """Raw completions return the model text unparsed."""
        agent, _ = _gemini(_model_reply("raw text"))
        assert await agent.generate_raw_completion("prompt") == "raw text"

    @pytest.mark.asyncio
    async def test_health_check(self):
        """Health checks report failures instead of raising."""
        healthy, _ = _gemini(_model_reply("ok"))
        assert (await healthy.health_check()).healthy is True

        broken, _ = _gemini(side_effect=Exception("permission denied"))
        status = await broken.health_check()
        assert status.healthy is False
        assert "permission denied" in status.error
