"""Pytest configuration and fixtures."""

import asyncio
import json

import pytest

from roundtable_mcp.agents.base import BaseAgent
from roundtable_mcp.agents.registry import ProviderRegistry
from roundtable_mcp.core.exceptions import APINetworkError
from roundtable_mcp.core.types import AgentResponse, DebateContext, Stance
from roundtable_mcp.session.manager import SessionManager
from roundtable_mcp.session.store import SessionStore
from roundtable_mcp.tools import roundtable_tools
from roundtable_mcp.tools.toolkit import AgentToolkit

CONSENSUS_JSON = json.dumps(
    {
        "agreementLevel": 0.8,
        "clusters": [{"theme": "Pro", "agentIds": ["alpha", "beta"], "summary": "Both in favour"}],
        "commonGround": ["Testing matters"],
        "disagreementPoints": [],
        "summary": "Broad agreement",
        "reasoning": "Positions align",
    }
)


class FakeAgent(BaseAgent):
    """Scripted agent that records every context it is given."""

    def __init__(
        self,
        agent_id: str,
        name: str | None = None,
        provider: str = "fake",
        model: str = "fake-model",
        *,
        position: str | None = None,
        confidence: float = 0.7,
        stance: Stance | None = None,
        tool_calls: list[tuple[str, dict]] | None = None,
        raw_completion: str = CONSENSUS_JSON,
        delay: float = 0.0,
    ) -> None:
        super().__init__(agent_id, name or agent_id.title(), provider, model)
        self.position = position or f"{agent_id} position"
        self.confidence = confidence
        self.stance = stance
        self.scripted_tool_calls = tool_calls or []
        self.raw_completion = raw_completion
        self.delay = delay
        self.contexts: list[DebateContext] = []
        self.tool_results: list[dict] = []
        self.raw_prompts: list[str] = []

    async def generate_response(self, context, toolkit=None) -> AgentResponse:
        self.contexts.append(context)
        if self.delay:
            await asyncio.sleep(self.delay)
        if toolkit is not None:
            for name, tool_input in self.scripted_tool_calls:
                self.tool_results.append(await toolkit.execute_tool(name, tool_input, agent_id=self.id))
        return AgentResponse(
            agent_id=self.id,
            agent_name=self.name,
            position=self.position,
            reasoning=f"Reasoning from {self.id}",
            confidence=self.confidence,
            stance=self.stance,
        )

    async def generate_raw_completion(self, prompt: str, system_prompt: str | None = None) -> str:
        self.raw_prompts.append(prompt)
        return self.raw_completion


class FailingAgent(FakeAgent):
    """Agent whose every call fails."""

    async def generate_response(self, context, toolkit=None) -> AgentResponse:
        self.contexts.append(context)
        raise APINetworkError("connection reset", provider=self.provider)

    async def generate_raw_completion(self, prompt: str, system_prompt: str | None = None) -> str:
        raise APINetworkError("connection reset", provider=self.provider)


@pytest.fixture
def store(tmp_path):
    """Session store rooted in a temp directory."""
    return SessionStore(data_dir=tmp_path, max_sessions=50)


@pytest.fixture
def manager(store):
    """Session manager over the temp store."""
    return SessionManager(store)


@pytest.fixture
def toolkit(manager):
    """Toolkit without web search, backed by the temp sessions."""
    return AgentToolkit(session_data_provider=manager)


@pytest.fixture
def registry():
    """Registry with a fake provider and three fake agents."""
    reg = ProviderRegistry()
    reg.register_provider("fake", lambda agent_id, name, model: FakeAgent(agent_id, name, model=model), "fake-model")
    for agent_id in ("alpha", "beta", "gamma"):
        reg.add_agent(FakeAgent(agent_id))
    yield reg
    reg.reset()


@pytest.fixture
def roundtable(registry, manager):
    """Global roundtable wired to fakes; restored afterwards."""
    rt = roundtable_tools.build_roundtable(registry=registry, sessions=manager)
    roundtable_tools.set_roundtable(rt)
    yield rt
    roundtable_tools.set_roundtable(None)


def make_context(**overrides) -> DebateContext:
    """DebateContext with sensible defaults."""
    values = {
        "session_id": "session-1",
        "topic": "Should we write more tests?",
        "mode": "collaborative",
        "current_round": 1,
        "total_rounds": 3,
    }
    values.update(overrides)
    return DebateContext(**values)


def make_response(agent_id: str = "alpha", **overrides) -> AgentResponse:
    """AgentResponse with sensible defaults."""
    values = {
        "agent_id": agent_id,
        "agent_name": agent_id.title(),
        "position": f"{agent_id} position",
        "reasoning": f"{agent_id} reasoning",
        "confidence": 0.7,
    }
    values.update(overrides)
    return AgentResponse(**values)
