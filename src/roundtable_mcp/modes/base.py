"""Mode strategy base class and shared execution shapes."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from ..core.types import AgentResponse, DebateContext, RoundState
from .tool_policy import ExecutionPattern
from .validators import ResponseValidator, default_validator_chain

if TYPE_CHECKING:
    from ..agents.base import BaseAgent
    from ..tools.toolkit import RoundToolkit

logger = logging.getLogger(__name__)


def build_round_state(agents: list["BaseAgent"]) -> RoundState:
    """Index every agent by its position in this round's agent list."""
    return RoundState(
        agent_index={agent.id: i for i, agent in enumerate(agents)},
        total_agents=len(agents),
    )


class ModeStrategy(ABC):
    """A dialogue mode: execution shape plus the instructions agents receive.

    One instance serves every session using the mode, so nothing
    round-specific is stored on ``self``. Per-round state travels on the
    :class:`DebateContext` (``round_state``, ``agent_role``).

    Subclasses set ``name`` and ``execution_pattern`` and implement
    :meth:`build_agent_prompt`. The hooks :meth:`transform_context`,
    :meth:`validate_response` and :meth:`get_agent_role` customise
    individual agent calls.
    """

    name: str = ""
    execution_pattern: ExecutionPattern = ExecutionPattern.PARALLEL
    needs_groupthink_detection: bool = True

    def __init__(self) -> None:
        self.validator: ResponseValidator = default_validator_chain()

    async def execute_round(
        self,
        agents: list["BaseAgent"],
        context: DebateContext,
        toolkit: "RoundToolkit",
    ) -> list[AgentResponse]:
        """Run one round and return the surviving responses in agent order."""
        context = context.evolve(round_state=build_round_state(agents))
        if self.execution_pattern == ExecutionPattern.SEQUENTIAL:
            return await self.execute_sequential(agents, context, toolkit)
        if self.execution_pattern == ExecutionPattern.LAST_ONLY:
            return await self.execute_last_only(agents, context, toolkit)
        return await self.execute_parallel(agents, context, toolkit)

    @abstractmethod
    def build_agent_prompt(self, context: DebateContext) -> str:
        """Mode instructions for one agent call."""

    # -------------------------------------------------------------------------
    # Hooks
    # -------------------------------------------------------------------------
    def get_agent_role(self, agent: "BaseAgent", context: DebateContext) -> str | None:
        return None

    def transform_context(self, context: DebateContext, agent: "BaseAgent") -> DebateContext:
        """Per-agent context: assigned role and rendered mode prompt."""
        role = self.get_agent_role(agent, context)
        if role is not None:
            context = context.evolve(agent_role=role)
        return context.evolve(mode_prompt=self.build_agent_prompt(context))

    def validate_response(self, response: AgentResponse, context: DebateContext) -> AgentResponse:
        result = self.validator.validate(response)
        for issue in result.issues:
            logger.warning(f"[{self.name}] {response.agent_id}: {issue}")
        return result.response

    # -------------------------------------------------------------------------
    # Execution shapes
    # -------------------------------------------------------------------------
    async def _run_agent(
        self, agent: "BaseAgent", context: DebateContext, toolkit: "RoundToolkit"
    ) -> AgentResponse:
        agent_context = self.transform_context(context, agent)
        response = await agent.generate_response(agent_context, toolkit)
        return self.validate_response(response, agent_context)

    async def execute_parallel(
        self,
        agents: list["BaseAgent"],
        context: DebateContext,
        toolkit: "RoundToolkit",
    ) -> list[AgentResponse]:
        """All agents see the same context and run concurrently.

        A failing agent is logged and left out; its siblings are not cancelled.
        """
        results = await asyncio.gather(
            *(self._run_agent(agent, context, toolkit) for agent in agents),
            return_exceptions=True,
        )
        responses = []
        for agent, result in zip(agents, results):
            if isinstance(result, BaseException):
                if not isinstance(result, Exception):
                    raise result
                logger.error(f"[{self.name}] Agent {agent.id} failed: {result}")
                continue
            responses.append(result)
        return responses

    async def execute_sequential(
        self,
        agents: list["BaseAgent"],
        context: DebateContext,
        toolkit: "RoundToolkit",
    ) -> list[AgentResponse]:
        """Agents run one at a time; each sees the responses given so far this round."""
        responses: list[AgentResponse] = []
        for agent in agents:
            agent_context = context.evolve(
                previous_responses=[*context.previous_responses, *responses]
            )
            try:
                response = await self._run_agent(agent, agent_context, toolkit)
            except Exception as e:
                logger.error(f"[{self.name}] Agent {agent.id} failed: {e}")
                continue
            responses.append(response)
        return responses

    async def execute_last_only(
        self,
        agents: list["BaseAgent"],
        context: DebateContext,
        toolkit: "RoundToolkit",
    ) -> list[AgentResponse]:
        """All but the last agent run in parallel; the last one sees their output."""
        if len(agents) <= 1:
            return await self.execute_parallel(agents, context, toolkit)

        first = await self.execute_parallel(agents[:-1], context, toolkit)
        last_context = context.evolve(previous_responses=[*context.previous_responses, *first])
        last = await self.execute_parallel(agents[-1:], last_context, toolkit)
        return first + last
