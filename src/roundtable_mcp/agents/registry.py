"""Provider registry: backend factories and the live agent roster."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass

from ..core.exceptions import AgentError, ConfigurationError
from .base import BaseAgent

logger = logging.getLogger(__name__)

# (agent_id, name, model) -> agent
AgentFactory = Callable[[str, str, str], BaseAgent]


@dataclass
class _ProviderRegistration:
    name: str
    factory: AgentFactory
    default_model: str


@dataclass
class _AgentStatus:
    agent: BaseAgent
    active: bool = True  # until a health check proves otherwise
    error: str | None = None


class ProviderRegistry:
    """Registers backend providers and tracks agent instances and health.

    Passed explicitly to the components that need it; tests call
    :meth:`reset` between cases.
    """

    def __init__(self) -> None:
        self._providers: dict[str, _ProviderRegistration] = {}
        self._agents: dict[str, _AgentStatus] = {}

    # -------------------------------------------------------------------------
    # Providers
    # -------------------------------------------------------------------------
    def register_provider(self, name: str, factory: AgentFactory, default_model: str) -> None:
        self._providers[name] = _ProviderRegistration(name, factory, default_model)
        logger.debug(f"Registered provider: {name} (default model {default_model})")

    def has_provider(self, name: str) -> bool:
        return name in self._providers

    def registered_providers(self) -> list[str]:
        return list(self._providers)

    def default_model(self, provider: str) -> str | None:
        registration = self._providers.get(provider)
        return registration.default_model if registration else None

    # -------------------------------------------------------------------------
    # Agents
    # -------------------------------------------------------------------------
    def create_agent(self, agent_id: str, name: str, provider: str, model: str | None = None) -> BaseAgent:
        """Instantiate an agent through its provider's factory.

        Raises:
            ConfigurationError: Unknown provider
            AgentError: Duplicate agent id
        """
        registration = self._providers.get(provider)
        if registration is None:
            available = ", ".join(self._providers) or "none"
            raise ConfigurationError(
                f'Provider "{provider}" is not registered. Available providers: {available}'
            )
        if agent_id in self._agents:
            raise AgentError(f'Agent with ID "{agent_id}" already exists', code="AGENT_EXISTS")

        agent = registration.factory(agent_id, name, model or registration.default_model)
        self._agents[agent_id] = _AgentStatus(agent=agent)
        logger.info(f"Created agent {agent_id} ({provider}/{agent.model})")
        return agent

    def add_agent(self, agent: BaseAgent) -> None:
        """Register an already-built agent instance."""
        if agent.id in self._agents:
            raise AgentError(f'Agent with ID "{agent.id}" already exists', code="AGENT_EXISTS")
        self._agents[agent.id] = _AgentStatus(agent=agent)

    def get_agent(self, agent_id: str) -> BaseAgent | None:
        status = self._agents.get(agent_id)
        return status.agent if status else None

    def get_agents(self, agent_ids: list[str]) -> list[BaseAgent]:
        """Resolve ids in order.

        Raises:
            AgentError: Any id is unknown (code ``AGENT_NOT_FOUND``)
        """
        missing = [i for i in agent_ids if i not in self._agents]
        if missing:
            raise AgentError(f"Agent(s) not found: {', '.join(missing)}", code="AGENT_NOT_FOUND")
        return [self._agents[i].agent for i in agent_ids]

    def has_agent(self, agent_id: str) -> bool:
        return agent_id in self._agents

    def remove_agent(self, agent_id: str) -> bool:
        return self._agents.pop(agent_id, None) is not None

    def is_active(self, agent_id: str) -> bool:
        status = self._agents.get(agent_id)
        return bool(status and status.active)

    def deactivate_agent(self, agent_id: str, error: str | None = None) -> None:
        status = self._agents.get(agent_id)
        if status:
            status.active = False
            status.error = error

    def activate_agent(self, agent_id: str) -> None:
        status = self._agents.get(agent_id)
        if status:
            status.active = True
            status.error = None

    def all_agent_ids(self) -> list[str]:
        return list(self._agents)

    def all_agents(self) -> list[BaseAgent]:
        return [s.agent for s in self._agents.values()]

    def active_agents(self) -> list[BaseAgent]:
        return [s.agent for s in self._agents.values() if s.active]

    def health_status(self) -> list[dict]:
        """Agent info plus active flag and last health-check error."""
        result = []
        for status in self._agents.values():
            info = status.agent.get_info()
            info["active"] = status.active
            if status.error:
                info["error"] = status.error
            result.append(info)
        return result

    async def refresh_health(self) -> list[dict]:
        """Health-check every agent concurrently and update active flags."""
        agents = self.all_agents()
        results = await asyncio.gather(*(a.health_check() for a in agents))
        for agent, result in zip(agents, results):
            if result.healthy:
                self.activate_agent(agent.id)
            else:
                logger.warning(f"Agent {agent.id} failed health check: {result.error}")
                self.deactivate_agent(agent.id, result.error)
        return self.health_status()

    # -------------------------------------------------------------------------
    # Test isolation
    # -------------------------------------------------------------------------
    def clear_agents(self) -> None:
        self._agents.clear()

    def clear(self) -> None:
        self._agents.clear()
        self._providers.clear()

    def reset(self) -> None:
        """Return to the freshly-constructed state."""
        self.clear()
