"""Register available backends and create the default agent roster."""

import logging
from dataclasses import dataclass, field

from ..config import config
from ..core.exceptions import RoundtableError
from .gemini import PROVIDER as GEMINI, GeminiAgent, has_credentials
from .registry import ProviderRegistry

logger = logging.getLogger(__name__)

# Agent name prefix -> model setting
_MODEL_HINTS = {
    "flash": "light_model",
    "lite": "light_model",
}


@dataclass
class SetupResult:
    providers: list[str] = field(default_factory=list)
    agents: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)


def _model_for(agent_id: str) -> str:
    for hint, setting in _MODEL_HINTS.items():
        if hint in agent_id:
            return getattr(config, setting)
    return config.default_model


def _display_name(agent_id: str) -> str:
    return " ".join(part.capitalize() for part in agent_id.replace("_", "-").split("-"))


def setup_agents(registry: ProviderRegistry, agent_ids: list[str] | None = None) -> SetupResult:
    """Register the Gemini provider and create one agent per configured id.

    Args:
        registry: Registry to populate
        agent_ids: Agent ids to create (default: ``config.default_agents``)

    Returns:
        SetupResult describing what was registered
    """
    result = SetupResult()

    if not has_credentials():
        result.warnings.append(
            "Gemini agents not available: set GOOGLE_API_KEY or run 'gemini login'"
        )
        logger.warning(result.warnings[-1])
        return result

    registry.register_provider(
        GEMINI,
        lambda agent_id, name, model: GeminiAgent(agent_id, name, model),
        config.default_model,
    )
    result.providers.append(GEMINI)

    ids = agent_ids or [a.strip() for a in config.default_agents.split(",") if a.strip()]
    for agent_id in ids:
        if registry.has_agent(agent_id):
            continue
        try:
            registry.create_agent(agent_id, _display_name(agent_id), GEMINI, _model_for(agent_id))
        except RoundtableError as e:
            result.warnings.append(f"Could not create agent {agent_id}: {e}")
            logger.warning(result.warnings[-1])
            continue
        result.agents.append(agent_id)

    logger.info(f"Agent setup complete: {len(result.agents)} agent(s) from {result.providers}")
    return result
