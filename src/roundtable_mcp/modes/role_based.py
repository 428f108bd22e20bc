"""Modes that give each agent a role derived from its position in the round.

A subclass supplies ``role_configs`` and ``get_role_for_index``. The role of
an agent is looked up from the :class:`RoundState` carried on the context,
so the same instance can serve concurrent sessions.
"""

import logging
from abc import abstractmethod
from dataclasses import dataclass, replace

from ..core.types import AgentResponse, DebateContext, Stance
from .base import ModeStrategy
from .prompt_builder import (
    SEPARATOR,
    BehavioralContract,
    OutputSection,
    RoleAnchor,
    VerificationLoop,
    build_behavioral_contract,
    build_output_sections,
    build_role_anchor,
    build_verification_loop,
)
from .validators import StanceValidator

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RoleConfig:
    anchor: RoleAnchor
    contract: BehavioralContract
    verification: VerificationLoop
    output_sections: tuple[OutputSection, ...] = ()
    expected_stance: Stance | None = None
    display_name: str = ""


class RoleBasedModeStrategy(ModeStrategy):
    role_configs: dict[str, RoleConfig] = {}

    @abstractmethod
    def get_role_for_index(self, index: int, total: int) -> str:
        """Role for the agent at ``index`` in a round of ``total`` agents."""

    @abstractmethod
    def build_base_prompt(self, context: DebateContext) -> str:
        """Mode-level introduction shared by every role."""

    def build_role_context_addition(self, context: DebateContext, role: str) -> str:
        return ""

    def display_name(self, role: str) -> str:
        cfg = self.role_configs.get(role)
        return cfg.display_name if cfg and cfg.display_name else role

    def role_for_context(self, agent_id: str, context: DebateContext) -> str:
        if context.round_state is None:
            return self.get_role_for_index(0, 1)
        return self.get_role_for_index(
            context.round_state.index_of(agent_id), context.round_state.total_agents
        )

    # -------------------------------------------------------------------------
    # Hooks
    # -------------------------------------------------------------------------
    def get_agent_role(self, agent, context: DebateContext) -> str:
        return self.role_for_context(agent.id, context)

    def build_agent_prompt(self, context: DebateContext) -> str:
        role = context.agent_role or self.get_role_for_index(0, 1)
        return self.build_base_prompt(context) + self.build_role_prompt(context, role)

    def validate_response(self, response: AgentResponse, context: DebateContext) -> AgentResponse:
        """Run the default checks, then tag the role and flag stance drift."""
        response = super().validate_response(response, context)
        role = context.agent_role or self.role_for_context(response.agent_id, context)
        cfg = self.role_configs.get(role)
        if cfg is None or cfg.expected_stance is None:
            return replace(response, role=role)

        result = StanceValidator(cfg.expected_stance, role=role).validate(response)
        for issue in result.issues:
            logger.warning(f"[{self.name}] {self.display_name(role)}: {issue}")
        return result.response

    # -------------------------------------------------------------------------
    # Prompt
    # -------------------------------------------------------------------------
    def build_role_prompt(self, context: DebateContext, role: str) -> str:
        cfg = self.role_configs.get(role)
        if cfg is None:
            logger.warning(f"[{self.name}] No configuration for role {role}")
            return ""

        prompt = (
            f"\n\n## Your Role: {self.display_name(role)}\n\n"
            + build_role_anchor(cfg.anchor)
            + "\n"
            + build_behavioral_contract(cfg.contract, context.mode)
        )
        if cfg.output_sections:
            prompt += (
                f"\n{SEPARATOR}\nLAYER 3: STRUCTURAL ENFORCEMENT\n{SEPARATOR}\n\n"
                + build_output_sections(cfg.output_sections)
            )
        prompt += build_verification_loop(cfg.verification, context.mode)
        prompt += self.build_role_context_addition(context, role)
        return prompt
