"""Model-backed consensus analysis.

The analyzer borrows one of the registered agents to judge how far a
round's responses agree. It never raises: an unavailable backend or an
unreadable answer degrades to a neutral result.
"""

import logging
from typing import TYPE_CHECKING

from ..core.types import AgentResponse, ConsensusCluster, ConsensusResult
from .parsing import neutral_result, parse_consensus

if TYPE_CHECKING:
    from ..agents.base import BaseAgent
    from ..agents.registry import ProviderRegistry

logger = logging.getLogger(__name__)

ANALYSIS_PROMPT = """You are analyzing debate positions from multiple AI agents. Your task is to perform semantic analysis - understanding meaning, not just matching keywords.

## Debate Topic
{topic}

## Agent Positions
{positions}

## Your Analysis Task

Analyze these positions semantically and return a JSON object with this exact structure:

{{
  "agreementLevel": <number 0-1, where 1 = complete agreement>,
  "clusters": [
    {{
      "theme": "<descriptive name for this position cluster>",
      "agentIds": ["<agent IDs in this cluster>"],
      "summary": "<what this cluster's position is>"
    }}
  ],
  "commonGround": ["<points ALL agents agree on>"],
  "disagreementPoints": ["<key points of disagreement>"],
  "nuances": {{
    "partialAgreements": ["<points where agents mostly agree with caveats>"],
    "conditionalPositions": ["<positions that depend on conditions>"],
    "uncertainties": ["<areas where agents express uncertainty>"]
  }},{groupthink_schema}
  "summary": "<2-3 sentence overall summary>",
  "reasoning": "<brief explanation of your analysis>"
}}

Important:
- Focus on SEMANTIC meaning, not keyword matching
- "Developers need better tools" and "Software engineers require improved tooling" are THE SAME position
- "AI is dangerous" and "AI is not dangerous" are OPPOSITE positions (detect negation!)
- Consider degrees of agreement (strong vs weak agreement)
- Identify nuanced positions (conditional, partial, uncertain)
{groupthink_rules}
Return ONLY the JSON object, no other text."""

GROUPTHINK_SCHEMA = """
  "groupthinkWarning": {
    "detected": <boolean - true if groupthink indicators present>,
    "indicators": ["<list of detected groupthink indicators>"],
    "recommendation": "<suggested action if groupthink detected>"
  },"""

GROUPTHINK_RULES = """
Groupthink Detection - Set detected=true if ANY of these are present:
- All agents show very high confidence (>=85%) without substantive disagreement
- All positions converge on identical conclusion without exploring alternatives
- No devil's advocate or contrarian perspectives despite controversial topic
- Arguments rely on social proof ("everyone agrees") rather than evidence
- Dissenting viewpoints are dismissed without proper consideration
"""

ANALYSIS_SYSTEM_PROMPT = (
    "You are an AI assistant that analyzes debate positions. "
    "You must respond with valid JSON only, no additional text before or after the JSON object. "
    "Do not include markdown code fences or any other formatting."
)


def format_positions(responses: list[AgentResponse]) -> str:
    return "\n\n".join(
        f"### {r.agent_name} ({r.agent_id})\n"
        f"**Position:** {r.position}\n"
        f"**Reasoning:** {r.reasoning}\n"
        f"**Confidence:** {r.confidence * 100:.0f}%"
        for r in responses
    )


def build_analysis_prompt(responses: list[AgentResponse], topic: str, include_groupthink: bool = True) -> str:
    return ANALYSIS_PROMPT.format(
        topic=topic,
        positions=format_positions(responses),
        groupthink_schema=GROUPTHINK_SCHEMA if include_groupthink else "",
        groupthink_rules=GROUPTHINK_RULES if include_groupthink else "",
    )


class ConsensusAnalyzer:
    """Reduce a round of responses to a :class:`ConsensusResult`.

    Args:
        registry: Source of agents to run the analysis on
        preferred_provider: Provider tried first when picking an agent
    """

    def __init__(self, registry: "ProviderRegistry", preferred_provider: str | None = None) -> None:
        self.registry = registry
        self.preferred_provider = preferred_provider or None

    async def analyze_consensus(
        self,
        responses: list[AgentResponse],
        topic: str,
        include_groupthink: bool = True,
    ) -> ConsensusResult:
        """Score agreement across ``responses``.

        With ``include_groupthink`` off the model is not asked about groupthink
        and the result never carries a warning; modes built on opposition
        would trip it on every round.
        """
        if not responses:
            return ConsensusResult(
                agreement_level=0.0,
                summary="No responses to analyze",
            )

        if len(responses) == 1:
            only = responses[0]
            return ConsensusResult(
                agreement_level=1.0,
                common_ground=[only.position],
                summary=f"Single response from {only.agent_name}, uncontested",
                clusters=[
                    ConsensusCluster(
                        theme="Single Position",
                        agent_ids=[only.agent_id],
                        summary=only.position,
                    )
                ],
                analyzer_id="self",
            )

        try:
            agent = self.select_agent()
            if agent is None:
                diagnostics = self.get_diagnostics()
                logger.error(f"Consensus analysis unavailable: {diagnostics['reason']}")
                return neutral_result()

            prompt = build_analysis_prompt(responses, topic, include_groupthink)
            logger.debug(f"Running consensus analysis on {agent.id} for {len(responses)} responses")
            raw = await agent.generate_raw_completion(prompt, ANALYSIS_SYSTEM_PROMPT)
        except Exception as e:
            logger.error(f"Consensus analysis failed, using neutral result: {e}")
            return neutral_result()

        logger.debug(f"Raw consensus response from {agent.id} ({len(raw)} chars)")
        result = parse_consensus(raw, agent.id)

        if not include_groupthink:
            result.groupthink_warning = None
        elif result.groupthink_warning:
            logger.warning(
                f"Groupthink detected in consensus analysis: {result.groupthink_warning.indicators}"
            )
        return result

    def select_agent(self) -> "BaseAgent | None":
        """Preferred provider's first active agent, else the first active agent."""
        active = self.registry.active_agents()
        if not active:
            return None
        if self.preferred_provider:
            for agent in active:
                if agent.provider == self.preferred_provider:
                    return agent
            logger.debug(
                f"Preferred provider {self.preferred_provider} unavailable, "
                f"using {active[0].provider}"
            )
        return active[0]

    def get_diagnostics(self) -> dict:
        """Explain whether agent-backed analysis is currently possible and why not."""
        providers = self.registry.registered_providers()
        health = self.registry.health_status()
        active = [a for a in health if a["active"]]
        inactive = [a for a in health if not a["active"]]

        available = False
        reason = None
        if not providers:
            reason = "No providers registered. API keys may not be configured."
        elif not health:
            reason = "No agents created. Call setup_agents() to initialize agents."
        elif not active:
            errors = "; ".join(
                f"{a['provider']}: {a.get('error') or 'health check failed'}" for a in inactive[:3]
            )
            reason = f"All agents failed health checks. {errors}"
        else:
            available = True
            if self.preferred_provider and not any(
                a["provider"] == self.preferred_provider for a in active
            ):
                reason = f"Preferred provider '{self.preferred_provider}' not available, using alternative."

        preferred_available = (
            any(a["provider"] == self.preferred_provider for a in active)
            if self.preferred_provider
            else None
        )

        return {
            "available": available,
            "reason": reason,
            "registered_providers": len(providers),
            "provider_names": providers,
            "total_agents": len(health),
            "active_agents": len(active),
            "inactive_agents": [
                {"id": a["id"], "provider": a["provider"], "error": a.get("error")} for a in inactive
            ],
            "preferred_provider": self.preferred_provider,
            "preferred_provider_available": preferred_available,
        }
