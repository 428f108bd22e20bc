"""Abstract base class for debate agents."""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING

from ..config import config
from ..core.json_utils import loads_lenient
from ..core.types import (
    AgentResponse,
    Citation,
    DebateContext,
    Stance,
    ToolCallRecord,
    clamp_unit,
)

if TYPE_CHECKING:
    from ..tools.toolkit import RoundToolkit

logger = logging.getLogger(__name__)

DEFAULT_POSITION = "Unable to determine position"
DEFAULT_REASONING = "Unable to determine reasoning"


@dataclass
class HealthStatus:
    """Result of an agent health check."""

    healthy: bool
    error: str | None = None
    checked_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> dict:
        data = {"healthy": self.healthy, "checked_at": self.checked_at.isoformat()}
        if self.error:
            data["error"] = self.error
        return data


class BaseAgent(ABC):
    """Abstract base class for AI agents.

    To add a new backend:
    1. Subclass and implement ``generate_response`` and ``generate_raw_completion``
    2. Register a factory with ``ProviderRegistry.register_provider``
    """

    def __init__(
        self,
        agent_id: str,
        name: str,
        provider: str,
        model: str,
        *,
        system_prompt: str | None = None,
        temperature: float | None = None,
        max_output_tokens: int | None = None,
    ) -> None:
        self.id = agent_id
        self.name = name
        self.provider = provider
        self.model = model
        self.system_prompt = system_prompt
        self.temperature = config.temperature if temperature is None else temperature
        self.max_output_tokens = max_output_tokens or config.max_output_tokens

    @abstractmethod
    async def generate_response(
        self, context: DebateContext, toolkit: "RoundToolkit | None" = None
    ) -> AgentResponse:
        """Produce this agent's response for the current debate context."""

    @abstractmethod
    async def generate_raw_completion(self, prompt: str, system_prompt: str | None = None) -> str:
        """Return unparsed model text for ``prompt``."""

    async def health_check(self) -> HealthStatus:
        """Test whether the backend answers at all.

        Never raises; failures are reported in the returned status.
        """
        try:
            await self._perform_health_check()
        except Exception as e:
            logger.warning(f"Health check failed for {self.id}: {e}")
            return HealthStatus(healthy=False, error=str(e))
        return HealthStatus(healthy=True)

    async def _perform_health_check(self) -> None:
        await self.generate_raw_completion("test", "Reply with the single word: ok")

    # -------------------------------------------------------------------------
    # Prompt construction
    # -------------------------------------------------------------------------
    def default_system_prompt(self) -> str:
        return (
            f"You are {self.name}, an AI participating in a structured roundtable discussion.\n"
            "Your role is to provide thoughtful, well-reasoned perspectives on the topic at hand.\n"
            "Be respectful of other participants' views while clearly articulating your own position."
        )

    def build_system_prompt(self, context: DebateContext) -> str:
        """System prompt: persona, mode instructions, then round framing."""
        parts = [self.system_prompt or self.default_system_prompt()]
        if context.mode_prompt:
            parts.append(context.mode_prompt)

        framing = [
            f"Current debate topic: {context.topic}",
            f"Debate mode: {context.mode}",
            f"Round {context.current_round} of {context.total_rounds}",
        ]
        if context.focus_question:
            framing.append(f"\nFocus question: {context.focus_question}")
        framing.append(
            "\nInstructions:\n"
            "- Provide your position clearly and concisely\n"
            "- Support your position with logical reasoning\n"
            "- Express your confidence level (0-1) in your position\n"
            "- If you use any tools (web search, fact check), cite your sources"
        )
        parts.append("\n".join(framing))
        return "\n\n".join(parts)

    def build_user_message(self, context: DebateContext) -> str:
        """User turn: prior responses, answered context requests, output format."""
        parts: list[str] = []

        if context.previous_responses:
            parts.append("Previous responses:")
            for response in context.previous_responses:
                block = (
                    f"\n--- {response.agent_name} ---\n"
                    f"Position: {response.position}\n"
                    f"Reasoning: {response.reasoning}\n"
                    f"Confidence: {response.confidence * 100:.0f}%"
                )
                if response.citations:
                    block += "\nSources: " + ", ".join(c.title for c in response.citations)
                parts.append(block)

        if context.context_results:
            parts.append("\nInformation supplied in answer to earlier context requests:")
            for result in context.context_results:
                if result.success:
                    parts.append(f"- [{result.request_id}] {result.result or ''}")
                else:
                    parts.append(f"- [{result.request_id}] unavailable: {result.error or 'unknown error'}")

        parts.append(
            "\nPlease provide your response in the following JSON format:\n"
            "{\n"
            '  "stance": "YES" | "NO" | "NEUTRAL" (optional),\n'
            '  "position": "Your clear position statement",\n'
            '  "reasoning": "Your detailed reasoning and arguments",\n'
            '  "confidence": 0.0 to 1.0\n'
            "}\n"
        )
        return "\n".join(parts)

    # -------------------------------------------------------------------------
    # Response parsing
    # -------------------------------------------------------------------------
    def parse_response(self, raw: str) -> dict:
        """Parse model text into response fields.

        Tries JSON (with repair) first, then falls back to treating the raw
        text as the position and reasoning. Never returns empty strings.
        """
        parsed = loads_lenient(raw) if "{" in raw else None
        if parsed is not None:
            stance = str(parsed.get("stance") or "").strip().upper()
            return {
                "position": str(parsed.get("position") or "").strip() or DEFAULT_POSITION,
                "reasoning": str(parsed.get("reasoning") or "").strip() or DEFAULT_REASONING,
                "confidence": clamp_unit(parsed.get("confidence", 0.5)),
                "stance": Stance(stance) if stance in Stance.__members__ else None,
            }

        logger.debug(f"Agent {self.id} returned non-JSON output; using raw text")
        trimmed = raw.strip()
        return {
            "position": trimmed[:200] or DEFAULT_POSITION,
            "reasoning": trimmed or DEFAULT_REASONING,
            "confidence": 0.5,
            "stance": None,
        }

    def build_response(
        self,
        fields: dict,
        citations: list[Citation] | None = None,
        tool_calls: list[ToolCallRecord] | None = None,
    ) -> AgentResponse:
        return AgentResponse(
            agent_id=self.id,
            agent_name=self.name,
            position=fields["position"],
            reasoning=fields["reasoning"],
            confidence=fields.get("confidence", 0.5),
            stance=fields.get("stance"),
            citations=citations or [],
            tool_calls=tool_calls or [],
        )

    def get_info(self) -> dict:
        """Get agent info for display."""
        return {
            "id": self.id,
            "name": self.name,
            "provider": self.provider,
            "model": self.model,
        }
