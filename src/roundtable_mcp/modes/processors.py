"""Context processors applied before agents see previous responses."""

import re
from abc import ABC, abstractmethod
from collections import Counter
from dataclasses import replace

from ..core.types import AgentResponse, DebateContext

NO_POSITION = "(No position)"
KEY_POSITION_LENGTH = 100
TOP_POSITIONS = 5

_SENTENCE_END = re.compile(r"[.!?]")


class ContextProcessor(ABC):
    @abstractmethod
    def process(self, context: DebateContext) -> DebateContext: ...


class AnonymizationProcessor(ContextProcessor):
    """Relabel previous responses as ``Participant N`` in first-seen order."""

    def process(self, context: DebateContext) -> DebateContext:
        if not context.previous_responses:
            return context

        labels: dict[str, int] = {}
        anonymized = []
        for response in context.previous_responses:
            number = labels.setdefault(response.agent_id, len(labels) + 1)
            anonymized.append(
                replace(
                    response,
                    agent_id=f"participant-{number}",
                    agent_name=f"Participant {number}",
                )
            )
        return context.evolve(previous_responses=anonymized)


def extract_key_position(position: str) -> str:
    """First sentence of ``position``, or its first 100 characters."""
    text = position.strip()
    if not text:
        return NO_POSITION
    first = _SENTENCE_END.split(text, maxsplit=1)[0].strip()
    if first and len(first) <= KEY_POSITION_LENGTH:
        return first
    return text[:KEY_POSITION_LENGTH].strip() + "..."


def round_statistics(responses: list[AgentResponse] | tuple[AgentResponse, ...]) -> str:
    """Aggregate statistics block for ``responses``."""
    count = len(responses)
    avg_confidence = sum(r.confidence for r in responses) / count * 100
    positions = Counter(extract_key_position(r.position) for r in responses)
    top_share = positions.most_common(1)[0][1] / count * 100

    lines = [
        f"- Participants: {count}",
        f"- Average Confidence: {avg_confidence:.1f}%",
        f"- Consensus Level: {top_share:.1f}%",
    ]

    stances = Counter(r.stance.value for r in responses if r.stance)
    if stances:
        lines.append(
            "- Stance Distribution: " + ", ".join(f"{s}: {n}" for s, n in stances.most_common())
        )

    lines.append("- Position Distribution:")
    for position, n in positions.most_common(TOP_POSITIONS):
        noun = "participant" if n == 1 else "participants"
        lines.append(f'  - {n} {noun}: "{position}"')

    return "\n\nRound Statistics:\n" + "\n".join(lines)


class StatisticsProcessor(ContextProcessor):
    """Append aggregate statistics of previous responses to the mode prompt."""

    def process(self, context: DebateContext) -> DebateContext:
        if not context.previous_responses:
            return context
        return context.evolve(
            mode_prompt=context.mode_prompt + round_statistics(context.previous_responses)
        )


class ProcessorChain(ContextProcessor):
    def __init__(self, processors: list[ContextProcessor] | None = None) -> None:
        self.processors = list(processors or [])

    def add(self, processor: ContextProcessor) -> "ProcessorChain":
        self.processors.append(processor)
        return self

    def process(self, context: DebateContext) -> DebateContext:
        for processor in self.processors:
            context = processor.process(context)
        return context
