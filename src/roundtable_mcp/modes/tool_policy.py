"""Per-mode tool usage limits.

Sequential modes get a tighter budget: earlier speakers have already
gathered evidence that later speakers can reuse.
"""

from dataclasses import dataclass
from enum import StrEnum

from ..core.types import DebateMode


class ExecutionPattern(StrEnum):
    PARALLEL = "parallel"
    SEQUENTIAL = "sequential"
    # Every agent but the last in parallel, then the last one with their output
    LAST_ONLY = "last-only"


@dataclass(frozen=True)
class ToolUsagePolicy:
    min_calls: int
    max_calls: int
    guidance: str


TOOL_USAGE_POLICIES: dict[ExecutionPattern, ToolUsagePolicy] = {
    ExecutionPattern.PARALLEL: ToolUsagePolicy(
        min_calls=1,
        max_calls=6,
        guidance="Use tools freely to gather comprehensive evidence.",
    ),
    ExecutionPattern.SEQUENTIAL: ToolUsagePolicy(
        min_calls=1,
        max_calls=2,
        guidance="Leverage previous responses; limit to 1-2 essential tool calls.",
    ),
    ExecutionPattern.LAST_ONLY: ToolUsagePolicy(
        min_calls=1,
        max_calls=4,
        guidance="The final speaker should build on the evidence the others gathered.",
    ),
}

MODE_EXECUTION_PATTERN: dict[str, ExecutionPattern] = {
    DebateMode.COLLABORATIVE: ExecutionPattern.PARALLEL,
    DebateMode.EXPERT_PANEL: ExecutionPattern.PARALLEL,
    DebateMode.DELPHI: ExecutionPattern.PARALLEL,
    DebateMode.RED_TEAM_BLUE_TEAM: ExecutionPattern.PARALLEL,
    DebateMode.ADVERSARIAL: ExecutionPattern.SEQUENTIAL,
    DebateMode.SOCRATIC: ExecutionPattern.SEQUENTIAL,
    DebateMode.DEVILS_ADVOCATE: ExecutionPattern.SEQUENTIAL,
}

SEQUENTIAL_MODE_TOOL_GUIDANCE = """
## Tool Usage in Sequential Discussion

Previous participants have already gathered evidence and research.
Before making a tool call, check if the information already exists in their responses.

MUST:
- Review previous responses for existing evidence before searching
- Limit tool calls to 1-2 essential searches only
- Focus on NEW information not already covered

MUST NOT:
- Repeat searches that previous agents have done
- Use more than 2 tool calls per response
- Search for information already present in context
"""


def execution_pattern_for(mode: str) -> ExecutionPattern | None:
    return MODE_EXECUTION_PATTERN.get(mode)


def get_tool_policy(mode: str) -> ToolUsagePolicy | None:
    """Policy for ``mode``, or ``None`` for modes without a known pattern."""
    pattern = execution_pattern_for(mode)
    return TOOL_USAGE_POLICIES[pattern] if pattern else None


def is_sequential_mode(mode: str) -> bool:
    return execution_pattern_for(mode) == ExecutionPattern.SEQUENTIAL


def tool_guidance_for_mode(mode: str) -> str:
    return SEQUENTIAL_MODE_TOOL_GUIDANCE if is_sequential_mode(mode) else ""
