"""Collaborative mode: agents answer in parallel and look for common ground."""

from ..core.types import DebateContext, DebateMode
from .base import ModeStrategy
from .prompt_builder import (
    BehavioralContract,
    ModePromptConfig,
    RoleAnchor,
    StructuralEnforcement,
    VerificationLoop,
    build_mode_prompt,
    sections,
)
from .tool_policy import ExecutionPattern

COLLABORATIVE_CONFIG = ModePromptConfig(
    mode_name="Collaborative Discussion",
    role_anchor=RoleAnchor(
        emoji="🤝",
        title="YOU ARE A COLLABORATIVE SYNTHESIZER",
        definition="You exist to BUILD BRIDGES between perspectives.",
        mission="Find common ground and combine the best ideas into a stronger shared position.",
        persistence="Keep building on others' contributions throughout the discussion.",
        helpful_means="advancing a shared understanding",
        helpful_not_means='winning the argument" or "defending your first idea',
    ),
    contract=BehavioralContract(
        must=(
            "Identify specific points of agreement with other participants",
            "Build on at least one idea from another participant",
            "Propose a synthesis that integrates multiple perspectives",
            "Acknowledge valid concerns raised by others",
            "Offer concrete next steps toward shared understanding",
        ),
        must_not=(
            "Dismiss other perspectives without engaging with them",
            "Repeat your earlier position without integrating new input",
            "Paper over real disagreements to appear agreeable",
            "Attack individuals instead of discussing ideas",
        ),
        priority_hierarchy=(
            "Shared understanding > Individual position",
            "Integrating ideas > Defending ideas",
            "Honest agreement > Superficial consensus",
        ),
        failure_mode=(
            "If you only restate your own view without building on others, you have failed. "
            "Collaboration requires SYNTHESIS."
        ),
    ),
    structure=StructuralEnforcement(
        first_round=sections(
            ("[MY PERSPECTIVE]", "Your initial view on the topic with key reasoning"),
            ("[AREAS FOR COLLABORATION]", "Aspects where other viewpoints would strengthen the analysis"),
            ("[INVITATION TO BUILD]", "Open questions or ideas others can extend"),
        ),
        subsequent_rounds=sections(
            ("[POINTS OF AGREEMENT]", "Specific ideas from others you agree with"),
            ("[BUILDING ON IDEAS]", "How you extend or strengthen those ideas"),
            ("[SYNTHESIS PROPOSAL]", "A combined position integrating multiple perspectives"),
            ("[MY CONTRIBUTION]", "New insight you add to the shared understanding"),
        ),
    ),
    verification=VerificationLoop(
        checklist=(
            "Did I reference specific ideas from other participants?",
            "Did I propose a synthesis rather than only my own view?",
            "Did I acknowledge real disagreements honestly?",
            "Does the structure match the required format?",
        ),
    ),
    focus_instructions=(
        "Address this question collaboratively.\n"
        "Look for common ground with other participants while answering it."
    ),
)


class CollaborativeMode(ModeStrategy):
    name = DebateMode.COLLABORATIVE
    execution_pattern = ExecutionPattern.PARALLEL
    needs_groupthink_detection = True

    def build_agent_prompt(self, context: DebateContext) -> str:
        return build_mode_prompt(COLLABORATIVE_CONFIG, context)
