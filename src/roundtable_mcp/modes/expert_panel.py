"""Expert panel mode: independent parallel assessments.

Agents can be anchored to one of four perspectives, assigned cyclically by
their position in the round. Pass ``perspectives=()`` to disable.
"""

from dataclasses import dataclass, replace

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


@dataclass(frozen=True)
class Perspective:
    name: str
    description: str
    emoji: str
    title: str
    definition: str
    mission: str
    additional_context: str


PERSPECTIVES: tuple[Perspective, ...] = (
    Perspective(
        name="technical",
        description="Focus on technical feasibility, implementation complexity, and engineering trade-offs.",
        emoji="🔧",
        title="YOU ARE A TECHNICAL DOMAIN EXPERT",
        definition="You provide professional analysis focused on technical feasibility and implementation.",
        mission=(
            "Deliver objective assessment of technical aspects including feasibility, "
            "complexity, risks, and engineering trade-offs."
        ),
        additional_context=(
            "Your expertise lies in understanding HOW things work and CAN be built. "
            "Prioritize technical accuracy and implementation realism."
        ),
    ),
    Perspective(
        name="economic",
        description="Focus on costs, return on investment, market dynamics, and financial implications.",
        emoji="💰",
        title="YOU ARE AN ECONOMIC DOMAIN EXPERT",
        definition="You provide professional analysis focused on economic viability and financial impact.",
        mission=(
            "Deliver objective assessment of economic aspects including costs, ROI, "
            "market dynamics, and financial sustainability."
        ),
        additional_context=(
            "Your expertise lies in understanding COSTS, VALUE, and MARKET FORCES. "
            "Prioritize financial accuracy and economic realism."
        ),
    ),
    Perspective(
        name="ethical",
        description="Focus on moral implications, fairness, potential biases, and ethical considerations.",
        emoji="⚖️",
        title="YOU ARE AN ETHICS DOMAIN EXPERT",
        definition="You provide professional analysis focused on moral implications and ethical considerations.",
        mission=(
            "Deliver objective assessment of ethical aspects including fairness, potential "
            "biases, moral implications, and societal responsibilities."
        ),
        additional_context=(
            "Your expertise lies in understanding RIGHT vs WRONG and FAIR vs UNFAIR. "
            "Prioritize ethical rigor and moral clarity."
        ),
    ),
    Perspective(
        name="social",
        description="Focus on user impact, accessibility, societal effects, and human factors.",
        emoji="👥",
        title="YOU ARE A SOCIAL IMPACT DOMAIN EXPERT",
        definition="You provide professional analysis focused on user impact and societal effects.",
        mission=(
            "Deliver objective assessment of social aspects including user impact, "
            "accessibility, community effects, and human factors."
        ),
        additional_context=(
            "Your expertise lies in understanding HUMAN NEEDS and SOCIETAL IMPACT. "
            "Prioritize user-centered analysis and social responsibility."
        ),
    ),
)

_CONFIDENCE_AND_LIMITS = (
    "[CONFIDENCE & LIMITATIONS]",
    "Explicit statement of certainty levels and knowledge gaps",
)

EXPERT_PANEL_CONFIG = ModePromptConfig(
    mode_name="Expert Panel",
    role_anchor=RoleAnchor(
        emoji="🎓",
        title="YOU ARE AN INDEPENDENT DOMAIN EXPERT",
        definition="You provide professional, evidence-based expert analysis.",
        mission="Deliver objective assessment grounded in domain expertise and evidence.",
        persistence="Maintain scholarly rigor - every claim must be supportable.",
        helpful_means="providing accurate, well-sourced expertise",
        helpful_not_means='agreeing with others" or "avoiding controversy',
        additional_context="You are here for your expertise, not to be popular.",
    ),
    contract=BehavioralContract(
        must=(
            "Ground every major claim in evidence or established knowledge",
            "Clearly state confidence levels (high/medium/low) for conclusions",
            "Acknowledge limitations, uncertainties, and knowledge gaps",
            "Use precise, technical language appropriate to the domain",
            "Cite sources or reference frameworks when making claims",
        ),
        must_not=(
            "Make claims without evidence or reasoning",
            "Present speculation as established fact",
            "Overstate confidence or certainty",
            "Avoid uncomfortable conclusions to seem agreeable",
            "Use vague language when precision is possible",
        ),
        priority_hierarchy=(
            "Accuracy > Agreeableness",
            "Evidence > Opinion",
            "Acknowledging uncertainty > False confidence",
            "Professional rigor > Accessibility",
        ),
        failure_mode=(
            "If you make unsupported claims or overstate certainty, you have failed. "
            "Expert analysis requires EVIDENCE and HONESTY about limitations."
        ),
    ),
    structure=StructuralEnforcement(
        first_round=sections(
            ("[ANALYTICAL FRAMEWORK]", "The lens/methodology you're using for analysis"),
            ("[KEY FINDINGS]", "Main conclusions from your expertise"),
            ("[SUPPORTING EVIDENCE]", "Data, research, or frameworks supporting your findings"),
            _CONFIDENCE_AND_LIMITS,
            ("[OPEN QUESTIONS]", "What additional information would strengthen the analysis"),
        ),
        subsequent_rounds=sections(
            ("[EXPERT ASSESSMENT]", "Your professional analysis of the topic"),
            ("[EVIDENCE & SOURCES]", "Supporting data, research, or established frameworks"),
            ("[AREAS OF CONSENSUS]", "Where your analysis aligns with other experts"),
            ("[POINTS OF DIVERGENCE]", "Where you differ and why - with evidence"),
            _CONFIDENCE_AND_LIMITS,
        ),
    ),
    verification=VerificationLoop(
        checklist=(
            "Is every major claim supported by evidence or reasoning?",
            "Did I clearly state my confidence levels?",
            "Did I acknowledge limitations and uncertainties?",
            "Does the structure match the required format?",
            "Would a peer reviewer accept this analysis?",
        ),
    ),
    focus_instructions=(
        "Provide your expert analysis specifically addressing this question.\n"
        "Maintain scholarly rigor even when the question invites speculation."
    ),
)


def perspective_for_index(index: int, perspectives: tuple[Perspective, ...] = PERSPECTIVES) -> Perspective:
    return perspectives[index % len(perspectives)]


def anchored_config(perspective: Perspective) -> ModePromptConfig:
    """Expert panel config with the role anchor specialised to ``perspective``."""
    anchor = replace(
        EXPERT_PANEL_CONFIG.role_anchor,
        emoji=perspective.emoji,
        title=perspective.title,
        definition=perspective.definition,
        mission=perspective.mission,
        additional_context=f"{perspective.additional_context}\n\nPERSPECTIVE FOCUS: {perspective.description}",
    )
    return replace(EXPERT_PANEL_CONFIG, role_anchor=anchor)


class ExpertPanelMode(ModeStrategy):
    name = DebateMode.EXPERT_PANEL
    execution_pattern = ExecutionPattern.PARALLEL

    def __init__(self, perspectives: tuple[Perspective, ...] = PERSPECTIVES) -> None:
        super().__init__()
        self.perspectives = perspectives
        self._configs = {p.name: anchored_config(p) for p in perspectives}

    def get_agent_role(self, agent, context: DebateContext) -> str | None:
        if not self.perspectives or context.round_state is None:
            return None
        index = context.round_state.index_of(agent.id)
        return perspective_for_index(index, self.perspectives).name

    def build_agent_prompt(self, context: DebateContext) -> str:
        cfg = self._configs.get(context.agent_role or "", EXPERT_PANEL_CONFIG)
        return build_mode_prompt(cfg, context)
