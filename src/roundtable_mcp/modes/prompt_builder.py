"""Four-layer mode prompt construction.

Layer 1 anchors the role, layer 2 lists required and prohibited behaviour,
layer 3 fixes the output structure and layer 4 is a self-check list. An
optional focus-question section closes the prompt.
"""

from dataclasses import dataclass, field

from ..core.types import DebateContext, DebateMode
from .tool_policy import get_tool_policy, is_sequential_mode, tool_guidance_for_mode

SEPARATOR = "═" * 67

TOOL_USAGE_MUST = (
    "Use search_web or fact_check tool for ANY factual claim",
    "Cite sources from tool results in your response",
    "Verify statistics and recent events with tools before stating",
)

TOOL_USAGE_MUST_NOT = (
    "Make factual claims without tool-based verification",
    "State statistics or data without source citation",
)

COMMON_TOOL_CHECKS = (
    "Did I use tools (search_web, fact_check) to verify factual claims?",
    "Did I cite sources from tool results?",
)

MODE_SPECIFIC_CHECKS: dict[str, tuple[str, ...]] = {
    DebateMode.DEVILS_ADVOCATE: (
        "Did I explicitly include my stance (YES/NO/NEUTRAL) in the response?",
        "Does my reasoning support my assigned stance?",
    ),
    DebateMode.EXPERT_PANEL: (
        "Did I analyze from my assigned perspective?",
        "Did I acknowledge limitations and knowledge gaps?",
    ),
    DebateMode.COLLABORATIVE: (
        "Did I identify specific points of agreement with others?",
        "Did I build on others' ideas constructively?",
    ),
    DebateMode.ADVERSARIAL: (
        "Did I directly address and counter the previous arguments?",
        "Did I avoid simply restating my position without engagement?",
    ),
    DebateMode.SOCRATIC: (
        "Did I pose meaningful questions that deepen understanding?",
        "Did I respond substantively to questions asked?",
    ),
    DebateMode.DELPHI: (
        "Did I provide my independent assessment without bias from others?",
        "Did I clearly state my confidence level?",
    ),
    DebateMode.RED_TEAM_BLUE_TEAM: (
        "Did I stay true to my assigned team role (attack/defense)?",
        "Did I provide concrete evidence for my position?",
    ),
}


@dataclass(frozen=True)
class RoleAnchor:
    emoji: str
    title: str
    definition: str
    mission: str
    persistence: str
    helpful_means: str
    helpful_not_means: str
    additional_context: str = ""


@dataclass(frozen=True)
class BehavioralContract:
    must: tuple[str, ...]
    must_not: tuple[str, ...]
    priority_hierarchy: tuple[str, ...] = ()
    failure_mode: str = ""
    include_tool_usage: bool = True


@dataclass(frozen=True)
class OutputSection:
    header: str
    description: str


@dataclass(frozen=True)
class StructuralEnforcement:
    first_round: tuple[OutputSection, ...]
    subsequent_rounds: tuple[OutputSection, ...]
    first_round_label: str = "First Round"
    prefix: str = ""
    first_round_suffix: str = ""


@dataclass(frozen=True)
class VerificationLoop:
    checklist: tuple[str, ...]
    include_tool_checks: bool = True


@dataclass(frozen=True)
class ModePromptConfig:
    mode_name: str
    role_anchor: RoleAnchor
    contract: BehavioralContract
    structure: StructuralEnforcement
    verification: VerificationLoop
    focus_instructions: str = ""
    extras: dict = field(default_factory=dict)


def sections(*pairs: tuple[str, str]) -> tuple[OutputSection, ...]:
    """Build output sections from ``(header, description)`` pairs."""
    return tuple(OutputSection(header, description) for header, description in pairs)


def _banner(title: str) -> str:
    return f"\n{SEPARATOR}\n{title}\n{SEPARATOR}\n"


# =============================================================================
# Layers
# =============================================================================
def build_role_anchor(anchor: RoleAnchor) -> str:
    prompt = (
        _banner("LAYER 1: ROLE ANCHOR")
        + f"\n{anchor.emoji} {anchor.title} {anchor.emoji}\n\n"
        f"ROLE DEFINITION: {anchor.definition}\n"
        f"MISSION: {anchor.mission}\n"
        f"PERSISTENCE: {anchor.persistence}\n\n"
        f'In this mode, "being helpful" = "{anchor.helpful_means}"\n'
        f'NOT "{anchor.helpful_not_means}"\n'
    )
    if anchor.additional_context:
        prompt += f"\n{anchor.additional_context}\n"
    return prompt


def build_behavioral_contract(contract: BehavioralContract, mode: str | None = None) -> str:
    """Layer 2. With ``mode`` set, tool limits for its execution pattern are appended."""
    must = list(contract.must)
    must_not = list(contract.must_not)
    if contract.include_tool_usage:
        must.extend(TOOL_USAGE_MUST)
        must_not.extend(TOOL_USAGE_MUST_NOT)

    prompt = (
        _banner("LAYER 2: BEHAVIORAL CONTRACT")
        + "\nMUST (Required Behaviors):\n"
        + "\n".join(f"□ {b}" for b in must)
        + "\n\nMUST NOT (Prohibited Behaviors):\n"
        + "\n".join(f"✗ {b}" for b in must_not)
        + "\n"
    )

    if contract.priority_hierarchy:
        prompt += "\nPRIORITY HIERARCHY:\n"
        prompt += "\n".join(f"{i}. {p}" for i, p in enumerate(contract.priority_hierarchy, 1))
        prompt += "\n"

    prompt += f"\n⛔ FAILURE MODE: {contract.failure_mode}\n"

    if mode:
        policy = get_tool_policy(mode)
        if policy:
            prompt += (
                "\n📊 TOOL USAGE LIMITS:\n"
                f"- Minimum tool calls: {policy.min_calls}\n"
                f"- Maximum tool calls: {policy.max_calls}\n"
                f"- {policy.guidance}\n"
            )
        if is_sequential_mode(mode):
            prompt += tool_guidance_for_mode(mode)

    return prompt


def build_output_sections(output_sections: tuple[OutputSection, ...], label: str = "") -> str:
    heading = f"REQUIRED OUTPUT STRUCTURE ({label}):" if label else "REQUIRED OUTPUT STRUCTURE:"
    body = "".join(f"{s.header}\n({s.description})\n\n" for s in output_sections)
    return f"{heading}\n\n{body}"


def build_structural_enforcement(structure: StructuralEnforcement, context: DebateContext) -> str:
    """Layer 3. First-round sections apply when nobody has spoken yet."""
    first_round = not context.previous_responses
    prompt = _banner("LAYER 3: STRUCTURAL ENFORCEMENT") + "\n"
    if structure.prefix:
        prompt += f"{structure.prefix}\n"
    if first_round:
        prompt += build_output_sections(structure.first_round, structure.first_round_label)
        if structure.first_round_suffix:
            prompt += f"{structure.first_round_suffix}\n"
    else:
        prompt += build_output_sections(structure.subsequent_rounds)
    return prompt


def build_verification_loop(loop: VerificationLoop, mode: str | None = None) -> str:
    checks = list(loop.checklist)
    if loop.include_tool_checks:
        checks.extend(COMMON_TOOL_CHECKS)
    if mode:
        checks.extend(MODE_SPECIFIC_CHECKS.get(mode, ()))

    return (
        _banner("LAYER 4: VERIFICATION LOOP")
        + "\nBefore finalizing your response, verify:\n"
        + "\n".join(f"□ {c}" for c in checks)
        + "\n\nIf any check fails, revise before submitting.\n"
    )


def build_focus_question_section(context: DebateContext, instructions: str) -> str:
    if not context.focus_question:
        return ""
    return _banner(f"FOCUS QUESTION: {context.focus_question}") + f"\n{instructions}\n"


def build_mode_prompt(cfg: ModePromptConfig, context: DebateContext) -> str:
    """Assemble all four layers plus the focus question for ``context``."""
    return (
        f"\nMode: {cfg.mode_name}\n"
        + build_role_anchor(cfg.role_anchor)
        + build_behavioral_contract(cfg.contract, context.mode)
        + build_structural_enforcement(cfg.structure, context)
        + build_verification_loop(cfg.verification, context.mode)
        + build_focus_question_section(context, cfg.focus_instructions)
    )
