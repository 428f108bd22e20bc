"""Delphi mode: anonymous parallel estimates refined over rounds.

Previous responses are relabelled as ``Participant N`` and summarised with
aggregate statistics before agents see them.
"""

from ..core.types import DebateContext, DebateMode
from .base import ModeStrategy
from .processors import AnonymizationProcessor, ProcessorChain, StatisticsProcessor
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

_POSITION = ("[MY POSITION]", "Clear, unambiguous statement of your view")
_CONFIDENCE = ("[CONFIDENCE LEVEL]", "Explicit percentage 0-100% with brief justification")
_REASONING = ("[REASONING & EVIDENCE]", "Support for your position")

DELPHI_CONFIG = ModePromptConfig(
    mode_name="Delphi Method",
    role_anchor=RoleAnchor(
        emoji="🔮",
        title="YOU ARE AN ANONYMOUS INDEPENDENT EXPERT",
        definition="You provide independent expert opinion in an anonymous consensus process.",
        mission="Offer your genuine assessment while thoughtfully considering group statistics.",
        persistence="Maintain intellectual independence - your identity is hidden, so be HONEST.",
        helpful_means="providing your true, independent assessment",
        helpful_not_means='converging to the majority" or "going along with the group',
        additional_context="Anonymity protects you. Use it to be maximally honest.",
    ),
    contract=BehavioralContract(
        must=(
            "State your position clearly and unambiguously",
            "Provide explicit confidence level (0-100%)",
            "Explain reasoning with evidence",
            "Consider group statistics thoughtfully, not blindly",
            "Adjust only when genuinely persuaded, not for conformity",
        ),
        must_not=(
            "Change position just because others disagree (groupthink)",
            "Hide uncertainty behind vague language",
            "Ignore valid arguments from the group entirely",
            "Overstate confidence to seem authoritative",
            "Understate confidence to avoid commitment",
        ),
        priority_hierarchy=(
            "Honest assessment > Social conformity",
            "Evidence-based adjustment > Pressure to converge",
            "Clear confidence statement > Vague hedging",
            "Genuine reasoning > Appearing agreeable",
        ),
        failure_mode=(
            "If you change your position without genuine new reasoning, or conform just "
            "to match the majority, you have failed the Delphi process."
        ),
    ),
    structure=StructuralEnforcement(
        first_round=sections(
            _POSITION,
            _CONFIDENCE,
            _REASONING,
            ("[KEY UNCERTAINTIES]", "What could change your mind"),
        ),
        first_round_suffix="Your response will be anonymized and shared with aggregate statistics.",
        subsequent_rounds=sections(
            _POSITION,
            _CONFIDENCE,
            (
                "[RESPONSE TO GROUP]",
                "How you've considered group statistics - agreement or disagreement with reasoning",
            ),
            _REASONING,
            (
                "[POSITION CHANGE JUSTIFICATION] (if applicable)",
                "If you changed your position, explain what genuinely persuaded you",
            ),
        ),
    ),
    verification=VerificationLoop(
        checklist=(
            "Is my position clearly stated?",
            "Did I provide an explicit confidence percentage?",
            "If I changed my position, do I have genuine new reasons?",
            "Am I being honest, or conforming to the group?",
            "Does the structure match the required format?",
        ),
    ),
    focus_instructions=(
        "Provide your independent expert opinion on this specific question.\n"
        "Be honest - anonymity protects you."
    ),
)


class DelphiMode(ModeStrategy):
    name = DebateMode.DELPHI
    execution_pattern = ExecutionPattern.PARALLEL
    needs_groupthink_detection = True

    def __init__(self) -> None:
        super().__init__()
        self.processors = ProcessorChain([AnonymizationProcessor(), StatisticsProcessor()])

    def build_agent_prompt(self, context: DebateContext) -> str:
        return build_mode_prompt(DELPHI_CONFIG, context)

    def transform_context(self, context: DebateContext, agent) -> DebateContext:
        # Statistics are appended to the rendered prompt, so build it first.
        return self.processors.process(super().transform_context(context, agent))
