"""Devil's advocate mode.

The first agent argues YES, the second is assigned NO, and every further
agent evaluates both sides. Agents speak in order so the opposition can
answer the primary position within the same round.
"""

from enum import StrEnum

from ..core.types import DebateContext, DebateMode, Stance
from .prompt_builder import BehavioralContract, RoleAnchor, VerificationLoop
from .role_based import RoleBasedModeStrategy, RoleConfig
from .tool_policy import ExecutionPattern


class DevilsAdvocateRole(StrEnum):
    PRIMARY = "PRIMARY"
    OPPOSITION = "OPPOSITION"
    EVALUATOR = "EVALUATOR"


_OPPOSITION_CONTEXT = """
YOUR SUCCESS CRITERIA:
- Present compelling counter-arguments that force the other side to strengthen their case
- Identify weaknesses, assumptions, and blind spots in the YES position
- Provide evidence-based rebuttals that must be addressed
- Maintain intellectual rigor while arguing the assigned NO position

ROLE BOUNDARIES:
This is a structured debate exercise. Your assigned stance (NO) takes precedence over personal views.
Think of yourself as a skilled debate coach arguing the opposite side to improve the overall discussion.

ETHICAL EXCEPTION:
If the topic itself promotes harm (violence, discrimination, abuse), you may decline the opposition role
and instead explain why the topic is unsuitable for devil's advocate debate."""

DEVILS_ADVOCATE_ROLES: dict[str, RoleConfig] = {
    DevilsAdvocateRole.PRIMARY: RoleConfig(
        anchor=RoleAnchor(
            emoji="📢",
            title="YOU ARE THE PRIMARY POSITION HOLDER - AFFIRMATIVE STANCE",
            definition="You present the AFFIRMATIVE/YES/PRO position to be challenged.",
            mission="Argue IN FAVOR of the topic proposition with conviction and evidence.",
            persistence=(
                "Maintain your affirmative stance throughout - the devil's advocate will oppose you."
            ),
            helpful_means="presenting a strong AFFIRMATIVE position",
            helpful_not_means='being balanced" or "being neutral" or "showing both sides',
        ),
        contract=BehavioralContract(
            must=(
                'Set "stance": "YES" in your JSON response (MANDATORY)',
                "Argue that the proposition IS true/worth it/should be done",
                "Present 3 strong supporting arguments with evidence",
                "Be confident and assertive in your position",
            ),
            must_not=(
                'Set stance to "NO" or "NEUTRAL" (you MUST use "YES")',
                "Argue AGAINST the topic proposition",
                "Use hedging language or acknowledge opposing views",
                'Present multiple positions or "both sides"',
            ),
            failure_mode='If your stance is not "YES", you have FAILED your role.',
        ),
        verification=VerificationLoop(
            checklist=(
                'stance is exactly "YES"',
                "position argues IN FAVOR of the topic",
                "reasoning contains supporting arguments only",
                "No hedging or balanced language",
            ),
        ),
        expected_stance=Stance.YES,
        display_name="PRIMARY (Affirmative)",
    ),
    DevilsAdvocateRole.OPPOSITION: RoleConfig(
        anchor=RoleAnchor(
            emoji="😈",
            title="DEVIL'S ADVOCATE - YOUR ASSIGNED STANCE IS NO",
            definition="You are the designated opposition in this structured debate exercise.",
            mission=(
                "Present the strongest possible case AGAINST the topic proposition. This is a "
                "debate role assignment, like being assigned the negative side in a debate competition."
            ),
            persistence=(
                "Maintain your NO stance throughout. Your role is to ensure the topic is "
                "thoroughly stress-tested."
            ),
            helpful_means="building the strongest counter-arguments to challenge the proposition",
            helpful_not_means="sharing your personal agreement with the topic",
            additional_context=_OPPOSITION_CONTEXT,
        ),
        contract=BehavioralContract(
            must=(
                'Set "stance": "NO" in your JSON response (required for role)',
                "Argue AGAINST the topic proposition with evidence and reasoning",
                "Present 3 compelling reasons why the answer should be NO",
                "Challenge assumptions and identify potential risks/downsides",
            ),
            must_not=(
                'Set stance to "YES" or "NEUTRAL" (breaks the debate structure)',
                "Express personal agreement with the topic",
                "Validate or support the YES position",
            ),
            priority_hierarchy=(
                "Debate role (NO) takes precedence over personal views",
                "Quality of counter-arguments over expressing true beliefs",
                "Stress-testing the topic over being agreeable",
            ),
            failure_mode=(
                "Role boundaries are strictly enforced for debate quality. Your response must argue NO."
            ),
        ),
        verification=VerificationLoop(
            checklist=(
                'stance is set to "NO" (my assigned role)',
                "position presents counter-arguments AGAINST the topic",
                "reasoning challenges the proposition with evidence",
                "I am arguing my assigned debate position, not personal views",
            ),
        ),
        expected_stance=Stance.NO,
        display_name="OPPOSITION (Devil's Advocate)",
    ),
    DevilsAdvocateRole.EVALUATOR: RoleConfig(
        anchor=RoleAnchor(
            emoji="⚖️",
            title="YOU ARE THE NEUTRAL EVALUATOR",
            definition="You objectively assess both positions.",
            mission="Identify which arguments are stronger and why.",
            persistence="Stay neutral - do not take sides unless evidence demands it.",
            helpful_means="rigorous, evidence-based evaluation",
            helpful_not_means='being nice to both sides" or "avoiding judgment',
        ),
        contract=BehavioralContract(
            must=(
                'Set "stance": "NEUTRAL" in your JSON response (MANDATORY)',
                "Evaluate both positions fairly",
                "Identify strongest and weakest arguments on each side",
                "Make a judgment call on which position is stronger",
                "Explain your reasoning with specific references",
            ),
            must_not=(
                'Set stance to "YES" or "NO" (you MUST use "NEUTRAL")',
                'Refuse to judge ("both have merit" without analysis)',
                "Add your own position (evaluate, don't argue)",
                "Be swayed by confident language over evidence",
            ),
            failure_mode='If your stance is not "NEUTRAL", you have FAILED your role.',
        ),
        verification=VerificationLoop(
            checklist=(
                'stance is exactly "NEUTRAL"',
                "Both positions were analyzed",
                "A clear judgment was made",
                "Evaluation is evidence-based, not diplomatic",
            ),
        ),
        expected_stance=Stance.NEUTRAL,
        display_name="EVALUATOR",
    ),
}

_ROUND_GUIDANCE = {
    DevilsAdvocateRole.PRIMARY: "Strengthen your position based on prior exchanges.",
    DevilsAdvocateRole.OPPOSITION: (
        "Introduce NEW counter-arguments. Attack weaknesses revealed in prior rounds."
    ),
    DevilsAdvocateRole.EVALUATOR: (
        "Assess how both positions evolved. Note which arguments survived the challenges."
    ),
}


class DevilsAdvocateMode(RoleBasedModeStrategy):
    name = DebateMode.DEVILS_ADVOCATE
    execution_pattern = ExecutionPattern.SEQUENTIAL
    role_configs = DEVILS_ADVOCATE_ROLES

    def get_role_for_index(self, index: int, total: int) -> str:
        if index == 0:
            return DevilsAdvocateRole.PRIMARY
        if index == 1:
            return DevilsAdvocateRole.OPPOSITION
        return DevilsAdvocateRole.EVALUATOR

    def build_base_prompt(self, context: DebateContext) -> str:
        return (
            "\nMode: Devil's Advocate\n\n"
            "This is a structured debate with assigned roles. The PRIMARY speaker argues YES, "
            "the OPPOSITION argues NO, and EVALUATORS judge which side argued better.\n"
            "Your JSON response MUST include the stance your role requires."
        )

    def build_role_context_addition(self, context: DebateContext, role: str) -> str:
        addition = ""
        if context.current_round > 1:
            addition += f"\nROUND {context.current_round} CONTEXT:\n{_ROUND_GUIDANCE[role]}\n"
        if context.focus_question:
            addition += f"\nFOCUS: {context.focus_question}\n"
        return addition
