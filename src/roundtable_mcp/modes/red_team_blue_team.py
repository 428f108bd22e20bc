"""Red team / blue team mode.

Even-indexed agents attack, odd-indexed agents defend. Both teams run in
parallel; from the second round on each side is shown every response the
other team has given in earlier rounds.
"""

from enum import StrEnum

from ..core.types import AgentResponse, DebateContext, DebateMode
from .prompt_builder import BehavioralContract, RoleAnchor, VerificationLoop, sections
from .role_based import RoleBasedModeStrategy, RoleConfig
from .tool_policy import ExecutionPattern


class Team(StrEnum):
    RED = "red"
    BLUE = "blue"


TEAM_CONFIGS: dict[str, RoleConfig] = {
    Team.RED: RoleConfig(
        anchor=RoleAnchor(
            emoji="🔴",
            title="YOU ARE RED TEAM - THE ATTACKER",
            definition="You exist to ATTACK, CRITICIZE, and BREAK things.",
            mission="Find every vulnerability, risk, and failure mode.",
            persistence="Stay in attack mode until explicitly released.",
            helpful_means="finding more problems",
            helpful_not_means='proposing solutions" or "being constructive',
            additional_context="You are the adversary. You are the skeptic. You are the critic.",
        ),
        contract=BehavioralContract(
            must=(
                "Identify at least 5 risks, vulnerabilities, or problems",
                "Challenge every assumption - nothing is sacred",
                "Explore attack vectors and exploit scenarios",
                "Highlight hidden costs and trade-offs",
                "Find edge cases and failure modes",
            ),
            must_not=(
                "Propose solutions or mitigations (that's Blue Team's job)",
                "Acknowledge strengths without finding weaknesses",
                "Be constructive or optimistic",
                'Say "but it could work if..."',
                "Soften criticism with qualifications",
            ),
            priority_hierarchy=(
                "Finding problems > Being fair",
                "Attack stance > Balanced view",
                "Risks identified > Solutions proposed",
            ),
            failure_mode=(
                "If you propose ANY solution or mitigation, you have failed. "
                "Red Team ATTACKS, never DEFENDS."
            ),
        ),
        verification=VerificationLoop(
            checklist=(
                "Did I identify at least 5 distinct problems?",
                "Did I AVOID proposing any solutions?",
                "Is my tone critical, not constructive?",
                "Does the structure match the required format?",
            ),
        ),
        output_sections=sections(
            ("[CRITICAL VULNERABILITIES]", "3+ specific security/design flaws"),
            ("[ATTACK VECTORS]", "How an adversary could exploit this"),
            ("[FAILURE MODES]", "What could go wrong, edge cases"),
            ("[HIDDEN COSTS]", "Trade-offs and risks not mentioned"),
            ("[ASSUMPTIONS TO CHALLENGE]", "Premises that may be false"),
        ),
        display_name="RED TEAM (Attacker)",
    ),
    Team.BLUE: RoleConfig(
        anchor=RoleAnchor(
            emoji="🔵",
            title="YOU ARE BLUE TEAM - THE DEFENDER",
            definition="You exist to BUILD, DEFEND, and SOLVE.",
            mission="Propose robust solutions and defend against attacks.",
            persistence="Stay in builder/defender mode until explicitly released.",
            helpful_means="building stronger defenses",
            helpful_not_means='acknowledging problems" or "agreeing with criticism',
            additional_context="You are the builder. You are the defender. You are the problem-solver.",
        ),
        contract=BehavioralContract(
            must=(
                "Propose at least 3 concrete solutions or mitigations",
                "Address EVERY attack from Red Team specifically",
                "Demonstrate resilience - show why attacks fail",
                "Provide evidence that defenses work",
                "Build layered defenses (defense in depth)",
            ),
            must_not=(
                "Concede that attacks are valid without defending",
                "Acknowledge problems without proposing solutions",
                "Be pessimistic or highlight remaining risks (that's Red Team's job)",
                "Say \"that's a good point\" without a counter",
                "Leave any Red Team attack unanswered",
            ),
            priority_hierarchy=(
                "Building solutions > Acknowledging problems",
                "Defense stance > Balanced view",
                "Solutions proposed > Risks accepted",
            ),
            failure_mode=(
                "If you concede ANY attack without defense, you have failed. "
                "Blue Team DEFENDS, never CONCEDES."
            ),
        ),
        verification=VerificationLoop(
            checklist=(
                "Did I propose at least 3 concrete solutions?",
                "Did I address every Red Team attack?",
                "Did I AVOID conceding without defense?",
                "Does the structure match the required format?",
            ),
        ),
        output_sections=sections(
            ("[PROPOSED SOLUTIONS]", "3+ concrete approaches to the problem"),
            ("[DEFENSE AGAINST ATTACKS]", "Specific rebuttals to each Red Team criticism"),
            ("[SAFEGUARDS & MITIGATIONS]", "How risks are addressed and managed"),
            ("[RESILIENCE DEMONSTRATION]", "Why this approach survives attacks"),
            ("[POSITIVE OUTCOMES]", "Benefits and success criteria"),
        ),
        display_name="BLUE TEAM (Defender)",
    ),
}

CROSS_TEAM_BRIEFING = {
    Team.RED: (
        "BLUE TEAM HAS PROPOSED SOLUTIONS. YOUR JOB: BREAK THEM.\n"
        "- Find holes in their defenses\n"
        "- Identify what they missed\n"
        "- Show how their mitigations fail"
    ),
    Team.BLUE: (
        "RED TEAM HAS ATTACKED. YOUR JOB: DEFEND AND BUILD.\n"
        "- Counter every attack with a defense\n"
        "- Propose solutions for identified risks\n"
        "- Show why their attacks fail or can be mitigated"
    ),
}

FOCUS_INSTRUCTIONS = {
    Team.RED: "Attack this question. What are ALL the risks and problems?",
    Team.BLUE: "Solve this. Propose robust solutions that withstand attacks.",
}


def team_for_index(index: int) -> Team:
    return Team.RED if index % 2 == 0 else Team.BLUE


def team_of(response: AgentResponse, position: int) -> Team:
    """Team that produced ``response``; falls back to list position parity."""
    if response.role in (Team.RED, Team.BLUE):
        return Team(response.role)
    return team_for_index(position)


def opposing_responses(responses, team: Team) -> list[AgentResponse]:
    return [r for i, r in enumerate(responses) if team_of(r, i) != team]


class RedTeamBlueTeamMode(RoleBasedModeStrategy):
    name = DebateMode.RED_TEAM_BLUE_TEAM
    execution_pattern = ExecutionPattern.PARALLEL
    needs_groupthink_detection = False
    role_configs = TEAM_CONFIGS

    def get_role_for_index(self, index: int, total: int) -> str:
        return team_for_index(index)

    def build_base_prompt(self, context: DebateContext) -> str:
        return (
            "\nMode: Red Team / Blue Team\n\n"
            "Participants are split into two teams. RED TEAM attacks the topic and finds every "
            "weakness. BLUE TEAM proposes solutions and defends them."
        )

    def build_role_context_addition(self, context: DebateContext, role: str) -> str:
        team = Team(role)
        addition = ""
        others = opposing_responses(context.previous_responses, team)
        if others:
            addition += f"\n{CROSS_TEAM_BRIEFING[team]}\n\nOPPOSING TEAM ARGUMENTS:\n"
            addition += "\n".join(f"- {r.agent_name}: {r.position}" for r in others)
            addition += "\n"
        if context.focus_question:
            addition += f"\nFOCUS: {context.focus_question}\n{FOCUS_INSTRUCTIONS[team]}\n"
        return addition
