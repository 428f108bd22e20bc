"""Early-exit checks for multi-round debates.

Checked in order after each round:

1. Consensus: agreement level at or above the threshold
2. Convergence: every agent's position unchanged for N consecutive rounds
3. Confidence: every agent at or above the confidence threshold
4. Max rounds: the last planned round was played
"""

import re
from collections.abc import Sequence
from dataclasses import dataclass

from ..config import config
from ..core.types import AgentResponse, ConsensusResult, ExitReason, ExitResult

# Word overlap needed for two positions of the same agent to count as unchanged
POSITION_SIMILARITY_THRESHOLD = 0.7

_NON_WORD = re.compile(r"[^\w\s]")
_SPACES = re.compile(r"\s+")


@dataclass(frozen=True)
class ExitCriteria:
    """Thresholds for :func:`check_exit_criteria`."""

    max_rounds: int
    consensus_threshold: float = 0.9
    convergence_rounds: int = 2
    confidence_threshold: float = 0.85

    @classmethod
    def from_config(cls, max_rounds: int) -> "ExitCriteria":
        return cls(
            max_rounds=max_rounds,
            consensus_threshold=config.exit_consensus_threshold,
            convergence_rounds=config.exit_convergence_rounds,
            confidence_threshold=config.exit_confidence_threshold,
        )


def check_exit_criteria(
    responses: Sequence[AgentResponse],
    previous_rounds: Sequence[Sequence[AgentResponse]],
    criteria: ExitCriteria,
    current_round: int,
    consensus: ConsensusResult | None = None,
) -> ExitResult:
    """Decide whether the debate should stop after ``current_round``.

    Args:
        responses: Responses of the round just played
        previous_rounds: Responses of each earlier round, oldest first
        criteria: Thresholds to apply
        current_round: 1-based number of the round just played
        consensus: Consensus analysis of ``responses``, if available

    Returns:
        ExitResult with the first criterion met, or ``should_exit=False``
    """
    if not responses:
        return ExitResult(should_exit=False, details="No responses to evaluate")

    # A lone response is trivially in agreement with itself
    if (
        consensus is not None
        and len(responses) > 1
        and consensus.agreement_level >= criteria.consensus_threshold
    ):
        return ExitResult(
            should_exit=True,
            reason=ExitReason.CONSENSUS,
            details=(
                f"Consensus reached with {consensus.agreement_level * 100:.1f}% agreement "
                f"(threshold: {criteria.consensus_threshold * 100:.1f}%)"
            ),
        )

    rounds = [*previous_rounds, responses]
    converged, summary = check_position_convergence(rounds, criteria.convergence_rounds)
    if converged:
        return ExitResult(
            should_exit=True,
            reason=ExitReason.CONVERGENCE,
            details=f"Positions have stabilized for {criteria.convergence_rounds} consecutive rounds: {summary}",
        )

    if all(r.confidence >= criteria.confidence_threshold for r in responses):
        average = sum(r.confidence for r in responses) / len(responses)
        return ExitResult(
            should_exit=True,
            reason=ExitReason.CONFIDENCE,
            details=(
                f"All {len(responses)} agents are confident (avg: {average * 100:.1f}%, "
                f"threshold: {criteria.confidence_threshold * 100:.1f}%)"
            ),
        )

    if current_round >= criteria.max_rounds:
        return ExitResult(
            should_exit=True,
            reason=ExitReason.MAX_ROUNDS,
            details=f"Maximum rounds reached ({current_round}/{criteria.max_rounds})",
        )

    return ExitResult(should_exit=False, details=f"Continue debate: round {current_round}/{criteria.max_rounds}")


def check_position_convergence(
    rounds: Sequence[Sequence[AgentResponse]], convergence_rounds: int
) -> tuple[bool, str]:
    """Whether every agent kept its position over the last ``convergence_rounds`` transitions.

    Agents missing from any of those rounds are ignored. Returns the verdict
    and a one-line summary.
    """
    if len(rounds) < convergence_rounds + 1:
        return False, "not enough rounds"

    positions: dict[str, list[str]] = {}
    for round_responses in rounds[-(convergence_rounds + 1) :]:
        for response in round_responses:
            positions.setdefault(response.agent_id, []).append(response.position)

    counted = [history for history in positions.values() if len(history) >= convergence_rounds + 1]
    if not counted:
        return False, "no agent took part in every round"

    unstable = sum(
        1
        for history in counted
        if not all(positions_similar(a, b) for a, b in zip(history, history[1:]))
    )
    if unstable:
        return False, f"{unstable}/{len(counted)} agents still changing positions"
    return True, f"All {len(counted)} agents maintained stable positions"


def normalize_position(position: str) -> str:
    return _SPACES.sub(" ", _NON_WORD.sub(" ", position.lower())).strip()


def word_similarity(a: str, b: str) -> float:
    """Jaccard index over words longer than two characters."""
    words_a = {w for w in a.split(" ") if len(w) > 2}
    words_b = {w for w in b.split(" ") if len(w) > 2}
    if not words_a and not words_b:
        return 1.0
    if not words_a or not words_b:
        return 0.0
    return len(words_a & words_b) / len(words_a | words_b)


def positions_similar(a: str, b: str) -> bool:
    norm_a, norm_b = normalize_position(a), normalize_position(b)
    if norm_a == norm_b:
        return True
    return word_similarity(norm_a, norm_b) >= POSITION_SIMILARITY_THRESHOLD
