"""Tests for debate exit criteria."""

import pytest
from conftest import make_response

from roundtable_mcp.core.types import ConsensusResult, ExitReason
from roundtable_mcp.debate.exit_criteria import (
    ExitCriteria,
    check_exit_criteria,
    check_position_convergence,
    normalize_position,
    positions_similar,
    word_similarity,
)

CRITERIA = ExitCriteria(max_rounds=5)


def _round(*positions, confidence=0.6):
    return [
        make_response(agent_id, position=position, confidence=confidence)
        for agent_id, position in zip(["a", "b", "c"], positions)
    ]


class TestCheckExitCriteria:
    """Tests for check_exit_criteria."""

    def test_no_responses(self):
        """Nothing to evaluate never exits."""
        result = check_exit_criteria([], [], CRITERIA, 5)
        assert result.should_exit is False
        assert result.reason is None

    def test_consensus(self):
        """Agreement at the threshold exits with consensus."""
        result = check_exit_criteria(_round("x", "y"), [], CRITERIA, 1, ConsensusResult(agreement_level=0.9))
        assert result.should_exit is True
        assert result.reason == ExitReason.CONSENSUS
        assert result.details == "Consensus reached with 90.0% agreement (threshold: 90.0%)"

    def test_consensus_below_threshold(self):
        """Agreement just below the threshold keeps going."""
        result = check_exit_criteria(_round("x", "y"), [], CRITERIA, 1, ConsensusResult(agreement_level=0.89))
        assert result.should_exit is False
        assert result.details == "Continue debate: round 1/5"

    def test_single_response_not_consensus(self):
        """A lone response's automatic agreement does not end the debate."""
        result = check_exit_criteria(_round("x"), [], CRITERIA, 1, ConsensusResult(agreement_level=1.0))
        assert result.should_exit is False

    def test_convergence(self):
        """Positions unchanged over the last two transitions exit with convergence."""
        history = [_round("Adopt it", "Reject it"), _round("adopt it!", "Reject it")]
        result = check_exit_criteria(_round("Adopt it.", "reject it"), history, CRITERIA, 3)
        assert result.reason == ExitReason.CONVERGENCE
        assert "All 2 agents maintained stable positions" in result.details

    def test_convergence_needs_enough_rounds(self):
        """Two rounds are not enough for two stable transitions."""
        result = check_exit_criteria(_round("Same"), [_round("Same")], CRITERIA, 2)
        assert result.should_exit is False

    def test_confidence(self):
        """Every agent confident enough exits with confidence."""
        result = check_exit_criteria(_round("x", "y", confidence=0.85), [], CRITERIA, 1)
        assert result.reason == ExitReason.CONFIDENCE
        assert "avg: 85.0%" in result.details

    def test_confidence_needs_every_agent(self):
        """One hesitant agent keeps the debate going."""
        responses = [make_response("a", confidence=0.95), make_response("b", confidence=0.5)]
        assert check_exit_criteria(responses, [], CRITERIA, 1).should_exit is False

    def test_max_rounds(self):
        """The last planned round exits with max_rounds."""
        result = check_exit_criteria(_round("x", "y"), [], CRITERIA, 5)
        assert result.reason == ExitReason.MAX_ROUNDS
        assert result.details == "Maximum rounds reached (5/5)"

    def test_order(self):
        """Consensus wins over confidence and max rounds."""
        result = check_exit_criteria(
            _round("x", "y", confidence=0.99), [], CRITERIA, 5, ConsensusResult(agreement_level=0.95)
        )
        assert result.reason == ExitReason.CONSENSUS

    def test_to_dict(self):
        """Exit results serialise the reason by value."""
        result = check_exit_criteria(_round("x", "y"), [], CRITERIA, 5)
        assert result.to_dict()["reason"] == "max_rounds"


class TestConvergence:
    """Tests for check_position_convergence."""

    def test_changed_position(self):
        """One agent changing its mind blocks convergence."""
        rounds = [_round("Adopt", "Reject"), _round("Adopt", "Reject"), _round("Adopt", "Actually adopt now")]
        converged, summary = check_position_convergence(rounds, 2)
        assert converged is False
        assert summary == "1/2 agents still changing positions"

    def test_late_joiner_ignored(self):
        """Agents missing from a round are left out of the check."""
        rounds = [_round("Adopt"), _round("Adopt", "Reject"), _round("Adopt", "Something else")]
        converged, summary = check_position_convergence(rounds, 2)
        assert converged is True
        assert summary == "All 1 agents maintained stable positions"

    def test_only_recent_rounds_count(self):
        """Changes before the window do not matter."""
        rounds = [_round("Reject"), _round("Adopt"), _round("Adopt"), _round("Adopt")]
        assert check_position_convergence(rounds, 2)[0] is True

    def test_nobody_in_every_round(self):
        """No agent present throughout means no convergence."""
        rounds = [_round("Adopt"), [make_response("b")], [make_response("c")]]
        assert check_position_convergence(rounds, 2)[0] is False


class TestSimilarity:
    """Position comparison helpers."""

    def test_normalize(self):
        """Case, punctuation and spacing are ignored."""
        assert normalize_position("  We SHOULD adopt it -- now!  ") == "we should adopt it now"

    @pytest.mark.parametrize(
        ("a", "b", "expected"),
        [
            ("adopt four day week", "adopt four day week", 1.0),
            ("adopt the four day week", "adopt four day week now", 4 / 6),
            ("an it", "of to", 1.0),
            ("an it", "adopt", 0.0),
        ],
    )
    def test_word_similarity(self, a, b, expected):
        """Jaccard index over words longer than two characters."""
        assert word_similarity(a, b) == pytest.approx(expected)

    def test_similar_rewording(self):
        """A small rewording still counts as the same position."""
        assert positions_similar(
            "We should adopt a four day working week for all staff",
            "We should adopt a four day working week for staff",
        )

    def test_reversal_not_similar(self):
        """A changed conclusion is a different position."""
        assert not positions_similar("Adopt the four day week", "Keep the five day week")
