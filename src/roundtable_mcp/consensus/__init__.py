"""Consensus analysis over a round of responses."""

from .analyzer import ConsensusAnalyzer
from .parsing import STRATEGIES, neutral_result, parse_consensus

__all__ = ["ConsensusAnalyzer", "STRATEGIES", "neutral_result", "parse_consensus"]
