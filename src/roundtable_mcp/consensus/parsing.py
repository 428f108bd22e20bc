"""Decode the analyzer model's judgement into a ConsensusResult.

Each strategy takes the raw text and returns a result or ``None``. They are
tried in :data:`STRATEGIES` order; :func:`parse_consensus` falls back to a
neutral result when all of them give up.
"""

import logging
import re
from collections.abc import Callable
from typing import Any

from ..core.json_utils import (
    balanced_span,
    extract_json_object,
    loads_repaired,
    parse_partial_json,
    strip_code_fences,
)
from ..core.types import ConsensusCluster, ConsensusNuances, ConsensusResult, GroupthinkWarning, clamp_unit

logger = logging.getLogger(__name__)

MAX_LIST_ITEMS = 20

_LEVEL_PATTERN = re.compile(r'"agreementLevel"\s*:\s*([\d.]+)')
_SUMMARY_PATTERN = re.compile(r'"summary"\s*:\s*"([^"]+)')

# (text, analyzer_id) -> result or None
ParseStrategy = Callable[[str, str | None], ConsensusResult | None]


# =============================================================================
# Field sanitation
# =============================================================================
def _number(value: Any) -> float | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return None if value != value else float(value)
    if isinstance(value, str):
        try:
            return float(value)
        except ValueError:
            return None
    return None


def _strings(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str) and item][:MAX_LIST_ITEMS]


def _clusters(value: Any) -> list[ConsensusCluster] | None:
    if not isinstance(value, list):
        return None
    clusters = []
    for item in value:
        if not isinstance(item, dict):
            continue
        agent_ids = _strings(item.get("agentIds"))
        if not agent_ids:
            continue
        clusters.append(
            ConsensusCluster(
                theme=str(item.get("theme") or "Unknown"),
                agent_ids=agent_ids,
                summary=str(item.get("summary") or ""),
            )
        )
    return clusters or None


def _nuances(value: Any) -> ConsensusNuances | None:
    if not isinstance(value, dict):
        return None
    nuances = ConsensusNuances(
        partial_agreements=_strings(value.get("partialAgreements")),
        conditional_positions=_strings(value.get("conditionalPositions")),
        uncertainties=_strings(value.get("uncertainties")),
    )
    if nuances.partial_agreements or nuances.conditional_positions or nuances.uncertainties:
        return nuances
    return None


def _groupthink(value: Any) -> GroupthinkWarning | None:
    """Only an explicit ``detected: true`` produces a warning."""
    if not isinstance(value, dict) or value.get("detected") is not True:
        return None
    indicators = value.get("indicators")
    recommendation = value.get("recommendation")
    return GroupthinkWarning(
        detected=True,
        indicators=[i for i in indicators if isinstance(i, str)] if isinstance(indicators, list) else [],
        recommendation=recommendation if isinstance(recommendation, str) else "",
    )


def result_from_json(
    parsed: dict,
    analyzer_id: str | None,
    *,
    level: float | None = None,
    default_summary: str = "Analysis complete",
    default_reasoning: str = "",
) -> ConsensusResult:
    """Map the model's camelCase document onto a ConsensusResult."""
    if level is None:
        level = _number(parsed.get("agreementLevel"))
    return ConsensusResult(
        agreement_level=clamp_unit(level if level is not None else 0.5),
        common_ground=_strings(parsed.get("commonGround")),
        disagreement_points=_strings(parsed.get("disagreementPoints")),
        summary=str(parsed.get("summary") or default_summary),
        clusters=_clusters(parsed.get("clusters")),
        nuances=_nuances(parsed.get("nuances")),
        groupthink_warning=_groupthink(parsed.get("groupthinkWarning")),
        reasoning=str(parsed.get("reasoning") or default_reasoning),
        analyzer_id=analyzer_id,
    )


# =============================================================================
# Strategies
# =============================================================================
def parse_strict(text: str, analyzer_id: str | None = None) -> ConsensusResult | None:
    """Fenced or prose-prefixed but otherwise valid JSON."""
    parsed = extract_json_object(strip_code_fences(text))
    return result_from_json(parsed, analyzer_id) if parsed is not None else None


def parse_repaired(text: str, analyzer_id: str | None = None) -> ConsensusResult | None:
    """Trailing commas, bare keys, single quotes, missing commas, invisible characters."""
    span = balanced_span(strip_code_fences(text))
    if span is None:
        return None
    parsed = loads_repaired(span)
    return result_from_json(parsed, analyzer_id) if parsed is not None else None


def parse_truncated(text: str, analyzer_id: str | None = None) -> ConsensusResult | None:
    """A document cut off mid-stream. ``agreementLevel`` must have survived."""
    parsed = parse_partial_json(strip_code_fences(text))
    if parsed is None:
        return None
    level = _number(parsed.get("agreementLevel"))
    if level is None:
        return None
    logger.info(f"Recovered truncated consensus response (agreementLevel={level})")
    return result_from_json(
        parsed,
        analyzer_id,
        level=level,
        default_summary="Partial analysis",
        default_reasoning="Parsed from partial response",
    )


def extract_agreement_level(text: str) -> float | None:
    match = _LEVEL_PATTERN.search(text)
    if not match:
        return None
    try:
        value = float(match.group(1))
    except ValueError:
        return None
    return value if 0.0 <= value <= 1.0 else None


def extract_summary(text: str) -> str | None:
    match = _SUMMARY_PATTERN.search(text)
    return match.group(1) if match else None


def parse_regex(text: str, analyzer_id: str | None = None) -> ConsensusResult | None:
    """Pull ``agreementLevel`` (and ``summary`` if present) out of unparseable text."""
    level = extract_agreement_level(text)
    if level is None:
        return None
    return ConsensusResult(
        agreement_level=level,
        summary=extract_summary(text) or text.strip() or "Analysis failed",
        reasoning="Parsed from partial/malformed response",
        analyzer_id=analyzer_id,
    )


STRATEGIES: list[ParseStrategy] = [parse_strict, parse_repaired, parse_truncated, parse_regex]


def neutral_result(raw: str = "", analyzer_id: str | None = None) -> ConsensusResult:
    return ConsensusResult(
        agreement_level=0.5,
        common_ground=["Unable to determine common ground"],
        disagreement_points=[],
        summary=extract_summary(raw) or raw.strip() or "Analysis failed",
        reasoning="Parsed from partial/malformed response",
        analyzer_id=analyzer_id,
    )


def parse_consensus(
    raw: str,
    analyzer_id: str | None = None,
    strategies: list[ParseStrategy] | None = None,
) -> ConsensusResult:
    """Run ``strategies`` in order and return the first success."""
    for strategy in strategies or STRATEGIES:
        result = strategy(raw, analyzer_id)
        if result is not None:
            logger.debug(f"Consensus decoded by {strategy.__name__}")
            return result

    logger.warning(
        f"All consensus parsing strategies failed ({len(raw)} chars): {raw[:500]!r}"
    )
    return neutral_result(raw, analyzer_id)
