"""Tests for consensus parsing and the consensus analyzer."""

import json

import pytest
from conftest import FailingAgent, FakeAgent, make_response

from roundtable_mcp.agents.registry import ProviderRegistry
from roundtable_mcp.consensus.analyzer import ConsensusAnalyzer, build_analysis_prompt, format_positions
from roundtable_mcp.consensus.parsing import (
    MAX_LIST_ITEMS,
    STRATEGIES,
    neutral_result,
    parse_consensus,
    parse_regex,
    parse_repaired,
    parse_strict,
    parse_truncated,
)

TRUNCATED = '{"agreementLevel": 0.62, "clusters": [{"theme": "Test'


class TestParseStrategies:
    """Each decoding strategy in isolation."""

    def test_strategy_order(self):
        """Strategies run strict, repaired, truncated, regex."""
        assert STRATEGIES == [parse_strict, parse_repaired, parse_truncated, parse_regex]

    def test_strict_fenced_with_prose(self):
        """Markdown fences and leading prose are stripped."""
        raw = 'Here is my analysis:\n```json\n{"agreementLevel": 0.9, "summary": "Aligned"}\n```'
        result = parse_strict(raw, "judge")
        assert result is not None
        assert result.agreement_level == 0.9
        assert result.summary == "Aligned"
        assert result.analyzer_id == "judge"

    def test_strict_rejects_trailing_comma(self):
        """Strict parsing leaves repair to the next strategy."""
        assert parse_strict('{"agreementLevel": 0.4,}') is None

    def test_repaired_trailing_comma_and_bare_keys(self):
        """Trailing commas, unquoted keys and single quotes are repaired."""
        raw = "{agreementLevel: 0.4, 'summary': 'Split view', commonGround: ['cost',],}"
        result = parse_repaired(raw)
        assert result is not None
        assert result.agreement_level == 0.4
        assert result.summary == "Split view"
        assert result.common_ground == ["cost"]

    def test_repaired_strips_bom(self):
        """Byte-order marks and zero-width characters are removed."""
        raw = "\ufeff{\"agreementLevel\":\u200b 0.3, \"summary\": \"ok\",}"
        result = parse_repaired(raw)
        assert result is not None
        assert result.agreement_level == 0.3

    def test_repaired_missing_comma(self):
        """A missing comma between fields keeps every field."""
        raw = '{"agreementLevel": 0.7 "commonGround": ["shared"], "summary": "ok"}'
        result = parse_repaired(raw)
        assert result is not None
        assert result.agreement_level == 0.7
        assert result.common_ground == ["shared"]
        assert parse_consensus(raw).common_ground == ["shared"]

    def test_truncated_recovers_level(self):
        """A document cut off mid-cluster keeps agreementLevel."""
        result = parse_truncated(TRUNCATED)
        assert result is not None
        assert result.agreement_level == 0.62
        assert result.summary == "Partial analysis"
        assert result.reasoning == "Parsed from partial response"

    def test_truncated_drops_incomplete_cluster(self):
        """Clusters without agent ids are dropped."""
        result = parse_truncated(TRUNCATED)
        assert result.clusters is None

    def test_truncated_requires_level(self):
        """Without agreementLevel the prefix parse gives up."""
        assert parse_truncated('{"summary": "cut off') is None

    def test_regex_extraction(self):
        """Agreement level and summary are pulled out of broken text."""
        raw = 'garbage "agreementLevel": 0.75 more garbage "summary": "Mostly agree" }}}'
        result = parse_regex(raw)
        assert result is not None
        assert result.agreement_level == 0.75
        assert result.summary == "Mostly agree"

    def test_regex_rejects_out_of_range(self):
        """Out-of-range scores are not trusted."""
        assert parse_regex('"agreementLevel": 7') is None


class TestParseConsensus:
    """The full cascade."""

    def test_full_document(self):
        """Rich fields map onto the result."""
        raw = json.dumps(
            {
                "agreementLevel": 0.7,
                "clusters": [
                    {"theme": "Pro", "agentIds": ["a", "b"], "summary": "For"},
                    {"theme": "Empty", "agentIds": [], "summary": "Dropped"},
                ],
                "commonGround": ["x"],
                "disagreementPoints": ["y"],
                "nuances": {"partialAgreements": ["p"], "conditionalPositions": [], "uncertainties": []},
                "groupthinkWarning": {"detected": True, "indicators": ["all 95%"], "recommendation": "Add dissent"},
                "summary": "Mostly agree",
                "reasoning": "Because",
            }
        )
        result = parse_consensus(raw, "judge")

        assert result.agreement_level == 0.7
        assert [c.theme for c in result.clusters] == ["Pro"]
        assert result.nuances.partial_agreements == ["p"]
        assert result.groupthink_warning.indicators == ["all 95%"]
        assert result.reasoning == "Because"

    def test_level_clamped(self):
        """Numeric fields are clamped to [0, 1]."""
        assert parse_consensus('{"agreementLevel": 1.7}').agreement_level == 1.0
        assert parse_consensus('{"agreementLevel": -0.2}').agreement_level == 0.0

    def test_lists_capped(self):
        """List fields are capped."""
        raw = json.dumps({"agreementLevel": 0.5, "commonGround": [f"point {i}" for i in range(50)]})
        assert len(parse_consensus(raw).common_ground) == MAX_LIST_ITEMS

    def test_groupthink_requires_explicit_true(self):
        """detected=false yields no warning."""
        raw = json.dumps({"agreementLevel": 0.5, "groupthinkWarning": {"detected": False, "indicators": ["x"]}})
        assert parse_consensus(raw).groupthink_warning is None

    def test_truncated_fragment(self):
        """The cascade recovers a truncated fragment without raising."""
        assert parse_consensus(TRUNCATED).agreement_level == 0.62

    def test_plain_text_is_neutral(self):
        """Unrecognisable text gives the neutral default."""
        result = parse_consensus("I think they mostly agree, but it is hard to say.")
        assert result.agreement_level == 0.5
        assert result.common_ground == ["Unable to determine common ground"]

    def test_custom_strategies(self):
        """An explicit strategy list replaces the default chain."""
        result = parse_consensus('{"agreementLevel": 0.9}', strategies=[parse_regex])
        assert result.agreement_level == 0.9
        assert result.reasoning == "Parsed from partial/malformed response"

    def test_neutral_result_placeholder_summary(self):
        """The neutral default always carries a summary."""
        assert neutral_result().summary == "Analysis failed"


class TestConsensusAnalyzer:
    """Tests for ConsensusAnalyzer."""

    @pytest.mark.asyncio
    async def test_no_responses(self, registry):
        """Zero responses: level 0, empty lists, explanatory summary."""
        result = await ConsensusAnalyzer(registry).analyze_consensus([], "topic")
        assert result.agreement_level == 0.0
        assert result.common_ground == []
        assert result.disagreement_points == []
        assert result.summary

    @pytest.mark.asyncio
    async def test_single_response(self, registry):
        """One response is uncontested: level 1 and a single cluster."""
        result = await ConsensusAnalyzer(registry).analyze_consensus([make_response("alpha")], "topic")
        assert result.agreement_level == 1.0
        assert len(result.clusters) == 1
        assert result.clusters[0].agent_ids == ["alpha"]
        assert "uncontested" in result.summary

    @pytest.mark.asyncio
    async def test_model_backed(self, registry):
        """Two responses go through the first active agent."""
        analyzer = ConsensusAnalyzer(registry)
        responses = [make_response("alpha"), make_response("beta")]

        result = await analyzer.analyze_consensus(responses, "Testing")

        assert result.agreement_level == 0.8
        assert result.analyzer_id == "alpha"
        prompt = registry.get_agent("alpha").raw_prompts[0]
        assert "Testing" in prompt
        assert "alpha position" in prompt

    @pytest.mark.asyncio
    async def test_preferred_provider(self, registry):
        """A preferred provider's agent is chosen over earlier ones."""
        registry.add_agent(FakeAgent("judge", provider="special", raw_completion='{"agreementLevel": 0.1}'))
        analyzer = ConsensusAnalyzer(registry, preferred_provider="special")

        result = await analyzer.analyze_consensus([make_response("a"), make_response("b")], "t")

        assert result.analyzer_id == "judge"
        assert result.agreement_level == 0.1

    @pytest.mark.asyncio
    async def test_inactive_agents_skipped(self, registry):
        """Agents that failed health checks are not used."""
        registry.deactivate_agent("alpha", "down")
        result = await ConsensusAnalyzer(registry).analyze_consensus(
            [make_response("a"), make_response("b")], "t"
        )
        assert result.analyzer_id == "beta"

    @pytest.mark.asyncio
    async def test_backend_failure_is_neutral(self):
        """A failing analysis call degrades to the neutral result."""
        registry = ProviderRegistry()
        registry.add_agent(FailingAgent("broken"))

        result = await ConsensusAnalyzer(registry).analyze_consensus(
            [make_response("a"), make_response("b")], "t"
        )
        assert result.agreement_level == 0.5

    @pytest.mark.asyncio
    async def test_no_agents_is_neutral(self):
        """No agents at all degrades to the neutral result."""
        result = await ConsensusAnalyzer(ProviderRegistry()).analyze_consensus(
            [make_response("a"), make_response("b")], "t"
        )
        assert result.agreement_level == 0.5

    @pytest.mark.asyncio
    async def test_plain_text_answer(self, registry):
        """Prose from the model gives the neutral level."""
        registry.get_agent("alpha").raw_completion = "They broadly agree."
        result = await ConsensusAnalyzer(registry).analyze_consensus(
            [make_response("a"), make_response("b")], "t"
        )
        assert result.agreement_level == 0.5

    @pytest.mark.asyncio
    async def test_groupthink_excluded(self, registry):
        """Without groupthink detection the prompt omits it and no warning is returned."""
        judge = registry.get_agent("alpha")
        judge.raw_completion = json.dumps(
            {"agreementLevel": 0.9, "groupthinkWarning": {"detected": True, "indicators": ["all 95%"]}}
        )
        analyzer = ConsensusAnalyzer(registry)
        responses = [make_response("a"), make_response("b")]

        with_check = await analyzer.analyze_consensus(responses, "t")
        without = await analyzer.analyze_consensus(responses, "t", include_groupthink=False)

        assert with_check.groupthink_warning.indicators == ["all 95%"]
        assert "Groupthink Detection" in judge.raw_prompts[0]
        assert without.groupthink_warning is None
        assert without.agreement_level == 0.9
        assert "groupthinkWarning" not in judge.raw_prompts[1]
        assert "Groupthink Detection" not in judge.raw_prompts[1]

    def test_prompt_sections(self):
        """The groupthink schema and rules are added only on request."""
        responses = [make_response("a")]
        full = build_analysis_prompt(responses, "Topic")
        bare = build_analysis_prompt(responses, "Topic", include_groupthink=False)
        assert '"groupthinkWarning": {' in full
        assert "{{" not in full
        assert "groupthinkWarning" not in bare
        assert '"nuances": {' in bare

    def test_format_positions(self):
        """Positions are rendered with name, id and confidence percent."""
        text = format_positions([make_response("alpha", confidence=0.85)])
        assert "### Alpha (alpha)" in text
        assert "**Confidence:** 85%" in text


class TestDiagnostics:
    """Tests for ConsensusAnalyzer.get_diagnostics."""

    def test_no_providers(self):
        """Empty registry reports missing providers."""
        diag = ConsensusAnalyzer(ProviderRegistry()).get_diagnostics()
        assert diag["available"] is False
        assert "No providers registered" in diag["reason"]

    def test_no_agents(self, registry):
        """Providers without agents report missing agents."""
        registry.clear_agents()
        diag = ConsensusAnalyzer(registry).get_diagnostics()
        assert diag["available"] is False
        assert "No agents created" in diag["reason"]

    def test_all_unhealthy(self, registry):
        """All agents inactive reports health-check failure with errors."""
        for agent_id in registry.all_agent_ids():
            registry.deactivate_agent(agent_id, "quota exhausted")
        diag = ConsensusAnalyzer(registry).get_diagnostics()
        assert diag["available"] is False
        assert "All agents failed health checks" in diag["reason"]
        assert diag["inactive_agents"][0]["error"] == "quota exhausted"

    def test_preferred_unavailable(self, registry):
        """A missing preferred provider is reported but analysis stays available."""
        diag = ConsensusAnalyzer(registry, preferred_provider="gemini").get_diagnostics()
        assert diag["available"] is True
        assert "Preferred provider 'gemini' not available" in diag["reason"]
        assert diag["preferred_provider_available"] is False

    def test_healthy(self, registry):
        """Healthy registry has no reason."""
        diag = ConsensusAnalyzer(registry).get_diagnostics()
        assert diag["available"] is True
        assert diag["reason"] is None
        assert diag["provider_names"] == ["fake"]
        assert diag["total_agents"] == 3
        assert diag["active_agents"] == 3
