"""Synthesis stage tests: failure-mode catalog/merge, risk rules, comparables."""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import asyncio

from conftest import FakeClient
from premortem.pipeline.prompts import FAILURE_PATTERNS_PROMPT
from premortem.pipeline.retrieve import RetrievalResult
from premortem.pipeline.synthesize import (
    catalog_failure_modes,
    categorize_comparables,
    compliance_cost_level,
    identify_distribution_challenges,
    identify_market_risks,
    identify_regulatory_risks,
    identify_timing_risks,
    merge_failure_modes,
    synthesize_patterns,
)
from premortem.schemas.evidence_schema import CompetitorData, MarketData, RegulatoryData
from premortem.schemas.report_schema import Citation, FailureMode, IdeaDecomposition, RiskLevel

SAAS = IdeaDecomposition(
    value_proposition="Invoicing tool for freelancers",
    target_market="General consumers",
    business_model="Subscription-based SaaS",
)


def _competitors(n, status="Active", description="Invoicing software"):
    return [CompetitorData(name=f"Company {i}", description=description, status=status) for i in range(n)]


def _mode(name, probability=50):
    return FailureMode(id=name, name=name, description="d", probability=probability, timeframe="1-2 years")


class TestFailureModes:
    def test_saas_catalog(self):
        modes = catalog_failure_modes("Subscription-based SaaS")
        assert [m.name for m in modes] == ["Churn Death Spiral", "CAC Blowout", "Premature Scaling"]
        assert [m.probability for m in modes] == [60, 55, 50]

    def test_marketplace_catalog(self):
        modes = catalog_failure_modes("Marketplace with transaction fees")

        assert modes[0].name == "Chicken-and-Egg Problem"
        assert modes[0].probability == 70
        assert modes[0].timeframe == "6-18 months"
        assert modes[0].mitigations[0] == "Focus on one side first"

    def test_premature_scaling_always_applies(self):
        assert [m.name for m in catalog_failure_modes("")] == ["Premature Scaling"]

    def test_merge_keeps_first_seen_name_case_insensitively(self):
        parsed = [_mode("churn death spiral", 80)]
        merged = merge_failure_modes(parsed, catalog_failure_modes("saas"))

        assert [m.name for m in merged] == ["churn death spiral", "CAC Blowout", "Premature Scaling"]
        assert merged[0].probability == 80

    def test_merge_caps_at_seven(self):
        merged = merge_failure_modes([_mode(f"Pattern {i}") for i in range(5)], catalog_failure_modes("saas app"))
        assert len(merged) == 7


class TestRisks:
    def test_saturation_levels(self):
        elevated = identify_market_risks(MarketData(size="$5 billion"), _competitors(6))
        critical = identify_market_risks(MarketData(size="$5 billion"), _competitors(11))

        assert [(r.title, r.level) for r in elevated] == [("High Market Saturation", RiskLevel.ELEVATED)]
        assert critical[0].level == RiskLevel.CRITICAL
        assert critical[0].evidence == ["11 competitors found"]
        assert critical[0].category == "Competition"

    def test_no_saturation_at_five_competitors(self):
        assert identify_market_risks(MarketData(size="$5 billion"), _competitors(5)) == []

    def test_prior_failures(self):
        competitors = _competitors(3, status="Shut down")
        risks = identify_market_risks(MarketData(size="$5 billion"), competitors)

        assert risks[0].title == "Prior Market Failures"
        assert risks[0].level == RiskLevel.CRITICAL
        assert risks[0].evidence[0] == "Company 0 - Shut down"

    def test_limited_market_size(self):
        for size in ("Unknown", "Not determined", "$300 million", "$40M"):
            risks = identify_market_risks(MarketData(size=size), [])
            assert [r.title for r in risks] == ["Limited Market Size"], size
            assert risks[0].level == RiskLevel.MODERATE

        assert identify_market_risks(MarketData(size="$2.1 billion"), []) == []

    def test_timing_risks(self):
        ai_idea = IdeaDecomposition(value_proposition="An LLM copilot for lawyers")
        mature = MarketData(trends=["The market is mature and consolidating"])

        risks = identify_timing_risks(ai_idea, mature)

        assert [r.title for r in risks] == ["AI Hype Cycle Risk", "Late Market Entry"]
        assert risks[1].evidence == ["The market is mature and consolidating"]
        assert identify_timing_risks(SAAS, MarketData(trends=["Growing fast"])) == []

    def test_compliance_cost_level(self):
        assert compliance_cost_level("$20,000 - $80,000") == RiskLevel.ELEVATED
        assert compliance_cost_level("$10,000") == RiskLevel.MODERATE
        assert compliance_cost_level("60000 annually") == RiskLevel.MODERATE
        assert compliance_cost_level("Variable") == RiskLevel.MODERATE

    def test_regulatory_risks(self):
        risks = identify_regulatory_risks([
            RegulatoryData(regulation="GDPR", jurisdiction="European Union", impact="x" * 300,
                           compliance_cost="$100,000"),
        ])

        assert risks[0].title == "GDPR Compliance Required"
        assert risks[0].description == "European Union: " + "x" * 150
        assert risks[0].level == RiskLevel.ELEVATED
        assert risks[0].evidence == ["Compliance cost: $100,000"]
        assert risks[0].historical_prevalence == 30


class TestDistributionChallenges:
    def test_enterprise_app_and_platform(self):
        decomposition = IdeaDecomposition(target_market="B2B / Enterprise customers", business_model="Consumer app")
        competitors = _competitors(1, description="A payments platform for creators")

        challenges = identify_distribution_challenges(decomposition, competitors)

        assert [(c.title, c.severity) for c in challenges] == [
            ("Enterprise Sales Cycle", RiskLevel.ELEVATED),
            ("App Store Discovery", RiskLevel.CRITICAL),
            ("Platform Dependency Risk", RiskLevel.ELEVATED),
        ]
        assert all(c.type == "distribution" for c in challenges)

    def test_marketplace_without_keywords_has_none(self):
        decomposition = IdeaDecomposition(
            target_market="General consumers", business_model="Marketplace with transaction fees"
        )
        assert identify_distribution_challenges(decomposition, _competitors(2)) == []


class TestComparables:
    def test_failed_and_surviving(self, sample_startups):
        competitors = [
            CompetitorData(name="Alive", description="d", status="Active", funding="$5M"),
            CompetitorData(name="Bought", description="d", status="Acquired"),
            CompetitorData(name="Dead", description="d", status="Shut down"),
        ]

        failed, surviving = categorize_comparables(sample_startups[:1], competitors)

        invoiceco = failed[0]
        assert invoiceco.id == "1"
        assert invoiceco.outcome == "failed"
        assert invoiceco.money_burned == "$12M"
        assert invoiceco.year_outcome == 2019
        assert invoiceco.lessons_learned == ["Could not get paid users"]
        assert invoiceco.similarities == ["Fintech", "Finance"]

        assert [(c.name, c.outcome) for c in surviving] == [("Alive", "survived"), ("Bought", "acquired")]
        assert surviving[0].funding_raised == "$5M"

    def test_each_side_capped_at_five(self, sample_startups):
        failed, surviving = categorize_comparables(sample_startups * 2, _competitors(8))
        assert len(failed) == 5
        assert len(surviving) == 5


class TestSynthesizePatterns:
    def test_llm_modes_come_first_and_citations_accumulate(self):
        evidence_citation = Citation(id="citation-1", source="a.io", url="https://a.io", title="A")
        client = FakeClient({FAILURE_PATTERNS_PROMPT: (
            "1. **Late Payment Trap**: Clients pay late and freelancers churn within 6-12 months "
            "in about 40% of cases."
        )})
        evidence = RetrievalResult(market_data=MarketData(size="$5 billion"), citations=[evidence_citation])

        result = asyncio.run(synthesize_patterns(SAAS, evidence, client))

        assert [m.name for m in result.failure_modes] == [
            "Late Payment Trap", "Churn Death Spiral", "CAC Blowout", "Premature Scaling",
        ]
        assert result.citations == [evidence_citation]

    def test_failure_pattern_query_error_keeps_catalog(self, failing_client, sample_startups):
        evidence = RetrievalResult(historical_failures=sample_startups[:2])

        result = asyncio.run(synthesize_patterns(SAAS, evidence, failing_client))

        assert [m.name for m in result.failure_modes] == ["Churn Death Spiral", "CAC Blowout", "Premature Scaling"]
        assert "InvoiceCo, PetPals" in failing_client.calls[0]["user"]
        assert [r.title for r in result.market_risks] == ["Limited Market Size"]
        assert len(result.failed_comparables) == 2
