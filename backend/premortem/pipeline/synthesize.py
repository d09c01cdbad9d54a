"""
Synthesis Stage

Derives failure modes, categorized risks, distribution challenges and
comparable companies from the decomposition plus retrieved evidence.

Only the failure-pattern query touches the network, and it is wrapped on
its own: when it fails, the catalog failure modes are still returned.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import List, Tuple

from ..constants import (
    AI_TERMS,
    CRITICAL_FAILED_COMPETITOR_COUNT,
    CRITICAL_SATURATION_COUNT,
    ELEVATED_COMPLIANCE_COST,
    FAILURE_MODE_CATALOG,
    LATE_ENTRY_TERMS,
    MARKET_SIZE_NOT_DETERMINED,
    MARKET_SIZE_UNKNOWN,
    MAX_COMPARABLES,
    MAX_FAILURE_MODES,
    SATURATION_COMPETITOR_COUNT,
)
from ..schemas.evidence_schema import CompetitorData, FailedStartup, MarketData, RegulatoryData
from ..schemas.report_schema import (
    Challenge,
    Citation,
    Comparable,
    FailureMode,
    IdeaDecomposition,
    Risk,
    RiskLevel,
)
from ..services.perplexity_client import PerplexityClient
from .parsers import parse_failure_modes
from .prompts import FAILURE_PATTERNS_PROMPT, build_failure_pattern_prompt
from .retrieve import RetrievalResult
from .timing import async_timer

logger = logging.getLogger(__name__)

_MILLIONS_RE = re.compile(r"\d\s*M\b")
_NUMBER_RE = re.compile(r"\d[\d,]*")


@dataclass
class SynthesisResult:
    failure_modes: List[FailureMode] = field(default_factory=list)
    market_risks: List[Risk] = field(default_factory=list)
    timing_risks: List[Risk] = field(default_factory=list)
    regulatory_risks: List[Risk] = field(default_factory=list)
    distribution_challenges: List[Challenge] = field(default_factory=list)
    failed_comparables: List[Comparable] = field(default_factory=list)
    surviving_comparables: List[Comparable] = field(default_factory=list)
    citations: List[Citation] = field(default_factory=list)


# ── Failure modes ────────────────────────────────────────────────────────

def catalog_failure_modes(business_model: str) -> List[FailureMode]:
    """Catalog entries whose keywords appear in the business model, in catalog order."""
    model = business_model.lower()
    modes: List[FailureMode] = []
    for entry in FAILURE_MODE_CATALOG:
        keywords = entry["keywords"]
        if keywords and not any(keyword in model for keyword in keywords):
            continue
        modes.append(
            FailureMode(
                id=f"fm-{len(modes) + 1}",
                name=entry["name"],
                description=entry["description"],
                probability=entry["probability"],
                timeframe=entry["timeframe"],
                triggers=list(entry["triggers"]),
                mitigations=list(entry["mitigations"]),
            )
        )
    return modes


def merge_failure_modes(*sources: List[FailureMode]) -> List[FailureMode]:
    """Concatenate, drop case-insensitive duplicate names (first wins), cap."""
    seen: set[str] = set()
    merged: List[FailureMode] = []
    for modes in sources:
        for mode in modes:
            key = mode.name.lower()
            if key in seen:
                continue
            seen.add(key)
            merged.append(mode)
    return merged[:MAX_FAILURE_MODES]


async def fetch_failure_patterns(
    decomposition: IdeaDecomposition,
    historical_failures: List[FailedStartup],
    client: PerplexityClient,
) -> Tuple[List[FailureMode], List[Citation]]:
    """LLM-described failure patterns, or nothing if the query fails."""
    failed_names = ", ".join(f.name for f in historical_failures[:5])
    try:
        async with async_timer("synthesize.failure_patterns", "QUERY"):
            response = await client.query(
                FAILURE_PATTERNS_PROMPT,
                build_failure_pattern_prompt(
                    value_proposition=decomposition.value_proposition,
                    business_model=decomposition.business_model,
                    failed_names=failed_names,
                ),
            )
        return parse_failure_modes(response.content), response.citations
    except Exception as exc:
        logger.warning("Failure pattern query failed: %s", exc)
        return [], []


# ── Risks ────────────────────────────────────────────────────────────────

def _is_failed_status(status: str) -> bool:
    lowered = status.lower()
    return "shut" in lowered or "failed" in lowered


def _is_small_market(size: str) -> bool:
    if size in (MARKET_SIZE_UNKNOWN, MARKET_SIZE_NOT_DETERMINED):
        return True
    return "million" in size.lower() or bool(_MILLIONS_RE.search(size))


def identify_market_risks(market_data: MarketData, competitors: List[CompetitorData]) -> List[Risk]:
    risks: List[Risk] = []

    count = len(competitors)
    if count > SATURATION_COMPETITOR_COUNT:
        risks.append(
            Risk(
                id=f"mr-{len(risks) + 1}",
                category="Competition",
                title="High Market Saturation",
                description=f"{count}+ competitors identified in this space, indicating potential commoditization",
                level=RiskLevel.CRITICAL if count > CRITICAL_SATURATION_COUNT else RiskLevel.ELEVATED,
                evidence=[f"{count} competitors found"],
                historical_prevalence=70,
            )
        )

    failed = [c for c in competitors if _is_failed_status(c.status)]
    if failed:
        risks.append(
            Risk(
                id=f"mr-{len(risks) + 1}",
                category="Market Validation",
                title="Prior Market Failures",
                description=f"{len(failed)} similar companies have failed in this market",
                level=RiskLevel.CRITICAL if len(failed) > CRITICAL_FAILED_COMPETITOR_COUNT else RiskLevel.ELEVATED,
                evidence=[f"{c.name} - {c.status}" for c in failed],
                historical_prevalence=60,
            )
        )

    if _is_small_market(market_data.size):
        risks.append(
            Risk(
                id=f"mr-{len(risks) + 1}",
                category="Market Size",
                title="Limited Market Size",
                description="Market may be too small to support a venture-scale outcome",
                level=RiskLevel.MODERATE,
                evidence=[f"Market size: {market_data.size}"],
                historical_prevalence=40,
            )
        )

    return risks


def identify_timing_risks(decomposition: IdeaDecomposition, market_data: MarketData) -> List[Risk]:
    risks: List[Risk] = []
    value_prop = decomposition.value_proposition.lower()

    if any(term in value_prop for term in AI_TERMS):
        risks.append(
            Risk(
                id=f"tr-{len(risks) + 1}",
                category="Technology Timing",
                title="AI Hype Cycle Risk",
                description=(
                    "Entering AI market during peak hype - high competition, "
                    "inflated expectations, potential correction"
                ),
                level=RiskLevel.ELEVATED,
                evidence=["2023-2025 AI funding boom", "Rapid model commoditization"],
                historical_prevalence=55,
            )
        )

    trends_text = " ".join(market_data.trends).lower()
    if any(term in trends_text for term in LATE_ENTRY_TERMS):
        risks.append(
            Risk(
                id=f"tr-{len(risks) + 1}",
                category="Market Timing",
                title="Late Market Entry",
                description="Market shows signs of maturity or decline",
                level=RiskLevel.ELEVATED,
                evidence=list(market_data.trends),
                historical_prevalence=45,
            )
        )

    return risks


def compliance_cost_level(compliance_cost: str) -> RiskLevel:
    """ELEVATED when a dollar figure in the cost text exceeds the threshold."""
    if "$" not in compliance_cost:
        return RiskLevel.MODERATE
    for figure in _NUMBER_RE.findall(compliance_cost):
        if int(figure.replace(",", "")) > ELEVATED_COMPLIANCE_COST:
            return RiskLevel.ELEVATED
    return RiskLevel.MODERATE


def identify_regulatory_risks(regulations: List[RegulatoryData]) -> List[Risk]:
    return [
        Risk(
            id=f"rr-{index + 1}",
            category="Regulatory",
            title=f"{reg.regulation} Compliance Required",
            description=f"{reg.jurisdiction}: {reg.impact[:150]}",
            level=compliance_cost_level(reg.compliance_cost),
            evidence=[f"Compliance cost: {reg.compliance_cost}"],
            historical_prevalence=30,
        )
        for index, reg in enumerate(regulations)
    ]


def identify_distribution_challenges(
    decomposition: IdeaDecomposition,
    competitors: List[CompetitorData],
) -> List[Challenge]:
    challenges: List[Challenge] = []
    market = decomposition.target_market.lower()
    model = decomposition.business_model.lower()

    if "enterprise" in market or "b2b" in market:
        challenges.append(
            Challenge(
                id=f"dc-{len(challenges) + 1}",
                type="distribution",
                title="Enterprise Sales Cycle",
                description=(
                    "Long sales cycles (3-12 months), require dedicated sales team, "
                    "high customer acquisition cost"
                ),
                severity=RiskLevel.ELEVATED,
            )
        )

    if "app" in model or "consumer" in model:
        challenges.append(
            Challenge(
                id=f"dc-{len(challenges) + 1}",
                type="distribution",
                title="App Store Discovery",
                description="Extremely competitive app stores, high CAC, algorithm dependency for visibility",
                severity=RiskLevel.CRITICAL,
            )
        )

    if any("platform" in (c.description or "").lower() for c in competitors):
        challenges.append(
            Challenge(
                id=f"dc-{len(challenges) + 1}",
                type="distribution",
                title="Platform Dependency Risk",
                description=(
                    "Reliance on third-party platforms (Google, Apple, Meta) "
                    "creates existential risk from policy changes"
                ),
                severity=RiskLevel.ELEVATED,
            )
        )

    return challenges


# ── Comparables ──────────────────────────────────────────────────────────

def categorize_comparables(
    failures: List[FailedStartup],
    competitors: List[CompetitorData],
) -> Tuple[List[Comparable], List[Comparable]]:
    """(failed, surviving) comparables, each capped."""
    failed = [
        Comparable(
            id=f.id,
            name=f.name,
            description=f.description,
            outcome="failed",
            year_outcome=f.year_died,
            money_burned=f.money_burned,
            failure_reason=f.failure_reason,
            lessons_learned=[f.failure_reason] if f.failure_reason else [],
            similarities=[tag for tag in (f.category, f.sector) if tag],
        )
        for f in failures
    ]

    survivors = [c for c in competitors if not _is_failed_status(c.status)]
    surviving = [
        Comparable(
            id=f"comp-{index + 1}",
            name=c.name,
            description=c.description,
            outcome="acquired" if "acquired" in c.status.lower() else "survived",
            funding_raised=c.funding,
        )
        for index, c in enumerate(survivors)
    ]

    return failed[:MAX_COMPARABLES], surviving[:MAX_COMPARABLES]


# ── Stage entry point ────────────────────────────────────────────────────

async def synthesize_patterns(
    decomposition: IdeaDecomposition,
    evidence: RetrievalResult,
    client: PerplexityClient,
) -> SynthesisResult:
    print("🧪 [SYNTH] Synthesizing failure patterns")

    parsed_modes, pattern_citations = await fetch_failure_patterns(
        decomposition, evidence.historical_failures, client
    )
    failure_modes = merge_failure_modes(parsed_modes, catalog_failure_modes(decomposition.business_model))

    failed, surviving = categorize_comparables(evidence.historical_failures, evidence.competitors)

    result = SynthesisResult(
        failure_modes=failure_modes,
        market_risks=identify_market_risks(evidence.market_data, evidence.competitors),
        timing_risks=identify_timing_risks(decomposition, evidence.market_data),
        regulatory_risks=identify_regulatory_risks(evidence.regulations),
        distribution_challenges=identify_distribution_challenges(decomposition, evidence.competitors),
        failed_comparables=failed,
        surviving_comparables=surviving,
        citations=[*evidence.citations, *pattern_citations],
    )

    print(
        f"✅ [SYNTH] failure_modes={len(result.failure_modes)}, "
        f"risks={len(result.market_risks) + len(result.timing_risks) + len(result.regulatory_risks)}, "
        f"challenges={len(result.distribution_challenges)}"
    )
    return result
