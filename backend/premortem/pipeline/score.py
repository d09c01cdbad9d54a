"""Risk Scoring Stage.

Turns a SynthesisResult into a composite RiskScore plus improvement
levers and early-warning signals.

Rules
-----
- NO API calls
- NO LLMs
- Pure deterministic function of (decomposition, synthesis)
- Thresholds and weights come from ``constants``
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from ..constants import (
    BREAKDOWN_WEIGHTS,
    CONFIDENCE_CAP,
    CONFIDENCE_FLOOR,
    CONFIDENCE_PER_EVIDENCE,
    DISCLAIMER_TEMPLATES,
    FIXED_WARNINGS,
    MAX_FAILURE_MODE_LEVERS,
    MAX_FAILURE_MODE_WARNINGS,
    MAX_LEVERS,
    MAX_MARKET_RISK_WARNINGS,
    MAX_WARNINGS,
)
from ..schemas.report_schema import (
    Comparable,
    EarlyWarning,
    FailureMode,
    IdeaDecomposition,
    Lever,
    Risk,
    RiskBreakdown,
    RiskLevel,
    RiskScore,
)
from .synthesize import SynthesisResult


@dataclass
class ScoringResult:
    risk_score: RiskScore
    improvement_levers: List[Lever] = field(default_factory=list)
    early_warnings: List[EarlyWarning] = field(default_factory=list)


# ── Sub-scores ───────────────────────────────────────────────────────────

def category_score(risks: List[Risk]) -> RiskLevel:
    """Level for one risk category from its CRITICAL / ELEVATED counts."""
    if not risks:
        return RiskLevel.LOW

    critical = sum(1 for r in risks if r.level == RiskLevel.CRITICAL)
    elevated = sum(1 for r in risks if r.level == RiskLevel.ELEVATED)

    if critical >= 2:
        return RiskLevel.CRITICAL
    if critical >= 1 or elevated >= 2:
        return RiskLevel.ELEVATED
    if elevated >= 1:
        return RiskLevel.MODERATE
    return RiskLevel.LOW


def competition_score(failed_count: int, surviving_count: int) -> RiskLevel:
    """Level from the failed / surviving comparable ratio."""
    ratio = failed_count / surviving_count if surviving_count > 0 else failed_count

    if ratio >= 3 or (failed_count >= 5 and surviving_count <= 1):
        return RiskLevel.CRITICAL
    if ratio >= 2 or failed_count >= 3:
        return RiskLevel.ELEVATED
    if ratio >= 1 or failed_count >= 2:
        return RiskLevel.MODERATE
    return RiskLevel.LOW


def execution_score(failure_modes: List[FailureMode]) -> RiskLevel:
    """Level from the mean failure-mode probability (50 when there are none)."""
    if failure_modes:
        average = sum(m.probability for m in failure_modes) / len(failure_modes)
    else:
        average = 50

    if average >= 70:
        return RiskLevel.CRITICAL
    if average >= 55:
        return RiskLevel.ELEVATED
    if average >= 40:
        return RiskLevel.MODERATE
    return RiskLevel.LOW


def overall_level(breakdown: RiskBreakdown) -> RiskLevel:
    """Weighted ordinal average of the five sub-scores, rounded back to a level."""
    weighted = sum(
        getattr(breakdown, name).ordinal * weight
        for name, weight in BREAKDOWN_WEIGHTS.items()
    )
    return RiskLevel.from_ordinal(weighted)


def confidence_from_evidence(evidence_count: int) -> int:
    return min(CONFIDENCE_CAP, CONFIDENCE_FLOOR + CONFIDENCE_PER_EVIDENCE * max(evidence_count, 0))


def generate_disclaimer(overall: RiskLevel, confidence: int) -> str:
    return DISCLAIMER_TEMPLATES[overall.value].format(confidence=confidence)


def calculate_risk_score(synthesis: SynthesisResult) -> RiskScore:
    breakdown = RiskBreakdown(
        market=category_score(synthesis.market_risks),
        timing=category_score(synthesis.timing_risks),
        regulatory=category_score(synthesis.regulatory_risks),
        competition=competition_score(
            len(synthesis.failed_comparables),
            len(synthesis.surviving_comparables),
        ),
        execution=execution_score(synthesis.failure_modes),
    )
    overall = overall_level(breakdown)

    evidence_count = (
        len(synthesis.market_risks)
        + len(synthesis.timing_risks)
        + len(synthesis.regulatory_risks)
        + len(synthesis.failed_comparables)
        + len(synthesis.citations)
    )
    confidence = confidence_from_evidence(evidence_count)

    return RiskScore(
        overall=overall,
        confidence=confidence,
        breakdown=breakdown,
        disclaimer=generate_disclaimer(overall, confidence),
    )


# ── Levers ───────────────────────────────────────────────────────────────

def _competitive_steps(survivors: List[Comparable]) -> List[str]:
    return [
        f"Analyze {c.name}: {c.differences[0] if c.differences else 'strategy and positioning'}"
        for c in survivors[:4]
    ]


def generate_levers(decomposition: IdeaDecomposition, synthesis: SynthesisResult) -> List[Lever]:
    """Levers in fixed priority order; later kinds are dropped first at the cap."""
    levers: List[Lever] = []

    def add(**fields) -> None:
        levers.append(Lever(id=f"lever-{len(levers) + 1}", **fields))

    for mode in synthesis.failure_modes[:MAX_FAILURE_MODE_LEVERS]:
        if mode.mitigations:
            add(
                title=f"Mitigate: {mode.name}",
                description=mode.mitigations[0],
                impact="high" if mode.probability >= 60 else "medium",
                effort="medium",
                category="product",
                steps=list(mode.mitigations),
            )

    if any(r.category == "Competition" for r in synthesis.market_risks):
        add(
            title="Differentiation Strategy",
            description="Develop unique positioning against identified competitors",
            impact="high",
            effort="high",
            category="market",
            steps=[
                "Identify underserved segments competitors ignore",
                "Build proprietary data or technology moat",
                "Focus on specific vertical before expanding",
                "Create switching costs through integrations",
            ],
        )

    if decomposition.key_assumptions:
        add(
            title="Assumption Validation Sprint",
            description="Systematically test critical assumptions before full commitment",
            impact="high",
            effort="low",
            category="product",
            steps=[f"Validate: {a}" for a in decomposition.key_assumptions],
        )

    if decomposition.testable_hypotheses:
        add(
            title="Hypothesis Testing Plan",
            description="Run experiments to validate or invalidate core hypotheses",
            impact="high",
            effort="medium",
            category="product",
            steps=[f"Test: {h}" for h in decomposition.testable_hypotheses],
        )

    if synthesis.distribution_challenges:
        add(
            title="Distribution Strategy",
            description="Develop alternative channels to reduce distribution risk",
            impact="high",
            effort="high",
            category="market",
            steps=[
                "Identify organic/viral growth mechanisms",
                "Build partnership distribution channels",
                "Create content marketing engine",
                "Develop referral incentive programs",
            ],
        )

    if synthesis.surviving_comparables:
        add(
            title="Competitive Intelligence",
            description="Study successful competitors for strategic insights",
            impact="medium",
            effort="low",
            category="market",
            steps=_competitive_steps(synthesis.surviving_comparables),
        )

    return levers[:MAX_LEVERS]


# ── Early warnings ───────────────────────────────────────────────────────

def generate_warnings(synthesis: SynthesisResult) -> List[EarlyWarning]:
    """Derived warnings first, then the fixed ones.

    The cap trims derived warnings only; the fixed warnings are always
    present at the end of the list.
    """
    derived: List[EarlyWarning] = []

    for mode in synthesis.failure_modes[:MAX_FAILURE_MODE_WARNINGS]:
        name = mode.name.lower()
        derived.append(
            EarlyWarning(
                id=f"warn-{len(derived) + 1}",
                signal=mode.triggers[0] if mode.triggers else f"Signs of {mode.name}",
                description=f"Early indicator of {name}",
                threshold=mode.triggers[1] if len(mode.triggers) > 1 else "When pattern becomes consistent",
                monitoring_method=f"Track metrics related to {name.split(' ')[0]}",
                urgency=RiskLevel.ELEVATED if mode.probability >= 60 else RiskLevel.MODERATE,
            )
        )

    for risk in synthesis.market_risks[:MAX_MARKET_RISK_WARNINGS]:
        derived.append(
            EarlyWarning(
                id=f"warn-{len(derived) + 1}",
                signal=f"{risk.category} deterioration",
                description=risk.description[:100],
                threshold=risk.evidence[0] if risk.evidence else "Significant change in market conditions",
                monitoring_method="Monthly market analysis and competitor tracking",
                urgency=risk.level,
            )
        )

    fixed = [
        EarlyWarning(
            id=f"warn-{entry['key']}",
            signal=entry["signal"],
            description=entry["description"],
            threshold=entry["threshold"],
            monitoring_method=entry["monitoring_method"],
            urgency=RiskLevel(entry["urgency"]),
        )
        for entry in FIXED_WARNINGS
    ]

    return derived[: MAX_WARNINGS - len(fixed)] + fixed


# ── Stage entry point ────────────────────────────────────────────────────

def score_risks(decomposition: IdeaDecomposition, synthesis: SynthesisResult) -> ScoringResult:
    risk_score = calculate_risk_score(synthesis)
    result = ScoringResult(
        risk_score=risk_score,
        improvement_levers=generate_levers(decomposition, synthesis),
        early_warnings=generate_warnings(synthesis),
    )
    print(
        f"📊 [SCORE] overall={risk_score.overall.value}, confidence={risk_score.confidence}%, "
        f"levers={len(result.improvement_levers)}, warnings={len(result.early_warnings)}"
    )
    return result
