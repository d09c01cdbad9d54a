"""Premortem report data model.

Every model serialises with camelCase keys (``originalIdea``,
``riskScore`` …) and accepts either camelCase or snake_case on input.
"""

from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..constants import RISK_LEVEL_VALUES


class RiskLevel(str, Enum):
    """Ordinal risk scale: LOW < MODERATE < ELEVATED < CRITICAL."""

    LOW = "LOW"
    MODERATE = "MODERATE"
    ELEVATED = "ELEVATED"
    CRITICAL = "CRITICAL"

    @property
    def ordinal(self) -> int:
        return RISK_LEVEL_VALUES[self.value]

    @classmethod
    def from_ordinal(cls, score: float) -> "RiskLevel":
        """Round a weighted 1–4 score back onto the scale (3.5 / 2.5 / 1.5)."""
        if score >= 3.5:
            return cls.CRITICAL
        if score >= 2.5:
            return cls.ELEVATED
        if score >= 1.5:
            return cls.MODERATE
        return cls.LOW


ReportStatus = Literal["generating", "complete", "error"]
ChallengeType = Literal["regulatory", "distribution", "technical", "market", "operational"]
ComparableOutcome = Literal["failed", "pivoted", "survived", "acquired", "ipo"]
LeverGrade = Literal["high", "medium", "low"]
LeverCategory = Literal["product", "market", "business_model", "team", "timing"]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class IdeaDecomposition(CamelModel):
    """Structured breakdown of the raw idea (stage 1 output)."""

    value_proposition: str = ""
    target_market: str = ""
    business_model: str = ""
    key_assumptions: list[str] = Field(default_factory=list)
    testable_hypotheses: list[str] = Field(default_factory=list)


class Citation(CamelModel):
    id: str
    source: str = Field(..., description="Hostname of the source, or 'inline'")
    url: Optional[str] = None
    title: str
    snippet: str = ""
    retrieved_at: datetime = Field(default_factory=_utcnow)
    relevance: Optional[float] = None


class Risk(CamelModel):
    id: str
    category: str
    title: str
    description: str
    level: RiskLevel
    evidence: list[str] = Field(default_factory=list)
    citations: list[str] = Field(default_factory=list)
    historical_prevalence: Optional[float] = Field(None, ge=0, le=100)


class FailureMode(CamelModel):
    id: str
    name: str
    description: str
    probability: float = Field(..., ge=0, le=100)
    timeframe: str
    triggers: list[str] = Field(default_factory=list)
    mitigations: list[str] = Field(default_factory=list)
    citations: list[str] = Field(default_factory=list)


class Challenge(CamelModel):
    id: str
    type: ChallengeType
    title: str
    description: str
    severity: RiskLevel
    citations: list[str] = Field(default_factory=list)


class Comparable(CamelModel):
    id: str
    name: str
    description: str = ""
    outcome: ComparableOutcome
    year_founded: Optional[int] = None
    year_outcome: Optional[int] = None
    funding_raised: Optional[str] = None
    money_burned: Optional[str] = None
    failure_reason: Optional[str] = None
    lessons_learned: list[str] = Field(default_factory=list)
    similarities: list[str] = Field(default_factory=list)
    differences: list[str] = Field(default_factory=list)


class Lever(CamelModel):
    id: str
    title: str
    description: str
    impact: LeverGrade
    effort: LeverGrade
    category: LeverCategory
    steps: list[str] = Field(default_factory=list)


class EarlyWarning(CamelModel):
    id: str
    signal: str
    description: str
    threshold: str
    monitoring_method: str
    urgency: RiskLevel


class RiskBreakdown(CamelModel):
    market: RiskLevel
    timing: RiskLevel
    regulatory: RiskLevel
    competition: RiskLevel
    execution: RiskLevel


class RiskScore(CamelModel):
    overall: RiskLevel
    confidence: int = Field(..., ge=0, le=100)
    breakdown: RiskBreakdown
    disclaimer: str


class PipelineProgress(CamelModel):
    """Progress event emitted after each stage transition."""

    current_stage: str
    stage_progress: int = Field(..., ge=0, le=100)
    stage_message: str
    completed_stages: list[str] = Field(default_factory=list)


class PremortemReport(CamelModel):
    """Aggregate root of one analysis run. Mutated only by the orchestrator."""

    id: str
    idea_id: str
    version: int = 1
    created_at: datetime = Field(default_factory=_utcnow)
    updated_at: datetime = Field(default_factory=_utcnow)
    original_idea: str

    decomposition: Optional[IdeaDecomposition] = None
    risk_score: Optional[RiskScore] = None
    failure_modes: list[FailureMode] = Field(default_factory=list)
    market_risks: list[Risk] = Field(default_factory=list)
    timing_risks: list[Risk] = Field(default_factory=list)
    regulatory_risks: list[Risk] = Field(default_factory=list)
    distribution_challenges: list[Challenge] = Field(default_factory=list)
    failed_startups: list[Comparable] = Field(default_factory=list)
    surviving_startups: list[Comparable] = Field(default_factory=list)
    improvement_levers: list[Lever] = Field(default_factory=list)
    early_warnings: list[EarlyWarning] = Field(default_factory=list)
    citations: list[Citation] = Field(default_factory=list)

    status: ReportStatus = "generating"
    error: Optional[str] = None
