from datetime import datetime
from typing import Optional

from pydantic import Field

from .evidence_schema import FailedStartup
from .report_schema import (
    CamelModel,
    Challenge,
    Citation,
    Comparable,
    EarlyWarning,
    FailureMode,
    IdeaDecomposition,
    Lever,
    PremortemReport,
    Risk,
    RiskScore,
)


class AnalyzeRequest(CamelModel):
    """Request body for POST /api/analyze.

    ``idea`` is optional at the schema level so that an empty or missing
    idea can be answered with a 400 ``{error}`` body rather than a 422.
    """

    idea: Optional[str] = Field(
        None,
        description="The startup idea to analyse.",
        examples=[
            "A monthly subscription tool for freelancers to send invoices",
            "A marketplace connecting local farmers with restaurants, taking a commission on each order",
        ],
    )
    quick_preview: bool = Field(
        False,
        description="Run only the decomposition stage and return it.",
    )


class QuickPreviewResponse(CamelModel):
    decomposition: IdeaDecomposition


class ReportSummary(CamelModel):
    """The subset of a PremortemReport returned by the analysis endpoint."""

    id: str
    version: int
    created_at: datetime
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

    @classmethod
    def from_report(cls, report: PremortemReport) -> "ReportSummary":
        return cls.model_validate(report, from_attributes=True)


class AnalyzeResponse(CamelModel):
    success: bool
    report: Optional[ReportSummary] = None
    error: Optional[str] = None


class RerunRequest(CamelModel):
    report: PremortemReport
    from_stage: str = Field(
        "retrieval",
        description="One of: decomposition, retrieval, synthesis, scoring",
    )


class RerunResponse(CamelModel):
    success: bool
    report: PremortemReport
    error: Optional[str] = None


class GraveyardResponse(CamelModel):
    """Browsable listing of historical failures."""

    startups: list[FailedStartup]
    count: int
    categories: list[str]
    total_burned: float
    total_burned_formatted: str
