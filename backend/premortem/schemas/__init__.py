# Schemas package
from .report_schema import (
    Challenge,
    Citation,
    Comparable,
    EarlyWarning,
    FailureMode,
    IdeaDecomposition,
    Lever,
    PipelineProgress,
    PremortemReport,
    Risk,
    RiskBreakdown,
    RiskLevel,
    RiskScore,
)
from .evidence_schema import (
    CompetitorData,
    FailedStartup,
    GenerationResponse,
    MarketData,
    RegulatoryData,
    TokenUsage,
)

__all__ = [
    "Challenge",
    "Citation",
    "Comparable",
    "EarlyWarning",
    "FailureMode",
    "IdeaDecomposition",
    "Lever",
    "PipelineProgress",
    "PremortemReport",
    "Risk",
    "RiskBreakdown",
    "RiskLevel",
    "RiskScore",
    "CompetitorData",
    "FailedStartup",
    "GenerationResponse",
    "MarketData",
    "RegulatoryData",
    "TokenUsage",
]
