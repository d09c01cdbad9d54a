from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ..constants import (
    COMPETITOR_STATUS_ACTIVE,
    COMPLIANCE_COST_VARIABLE,
    GROWTH_RATE_UNKNOWN,
    MARKET_SIZE_UNKNOWN,
)
from .report_schema import CamelModel, Citation


class TokenUsage(CamelModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0


class GenerationResponse(CamelModel):
    """Normalized response from the text-generation service."""

    content: str
    citations: list[Citation] = Field(default_factory=list)
    model: str
    usage: TokenUsage = Field(default_factory=TokenUsage)


class MarketData(CamelModel):
    size: str = MARKET_SIZE_UNKNOWN
    growth_rate: str = GROWTH_RATE_UNKNOWN
    trends: list[str] = Field(default_factory=list)
    recent_news: list[str] = Field(default_factory=list)


class CompetitorData(CamelModel):
    name: str
    description: str
    funding: Optional[str] = None
    status: str = COMPETITOR_STATUS_ACTIVE
    website: Optional[str] = None
    strengths: list[str] = Field(default_factory=list)
    weaknesses: list[str] = Field(default_factory=list)


class RegulatoryData(CamelModel):
    regulation: str
    jurisdiction: str
    impact: str
    compliance_cost: str = COMPLIANCE_COST_VARIABLE


class FailedStartup(BaseModel):
    """One historical-failure record as returned by the data store.

    Field names mirror the remote RPC payload (snake_case). Unknown
    fields are ignored.
    """

    model_config = ConfigDict(extra="ignore")

    id: str
    name: str
    description: str = ""
    category: Optional[str] = None
    year_died: Optional[int] = None
    money_burned: Optional[str] = None
    money_burned_raw: Optional[float] = None
    failure_reason: Optional[str] = None
    sector: Optional[str] = None
    difficulty: Optional[str] = None
    scalability: Optional[str] = None
    market: Optional[str] = None
    tags: list[str] = Field(default_factory=list)
    city: Optional[str] = None

    @field_validator("id", mode="before")
    @classmethod
    def _coerce_id(cls, value: Any) -> Any:
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator("description", mode="before")
    @classmethod
    def _none_to_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("money_burned", mode="before")
    @classmethod
    def _burned_to_text(cls, value: Any) -> Any:
        if isinstance(value, (int, float)):
            return str(value)
        return value

    @field_validator("tags", mode="before")
    @classmethod
    def _tags_to_list(cls, value: Any) -> Any:
        return [] if value is None else value
