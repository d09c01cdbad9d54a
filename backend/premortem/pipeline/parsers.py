"""Best-effort parsers turning free generated text into structured records.

Each parser is a pure function: text in, structured-or-empty result out.
They never raise on odd input. Ordering matters: earlier regex matches
win, and list caps are applied in match order.
"""

from __future__ import annotations

import re
from typing import List

from ..constants import (
    COMPETITOR_STATUS_ACQUIRED,
    COMPETITOR_STATUS_ACTIVE,
    COMPETITOR_STATUS_SHUT_DOWN,
    COMPETITOR_STATUS_STRUGGLING,
    COMPLIANCE_COST_VARIABLE,
    DEFAULT_FAILURE_PROBABILITY,
    DEFAULT_FAILURE_TIMEFRAME,
    GROWTH_RATE_NOT_DETERMINED,
    MARKET_SIZE_NOT_DETERMINED,
    MAX_COMPETITORS,
    MAX_PARSED_FAILURE_MODES,
    MAX_RECENT_NEWS,
    MAX_TRENDS,
    REGULATION_PATTERNS,
    STOP_WORDS,
)
from ..schemas.evidence_schema import CompetitorData, MarketData, RegulatoryData
from ..schemas.report_schema import FailureMode

# ── Market data ──────────────────────────────────────────────────────────

_MARKET_SIZE_RE = re.compile(r"\$[\d.]+\s*(?:billion|million|B|M)\b", re.IGNORECASE)
_GROWTH_RE = re.compile(r"(\d+(?:\.\d+)?)\s*%\s*(?:CAGR|growth|annually)", re.IGNORECASE)
_TREND_RE = re.compile(r"(?:trend|development|shift)s?[:\s]+([^\n]+)", re.IGNORECASE)
_NEWS_RE = re.compile(
    r"(?:recent|2024|2025|January|February|March|April|May|June|July|August"
    r"|September|October|November|December)[^\n.]+\.",
    re.IGNORECASE,
)

# ── Competitors ──────────────────────────────────────────────────────────

# Section boundaries: "1. ", "## ", "- **Name**", or a line opening in bold.
_COMPETITOR_SPLIT_RE = re.compile(
    r"^(?:\d+\.[ \t]+|#{1,3}[ \t]*|[-*•][ \t]+(?=\*\*)|(?=\*\*[^*\n]+\*\*))",
    re.MULTILINE,
)
_COMPANY_NAME_RE = re.compile(r"^\s*([A-Z][a-zA-Z0-9\s&.]+?)(?:\s*[-–—:(\[]|raised|\s+is)")
_FUNDING_RE = re.compile(r"\$[\d.]+\s*(?:billion|million|B|M)\b", re.IGNORECASE)
_WEBSITE_RE = re.compile(r"https?://[^\s)]+")
_DESCRIPTION_RE = re.compile(r"\b(?:is|provides|offers|builds)\s+([^.]+)", re.IGNORECASE)

# First match wins, in this priority order.
_STATUS_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"shut\s*down|failed|defunct|closed", re.IGNORECASE), COMPETITOR_STATUS_SHUT_DOWN),
    (re.compile(r"acquired|bought", re.IGNORECASE), COMPETITOR_STATUS_ACQUIRED),
    (re.compile(r"struggling|pivot|layoff", re.IGNORECASE), COMPETITOR_STATUS_STRUGGLING),
]

# ── Regulations ──────────────────────────────────────────────────────────

_COMPLIANCE_COST_RE = re.compile(
    r"\$[\d,]+(?:\s*-\s*\$[\d,]+)?|\d+(?:,\d+)?\s*(?:dollar|per|annually)",
    re.IGNORECASE,
)

# ── Failure modes ────────────────────────────────────────────────────────

_FAILURE_SPLIT_RE = re.compile(r"^(?:\d+\.[ \t]+|#{1,3}[ \t]+)", re.MULTILINE)
_FAILURE_NAME_RE = re.compile(r"\*\*([^*]+)\*\*|^([A-Z][^:\n]+)")
_PERCENT_RE = re.compile(r"(\d+)\s*%")
_TIMEFRAME_RE = re.compile(r"(\d+\s*[-–]\s*\d+\s*(?:months?|years?))", re.IGNORECASE)


def parse_market_data(content: str) -> MarketData:
    """Extract size, growth rate, trends and recent news from market research text."""
    size_match = _MARKET_SIZE_RE.search(content)
    size = size_match.group(0) if size_match else MARKET_SIZE_NOT_DETERMINED

    growth_match = _GROWTH_RE.search(content)
    growth_rate = f"{growth_match.group(1)}% annually" if growth_match else GROWTH_RATE_NOT_DETERMINED

    trends: List[str] = []
    for match in list(_TREND_RE.finditer(content))[:MAX_TRENDS]:
        cleaned = match.group(1).strip()
        if len(cleaned) > 10:
            trends.append(cleaned)

    recent_news: List[str] = []
    for match in list(_NEWS_RE.finditer(content))[:MAX_RECENT_NEWS]:
        if len(match.group(0)) > 20:
            recent_news.append(match.group(0).strip())

    return MarketData(size=size, growth_rate=growth_rate, trends=trends, recent_news=recent_news)


def classify_competitor_status(section: str) -> str:
    for pattern, status in _STATUS_PATTERNS:
        if pattern.search(section):
            return status
    return COMPETITOR_STATUS_ACTIVE


def parse_competitor_data(content: str) -> List[CompetitorData]:
    """Split a competitor listing into sections and keep the ones led by a company name."""
    competitors: List[CompetitorData] = []

    for raw_section in _COMPETITOR_SPLIT_RE.split(content):
        section = raw_section.replace("**", "")
        if len(section) < 30:
            continue

        name_match = _COMPANY_NAME_RE.match(section)
        if not name_match:
            continue
        name = name_match.group(1).strip()
        if len(name) < 2 or len(name) > 50:
            continue

        funding_match = _FUNDING_RE.search(section)
        website_match = _WEBSITE_RE.search(section)
        desc_match = _DESCRIPTION_RE.search(section)
        description = desc_match.group(1).strip() if desc_match else section[:150].strip()

        competitors.append(
            CompetitorData(
                name=name,
                description=description,
                funding=funding_match.group(0) if funding_match else None,
                status=classify_competitor_status(section),
                website=website_match.group(0) if website_match else None,
            )
        )

    return competitors[:MAX_COMPETITORS]


def parse_regulatory_data(content: str) -> List[RegulatoryData]:
    """One record per known regulation mentioned anywhere in *content*."""
    regulations: List[RegulatoryData] = []

    for pattern, name, jurisdiction, case_sensitive in REGULATION_PATTERNS:
        flags = 0 if case_sensitive else re.IGNORECASE
        if not re.search(pattern, content, flags):
            continue

        context_match = re.search(r".{0,100}" + pattern + r".{0,200}", content, flags)
        context = context_match.group(0) if context_match else ""
        cost_match = _COMPLIANCE_COST_RE.search(context)

        regulations.append(
            RegulatoryData(
                regulation=name,
                jurisdiction=jurisdiction,
                impact=context[:150].strip(),
                compliance_cost=cost_match.group(0) if cost_match else COMPLIANCE_COST_VARIABLE,
            )
        )

    return regulations


def parse_failure_modes(content: str) -> List[FailureMode]:
    """Parse numbered / headed failure patterns from failure-analysis text."""
    modes: List[FailureMode] = []

    for raw_section in _FAILURE_SPLIT_RE.split(content):
        section = raw_section.strip()
        if len(section) < 50:
            continue

        name_match = _FAILURE_NAME_RE.search(section)
        if not name_match:
            continue
        name = (name_match.group(1) or name_match.group(2)).strip()
        if len(name) < 5 or len(name) > 100:
            continue

        prob_match = _PERCENT_RE.search(section)
        probability = min(int(prob_match.group(1)), 100) if prob_match else DEFAULT_FAILURE_PROBABILITY

        time_match = _TIMEFRAME_RE.search(section)
        timeframe = time_match.group(1) if time_match else DEFAULT_FAILURE_TIMEFRAME

        modes.append(
            FailureMode(
                id=f"fm-parsed-{len(modes) + 1}",
                name=name,
                description=section[:200].replace("**", "").strip(),
                probability=probability,
                timeframe=timeframe,
            )
        )

    return modes[:MAX_PARSED_FAILURE_MODES]


def extract_keywords(text: str) -> List[str]:
    """Lowercase, punctuation-free, stop-word-filtered words longer than 2 chars.

    Duplicates are dropped; first-occurrence order is kept.
    """
    cleaned = re.sub(r"[^\w\s]", "", text.lower())
    keywords: List[str] = []
    seen: set[str] = set()
    for word in cleaned.split():
        if len(word) > 2 and word not in STOP_WORDS and word not in seen:
            seen.add(word)
            keywords.append(word)
    return keywords
