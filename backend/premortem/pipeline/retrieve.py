"""
Retrieval Stage

Fans out four independent evidence queries and waits for all of them:
  1. Market sizing         (generation service -> parse_market_data)
  2. Competitor landscape  (generation service -> parse_competitor_data)
  3. Regulatory landscape  (generation service -> parse_regulatory_data)
  4. Historical failures   (data store -> keyword relevance ranking)

Each sub-query catches its own errors and degrades to an empty/default
result, so one failure never cancels its siblings and the stage as a
whole never raises.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Tuple

from ..constants import (
    GROWTH_RATE_UNKNOWN,
    HISTORICAL_FETCH_LIMIT,
    MARKET_SIZE_UNKNOWN,
    MAX_HISTORICAL_MATCHES,
)
from ..schemas.evidence_schema import CompetitorData, FailedStartup, MarketData, RegulatoryData
from ..schemas.report_schema import Citation, IdeaDecomposition
from ..services.failure_store import FailedStartupStore
from ..services.perplexity_client import PerplexityClient
from .parsers import extract_keywords, parse_competitor_data, parse_market_data, parse_regulatory_data
from .prompts import (
    COMPETITIVE_LANDSCAPE_PROMPT,
    EVIDENCE_RETRIEVAL_PROMPT,
    REGULATORY_CHECK_PROMPT,
    build_competitor_prompt,
    build_market_prompt,
    build_regulatory_prompt,
)
from .timing import async_timer

logger = logging.getLogger(__name__)


@dataclass
class RetrievalResult:
    """Evidence gathered for one idea."""

    market_data: MarketData = field(default_factory=MarketData)
    competitors: List[CompetitorData] = field(default_factory=list)
    regulations: List[RegulatoryData] = field(default_factory=list)
    historical_failures: List[FailedStartup] = field(default_factory=list)
    citations: List[Citation] = field(default_factory=list)


# ── Sub-queries ──────────────────────────────────────────────────────────

async def fetch_market_data(
    decomposition: IdeaDecomposition,
    client: PerplexityClient,
) -> Tuple[MarketData, List[Citation]]:
    try:
        async with async_timer("retrieve.market", "QUERY"):
            response = await client.query(
                EVIDENCE_RETRIEVAL_PROMPT,
                build_market_prompt(
                    value_proposition=decomposition.value_proposition,
                    target_market=decomposition.target_market,
                ),
            )
        return parse_market_data(response.content), response.citations
    except Exception as exc:
        logger.warning("Market data query failed: %s", exc)
        return MarketData(size=MARKET_SIZE_UNKNOWN, growth_rate=GROWTH_RATE_UNKNOWN), []


async def fetch_competitors(
    decomposition: IdeaDecomposition,
    client: PerplexityClient,
) -> Tuple[List[CompetitorData], List[Citation]]:
    try:
        async with async_timer("retrieve.competitors", "QUERY"):
            response = await client.query(
                COMPETITIVE_LANDSCAPE_PROMPT,
                build_competitor_prompt(
                    value_proposition=decomposition.value_proposition,
                    target_market=decomposition.target_market,
                    business_model=decomposition.business_model,
                ),
            )
        return parse_competitor_data(response.content), response.citations
    except Exception as exc:
        logger.warning("Competitor query failed: %s", exc)
        return [], []


async def fetch_regulations(
    decomposition: IdeaDecomposition,
    client: PerplexityClient,
) -> Tuple[List[RegulatoryData], List[Citation]]:
    try:
        async with async_timer("retrieve.regulations", "QUERY"):
            response = await client.query(
                REGULATORY_CHECK_PROMPT,
                build_regulatory_prompt(
                    value_proposition=decomposition.value_proposition,
                    target_market=decomposition.target_market,
                ),
            )
        return parse_regulatory_data(response.content), response.citations
    except Exception as exc:
        logger.warning("Regulatory query failed: %s", exc)
        return [], []


def rank_historical_failures(
    decomposition: IdeaDecomposition,
    startups: List[FailedStartup],
) -> List[FailedStartup]:
    """Order failure records by keyword overlap with the idea.

    A record scores one point per idea keyword that is a substring of, or
    contains, any of the record's keywords. Records scoring zero are
    dropped; ties keep the data store's order.
    """
    idea_keywords = extract_keywords(
        f"{decomposition.value_proposition} {decomposition.target_market} {decomposition.business_model}"
    )

    scored: List[Tuple[int, FailedStartup]] = []
    for startup in startups:
        record_keywords = extract_keywords(
            f"{startup.name} {startup.description} {startup.category or ''} {startup.sector or ''}"
        )
        score = sum(
            1
            for keyword in idea_keywords
            if any(keyword in other or other in keyword for other in record_keywords)
        )
        if score > 0:
            scored.append((score, startup))

    scored.sort(key=lambda pair: pair[0], reverse=True)
    return [startup for _, startup in scored[:MAX_HISTORICAL_MATCHES]]


async def fetch_historical_failures(
    decomposition: IdeaDecomposition,
    store: FailedStartupStore,
) -> List[FailedStartup]:
    try:
        async with async_timer("retrieve.historical", "QUERY"):
            startups = await store.get_failed_startups(limit=HISTORICAL_FETCH_LIMIT)
        return rank_historical_failures(decomposition, startups)
    except Exception as exc:
        logger.warning("Historical failure lookup failed: %s", exc)
        return []


# ── Stage entry point ────────────────────────────────────────────────────

async def retrieve_evidence(
    decomposition: IdeaDecomposition,
    client: PerplexityClient,
    store: FailedStartupStore,
) -> RetrievalResult:
    """Run all four sub-queries concurrently and assemble the result."""
    print("🔎 [RETRIEVE] Launching market, competitor, regulatory and historical queries")

    (market_data, market_citations), (competitors, competitor_citations), (
        regulations,
        regulatory_citations,
    ), historical = await asyncio.gather(
        fetch_market_data(decomposition, client),
        fetch_competitors(decomposition, client),
        fetch_regulations(decomposition, client),
        fetch_historical_failures(decomposition, store),
    )

    print(
        f"✅ [RETRIEVE] market={market_data.size!r}, competitors={len(competitors)}, "
        f"regulations={len(regulations)}, historical={len(historical)}"
    )

    return RetrievalResult(
        market_data=market_data,
        competitors=competitors,
        regulations=regulations,
        historical_failures=historical,
        citations=[*market_citations, *competitor_citations, *regulatory_citations],
    )
