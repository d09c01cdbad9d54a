"""
Decomposition Stage

Turns raw idea text into an IdeaDecomposition. The generation service is
asked for a JSON object first; if the call fails or the output cannot be
parsed, a deterministic keyword heuristic produces the breakdown instead.
This stage never raises.
"""

import logging
import re
from typing import Any, List

from ..constants import (
    BUSINESS_MODEL_RULES,
    DEFAULT_BUSINESS_MODEL,
    DEFAULT_TARGET_MARKET,
    MAX_ASSUMPTIONS,
    MAX_HYPOTHESES,
    TARGET_MARKET_RULES,
)
from ..schemas.report_schema import IdeaDecomposition
from ..services.perplexity_client import PerplexityClient, parse_json_response
from .prompts import DECOMPOSITION_PROMPT

logger = logging.getLogger(__name__)

FULL_RUN_MAX_TOKENS = 1000
QUICK_PREVIEW_MAX_TOKENS = 800

_SENTENCE_SPLIT_RE = re.compile(r"[.!?]+")


def _classify(text: str, rules, default: str) -> str:
    """First rule with any keyword contained in *text* wins."""
    for keywords, label in rules:
        if any(keyword in text for keyword in keywords):
            return label
    return default


def _first_sentence(idea_text: str) -> str:
    sentences = [s.strip() for s in _SENTENCE_SPLIT_RE.split(idea_text) if s.strip()]
    return sentences[0] if sentences else idea_text[:200]


def _build_assumptions(lower: str, target_market: str, business_model: str) -> List[str]:
    assumptions = [
        f"{target_market} actively seeks solutions in this problem space",
        "The target market has budget and willingness to pay for this solution",
    ]

    if "ai" in lower or "machine learning" in lower:
        assumptions.append("AI/ML technology can deliver meaningfully better results than existing solutions")
        assumptions.append("Users trust AI-generated outputs for this use case")

    if "data" in lower or "analytics" in lower:
        assumptions.append("Users have access to or can provide the required data")
        assumptions.append("Data quality is sufficient for meaningful insights")

    if "SaaS" in business_model or "Subscription" in business_model:
        assumptions.append("Users will pay recurring fees rather than seeking one-time alternatives")
        assumptions.append("Unit economics work at projected customer acquisition costs")

    if "Marketplace" in business_model:
        assumptions.append("Can achieve critical mass on both sides of the marketplace")
        assumptions.append("Transaction value justifies the platform fee")

    assumptions.append("Incumbents will not quickly replicate core features")
    return assumptions[:MAX_ASSUMPTIONS]


def _build_hypotheses(lower: str, target_market: str, business_model: str) -> List[str]:
    hypotheses = [
        f"At least 40% of interviewed {target_market.lower()} express strong interest",
        "10+ potential customers commit to paying before product launch",
    ]

    if "ai" in lower or "automat" in lower:
        hypotheses.append("Automation reduces task completion time by at least 50%")

    hypotheses.append("Customer acquisition cost can be kept under $50 per user")
    hypotheses.append("Monthly retention rate exceeds 80% after first 90 days")

    if "SaaS" in business_model:
        hypotheses.append("Customers convert from free to paid at 5%+ rate")

    if "Marketplace" in business_model:
        hypotheses.append("Supply-side users can be acquired at <$20 per active participant")

    hypotheses.append("Net Promoter Score exceeds 40 within first 100 users")
    return hypotheses[:MAX_HYPOTHESES]


def analyze_idea_locally(idea_text: str) -> IdeaDecomposition:
    """Rule-based decomposition. Pure function of the idea text, no network."""
    lower = idea_text.lower()
    target_market = _classify(lower, TARGET_MARKET_RULES, DEFAULT_TARGET_MARKET)
    business_model = _classify(lower, BUSINESS_MODEL_RULES, DEFAULT_BUSINESS_MODEL)

    return IdeaDecomposition(
        value_proposition=_first_sentence(idea_text),
        target_market=target_market,
        business_model=business_model,
        key_assumptions=_build_assumptions(lower, target_market, business_model),
        testable_hypotheses=_build_hypotheses(lower, target_market, business_model),
    )


def _text_field(data: dict, key: str) -> str:
    value = data.get(key)
    return value if isinstance(value, str) else ""


def _list_field(data: dict, key: str) -> List[str]:
    value: Any = data.get(key)
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, str)]


def decomposition_from_json(data: dict) -> IdeaDecomposition:
    """Build a decomposition from untrusted LLM JSON, defaulting bad fields."""
    return IdeaDecomposition(
        value_proposition=_text_field(data, "valueProposition"),
        target_market=_text_field(data, "targetMarket"),
        business_model=_text_field(data, "businessModel"),
        key_assumptions=_list_field(data, "keyAssumptions"),
        testable_hypotheses=_list_field(data, "testableHypotheses"),
    )


async def decompose_idea_with_llm(
    idea_text: str,
    client: PerplexityClient,
    max_tokens: int = FULL_RUN_MAX_TOKENS,
) -> IdeaDecomposition:
    """Ask the generation service for the breakdown. Raises on any failure."""
    response = await client.query(
        DECOMPOSITION_PROMPT,
        f"Analyze this startup idea:\n\n{idea_text}",
        max_tokens=max_tokens,
        return_citations=False,
    )
    return decomposition_from_json(parse_json_response(response.content))


async def decompose_idea(
    idea_text: str,
    client: PerplexityClient,
    max_tokens: int = FULL_RUN_MAX_TOKENS,
) -> IdeaDecomposition:
    """Decompose *idea_text*, falling back to the local heuristic on any error."""
    print(f"🧩 [DECOMPOSE] Analyzing idea ({len(idea_text)} chars)")
    try:
        decomposition = await decompose_idea_with_llm(idea_text, client, max_tokens)
        print("✅ [DECOMPOSE] Parsed LLM decomposition")
        return decomposition
    except Exception as exc:
        logger.warning("LLM decomposition failed, using local analysis: %s", exc)
        print("⚠️  [DECOMPOSE] Falling back to local analysis")
        return analyze_idea_locally(idea_text)
