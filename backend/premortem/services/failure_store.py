"""Historical-failures data store client.

Calls the ``get_startups_list`` remote procedure on the failed-startups
REST endpoint and returns validated ``FailedStartup`` records.

Rules
-----
- Read-only
- NEVER raises to the caller: any transport / HTTP / payload error
  yields an empty list
- Rows that fail validation are skipped individually
"""

from __future__ import annotations

import logging
import os
from typing import Any, Dict, List, Optional

import httpx
from pydantic import ValidationError

from ..schemas.evidence_schema import FailedStartup
from .http_client import get_timeout

logger = logging.getLogger(__name__)

_DEFAULT_BASE_URL = "https://lentxykytbylpxytluic.supabase.co"
_RPC_PATH = "/rest/v1/rpc/get_startups_list"


class FailedStartupStore:
    """Paginated read access to the historical-failures database."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        *,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or os.getenv("FAILED_STARTUPS_URL", _DEFAULT_BASE_URL)).rstrip("/")
        self.api_key = api_key if api_key is not None else os.getenv("FAILED_STARTUPS_KEY", "").strip()
        self._transport = transport

    async def get_failed_startups(
        self,
        limit: int = 100,
        offset: int = 0,
        sector: Optional[str] = None,
    ) -> List[FailedStartup]:
        """Fetch one page of failure records, or ``[]`` on any error."""
        if not self.api_key:
            print("⚠️  [GRAVEYARD] FAILED_STARTUPS_KEY not set — no historical data")
            return []

        headers = {
            "Content-Type": "application/json",
            "apikey": self.api_key,
            "Authorization": f"Bearer {self.api_key}",
            "Content-Profile": "public",
        }
        payload = {"p_limit": limit, "p_offset": offset, "p_sector": sector}

        try:
            async with httpx.AsyncClient(
                timeout=get_timeout("failed_startups"),
                transport=self._transport,
            ) as client:
                response = await client.post(f"{self.base_url}{_RPC_PATH}", headers=headers, json=payload)
            if response.status_code >= 400:
                logger.warning(
                    "Failed-startups RPC HTTP %d: %s",
                    response.status_code,
                    response.text[:200],
                )
                return []
            rows = response.json() or []
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Error fetching failed startups: %s", exc)
            return []

        if not isinstance(rows, list):
            logger.warning("Failed-startups RPC returned %s, expected a list", type(rows).__name__)
            return []

        startups: List[FailedStartup] = []
        for row in rows:
            try:
                startups.append(FailedStartup.model_validate(row))
            except ValidationError as exc:
                logger.warning("Skipping malformed failed-startup row: %s", exc.errors()[:1])
        print(f"📦 [GRAVEYARD] {len(startups)} records (limit={limit}, offset={offset}, sector={sector!r})")
        return startups


# ── Browsing helpers ────────────────────────────────────────────────────

def search_failed_startups(query: str, startups: List[FailedStartup]) -> List[FailedStartup]:
    """Case-insensitive substring search over name, description, category, sector."""
    needle = query.lower()
    return [
        s for s in startups
        if needle in s.name.lower()
        or needle in s.description.lower()
        or needle in (s.category or "").lower()
        or needle in (s.sector or "").lower()
    ]


def get_categories(startups: List[FailedStartup]) -> List[str]:
    """Sorted distinct union of categories and sectors."""
    categories: set[str] = set()
    for s in startups:
        if s.category:
            categories.add(s.category)
        if s.sector:
            categories.add(s.sector)
    return sorted(categories)


def calculate_total_burned(startups: List[FailedStartup]) -> float:
    return sum(s.money_burned_raw or 0 for s in startups)


def format_money(amount: float) -> str:
    """$1.2B / $3.4M / $56K / $789."""
    if amount >= 1_000_000_000:
        return f"${amount / 1_000_000_000:.1f}B"
    if amount >= 1_000_000:
        return f"${amount / 1_000_000:.1f}M"
    if amount >= 1_000:
        return f"${amount / 1_000:.0f}K"
    return f"${amount:g}"


def summarize(startups: List[FailedStartup]) -> Dict[str, Any]:
    """Listing payload for the graveyard endpoint."""
    total = calculate_total_burned(startups)
    return {
        "startups": startups,
        "count": len(startups),
        "categories": get_categories(startups),
        "total_burned": total,
        "total_burned_formatted": format_money(total),
    }
