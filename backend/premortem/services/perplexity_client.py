"""Perplexity client: the single point of contact with the generation service.

All pipeline stages MUST go through one ``PerplexityClient`` instance.
The instance owns:
  - an ordered pool of API keys, rotated round-robin on EVERY request
  - an in-process response cache keyed by (model, first 500 prompt chars)
  - rate-limit recovery: a 429 moves on to the next key, at most one
    attempt per key; any other HTTP error is raised immediately
  - citation extraction from structured sources and inline ``[n]`` refs

A missing key pool is NOT an error until the first uncached call.
"""

from __future__ import annotations

import json
import logging
import os
import re
import time
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlparse

import httpx

from ..schemas.evidence_schema import GenerationResponse, TokenUsage
from ..schemas.report_schema import Citation
from .http_client import _env_float, _env_int, get_timeout, is_rate_limited

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Constants: all read from environment with safe defaults
# ---------------------------------------------------------------------------
_PERPLEXITY_API_URL = "https://api.perplexity.ai/chat/completions"
_CACHE_PROMPT_CHARS = 500
_MAX_NUMBERED_KEYS = 3

_INLINE_CITATION_RE = re.compile(r"\[(\d+)\]")


class PerplexityConfigError(EnvironmentError):
    """No API keys configured."""


class PerplexityAPIError(Exception):
    """Non-2xx response from the generation service."""

    def __init__(self, status_code: int, body: str):
        self.status_code = status_code
        self.body = body
        super().__init__(f"Perplexity API error ({status_code}): {body[:400]}")


class PerplexityRateLimitError(PerplexityAPIError):
    """HTTP 429, recoverable by rotating to the next key."""

    def __init__(self, body: str):
        super().__init__(429, body)
        self.args = (f"Rate limited: {body[:400]}",)


def load_api_keys_from_env() -> List[str]:
    """Collect the key pool: PERPLEXITY_API_KEY_1..3, then PERPLEXITY_API_KEYS."""
    keys: List[str] = []
    for index in range(1, _MAX_NUMBERED_KEYS + 1):
        value = os.getenv(f"PERPLEXITY_API_KEY_{index}", "").strip()
        if value:
            keys.append(value)
    extra = os.getenv("PERPLEXITY_API_KEYS", "")
    keys.extend(k.strip() for k in extra.split(",") if k.strip())
    return keys


def get_default_model() -> str:
    return os.getenv("PERPLEXITY_MODEL", "sonar-pro").strip()


# ---------------------------------------------------------------------------
# JSON sanitizer: extracts a JSON object from LLM output
# ---------------------------------------------------------------------------
def sanitize_json(raw: str) -> str:
    """Extract the first-``{``-to-last-``}`` JSON object from raw LLM output.

    Handles:
      - Markdown fences (```json ... ```)
      - Leading/trailing whitespace and BOM
      - Prose before/after JSON
      - Trailing commas before } or ]

    Raises ValueError if no JSON object is found.
    """
    text = raw.strip().lstrip("\ufeff")

    brace_idx = text.find("{")
    if brace_idx == -1:
        raise ValueError("LLM did not return a JSON object — no '{' found")
    text = text[brace_idx:]

    rbrace_idx = text.rfind("}")
    if rbrace_idx == -1:
        raise ValueError("LLM did not return a JSON object — no '}' found")
    text = text[: rbrace_idx + 1]

    text = re.sub(r",\s*([}\]])", r"\1", text)

    return text


# ---------------------------------------------------------------------------
# Citation extraction
# ---------------------------------------------------------------------------
def _source_name(url: str) -> str:
    """Human-readable source name: the URL hostname without ``www.``."""
    host = urlparse(url).hostname or url
    return host.replace("www.", "", 1)


def _normalize_sources(data: Dict[str, Any]) -> List[Dict[str, str]]:
    """Return ``[{url, title}]`` from ``search_results`` or legacy ``citations``."""
    raw = data.get("search_results") or data.get("citations") or []
    if not isinstance(raw, list):
        return []

    sources: List[Dict[str, str]] = []
    for item in raw:
        if isinstance(item, str) and item:
            sources.append({"url": item, "title": item})
        elif isinstance(item, dict) and item.get("url"):
            url = str(item["url"])
            sources.append({"url": url, "title": str(item.get("title") or url)})
    return sources


def parse_citations(
    content: str,
    sources: Optional[List[Dict[str, str]]] = None,
    retrieved_at: Optional[datetime] = None,
) -> List[Citation]:
    """Build citations from structured sources plus uncovered inline ``[n]`` refs.

    Structured source *i* becomes ``citation-{i+1}``; an inline ``[n]`` whose
    ``citation-{n}`` does not already exist gets a placeholder citation.
    """
    retrieved_at = retrieved_at or datetime.now(timezone.utc)
    citations: List[Citation] = []
    seen_ids: set[str] = set()

    for index, source in enumerate(sources or []):
        citation_id = f"citation-{index + 1}"
        citations.append(
            Citation(
                id=citation_id,
                source=_source_name(source["url"]),
                url=source["url"],
                title=source.get("title") or source["url"],
                snippet="",
                retrieved_at=retrieved_at,
            )
        )
        seen_ids.add(citation_id)

    for match in _INLINE_CITATION_RE.finditer(content):
        number = int(match.group(1))
        citation_id = f"citation-{number}"
        if citation_id in seen_ids:
            continue
        citations.append(
            Citation(
                id=citation_id,
                source="inline",
                title=f"Reference {number}",
                snippet="",
                retrieved_at=retrieved_at,
            )
        )
        seen_ids.add(citation_id)

    return citations


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------
class PerplexityClient:
    """Key-rotating, caching client for the Perplexity chat completions API.

    Construct one per process and hand it to every pipeline stage; construct
    a fresh one per test for isolation.
    """

    def __init__(
        self,
        api_keys: Optional[List[str]] = None,
        *,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        cache_ttl: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.time,
    ):
        self._api_keys: List[str] = list(api_keys) if api_keys is not None else load_api_keys_from_env()
        self._key_index = 0
        self._cache: Dict[str, tuple[GenerationResponse, float]] = {}
        self._transport = transport
        self._clock = clock

        self.model = model or get_default_model()
        self.temperature = temperature if temperature is not None else _env_float("PERPLEXITY_TEMPERATURE", 0.2)
        self.max_tokens = max_tokens if max_tokens is not None else _env_int("PERPLEXITY_MAX_TOKENS", 4000)
        self.cache_ttl = cache_ttl if cache_ttl is not None else _env_float("PERPLEXITY_CACHE_TTL", 3600.0)

    @property
    def key_count(self) -> int:
        return len(self._api_keys)

    def _next_api_key(self) -> str:
        """Return the next key in round-robin order."""
        if not self._api_keys:
            print("⚠️  [PPLX] API key missing (PERPLEXITY_API_KEY_1..3)")
            raise PerplexityConfigError("No Perplexity API keys configured")
        key = self._api_keys[self._key_index]
        self._key_index = (self._key_index + 1) % len(self._api_keys)
        return key

    @staticmethod
    def cache_key(prompt: str, model: str) -> str:
        return f"{model}:{prompt[:_CACHE_PROMPT_CHARS]}"

    def _cached(self, key: str) -> Optional[GenerationResponse]:
        entry = self._cache.get(key)
        if entry is None:
            return None
        response, stored_at = entry
        if self._clock() - stored_at < self.cache_ttl:
            return response
        return None

    def _build_payload(
        self,
        *,
        system_prompt: str,
        user_prompt: str,
        model: str,
        temperature: float,
        max_tokens: int,
        return_citations: bool,
        search_domain_filter: Optional[List[str]],
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
            "return_citations": return_citations,
        }
        if search_domain_filter:
            payload["search_domain_filter"] = list(search_domain_filter)
        return payload

    async def query(
        self,
        system_prompt: str,
        user_prompt: str,
        *,
        model: Optional[str] = None,
        temperature: Optional[float] = None,
        max_tokens: Optional[int] = None,
        use_cache: bool = True,
        search_domain_filter: Optional[List[str]] = None,
        return_citations: bool = True,
    ) -> GenerationResponse:
        """Send one system/user prompt pair and return text plus citations.

        Raises
        ------
        PerplexityConfigError
            No keys configured (and no cache hit).
        PerplexityRateLimitError
            Every key in the pool was rate limited.
        PerplexityAPIError
            Any other non-2xx response; not retried.
        """
        model = model or self.model
        temperature = self.temperature if temperature is None else temperature
        max_tokens = max_tokens or self.max_tokens

        full_prompt = f"{system_prompt}\n\n{user_prompt}"
        cache_key = self.cache_key(full_prompt, model)

        if use_cache:
            cached = self._cached(cache_key)
            if cached is not None:
                print(f"🗂️  [PPLX] Cache hit ({model})")
                return cached

        payload = self._build_payload(
            system_prompt=system_prompt,
            user_prompt=user_prompt,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
            return_citations=return_citations,
            search_domain_filter=search_domain_filter,
        )

        last_error: Optional[PerplexityAPIError] = None
        attempts = max(len(self._api_keys), 1)

        for attempt in range(attempts):
            api_key = self._next_api_key()
            headers = {
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            }

            t0 = time.time()
            print(f"🧠 [PPLX] Calling {model} (attempt {attempt + 1}/{attempts})")
            async with httpx.AsyncClient(
                timeout=get_timeout("perplexity"),
                transport=self._transport,
            ) as client:
                response = await client.post(_PERPLEXITY_API_URL, headers=headers, json=payload)
            duration = time.time() - t0
            print(f"📦 [PPLX] HTTP {response.status_code} ({duration:.1f}s)")

            if is_rate_limited(response.status_code):
                last_error = PerplexityRateLimitError(response.text)
                logger.warning("Perplexity rate limited on key #%d, rotating", attempt + 1)
                continue

            if response.status_code >= 400:
                raise PerplexityAPIError(response.status_code, response.text)

            result = self._parse_response(response.json(), model)

            if use_cache:
                self._cache[cache_key] = (result, self._clock())

            return result

        raise last_error or PerplexityConfigError("All Perplexity API keys exhausted")

    @staticmethod
    def _parse_response(data: Dict[str, Any], model: str) -> GenerationResponse:
        choices = data.get("choices") or [{}]
        message = choices[0].get("message") or {}
        content = message.get("content") or ""

        usage = data.get("usage") or {}
        if usage:
            print(
                f"🧠 [PPLX] Tokens used: prompt={usage.get('prompt_tokens', '?')}, "
                f"completion={usage.get('completion_tokens', '?')}"
            )

        return GenerationResponse(
            content=content,
            citations=parse_citations(content, _normalize_sources(data)),
            model=data.get("model") or model,
            usage=TokenUsage(
                prompt_tokens=usage.get("prompt_tokens") or 0,
                completion_tokens=usage.get("completion_tokens") or 0,
            ),
        )

    # ── Operational helpers ──────────────────────────────────────────────

    def cache_stats(self) -> Dict[str, Any]:
        """Current cache size and keys (expired entries included until cleared)."""
        return {"size": len(self._cache), "keys": list(self._cache.keys())}

    def clear_cache(self) -> None:
        self._cache.clear()


def parse_json_response(content: str) -> Dict[str, Any]:
    """Parse the JSON object embedded in *content*.

    Raises ValueError (``json.JSONDecodeError`` is a subclass) when there is
    no object or it does not decode to a dict.
    """
    parsed = json.loads(sanitize_json(content))
    if not isinstance(parsed, dict):
        raise ValueError("LLM JSON payload is not an object")
    return parsed
