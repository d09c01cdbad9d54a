"""
Async HTTP Client Configuration

Timeout presets and status-code classification for the two outbound
services: the Perplexity text-generation API and the historical-failures
data store.
"""

import os

import httpx


def _env_float(key: str, default: float) -> float:
    try:
        return float(os.getenv(key, str(default)))
    except ValueError:
        return default


def _env_int(key: str, default: int) -> int:
    try:
        return int(os.getenv(key, str(default)))
    except ValueError:
        return default


# Timeout configurations (in seconds)
class Timeouts:
    """Timeout presets for external services."""
    PERPLEXITY = 60.0       # search-grounded generation is slow
    FAILED_STARTUPS = 10.0  # data-store RPC
    CONNECT = 5.0


# Retry configuration
class RetryConfig:
    """The only retryable condition is a rate limit, handled by key rotation."""
    RATE_LIMIT_CODE = 429


def get_timeout(service: str) -> httpx.Timeout:
    """Get timeout configuration for a service.

    ``PERPLEXITY_REQUEST_TIMEOUT`` overrides the generation-service preset.
    """
    timeouts = {
        "perplexity": _env_float("PERPLEXITY_REQUEST_TIMEOUT", Timeouts.PERPLEXITY),
        "failed_startups": Timeouts.FAILED_STARTUPS,
    }
    seconds = timeouts.get(service.lower(), 10.0)
    return httpx.Timeout(seconds, connect=Timeouts.CONNECT)


def is_rate_limited(status_code: int) -> bool:
    """Check if an HTTP status signals a rate limit (retry on next key)."""
    return status_code == RetryConfig.RATE_LIMIT_CODE
