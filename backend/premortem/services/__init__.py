from .perplexity_client import (
    PerplexityAPIError,
    PerplexityClient,
    PerplexityConfigError,
    PerplexityRateLimitError,
)
from .failure_store import FailedStartupStore

__all__ = [
    "PerplexityAPIError",
    "PerplexityClient",
    "PerplexityConfigError",
    "PerplexityRateLimitError",
    "FailedStartupStore",
]
