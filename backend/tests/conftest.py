"""Shared fakes for the premortem test-suite.

No test performs network I/O: stage code talks to ``FakeClient`` /
``FakeStore``, and the real HTTP clients are driven through
``httpx.MockTransport``.
"""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import pytest

from premortem.schemas.evidence_schema import FailedStartup, GenerationResponse


class FakeClient:
    """Stands in for PerplexityClient.

    ``responses`` maps a system prompt to the content string, a full
    GenerationResponse, or an exception to raise. Unmapped prompts get
    ``default`` (an exception by default, so stages take their fallbacks).
    """

    def __init__(self, responses=None, default=None):
        self.responses = responses or {}
        self.default = default if default is not None else RuntimeError("generation service unavailable")
        self.calls = []

    async def query(self, system_prompt, user_prompt, **kwargs):
        self.calls.append({"system": system_prompt, "user": user_prompt, **kwargs})
        outcome = self.responses.get(system_prompt, self.default)
        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, GenerationResponse):
            return outcome
        return GenerationResponse(content=outcome, model="fake-model")

    def systems(self):
        return [call["system"] for call in self.calls]


class FakeStore:
    """Stands in for FailedStartupStore."""

    def __init__(self, startups=None, error=None):
        self.startups = startups or []
        self.error = error
        self.calls = []

    async def get_failed_startups(self, limit=100, offset=0, sector=None):
        self.calls.append({"limit": limit, "offset": offset, "sector": sector})
        if self.error is not None:
            raise self.error
        return list(self.startups)


def make_startup(id, name, description="", **fields):
    return FailedStartup(id=id, name=name, description=description, **fields)


@pytest.fixture
def failing_client():
    return FakeClient()


@pytest.fixture
def empty_store():
    return FakeStore()


@pytest.fixture
def sample_startups():
    return [
        make_startup(
            "1", "InvoiceCo", "Invoicing for freelancers",
            category="Fintech", sector="Finance", year_died=2019,
            money_burned="$12M", money_burned_raw=12_000_000,
            failure_reason="Could not get paid users",
        ),
        make_startup("2", "PetPals", "Social network for pets", category="Social"),
        make_startup("3", "ToolBox", "Tool rental", category="Hardware", money_burned_raw=500_000),
        make_startup("4", "SaaSly", "SaaS for freelancers", sector="Software"),
    ]
