"""Historical-failures store tests: RPC request shape, never-raise contract, helpers."""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import asyncio
import json

import httpx

from conftest import make_startup
from premortem.services.failure_store import (
    FailedStartupStore,
    calculate_total_burned,
    format_money,
    get_categories,
    search_failed_startups,
    summarize,
)

ROWS = [
    {
        "id": 17,
        "name": "Quibi",
        "description": "Short-form mobile video",
        "category": "Media",
        "year_died": 2020,
        "money_burned": "$1.75B",
        "money_burned_raw": 1_750_000_000,
        "failure_reason": "No product-market fit",
        "sector": "Entertainment",
        "tags": None,
        "unexpected_column": "ignored",
    },
    {"id": "18", "name": "Juicero", "description": None, "category": "Hardware"},
]


def _store(handler, api_key="test-key"):
    return FailedStartupStore(
        base_url="https://db.example.com/",
        api_key=api_key,
        transport=httpx.MockTransport(handler),
    )


class TestFetch:
    def test_posts_rpc_body_and_parses_rows(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=ROWS)

        startups = asyncio.run(_store(handler).get_failed_startups(limit=20, offset=40, sector="Media"))

        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == "https://db.example.com/rest/v1/rpc/get_startups_list"
        assert request.headers["apikey"] == "test-key"
        assert request.headers["Authorization"] == "Bearer test-key"
        assert json.loads(request.content) == {"p_limit": 20, "p_offset": 40, "p_sector": "Media"}

        quibi, juicero = startups
        assert quibi.id == "17"
        assert quibi.money_burned_raw == 1_750_000_000
        assert quibi.tags == []
        assert juicero.description == ""

    def test_http_error_yields_empty_list(self):
        store = _store(lambda request: httpx.Response(500, text="db down"))
        assert asyncio.run(store.get_failed_startups()) == []

    def test_transport_error_yields_empty_list(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        assert asyncio.run(_store(handler).get_failed_startups()) == []

    def test_missing_key_makes_no_request(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=ROWS)

        assert asyncio.run(_store(handler, api_key="").get_failed_startups()) == []
        assert seen == []

    def test_non_list_payload_yields_empty_list(self):
        store = _store(lambda request: httpx.Response(200, json={"message": "permission denied"}))
        assert asyncio.run(store.get_failed_startups()) == []

    def test_malformed_row_is_skipped(self):
        rows = [{"name": "No id here"}, ROWS[1]]
        store = _store(lambda request: httpx.Response(200, json=rows))

        startups = asyncio.run(store.get_failed_startups())

        assert [s.name for s in startups] == ["Juicero"]


class TestHelpers:
    def test_search_is_case_insensitive_across_fields(self, sample_startups):
        assert [s.name for s in search_failed_startups("fintech", sample_startups)] == ["InvoiceCo"]
        assert [s.name for s in search_failed_startups("PETS", sample_startups)] == ["PetPals"]
        assert search_failed_startups("blockchain", sample_startups) == []

    def test_categories_are_sorted_union(self):
        startups = [
            make_startup("1", "A", category="Media", sector="Entertainment"),
            make_startup("2", "B", category="Media"),
            make_startup("3", "C"),
        ]
        assert get_categories(startups) == ["Entertainment", "Media"]

    def test_total_burned_treats_missing_as_zero(self, sample_startups):
        assert calculate_total_burned(sample_startups) == 12_500_000
        assert calculate_total_burned([]) == 0

    def test_format_money(self):
        assert format_money(1_500_000_000) == "$1.5B"
        assert format_money(2_300_000) == "$2.3M"
        assert format_money(56_000) == "$56K"
        assert format_money(789) == "$789"
        assert format_money(0) == "$0"

    def test_summarize(self, sample_startups):
        summary = summarize(sample_startups)

        assert summary["count"] == 4
        assert summary["total_burned_formatted"] == "$12.5M"
        assert summary["startups"] == sample_startups
