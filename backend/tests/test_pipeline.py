"""Orchestrator tests: stage ordering, progress, failure handling, re-runs."""

import os
import sys

# Ensure the backend package is importable
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import asyncio
from unittest.mock import patch

import pytest

from conftest import FakeClient, FakeStore
from premortem.pipeline import PipelineStage, PremortemPipeline, dedupe_citations
from premortem.pipeline.prompts import (
    COMPETITIVE_LANDSCAPE_PROMPT,
    DECOMPOSITION_PROMPT,
    EVIDENCE_RETRIEVAL_PROMPT,
    FAILURE_PATTERNS_PROMPT,
)
from premortem.schemas.evidence_schema import GenerationResponse
from premortem.schemas.report_schema import Citation

IDEA = "A monthly subscription tool for freelancers to send invoices"


def _citation(url, title=None):
    return Citation(id="citation-1", source="example.com", url=url, title=title or url)


def _run(pipeline, idea=IDEA):
    events = []
    report = asyncio.run(pipeline.run(idea, on_progress=events.append))
    return report, events


class TestFullRun:
    def test_completes_with_every_service_failing(self, failing_client, sample_startups):
        pipeline = PremortemPipeline(client=failing_client, store=FakeStore(sample_startups))

        report, _ = _run(pipeline)

        assert report.status == "complete"
        assert report.error is None
        assert report.id.startswith("report-")
        assert report.idea_id.startswith("idea-")
        assert report.version == 1
        assert report.original_idea == IDEA
        assert report.decomposition.business_model == "Subscription-based SaaS"
        assert [m.name for m in report.failure_modes] == ["Churn Death Spiral", "CAC Blowout", "Premature Scaling"]
        assert report.risk_score is not None
        assert report.early_warnings[-1].id == "warn-retention"
        assert [c.name for c in report.failed_startups] == ["SaaSly", "InvoiceCo", "ToolBox"]

    def test_progress_events_in_stage_order(self, failing_client, empty_store):
        _, events = _run(PremortemPipeline(client=failing_client, store=empty_store))

        assert [(e.current_stage, e.stage_progress) for e in events] == [
            ("decomposition", 0),
            ("decomposition", 100),
            ("retrieval", 0),
            ("retrieval", 100),
            ("synthesis", 0),
            ("synthesis", 100),
            ("scoring", 0),
            ("scoring", 100),
        ]
        assert events[0].stage_message == "Analyzing idea structure..."
        assert events[0].completed_stages == []
        assert events[-1].stage_message == "Risk assessment complete"
        assert events[-1].completed_stages == ["decomposition", "retrieval", "synthesis"]

    def test_stage_error_keeps_earlier_output(self, failing_client, empty_store):
        pipeline = PremortemPipeline(client=failing_client, store=empty_store)

        with patch("premortem.pipeline.graph.score_risks", side_effect=RuntimeError("scoring exploded")):
            report, events = _run(pipeline)

        assert report.status == "error"
        assert report.error == "scoring exploded"
        assert report.decomposition is not None
        assert report.failure_modes
        assert report.risk_score is None
        assert report.improvement_levers == []
        assert (events[-1].current_stage, events[-1].stage_progress) == ("scoring", 0)

    def test_citations_are_deduplicated_across_stages(self, empty_store):
        client = FakeClient({
            EVIDENCE_RETRIEVAL_PROMPT: GenerationResponse(
                content="Market valued at $4 billion.", model="m", citations=[_citation("https://a.io")]
            ),
            COMPETITIVE_LANDSCAPE_PROMPT: GenerationResponse(
                content="", model="m", citations=[_citation("https://b.io")]
            ),
            FAILURE_PATTERNS_PROMPT: GenerationResponse(
                content="", model="m", citations=[_citation("https://a.io"), _citation("https://c.io")]
            ),
        })

        report, _ = _run(PremortemPipeline(client=client, store=empty_store))

        assert [c.url for c in report.citations] == ["https://a.io", "https://b.io", "https://c.io"]

    def test_quick_preview_uses_smaller_budget(self, failing_client, empty_store):
        pipeline = PremortemPipeline(client=failing_client, store=empty_store)

        decomposition = asyncio.run(pipeline.quick_preview(IDEA))

        assert decomposition.business_model == "Subscription-based SaaS"
        assert failing_client.calls[0]["max_tokens"] == 800
        assert failing_client.systems() == [DECOMPOSITION_PROMPT]
        assert empty_store.calls == []


class TestRerun:
    def _complete_report(self, client, store):
        report, _ = _run(PremortemPipeline(client=client, store=store))
        client.calls.clear()
        return report

    def test_resume_skips_decomposition(self, failing_client, empty_store):
        original = self._complete_report(failing_client, empty_store)
        pipeline = PremortemPipeline(client=failing_client, store=empty_store)
        events = []

        rerun = asyncio.run(pipeline.rerun_from_stage(original, "synthesis", on_progress=events.append))

        assert rerun.id == original.id
        assert rerun.version == 2
        assert rerun.status == "complete"
        assert rerun.decomposition == original.decomposition
        assert DECOMPOSITION_PROMPT not in failing_client.systems()
        assert events[0].current_stage == "retrieval"
        assert events[0].stage_message == "Re-gathering evidence..."
        assert len(events) == 6

    def test_original_report_is_untouched(self, failing_client, empty_store):
        original = self._complete_report(failing_client, empty_store)
        snapshot = original.model_copy(deep=True)

        asyncio.run(PremortemPipeline(client=failing_client, store=empty_store).rerun_from_stage(original, "scoring"))

        assert original == snapshot

    def test_restart_from_decomposition(self, failing_client, empty_store):
        original = self._complete_report(failing_client, empty_store)

        rerun = asyncio.run(
            PremortemPipeline(client=failing_client, store=empty_store).rerun_from_stage(
                original, PipelineStage.DECOMPOSITION
            )
        )

        assert rerun.version == 2
        assert failing_client.systems()[0] == DECOMPOSITION_PROMPT

    def test_missing_decomposition_restarts_from_the_idea(self, failing_client, empty_store):
        original = self._complete_report(failing_client, empty_store)
        original.decomposition = None

        rerun = asyncio.run(
            PremortemPipeline(client=failing_client, store=empty_store).rerun_from_stage(original, "retrieval")
        )

        assert rerun.decomposition is not None
        assert failing_client.systems()[0] == DECOMPOSITION_PROMPT

    def test_unknown_stage_raises_value_error(self, failing_client, empty_store):
        original = self._complete_report(failing_client, empty_store)
        pipeline = PremortemPipeline(client=failing_client, store=empty_store)

        with pytest.raises(ValueError):
            asyncio.run(pipeline.rerun_from_stage(original, "publishing"))


class TestDedupeCitations:
    def test_url_then_title_keys(self):
        citations = [
            _citation("https://a.io"),
            _citation("https://a.io", title="Same url, other title"),
            Citation(id="citation-2", source="inline", title="Reference 2"),
            Citation(id="citation-9", source="inline", title="Reference 2"),
        ]

        unique = dedupe_citations(citations)

        assert [(c.url, c.title) for c in unique] == [("https://a.io", "https://a.io"), (None, "Reference 2")]

    def test_is_idempotent(self):
        citations = [_citation("https://a.io"), _citation("https://b.io"), _citation("https://a.io")]
        once = dedupe_citations(citations)
        assert dedupe_citations(once) == once
