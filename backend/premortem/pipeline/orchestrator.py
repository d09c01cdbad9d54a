"""
Premortem Pipeline Orchestrator

Runs the four stages in order over the compiled stage graph and writes
each stage's output onto the report as soon as that stage finishes.

- Progress is reported after every stage transition
- Any stage exception ends the run with ``status="error"``; fields set by
  earlier stages are kept
- A re-run copies the report, bumps its version and resumes from
  retrieval (or restarts from decomposition)
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Union

from ..schemas.report_schema import Citation, IdeaDecomposition, PipelineProgress, PremortemReport
from ..services.failure_store import FailedStartupStore
from ..services.perplexity_client import PerplexityClient
from .decompose import QUICK_PREVIEW_MAX_TOKENS, decompose_idea
from .graph import create_pipeline_graph
from .state import NODE_STAGES, STAGE_ORDER, PipelineStage, PipelineState
from .timing import async_timer

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[PipelineProgress], None]

STAGE_START_MESSAGES: Dict[PipelineStage, str] = {
    PipelineStage.DECOMPOSITION: "Analyzing idea structure...",
    PipelineStage.RETRIEVAL: "Gathering market intelligence...",
    PipelineStage.SYNTHESIS: "Synthesizing failure patterns...",
    PipelineStage.SCORING: "Calculating risk assessment...",
}

RERUN_START_MESSAGES: Dict[PipelineStage, str] = {
    PipelineStage.RETRIEVAL: "Re-gathering evidence...",
    PipelineStage.SYNTHESIS: "Re-synthesizing patterns...",
    PipelineStage.SCORING: "Re-calculating risks...",
}

STAGE_DONE_MESSAGES: Dict[PipelineStage, str] = {
    PipelineStage.DECOMPOSITION: "Idea decomposition complete",
    PipelineStage.RETRIEVAL: "Evidence retrieval complete",
    PipelineStage.SYNTHESIS: "Pattern synthesis complete",
    PipelineStage.SCORING: "Risk assessment complete",
}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def dedupe_citations(citations: List[Citation]) -> List[Citation]:
    """Drop citations whose url (or title, when there is no url) was already seen."""
    seen: set[str] = set()
    unique: List[Citation] = []
    for citation in citations:
        key = citation.url or citation.title
        if key in seen:
            continue
        seen.add(key)
        unique.append(citation)
    return unique


def new_report(idea_text: str) -> PremortemReport:
    return PremortemReport(
        id=f"report-{uuid.uuid4().hex[:12]}",
        idea_id=f"idea-{uuid.uuid4().hex[:12]}",
        original_idea=idea_text,
        status="generating",
    )


def _progress(stage: PipelineStage, percent: int, message: str) -> PipelineProgress:
    return PipelineProgress(
        current_stage=stage.value,
        stage_progress=percent,
        stage_message=message,
        completed_stages=[s.value for s in STAGE_ORDER[: STAGE_ORDER.index(stage)]],
    )


def _apply_stage_output(report: PremortemReport, stage: PipelineStage, update: dict) -> None:
    """Copy one node's state update onto the report."""
    if stage is PipelineStage.DECOMPOSITION:
        report.decomposition = update["decomposition"]

    elif stage is PipelineStage.RETRIEVAL:
        report.citations = dedupe_citations(update["evidence"].citations)

    elif stage is PipelineStage.SYNTHESIS:
        synthesis = update["synthesis"]
        report.failure_modes = synthesis.failure_modes
        report.market_risks = synthesis.market_risks
        report.timing_risks = synthesis.timing_risks
        report.regulatory_risks = synthesis.regulatory_risks
        report.distribution_challenges = synthesis.distribution_challenges
        report.failed_startups = synthesis.failed_comparables
        report.surviving_startups = synthesis.surviving_comparables
        report.citations = dedupe_citations([*report.citations, *synthesis.citations])

    elif stage is PipelineStage.SCORING:
        scoring = update["scoring"]
        report.risk_score = scoring.risk_score
        report.improvement_levers = scoring.improvement_levers
        report.early_warnings = scoring.early_warnings


class PremortemPipeline:
    """Owns the stage collaborators and runs analyses against them.

    One instance per process; the client carries the response cache and
    key-rotation index shared by every run.
    """

    def __init__(
        self,
        client: Optional[PerplexityClient] = None,
        store: Optional[FailedStartupStore] = None,
    ):
        self.client = client or PerplexityClient()
        self.store = store or FailedStartupStore()

    async def quick_preview(self, idea_text: str) -> IdeaDecomposition:
        """Decomposition only, with a smaller generation budget."""
        return await decompose_idea(idea_text, self.client, max_tokens=QUICK_PREVIEW_MAX_TOKENS)

    async def run(
        self,
        idea_text: str,
        on_progress: Optional[ProgressCallback] = None,
    ) -> PremortemReport:
        """Run all four stages for *idea_text* and return the report.

        Never raises for stage failures: the returned report then has
        ``status="error"`` and whatever fields completed stages produced.
        """
        report = new_report(idea_text)
        print(f"🚀 [PIPELINE] Starting analysis {report.id}")
        state: PipelineState = {
            "idea_text": idea_text,
            "decomposition": None,
            "evidence": None,
            "synthesis": None,
            "scoring": None,
        }
        await self._execute(report, state, PipelineStage.DECOMPOSITION, STAGE_START_MESSAGES, on_progress)
        return report

    async def rerun_from_stage(
        self,
        existing: PremortemReport,
        from_stage: Union[PipelineStage, str],
        on_progress: Optional[ProgressCallback] = None,
    ) -> PremortemReport:
        """Re-execute an existing report from *from_stage*.

        Retrieval output is not kept on the report, so any resume past
        decomposition re-runs retrieval, synthesis and scoring against the
        stored decomposition. Resuming from decomposition, or a report
        without one, restarts from the idea text. The returned report is a
        new object with the same id and ``version + 1``.

        Raises ValueError for an unknown stage name.
        """
        stage = PipelineStage(from_stage)

        report = existing.model_copy(deep=True)
        report.version += 1
        report.status = "generating"
        report.error = None
        report.updated_at = _utcnow()

        if stage is PipelineStage.DECOMPOSITION or report.decomposition is None:
            entry = PipelineStage.DECOMPOSITION
            messages = STAGE_START_MESSAGES
        else:
            entry = PipelineStage.RETRIEVAL
            messages = RERUN_START_MESSAGES

        print(f"🔁 [PIPELINE] Re-running {report.id} v{report.version} from {entry.value}")
        state: PipelineState = {
            "idea_text": report.original_idea,
            "decomposition": report.decomposition if entry is PipelineStage.RETRIEVAL else None,
            "evidence": None,
            "synthesis": None,
            "scoring": None,
        }
        await self._execute(report, state, entry, messages, on_progress)
        return report

    async def _execute(
        self,
        report: PremortemReport,
        state: PipelineState,
        entry: PipelineStage,
        start_messages: Dict[PipelineStage, str],
        on_progress: Optional[ProgressCallback],
    ) -> None:
        def emit(stage: PipelineStage, percent: int, message: str) -> None:
            if on_progress is not None:
                on_progress(_progress(stage, percent, message))

        graph = create_pipeline_graph(self.client, self.store, entry_stage=entry).compile()

        emit(entry, 0, start_messages[entry])
        try:
            async with async_timer("pipeline", "RUN"):
                async for chunk in graph.astream(state, stream_mode="updates"):
                    for node_name, update in chunk.items():
                        stage = NODE_STAGES[node_name]
                        _apply_stage_output(report, stage, update)
                        emit(stage, 100, STAGE_DONE_MESSAGES[stage])

                        position = STAGE_ORDER.index(stage)
                        if position + 1 < len(STAGE_ORDER):
                            following = STAGE_ORDER[position + 1]
                            emit(following, 0, start_messages[following])

            report.status = "complete"
            print(f"✅ [PIPELINE] {report.id} complete ({len(report.citations)} citations)")
        except Exception as exc:
            logger.exception("Pipeline run %s failed", report.id)
            print(f"❌ [PIPELINE] {report.id} failed: {exc}")
            report.status = "error"
            report.error = str(exc) or "An unknown error occurred"
        finally:
            report.updated_at = _utcnow()
