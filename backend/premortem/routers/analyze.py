"""
Analysis Router with Timing Instrumentation

Endpoints:
  POST /api/analyze          — Run the premortem pipeline (or a quick preview)
  GET  /api/analyze          — Static service descriptor
  POST /api/analyze/rerun    — Re-run an existing report from a stage
"""

import time

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse

from .. import __version__
from ..pipeline.orchestrator import PremortemPipeline
from ..pipeline.state import STAGE_ORDER
from ..schemas.analyze_schema import (
    AnalyzeRequest,
    AnalyzeResponse,
    QuickPreviewResponse,
    ReportSummary,
    RerunRequest,
    RerunResponse,
)
from ..services.pipeline_dependency import get_pipeline


router = APIRouter(
    prefix="/api/analyze",
    tags=["Analysis"],
    responses={
        400: {"description": "Missing or empty idea"},
        500: {"description": "Internal server error during analysis"},
    },
)


def _json(model, status_code: int = status.HTTP_200_OK) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=model.model_dump(mode="json", by_alias=True))


@router.post(
    "",
    status_code=status.HTTP_200_OK,
    summary="Analyze a Startup Idea",
    response_description="Premortem report, or only the decomposition for a quick preview",
)
async def analyze_idea(
    request: AnalyzeRequest,
    pipeline: PremortemPipeline = Depends(get_pipeline),
) -> JSONResponse:
    """
    Run the four-stage premortem pipeline on an idea.

    A run that fails inside a stage still answers 200 with
    ``success=false`` and the partial report; only an unexpected exception
    outside the pipeline answers 500.
    """
    idea = (request.idea or "").strip()
    if not idea:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": "Idea is required"},
        )

    start_time = time.perf_counter()
    print(f"[TIMING] analyze_endpoint: START (quick_preview={request.quick_preview})")

    try:
        if request.quick_preview:
            decomposition = await pipeline.quick_preview(idea)
            return _json(QuickPreviewResponse(decomposition=decomposition))

        report = await pipeline.run(idea)
        response = AnalyzeResponse(
            success=report.status == "complete",
            report=ReportSummary.from_report(report),
            error=report.error,
        )

        total_duration = (time.perf_counter() - start_time) * 1000
        print(f"[TIMING] analyze_endpoint: END — duration={total_duration:.0f}ms")
        return _json(response)

    except Exception as e:
        total_duration = (time.perf_counter() - start_time) * 1000
        print(f"[TIMING] analyze_endpoint: ERROR after {total_duration:.0f}ms — {str(e)[:100]}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": str(e) or "Analysis failed", "report": None},
        )


@router.get(
    "",
    summary="Service Descriptor",
    description="Static description of the analysis endpoint",
)
async def describe_service():
    return {
        "name": "Premortem Analysis API",
        "status": "healthy",
        "version": __version__,
        "endpoints": {
            "analyze": "POST /api/analyze",
            "rerun": "POST /api/analyze/rerun",
            "graveyard": "GET /api/graveyard",
        },
        "request": {
            "idea": "string (required)",
            "quickPreview": "boolean (optional) - decomposition only",
        },
    }


@router.post(
    "/rerun",
    status_code=status.HTTP_200_OK,
    summary="Re-run a Report",
    response_description="The re-executed report with its version incremented",
)
async def rerun_report(
    request: RerunRequest,
    pipeline: PremortemPipeline = Depends(get_pipeline),
) -> JSONResponse:
    """Re-run *report* from ``fromStage``. Reports are not stored server-side."""
    stage_names = [stage.value for stage in STAGE_ORDER]
    if request.from_stage not in stage_names:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content={"error": f"fromStage must be one of: {', '.join(stage_names)}"},
        )

    try:
        report = await pipeline.rerun_from_stage(request.report, request.from_stage)
    except Exception as e:
        print(f"❌ [PIPELINE] Re-run failed — {str(e)[:100]}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={"success": False, "error": str(e) or "Re-run failed", "report": None},
        )

    return _json(RerunResponse(success=report.status == "complete", report=report, error=report.error))
