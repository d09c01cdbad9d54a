"""Graveyard routes: browse the historical-failures database.

Endpoints:
  GET /api/graveyard   — One page of failed startups plus listing totals
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..schemas.analyze_schema import GraveyardResponse
from ..services.failure_store import FailedStartupStore, search_failed_startups, summarize
from ..services.pipeline_dependency import get_store

router = APIRouter(
    prefix="/api/graveyard",
    tags=["Graveyard"],
)


@router.get(
    "",
    response_model=GraveyardResponse,
    summary="List Failed Startups",
    response_description="Failed startups with categories and total capital burned",
)
async def list_failed_startups(
    limit: int = Query(100, ge=1, le=500, description="Page size"),
    offset: int = Query(0, ge=0, description="Records to skip"),
    sector: Optional[str] = Query(None, description="Only startups in this sector"),
    q: Optional[str] = Query(None, description="Case-insensitive text filter"),
    store: FailedStartupStore = Depends(get_store),
) -> GraveyardResponse:
    """The data store never raises; a transport failure yields an empty listing."""
    startups = await store.get_failed_startups(limit=limit, offset=offset, sector=sector)
    if q and q.strip():
        startups = search_failed_startups(q.strip(), startups)
    return GraveyardResponse(**summarize(startups))
