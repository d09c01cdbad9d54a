"""FastAPI dependencies for the process-wide pipeline collaborators.

The lifespan hook in ``main`` puts one client, store and pipeline on
``app.state``; these dependencies hand them to the routes, building them
on first use when the app was started without the lifespan (tests).
"""

from fastapi import Request

from ..pipeline.orchestrator import PremortemPipeline
from .failure_store import FailedStartupStore


def get_store(request: Request) -> FailedStartupStore:
    store = getattr(request.app.state, "store", None)
    if store is None:
        store = FailedStartupStore()
        request.app.state.store = store
    return store


def get_pipeline(request: Request) -> PremortemPipeline:
    pipeline = getattr(request.app.state, "pipeline", None)
    if pipeline is None:
        pipeline = PremortemPipeline(store=get_store(request))
        request.app.state.pipeline = pipeline
    return pipeline
