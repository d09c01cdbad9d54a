from langgraph.graph import StateGraph, START, END

from ..services.failure_store import FailedStartupStore
from ..services.perplexity_client import PerplexityClient
from .decompose import FULL_RUN_MAX_TOKENS, decompose_idea
from .retrieve import retrieve_evidence
from .score import score_risks
from .state import STAGE_NODES, STAGE_ORDER, PipelineStage, PipelineState
from .synthesize import synthesize_patterns
from .timing import async_timer, log_timing


def create_pipeline_graph(
    client: PerplexityClient,
    store: FailedStartupStore,
    *,
    entry_stage: PipelineStage = PipelineStage.DECOMPOSITION,
    decomposition_max_tokens: int = FULL_RUN_MAX_TOKENS,
) -> StateGraph:
    """
    Create the premortem pipeline graph.

    Structure:
    START -> decompose -> retrieve -> synthesize -> score -> END

    Stages before ``entry_stage`` are left out of the graph; their outputs
    must already be present in the input state (a resume starts at
    ``retrieve`` with the decomposition supplied).
    """
    log_timing("graph", f"Creating pipeline graph (entry={entry_stage.value})")

    async def decompose(state: PipelineState) -> dict:
        async with async_timer("decompose"):
            decomposition = await decompose_idea(
                state["idea_text"], client, max_tokens=decomposition_max_tokens
            )
        return {"decomposition": decomposition}

    async def retrieve(state: PipelineState) -> dict:
        async with async_timer("retrieve"):
            evidence = await retrieve_evidence(state["decomposition"], client, store)
        return {"evidence": evidence}

    async def synthesize(state: PipelineState) -> dict:
        async with async_timer("synthesize"):
            synthesis = await synthesize_patterns(state["decomposition"], state["evidence"], client)
        return {"synthesis": synthesis}

    async def score(state: PipelineState) -> dict:
        async with async_timer("score"):
            scoring = score_risks(state["decomposition"], state["synthesis"])
        return {"scoring": scoring}

    handlers = {
        PipelineStage.DECOMPOSITION: decompose,
        PipelineStage.RETRIEVAL: retrieve,
        PipelineStage.SYNTHESIS: synthesize,
        PipelineStage.SCORING: score,
    }

    graph = StateGraph(PipelineState)

    stages = STAGE_ORDER[STAGE_ORDER.index(entry_stage):]
    for stage in stages:
        graph.add_node(STAGE_NODES[stage], handlers[stage])

    # Strictly sequential: each stage consumes the previous stage's output
    graph.add_edge(START, STAGE_NODES[stages[0]])
    for current, following in zip(stages, stages[1:]):
        graph.add_edge(STAGE_NODES[current], STAGE_NODES[following])
    graph.add_edge(STAGE_NODES[stages[-1]], END)

    return graph
