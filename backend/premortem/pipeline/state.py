from enum import Enum
from typing import Optional, TypedDict

from ..schemas.report_schema import IdeaDecomposition
from .retrieve import RetrievalResult
from .score import ScoringResult
from .synthesize import SynthesisResult


class PipelineStage(str, Enum):
    """The four sequential analysis stages."""

    DECOMPOSITION = "decomposition"
    RETRIEVAL = "retrieval"
    SYNTHESIS = "synthesis"
    SCORING = "scoring"


STAGE_ORDER: list[PipelineStage] = [
    PipelineStage.DECOMPOSITION,
    PipelineStage.RETRIEVAL,
    PipelineStage.SYNTHESIS,
    PipelineStage.SCORING,
]

# Graph node name for each stage (node names may not collide with state keys)
STAGE_NODES: dict[PipelineStage, str] = {
    PipelineStage.DECOMPOSITION: "decompose",
    PipelineStage.RETRIEVAL: "retrieve",
    PipelineStage.SYNTHESIS: "synthesize",
    PipelineStage.SCORING: "score",
}
NODE_STAGES: dict[str, PipelineStage] = {node: stage for stage, node in STAGE_NODES.items()}


class PipelineState(TypedDict):
    idea_text: str

    # Stage outputs (each populated by exactly one node)
    decomposition: Optional[IdeaDecomposition]
    evidence: Optional[RetrievalResult]
    synthesis: Optional[SynthesisResult]
    scoring: Optional[ScoringResult]
