# Premortem analysis pipeline
from .decompose import analyze_idea_locally, decompose_idea
from .orchestrator import PremortemPipeline, dedupe_citations
from .retrieve import RetrievalResult, retrieve_evidence
from .score import ScoringResult, score_risks
from .state import PipelineStage
from .synthesize import SynthesisResult, synthesize_patterns

__all__ = [
    "analyze_idea_locally",
    "decompose_idea",
    "PremortemPipeline",
    "dedupe_citations",
    "RetrievalResult",
    "retrieve_evidence",
    "ScoringResult",
    "score_risks",
    "PipelineStage",
    "SynthesisResult",
    "synthesize_patterns",
]
