"""
Pipeline state dataclasses for Pydantic Graph workflows.

State objects are passed through pipeline nodes, accumulating data at each
step, and record the current step and any error for the caller.
"""

from dataclasses import dataclass, field
from typing import List, Optional

from ..services.models import BriefAnalysis, GeneratedOutput, ImageResult, StarredItems


@dataclass
class TerritoryGenerationState:
    """
    State for the territory generation pipeline.

    Tracks data through the pipeline:
    AnalyzeBrief → GenerateTerritories → ScoreTerritories → GenerateImages
    → MergeStarred → CompileResults

    Attributes:
        brief: Creative brief text
        generate_images: Whether to request one image per headline
        previous_output: Output being regenerated (None for a fresh run)
        starred: Items pinned in previous_output
        brief_analysis: Heuristic brief score and feedback
        output: Generated, scored, then (on regeneration) merged output
        image_results: Per-headline image outcomes
        current_step: Current pipeline step for tracking
        error: Error message if the pipeline failed
    """

    # Input parameters
    brief: str
    generate_images: bool = True
    previous_output: Optional[GeneratedOutput] = None
    starred: Optional[StarredItems] = None

    # Populated by AnalyzeBriefNode
    brief_analysis: Optional[BriefAnalysis] = None

    # Populated by GenerateTerritoriesNode, updated by later nodes
    output: Optional[GeneratedOutput] = None

    # Populated by GenerateImagesNode
    image_results: List[ImageResult] = field(default_factory=list)

    # Tracking
    current_step: str = "pending"
    error: Optional[str] = None

    @property
    def is_regeneration(self) -> bool:
        return self.previous_output is not None
