"""
TerritoryLab services - generation client, scoring, evolution, images and merge.
"""

from .models import (
    # Generated content
    ImageRef,
    Headline,
    Territory,
    ComplianceData,
    GeneratedOutput,
    # Scoring
    RiskLevel,
    BriefAnalysis,
    TerritoryConfidence,
    CategoryScores,
    PerformancePrediction,
    # Evolution
    EvolutionType,
    SuggestionPriority,
    EvolutionSuggestion,
    TerritoryEvolution,
    EvolutionHistory,
    # Images
    ImageJob,
    ImageJobState,
    ImageResult,
    # Starred items
    StarredItems,
)
from .gemini_service import (
    GenerationClient,
    GeminiGenerationClient,
    ProviderError,
    ParseError,
    parse_generation_response,
)
from .demo_client import StaticGenerationClient
from .brief_analysis_service import analyze_brief
from .confidence_service import (
    score_territory,
    enhance_generated_output,
    calculate_overall_confidence,
    rescore_unpinned,
)
from .performance_service import predict_territory_performance
from .territory_evolution_service import (
    TerritoryEvolutionService,
    EvolutionLineage,
    EvolutionFailed,
    EvolutionStage,
)
from .image_batch_service import (
    ImageBatchOrchestrator,
    ImageJobExhausted,
    apply_image_results,
)
from .merge_service import (
    MergeError,
    merge_regenerated_output,
    mark_starred,
    toggle_territory_starred,
    toggle_headline_starred,
    clear_starred_items,
    starred_counts,
)

__all__ = [
    "ImageRef",
    "Headline",
    "Territory",
    "ComplianceData",
    "GeneratedOutput",
    "RiskLevel",
    "BriefAnalysis",
    "TerritoryConfidence",
    "CategoryScores",
    "PerformancePrediction",
    "EvolutionType",
    "SuggestionPriority",
    "EvolutionSuggestion",
    "TerritoryEvolution",
    "EvolutionHistory",
    "ImageJob",
    "ImageJobState",
    "ImageResult",
    "StarredItems",
    "GenerationClient",
    "GeminiGenerationClient",
    "ProviderError",
    "ParseError",
    "parse_generation_response",
    "StaticGenerationClient",
    "analyze_brief",
    "score_territory",
    "enhance_generated_output",
    "calculate_overall_confidence",
    "rescore_unpinned",
    "predict_territory_performance",
    "TerritoryEvolutionService",
    "EvolutionLineage",
    "EvolutionFailed",
    "EvolutionStage",
    "ImageBatchOrchestrator",
    "ImageJobExhausted",
    "apply_image_results",
    "MergeError",
    "merge_regenerated_output",
    "mark_starred",
    "toggle_territory_starred",
    "toggle_headline_starred",
    "clear_starred_items",
    "starred_counts",
]
