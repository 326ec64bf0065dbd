"""
Pydantic Graph Pipelines for TerritoryLab.

- territory_generation: brief analysis, territory generation, scoring,
  image batches and starred-item merge
"""

from .dependencies import TerritoryDependencies
from .states import TerritoryGenerationState
from .territory_generation import (
    territory_generation_graph,
    run_territory_generation,
    AnalyzeBriefNode,
    GenerateTerritoriesNode,
    ScoreTerritoriesNode,
    GenerateImagesNode,
    MergeStarredNode,
    CompileResultsNode,
)

__all__ = [
    # State and dependencies
    "TerritoryGenerationState",
    "TerritoryDependencies",
    # Territory generation
    "territory_generation_graph",
    "run_territory_generation",
    "AnalyzeBriefNode",
    "GenerateTerritoriesNode",
    "ScoreTerritoriesNode",
    "GenerateImagesNode",
    "MergeStarredNode",
    "CompileResultsNode",
]
