"""
Pydantic models for TerritoryLab services.

These models provide validated data structures for:
- Generated creative content (Territory, Headline, ComplianceData, GeneratedOutput)
- Heuristic scoring results (BriefAnalysis, TerritoryConfidence, PerformancePrediction)
- Territory evolution (EvolutionSuggestion, TerritoryEvolution)
- Image batch results (ImageJob, ImageResult)
- User pinning state (StarredItems)

Attributes are snake_case; every model also accepts the camelCase keys the
provider emits (followUp, imageRef, overallRisk, ...).
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model accepting both snake_case and camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ============================================================================
# Generated Content
# ============================================================================

class ImageRef(CamelModel):
    """Reference to a generated image (http(s) URL or data: URI)."""
    url: str = Field(..., min_length=1, description="Image URL or data URI")
    prompt: Optional[str] = Field(None, description="Prompt that produced the image")


class Headline(CamelModel):
    """One candidate ad line plus supporting copy."""
    text: str = Field(..., description="Headline copy")
    follow_up: str = Field(default="", description="Supporting line shown under the headline")
    reasoning: str = Field(default="", description="Why this headline works")
    confidence: int = Field(default=0, ge=0, le=100, description="Per-line confidence")
    image_ref: Optional[ImageRef] = Field(None, description="Attached image, if generated")
    starred: bool = Field(default=False, description="Pinned by the user")


class RiskLevel(str, Enum):
    """Compliance risk of a territory's copy."""
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class TerritoryConfidence(CamelModel):
    """Heuristic confidence for one territory."""
    market_fit: int = Field(..., ge=0, le=100)
    risk_level: RiskLevel = Field(default=RiskLevel.LOW)
    compliance_confidence: int = Field(..., ge=0, le=100)
    audience_resonance: int = Field(..., ge=0, le=100)
    reasoning: str = Field(default="")


class Territory(CamelModel):
    """
    A creative positioning angle with headline variants.

    The id is stable across regeneration cycles for starred territories.
    """
    id: str = Field(..., description="Territory identifier")
    title: str = Field(..., description="Short territory name")
    positioning: str = Field(default="", description="Positioning statement")
    tone: str = Field(default="", description="Tone of voice")
    headlines: List[Headline] = Field(default_factory=list)
    starred: bool = Field(default=False)
    confidence: Optional[TerritoryConfidence] = Field(None, description="Set by the confidence pass")


class ComplianceData(CamelModel):
    """Compliance notes returned alongside generated territories."""
    overall_risk: Optional[str] = None
    recommendations: List[str] = Field(default_factory=list)
    flagged_content: List[str] = Field(default_factory=list)
    power_by: List[str] = Field(default_factory=list)
    output: Optional[str] = None
    notes: List[str] = Field(default_factory=list)


class GeneratedOutput(CamelModel):
    """
    Territories plus compliance data.

    Used for the raw provider response, the scored output, and the final
    merged output.
    """
    territories: List[Territory]
    compliance: ComplianceData
    overall_confidence: Optional[int] = Field(None, ge=0, le=100)


# ============================================================================
# Scoring Results
# ============================================================================

class BriefAnalysis(CamelModel):
    """Quality score and feedback for a creative brief."""
    score: int = Field(..., ge=0, le=100)
    suggestions: List[str] = Field(default_factory=list)
    strengths: List[str] = Field(default_factory=list)
    warnings: List[str] = Field(default_factory=list)
    market_insights: List[str] = Field(default_factory=list)


class CategoryScores(CamelModel):
    audience_resonance: int = Field(..., ge=0, le=100)
    brand_alignment: int = Field(..., ge=0, le=100)
    market_fit: int = Field(..., ge=0, le=100)
    creative_potential: int = Field(..., ge=0, le=100)
    execution_feasibility: int = Field(..., ge=0, le=100)


class PerformancePrediction(CamelModel):
    """Predicted performance of a territory."""
    overall_score: int = Field(..., ge=0, le=100)
    category_scores: CategoryScores
    strengths: List[str] = Field(default_factory=list)
    weaknesses: List[str] = Field(default_factory=list)
    recommendations: List[str] = Field(default_factory=list)
    confidence: int = Field(..., ge=0, le=100)


# ============================================================================
# Evolution
# ============================================================================

class EvolutionType(str, Enum):
    TONE_SHIFT = "TONE_SHIFT"
    AUDIENCE_PIVOT = "AUDIENCE_PIVOT"
    COMPETITIVE_RESPONSE = "COMPETITIVE_RESPONSE"
    CULTURAL_ADAPTATION = "CULTURAL_ADAPTATION"
    SEASONAL_OPTIMIZATION = "SEASONAL_OPTIMIZATION"
    PERFORMANCE_ENHANCEMENT = "PERFORMANCE_ENHANCEMENT"
    CREATIVE_EXPLORATION = "CREATIVE_EXPLORATION"
    COMPLIANCE_ADJUSTMENT = "COMPLIANCE_ADJUSTMENT"


class SuggestionPriority(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"


class EvolutionSuggestion(CamelModel):
    """A rule-detected improvement with a ready-to-send prompt."""
    type: EvolutionType
    title: str
    description: str
    expected_impact: str
    confidence: int = Field(..., ge=0, le=100)
    priority: SuggestionPriority
    prompt: str


class TerritoryEvolution(CamelModel):
    """One completed evolution; parent ids form an acyclic lineage tree."""
    id: str
    original_territory_id: str
    evolution_type: EvolutionType
    evolution_prompt: str
    resulting_territory: Territory
    improvement_score: int = Field(..., ge=30, le=95)
    reasoning: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    parent_evolution_id: Optional[str] = None
    metadata: Dict[str, str] = Field(default_factory=dict)


class EvolutionHistory(CamelModel):
    """All evolutions recorded for one original territory."""
    territory_id: str
    evolutions: List[TerritoryEvolution] = Field(default_factory=list)
    evolution_tree: Dict[str, List[str]] = Field(
        default_factory=dict,
        description="Parent id ('root' for first-generation evolutions) -> child evolution ids"
    )
    best_performing: Optional[TerritoryEvolution] = None


# ============================================================================
# Image Batches
# ============================================================================

class ImageJobState(str, Enum):
    REQUESTED = "REQUESTED"
    RETRY = "RETRY"
    DONE = "DONE"
    EXHAUSTED = "EXHAUSTED"


@dataclass
class ImageJob:
    """
    One image request for a (territory, headline) pair.

    Transient: owned by a single orchestrator run.
    """
    territory_index: int
    headline_index: int
    prompt: str
    fallback_prompt: str
    attempt: int = 0
    state: ImageJobState = ImageJobState.REQUESTED
    last_error: Optional[str] = None

    @property
    def active_prompt(self) -> str:
        """Headline-specific prompt on the first attempt, generic fallback afterwards."""
        return self.prompt if self.attempt <= 1 else self.fallback_prompt


class ImageResult(CamelModel):
    """Outcome of one image job. image_ref is None when the job was exhausted."""
    territory_index: int
    headline_index: int
    image_ref: Optional[ImageRef] = None
    error: Optional[str] = None
    attempts: int = 0


# ============================================================================
# Starred Items
# ============================================================================

class StarredItems(CamelModel):
    """Territories and headlines pinned by the user."""
    territories: List[str] = Field(default_factory=list)
    headlines: Dict[str, List[int]] = Field(default_factory=dict)

    def is_territory_starred(self, territory_id: str) -> bool:
        return territory_id in self.territories

    def is_headline_starred(self, territory_id: str, headline_index: int) -> bool:
        return headline_index in self.headlines.get(territory_id, [])
