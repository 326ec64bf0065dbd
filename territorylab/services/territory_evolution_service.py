"""
Territory Evolution Service - AI-assisted improvement of existing territories.

Two halves:
1. Suggestions: rule checks over a territory and its brief produce up to five
   EvolutionSuggestion entries, each carrying a ready-to-send prompt. No I/O.
2. Evolution: one GenerationClient call turns a prompt into a new territory,
   which is scored as an improvement over the original.

Evolution request lifecycle:
    REQUESTED -> PROMPT_BUILT -> RESULT_PARSED -> DONE
    a failure raises EvolutionFailed carrying the last stage reached;
    nothing is recorded

Completed evolutions can be kept in an EvolutionLineage, an in-memory tree
keyed by parent evolution id.
"""

import logging
import random
import uuid
from enum import Enum
from typing import Dict, List, Optional

from ..core.config import MarketProfile, get_market_profile
from ..core.exceptions import TerritoryLabError
from .brief_analysis_service import matches
from .confidence_service import round_half_up
from .gemini_service import GenerationClient, ParseError, ProviderError
from .models import (
    EvolutionHistory,
    EvolutionSuggestion,
    EvolutionType,
    SuggestionPriority,
    Territory,
    TerritoryEvolution,
)

logger = logging.getLogger(__name__)


class EvolutionFailed(TerritoryLabError):
    """The evolution call failed; no partial evolution exists."""

    def __init__(self, message: str, stage: "EvolutionStage"):
        super().__init__(message)
        self.stage = stage


class EvolutionStage(str, Enum):
    REQUESTED = "REQUESTED"
    PROMPT_BUILT = "PROMPT_BUILT"
    RESULT_PARSED = "RESULT_PARSED"
    DONE = "DONE"


# =============================================================================
# Prompt templates
# =============================================================================

EVOLUTION_PROMPTS: Dict[EvolutionType, str] = {
    EvolutionType.TONE_SHIFT: (
        "Transform the following territory to have a {variation} tone while maintaining core messaging:\n"
        "Original Territory: {territory}\n"
        "Target Tone: {variation}\n"
        "Brief Context: {brief_context}\n\n"
        "Create a new territory with the same strategic positioning but adjusted tone. "
        "Maintain brand consistency while making the messaging more {variation}."
    ),
    EvolutionType.AUDIENCE_PIVOT: (
        "Adapt the following territory for a {variation} audience:\n"
        "Original Territory: {territory}\n"
        "New Target Audience: {variation}\n"
        "Brief Context: {brief_context}\n\n"
        "Modify the messaging, tone, and headlines to better resonate with {variation} "
        "while keeping the core value proposition."
    ),
    EvolutionType.COMPETITIVE_RESPONSE: (
        "Evolve this territory to better compete against {variation}:\n"
        "Original Territory: {territory}\n"
        "Competitor Context: {variation}\n"
        "Brief Context: {brief_context}\n\n"
        "Strengthen the territory's competitive positioning and differentiation against {variation}. "
        "Highlight unique advantages and address competitive threats."
    ),
    EvolutionType.CULTURAL_ADAPTATION: (
        "Adapt this territory for stronger {locale} cultural relevance:\n"
        "Original Territory: {territory}\n"
        "Cultural Context: {variation}\n"
        "Brief Context: {brief_context}\n\n"
        "Enhance the territory with authentic {locale} cultural references, values, and local market "
        "insights. Make it more culturally resonant for {locale} audiences."
    ),
    EvolutionType.SEASONAL_OPTIMIZATION: (
        "Optimize this territory for {variation} relevance:\n"
        "Original Territory: {territory}\n"
        "Seasonal Context: {variation}\n"
        "Brief Context: {brief_context}\n\n"
        "Adapt the messaging and headlines to be more relevant for {variation}. "
        "Consider seasonal behaviors, needs, and cultural moments."
    ),
    EvolutionType.PERFORMANCE_ENHANCEMENT: (
        "Enhance this territory for better performance based on these insights:\n"
        "Original Territory: {territory}\n"
        "Performance Insights: {variation}\n"
        "Brief Context: {brief_context}\n\n"
        "Improve the territory's effectiveness by addressing performance gaps and amplifying "
        "successful elements. Focus on measurable improvements."
    ),
    EvolutionType.CREATIVE_EXPLORATION: (
        "Explore a bolder creative direction for this territory:\n"
        "Original Territory: {territory}\n"
        "Creative Direction: {variation}\n"
        "Brief Context: {brief_context}\n\n"
        "Keep the strategic intent but push the idea, imagery and headlines somewhere unexpected."
    ),
    EvolutionType.COMPLIANCE_ADJUSTMENT: (
        "Revise this territory to reduce advertising compliance risk:\n"
        "Original Territory: {territory}\n"
        "Compliance Focus: {variation}\n"
        "Brief Context: {brief_context}\n\n"
        "Remove unsubstantiated claims and superlatives, add qualifiers where needed, "
        "and keep the messaging persuasive."
    ),
}

EVOLUTION_VARIATIONS: Dict[EvolutionType, List[str]] = {
    EvolutionType.TONE_SHIFT: [
        "conversational", "playful", "serious", "urgent",
        "aspirational", "authoritative", "empathetic", "bold",
    ],
    EvolutionType.AUDIENCE_PIVOT: [
        "busy families with children", "young families", "busy professionals",
        "retirees", "students", "small business owners", "health-conscious consumers",
    ],
    EvolutionType.COMPETITIVE_RESPONSE: [
        "key market competitors", "price leaders", "premium brands",
        "convenience players", "innovation leaders", "local competitors",
    ],
    EvolutionType.CULTURAL_ADAPTATION: [
        "authentic local values and lifestyle", "mateship values", "fair go mentality",
        "outdoor lifestyle", "multicultural celebration", "regional diversity",
    ],
    EvolutionType.SEASONAL_OPTIMIZATION: [
        "summer holidays", "back to school", "Christmas", "EOFY",
        "Mother's Day", "Father's Day", "Australia Day",
    ],
    EvolutionType.PERFORMANCE_ENHANCEMENT: [
        "need for more creative variations and testing options", "engagement optimization",
        "conversion focus", "awareness building", "brand recall", "emotional connection",
    ],
    EvolutionType.CREATIVE_EXPLORATION: [
        "unexpected metaphor", "humour-led storytelling", "visual-first idea",
    ],
    EvolutionType.COMPLIANCE_ADJUSTMENT: [
        "substantiated claims and clear disclaimers", "comparative advertising rules",
    ],
}

REASONING_TEMPLATES: Dict[EvolutionType, str] = {
    EvolutionType.TONE_SHIFT: "Tone evolution improved messaging approachability and audience connection.",
    EvolutionType.AUDIENCE_PIVOT: "Audience adaptation enhanced relevance and targeting precision.",
    EvolutionType.COMPETITIVE_RESPONSE: "Competitive positioning strengthened differentiation and market advantage.",
    EvolutionType.CULTURAL_ADAPTATION: "Cultural enhancement increased local relevance and authenticity.",
    EvolutionType.SEASONAL_OPTIMIZATION: "Seasonal optimization improved timing relevance and contextual fit.",
    EvolutionType.PERFORMANCE_ENHANCEMENT: "Performance optimization enhanced effectiveness and measurable impact.",
    EvolutionType.CREATIVE_EXPLORATION: "Creative exploration expanded messaging possibilities and innovation.",
    EvolutionType.COMPLIANCE_ADJUSTMENT: "Compliance adjustment ensured regulatory adherence while maintaining impact.",
}

PRIORITY_WEIGHTS = {
    SuggestionPriority.HIGH: 3,
    SuggestionPriority.MEDIUM: 2,
    SuggestionPriority.LOW: 1,
}

MAX_SUGGESTIONS_PER_TERRITORY = 5
MAX_SMART_SUGGESTIONS = 10

SINGLE_TERRITORY_INSTRUCTION = (
    "Return the evolved territory as the first (and only) entry of the territories array, "
    "keeping the same JSON structure."
)


def territory_payload(territory: Territory) -> str:
    """Territory JSON for prompts, without scores or image data."""
    return territory.model_dump_json(
        by_alias=True,
        exclude={"confidence": True, "headlines": {"__all__": {"image_ref"}}},
    )


def build_evolution_prompt(
    evolution_type: EvolutionType,
    territory: Territory,
    brief_context: str,
    variation: Optional[str] = None,
    profile: Optional[MarketProfile] = None,
) -> str:
    """
    Fill the template for an evolution type.

    Args:
        evolution_type: Which template to use
        territory: Territory to embed in the prompt
        brief_context: Brief text
        variation: Tone/audience/season/etc. (default: first known variation)
        profile: Supplies the locale label

    Returns:
        Prompt string ready for GenerationClient.generate_text
    """
    profile = profile or get_market_profile()
    return EVOLUTION_PROMPTS[evolution_type].format(
        territory=territory_payload(territory),
        brief_context=brief_context,
        variation=variation or EVOLUTION_VARIATIONS[evolution_type][0],
        locale=profile.locale_label,
    )


# =============================================================================
# Lineage
# =============================================================================

class EvolutionLineage:
    """
    In-memory store of completed evolutions.

    A parent must be recorded before its children, so the tree is acyclic.
    """

    ROOT = "root"

    def __init__(self):
        self._evolutions: Dict[str, TerritoryEvolution] = {}

    def __contains__(self, evolution_id: str) -> bool:
        return evolution_id in self._evolutions

    def __len__(self) -> int:
        return len(self._evolutions)

    def get(self, evolution_id: str) -> Optional[TerritoryEvolution]:
        return self._evolutions.get(evolution_id)

    def record(self, evolution: TerritoryEvolution) -> None:
        """
        Store a completed evolution.

        Raises:
            ValueError: If the id is already recorded or the parent is unknown
        """
        if evolution.id in self._evolutions:
            raise ValueError(f"Evolution {evolution.id} already recorded")
        parent_id = evolution.parent_evolution_id
        if parent_id is not None and parent_id not in self._evolutions:
            raise ValueError(f"Parent evolution {parent_id} not recorded")

        self._evolutions[evolution.id] = evolution
        logger.debug(f"Recorded evolution {evolution.id} (parent={parent_id or self.ROOT})")

    def history(self, territory_id: str) -> EvolutionHistory:
        """
        Evolutions descending from one territory.

        Includes first-generation evolutions of the territory and every
        evolution chained beneath them, in creation order.
        """
        included: List[TerritoryEvolution] = []
        included_ids = set()
        for evolution in self._evolutions.values():
            direct = (
                evolution.original_territory_id == territory_id
                and evolution.parent_evolution_id is None
            )
            if direct or evolution.parent_evolution_id in included_ids:
                included.append(evolution)
                included_ids.add(evolution.id)

        tree: Dict[str, List[str]] = {}
        for evolution in included:
            tree.setdefault(evolution.parent_evolution_id or self.ROOT, []).append(evolution.id)

        best = None
        for evolution in included:
            if best is None or evolution.improvement_score > best.improvement_score:
                best = evolution

        return EvolutionHistory(
            territory_id=territory_id,
            evolutions=included,
            evolution_tree=tree,
            best_performing=best,
        )


# =============================================================================
# Service
# =============================================================================

class TerritoryEvolutionService:
    """Suggests and performs territory evolutions."""

    def __init__(
        self,
        client: GenerationClient,
        rng: Optional[random.Random] = None,
        profile: Optional[MarketProfile] = None,
        lineage: Optional[EvolutionLineage] = None,
    ):
        self.client = client
        self.rng = rng or random.Random()
        self.profile = profile or get_market_profile()
        self.lineage = lineage

    # =========================================================================
    # Suggestions
    # =========================================================================

    def _suggestion(
        self,
        evolution_type: EvolutionType,
        title: str,
        description: str,
        expected_impact: str,
        confidence: int,
        priority: SuggestionPriority,
        territory: Territory,
        brief_context: str,
    ) -> EvolutionSuggestion:
        return EvolutionSuggestion(
            type=evolution_type,
            title=title,
            description=description,
            expected_impact=expected_impact,
            confidence=confidence,
            priority=priority,
            prompt=build_evolution_prompt(evolution_type, territory, brief_context, profile=self.profile),
        )

    def generate_evolution_suggestions(
        self,
        territory: Territory,
        brief_context: str
    ) -> List[EvolutionSuggestion]:
        """
        Rule-detected improvement opportunities for one territory.

        Rules (independent):
        - Formal or serious tone -> TONE_SHIFT
        - No local-market cue in positioning -> CULTURAL_ADAPTATION
        - Fewer than 3 headlines -> PERFORMANCE_ENHANCEMENT
        - Brief mentions a competitor -> COMPETITIVE_RESPONSE
        - Brief has no audience signal -> AUDIENCE_PIVOT

        Returns:
            0-5 suggestions with fully built prompts
        """
        suggestions = []
        tone = territory.tone.lower()
        locale = self.profile.locale_label

        if "serious" in tone or "formal" in tone:
            suggestions.append(self._suggestion(
                EvolutionType.TONE_SHIFT,
                "Make it More Conversational",
                "Shift from formal tone to more approachable, conversational messaging",
                "Increased audience engagement and relatability",
                75, SuggestionPriority.MEDIUM, territory, brief_context,
            ))

        if not matches(self.profile.local_market, territory.positioning):
            suggestions.append(self._suggestion(
                EvolutionType.CULTURAL_ADAPTATION,
                f"Strengthen {locale} Context",
                f"Add authentic {locale} cultural references and local market insights",
                "Enhanced local relevance and cultural resonance",
                85, SuggestionPriority.HIGH, territory, brief_context,
            ))

        if len(territory.headlines) < 3:
            suggestions.append(self._suggestion(
                EvolutionType.PERFORMANCE_ENHANCEMENT,
                "Expand Creative Options",
                "Generate additional headline variations for better testing and optimization",
                "More creative options for A/B testing and performance optimization",
                80, SuggestionPriority.MEDIUM, territory, brief_context,
            ))

        if matches(self.profile.competitor_mention, brief_context):
            suggestions.append(self._suggestion(
                EvolutionType.COMPETITIVE_RESPONSE,
                "Strengthen Competitive Position",
                "Enhance differentiation and competitive advantages in messaging",
                "Clearer competitive positioning and unique value proposition",
                70, SuggestionPriority.HIGH, territory, brief_context,
            ))

        if not matches(self.profile.audience, brief_context):
            suggestions.append(self._suggestion(
                EvolutionType.AUDIENCE_PIVOT,
                "Optimize for Busy Families",
                "Adapt messaging specifically for time-pressed family decision makers",
                f"Better resonance with key {locale} demographic segment",
                75, SuggestionPriority.MEDIUM, territory, brief_context,
            ))

        logger.info(f"Generated {len(suggestions)} evolution suggestions for territory {territory.id}")
        return suggestions[:MAX_SUGGESTIONS_PER_TERRITORY]

    def generate_smart_suggestions(
        self,
        territories: List[Territory],
        brief_context: str
    ) -> List[EvolutionSuggestion]:
        """Top suggestions across territories, by priority then confidence."""
        all_suggestions: List[EvolutionSuggestion] = []
        for territory in territories:
            all_suggestions.extend(self.generate_evolution_suggestions(territory, brief_context))

        ranked = sorted(
            all_suggestions,
            key=lambda s: (PRIORITY_WEIGHTS[s.priority], s.confidence),
            reverse=True,
        )
        return ranked[:MAX_SMART_SUGGESTIONS]

    # =========================================================================
    # Evolution
    # =========================================================================

    def calculate_improvement_score(self, original: Territory, evolved: Territory) -> int:
        """Heuristic improvement score with +/-5 jitter, clamped to [30, 95]."""
        score = 50.0
        if len(evolved.positioning) > len(original.positioning):
            score += 10
        if len(evolved.headlines) >= len(original.headlines):
            score += 10
        if matches(self.profile.local_market, evolved.positioning):
            score += 15
        if "enhanced" in evolved.tone or "authentic" in evolved.tone:
            score += 10
        score += self.rng.uniform(-5, 5)
        return max(30, min(95, round_half_up(score)))

    async def evolve_territory_with_ai(
        self,
        territory: Territory,
        evolution_type: EvolutionType,
        prompt: str,
        brief_context: str,
        parent_evolution_id: Optional[str] = None,
        metadata: Optional[Dict[str, str]] = None,
    ) -> TerritoryEvolution:
        """
        Evolve a territory with exactly one provider call.

        The first territory of the response becomes the evolved territory,
        with a new id and no stars.

        Args:
            territory: Territory to evolve
            evolution_type: Dimension of the evolution
            prompt: Prompt (usually EvolutionSuggestion.prompt)
            brief_context: Brief text, stored in the evolution metadata
            parent_evolution_id: Evolution this one builds on, if chaining
            metadata: Extra caller context (audience, competitor, ...)

        Returns:
            TerritoryEvolution (also recorded in the lineage, if one is attached)

        Raises:
            EvolutionFailed: Provider error, unparseable or empty response,
                or unknown parent evolution
        """
        stage = EvolutionStage.REQUESTED
        logger.info(f"Evolving territory {territory.id} ({evolution_type.value})")

        if self.lineage is not None and parent_evolution_id and parent_evolution_id not in self.lineage:
            raise EvolutionFailed(f"Unknown parent evolution: {parent_evolution_id}", stage)

        request = f"{prompt}\n\n{SINGLE_TERRITORY_INSTRUCTION}"
        stage = EvolutionStage.PROMPT_BUILT

        try:
            output = await self.client.generate_text(request)
        except (ProviderError, ParseError) as e:
            logger.error(f"Evolution of {territory.id} failed at {stage.value}: {e}")
            raise EvolutionFailed(f"Failed to evolve territory {territory.id}: {e}", stage) from e

        stage = EvolutionStage.RESULT_PARSED

        if not output.territories:
            logger.error(f"Evolution of {territory.id} failed at {stage.value}: no territories returned")
            raise EvolutionFailed(f"Failed to evolve territory {territory.id}: empty response", stage)

        evolved = output.territories[0].model_copy(update={
            "id": f"evolved_{territory.id}_{uuid.uuid4().hex[:8]}",
            "starred": False,
            "confidence": None,
        })
        improvement_score = self.calculate_improvement_score(territory, evolved)

        evolution = TerritoryEvolution(
            id=f"evolution_{uuid.uuid4().hex[:12]}",
            original_territory_id=territory.id,
            evolution_type=evolution_type,
            evolution_prompt=prompt,
            resulting_territory=evolved,
            improvement_score=improvement_score,
            reasoning=f"{REASONING_TEMPLATES[evolution_type]} Score: {improvement_score}/100",
            parent_evolution_id=parent_evolution_id,
            metadata={"brief_context": brief_context, **(metadata or {})},
        )

        if self.lineage is not None:
            self.lineage.record(evolution)

        stage = EvolutionStage.DONE
        logger.info(f"Territory evolution {stage.value}: {evolution.id}, improvement score {improvement_score}")
        return evolution
