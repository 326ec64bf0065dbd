"""
Territory performance prediction.

Five additive sub-scorers (each capped at 95) are paired into five category
scores:

    audience_resonance    = (headline quality + tone alignment) / 2
    brand_alignment       = brand alignment
    market_fit            = cultural relevance
    creative_potential    = (headline quality + positioning strength) / 2
    execution_feasibility = (positioning strength + brand alignment) / 2

The overall score is the mean of the category scores. All rounding is half-up.
"""

import logging
import re
from typing import Dict, List, Optional

from ..core.config import MarketProfile, get_market_profile
from .brief_analysis_service import matches
from .confidence_service import round_half_up
from .models import CategoryScores, Headline, PerformancePrediction, Territory

logger = logging.getLogger(__name__)


SUB_SCORE_CAP = 95
STRENGTH_THRESHOLD = 75
WEAKNESS_THRESHOLD = 60

# category -> (strength, weakness, recommendation)
CATEGORY_FEEDBACK: Dict[str, tuple] = {
    "audience_resonance": (
        "Strong audience connection and engagement potential",
        "Limited audience engagement potential",
        "Enhance audience targeting and personalization",
    ),
    "brand_alignment": (
        "Excellent brand consistency and alignment",
        "Weak brand alignment and consistency",
        "Strengthen brand voice and consistency",
    ),
    "market_fit": (
        "High cultural relevance and market fit",
        "Poor cultural relevance and market fit",
        "Add more {locale} cultural context",
    ),
    "creative_potential": (
        "Strong creative execution and innovation",
        "Limited creative potential and innovation",
        "Explore more creative and innovative approaches",
    ),
    "execution_feasibility": (
        "High implementation feasibility",
        "Implementation challenges likely",
        "Simplify implementation requirements",
    ),
}


# ============================================================================
# Sub-scorers
# ============================================================================

def positioning_strength(positioning: str) -> int:
    score = 40
    if len(positioning) > 50:
        score += 15
    if "unique" in positioning or "different" in positioning:
        score += 10
    if "value" in positioning or "benefit" in positioning:
        score += 10
    if "customer" in positioning or "audience" in positioning:
        score += 10
    if re.search(r"\b(because|why|how)\b", positioning, re.IGNORECASE):
        score += 15
    return min(score, SUB_SCORE_CAP)


def headline_quality(headlines: List[Headline]) -> int:
    """Mean of per-headline scores; 20 when there are no headlines."""
    if not headlines:
        return 20

    total = 0
    for headline in headlines:
        score = 40
        if 20 < len(headline.text) < 80:
            score += 15
        if "?" in headline.text or "!" in headline.text:
            score += 10
        if re.search(r"\b(you|your)\b", headline.text, re.IGNORECASE):
            score += 10
        if headline.confidence > 70:
            score += 15
        if len(headline.reasoning) > 20:
            score += 10
        total += min(score, SUB_SCORE_CAP)

    return round_half_up(total / len(headlines))


def tone_alignment(tone: str, brief: str) -> int:
    score = 50
    brief_lower = brief.lower()
    if "authentic" in tone or "genuine" in tone:
        score += 15
    if "conversational" in tone or "approachable" in tone:
        score += 10
    if "confident" in tone or "authoritative" in tone:
        score += 10
    if "family" in brief_lower and "warm" in tone:
        score += 15
    if "professional" in brief_lower and "professional" in tone:
        score += 15
    return min(score, SUB_SCORE_CAP)


def cultural_relevance(territory: Territory, profile: MarketProfile) -> int:
    score = 50
    content = " ".join([territory.positioning] + [h.text for h in territory.headlines]).lower()
    if matches(profile.local_market, content):
        score += 20
    if "fair" in content or "value" in content:
        score += 10
    if "family" in content or "community" in content:
        score += 10
    if "local" in content or "home" in content:
        score += 5
    return min(score, SUB_SCORE_CAP)


def brand_alignment(territory: Territory, brief: str) -> int:
    score = 60
    brief_lower = brief.lower()
    positioning = territory.positioning.lower()
    if "everyday" in brief_lower and "everyday" in positioning:
        score += 15
    if "rewards" in brief_lower and "reward" in positioning:
        score += 15
    if "value" in brief_lower and "value" in positioning:
        score += 10
    return min(score, SUB_SCORE_CAP)


def prediction_confidence(territory: Territory, brief: str) -> int:
    confidence = 60
    if len(territory.headlines) > 2:
        confidence += 10
    if len(territory.positioning) > 50:
        confidence += 10
    if len(brief) > 100:
        confidence += 10
    if any(h.confidence > 70 for h in territory.headlines):
        confidence += 10
    return min(confidence, 90)


# ============================================================================
# Prediction
# ============================================================================

def predict_territory_performance(
    territory: Territory,
    brief: str,
    profile: Optional[MarketProfile] = None
) -> PerformancePrediction:
    """
    Predict how well a territory will perform for a brief.

    Categories above 75 become strengths; below 60 they become weaknesses
    with a matching recommendation. Categories in [60, 75] appear in neither
    list.

    Args:
        territory: Territory to evaluate
        brief: Brief the territory answers
        profile: Lexicons to use (default: active market profile)

    Returns:
        PerformancePrediction
    """
    profile = profile or get_market_profile()

    positioning = positioning_strength(territory.positioning)
    headlines = headline_quality(territory.headlines)
    tone = tone_alignment(territory.tone, brief)
    cultural = cultural_relevance(territory, profile)
    brand = brand_alignment(territory, brief)

    category_scores = CategoryScores(
        audience_resonance=round_half_up((headlines + tone) / 2),
        brand_alignment=brand,
        market_fit=cultural,
        creative_potential=round_half_up((headlines + positioning) / 2),
        execution_feasibility=round_half_up((positioning + brand) / 2),
    )
    scores = category_scores.model_dump()
    overall_score = round_half_up(sum(scores.values()) / len(scores))

    strengths = []
    weaknesses = []
    recommendations = []
    for category, (strength, weakness, recommendation) in CATEGORY_FEEDBACK.items():
        value = scores[category]
        if value > STRENGTH_THRESHOLD:
            strengths.append(strength)
        elif value < WEAKNESS_THRESHOLD:
            weaknesses.append(weakness)
            recommendations.append(recommendation.format(locale=profile.locale_label))

    if len(territory.headlines) > 3:
        strengths.append("Rich variety of creative options")
    if len(territory.positioning) > 100:
        strengths.append("Comprehensive strategic positioning")
    if len(territory.headlines) < 2:
        weaknesses.append("Insufficient creative variations")
    if len(territory.positioning) < 50:
        weaknesses.append("Underdeveloped strategic positioning")

    logger.debug(f"Predicted performance for {territory.id}: overall={overall_score}")

    return PerformancePrediction(
        overall_score=overall_score,
        category_scores=category_scores,
        strengths=strengths,
        weaknesses=weaknesses,
        recommendations=recommendations,
        confidence=prediction_confidence(territory, brief),
    )
