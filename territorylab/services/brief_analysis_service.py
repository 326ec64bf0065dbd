"""
Brief analysis - heuristic quality score and feedback for a creative brief.

Pure and deterministic: the score is a sum of fixed bonuses for signals
detected with the active MarketProfile lexicons.

Scoring (base 20, clamped to 0-100):
- Word count >= 20: +20
- Audience mention: +15
- Objective verb: +15
- Competitive context: +15
- Brand mention: +10
- Named shopping moment: +15
"""

import logging
import re
from typing import Optional

from ..core.config import MarketProfile, get_market_profile
from .models import BriefAnalysis

logger = logging.getLogger(__name__)


BASE_SCORE = 20
DETAIL_WORD_COUNT = 20
MAX_WORD_COUNT = 200

DETAIL_BONUS = 20
AUDIENCE_BONUS = 15
OBJECTIVE_BONUS = 15
COMPETITIVE_BONUS = 15
BRAND_BONUS = 10
MOMENT_BONUS = 15


def matches(pattern: str, text: str) -> bool:
    """Case-insensitive, unanchored regex test."""
    return re.search(pattern, text, re.IGNORECASE) is not None


def analyze_brief(brief: str, profile: Optional[MarketProfile] = None) -> BriefAnalysis:
    """
    Score a brief and explain the score.

    Each of the six signals yields either a strength (present) or a
    suggestion (absent). Never raises for missing signals.

    Args:
        brief: Free-text creative brief
        profile: Lexicons to use (default: active market profile)

    Returns:
        BriefAnalysis with score in [0, 100]
    """
    profile = profile or get_market_profile()
    word_count = len(brief.split())

    score = BASE_SCORE
    suggestions = []
    strengths = []
    warnings = []
    market_insights = []

    if word_count >= DETAIL_WORD_COUNT:
        score += DETAIL_BONUS
        strengths.append("Good detail level in brief")
    else:
        suggestions.append("Add more detail about campaign objectives and target audience")

    if matches(profile.audience, brief):
        score += AUDIENCE_BONUS
        strengths.append("Target audience mentioned")
    else:
        suggestions.append('Specify target audience (e.g., "busy families", "value-conscious shoppers")')

    if matches(profile.objective, brief):
        score += OBJECTIVE_BONUS
        strengths.append("Clear campaign objective identified")
    else:
        suggestions.append("Define specific campaign objective (awareness, engagement, conversion)")

    if matches(profile.competitive, brief):
        score += COMPETITIVE_BONUS
        strengths.append("Competitive context provided")
    else:
        suggestions.append('Add competitive context (e.g., "position against one-day competitor sales")')

    if matches(profile.brand, brief):
        score += BRAND_BONUS
        strengths.append("Brand-specific context included")
    else:
        suggestions.append("Reference brand values and positioning")

    if matches(profile.shopping_moment, brief):
        score += MOMENT_BONUS
        strengths.append("Shopping moment context provided")
        market_insights.append("Current consumer sentiment favors consistent value over flash sales")
    else:
        suggestions.append("Consider timing context (seasonal moment, competitive response, etc.)")

    if matches(profile.value_language, brief):
        market_insights.append(
            f"{profile.locale_label} consumers prioritize long-term value over short-term discounts"
        )

    if matches(profile.family_language, brief):
        market_insights.append(
            f"{profile.locale_label} families respond well to inclusive, community-focused messaging"
        )

    if word_count > MAX_WORD_COUNT:
        warnings.append("Brief may be too detailed - consider focusing on key objectives")

    if matches(profile.urgency, brief):
        warnings.append("Rushed timelines may impact creative quality")

    score = max(0, min(100, score))
    logger.debug(f"Brief analysed: {word_count} words, score={score}")

    return BriefAnalysis(
        score=score,
        suggestions=suggestions,
        strengths=strengths,
        warnings=warnings,
        market_insights=market_insights,
    )
