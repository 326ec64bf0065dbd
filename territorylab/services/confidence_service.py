"""
Territory confidence scoring.

Heuristic, per-territory scores for market fit, compliance risk and audience
resonance. Each territory is scored independently; nothing here does I/O.
"""

import logging
import math
from typing import List, Optional, Set

from ..core.config import MarketProfile, get_market_profile
from .brief_analysis_service import matches
from .models import GeneratedOutput, RiskLevel, Territory, TerritoryConfidence

logger = logging.getLogger(__name__)


# ============================================================================
# Scoring constants
# ============================================================================

MARKET_FIT_BASE = 60
VERNACULAR_BONUS = 15
CONSISTENCY_BONUS = 10
OVERLAP_POINTS_PER_TOKEN = 2
OVERLAP_CAP = 15
MEDIUM_RISK_PENALTY = 10
HIGH_RISK_PENALTY = 20

COMPLIANCE_BASE = 85
CLAIM_PENALTY = 25
DISCLAIMER_BONUS = 10

RESONANCE_BASE = 70
INTELLIGENCE_BONUS = 10
COMMUNITY_BONUS = 15


def round_half_up(value: float) -> int:
    """Round .5 upwards (Python's round() is banker's rounding)."""
    return int(math.floor(value + 0.5))


def _clamp(value: int) -> int:
    return max(0, min(100, value))


def brief_overlap(territory: Territory, brief: str) -> int:
    """
    Count brief tokens found in the territory text.

    Tokens are the lowercased, whitespace-split brief words; each occurrence
    counts, duplicates included. Matching is plain substring containment, so
    "value" also matches "values".
    """
    territory_text = " ".join(
        [territory.positioning] + [h.text for h in territory.headlines]
    ).lower()
    return sum(1 for word in brief.lower().split() if word in territory_text)


def _describe_market_fit(market_fit: int) -> str:
    if market_fit >= 80:
        return "strong market fit"
    if market_fit >= 60:
        return "moderate market fit"
    return "limited market fit"


def score_territory(
    territory: Territory,
    brief: str,
    profile: Optional[MarketProfile] = None
) -> TerritoryConfidence:
    """
    Score one territory against its brief.

    Risk: superlatives or unsubstantiated claims in the headlines raise the
    risk to MEDIUM (-10 market fit); both together raise it to HIGH (a further
    -20). Unsubstantiated claims also cost 25 compliance points.

    Args:
        territory: Territory to score
        brief: Brief the territory was generated from
        profile: Lexicons to use (default: active market profile)

    Returns:
        TerritoryConfidence with all numerics clamped to [0, 100]
    """
    profile = profile or get_market_profile()
    headline_text = " ".join(h.text for h in territory.headlines)

    market_fit = MARKET_FIT_BASE
    if matches(profile.vernacular, headline_text):
        market_fit += VERNACULAR_BONUS
    if matches(profile.consistency, territory.positioning):
        market_fit += CONSISTENCY_BONUS
    market_fit += min(OVERLAP_POINTS_PER_TOKEN * brief_overlap(territory, brief), OVERLAP_CAP)

    has_superlatives = matches(profile.superlatives, headline_text)
    has_claims = matches(profile.unsubstantiated_claims, headline_text)

    risk_level = RiskLevel.LOW
    if has_superlatives or has_claims:
        risk_level = RiskLevel.MEDIUM
        market_fit -= MEDIUM_RISK_PENALTY
    if has_superlatives and has_claims:
        risk_level = RiskLevel.HIGH
        market_fit -= HIGH_RISK_PENALTY

    compliance_confidence = COMPLIANCE_BASE
    if has_claims:
        compliance_confidence -= CLAIM_PENALTY
    if matches(profile.disclaimers, headline_text):
        compliance_confidence += DISCLAIMER_BONUS

    audience_resonance = RESONANCE_BASE
    if matches(profile.intelligence, headline_text):
        audience_resonance += INTELLIGENCE_BONUS
    if matches(profile.community, headline_text):
        audience_resonance += COMMUNITY_BONUS

    market_fit = _clamp(market_fit)
    compliance_confidence = _clamp(compliance_confidence)
    audience_resonance = _clamp(audience_resonance)

    risk_reason = (
        "careful claim substantiation" if risk_level == RiskLevel.LOW
        else "potential compliance concerns"
    )
    resonance_reason = (
        "emotional and cultural connection" if audience_resonance > 80
        else "value-focused messaging"
    )
    reasoning = (
        f"Shows {_describe_market_fit(market_fit)} based on brand alignment and cultural relevance. "
        f"Risk level {risk_level.value.lower()} due to {risk_reason}. "
        f"Audience resonance driven by {resonance_reason}."
    )

    return TerritoryConfidence(
        market_fit=market_fit,
        risk_level=risk_level,
        compliance_confidence=compliance_confidence,
        audience_resonance=audience_resonance,
        reasoning=reasoning,
    )


def _territory_mean(confidence: TerritoryConfidence) -> float:
    return (confidence.market_fit + confidence.compliance_confidence + confidence.audience_resonance) / 3


def calculate_overall_confidence(territories: List[Territory]) -> int:
    """
    Rounded mean of each scored territory's
    (market_fit + compliance_confidence + audience_resonance) / 3.

    Unscored territories are skipped; nothing scored gives 0.
    """
    per_territory = [_territory_mean(t.confidence) for t in territories if t.confidence is not None]
    return round_half_up(sum(per_territory) / len(per_territory)) if per_territory else 0


def enhance_generated_output(
    output: GeneratedOutput,
    brief: str,
    profile: Optional[MarketProfile] = None
) -> GeneratedOutput:
    """
    Score every territory in place and set the overall confidence.

    An output without territories scores 0.

    Returns:
        The same output object, for chaining
    """
    for territory in output.territories:
        territory.confidence = score_territory(territory, brief, profile)

    output.overall_confidence = calculate_overall_confidence(output.territories)
    logger.info(
        f"Scored {len(output.territories)} territories, overall confidence {output.overall_confidence}"
    )
    return output


def rescore_unpinned(
    output: GeneratedOutput,
    brief: str,
    pinned_ids: Set[str],
    profile: Optional[MarketProfile] = None
) -> GeneratedOutput:
    """
    Re-score a merged output in place.

    Territories in pinned_ids keep their stored confidence. Every other
    territory is scored against the headlines it now carries, and the
    overall confidence is recomputed across all territories. When every
    territory is pinned the output is left untouched.

    Returns:
        The same output object, for chaining
    """
    unpinned = [t for t in output.territories if t.id not in pinned_ids]
    if not unpinned:
        return output

    for territory in unpinned:
        territory.confidence = score_territory(territory, brief, profile)

    output.overall_confidence = calculate_overall_confidence(output.territories)
    logger.info(
        f"Re-scored {len(unpinned)} merged territories, overall confidence {output.overall_confidence}"
    )
    return output
