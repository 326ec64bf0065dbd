"""
Image prompt construction for headline backgrounds.

Every headline gets a content-derived prompt (territory tone, positioning,
seasonal cues from the brief). Retries use a generic fallback prompt that
only depends on the territory, which providers reject less often.
"""

from typing import Dict, List

from .models import Headline, Territory


TONE_STYLE_KEYWORDS: Dict[str, List[str]] = {
    "professional": ["clean", "minimal", "sophisticated", "corporate"],
    "friendly": ["warm", "approachable", "inviting", "casual"],
    "bold": ["dynamic", "striking", "powerful", "confident"],
    "elegant": ["refined", "luxurious", "graceful", "premium"],
    "playful": ["vibrant", "energetic", "fun", "creative"],
    "serious": ["formal", "authoritative", "trustworthy", "reliable"],
    "innovative": ["modern", "cutting-edge", "futuristic", "tech-forward"],
    "authentic": ["genuine", "natural", "honest", "real"],
}
DEFAULT_STYLE_KEYWORDS = ["professional", "high-quality", "polished"]

BACKGROUND_TEMPLATES: List[Dict[str, str]] = [
    {
        "concept": "serene Australian beach at golden hour",
        "elements": "gentle waves, native coastal vegetation, warm sand, endless horizon",
        "colors": "golden sunset, ocean blues, sandy beiges, natural earth tones",
    },
    {
        "concept": "peaceful eucalyptus forest",
        "elements": "ancient gum trees, dappled sunlight, native undergrowth, natural textures",
        "colors": "forest greens, warm browns, golden light, natural bark tones",
    },
    {
        "concept": "stunning Blue Mountains vista",
        "elements": "dramatic rock formations, morning mist, native bushland, distant valleys",
        "colors": "misty blues, green vegetation, warm rock tones, atmospheric depth",
    },
    {
        "concept": "tranquil Australian countryside",
        "elements": "rolling green hills, scattered gum trees, open landscapes, rural beauty",
        "colors": "pastoral greens, sky blues, earth browns, natural harmony",
    },
]


def style_keywords(tone: str) -> List[str]:
    """Keywords for the first tone family found in the tone text."""
    lower_tone = tone.lower()
    for key, keywords in TONE_STYLE_KEYWORDS.items():
        if key in lower_tone:
            return keywords
    return DEFAULT_STYLE_KEYWORDS


def seasonal_modifier(brief: str) -> str:
    brief_lower = brief.lower()
    if "christmas" in brief_lower or "holiday" in brief_lower:
        return " with subtle festive atmosphere and cozy warmth"
    if "summer" in brief_lower:
        return " with bright, fresh summer lighting"
    if "winter" in brief_lower:
        return " with soft winter light and peaceful atmosphere"
    return ""


def select_template(headline: Headline, territory: Territory) -> Dict[str, str]:
    """Deterministic template choice so reruns produce comparable images."""
    index = (len(headline.text) + len(territory.title)) % len(BACKGROUND_TEMPLATES)
    return BACKGROUND_TEMPLATES[index]


def build_image_prompt(headline: Headline, territory: Territory, brief: str) -> str:
    """Headline-specific background prompt (first attempt)."""
    template = select_template(headline, territory)
    positioning = territory.positioning or territory.title

    return f"""Create a beautiful, peaceful background image for {positioning}.

CONCEPT: {template['concept']}{seasonal_modifier(brief)}
VISUAL ELEMENTS: {template['elements']}
COLOR PALETTE: {template['colors']}
TERRITORY TONE: {territory.tone}
STYLE KEYWORDS: {', '.join(style_keywords(territory.tone))}
HEADLINE MOOD: {headline.text}

STYLE REQUIREMENTS:
- Mobile-friendly vertical composition (9:16 ratio)
- Soft, subtle imagery suitable for text overlay
- {territory.tone} atmosphere and mood
- Authentic Australian context and elements

STRICT REQUIREMENTS - MUST AVOID:
- NO text, letters, words, or writing of any kind
- NO logos, brands, or commercial signage
- NO busy patterns that would interfere with text overlay"""


def build_fallback_prompt(territory: Territory) -> str:
    """Generic prompt used for retries."""
    keywords = ", ".join(style_keywords(territory.tone))
    return (
        f"A calm, high-quality vertical (9:16) background photograph of an Australian landscape, "
        f"{keywords} style, soft natural light, plenty of empty space. "
        f"No text, no letters, no logos."
    )
