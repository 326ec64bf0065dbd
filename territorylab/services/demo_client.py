"""
StaticGenerationClient - offline GenerationClient for demos and tests.

Selected explicitly (TERRITORYLAB_DEMO_MODE=true or by injection). The
production client never falls back to it.
"""

import json
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

from .gemini_service import parse_generation_response
from .models import GeneratedOutput, ImageRef

logger = logging.getLogger(__name__)


def _headline(text: str, follow_up: str, reasoning: str, confidence: int) -> Dict[str, Any]:
    return {"text": text, "followUp": follow_up, "reasoning": reasoning, "confidence": confidence}


DEMO_RESPONSE: Dict[str, Any] = {
    "territories": [
        {
            "id": "001",
            "title": "Everyday Advantage",
            "positioning": "While others wait for sales events, Everyday Rewards members enjoy benefits year-round with consistent value.",
            "tone": "Confident, relatable",
            "headlines": [
                _headline("Every day is your day with Everyday Rewards.", "Benefits that never take a day off.",
                          "Owns the brand name as a daily promise", 82),
                _headline("Why wait for sales when savings happen daily?", "Points on every shop, every week.",
                          "Question format invites comparison with event-driven competitors", 78),
                _headline("Everyday Rewards: Making ordinary shopping extraordinary.", "Small shops, real rewards.",
                          "Elevates routine behaviour", 70),
            ],
        },
        {
            "id": "002",
            "title": "Smart Shoppers Club",
            "positioning": "Everyday Rewards turns every shop into a win for savvy Australians who value consistency over chaos.",
            "tone": "Premium, self-aware",
            "headlines": [
                _headline("Join the club where every shop counts.", "Membership that pays you back.",
                          "Belonging cue with a clear benefit", 80),
                _headline("Smart shopping, everyday rewards.", "For people who do the maths.",
                          "Flatters the savvy shopper", 76),
                _headline("Your everyday essentials, properly rewarded.", "Milk, bread and points.",
                          "Grounds the offer in the weekly shop", 74),
            ],
        },
        {
            "id": "003",
            "title": "No FOMO Zone",
            "positioning": "Skip the sales pressure and enjoy consistent rewards without the rush, stress, or limited-time anxiety.",
            "tone": "Calm, anti-FOMO",
            "headlines": [
                _headline("No countdown clocks. Just everyday savings.", "Shop when it suits you.",
                          "Contrasts with flash-sale urgency", 79),
                _headline("Rewards without the rush or pressure.", "The offer is still here tomorrow.",
                          "Relieves sale fatigue", 72),
                _headline("Shop at your pace, earn at every place.", "Points across partner stores.",
                          "Rhythm makes it memorable", 68),
            ],
        },
        {
            "id": "004",
            "title": "True Blue Value",
            "positioning": "Celebrating Australian shoppers with rewards that reflect our values of fairness and community.",
            "tone": "Patriotic, inclusive",
            "headlines": [
                _headline("Rewards as reliable as a true blue mate.", "Always there when you shop.",
                          "Local vernacular builds warmth", 84),
                _headline("Fair dinkum savings for fair dinkum people.", "Honest value, no catch.",
                          "Plays on fairness as a national value", 77),
                _headline("Everyday value for everyday Australians.", "Built for the family shop.",
                          "Inclusive and plain-spoken", 81),
            ],
        },
        {
            "id": "005",
            "title": "Steady Wins",
            "positioning": "Smart members quietly accumulate genuine value while others chase one-off deals and flash sales.",
            "tone": "Wry, confident",
            "headlines": [
                _headline("They saved twenty dollars once. You save every time.", "Consistency adds up.",
                          "Wry comparison rewards the loyal member", 75),
                _headline("Stacking rewards while others chase sales.", "Quiet wins, every week.",
                          "Positions members as the smart ones", 73),
                _headline("The maths always works in your favour.", "Points on every dollar.",
                          "Rational reassurance", 69),
            ],
        },
        {
            "id": "006",
            "title": "Any Day Advantage",
            "positioning": "Every day is the perfect day to earn rewards with Everyday Rewards - no special occasion required.",
            "tone": "Direct, everyday",
            "headlines": [
                _headline("Today's deal? The same as every day.", "No calendar required.",
                          "Turns the lack of events into the benefit", 71),
                _headline("Great value today. And every day after.", "Rewards that keep going.",
                          "Promises continuity", 74),
                _headline("Every day is rewards day with us.", "Scan your card, every shop.",
                          "Simple call to action", 70),
            ],
        },
    ],
    "compliance": {
        "overallRisk": "LOW",
        "powerBy": [
            "Everyday Rewards Messaging Matrix",
            "Terms and Conditions on owned assets",
            "Relevant ACCC advertising obligations",
        ],
        "output": "All messaging complies with Australian Consumer Law and ACCC advertising guidelines. "
                  "Claims are substantiated with program benefits and terms are clearly disclosed where required.",
        "notes": [
            "Claims substantiated with actual program benefits",
            "Terms clearly disclosed in all marketing materials",
            "ACCC guidelines followed for comparative advertising claims",
            "No misleading or deceptive statements identified",
            "Australian cultural references used appropriately",
            "Value propositions align with program offerings",
        ],
    },
}


class StaticGenerationClient:
    """
    GenerationClient double returning canned territories and placeholder images.

    The canned payload goes through the same parser as real responses, so ids
    are minted fresh on every call. Prompts are recorded for inspection.
    """

    def __init__(self, response: Optional[Dict[str, Any]] = None):
        self.response = response or DEMO_RESPONSE
        self.text_prompts: List[str] = []
        self.image_prompts: List[str] = []

    async def generate_text(self, prompt: str) -> GeneratedOutput:
        self.text_prompts.append(prompt)
        logger.info("Returning static demo territories")
        return parse_generation_response(json.dumps(self.response))

    async def generate_image(self, prompt: str) -> ImageRef:
        self.image_prompts.append(prompt)
        label = quote(prompt[:40])
        return ImageRef(url=f"https://placehold.co/576x1024/png?text={label}", prompt=prompt)
