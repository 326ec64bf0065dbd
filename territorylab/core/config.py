"""
Configuration management for TerritoryLab
"""

import os
import re
import yaml
from pathlib import Path
from typing import Optional, Dict, Any
from dataclasses import dataclass, fields, replace
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class Config:
    """Application configuration"""

    # Gemini
    GEMINI_API_KEY: str = os.getenv('GEMINI_API_KEY', '')
    TEXT_MODEL: str = os.getenv('TEXT_MODEL', 'gemini-2.5-flash')
    IMAGE_MODEL: str = os.getenv('IMAGE_MODEL', 'gemini-2.5-flash-image')
    TEXT_TEMPERATURE: float = float(os.getenv('TEXT_TEMPERATURE', '0.8'))
    TEXT_MAX_OUTPUT_TOKENS: int = int(os.getenv('TEXT_MAX_OUTPUT_TOKENS', '4000'))
    GEMINI_TIMEOUT_SECONDS: int = int(os.getenv('GEMINI_TIMEOUT_SECONDS', '120'))

    # Image batching (rate-limit driven)
    IMAGE_BATCH_SIZE: int = int(os.getenv('IMAGE_BATCH_SIZE', '6'))
    IMAGE_MAX_ATTEMPTS: int = int(os.getenv('IMAGE_MAX_ATTEMPTS', '3'))
    IMAGE_BATCH_COOLDOWN_SECONDS: float = float(os.getenv('IMAGE_BATCH_COOLDOWN_SECONDS', '2.0'))
    IMAGE_ASPECT_RATIO: str = os.getenv('IMAGE_ASPECT_RATIO', '9:16')

    # Demo mode swaps the provider for the static client
    DEMO_MODE: bool = _env_bool('TERRITORYLAB_DEMO_MODE')

    # Optional YAML overrides for the scoring lexicons
    MARKET_PROFILE_PATH: str = os.getenv('MARKET_PROFILE_PATH', '')

    @classmethod
    def validate(cls) -> bool:
        """Validate required configuration"""
        if cls.DEMO_MODE:
            return True

        required = {
            'GEMINI_API_KEY': cls.GEMINI_API_KEY,
        }

        missing = [k for k, v in required.items() if not v]

        if missing:
            raise ValueError(f"Missing required configuration: {', '.join(missing)}")

        return True

    @classmethod
    def get(cls, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get configuration value"""
        return getattr(cls, key, default)


# Market Profile Configuration


@dataclass(frozen=True)
class MarketProfile:
    """
    Regex lexicons used by the heuristic scorers.

    Every field is a case-insensitive regular expression. The defaults describe
    an Australian retail-loyalty market; a YAML file can override any subset.
    """
    name: str = "australia-retail"

    # Brief signals
    audience: str = r"target|audience|customer|shopper"
    objective: str = r"objective|goal|aim|drive|increase|generate"
    competitive: str = r"competitor|market|against|versus|vs"
    brand: str = r"everyday rewards"
    shopping_moment: str = r"black friday|christmas|mother|father|valentine|australia day|eofy"
    urgency: str = r"urgent|asap|rush"
    value_language: str = r"value|saving|deal"
    family_language: str = r"family|families"

    # Territory signals
    vernacular: str = r"aussie|mate|fair dinkum|true blue"
    consistency: str = r"everyday|daily|consistent|regular"
    superlatives: str = r"best|amazing|incredible|unbeatable|revolutionary"
    unsubstantiated_claims: str = r"guarantee|promise|always|never|100%"
    disclaimers: str = r"terms apply|conditions apply|\*"
    intelligence: str = r"smart|clever|savvy|wise"
    community: str = r"family|community|together|belong"
    local_market: str = r"australia|aussie"
    competitor_mention: str = r"competitor|vs"

    # Copy used when suggesting local context
    locale_label: str = "Australian"


# Plain-text fields; every other MarketProfile field is a regex
TEXT_PROFILE_FIELDS = {"name", "locale_label"}

_market_profile: Optional[MarketProfile] = None


def load_market_profile(path: Optional[str] = None) -> MarketProfile:
    """
    Load a market profile from YAML.

    Unknown keys are rejected so a typo does not silently fall back to the
    default lexicon. Values must be strings, and lexicon values must compile
    as regular expressions, so the scorers never see a broken pattern.

    Args:
        path: Path to a YAML mapping of MarketProfile field -> regex.
              None or empty returns the default profile.

    Returns:
        MarketProfile instance

    Raises:
        FileNotFoundError: If the path doesn't exist
        ValueError: If the YAML is not a mapping, or has unknown keys,
                    non-string values or invalid regular expressions
    """
    profile = MarketProfile()
    if not path:
        return profile

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Market profile not found at {config_path}")

    with open(config_path, 'r') as f:
        raw: Any = yaml.safe_load(f) or {}

    if not isinstance(raw, dict):
        raise ValueError(f"Market profile {config_path} must be a mapping")

    known = {f.name for f in fields(MarketProfile)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"Unknown market profile keys: {', '.join(unknown)}")

    overrides: Dict[str, str] = {}
    for key, value in raw.items():
        if not isinstance(value, str):
            raise ValueError(f"Market profile key '{key}' must be a string, got {type(value).__name__}")
        if key not in TEXT_PROFILE_FIELDS:
            try:
                re.compile(value, re.IGNORECASE)
            except re.error as e:
                raise ValueError(f"Market profile key '{key}' is not a valid regex: {e}") from e
        overrides[key] = value

    return replace(profile, **overrides)


def get_market_profile() -> MarketProfile:
    """Get or load the active market profile (singleton pattern)"""
    global _market_profile

    if _market_profile is None:
        _market_profile = load_market_profile(Config.MARKET_PROFILE_PATH)

    return _market_profile


def reset_market_profile():
    """Reset the cached market profile (useful for testing)"""
    global _market_profile
    _market_profile = None
