"""
Dependencies injected into pipeline nodes.
"""

import logging
from dataclasses import dataclass
from typing import Optional

from ..core.config import Config, MarketProfile, get_market_profile
from ..services.demo_client import StaticGenerationClient
from ..services.gemini_service import GeminiGenerationClient, GenerationClient
from ..services.image_batch_service import ImageBatchOrchestrator

logger = logging.getLogger(__name__)


@dataclass
class TerritoryDependencies:
    """Provider client, image orchestrator and scoring lexicons for one run."""

    client: GenerationClient
    images: ImageBatchOrchestrator
    profile: MarketProfile

    @classmethod
    def create(
        cls,
        client: Optional[GenerationClient] = None,
        profile: Optional[MarketProfile] = None,
        demo_mode: Optional[bool] = None,
    ) -> "TerritoryDependencies":
        """
        Build dependencies from configuration.

        Args:
            client: Explicit GenerationClient (overrides demo_mode)
            profile: Market profile (default: active profile)
            demo_mode: Use the static demo client (default: Config.DEMO_MODE)

        Raises:
            ValueError: If a real client is needed and GEMINI_API_KEY is missing
        """
        if client is None:
            use_demo = Config.DEMO_MODE if demo_mode is None else demo_mode
            if use_demo:
                client = StaticGenerationClient()
                logger.info("Using static demo generation client")
            else:
                Config.validate()
                client = GeminiGenerationClient()

        return cls(
            client=client,
            images=ImageBatchOrchestrator(client),
            profile=profile or get_market_profile(),
        )
