"""
GeminiService - territory text and image generation using Google Gemini.

Each call makes exactly one provider request. Retries are the caller's
business (see ImageBatchOrchestrator); this module only classifies failures:

- ProviderError: the request itself failed (transport, quota, empty image)
- ParseError: the provider answered but the payload is not a valid
  GeneratedOutput
"""

import base64
import json
import logging
import re
import uuid
from typing import Optional, Protocol

from google import genai
from google.genai import types
from pydantic import ValidationError

from ..core.config import Config
from ..core.exceptions import TerritoryLabError
from .models import GeneratedOutput, ImageRef

logger = logging.getLogger(__name__)

CODE_FENCE_PATTERN = re.compile(r"```[a-zA-Z]*[ \t]*\n?(.*?)```", re.DOTALL)


class ProviderError(TerritoryLabError):
    """A single provider call failed."""


class ParseError(TerritoryLabError):
    """The provider response could not be turned into a GeneratedOutput."""


TERRITORY_SYSTEM_INSTRUCTION = """You are a senior creative strategist for an Australian retail loyalty brand.
From the creative brief, develop exactly 6 distinct creative territories. Each territory has exactly 3 headlines.

Return ONLY valid JSON in this structure:
{
  "territories": [
    {
      "id": "001",
      "title": "Short territory name",
      "positioning": "One or two sentences describing the strategic angle",
      "tone": "Tone of voice, e.g. Warm, inclusive, celebratory",
      "headlines": [
        {
          "text": "Headline copy",
          "followUp": "Supporting line",
          "reasoning": "Why this headline works for the audience",
          "confidence": 85
        }
      ]
    }
  ],
  "compliance": {
    "overallRisk": "LOW|MEDIUM|HIGH",
    "recommendations": ["..."],
    "flaggedContent": ["..."],
    "powerBy": ["..."],
    "output": "Short compliance summary",
    "notes": ["..."]
  }
}

Avoid unsubstantiated claims and superlatives unless they can be backed up.
"""


class GenerationClient(Protocol):
    """
    Provider boundary used by every I/O component.

    Implementations make a single external call per invocation and never
    retry on their own.
    """

    async def generate_text(self, prompt: str) -> GeneratedOutput:
        ...

    async def generate_image(self, prompt: str) -> ImageRef:
        ...


def strip_code_fences(response_text: str) -> str:
    """
    Remove an optional markdown fence around a model response.

    The fence language tag is matched in any case (```json, ```JSON), and
    prose before or after a fenced block is dropped.
    """
    json_text = response_text.strip()
    fenced = CODE_FENCE_PATTERN.search(json_text)
    if fenced:
        return fenced.group(1).strip()
    # Unpaired fence marker at either end
    return re.sub(r"^```[a-zA-Z]*|```$", "", json_text).strip()


def parse_generation_response(response_text: Optional[str]) -> GeneratedOutput:
    """
    Parse a provider text response into a validated GeneratedOutput.

    Territory ids are minted fresh here; whatever id the provider chose is
    discarded so ids are unique within a generation cycle.

    Args:
        response_text: Raw model output, possibly fenced in markdown

    Returns:
        GeneratedOutput with fresh territory ids and no stars

    Raises:
        ParseError: Empty text, invalid JSON, missing territories/compliance,
            or any schema violation
    """
    if not response_text or not response_text.strip():
        raise ParseError("Empty response from provider")

    try:
        data = json.loads(strip_code_fences(response_text))
    except json.JSONDecodeError as e:
        raise ParseError(f"Response is not valid JSON: {e}") from e

    if not isinstance(data, dict):
        raise ParseError("Response JSON is not an object")
    if not isinstance(data.get("territories"), list):
        raise ParseError("Response is missing 'territories'")
    if not isinstance(data.get("compliance"), dict):
        raise ParseError("Response is missing 'compliance'")

    for raw_territory in data["territories"]:
        if isinstance(raw_territory, dict):
            raw_territory["id"] = f"territory_{uuid.uuid4().hex[:12]}"

    try:
        output = GeneratedOutput.model_validate(data)
    except ValidationError as e:
        raise ParseError(f"Response failed schema validation: {e.error_count()} error(s)") from e

    # Stars are user state, never provider state
    for territory in output.territories:
        territory.starred = False
        for headline in territory.headlines:
            headline.starred = False

    return output


class GeminiGenerationClient:
    """
    GenerationClient backed by the google-genai SDK.

    Text requests ask for JSON with the territory system instruction; image
    requests ask for a single vertical image and return it as a data URI.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        text_model: Optional[str] = None,
        image_model: Optional[str] = None,
        timeout_seconds: Optional[int] = None,
        client: Optional[genai.Client] = None,
    ):
        """
        Initialize the Gemini client.

        Args:
            api_key: Gemini API key (if None, uses Config.GEMINI_API_KEY)
            text_model: Model for territory text (default: Config.TEXT_MODEL)
            image_model: Model for images (default: Config.IMAGE_MODEL)
            timeout_seconds: Per-request timeout (default: Config.GEMINI_TIMEOUT_SECONDS)
            client: Pre-built genai.Client (tests)

        Raises:
            ValueError: If no API key is available and no client was passed
        """
        self.text_model = text_model or Config.TEXT_MODEL
        self.image_model = image_model or Config.IMAGE_MODEL
        timeout = timeout_seconds or Config.GEMINI_TIMEOUT_SECONDS

        if client is None:
            api_key = api_key or Config.GEMINI_API_KEY
            if not api_key:
                raise ValueError("GEMINI_API_KEY not found in environment")
            # HttpOptions timeout is in milliseconds
            client = genai.Client(
                api_key=api_key,
                http_options=types.HttpOptions(timeout=timeout * 1000),
            )
        self.client = client

        logger.info(f"GeminiGenerationClient initialized: text={self.text_model}, image={self.image_model}")

    async def generate_text(self, prompt: str) -> GeneratedOutput:
        """
        Generate territories for a prompt.

        Raises:
            ProviderError: If the API call fails
            ParseError: If the response is not a valid GeneratedOutput
        """
        logger.info(f"Generating territories with {self.text_model}")
        try:
            response = await self.client.aio.models.generate_content(
                model=self.text_model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    system_instruction=TERRITORY_SYSTEM_INSTRUCTION,
                    temperature=Config.TEXT_TEMPERATURE,
                    max_output_tokens=Config.TEXT_MAX_OUTPUT_TOKENS,
                    response_mime_type="application/json",
                ),
            )
        except Exception as e:
            logger.error(f"Text generation failed: {e}")
            raise ProviderError(f"Text generation failed: {e}") from e

        output = parse_generation_response(response.text)
        logger.info(f"Parsed {len(output.territories)} territories")
        return output

    async def generate_image(self, prompt: str) -> ImageRef:
        """
        Generate one vertical image for a prompt.

        Raises:
            ProviderError: If the API call fails or returns no image
        """
        logger.debug(f"Generating image with prompt: {prompt[:50]}...")
        try:
            response = await self.client.aio.models.generate_content(
                model=self.image_model,
                contents=prompt,
                config=types.GenerateContentConfig(
                    response_modalities=["IMAGE"],
                    image_config=types.ImageConfig(aspect_ratio=Config.IMAGE_ASPECT_RATIO),
                ),
            )
        except Exception as e:
            raise ProviderError(f"Image generation failed: {e}") from e

        candidates = response.candidates or []
        parts = candidates[0].content.parts if candidates and candidates[0].content else None
        for part in parts or []:
            if part.inline_data and part.inline_data.data:
                mime_type = part.inline_data.mime_type or "image/png"
                image_base64 = base64.b64encode(part.inline_data.data).decode("utf-8")
                logger.debug(f"Image generated ({len(part.inline_data.data)} bytes)")
                return ImageRef(url=f"data:{mime_type};base64,{image_base64}", prompt=prompt)

        raise ProviderError("No image found in Gemini response")
