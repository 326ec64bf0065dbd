"""
Tests for the Gemini generation client and response parsing.

The google-genai client is replaced by a MagicMock whose
aio.models.generate_content is an AsyncMock; nothing touches the network.
"""

import base64
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

from territorylab.core.config import Config
from territorylab.services.demo_client import DEMO_RESPONSE
from territorylab.services.gemini_service import (
    GeminiGenerationClient,
    ParseError,
    ProviderError,
    parse_generation_response,
    strip_code_fences,
)


def _payload(**overrides):
    data = {
        "territories": [
            {
                "id": "001",
                "title": "Everyday Advantage",
                "positioning": "Consistent value",
                "tone": "Warm",
                "starred": True,
                "headlines": [
                    {"text": "Every day counts", "followUp": "Points every shop", "confidence": 80, "starred": True},
                ],
            },
            {"id": "001", "title": "Second", "headlines": []},
        ],
        "compliance": {"overallRisk": "LOW", "flaggedContent": ["none"]},
    }
    data.update(overrides)
    return data


def _make_gemini_client(response=None, side_effect=None):
    sdk = MagicMock()
    sdk.aio.models.generate_content = AsyncMock(return_value=response, side_effect=side_effect)
    return GeminiGenerationClient(client=sdk), sdk


def _image_response(parts):
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=parts))])


class TestStripCodeFences:

    def test_json_fence(self):
        assert strip_code_fences('```json\n{"a": 1}\n```') == '{"a": 1}'

    def test_plain_fence(self):
        assert strip_code_fences('```\n{"a": 1}\n```') == '{"a": 1}'

    def test_no_fence(self):
        assert strip_code_fences('  {"a": 1} ') == '{"a": 1}'

    def test_uppercase_language_tag(self):
        assert strip_code_fences('```JSON\n{"a": 1}\n```') == '{"a": 1}'

    def test_prose_around_fence(self):
        text = 'Here are your territories:\n```json\n{"a": 1}\n```\nLet me know!'
        assert strip_code_fences(text) == '{"a": 1}'

    def test_unterminated_fence(self):
        assert strip_code_fences('```json\n{"a": 1}') == '{"a": 1}'


class TestParseGenerationResponse:

    def test_parses_camel_case(self):
        output = parse_generation_response(json.dumps(_payload()))

        assert len(output.territories) == 2
        headline = output.territories[0].headlines[0]
        assert headline.follow_up == "Points every shop"
        assert headline.confidence == 80
        assert output.compliance.overall_risk == "LOW"
        assert output.compliance.flagged_content == ["none"]

    def test_mints_unique_ids(self):
        output = parse_generation_response(json.dumps(_payload()))
        ids = [t.id for t in output.territories]

        assert len(set(ids)) == 2
        assert all(i.startswith("territory_") for i in ids)

    def test_provider_stars_discarded(self):
        output = parse_generation_response(json.dumps(_payload()))
        assert output.territories[0].starred is False
        assert output.territories[0].headlines[0].starred is False

    def test_fenced_response(self):
        output = parse_generation_response("```json\n" + json.dumps(_payload()) + "\n```")
        assert len(output.territories) == 2

    def test_uppercase_fence_with_preamble(self):
        text = "Sure! Here is the JSON.\n```JSON\n" + json.dumps(_payload()) + "\n```"
        output = parse_generation_response(text)
        assert len(output.territories) == 2

    def test_no_confidence_yet(self):
        output = parse_generation_response(json.dumps(_payload()))
        assert output.overall_confidence is None
        assert output.territories[0].confidence is None

    @pytest.mark.parametrize("text", [None, "", "   "])
    def test_empty(self, text):
        with pytest.raises(ParseError):
            parse_generation_response(text)

    def test_invalid_json(self):
        with pytest.raises(ParseError):
            parse_generation_response("Here are your territories: {")

    def test_not_an_object(self):
        with pytest.raises(ParseError):
            parse_generation_response("[1, 2, 3]")

    def test_missing_territories(self):
        data = _payload()
        del data["territories"]
        with pytest.raises(ParseError):
            parse_generation_response(json.dumps(data))

    def test_missing_compliance(self):
        data = _payload()
        del data["compliance"]
        with pytest.raises(ParseError):
            parse_generation_response(json.dumps(data))

    def test_schema_violation(self):
        data = _payload()
        data["territories"][0]["headlines"][0]["confidence"] = 150
        with pytest.raises(ParseError):
            parse_generation_response(json.dumps(data))

    def test_headline_without_text(self):
        data = _payload()
        data["territories"][0]["headlines"] = [{"followUp": "orphan"}]
        with pytest.raises(ParseError):
            parse_generation_response(json.dumps(data))


class TestGenerateText:

    @pytest.mark.asyncio
    async def test_returns_parsed_output(self):
        client, sdk = _make_gemini_client(response=SimpleNamespace(text=json.dumps(DEMO_RESPONSE)))

        output = await client.generate_text("brief prompt")

        assert len(output.territories) == 6
        sdk.aio.models.generate_content.assert_awaited_once()
        kwargs = sdk.aio.models.generate_content.call_args.kwargs
        assert kwargs["model"] == client.text_model
        assert kwargs["contents"] == "brief prompt"
        assert kwargs["config"].response_mime_type == "application/json"

    @pytest.mark.asyncio
    async def test_transport_error(self):
        client, _ = _make_gemini_client(side_effect=RuntimeError("503 unavailable"))
        with pytest.raises(ProviderError):
            await client.generate_text("brief prompt")

    @pytest.mark.asyncio
    async def test_unparseable_response(self):
        client, _ = _make_gemini_client(response=SimpleNamespace(text="not json"))
        with pytest.raises(ParseError):
            await client.generate_text("brief prompt")


class TestGenerateImage:

    @pytest.mark.asyncio
    async def test_returns_data_uri(self):
        parts = [
            SimpleNamespace(inline_data=None),
            SimpleNamespace(inline_data=SimpleNamespace(data=b"\x89PNG", mime_type="image/png")),
        ]
        client, sdk = _make_gemini_client(response=_image_response(parts))

        image_ref = await client.generate_image("beach at golden hour")

        expected = base64.b64encode(b"\x89PNG").decode("utf-8")
        assert image_ref.url == f"data:image/png;base64,{expected}"
        assert image_ref.prompt == "beach at golden hour"
        assert sdk.aio.models.generate_content.call_args.kwargs["model"] == client.image_model

    @pytest.mark.asyncio
    async def test_no_image_in_response(self):
        client, _ = _make_gemini_client(response=_image_response([SimpleNamespace(inline_data=None)]))
        with pytest.raises(ProviderError):
            await client.generate_image("prompt")

    @pytest.mark.asyncio
    async def test_no_candidates(self):
        client, _ = _make_gemini_client(response=SimpleNamespace(candidates=[]))
        with pytest.raises(ProviderError):
            await client.generate_image("prompt")

    @pytest.mark.asyncio
    async def test_transport_error(self):
        client, _ = _make_gemini_client(side_effect=RuntimeError("429 quota"))
        with pytest.raises(ProviderError):
            await client.generate_image("prompt")


class TestClientConstruction:

    def test_requires_api_key_without_client(self, monkeypatch):
        monkeypatch.setattr(Config, "GEMINI_API_KEY", "")
        with pytest.raises(ValueError):
            GeminiGenerationClient()
