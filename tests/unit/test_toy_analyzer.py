"""Unit tests for ToyAnalyzer with mocked API client."""

import json

import pytest

from toystories.core.errors import AnalysisError
from toystories.core.modules.toy_analyzer import ANALYSIS_PROMPT, ToyAnalyzer
from toystories.core.types import GENERIC_TOY_PROFILE

from tests.unit.conftest import make_genai_client, make_text_response

ANALYSIS_JSON = {
    "type": "teddy bear",
    "primaryColor": "brown",
    "secondaryColors": "cream",
    "material": "plush",
    "size": "huggable",
    "facialFeatures": "round black button eyes",
    "bodyShape": "round and chubby",
    "clothing": "red scarf",
    "accessories": "none",
    "distinctiveFeatures": "a patch on one ear",
}


class TestLoadPhoto:
    def test_accepts_data_url(self, toy_photo_base64):
        image = ToyAnalyzer.load_photo("data:image/png;base64," + toy_photo_base64)
        assert image.mode == "RGB"
        assert image.size == (8, 8)

    def test_rejects_invalid_base64(self):
        with pytest.raises(AnalysisError):
            ToyAnalyzer.load_photo("%%% not base64 %%%")

    def test_rejects_non_image_bytes(self):
        with pytest.raises(AnalysisError):
            ToyAnalyzer.load_photo(b"definitely not an image")


class TestParseProfile:
    def test_parses_fenced_json(self):
        analyzer = ToyAnalyzer(client=None, model="test-model")
        raw = "```json\n" + json.dumps(ANALYSIS_JSON) + "\n```"

        profile = analyzer.parse_profile(raw)

        assert profile.type == "teddy bear"
        assert profile.full_description.startswith("A plush teddy bear toy.")
        assert "Wearing: red scarf." in profile.full_description

    def test_unparsable_text_returns_generic_profile(self):
        analyzer = ToyAnalyzer(client=None, model="test-model")
        assert analyzer.parse_profile("It's a lovely bear!") is GENERIC_TOY_PROFILE

    def test_missing_field_returns_generic_profile(self):
        analyzer = ToyAnalyzer(client=None, model="test-model")
        incomplete = {k: v for k, v in ANALYSIS_JSON.items() if k != "material"}
        assert analyzer.parse_profile(json.dumps(incomplete)) is GENERIC_TOY_PROFILE

    def test_null_field_returns_generic_profile(self):
        analyzer = ToyAnalyzer(client=None, model="test-model")
        reply = {**ANALYSIS_JSON, "material": None}
        assert analyzer.parse_profile(json.dumps(reply)) is GENERIC_TOY_PROFILE

    def test_non_string_optional_field_is_ignored(self):
        analyzer = ToyAnalyzer(client=None, model="test-model")
        reply = {**ANALYSIS_JSON, "clothing": ["scarf"]}

        profile = analyzer.parse_profile(json.dumps(reply))

        assert profile.type == "teddy bear"
        assert "Wearing:" not in profile.full_description


class TestAnalyze:
    @pytest.mark.asyncio
    async def test_sends_prompt_and_image(self, toy_photo_base64):
        client = make_genai_client(make_text_response(json.dumps(ANALYSIS_JSON)))
        analyzer = ToyAnalyzer(client, model="test-model")

        profile = await analyzer.analyze(toy_photo_base64)

        assert profile.primary_color == "brown"
        call = client.aio.models.generate_content.call_args
        assert call.kwargs["model"] == "test-model"
        assert call.kwargs["contents"][0] == ANALYSIS_PROMPT

    @pytest.mark.asyncio
    async def test_api_failure_raises_analysis_error(self, toy_photo_base64):
        client = make_genai_client(RuntimeError("connection refused"))
        analyzer = ToyAnalyzer(client, model="test-model")

        with pytest.raises(AnalysisError, match="connection refused"):
            await analyzer.analyze(toy_photo_base64)

    @pytest.mark.asyncio
    async def test_empty_response_returns_generic_profile(self, toy_photo_base64):
        client = make_genai_client(make_text_response(None))
        analyzer = ToyAnalyzer(client, model="test-model")

        profile = await analyzer.analyze(toy_photo_base64)

        assert profile is GENERIC_TOY_PROFILE
