"""
Module for analyzing a toy photo into a character profile.

The profile's full description is the canonical toy text for every later
illustration prompt, so the analysis asks for the visual details an artist
needs to draw the same toy on every page.
"""

import asyncio
import base64
import binascii
import logging
from io import BytesIO
from typing import Optional, Union

from PIL import Image, UnidentifiedImageError

from toystories.config import LLM_CONSTANTS, get_analysis_model, llm_retry
from ..errors import AnalysisError
from ..parsing import load_json_object
from ..types import GENERIC_TOY_PROFILE, ToyCharacterProfile

logger = logging.getLogger(__name__)

ANALYSIS_PROMPT = """You are creating a character reference sheet for a children's book illustrator.
Analyze this toy image in DETAIL so an artist can draw this EXACT toy consistently across multiple illustrations.

Respond with ONLY valid JSON (no markdown):
{
  "type": "what kind of toy (e.g., teddy bear, dinosaur plush, stuffed bunny)",
  "primaryColor": "main color of the toy",
  "secondaryColors": "any other colors present",
  "material": "what it appears to be made of (plush, knitted, plastic, etc.)",
  "size": "apparent size (small, medium, large, huggable)",
  "facialFeatures": "describe eyes, nose, mouth in detail (e.g., round black button eyes, pink triangle nose, stitched smile)",
  "bodyShape": "body proportions (e.g., round and chubby, long arms, big head)",
  "clothing": "any clothes or outfits (or 'none')",
  "accessories": "any accessories, patches, bows, tags (or 'none')",
  "distinctiveFeatures": "anything unique that makes this toy special"
}"""

# JSON key -> ToyCharacterProfile field
_PROFILE_FIELDS = {
    "type": "type",
    "primaryColor": "primary_color",
    "secondaryColors": "secondary_colors",
    "material": "material",
    "size": "size",
    "facialFeatures": "facial_features",
    "bodyShape": "body_shape",
}
_OPTIONAL_FIELDS = {
    "clothing": "clothing",
    "accessories": "accessories",
    "distinctiveFeatures": "distinctive_features",
}


class ToyAnalyzer:
    """
    Turn a toy photo into a ToyCharacterProfile using a multimodal model.

    Network and API failures raise AnalysisError. An unparsable answer is
    not an error: the generic fallback profile is returned instead.
    """

    def __init__(self, client, model: Optional[str] = None, timeout: Optional[float] = None):
        self.client = client
        self.model = model or get_analysis_model()
        self.timeout = timeout or LLM_CONSTANTS["stage_timeout"]

    @staticmethod
    def load_photo(photo: Union[str, bytes]) -> Image.Image:
        """Decode a base64 string (optionally a data URL) or raw bytes into an RGB image."""
        if isinstance(photo, str):
            encoded = photo.split("base64,", 1)[1] if "base64," in photo else photo
            try:
                photo = base64.b64decode(encoded, validate=True)
            except (binascii.Error, ValueError) as e:
                raise AnalysisError(f"Toy photo is not valid base64: {e}") from e

        try:
            image = Image.open(BytesIO(photo))
            image.load()
        except (UnidentifiedImageError, OSError) as e:
            raise AnalysisError(f"Toy photo could not be decoded: {e}") from e

        if image.mode != "RGB":
            image = image.convert("RGB")
        return image

    @llm_retry
    async def _request_analysis(self, image: Image.Image) -> str:
        """Send the photo and instruction to the model with retry for network errors."""
        response = await asyncio.wait_for(
            self.client.aio.models.generate_content(
                model=self.model,
                contents=[ANALYSIS_PROMPT, image],
            ),
            timeout=self.timeout,
        )
        return response.text or ""

    def parse_profile(self, raw_output: str) -> ToyCharacterProfile:
        """Parse the model's JSON into a profile, or return the generic profile."""
        try:
            parsed = load_json_object(raw_output)
            values = {}
            for key, field in _PROFILE_FIELDS.items():
                if not isinstance(parsed[key], str):
                    raise ValueError(f"{key!r} is not a string")
                values[field] = parsed[key].strip()
            for key, field in _OPTIONAL_FIELDS.items():
                value = parsed.get(key)
                if value and isinstance(value, str):
                    values[field] = value.strip()
            return ToyCharacterProfile.from_fields(**values)
        except (ValueError, KeyError) as e:
            logger.warning(f"Failed to parse toy analysis, using generic profile: {e}")
            return GENERIC_TOY_PROFILE

    async def analyze(self, photo: Union[str, bytes]) -> ToyCharacterProfile:
        """
        Analyze a toy photo.

        Args:
            photo: Base64 image (data URL prefix allowed) or raw image bytes

        Returns:
            ToyCharacterProfile with a non-empty full_description

        Raises:
            AnalysisError: If the photo is unreadable or the model call fails
        """
        image = self.load_photo(photo)

        try:
            raw_output = await self._request_analysis(image)
        except Exception as e:
            raise AnalysisError(f"Toy analysis request failed: {e}") from e

        profile = self.parse_profile(raw_output)
        logger.info(f"Analyzed toy: {profile.type}")
        return profile
