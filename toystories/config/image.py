"""
Image generation configuration for the Toys to Stories service.

Uses a Gemini image model for page illustrations.
"""

import base64
import logging
import os

from google.genai.types import GenerateContentConfig, Modality
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception,
    before_sleep_log,
)

from .llm import RETRYABLE_EXCEPTIONS, is_retryable

logger = logging.getLogger(__name__)

# Image generation constants
IMAGE_CONSTANTS = {
    "model": os.getenv("TOYSTORIES_IMAGE_MODEL", "gemini-2.5-flash-image"),
    "default_mime_type": "image/png",
    "max_attempts": 3,
    "request_timeout": float(os.getenv("TOYSTORIES_IMAGE_TIMEOUT", "120")),
}

__all__ = [
    "IMAGE_CONSTANTS",
    "RETRYABLE_EXCEPTIONS",
    "get_image_model",
    "get_image_config",
    "extract_image_from_response",
    "image_retry",
]


def get_image_model() -> str:
    """Get the image model ID."""
    return IMAGE_CONSTANTS["model"]


def get_image_config() -> GenerateContentConfig:
    """Get the default config for image generation."""
    return GenerateContentConfig(
        response_modalities=[Modality.TEXT, Modality.IMAGE]
    )


def extract_image_from_response(response) -> tuple[bytes, str]:
    """
    Extract image bytes and mime type from a Gemini API response.

    Args:
        response: The response from client.aio.models.generate_content()

    Returns:
        Tuple of (image bytes, mime type)

    Raises:
        ValueError: If no image found in response
    """
    candidates = getattr(response, "candidates", None) or []
    if not candidates or candidates[0].content is None:
        raise ValueError("No image found in response")

    for part in candidates[0].content.parts or []:
        inline = getattr(part, "inline_data", None)
        if not inline or not inline.data:
            continue
        mime_type = getattr(inline, "mime_type", None) or IMAGE_CONSTANTS["default_mime_type"]
        if not isinstance(mime_type, str) or not mime_type.startswith("image/"):
            mime_type = IMAGE_CONSTANTS["default_mime_type"]
        data = inline.data
        return (base64.b64decode(data) if isinstance(data, str) else data), mime_type

    raise ValueError("No image found in response")


# Retry decorator for image calls: network errors, 5xx and 429 rate limits
image_retry = retry(
    stop=stop_after_attempt(IMAGE_CONSTANTS["max_attempts"]),
    wait=wait_exponential(multiplier=2, min=2, max=10),
    retry=retry_if_exception(is_retryable),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
