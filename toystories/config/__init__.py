"""
Configuration module for the Toys to Stories service.

Re-exports all configuration for convenient access.
"""

from .llm import (
    LLM_CONSTANTS,
    RETRYABLE_EXCEPTIONS,
    get_analysis_model,
    get_genai_client,
    get_story_model,
    is_api_configured,
    is_retryable,
    llm_retry,
)
from .story import (
    STORY_CONSTANTS,
    PIPELINE_CONSTANTS,
    GENERIC_TOY_DESCRIPTION,
    DEFAULT_IMAGE_URLS,
)
from .image import (
    IMAGE_CONSTANTS,
    get_image_model,
    get_image_config,
    extract_image_from_response,
    image_retry,
)

__all__ = [
    # LLM
    "LLM_CONSTANTS",
    "RETRYABLE_EXCEPTIONS",
    "get_analysis_model",
    "get_genai_client",
    "get_story_model",
    "is_api_configured",
    "is_retryable",
    "llm_retry",
    # Story
    "STORY_CONSTANTS",
    "PIPELINE_CONSTANTS",
    "GENERIC_TOY_DESCRIPTION",
    "DEFAULT_IMAGE_URLS",
    # Image
    "IMAGE_CONSTANTS",
    "get_image_model",
    "get_image_config",
    "extract_image_from_response",
    "image_retry",
]
