"""
Language-model configuration for the Toys to Stories service.

Both the toy analysis (multimodal) and the story composition calls go to
Gemini through the google-genai client. The client is constructed
explicitly and handed to the pipeline so tests can pass a double.

Includes:
- Per-stage timeout so a hanging connection fails the stage
- Retry with exponential backoff for transient network errors
"""

import logging
import os

from dotenv import load_dotenv
from google import genai
from google.genai.errors import ClientError, ServerError
from tenacity import (
    retry,
    stop_after_attempt,
    wait_exponential,
    retry_if_exception,
    before_sleep_log,
)

from ..core.errors import ConfigurationError

# Load environment variables from .env file
load_dotenv()

# Logging for retry attempts
logger = logging.getLogger(__name__)

# Placeholder value shipped in the example .env file
PLACEHOLDER_API_KEY = "your_api_key_here"

LLM_CONSTANTS = {
    "analysis_model": os.getenv("TOYSTORIES_ANALYSIS_MODEL", "gemini-2.5-flash"),
    "story_model": os.getenv("TOYSTORIES_STORY_MODEL", "gemini-2.5-flash"),
    "stage_timeout": float(os.getenv("TOYSTORIES_STAGE_TIMEOUT", "120")),
    "stage_attempts": int(os.getenv("TOYSTORIES_STAGE_ATTEMPTS", "3")),
}

# Network errors that should trigger retry
RETRYABLE_EXCEPTIONS = (
    ConnectionError,
    TimeoutError,
    BrokenPipeError,
    OSError,  # Catches [Errno 32] Broken pipe
    ServerError,
)


def is_retryable(exc: BaseException) -> bool:
    """Transient network/server errors and rate limits are worth retrying."""
    if isinstance(exc, ClientError):
        return exc.code == 429
    return isinstance(exc, RETRYABLE_EXCEPTIONS)


def get_api_key() -> str:
    """Return the configured Gemini API key, or an empty string."""
    api_key = os.getenv("GOOGLE_API_KEY", "")
    if api_key == PLACEHOLDER_API_KEY:
        return ""
    return api_key


def is_api_configured() -> bool:
    """Check if the Gemini API is properly configured."""
    return bool(get_api_key())


def get_genai_client() -> genai.Client:
    """
    Get the Gemini client used for analysis, composition and illustration.

    Uses GOOGLE_API_KEY from environment.

    Raises:
        ConfigurationError: If no usable API key is configured
    """
    api_key = get_api_key()
    if not api_key:
        raise ConfigurationError(
            "GOOGLE_API_KEY not found in environment. Set it in .env file."
        )

    return genai.Client(api_key=api_key)


def get_analysis_model() -> str:
    """Get the multimodal model ID used for toy analysis."""
    return LLM_CONSTANTS["analysis_model"]


def get_story_model() -> str:
    """Get the model ID used for story composition."""
    return LLM_CONSTANTS["story_model"]


# Retry decorator for LLM calls with network errors
llm_retry = retry(
    stop=stop_after_attempt(LLM_CONSTANTS["stage_attempts"]),
    wait=wait_exponential(multiplier=2, min=2, max=10),
    retry=retry_if_exception(is_retryable),
    before_sleep=before_sleep_log(logger, logging.WARNING),
    reraise=True,
)
