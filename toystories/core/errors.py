"""
Exception hierarchy for the story generation pipeline.

Only composition failures are fatal to a run. Every other error class is
recovered by the stage that raises it or by the coordinator's policy table.
"""

from typing import Optional


class StoryPipelineError(Exception):
    """Base class for all pipeline errors."""


class ConfigurationError(StoryPipelineError):
    """The external AI integration is not configured (e.g. missing API key)."""


class AnalysisError(StoryPipelineError):
    """Toy photo analysis failed at the network/API level."""


class CompositionError(StoryPipelineError):
    """The story composition call failed."""


class FormatError(CompositionError):
    """The composition response does not match the page/vocabulary schema."""


class IllustrationError(StoryPipelineError):
    """Image generation failed for a single page."""

    def __init__(self, message: str, page_number: Optional[int] = None):
        super().__init__(message)
        self.page_number = page_number


class SigningError(StoryPipelineError):
    """Provenance signing failed; the caller keeps the unsigned image."""


class SpeechServiceError(StoryPipelineError):
    """Text-to-speech failed; the caller should use an on-device engine."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[str] = None,
        fallback: bool = True,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.details = details
        self.fallback = fallback
