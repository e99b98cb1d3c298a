"""Pydantic models for API responses."""

from typing import Optional

from pydantic import BaseModel, Field


class VocabWordResponse(BaseModel):
    """A vocabulary word for the review screen."""

    word: str
    pronunciation: str
    definition: str
    icon: Optional[str] = None


class StoryPageResponse(BaseModel):
    """A single illustrated page.

    Each page carries at most one vocabulary word.
    """

    page_number: int
    text: str
    image_url: str  # data URL of the generated image, or a stock image URL
    vocab_words: list[VocabWordResponse] = Field(default_factory=list)


class IllustratedStoryResponse(BaseModel):
    """The finished story."""

    pages: list[StoryPageResponse]
    vocabulary: list[VocabWordResponse]


class ImageProgressResponse(BaseModel):
    """Pages illustrated so far."""

    current: int
    total: int


class FallbackResponse(BaseModel):
    """The caller should show the example story for `language`."""

    reason: str  # not_configured, user
    language: str
    message: str


class StoryStatusResponse(BaseModel):
    """Current state of a story session. Poll until stage is done, error or fallback."""

    session_id: str
    run_id: int
    stage: str  # analyzing, generating, illustrating, finalizing, done, error, fallback
    progress: int  # 0-100
    image_progress: Optional[ImageProgressResponse] = None
    error: Optional[str] = None
    story: Optional[IllustratedStoryResponse] = None
    fallback: Optional[FallbackResponse] = None


class CreateStoryResponse(BaseModel):
    """Response when starting or retrying a story run."""

    session_id: str
    run_id: int
    message: str = Field(
        default="Story generation started. Poll GET /stories/{session_id} for status."
    )


class SignImageResponse(BaseModel):
    """A C2PA-signed copy of the submitted image."""

    success: bool = True
    signedImageBase64: str
    mimeType: str
