"""Pydantic models for API requests and responses."""

from .requests import CreateStoryRequest, SignImageRequest, TTSRequest
from .responses import (
    CreateStoryResponse,
    FallbackResponse,
    IllustratedStoryResponse,
    ImageProgressResponse,
    SignImageResponse,
    StoryPageResponse,
    StoryStatusResponse,
    VocabWordResponse,
)

__all__ = [
    "CreateStoryRequest",
    "SignImageRequest",
    "TTSRequest",
    "CreateStoryResponse",
    "FallbackResponse",
    "IllustratedStoryResponse",
    "ImageProgressResponse",
    "SignImageResponse",
    "StoryPageResponse",
    "StoryStatusResponse",
    "VocabWordResponse",
]
