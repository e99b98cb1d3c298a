"""Pydantic models for API requests."""

from typing import Optional

from pydantic import BaseModel, Field


class CreateStoryRequest(BaseModel):
    """Request body for starting a new story session."""

    photo: str = Field(
        ...,
        min_length=1,
        description="Toy photo as base64, optionally as a data URL",
    )
    toy_name: str = Field(
        ...,
        min_length=1,
        max_length=50,
        description="Name of the toy, used as the main character",
        examples=["Mr. Buttons"],
    )
    energy: int = Field(
        default=50,
        ge=0,
        le=100,
        description="Personality slider: 0 = calm, 100 = very active",
    )
    confidence: int = Field(
        default=50,
        ge=0,
        le=100,
        description="Personality slider: 0 = shy, 100 = brave",
    )
    age: str = Field(
        ...,
        min_length=1,
        description="Target age range",
        examples=["3-5"],
    )
    language: str = Field(
        ...,
        min_length=1,
        description="Language for the story text and vocabulary",
        examples=["Spanish"],
    )


class SignImageRequest(BaseModel):
    """Request body for /api/sign-image.

    Fields are optional so missing values can be reported with a 400.
    """

    imageBase64: Optional[str] = None
    mimeType: Optional[str] = None
    pageNumber: Optional[int] = None


class TTSRequest(BaseModel):
    """Request body for /api/tts."""

    text: Optional[str] = None
    language: Optional[str] = None
