"""Shared fixtures for unit tests."""

import asyncio
import base64
import json
from io import BytesIO
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from toystories.api.dependencies import get_pipeline, get_session_manager
from toystories.api.main import app
from toystories.api.services.session_manager import SessionManager
from toystories.core.programs import StoryPipeline
from toystories.core.types import (
    GeneratedStory,
    ImagePayload,
    StoryGenerationParams,
    StoryPage,
    ToyCharacterProfile,
    VocabWord,
)

STORY_TEXTS = [
    "Mr. Buttons woke up in the sunny garden.",
    "He saw a brave little bird on the fence.",
    "The bird was stuck, so Mr. Buttons climbed up slowly.",
    "Together they looked at the big blue sky.",
    "A friend is someone who helps you when you are scared.",
    "Mr. Buttons hugged the bird and went home happy.",
]

VOCAB_ENTRIES = [
    {"word": "brave", "pronunciation": "brayv", "definition": "Not afraid", "icon": "🦁"},
    {"word": "garden", "pronunciation": "GAR-den", "definition": "A place where plants grow", "icon": "🌷"},
    {"word": "sky", "pronunciation": "sky", "definition": "The space above us", "icon": "☁️"},
    {"word": "friend", "pronunciation": "frend", "definition": "Someone you like", "icon": "🤝"},
]


def make_story_payload(page_count: int = 6, vocab_count: int = 4) -> dict:
    """Composition response in the model's JSON format."""
    return {
        "pages": [
            {"pageNumber": i + 1, "text": STORY_TEXTS[i % len(STORY_TEXTS)]}
            for i in range(page_count)
        ],
        "vocabulary": [dict(VOCAB_ENTRIES[i % len(VOCAB_ENTRIES)]) for i in range(vocab_count)],
    }


def make_text_response(text: str) -> MagicMock:
    """Mock generate_content response carrying text."""
    response = MagicMock()
    response.text = text
    return response


def make_image_response(data: bytes = b"generated image bytes", mime_type: str = "image/png") -> MagicMock:
    """Mock generate_content response carrying one inline image part."""
    part = MagicMock()
    part.inline_data = MagicMock()
    part.inline_data.data = data
    part.inline_data.mime_type = mime_type

    response = MagicMock()
    response.candidates = [MagicMock()]
    response.candidates[0].content.parts = [part]
    return response


def make_genai_client(*responses) -> MagicMock:
    """Mock google-genai client whose async generate_content yields `responses` in order."""
    client = MagicMock()
    client.aio.models.generate_content = AsyncMock(side_effect=list(responses))
    return client


@pytest.fixture
def toy_photo_base64():
    """A tiny PNG photo as base64."""
    buffer = BytesIO()
    Image.new("RGB", (8, 8), (200, 120, 60)).save(buffer, format="PNG")
    return base64.b64encode(buffer.getvalue()).decode("ascii")


@pytest.fixture
def sample_params():
    """Story parameters for a Spanish story."""
    return StoryGenerationParams(
        toy_description="",
        toy_name="Mr. Buttons",
        energy=80,
        confidence=20,
        age="3-5",
        language="Spanish",
    )


@pytest.fixture
def sample_story():
    """A composed story with 6 pages and 4 vocabulary words."""
    payload = make_story_payload()
    return GeneratedStory(
        pages=tuple(StoryPage(p["pageNumber"], p["text"]) for p in payload["pages"]),
        vocabulary=tuple(VocabWord(**v) for v in payload["vocabulary"]),
    )


@pytest.fixture
def sample_profile():
    """A detailed toy profile."""
    return ToyCharacterProfile.from_fields(
        type="teddy bear",
        primary_color="brown",
        secondary_colors="cream",
        material="plush",
        size="huggable",
        facial_features="round black button eyes",
        body_shape="round and chubby",
    )


# =============================================================================
# Stage doubles for pipeline tests
# =============================================================================


class FakeAnalyzer:
    def __init__(self, profile: Optional[ToyCharacterProfile] = None, error: Optional[Exception] = None):
        self.profile = profile
        self.error = error
        self.calls = 0

    async def analyze(self, photo):
        self.calls += 1
        if self.error:
            raise self.error
        return self.profile


class FakeComposer:
    def __init__(
        self,
        story: Optional[GeneratedStory] = None,
        error: Optional[Exception] = None,
        gate: Optional[asyncio.Event] = None,
    ):
        self.story = story
        self.error = error
        self.gate = gate
        self.received = []

    async def compose(self, params):
        self.received.append(params)
        if self.gate is not None:
            await self.gate.wait()
        if self.error:
            raise self.error
        return self.story


class FakeIllustrator:
    def __init__(self, images: Optional[list] = None, error: Optional[Exception] = None):
        self.images = images
        self.error = error
        self.descriptions = []

    async def illustrate_all(self, pages, toy_description, toy_name, on_progress=None):
        self.descriptions.append(toy_description)
        if self.error:
            raise self.error
        images = self.images if self.images is not None else [
            ImagePayload(mime_type="image/png", data=f"page {p.page_number}".encode()) for p in pages
        ]
        for index in range(len(pages)):
            if on_progress:
                on_progress(index + 1, len(pages))
        return images


def make_pipeline(analyzer=None, composer=None, illustrator=None, configured=True) -> StoryPipeline:
    """StoryPipeline with no artificial delays."""
    return StoryPipeline(
        analyzer=analyzer,
        composer=composer,
        illustrator=illustrator,
        configured=configured,
        not_configured_delay=0,
        finalize_hold=0,
    )


@pytest.fixture
def fake_pipeline(sample_profile, sample_story):
    """Pipeline whose stages all succeed instantly."""
    return make_pipeline(
        analyzer=FakeAnalyzer(profile=sample_profile),
        composer=FakeComposer(story=sample_story),
        illustrator=FakeIllustrator(),
    )


# =============================================================================
# API fixtures
# =============================================================================


@pytest.fixture
def session_manager():
    """Fresh session registry per test."""
    return SessionManager(max_sessions=10)


@pytest.fixture
def client_with_pipeline(fake_pipeline, session_manager):
    """TestClient whose story routes use the fake pipeline."""
    app.dependency_overrides[get_pipeline] = lambda: fake_pipeline
    app.dependency_overrides[get_session_manager] = lambda: session_manager

    with TestClient(app) as client:
        yield client, fake_pipeline, session_manager

    app.dependency_overrides.clear()


@pytest.fixture
def client():
    """TestClient with real dependencies."""
    with TestClient(app) as client:
        yield client


def story_json(**overrides) -> str:
    return json.dumps({**make_story_payload(), **overrides})
