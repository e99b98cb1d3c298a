"""
Centralized domain types for the Toys to Stories service.

All dataclasses that are used across multiple modules are defined here
to make data flow explicit and avoid circular imports.
"""

import base64
import binascii
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Optional, Union


# =============================================================================
# Toy Types
# =============================================================================


@dataclass(frozen=True)
class ToyCharacterProfile:
    """Detailed toy description for consistent illustrations."""

    type: str
    primary_color: str
    secondary_colors: str
    material: str
    size: str
    facial_features: str
    body_shape: str
    clothing: str
    accessories: str
    full_description: str
    distinctive_features: str = ""

    def __post_init__(self):
        if not self.full_description.strip():
            raise ValueError("full_description must not be empty")

    @classmethod
    def from_fields(
        cls,
        type: str,
        primary_color: str,
        secondary_colors: str,
        material: str,
        size: str,
        facial_features: str,
        body_shape: str,
        clothing: str = "none",
        accessories: str = "none",
        distinctive_features: str = "",
    ) -> "ToyCharacterProfile":
        """Build a profile and synthesize its full description from the fields."""
        clothing = clothing or "none"
        accessories = accessories or "none"

        lines = [
            f"A {material} {type} toy.",
            f"Color: {primary_color} with {secondary_colors}.",
            f"Size: {size}.",
            f"Face: {facial_features}.",
            f"Body: {body_shape}.",
        ]
        if clothing != "none":
            lines.append(f"Wearing: {clothing}.")
        if accessories != "none":
            lines.append(f"Has: {accessories}.")
        if distinctive_features:
            lines.append(f"Special features: {distinctive_features}.")

        return cls(
            type=type,
            primary_color=primary_color,
            secondary_colors=secondary_colors,
            material=material,
            size=size,
            facial_features=facial_features,
            body_shape=body_shape,
            clothing=clothing,
            accessories=accessories,
            distinctive_features=distinctive_features,
            full_description="\n".join(lines),
        )


GENERIC_TOY_PROFILE = ToyCharacterProfile(
    type="stuffed toy",
    primary_color="brown",
    secondary_colors="none",
    material="soft plush",
    size="medium",
    facial_features="friendly face",
    body_shape="cuddly",
    clothing="none",
    accessories="none",
    full_description="A cute, cuddly stuffed toy with a friendly face",
)


# =============================================================================
# Story Types
# =============================================================================


@dataclass(frozen=True)
class StoryGenerationParams:
    """Caller-supplied inputs for one generation run."""

    toy_description: str
    toy_name: str
    energy: int
    confidence: int
    age: str
    language: str

    def __post_init__(self):
        for name in ("energy", "confidence"):
            value = getattr(self, name)
            if not 0 <= value <= 100:
                raise ValueError(f"{name} must be between 0 and 100, got {value}")
        if not self.toy_name.strip():
            raise ValueError("toy_name must not be empty")
        if not self.language.strip():
            raise ValueError("language must not be empty")

    def with_description(self, toy_description: str) -> "StoryGenerationParams":
        """Return a copy carrying the analyzed toy description."""
        return replace(self, toy_description=toy_description)


@dataclass(frozen=True)
class StoryPage:
    """A single page of composed story text."""

    page_number: int
    text: str


@dataclass(frozen=True)
class VocabWord:
    """A vocabulary entry for the review screen."""

    word: str
    pronunciation: str
    definition: str
    icon: str = ""

    def to_dict(self, include_icon: bool = True) -> dict:
        data = {
            "word": self.word,
            "pronunciation": self.pronunciation,
            "definition": self.definition,
        }
        if include_icon:
            data["icon"] = self.icon
        return data


@dataclass(frozen=True)
class GeneratedStory:
    """Output of the composition stage: ordered pages plus vocabulary."""

    pages: tuple[StoryPage, ...]
    vocabulary: tuple[VocabWord, ...]

    @property
    def page_count(self) -> int:
        return len(self.pages)


# =============================================================================
# Illustration Types
# =============================================================================


@dataclass(frozen=True)
class ImagePayload:
    """An inline image returned by the image model."""

    mime_type: str
    data: bytes

    def to_base64(self) -> str:
        return base64.b64encode(self.data).decode("ascii")

    def to_data_url(self) -> str:
        return f"data:{self.mime_type};base64,{self.to_base64()}"

    @classmethod
    def from_base64(cls, encoded: str, mime_type: str) -> "ImagePayload":
        """Decode a base64 string, tolerating a data URL prefix."""
        if "base64," in encoded:
            encoded = encoded.split("base64,", 1)[1]
        try:
            data = base64.b64decode(encoded, validate=True)
        except (binascii.Error, ValueError) as e:
            raise ValueError(f"Invalid base64 image data: {e}") from e
        return cls(mime_type=mime_type, data=data)


@dataclass(frozen=True)
class IllustratedPage:
    """A story page with its resolved image and capped vocabulary."""

    page_number: int
    text: str
    image_url: str
    vocab_words: tuple[VocabWord, ...] = ()

    def to_dict(self) -> dict:
        return {
            "page_number": self.page_number,
            "text": self.text,
            "image_url": self.image_url,
            "vocab_words": [v.to_dict(include_icon=False) for v in self.vocab_words],
        }


@dataclass(frozen=True)
class IllustratedStory:
    """The final artifact handed to the presentation layer."""

    pages: tuple[IllustratedPage, ...]
    vocabulary: tuple[VocabWord, ...]

    def to_dict(self) -> dict:
        return {
            "pages": [p.to_dict() for p in self.pages],
            "vocabulary": [v.to_dict() for v in self.vocabulary],
        }


# =============================================================================
# Run State Types
# =============================================================================


class Stage(str, Enum):
    """Coarse stage of a generation run."""

    ANALYZING = "analyzing"
    GENERATING = "generating"
    ILLUSTRATING = "illustrating"
    FINALIZING = "finalizing"
    DONE = "done"
    ERROR = "error"
    FALLBACK = "fallback"


@dataclass(frozen=True)
class Analyzing:
    stage = Stage.ANALYZING


@dataclass(frozen=True)
class Generating:
    stage = Stage.GENERATING


@dataclass(frozen=True)
class Illustrating:
    """Image generation in progress; `current` pages of `total` finished."""

    current: int
    total: int
    stage = Stage.ILLUSTRATING


@dataclass(frozen=True)
class Finalizing:
    stage = Stage.FINALIZING


@dataclass(frozen=True)
class Done:
    story: IllustratedStory
    stage = Stage.DONE


@dataclass(frozen=True)
class Failed:
    """Fatal failure; the caller may retry or fall back to an example story."""

    message: str
    stage = Stage.ERROR


@dataclass(frozen=True)
class FallbackRequested:
    """Run abandoned; the caller substitutes the static story for `language`."""

    reason: str  # "not_configured" or "user"
    language: str
    stage = Stage.FALLBACK


RunState = Union[Analyzing, Generating, Illustrating, Finalizing, Done, Failed, FallbackRequested]

TERMINAL_STAGES = frozenset({Stage.DONE, Stage.ERROR, Stage.FALLBACK})


@dataclass(frozen=True)
class GenerationRun:
    """Snapshot of one run: its identifier, stage state and overall progress."""

    run_id: int
    state: RunState = field(default_factory=Analyzing)
    progress: int = 0

    @property
    def stage(self) -> Stage:
        return self.state.stage

    @property
    def is_terminal(self) -> bool:
        return self.stage in TERMINAL_STAGES

    @property
    def image_progress(self) -> Optional[tuple[int, int]]:
        if isinstance(self.state, Illustrating):
            return (self.state.current, self.state.total)
        return None

    @property
    def error(self) -> Optional[str]:
        if isinstance(self.state, Failed):
            return self.state.message
        return None

    def advance(self, state: RunState, progress: Optional[int] = None) -> "GenerationRun":
        """Return the next snapshot. Terminal runs never change again."""
        if self.is_terminal:
            raise ValueError(f"Run {self.run_id} already finished in stage {self.stage.value}")
        return replace(
            self,
            state=state,
            progress=self.progress if progress is None else max(0, min(100, progress)),
        )
