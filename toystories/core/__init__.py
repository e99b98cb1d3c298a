# Toys to Stories - Core Domain

# Re-export types and errors for convenient access
from .types import (
    ToyCharacterProfile,
    StoryGenerationParams,
    StoryPage,
    VocabWord,
    GeneratedStory,
    ImagePayload,
    IllustratedPage,
    IllustratedStory,
    Stage,
    GenerationRun,
)
from .errors import (
    StoryPipelineError,
    ConfigurationError,
    AnalysisError,
    CompositionError,
    FormatError,
    IllustrationError,
    SigningError,
    SpeechServiceError,
)

__all__ = [
    "ToyCharacterProfile",
    "StoryGenerationParams",
    "StoryPage",
    "VocabWord",
    "GeneratedStory",
    "ImagePayload",
    "IllustratedPage",
    "IllustratedStory",
    "Stage",
    "GenerationRun",
    "StoryPipelineError",
    "ConfigurationError",
    "AnalysisError",
    "CompositionError",
    "FormatError",
    "IllustrationError",
    "SigningError",
    "SpeechServiceError",
]
