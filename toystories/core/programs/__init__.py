"""Programs that orchestrate the story generation modules."""

from .story_pipeline import (
    STAGE_POLICIES,
    DegradeOnError,
    FatalOnError,
    StoryPipeline,
    assemble_story,
    assign_vocabulary,
    illustration_progress,
)
from .story_session import StorySession

__all__ = [
    "STAGE_POLICIES",
    "DegradeOnError",
    "FatalOnError",
    "StoryPipeline",
    "StorySession",
    "assemble_story",
    "assign_vocabulary",
    "illustration_progress",
]
