"""FastAPI dependency injection for the pipeline and session registry."""

from functools import lru_cache
from typing import Annotated

from dotenv import find_dotenv, load_dotenv
from fastapi import Depends

# Load .env from project root (find_dotenv searches parent directories)
load_dotenv(find_dotenv())

from toystories.core.programs import StoryPipeline  # noqa: E402

from .services.session_manager import SessionManager, session_manager  # noqa: E402


@lru_cache(maxsize=1)
def get_pipeline() -> StoryPipeline:
    """Get the shared StoryPipeline, built once from the environment."""
    return StoryPipeline.from_environment()


def get_session_manager() -> SessionManager:
    """Get the process-wide session registry."""
    return session_manager


# Type aliases for cleaner route signatures
Pipeline = Annotated[StoryPipeline, Depends(get_pipeline)]
Sessions = Annotated[SessionManager, Depends(get_session_manager)]
