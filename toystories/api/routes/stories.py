"""Story session endpoints."""

from fastapi import APIRouter, HTTPException, status

from toystories.core.programs import StorySession
from toystories.core.types import (
    Done,
    FallbackRequested,
    GenerationRun,
    IllustratedStory,
    StoryGenerationParams,
)

from ..dependencies import Pipeline, Sessions
from ..models.requests import CreateStoryRequest
from ..models.responses import (
    CreateStoryResponse,
    FallbackResponse,
    IllustratedStoryResponse,
    ImageProgressResponse,
    StoryPageResponse,
    StoryStatusResponse,
    VocabWordResponse,
)

router = APIRouter()

FALLBACK_MESSAGES = {
    "not_configured": "API not configured - using example story",
    "user": "Using example story",
}


def _story_response(story: IllustratedStory) -> IllustratedStoryResponse:
    return IllustratedStoryResponse(
        pages=[
            StoryPageResponse(
                page_number=page.page_number,
                text=page.text,
                image_url=page.image_url,
                vocab_words=[VocabWordResponse(**v.to_dict(include_icon=False)) for v in page.vocab_words],
            )
            for page in story.pages
        ],
        vocabulary=[VocabWordResponse(**v.to_dict()) for v in story.vocabulary],
    )


def _status_response(session_id: str, run: GenerationRun) -> StoryStatusResponse:
    """Convert a run snapshot into the polling response."""
    response = StoryStatusResponse(
        session_id=session_id,
        run_id=run.run_id,
        stage=run.stage.value,
        progress=run.progress,
        error=run.error,
    )
    if run.image_progress:
        current, total = run.image_progress
        response.image_progress = ImageProgressResponse(current=current, total=total)
    if isinstance(run.state, Done):
        response.story = _story_response(run.state.story)
    if isinstance(run.state, FallbackRequested):
        response.fallback = FallbackResponse(
            reason=run.state.reason,
            language=run.state.language,
            message=FALLBACK_MESSAGES.get(run.state.reason, FALLBACK_MESSAGES["user"]),
        )
    return response


def _get_session_or_404(sessions, session_id: str) -> StorySession:
    session = sessions.get(session_id)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Story session {session_id} not found",
        )
    return session


@router.post(
    "",
    response_model=CreateStoryResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Start a story",
    description="Start generating a story from a toy photo. Returns immediately with a session ID that can be polled.",
)
async def create_story(request: CreateStoryRequest, pipeline: Pipeline, sessions: Sessions):
    """Start a new story session."""
    try:
        params = StoryGenerationParams(
            toy_description="",
            toy_name=request.toy_name,
            energy=request.energy,
            confidence=request.confidence,
            age=request.age,
            language=request.language,
        )
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    session = sessions.create(pipeline, request.photo, params)
    return CreateStoryResponse(session_id=session.session_id, run_id=session.current_run_id)


@router.get(
    "/{session_id}",
    response_model=StoryStatusResponse,
    summary="Get story status",
    description="Get the current run's stage and progress. The story is included once stage is `done`.",
)
async def get_story(session_id: str, sessions: Sessions):
    """Poll a story session."""
    session = _get_session_or_404(sessions, session_id)
    return _status_response(session_id, session.run)


@router.post(
    "/{session_id}/retry",
    response_model=CreateStoryResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Retry a story",
    description="Discard the current run and start again from the analyzing stage.",
)
async def retry_story(session_id: str, sessions: Sessions):
    """Start a fresh run for an existing session."""
    session = _get_session_or_404(sessions, session_id)
    run_id = session.retry()
    return CreateStoryResponse(
        session_id=session_id,
        run_id=run_id,
        message="Story generation restarted. Poll GET /stories/{session_id} for status.",
    )


@router.post(
    "/{session_id}/fallback",
    response_model=StoryStatusResponse,
    summary="Use the example story",
    description="Abandon the current run; the client shows the example story for the session's language.",
)
async def use_fallback(session_id: str, sessions: Sessions):
    """Abandon generation in favour of the example story."""
    session = _get_session_or_404(sessions, session_id)
    run = session.use_fallback()
    return _status_response(session_id, run)
