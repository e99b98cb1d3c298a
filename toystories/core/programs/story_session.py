"""
Story session: the run-token holder for one user request.

A session owns a monotonically increasing run id. Each start or retry
launches a fresh pipeline run under a new id; updates from any run that is
no longer current are dropped, so a superseded run can never overwrite the
state of its replacement. In-flight runs are not cancelled.
"""

import asyncio
import logging
from typing import Callable, Optional, Union

from ..types import FallbackRequested, GenerationRun, StoryGenerationParams
from .story_pipeline import StoryPipeline

logger = logging.getLogger(__name__)

# Callback fired whenever the session's current run changes
SessionChangeCallback = Callable[["StorySession", GenerationRun], None]


class StorySession:
    """
    Track the current generation run for one toy photo and its parameters.

    Args:
        pipeline: StoryPipeline used for every run of this session
        photo: Toy photo (base64 string or raw bytes)
        params: Story parameters for every run
        session_id: Optional identifier used in log messages
        on_change: Optional callback fired after each accepted update
    """

    def __init__(
        self,
        pipeline: StoryPipeline,
        photo: Union[str, bytes],
        params: StoryGenerationParams,
        session_id: str = "",
        on_change: Optional[SessionChangeCallback] = None,
    ):
        self.pipeline = pipeline
        self.photo = photo
        self.params = params
        self.session_id = session_id
        self.on_change = on_change

        self._last_run_id = 0
        self.current_run_id = 0
        self.run: Optional[GenerationRun] = None
        self._tasks: dict[int, asyncio.Task] = {}

    def _next_run_id(self) -> int:
        self._last_run_id += 1
        self.current_run_id = self._last_run_id
        return self.current_run_id

    def is_current(self, run_id: int) -> bool:
        return run_id == self.current_run_id

    def apply(self, run: GenerationRun) -> bool:
        """
        Accept an update if it belongs to the current run.

        Returns:
            True if the update was applied, False if it was stale
        """
        if not self.is_current(run.run_id):
            logger.debug(
                f"Session {self.session_id}: dropping stale update from run {run.run_id} "
                f"(current run {self.current_run_id})"
            )
            return False
        self.run = run
        if self.on_change:
            self.on_change(self, run)
        return True

    async def _execute(self, run_id: int) -> None:
        final = await self.pipeline.run(self.photo, self.params, run_id=run_id, on_update=self.apply)
        self.apply(final)

    def start(self) -> int:
        """
        Launch a new run from the analyzing stage with progress 0.

        Must be called from a running event loop.

        Returns:
            The new run id
        """
        run_id = self._next_run_id()
        self.apply(GenerationRun(run_id=run_id))

        task = asyncio.create_task(self._execute(run_id), name=f"story-run-{run_id}")
        self._tasks[run_id] = task
        task.add_done_callback(lambda t: self._tasks.pop(run_id, None))
        logger.info(f"Session {self.session_id}: started run {run_id}")
        return run_id

    def retry(self) -> int:
        """Discard the current run's state and start a fresh run."""
        previous = self.current_run_id
        run_id = self.start()
        logger.info(f"Session {self.session_id}: run {previous} superseded by retry run {run_id}")
        return run_id

    def use_fallback(self) -> GenerationRun:
        """
        Abandon the current run in favour of the static example story.

        Later updates from the abandoned run are dropped.
        """
        progress = self.run.progress if self.run else 0
        run_id = self._next_run_id()
        run = GenerationRun(
            run_id=run_id,
            state=FallbackRequested(reason="user", language=self.params.language),
            progress=progress,
        )
        self.apply(run)
        logger.info(f"Session {self.session_id}: using example story in {self.params.language}")
        return run

    async def wait(self) -> Optional[GenerationRun]:
        """Wait for the current run's task to finish and return the current run."""
        task = self._tasks.get(self.current_run_id)
        if task is not None:
            await task
        return self.run
