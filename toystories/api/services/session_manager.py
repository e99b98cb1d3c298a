"""In-memory registry of story sessions."""

import logging
import time
import uuid
from collections import OrderedDict
from typing import Optional, Union

from toystories.core.programs import StoryPipeline, StorySession
from toystories.core.types import FallbackRequested, Failed, GenerationRun, Stage, StoryGenerationParams

from ..config import MAX_SESSIONS
from ..logging import story_logger

logger = logging.getLogger(__name__)


class SessionManager:
    """Creates sessions and keeps the most recent ones addressable by id."""

    def __init__(self, max_sessions: int = 100):
        """
        Initialize the session manager.

        Args:
            max_sessions: Number of sessions kept before the oldest is evicted.
                          Evicted runs keep running but can no longer be polled.
        """
        self.max_sessions = max_sessions
        self._sessions: OrderedDict[str, StorySession] = OrderedDict()
        self._last_stage: dict[tuple[str, int], Stage] = {}
        self._started_at: dict[tuple[str, int], float] = {}

    def create(
        self,
        pipeline: StoryPipeline,
        photo: Union[str, bytes],
        params: StoryGenerationParams,
    ) -> StorySession:
        """Register a new session and start its first run."""
        session_id = str(uuid.uuid4())
        session = StorySession(
            pipeline=pipeline,
            photo=photo,
            params=params,
            session_id=session_id,
            on_change=self._log_change,
        )
        self._sessions[session_id] = session

        while len(self._sessions) > self.max_sessions:
            evicted_id, _ = self._sessions.popitem(last=False)
            logger.info(f"Evicted session {evicted_id}")

        session.start()
        return session

    def get(self, session_id: str) -> Optional[StorySession]:
        return self._sessions.get(session_id)

    def _log_change(self, session: StorySession, run: GenerationRun) -> None:
        """Emit lifecycle log events when a run enters a new stage."""
        key = (session.session_id, run.run_id)
        if self._last_stage.get(key) == run.stage:
            return
        self._last_stage[key] = run.stage

        if key not in self._started_at:
            # Superseded runs never report a terminal stage
            for stale in [k for k in self._started_at if k[0] == key[0] and k[1] < key[1]]:
                self._started_at.pop(stale)
                self._last_stage.pop(stale, None)
            self._started_at[key] = time.monotonic()
            story_logger.run_started(session.session_id, run.run_id)

        if run.stage == Stage.DONE:
            duration = time.monotonic() - self._started_at.pop(key)
            story_logger.run_completed(session.session_id, run.run_id, duration)
        elif isinstance(run.state, Failed):
            duration = time.monotonic() - self._started_at.pop(key)
            story_logger.run_failed(session.session_id, run.run_id, run.state.message, duration)
        elif isinstance(run.state, FallbackRequested):
            self._started_at.pop(key, None)
            story_logger.fallback_used(session.session_id, run.run_id, run.state.reason)
        else:
            story_logger.stage_entered(session.session_id, run.run_id, run.stage.value, run.progress)

        if run.is_terminal:
            self._last_stage.pop(key, None)


# Global instance - sessions live only as long as the process
session_manager = SessionManager(max_sessions=MAX_SESSIONS)
