"""Structured logging infrastructure for the API layer.

Provides JSON-formatted logging for production and human-readable
logging for development, plus a StoryLogger helper for generation run events.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Optional

# Extra record attributes copied into JSON output
STRUCTURED_FIELDS = (
    "session_id",
    "run_id",
    "stage",
    "progress",
    "duration",
    "reason",
    "error_type",
)


class JSONFormatter(logging.Formatter):
    """JSON formatter for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        # Add extra fields if present
        for name in STRUCTURED_FIELDS:
            if hasattr(record, name):
                log_data[name] = getattr(record, name)

        # Add exception info if present
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data)


def configure_logging(json_format: bool = True, level: int = logging.INFO) -> None:
    """Configure structured logging for the application."""
    root_logger = logging.getLogger()
    root_logger.setLevel(level)

    # Remove existing handlers
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)

    # Create console handler
    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    if json_format:
        handler.setFormatter(JSONFormatter())
    else:
        handler.setFormatter(
            logging.Formatter("%(asctime)s - %(name)s - %(levelname)s - %(message)s")
        )

    root_logger.addHandler(handler)


class StoryLogger:
    """Logger for generation run events with structured fields."""

    def __init__(self):
        self.logger = logging.getLogger("story_generation")

    def run_started(self, session_id: str, run_id: int) -> None:
        self.logger.info(
            "Story generation started",
            extra={"session_id": session_id, "run_id": run_id, "stage": "started"},
        )

    def stage_entered(self, session_id: str, run_id: int, stage: str, progress: int) -> None:
        self.logger.info(
            f"Stage entered: {stage}",
            extra={"session_id": session_id, "run_id": run_id, "stage": stage, "progress": progress},
        )

    def run_completed(self, session_id: str, run_id: int, duration: float) -> None:
        self.logger.info(
            "Story generation completed",
            extra={
                "session_id": session_id,
                "run_id": run_id,
                "stage": "completed",
                "duration": round(duration, 2),
            },
        )

    def run_failed(self, session_id: str, run_id: int, message: str, duration: Optional[float] = None) -> None:
        extra = {"session_id": session_id, "run_id": run_id, "stage": "failed", "error_type": "fatal"}
        if duration:
            extra["duration"] = round(duration, 2)
        self.logger.error(f"Story generation failed: {message}", extra=extra)

    def fallback_used(self, session_id: str, run_id: int, reason: str) -> None:
        self.logger.warning(
            "Using example story",
            extra={"session_id": session_id, "run_id": run_id, "stage": "fallback", "reason": reason},
        )


# Global story logger instance
story_logger = StoryLogger()
