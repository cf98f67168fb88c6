"""Structured log events for pull runs.

Each stage of a pull (mirror synchronisation, release caching) emits a
started, completed or failed event as a single ``key=value`` log line that
log aggregators can parse.
"""

from __future__ import annotations

import enum
import logging
import typing as typ

if typ.TYPE_CHECKING:
    import datetime as dt

logger = logging.getLogger(__name__)


class PullStage(enum.StrEnum):
    """Stages of a pull run."""

    GIT = "git"
    RELEASES = "releases"


class PullEventType(enum.StrEnum):
    """Structured log event types for pull observability."""

    STAGE_STARTED = "pull.stage.started"
    STAGE_COMPLETED = "pull.stage.completed"
    STAGE_FAILED = "pull.stage.failed"


class PullEventLogger:
    """Emit structured pull events via Python logging."""

    def log_stage_started(self, stage: PullStage, repository: str) -> None:
        """Log the start of a pull stage."""
        logger.info(
            "[%s] stage=%s repository=%s",
            PullEventType.STAGE_STARTED,
            stage,
            repository,
        )

    def log_stage_completed(
        self,
        stage: PullStage,
        repository: str,
        duration: dt.timedelta,
        **counts: int,
    ) -> None:
        """Log a completed pull stage with optional counters."""
        details = " ".join(f"{key}={value}" for key, value in sorted(counts.items()))
        logger.info(
            "[%s] stage=%s repository=%s duration_seconds=%.3f %s",
            PullEventType.STAGE_COMPLETED,
            stage,
            repository,
            duration.total_seconds(),
            details,
        )

    def log_stage_failed(
        self,
        stage: PullStage,
        repository: str,
        error: BaseException,
        duration: dt.timedelta,
    ) -> None:
        """Log a failed pull stage."""
        logger.error(
            "[%s] stage=%s repository=%s duration_seconds=%.3f "
            "error_type=%s error_message=%s",
            PullEventType.STAGE_FAILED,
            stage,
            repository,
            duration.total_seconds(),
            type(error).__name__,
            str(error),
        )


__all__ = ["PullEventLogger", "PullEventType", "PullStage"]
