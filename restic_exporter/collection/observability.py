"""Emit structured log events for collection runs.

``CollectionOrchestrator`` and the repository tasks report their lifecycle
through :class:`CollectionEventLogger`, which tags every line with a stable
event identifier so log pipelines can filter on it.

Usage
-----
>>> event_logger = CollectionEventLogger()
>>> event_logger.log_run_started(repository_count=3)

"""

from __future__ import annotations

import enum
import typing as typ

from restic_exporter.logging import get_logger, log_debug, log_error, log_info, log_warning

if typ.TYPE_CHECKING:
    import datetime as dt

    from .models import CollectionRun

logger = get_logger(__name__)


class CollectionEventType(enum.StrEnum):
    """Structured log event types for collection runs."""

    RUN_STARTED = "collection.run.started"
    RUN_COMPLETED = "collection.run.completed"
    RUN_REJECTED = "collection.run.rejected"
    REPOSITORY_STARTED = "collection.repository.started"
    REPOSITORY_COMPLETED = "collection.repository.completed"
    REPOSITORY_FAILED = "collection.repository.failed"
    RELEASE_FAILED = "collection.repository.release_failed"


class CollectionEventLogger:
    """Emit structured collection events via femtologging."""

    def log_run_started(self, *, repository_count: int) -> None:
        """Log the start of a run over ``repository_count`` repositories."""
        log_info(
            logger,
            "[%s] repositories=%d",
            CollectionEventType.RUN_STARTED,
            repository_count,
        )

    def log_run_completed(self, *, run: CollectionRun, duration: dt.timedelta) -> None:
        """Log a published run with its error total and duration."""
        log_info(
            logger,
            "[%s] repositories=%d errors=%d duration_seconds=%.3f",
            CollectionEventType.RUN_COMPLETED,
            len(run.results),
            run.error_count,
            duration.total_seconds(),
        )

    def log_run_rejected(self, *, reason: str) -> None:
        """Log a run request that was dropped instead of queued."""
        log_warning(
            logger,
            "[%s] reason=%s",
            CollectionEventType.RUN_REJECTED,
            reason,
        )

    def log_repository_started(self, *, url: str) -> None:
        """Log the start of one repository task."""
        log_debug(logger, "[%s] url=%s", CollectionEventType.REPOSITORY_STARTED, url)

    def log_repository_completed(
        self,
        *,
        url: str,
        backup_sets: int,
        duration: dt.timedelta,
    ) -> None:
        """Log a repository read successfully."""
        log_debug(
            logger,
            "[%s] url=%s backup_sets=%d duration_seconds=%.3f",
            CollectionEventType.REPOSITORY_COMPLETED,
            url,
            backup_sets,
            duration.total_seconds(),
        )

    def log_repository_failed(
        self,
        *,
        url: str,
        stage: str,
        error: BaseException,
    ) -> None:
        """Log a repository that failed during ``stage`` (open or read).

        Parameters
        ----------
        url
            Repository URL.
        stage
            ``"open"`` or ``"read"``.
        error
            The exception raised by the reader.

        """
        log_error(
            logger,
            "[%s] url=%s stage=%s error_type=%s error_message=%s",
            CollectionEventType.REPOSITORY_FAILED,
            url,
            stage,
            type(error).__name__,
            str(error),
            exc_info=error,
        )

    def log_release_failed(self, *, url: str, error: BaseException) -> None:
        """Log a releaser that raised; the repository lock may be stale."""
        log_error(
            logger,
            "[%s] url=%s error_type=%s error_message=%s",
            CollectionEventType.RELEASE_FAILED,
            url,
            type(error).__name__,
            str(error),
            exc_info=error,
        )
