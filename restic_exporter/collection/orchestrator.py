"""Fan-out/fan-in orchestration of collection runs.

A run captures the configuration snapshot current at the moment it starts,
collects every enabled repository concurrently (one task each, no bound),
joins all of them, and publishes one immutable :class:`CollectionRun`.

At most one run is in flight. :meth:`CollectionOrchestrator.try_run`
rejects overlapping requests immediately instead of queueing them.

Usage
-----
>>> orchestrator = CollectionOrchestrator(config_store, metrics_store, reader)
>>> run = await orchestrator.try_run()
>>> if run is None:
...     print("busy")

"""

from __future__ import annotations

import asyncio
import collections.abc as cabc
import datetime as dt
import time
import typing as typ

from restic_exporter.common.time import utcnow
from restic_exporter.logging import get_logger, log_info, log_warning

from .models import CollectionRun, RepositoryResult
from .observability import CollectionEventLogger
from .task import collect_repository

if typ.TYPE_CHECKING:
    from restic_exporter.metrics.store import MetricsStore
    from restic_exporter.reader.protocol import RepositoryReader
    from restic_exporter.repositories.models import RepositoryConfig
    from restic_exporter.repositories.store import ConfigStore

logger = get_logger(__name__)


class CollectionOrchestrator:
    """Run collections one at a time and publish their results."""

    def __init__(
        self,
        config_store: ConfigStore,
        metrics_store: MetricsStore,
        reader: RepositoryReader,
        *,
        event_logger: CollectionEventLogger | None = None,
        clock: cabc.Callable[[], dt.datetime] = utcnow,
    ) -> None:
        """Initialise the orchestrator with its state holders and reader.

        Parameters
        ----------
        config_store
            Source of the repository list; read once per run.
        metrics_store
            Destination for completed runs.
        reader
            Reader passed to every repository task.
        event_logger
            Sink for lifecycle events.
        clock
            Returns the completion timestamp recorded on each run.

        """
        self._config_store = config_store
        self._metrics_store = metrics_store
        self._reader = reader
        self._events = event_logger or CollectionEventLogger()
        self._clock = clock
        self._run_lock = asyncio.Lock()
        self._in_flight: set[asyncio.Task[RepositoryResult]] = set()
        self._closed = False

    @property
    def busy(self) -> bool:
        """Return whether a run is currently in flight."""
        return self._run_lock.locked()

    @property
    def closed(self) -> bool:
        """Return whether :meth:`shutdown` has been called."""
        return self._closed

    @property
    def outstanding(self) -> int:
        """Return the number of repository tasks that have not finished."""
        return len(self._in_flight)

    async def try_run(self) -> CollectionRun | None:
        """Collect every enabled repository unless a run is already active.

        Returns
        -------
        CollectionRun | None
            The published run, or ``None`` when the request was rejected
            because another run holds the lock or the orchestrator is shut
            down.

        """
        if self._closed:
            self._events.log_run_rejected(reason="shutdown")
            return None
        # Checked and acquired with no suspension point in between.
        if self._run_lock.locked():
            self._events.log_run_rejected(reason="busy")
            return None

        async with self._run_lock:
            return await self._run(self._config_store.enabled())

    async def _run(self, enabled: tuple[RepositoryConfig, ...]) -> CollectionRun:
        started = time.monotonic()
        self._events.log_run_started(repository_count=len(enabled))

        results = await self._collect_all(enabled)

        run = CollectionRun.compose(results, completed_at=self._clock())
        self._metrics_store.publish(run)
        self._events.log_run_completed(
            run=run,
            duration=dt.timedelta(seconds=time.monotonic() - started),
        )
        return run

    async def _collect_all(
        self,
        repositories: cabc.Sequence[RepositoryConfig],
    ) -> list[RepositoryResult]:
        """Run one task per repository and join exactly those tasks."""
        async with asyncio.TaskGroup() as group:
            tasks = [
                group.create_task(
                    collect_repository(self._reader, repo, event_logger=self._events),
                    name=f"collect:{repo.url}",
                )
                for repo in repositories
            ]
            for task in tasks:
                self._in_flight.add(task)
                task.add_done_callback(self._in_flight.discard)
        return [task.result() for task in tasks]

    async def shutdown(self, timeout: float | None = None) -> bool:
        """Refuse new runs and wait for outstanding repository tasks.

        Tasks are never cancelled here: each one must reach its release step
        so no repository lock is left behind.

        Parameters
        ----------
        timeout
            Maximum seconds to wait; ``None`` waits indefinitely.

        Returns
        -------
        bool
            ``True`` if every task finished within the window.

        """
        self._closed = True
        pending = set(self._in_flight)
        if not pending:
            return True

        log_info(logger, "Waiting for %d repository task(s) to release", len(pending))
        _, still_running = await asyncio.wait(pending, timeout=timeout)
        if still_running:
            log_warning(
                logger,
                "Shutdown window elapsed with %d repository task(s) still running: %s",
                len(still_running),
                ", ".join(sorted(task.get_name() for task in still_running)),
            )
            return False
        return True
