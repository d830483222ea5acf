"""Control plane serialising reload, trigger and shutdown requests.

Process signals and the cron scheduler never act directly: they place a
:class:`ControlCommand` on a queue and a single control loop dispatches it.
Signal handlers therefore stay trivial, and the control actions run in
ordinary coroutine context where they may await.

Signals:

- ``SIGHUP``: reload the repository configuration.
- ``SIGUSR1``: trigger an on-demand collection.
- ``SIGINT``/``SIGTERM``: drain and stop.

Usage
-----
>>> plane = ControlPlane(
...     config_store=store,
...     orchestrator=orchestrator,
...     config_loader=lambda: load_repositories(path, resolver),
...     server=server,
...     cron="0 0 * * *",
... )
>>> plane.install_signal_handlers()
>>> await plane.start()
>>> await plane.run()

"""

from __future__ import annotations

import asyncio
import enum
import signal
import time
import typing as typ

from restic_exporter.logging import get_logger, log_error, log_info, log_warning
from restic_exporter.repositories.errors import ConfigError

from .scheduler import build_scheduler
from .settings import DEFAULT_DRAIN_TIMEOUT_S

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from apscheduler.schedulers.asyncio import AsyncIOScheduler

    from restic_exporter.collection.models import CollectionRun
    from restic_exporter.collection.orchestrator import CollectionOrchestrator
    from restic_exporter.repositories.models import RepositoryConfig
    from restic_exporter.repositories.store import ConfigStore

logger = get_logger(__name__)


class ControlCommand(enum.StrEnum):
    """Actions accepted by the control loop."""

    RELOAD = "reload"
    TRIGGER = "trigger"
    SHUTDOWN = "shutdown"


SIGNAL_COMMANDS: dict[signal.Signals, ControlCommand] = {
    signal.SIGHUP: ControlCommand.RELOAD,
    signal.SIGUSR1: ControlCommand.TRIGGER,
    signal.SIGINT: ControlCommand.SHUTDOWN,
    signal.SIGTERM: ControlCommand.SHUTDOWN,
}


class HttpTransport(typ.Protocol):
    """Lifecycle of the HTTP exposition transport."""

    async def start(self) -> None:
        """Begin serving requests."""
        ...

    async def stop(self, timeout: float | None = None) -> None:
        """Stop serving, draining in-flight requests within ``timeout``."""
        ...


class ControlPlane:
    """Own the service lifecycle and dispatch control commands."""

    def __init__(  # noqa: PLR0913 - explicit collaborators keep wiring testable
        self,
        *,
        config_store: ConfigStore,
        orchestrator: CollectionOrchestrator,
        config_loader: cabc.Callable[[], cabc.Awaitable[tuple[RepositoryConfig, ...]]],
        server: HttpTransport | None = None,
        cron: str | None = None,
        timezone: str | None = None,
        drain_timeout_s: float = DEFAULT_DRAIN_TIMEOUT_S,
    ) -> None:
        """Initialise the control plane.

        Parameters
        ----------
        config_store
            Store swapped on successful reload.
        orchestrator
            Runs collections on trigger and is halted at shutdown.
        config_loader
            Loads and validates a fresh repository list.
        server
            HTTP transport started after the first collection.
        cron
            Crontab expression for scheduled triggers; ``None`` disables the
            scheduler.
        timezone
            IANA zone for ``cron``; ``None`` uses the local zone.
        drain_timeout_s
            Shutdown window shared by HTTP and collection drain.

        Raises
        ------
        SchedulingError
            If ``cron`` or ``timezone`` is invalid.

        """
        self._config_store = config_store
        self._orchestrator = orchestrator
        self._config_loader = config_loader
        self._server = server
        self._drain_timeout_s = drain_timeout_s
        self._queue: asyncio.Queue[ControlCommand] = asyncio.Queue()
        self._triggers: set[asyncio.Task[CollectionRun | None]] = set()
        self._installed_signals: list[signal.Signals] = []
        self._shutdown_started = False
        self._stopped = asyncio.Event()
        self._scheduler: AsyncIOScheduler | None = (
            build_scheduler(cron, self._on_schedule, timezone=timezone)
            if cron is not None
            else None
        )

    @property
    def scheduler(self) -> AsyncIOScheduler | None:
        """Return the cron scheduler, if one is configured."""
        return self._scheduler

    @property
    def stopped(self) -> bool:
        """Return whether shutdown has completed."""
        return self._stopped.is_set()

    def submit(self, command: ControlCommand) -> None:
        """Enqueue ``command`` for the control loop; safe from signal handlers."""
        self._queue.put_nowait(command)

    def install_signal_handlers(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Route process signals to control commands on ``loop``."""
        loop = loop or asyncio.get_running_loop()
        for signum, command in SIGNAL_COMMANDS.items():
            loop.add_signal_handler(signum, self._on_signal, signum, command)
            self._installed_signals.append(signum)

    def remove_signal_handlers(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        """Restore default handling for every signal this plane installed."""
        loop = loop or asyncio.get_running_loop()
        while self._installed_signals:
            loop.remove_signal_handler(self._installed_signals.pop())

    def _on_signal(self, signum: signal.Signals, command: ControlCommand) -> None:
        log_info(logger, "%s received, queueing %s", signum.name, command)
        self.submit(command)

    async def _on_schedule(self) -> None:
        self.submit(ControlCommand.TRIGGER)

    async def reload(self) -> bool:
        """Reload the repository configuration and swap it in.

        A failed load is logged and the previous configuration stays in
        effect. A collection already in flight keeps the snapshot it took.

        Returns
        -------
        bool
            ``True`` if the new configuration was swapped in.

        """
        try:
            repositories = await self._config_loader()
        except ConfigError as exc:
            log_error(logger, "Configuration reload failed; keeping previous: %s", exc)
            return False
        self._config_store.swap(repositories)
        log_info(logger, "Configuration reloaded: %d repositories", len(repositories))
        return True

    def trigger(self) -> asyncio.Task[CollectionRun | None]:
        """Start a collection in the background.

        The returned task resolves to ``None`` when the orchestrator was busy
        and the request was dropped.
        """
        task = asyncio.create_task(self._run_triggered(), name="collection-trigger")
        self._triggers.add(task)
        task.add_done_callback(self._triggers.discard)
        task.add_done_callback(_log_trigger_failure)
        return task

    async def _run_triggered(self) -> CollectionRun | None:
        run = await self._orchestrator.try_run()
        if run is None:
            reason = (
                "the exporter is shutting down"
                if self._orchestrator.closed
                else "a run is already active"
            )
            log_info(logger, "Collection trigger dropped; %s", reason)
        return run

    async def start(self) -> CollectionRun | None:
        """Collect once, then start the scheduler and the HTTP transport.

        Returns
        -------
        CollectionRun | None
            The initial run.

        """
        log_info(logger, "Synchronously collecting metrics once at startup")
        run = await self._orchestrator.try_run()
        if self._scheduler is not None:
            self._scheduler.start()
            log_info(logger, "Collection scheduler started")
        if self._server is not None:
            await self._server.start()
        return run

    async def run(self) -> None:
        """Dispatch queued commands until a shutdown completes."""
        while not self._stopped.is_set():
            command = await self._queue.get()
            match command:
                case ControlCommand.RELOAD:
                    await self.reload()
                case ControlCommand.TRIGGER:
                    self.trigger()
                case ControlCommand.SHUTDOWN:
                    await self.shutdown()

    async def shutdown(self) -> bool:
        """Stop scheduling, drain HTTP and collection, then halt.

        The HTTP transport and the collection share one drain window. No
        repository task is cancelled, so every opened repository is
        released unless the window elapses first.

        Returns
        -------
        bool
            ``True`` if everything drained within the window.

        """
        if self._shutdown_started:
            await self._stopped.wait()
            return True
        self._shutdown_started = True
        deadline = time.monotonic() + self._drain_timeout_s
        log_info(
            logger,
            "Shutdown requested, draining for up to %.0f seconds",
            self._drain_timeout_s,
        )

        if self._scheduler is not None and self._scheduler.running:
            self._scheduler.shutdown(wait=False)
            # APScheduler 3.11 stops the scheduler on the next loop iteration.
            await asyncio.sleep(0)
        if self._server is not None:
            await self._server.stop(timeout=_remaining(deadline))

        drained = await self._orchestrator.shutdown(timeout=_remaining(deadline))
        if self._triggers:
            _, pending = await asyncio.wait(
                set(self._triggers), timeout=_remaining(deadline)
            )
            drained = drained and not pending
        if not drained:
            log_warning(logger, "Shutdown window elapsed before collection drained")

        self._stopped.set()
        log_info(logger, "Shutdown complete")
        return drained


def _log_trigger_failure(task: asyncio.Task[CollectionRun | None]) -> None:
    if task.cancelled():
        return
    error = task.exception()
    if error is not None:
        log_error(logger, "Triggered collection failed: %s", error, exc_info=error)


def _remaining(deadline: float) -> float:
    return max(deadline - time.monotonic(), 0.0)
