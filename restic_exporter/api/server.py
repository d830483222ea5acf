"""Embedded uvicorn server for the exposition app.

The metrics store lives in this process, so the ASGI app is served from the
same event loop as the collection orchestrator rather than by a separate
worker process. Signal handling belongs to the control plane; uvicorn's own
handlers are disabled, and its standard library logger is routed into
femtologging.

Usage
-----
>>> server = MetricsServer(app, host="0.0.0.0", port=9121)
>>> await server.start()
>>> ...
>>> await server.stop(timeout=60)

"""

from __future__ import annotations

import asyncio
import contextlib
import socket
import typing as typ

import uvicorn

from restic_exporter.logging import (
    get_logger,
    log_info,
    log_warning,
    route_stdlib_logger,
)

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    import falcon.asgi

logger = get_logger(__name__)

_STARTUP_POLL_S = 0.05
_UVICORN_LOGGER = "uvicorn.error"


class _EmbeddedServer(uvicorn.Server):
    """uvicorn server that leaves process signals to its host."""

    @contextlib.contextmanager
    def capture_signals(self) -> cabc.Generator[None]:
        yield

    def install_signal_handlers(self) -> None:
        return


class MetricsServer:
    """Start and stop the HTTP transport on the running event loop."""

    def __init__(self, app: falcon.asgi.App, *, host: str, port: int) -> None:
        """Prepare the server without binding.

        Parameters
        ----------
        app
            ASGI application to serve.
        host
            Interface to bind; ``0.0.0.0`` for all IPv4 interfaces.
        port
            TCP port; ``0`` selects an ephemeral port.

        """
        self._host = host
        self._port = port
        route_stdlib_logger(_UVICORN_LOGGER)
        self._config = uvicorn.Config(
            app,
            host=host,
            port=port,
            lifespan="off",
            access_log=False,
            log_config=None,
        )
        self._server = _EmbeddedServer(self._config)
        self._socket: socket.socket | None = None
        self._task: asyncio.Task[None] | None = None

    @property
    def port(self) -> int:
        """Return the bound port, or the configured one before start."""
        if self._socket is None:
            return self._port
        return self._socket.getsockname()[1]

    @property
    def running(self) -> bool:
        """Return whether the serve task is alive."""
        return self._task is not None and not self._task.done()

    def _bind(self) -> socket.socket:
        family = socket.AF_INET6 if ":" in self._host else socket.AF_INET
        return socket.create_server((self._host, self._port), family=family)

    async def start(self) -> None:
        """Bind the listening socket and serve until :meth:`stop`.

        Raises
        ------
        OSError
            If the address cannot be bound.
        RuntimeError
            If the server exits before it reports itself started.

        """
        if self._task is not None:
            msg = "MetricsServer has already been started"
            raise RuntimeError(msg)

        self._socket = self._bind()
        self._task = asyncio.create_task(
            self._server.serve(sockets=[self._socket]),
            name="metrics-server",
        )
        while not self._server.started:
            if self._task.done():
                self._task.result()
                msg = "HTTP server exited during startup"
                raise RuntimeError(msg)
            await asyncio.sleep(_STARTUP_POLL_S)
        log_info(logger, "HTTP server listening on %s:%d", self._host, self.port)

    async def stop(self, timeout: float | None = None) -> None:
        """Stop accepting requests and drain open connections.

        Parameters
        ----------
        timeout
            Seconds to allow in-flight requests to finish before open
            connections are dropped; ``None`` waits indefinitely.

        """
        task = self._task
        if task is None or task.done():
            return
        self._server.should_exit = True
        try:
            await asyncio.wait_for(asyncio.shield(task), timeout=timeout)
        except TimeoutError:
            log_warning(logger, "HTTP drain window elapsed; closing connections")
            self._server.force_exit = True
            await task
        log_info(logger, "HTTP server stopped")
