"""Health probe resources for Kubernetes liveness and readiness checks.

Liveness is unconditional. Readiness follows the metrics store: the service
is ready once the first collection run has been published, since a scrape
before that point would only see an empty exposition.

Usage
-----
Register health endpoints on the Falcon app::

    from restic_exporter.api.health.resources import HealthResource, ReadyResource

    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource(metrics_store))

"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response

    from restic_exporter.metrics.store import MetricsStore

__all__ = ["HealthResource", "ReadyResource"]


class HealthResource:
    """Liveness probe resource returning ``{"status": "ok"}``.

    Always responds with HTTP 200 to indicate the process is alive.

    """

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /health requests.

        Parameters
        ----------
        _req
            Falcon request (unused).
        resp
            Falcon response populated with liveness status.

        """
        resp.media = {"status": "ok"}
        resp.status = HTTPStatus.OK


class ReadyResource:
    """Readiness probe resource gated on the first published run."""

    def __init__(self, metrics_store: MetricsStore) -> None:
        """Store the metrics holder consulted on each probe."""
        self._metrics_store = metrics_store

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /ready requests.

        Responds ``200 {"status": "ready"}`` once a collection run has been
        published and ``503 {"status": "starting"}`` before that.

        Parameters
        ----------
        _req
            Falcon request (unused).
        resp
            Falcon response populated with readiness status.

        """
        if self._metrics_store.ready:
            resp.media = {"status": "ready"}
            resp.status = HTTPStatus.OK
        else:
            resp.media = {"status": "starting"}
            resp.status = HTTPStatus.SERVICE_UNAVAILABLE
