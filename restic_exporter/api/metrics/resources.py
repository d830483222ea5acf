"""Prometheus exposition and landing page resources.

Usage
-----
Register the exposition endpoint on the Falcon app::

    from restic_exporter.api.metrics.resources import IndexResource, MetricsResource

    app.add_route("/", IndexResource())
    app.add_route("/metrics", MetricsResource(metrics_store, registry))

"""

from __future__ import annotations

import typing as typ
from http import HTTPStatus

import falcon
from prometheus_client.exposition import CONTENT_TYPE_LATEST, generate_latest

if typ.TYPE_CHECKING:
    from falcon.asgi import Request, Response
    from prometheus_client.registry import CollectorRegistry

    from restic_exporter.metrics.store import MetricsStore

__all__ = ["INDEX_PAGE", "IndexResource", "MetricsResource"]

INDEX_PAGE = '<h1>Restic Exporter</h1><pre><a href="/metrics">/metrics</a></pre>'


class IndexResource:
    """Static landing page linking to the exposition endpoint."""

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET / requests."""
        resp.content_type = falcon.MEDIA_HTML
        resp.text = INDEX_PAGE
        resp.status = HTTPStatus.OK


class MetricsResource:
    """Render the registry in the Prometheus text format.

    Scrapes never wait on a collection in progress: the registry's collector
    reads whichever run the store currently holds.

    """

    def __init__(self, metrics_store: MetricsStore, registry: CollectorRegistry) -> None:
        """Initialise the resource.

        Parameters
        ----------
        metrics_store
            Consulted to refuse scrapes before the first published run.
        registry
            Registry rendered on each scrape.

        """
        self._metrics_store = metrics_store
        self._registry = registry

    async def on_get(self, _req: Request, resp: Response) -> None:
        """Handle GET /metrics requests.

        Parameters
        ----------
        _req
            Falcon request (unused).
        resp
            Falcon response carrying the exposition text, or ``503`` when no
            run has been published yet.

        """
        if not self._metrics_store.ready:
            resp.content_type = falcon.MEDIA_TEXT
            resp.text = "no collection run has completed yet\n"
            resp.status = HTTPStatus.SERVICE_UNAVAILABLE
            return

        resp.content_type = CONTENT_TYPE_LATEST
        resp.data = generate_latest(self._registry)
        resp.status = HTTPStatus.OK
