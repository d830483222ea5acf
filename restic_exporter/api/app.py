"""Application factory for the restic exporter Falcon ASGI application.

This module provides ``create_app()`` which builds the Falcon ASGI
application serving the landing page, the Prometheus exposition and the
health probes.

Usage
-----
Create an app over a metrics store::

    from prometheus_client import CollectorRegistry

    from restic_exporter.api.app import create_app
    from restic_exporter.metrics import CollectionRunCollector, MetricsStore

    store = MetricsStore()
    registry = CollectorRegistry()
    registry.register(CollectionRunCollector(store))
    app = create_app(store, registry)

"""

from __future__ import annotations

import typing as typ

import falcon.asgi

from restic_exporter.api.health.resources import HealthResource, ReadyResource
from restic_exporter.api.metrics.resources import IndexResource, MetricsResource

if typ.TYPE_CHECKING:
    from prometheus_client.registry import CollectorRegistry

    from restic_exporter.metrics.store import MetricsStore

__all__ = ["create_app"]


def create_app(
    metrics_store: MetricsStore,
    registry: CollectorRegistry,
) -> falcon.asgi.App:
    """Create and configure the Falcon ASGI application.

    Parameters
    ----------
    metrics_store
        Holder of the latest collection run; gates ``/metrics`` and
        ``/ready``.
    registry
        Prometheus registry rendered by ``/metrics``.

    Returns
    -------
    falcon.asgi.App
        Configured Falcon ASGI application.

    """
    app = falcon.asgi.App()  # type: ignore[no-matching-overload]  # Falcon stubs

    app.add_route("/", IndexResource())
    app.add_route("/metrics", MetricsResource(metrics_store, registry))
    app.add_route("/health", HealthResource())
    app.add_route("/ready", ReadyResource(metrics_store))

    return app
