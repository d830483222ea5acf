"""Restic exporter HTTP API layer.

This package provides the Falcon Asynchronous Server Gateway Interface
(ASGI) application and the embedded server that exposes collected backup
metrics over HTTP.

Usage
-----
Create and serve the application::

    from restic_exporter.api import MetricsServer, create_app

    app = create_app(metrics_store, registry)
    server = MetricsServer(app, host="0.0.0.0", port=9121)
    await server.start()

Public API
----------
create_app
    Application factory registering ``/``, ``/metrics``, ``/health`` and
    ``/ready``.
MetricsServer
    In-process uvicorn server with an explicit start/stop lifecycle.
"""

from restic_exporter.api.app import create_app
from restic_exporter.api.server import MetricsServer

__all__ = ["MetricsServer", "create_app"]
