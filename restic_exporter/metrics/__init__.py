"""Published metrics state and its Prometheus exposition."""

from __future__ import annotations

from .collector import DEFAULT_NAMESPACE, CollectionRunCollector
from .store import MetricsStore

__all__ = ["DEFAULT_NAMESPACE", "CollectionRunCollector", "MetricsStore"]
