"""Prometheus collector exposing the published collection run as gauges.

Every value is a gauge: snapshot counts and ages shrink when old snapshots
are pruned, so counters would be wrong. Values are computed from the
published :class:`~restic_exporter.collection.models.CollectionRun` at
scrape time; ``days_age`` uses the clock at the moment of the scrape and so
keeps growing between collection runs.

Usage
-----
>>> registry = CollectorRegistry()
>>> registry.register(CollectionRunCollector(metrics_store))
>>> generate_latest(registry)

"""

from __future__ import annotations

import collections.abc as cabc
import datetime as dt
import typing as typ

from prometheus_client.core import GaugeMetricFamily
from prometheus_client.registry import Collector

from restic_exporter.common.time import unix_seconds, utcnow

if typ.TYPE_CHECKING:
    from prometheus_client.core import Metric

    from .store import MetricsStore

# Series names predate this service; keep them stable for existing alerts.
DEFAULT_NAMESPACE = "backup"

_SET_LABELS = ("url", "host", "owner")


class CollectionRunCollector(Collector):
    """Translate the latest :class:`CollectionRun` into gauge families."""

    def __init__(
        self,
        store: MetricsStore,
        *,
        namespace: str = DEFAULT_NAMESPACE,
        clock: cabc.Callable[[], dt.datetime] = utcnow,
    ) -> None:
        """Initialise the collector over ``store``.

        Parameters
        ----------
        store
            Holder of the published run; read once per scrape.
        namespace
            Prefix applied to every metric name.
        clock
            Source of "now" for ``days_age``.

        """
        self._store = store
        self._namespace = namespace
        self._clock = clock

    def _name(self, name: str) -> str:
        return f"{self._namespace}_{name}" if self._namespace else name

    def describe(self) -> list[Metric]:
        """Return no descriptions so registration does not trigger a collect."""
        return []

    def collect(self) -> cabc.Iterator[Metric]:
        """Yield gauge families for the current run, or nothing before it."""
        run = self._store.current
        if run is None:
            return
        now = self._clock()

        last_success = GaugeMetricFamily(
            self._name("job_last_success_unixtime"),
            "Last time a collection run finished",
        )
        last_success.add_metric([], unix_seconds(run.completed_at))

        job_errors = GaugeMetricFamily(
            self._name("job_error_count"),
            "Number of repositories that could not be read in the last run",
        )
        job_errors.add_metric([], run.error_count)

        read_errors = GaugeMetricFamily(
            self._name("read_error_count"),
            "Number of errors encountered when reading a repository",
            labels=["url"],
        )
        snapshot_count = GaugeMetricFamily(
            self._name("snapshot_count"),
            "Number of snapshots in a backup set",
            labels=list(_SET_LABELS),
        )
        newest = GaugeMetricFamily(
            self._name("newest_timestamp"),
            "Most recent snapshot timestamp in a backup set",
            labels=list(_SET_LABELS),
        )
        days_age = GaugeMetricFamily(
            self._name("days_age"),
            "Age in days since the most recent snapshot in a backup set",
            labels=list(_SET_LABELS),
        )

        for result in run.results:
            read_errors.add_metric([result.url], result.read_error_count)
            for backup_set in result.backup_sets:
                labels = [result.url, backup_set.host, backup_set.owner]
                snapshot_count.add_metric(labels, backup_set.snapshot_count)
                newest.add_metric(labels, int(unix_seconds(backup_set.most_recent)))
                days_age.add_metric(labels, backup_set.day_age(now))

        yield last_success
        yield job_errors
        yield read_errors
        yield snapshot_count
        yield newest
        yield days_age
