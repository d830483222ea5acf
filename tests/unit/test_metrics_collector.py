"""Unit tests for the Prometheus collection-run collector."""

from __future__ import annotations

import datetime as dt

import pytest
from prometheus_client import CollectorRegistry, generate_latest

from restic_exporter.collection import CollectionRun, RepositoryResult
from restic_exporter.metrics import CollectionRunCollector, MetricsStore
from restic_exporter.snapshots import BackupSet

T0 = dt.datetime(2024, 7, 1, 12, 0, tzinfo=dt.UTC)
R1 = "rest:http://r1/"
R2 = "b2:bucket:r2"


class _Clock:
    """Settable clock for scrape-time computations."""

    def __init__(self, now: dt.datetime) -> None:
        self.now = now

    def __call__(self) -> dt.datetime:
        return self.now


def _run() -> CollectionRun:
    return CollectionRun.compose(
        [
            RepositoryResult(
                url=R1,
                backup_sets=(
                    BackupSet(host="h1", owner="u1", snapshot_count=2, most_recent=T0),
                ),
            ),
            RepositoryResult.failed(R2),
        ],
        completed_at=T0 + dt.timedelta(minutes=5),
    )


@pytest.fixture
def clock() -> _Clock:
    """Return a clock starting 25 hours after the newest snapshot."""
    return _Clock(T0 + dt.timedelta(hours=25))


@pytest.fixture
def store() -> MetricsStore:
    """Return a store holding a run with one good and one failed repository."""
    metrics_store = MetricsStore()
    metrics_store.publish(_run())
    return metrics_store


@pytest.fixture
def registry(store: MetricsStore, clock: _Clock) -> CollectorRegistry:
    """Return a registry exposing ``store`` through the collector."""
    collector_registry = CollectorRegistry()
    collector_registry.register(CollectionRunCollector(store, clock=clock))
    return collector_registry


def test_job_level_gauges(registry: CollectorRegistry) -> None:
    """Run completion time and error total are exposed without labels."""
    assert registry.get_sample_value("backup_job_error_count") == 1
    assert registry.get_sample_value("backup_job_last_success_unixtime") == (
        (T0 + dt.timedelta(minutes=5)).timestamp()
    )


def test_per_repository_read_errors(registry: CollectorRegistry) -> None:
    """Every collected repository reports its read error flag."""
    assert registry.get_sample_value("backup_read_error_count", {"url": R1}) == 0
    assert registry.get_sample_value("backup_read_error_count", {"url": R2}) == 1


def test_backup_set_gauges(registry: CollectorRegistry) -> None:
    """Backup sets are labelled by url, host and owner."""
    labels = {"url": R1, "host": "h1", "owner": "u1"}
    assert registry.get_sample_value("backup_snapshot_count", labels) == 2
    assert registry.get_sample_value("backup_newest_timestamp", labels) == T0.timestamp()
    assert registry.get_sample_value("backup_days_age", labels) == 1


def test_failed_repository_has_no_set_series(registry: CollectorRegistry) -> None:
    """A failed repository contributes no snapshot series."""
    families = {family.name: family for family in registry.collect()}
    urls = {sample.labels["url"] for sample in families["backup_snapshot_count"].samples}
    assert urls == {R1}


def test_days_age_tracks_scrape_time(registry: CollectorRegistry, clock: _Clock) -> None:
    """Only days_age changes between scrapes of the same run."""
    labels = {"url": R1, "host": "h1", "owner": "u1"}
    first_count = registry.get_sample_value("backup_snapshot_count", labels)
    first_newest = registry.get_sample_value("backup_newest_timestamp", labels)

    clock.now += dt.timedelta(days=3)

    assert registry.get_sample_value("backup_days_age", labels) == 4
    assert registry.get_sample_value("backup_snapshot_count", labels) == first_count
    assert registry.get_sample_value("backup_newest_timestamp", labels) == first_newest


def test_nothing_exposed_before_first_run() -> None:
    """An empty store produces no samples."""
    registry = CollectorRegistry()
    registry.register(CollectionRunCollector(MetricsStore()))

    assert registry.get_sample_value("backup_job_error_count") is None
    assert generate_latest(registry) == b""


def test_namespace_is_configurable(store: MetricsStore) -> None:
    """A custom namespace prefixes every family."""
    registry = CollectorRegistry()
    registry.register(CollectionRunCollector(store, namespace="restic"))

    assert registry.get_sample_value("restic_job_error_count") == 1
    assert registry.get_sample_value("backup_job_error_count") is None
