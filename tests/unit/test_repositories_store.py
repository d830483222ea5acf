"""Unit tests for the atomic configuration store."""

from __future__ import annotations

from restic_exporter.repositories import ConfigStore
from tests.helpers.fake_reader import repo


def test_snapshot_survives_swap() -> None:
    """A captured snapshot is unaffected by a later swap."""
    store = ConfigStore([repo("rest:http://a/"), repo("rest:http://b/")])
    before = store.snapshot()

    store.swap([repo("rest:http://c/")])

    assert [r.url for r in before] == ["rest:http://a/", "rest:http://b/"]
    assert [r.url for r in store.snapshot()] == ["rest:http://c/"]


def test_swap_copies_iterables_into_a_tuple() -> None:
    """Mutating the list passed to swap does not affect the store."""
    store = ConfigStore()
    entries = [repo("rest:http://a/")]
    store.swap(entries)
    entries.append(repo("rest:http://b/"))

    assert isinstance(store.snapshot(), tuple)
    assert len(store.snapshot()) == 1


def test_enabled_filters_disabled_entries() -> None:
    """Disabled repositories are excluded from ``enabled``."""
    store = ConfigStore([repo("rest:http://a/"), repo("rest:http://b/", disabled=True)])

    assert [r.url for r in store.enabled()] == ["rest:http://a/"]
