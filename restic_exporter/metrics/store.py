"""Atomic holder of the last published collection run."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    from restic_exporter.collection.models import CollectionRun


class MetricsStore:
    """Single-writer, many-reader reference to the latest :class:`CollectionRun`.

    Publishing is one reference assignment of an immutable value. Readers
    take the reference once and work from it, so a scrape never observes a
    half-published run and never waits for a collection in progress.
    """

    def __init__(self) -> None:
        """Initialise an empty store; nothing is published yet."""
        self._current: CollectionRun | None = None
        self._publish_count = 0

    @property
    def current(self) -> CollectionRun | None:
        """Return the latest published run, or ``None`` before the first."""
        return self._current

    @property
    def ready(self) -> bool:
        """Return whether at least one run has been published."""
        return self._current is not None

    @property
    def publish_count(self) -> int:
        """Return how many runs have been published since start-up."""
        return self._publish_count

    def publish(self, run: CollectionRun) -> None:
        """Replace the published run."""
        self._current = run
        self._publish_count += 1
