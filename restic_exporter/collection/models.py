"""Immutable results of repository collection."""

from __future__ import annotations

import dataclasses as dc
import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc
    import datetime as dt

    from restic_exporter.snapshots import BackupSet


@dc.dataclass(frozen=True, slots=True)
class RepositoryResult:
    """Outcome of one collection attempt for one repository.

    Attributes
    ----------
    url
        Repository URL.
    read_error_count
        ``1`` when opening, enumerating or releasing failed, else ``0``.
    backup_sets
        Aggregated backup sets; always empty when ``read_error_count`` is 1.

    """

    url: str
    read_error_count: int = 0
    backup_sets: tuple[BackupSet, ...] = ()

    @classmethod
    def failed(cls, url: str) -> RepositoryResult:
        """Return the result recorded for a repository that could not be read."""
        return cls(url=url, read_error_count=1)

    @property
    def ok(self) -> bool:
        """Return whether the repository was read successfully."""
        return self.read_error_count == 0


@dc.dataclass(frozen=True, slots=True)
class CollectionRun:
    """One completed pass across every enabled repository.

    Attributes
    ----------
    completed_at
        When the last repository task reported (aware, UTC).
    error_count
        Sum of the repositories' ``read_error_count``.
    results
        One result per repository collected in the run, in no particular
        order.

    """

    completed_at: dt.datetime
    error_count: int
    results: tuple[RepositoryResult, ...]

    @classmethod
    def compose(
        cls,
        results: cabc.Iterable[RepositoryResult],
        *,
        completed_at: dt.datetime,
    ) -> CollectionRun:
        """Build a run from repository results, totalling their errors."""
        frozen = tuple(results)
        return cls(
            completed_at=completed_at,
            error_count=sum(result.read_error_count for result in frozen),
            results=frozen,
        )

    def result_for(self, url: str) -> RepositoryResult | None:
        """Return the result recorded for ``url``, if it was collected."""
        return next((result for result in self.results if result.url == url), None)
