"""Atomic holder of the current repository configuration."""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from .models import RepositoryConfig


class ConfigStore:
    """Hold the current repository list behind a single reference.

    :meth:`swap` replaces the whole tuple in one assignment, so a reader
    calling :meth:`snapshot` sees either the complete old list or the
    complete new one. The tuple and its entries are immutable; a collection
    run keeps using the snapshot it captured even after a later swap.
    """

    def __init__(self, repositories: cabc.Iterable[RepositoryConfig] = ()) -> None:
        """Initialise the store with an optional starting list."""
        self._repositories: tuple[RepositoryConfig, ...] = tuple(repositories)

    def snapshot(self) -> tuple[RepositoryConfig, ...]:
        """Return the complete current repository list."""
        return self._repositories

    def swap(self, repositories: cabc.Iterable[RepositoryConfig]) -> None:
        """Replace the repository list wholesale."""
        self._repositories = tuple(repositories)

    def enabled(self) -> tuple[RepositoryConfig, ...]:
        """Return the enabled entries of one snapshot of the current list."""
        return tuple(repo for repo in self._repositories if not repo.disabled)
