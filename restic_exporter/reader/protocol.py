"""Interfaces between the collector core and repository backends.

A reader opens a repository and hands back two objects: a handle used to
enumerate snapshots and a releaser that gives back whatever the open step
acquired (a repository lock, a child process). The collector awaits
``releaser.release()`` exactly once for every successful ``open``, on every
exit path.
"""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc

    from restic_exporter.repositories.models import BackendExtra
    from restic_exporter.snapshots import SnapshotSummary


class RepositoryHandle(typ.Protocol):
    """Opened repository able to enumerate its snapshots."""

    def iter_snapshots(self) -> cabc.AsyncIterator[SnapshotSummary]:
        """Yield a summary for every snapshot in the repository."""
        ...


class Releaser(typ.Protocol):
    """Releases resources acquired by :meth:`RepositoryReader.open`."""

    async def release(self) -> None:
        """Release the repository lock and any associated resources."""
        ...


class RepositoryReader(typ.Protocol):
    """Open repositories for snapshot enumeration."""

    async def open(
        self,
        url: str,
        credential: str,
        extra: BackendExtra,
    ) -> tuple[RepositoryHandle, Releaser]:
        """Open ``url`` with ``credential`` and backend ``extra`` config.

        Raises
        ------
        RepositoryOpenError
            If the backend is unsupported, unreachable or the key is wrong.

        """
        ...
