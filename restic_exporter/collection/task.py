"""Collection of a single repository in isolation.

:func:`collect_repository` is the unit of work the orchestrator runs once
per enabled repository. Every failure is turned into data: the function
returns a :class:`RepositoryResult` with ``read_error_count=1`` rather than
raising, so one misbehaving repository never affects its siblings.
Only cancellation propagates.
"""

from __future__ import annotations

import datetime as dt
import time
import typing as typ

from restic_exporter.snapshots import SnapshotAggregator

from .models import RepositoryResult
from .observability import CollectionEventLogger

if typ.TYPE_CHECKING:
    from restic_exporter.reader.protocol import Releaser, RepositoryHandle, RepositoryReader
    from restic_exporter.repositories.models import RepositoryConfig


async def collect_repository(
    reader: RepositoryReader,
    repository: RepositoryConfig,
    *,
    event_logger: CollectionEventLogger | None = None,
) -> RepositoryResult:
    """Open, enumerate, aggregate and release one repository.

    Parameters
    ----------
    reader
        Reader used to open the repository.
    repository
        Resolved configuration of the repository to collect.
    event_logger
        Sink for lifecycle events; a default logger is used when omitted.

    Returns
    -------
    RepositoryResult
        Backup sets on success; an empty, error-flagged result when the
        open, the enumeration or the release failed.

    """
    events = event_logger or CollectionEventLogger()
    url = repository.url
    started = time.monotonic()
    events.log_repository_started(url=url)

    try:
        handle, releaser = await reader.open(url, repository.credential, repository.extra)
    except Exception as exc:  # noqa: BLE001 - any reader failure becomes a read error
        events.log_repository_failed(url=url, stage="open", error=exc)
        return RepositoryResult.failed(url)

    try:
        aggregator = await _aggregate(handle)
    except Exception as exc:  # noqa: BLE001 - no partial backup sets on read errors
        events.log_repository_failed(url=url, stage="read", error=exc)
        await _release(releaser, url, events)
        return RepositoryResult.failed(url)
    except BaseException:
        await _release(releaser, url, events)
        raise

    if not await _release(releaser, url, events):
        return RepositoryResult.failed(url)

    backup_sets = aggregator.backup_sets()
    events.log_repository_completed(
        url=url,
        backup_sets=len(backup_sets),
        duration=dt.timedelta(seconds=time.monotonic() - started),
    )
    return RepositoryResult(url=url, backup_sets=backup_sets)


async def _aggregate(handle: RepositoryHandle) -> SnapshotAggregator:
    aggregator = SnapshotAggregator()
    async for summary in handle.iter_snapshots():
        aggregator.add_summary(summary)
    return aggregator


async def _release(releaser: Releaser, url: str, events: CollectionEventLogger) -> bool:
    """Invoke the releaser once, reporting whether it succeeded."""
    try:
        await releaser.release()
    except Exception as exc:  # noqa: BLE001 - a failed release is reported, not raised
        events.log_release_failed(url=url, error=exc)
        return False
    return True
