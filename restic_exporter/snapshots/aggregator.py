"""Aggregation of snapshot summaries into per-host, per-owner backup sets.

A repository may hold snapshots from many machines and users. The exporter
reports one backup set per ``(host, owner)`` pair, tracking how many
snapshots contributed to it and when the newest one was taken.

Usage
-----
Feed summaries into a fresh aggregator and read the frozen result:

>>> aggregator = SnapshotAggregator()
>>> aggregator.add("alice", "laptop", dt.datetime(2024, 7, 1, tzinfo=dt.UTC))
>>> [s.snapshot_count for s in aggregator.backup_sets()]
[1]

"""

from __future__ import annotations

import dataclasses as dc
import datetime as dt

from restic_exporter.common.time import ensure_utc

# Some old restic releases on macOS wrote snapshots with an empty username.
UNKNOWN_OWNER = "UNKNOWN"

# Sets untouched for longer than this are classified as legacy. Existing
# alerting rules key on this threshold, so it must not drift.
LEGACY_AGE_DAYS = 60

_HOURS_PER_DAY = 24
_SECONDS_PER_HOUR = 3600


@dc.dataclass(frozen=True, slots=True)
class SnapshotSummary:
    """Reduced view of one snapshot as yielded by a repository reader."""

    owner: str
    host: str
    timestamp: dt.datetime


@dc.dataclass(frozen=True, slots=True)
class BackupSet:
    """Snapshots of one repository sharing a host and an owner.

    Attributes
    ----------
    host
        Hostname recorded in the snapshots.
    owner
        Username recorded in the snapshots, or :data:`UNKNOWN_OWNER`.
    snapshot_count
        Number of snapshots that contributed to this set.
    most_recent
        Newest snapshot timestamp (aware, UTC).

    """

    host: str
    owner: str
    snapshot_count: int
    most_recent: dt.datetime

    def day_age(self, now: dt.datetime) -> int:
        """Return the whole days elapsed since the newest snapshot."""
        return day_age(self.most_recent, now)

    def is_legacy(self, now: dt.datetime) -> bool:
        """Return whether the set has aged past :data:`LEGACY_AGE_DAYS`."""
        return is_legacy(self, now)


def day_age(most_recent: dt.datetime, now: dt.datetime) -> int:
    """Return ``hours(now - most_recent) / 24`` truncated toward zero.

    A snapshot taken earlier the same day has age 0 and one taken exactly
    25 hours ago has age 1. Future timestamps within a day also report 0.
    """
    elapsed = ensure_utc(now) - ensure_utc(most_recent)
    hours = elapsed.total_seconds() / _SECONDS_PER_HOUR
    return int(hours / _HOURS_PER_DAY)


def is_legacy(backup_set: BackupSet, now: dt.datetime) -> bool:
    """Classify a backup set as legacy when older than 60 days."""
    return day_age(backup_set.most_recent, now) > LEGACY_AGE_DAYS


@dc.dataclass(slots=True)
class _Accumulator:
    count: int
    most_recent: dt.datetime


class SnapshotAggregator:
    """Accumulate snapshot summaries for a single repository.

    Instances are not safe for concurrent use; each repository task owns
    exactly one aggregator for the duration of one enumeration.
    """

    def __init__(self) -> None:
        """Initialise an empty aggregator."""
        self._sets: dict[tuple[str, str], _Accumulator] = {}

    def add(self, owner: str, host: str, timestamp: dt.datetime) -> None:
        """Record one snapshot against its ``(host, owner)`` backup set."""
        owner = owner or UNKNOWN_OWNER
        timestamp = ensure_utc(timestamp)
        key = (host, owner)

        acc = self._sets.get(key)
        if acc is None:
            self._sets[key] = _Accumulator(count=1, most_recent=timestamp)
            return

        acc.count += 1
        acc.most_recent = max(acc.most_recent, timestamp)

    def add_summary(self, summary: SnapshotSummary) -> None:
        """Record a :class:`SnapshotSummary`."""
        self.add(summary.owner, summary.host, summary.timestamp)

    def __len__(self) -> int:
        """Return the number of distinct backup sets seen so far."""
        return len(self._sets)

    def backup_sets(self) -> tuple[BackupSet, ...]:
        """Return frozen backup sets ordered by host then owner."""
        return tuple(
            BackupSet(
                host=host,
                owner=owner,
                snapshot_count=acc.count,
                most_recent=acc.most_recent,
            )
            for (host, owner), acc in sorted(self._sets.items())
        )
