"""Snapshot aggregation into backup sets."""

from __future__ import annotations

from .aggregator import (
    LEGACY_AGE_DAYS,
    UNKNOWN_OWNER,
    BackupSet,
    SnapshotAggregator,
    SnapshotSummary,
    day_age,
    is_legacy,
)

__all__ = [
    "LEGACY_AGE_DAYS",
    "UNKNOWN_OWNER",
    "BackupSet",
    "SnapshotAggregator",
    "SnapshotSummary",
    "day_age",
    "is_legacy",
]
