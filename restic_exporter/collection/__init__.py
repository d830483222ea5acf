"""Concurrent collection of snapshot metadata across repositories."""

from __future__ import annotations

from .models import CollectionRun, RepositoryResult
from .observability import CollectionEventLogger, CollectionEventType
from .orchestrator import CollectionOrchestrator
from .task import collect_repository

__all__ = [
    "CollectionEventLogger",
    "CollectionEventType",
    "CollectionOrchestrator",
    "CollectionRun",
    "RepositoryResult",
    "collect_repository",
]
