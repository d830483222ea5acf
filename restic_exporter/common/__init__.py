"""Shared helpers used across the exporter."""

from __future__ import annotations

from .time import ensure_utc, unix_seconds, utcnow

__all__ = ["ensure_utc", "unix_seconds", "utcnow"]
