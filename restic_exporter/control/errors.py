"""Exceptions raised while assembling the service control surface."""

from __future__ import annotations

import typing as typ


class SettingsError(ValueError):
    """Raised when a service setting cannot be interpreted."""

    @classmethod
    def invalid_bind(cls, bind: str, reason: str) -> typ.Self:
        """Build an error for a malformed listen address."""
        return cls(f"invalid bind address {bind!r}: {reason}")

    @classmethod
    def out_of_range(cls, name: str, value: float) -> typ.Self:
        """Build an error for a numeric setting outside its valid range."""
        return cls(f"{name} must be positive, got: {value}")


class SchedulingError(ValueError):
    """Raised when the collection schedule cannot be built."""

    @classmethod
    def invalid_cron(cls, expression: str, reason: str) -> typ.Self:
        """Build an error for a malformed cron expression."""
        return cls(f"invalid cron expression {expression!r}: {reason}")

    @classmethod
    def unknown_timezone(cls, name: str) -> typ.Self:
        """Build an error for a time zone name missing from the tz database."""
        return cls(f"unknown time zone {name!r}")
