"""Service lifecycle: settings, scheduling and the control loop."""

from __future__ import annotations

from .errors import SchedulingError, SettingsError
from .plane import SIGNAL_COMMANDS, ControlCommand, ControlPlane, HttpTransport
from .scheduler import COLLECTION_JOB_ID, build_scheduler, build_trigger, resolve_timezone
from .settings import (
    DEFAULT_BIND,
    DEFAULT_CONFIG_PATH,
    DEFAULT_CRON,
    DEFAULT_DRAIN_TIMEOUT_S,
    ServiceSettings,
    parse_bind,
)

__all__ = [
    "COLLECTION_JOB_ID",
    "DEFAULT_BIND",
    "DEFAULT_CONFIG_PATH",
    "DEFAULT_CRON",
    "DEFAULT_DRAIN_TIMEOUT_S",
    "SIGNAL_COMMANDS",
    "ControlCommand",
    "ControlPlane",
    "HttpTransport",
    "SchedulingError",
    "ServiceSettings",
    "SettingsError",
    "build_scheduler",
    "build_trigger",
    "parse_bind",
    "resolve_timezone",
]
