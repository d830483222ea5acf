"""Cron-driven scheduling of collection triggers.

The scheduler only enqueues work: its job callable is expected to hand a
trigger to the control plane and return, so a slow collection never holds
up the scheduler and overlapping firings are resolved by the orchestrator's
busy check.
"""

from __future__ import annotations

import typing as typ
import zoneinfo

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from .errors import SchedulingError

if typ.TYPE_CHECKING:
    import collections.abc as cabc

COLLECTION_JOB_ID = "collection-trigger"


def resolve_timezone(name: str | None) -> zoneinfo.ZoneInfo | None:
    """Return the named zone, or ``None`` for the host's local zone.

    Raises
    ------
    SchedulingError
        If ``name`` is not present in the tz database.

    """
    if name is None:
        return None
    try:
        return zoneinfo.ZoneInfo(name)
    except (zoneinfo.ZoneInfoNotFoundError, ValueError) as exc:
        raise SchedulingError.unknown_timezone(name) from exc


def build_trigger(expression: str, timezone: str | None = None) -> CronTrigger:
    """Parse a five-field crontab expression in ``timezone``.

    Raises
    ------
    SchedulingError
        If the expression or the zone is invalid.

    """
    zone = resolve_timezone(timezone)
    try:
        return CronTrigger.from_crontab(expression, timezone=zone)
    except ValueError as exc:
        raise SchedulingError.invalid_cron(expression, str(exc)) from exc


def build_scheduler(
    expression: str,
    job: cabc.Callable[[], cabc.Awaitable[None]],
    *,
    timezone: str | None = None,
) -> AsyncIOScheduler:
    """Build an unstarted scheduler firing ``job`` on the cron schedule.

    Parameters
    ----------
    expression
        Five-field crontab expression, e.g. ``0 0 * * *``.
    job
        Coroutine function run on each firing.
    timezone
        IANA zone name; ``None`` uses the local zone.

    Returns
    -------
    AsyncIOScheduler
        Scheduler to be started from within the running event loop.

    Raises
    ------
    SchedulingError
        If the expression or the zone is invalid.

    """
    trigger = build_trigger(expression, timezone)
    zone = resolve_timezone(timezone)
    scheduler = AsyncIOScheduler(timezone=zone) if zone is not None else AsyncIOScheduler()
    scheduler.add_job(
        job,
        trigger,
        id=COLLECTION_JOB_ID,
        max_instances=1,
        coalesce=True,
    )
    return scheduler
