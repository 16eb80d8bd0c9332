"""
Local "today" resolution — the only place in the code base that reads a clock.

Routers call local_today() once per request and hand the resulting date to
the engine. The grace window is the explicit cut-over boundary: with
grace_hours=2, 01:30 local time still belongs to the previous day.
"""
from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from habitcore.core.errors import ConfigurationError


def resolve_zone(tz_name: str) -> ZoneInfo:
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ConfigurationError("timezone", f"unknown timezone {tz_name!r}") from exc


def local_today(
    tz_name: str = "UTC",
    grace_hours: int = 0,
    now: Optional[datetime] = None,
) -> date:
    """The user's current calendar day, shifted back by grace_hours."""
    now = now or datetime.now(tz=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    local = now.astimezone(resolve_zone(tz_name))
    return (local - timedelta(hours=grace_hours)).date()
