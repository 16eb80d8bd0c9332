"""
Request-scoped dependencies shared by every router.

current_owner  — owner id from the X-User-Id header (authentication
                 happens upstream of this service)
resolve_today  — optional `today` query override, otherwise the
                 configured zone's local day after the cut-over grace
"""
from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import Header, Query

from habitcore.core.config import settings
from habitcore.utils.timezone import local_today


def current_owner(
    x_user_id: str = Header(
        ...,
        min_length=1,
        max_length=64,
        description="Opaque owner identifier set by the gateway.",
    ),
) -> str:
    return x_user_id.strip()


def resolve_today(
    today: Optional[date] = Query(
        default=None,
        description=(
            "Evaluate as if this were the caller's current day. "
            "Defaults to the local day in DEFAULT_TIMEZONE."
        ),
        examples=["2026-03-02"],
    ),
) -> date:
    if today is not None:
        return today
    return local_today(settings.DEFAULT_TIMEZONE, settings.DAY_CUTOVER_GRACE_HOURS)
