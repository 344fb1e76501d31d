"""
Timeclock reads from the external ``timeclock`` bind.

The in-game timeclock writes one row per shift into ``timeclock_i``; the hub
only aggregates. Per member, the latest 100 rows are considered, matching
what the timeclock itself exposes.

Time formats:
    format_long(125)   → "2 hours 5 minutes"   (personal timeclock page)
    format_short(125)  → "2h 5m"               (roster columns)
"""

import logging
from collections import defaultdict
from datetime import datetime, timedelta, timezone

from flask import current_app

from hub.models.timeclock import TIMECLOCK_BIND, TimeclockEntry

logger = logging.getLogger(__name__)

ENTRY_LIMIT = 100
UNKNOWN_DEPARTMENT = "Unknown Department"


def is_available() -> bool:
    binds = current_app.config.get("SQLALCHEMY_BINDS") or {}
    return bool(binds.get(TIMECLOCK_BIND))


def week_bounds(now=None):
    """Monday 00:00 (inclusive) to the following Monday 00:00 (exclusive), naive UTC."""
    now = now or datetime.now(timezone.utc).replace(tzinfo=None)
    start = (now - timedelta(days=now.weekday())).replace(hour=0, minute=0, second=0, microsecond=0)
    return start, start + timedelta(days=7)


def recent_entries(discord_id, limit=ENTRY_LIMIT):
    return (
        TimeclockEntry.query
        .filter(TimeclockEntry.identifier == str(discord_id))
        .order_by(TimeclockEntry.timestamp.desc())
        .limit(limit)
        .all()
    )


def weekly_minutes(discord_id, department_key, now=None) -> int:
    start, end = week_bounds(now)
    return sum(
        int(entry.minutes or 0)
        for entry in recent_entries(discord_id)
        if entry.department == department_key and start <= entry.timestamp < end
    )


def department_totals(discord_id):
    """Per-department minute totals for one member, largest first."""
    entries = recent_entries(discord_id)
    totals = defaultdict(int)
    for entry in entries:
        totals[entry.department or UNKNOWN_DEPARTMENT] += int(entry.minutes or 0)

    departments = [
        {"department": name, "totalMinutes": minutes, "formattedTime": format_long(minutes)}
        for name, minutes in totals.items()
    ]
    departments.sort(key=lambda d: d["totalMinutes"], reverse=True)
    return {"departments": departments, "totalEntries": len(entries)}


def _plural(n, unit):
    return f"{n} {unit}{'' if n == 1 else 's'}"


def format_long(total_minutes: int) -> str:
    if total_minutes < 60:
        return f"{total_minutes} minutes"
    hours, minutes = divmod(total_minutes, 60)
    if hours < 24:
        if minutes == 0:
            return _plural(hours, "hour")
        return f"{_plural(hours, 'hour')} {_plural(minutes, 'minute')}"
    days, hours = divmod(hours, 24)
    parts = [_plural(days, "day")]
    if hours:
        parts.append(_plural(hours, "hour"))
    if minutes:
        parts.append(_plural(minutes, "minute"))
    return " ".join(parts)


def format_short(total_minutes: int) -> str:
    if total_minutes < 60:
        return f"{total_minutes}m"
    hours, minutes = divmod(total_minutes, 60)
    if hours < 24:
        return f"{hours}h {minutes}m" if minutes else f"{hours}h"
    days, hours = divmod(hours, 24)
    parts = [f"{days}d"]
    if hours:
        parts.append(f"{hours}h")
    if minutes:
        parts.append(f"{minutes}m")
    return " ".join(parts)
