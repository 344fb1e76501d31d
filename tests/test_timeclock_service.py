"""Timeclock formatting and week boundaries."""

from datetime import datetime

import pytest

from hub.models import db
from hub.models.timeclock import TimeclockEntry
from hub.services import timeclock_service


@pytest.mark.parametrize("minutes,expected", [
    (0, "0 minutes"),
    (45, "45 minutes"),
    (60, "1 hour"),
    (125, "2 hours 5 minutes"),
    (61, "1 hour 1 minute"),
    (1440, "1 day"),
    (1501, "1 day 1 hour 1 minute"),
    (2 * 1440 + 30, "2 days 30 minutes"),
])
def test_format_long(minutes, expected):
    assert timeclock_service.format_long(minutes) == expected


@pytest.mark.parametrize("minutes,expected", [
    (0, "0m"),
    (59, "59m"),
    (120, "2h"),
    (90, "1h 30m"),
    (1440 + 60, "1d 1h"),
    (1440 + 5, "1d 5m"),
])
def test_format_short(minutes, expected):
    assert timeclock_service.format_short(minutes) == expected


def test_week_bounds_start_monday():
    start, end = timeclock_service.week_bounds(datetime(2026, 10, 18, 23, 0))   # Sunday
    assert start == datetime(2026, 10, 12)
    assert end == datetime(2026, 10, 19)


def test_department_totals_sorted(client, make_user, auth_headers):
    user = make_user(discord_id="321")
    for dept, minutes in (("lspd", 30), ("bcso", 200), ("lspd", 45), (None, 5)):
        db.session.add(TimeclockEntry(
            identifier="321", department=dept or "", minutes=minutes, timestamp=datetime(2026, 10, 1),
        ))
    db.session.commit()

    body = client.get("/api/timeclock", headers=auth_headers(user)).get_json()
    assert body["totalEntries"] == 4
    assert [d["department"] for d in body["departments"]] == ["bcso", "lspd", "Unknown Department"]
    assert body["departments"][1]["formattedTime"] == "1 hour 15 minutes"
