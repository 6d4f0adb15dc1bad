"""
Lead Suite - Working day

A "working day" is the business date a lead, screenshot or switch belongs to.
Times are read in a fixed-offset local zone (+06:00 by default) and anything
before the cutover (10:00, including the whole 10:00 minute) counts for the
previous calendar day. DST is not modelled: the offset never changes.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Optional

import pytz

from config import WORKING_DAY_UTC_OFFSET_MINUTES, WORKING_DAY_CUTOVER_HOUR

WORKING_TZ = pytz.FixedOffset(WORKING_DAY_UTC_OFFSET_MINUTES)

RE_WORKING_DAY = re.compile(r"^\d{4}-\d{2}-\d{2}$")
RE_MONTH = re.compile(r"^\d{4}-\d{2}$")


def to_local(ts: Optional[datetime] = None) -> datetime:
    """Convert to the working-day zone. Naive datetimes are taken as UTC."""
    if ts is None:
        ts = datetime.now(timezone.utc)
    elif ts.tzinfo is None:
        ts = ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(WORKING_TZ)


def working_day(ts: Optional[datetime] = None) -> str:
    """
    Business day (YYYY-MM-DD) for a timestamp.

    >>> working_day(datetime.fromisoformat("2025-09-12T09:59:00+06:00"))
    '2025-09-11'
    >>> working_day(datetime.fromisoformat("2025-09-12T10:01:00+06:00"))
    '2025-09-12'
    """
    local = to_local(ts)
    before_cutover = local.hour < WORKING_DAY_CUTOVER_HOUR or (
        local.hour == WORKING_DAY_CUTOVER_HOUR and local.minute == 0
    )
    day = local.date()
    if before_cutover:
        day = day - timedelta(days=1)
    return day.strftime("%Y-%m-%d")


def working_month(ts: Optional[datetime] = None) -> str:
    """Local calendar month (YYYY-MM), no cutover."""
    return to_local(ts).strftime("%Y-%m")


def month_of_working_day(day: str) -> str:
    return day[:7]


def is_working_day_string(value) -> bool:
    return isinstance(value, str) and bool(RE_WORKING_DAY.match(value))


def is_month_string(value) -> bool:
    return isinstance(value, str) and bool(RE_MONTH.match(value))
