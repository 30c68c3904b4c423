"""
Reference calendar.

Every calendar date in the system (credited log dates, "today", challenge
boundaries) is a date in one configured timezone. Timestamps are converted at
the boundary; the process's local timezone is never consulted.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import List, Optional, Union
from zoneinfo import ZoneInfo

from missionboard.core.config import settings


def reference_zone(name: Optional[str] = None) -> ZoneInfo:
    return ZoneInfo(name or settings.SCORING_TIMEZONE)


def to_reference_date(moment: datetime, zone: Optional[ZoneInfo] = None) -> date:
    """Calendar date of a timestamp in the reference zone (naive = UTC)."""
    aware = moment if moment.tzinfo else moment.replace(tzinfo=timezone.utc)
    return aware.astimezone(zone or reference_zone()).date()


def reference_today(now: Optional[datetime] = None, zone: Optional[ZoneInfo] = None) -> date:
    return to_reference_date(now or datetime.now(timezone.utc), zone)


def date_range(start: date, end: date) -> List[date]:
    """Every date from start to end inclusive; empty when start > end."""
    days = (end - start).days + 1
    return [start + timedelta(days=offset) for offset in range(max(0, days))]


def parse_calendar_date(value: Union[str, date, datetime]) -> date:
    if isinstance(value, datetime):
        return to_reference_date(value)
    if isinstance(value, date):
        return value
    text = value.strip()
    if "T" in text:
        return to_reference_date(datetime.fromisoformat(text.replace("Z", "+00:00")))
    return date.fromisoformat(text)
