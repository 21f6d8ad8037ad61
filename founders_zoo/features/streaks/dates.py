"""
Calendar-day keys for streak math, plus timestamp helpers.

Days are compared as UTC-midnight instants so day differences never drift
across DST boundaries.
"""

from __future__ import annotations

import time
from datetime import datetime, timedelta, timezone
from typing import Optional

DAY = timedelta(days=1)


def _to_int(part: str) -> Optional[int]:
    text = part.strip()
    if not (text.isascii() and text.isdigit()):
        return None
    return int(text)


def parse_day(date_str: object) -> Optional[datetime]:
    """
    Parse ``YYYY-MM-DD`` into the UTC-midnight instant of that day.

    Validation is structural only: month in 1..12 and day in 1..31. A day
    past the end of its month rolls into the next month (``2024-04-31`` is
    the same instant as ``2024-05-01``). Returns None for anything else.
    """
    if not isinstance(date_str, str):
        return None
    parts = date_str.split("-")
    if len(parts) != 3:
        return None
    year, month, day = (_to_int(part) for part in parts)
    if year is None or month is None or day is None:
        return None
    if not 1 <= month <= 12 or not 1 <= day <= 31:
        return None
    try:
        return datetime(year, month, 1, tzinfo=timezone.utc) + (day - 1) * DAY
    except (ValueError, OverflowError):
        return None


def day_diff(newer: datetime, older: datetime) -> float:
    """Number of days between two canonical days (fractional if not midnight-aligned)."""
    return (newer - older) / DAY


def epoch_ms(moment: Optional[datetime] = None) -> int:
    if moment is None:
        return int(time.time() * 1000)
    return int(moment.timestamp() * 1000)


def format_local_timestamp(moment: Optional[datetime] = None) -> str:
    """
    Render ``YYYY-MM-DDTHH:MM:SS.mmm+HH:MM`` in the moment's own offset.

    Naive datetimes are taken as local time.
    """
    if moment is None:
        moment = datetime.now().astimezone()
    elif moment.tzinfo is None:
        moment = moment.astimezone()
    offset = moment.utcoffset() or timedelta(0)
    offset_minutes = int(offset.total_seconds() // 60)
    sign = "+" if offset_minutes >= 0 else "-"
    hours, minutes = divmod(abs(offset_minutes), 60)
    return (
        f"{moment.year:04d}-{moment.month:02d}-{moment.day:02d}"
        f"T{moment.hour:02d}:{moment.minute:02d}:{moment.second:02d}"
        f".{moment.microsecond // 1000:03d}{sign}{hours:02d}:{minutes:02d}"
    )
