from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo
from typing import Optional


@dataclass(frozen=True)
class TimeWindows:
    """Half-open [start, end) boundaries shared by every dashboard aggregation."""

    today_start: datetime
    today_end: datetime
    week_start: datetime
    week_end: datetime

    @property
    def yesterday_start(self) -> datetime:
        return self.today_start - timedelta(days=1)


def _start_of_day(ts: datetime) -> datetime:
    return ts.replace(hour=0, minute=0, second=0, microsecond=0)


# PUBLIC_INTERFACE
def compute_windows(now: datetime, tz: Optional[tzinfo] = None) -> TimeWindows:
    """
    Derive today/this-week boundaries from `now`.

    - today runs midnight to midnight in `tz` (defaults to now's own tzinfo)
    - the week starts on Sunday: today_start shifted back by the weekday index (Sunday=0)
    - week_end is week_start + 7 days
    """
    local_now = now.astimezone(tz) if tz is not None else now
    today_start = _start_of_day(local_now)
    today_end = today_start + timedelta(days=1)

    weekday_index = (today_start.weekday() + 1) % 7
    week_start = today_start - timedelta(days=weekday_index)
    week_end = week_start + timedelta(days=7)

    return TimeWindows(
        today_start=today_start,
        today_end=today_end,
        week_start=week_start,
        week_end=week_end,
    )
