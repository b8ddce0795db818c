"""Business-hours calendar used by every duration metric.

Only weekday time inside the daily support window (09:00-15:00 local) counts,
so "1 business day" is the window length (6 hours).
"""

from datetime import date, datetime, time, timedelta
from typing import Optional

import pytz

WORK_START_HOUR = 9
WORK_END_HOUR = 15

MISSING_VALUE = "–"
HOUR_MS = 60 * 60 * 1000

# Jira formats: "2024-10-31T12:11:56.289-0400" or "2024-10-31T12:11:56.289+0000"
_JIRA_DATE_FORMATS = [
    "%Y-%m-%dT%H:%M:%S.%f%z",
    "%Y-%m-%dT%H:%M:%S%z",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d",
]


def parse_jira_datetime(date_str: Optional[str]) -> Optional[datetime]:
    """Parse a Jira timestamp into an aware datetime (naive values are UTC)."""
    if not date_str:
        return None

    # Python < 3.11 does not accept the "Z" suffix with %z
    if date_str.endswith("Z"):
        date_str = date_str[:-1] + "+0000"

    for fmt in _JIRA_DATE_FORMATS:
        try:
            parsed = datetime.strptime(date_str, fmt)
        except ValueError:
            continue
        if parsed.tzinfo is None:
            parsed = pytz.UTC.localize(parsed)
        return parsed

    return None


def jql_timestamp(moment: datetime) -> str:
    """Render an instant in the "YYYY-MM-DD HH:MM" UTC form used in JQL filters."""
    return moment.astimezone(pytz.UTC).strftime("%Y-%m-%d %H:%M")


class BusinessCalendar:
    """Weekday working window in a fixed timezone."""

    def __init__(self, timezone: str = "Europe/Copenhagen",
                 start_hour: int = WORK_START_HOUR, end_hour: int = WORK_END_HOUR):
        if not 0 <= start_hour < end_hour <= 24:
            raise ValueError(f"Invalid working window {start_hour}-{end_hour}")
        self.tz = pytz.timezone(timezone)
        self.start_hour = start_hour
        self.end_hour = end_hour

    @property
    def window_ms(self) -> int:
        """Length of one business day in milliseconds."""
        return (self.end_hour - self.start_hour) * HOUR_MS

    def to_local(self, moment: datetime) -> datetime:
        """Convert to the calendar timezone; naive datetimes are taken as local time."""
        if moment.tzinfo is None:
            return self.tz.localize(moment)
        return moment.astimezone(self.tz)

    def local_datetime(self, day: date, hour: int = 0, minute: int = 0) -> datetime:
        """Aware local datetime for a wall-clock time on a given day."""
        if hour == 24:
            return self.tz.localize(datetime.combine(day + timedelta(days=1), time(0, minute)))
        return self.tz.localize(datetime.combine(day, time(hour, minute)))

    def day_start(self, day: date) -> datetime:
        """Local midnight at the start of a calendar day."""
        return self.local_datetime(day)

    @staticmethod
    def is_business_day(day: date) -> bool:
        return day.weekday() < 5  # Monday = 0, Friday = 4

    def elapsed_ms(self, start: datetime, end: datetime) -> int:
        """Business time between two instants, in milliseconds.

        Walks day by day from start's date to end's date and adds the overlap
        between [start, end] and each weekday's working window.
        """
        start = self.to_local(start)
        end = self.to_local(end)
        if end <= start:
            return 0

        total = timedelta(0)
        current = start.date()
        last = end.date()

        while current <= last:
            if self.is_business_day(current):
                window_start = self.local_datetime(current, self.start_hour)
                window_end = self.local_datetime(current, self.end_hour)

                overlap_start = max(start, window_start)
                overlap_end = min(end, window_end)
                if overlap_start < overlap_end:
                    total += overlap_end - overlap_start

            current += timedelta(days=1)

        return int(total.total_seconds() * 1000)

    def format_duration(self, milliseconds: Optional[float]) -> str:
        """Human readable business duration, e.g. "2t 34m" or "1d 3t"."""
        if milliseconds is None:
            return MISSING_VALUE

        milliseconds = max(0, milliseconds)
        hours = int(milliseconds // HOUR_MS)
        minutes = int((milliseconds % HOUR_MS) // (1000 * 60))
        days = int(milliseconds // self.window_ms)
        remaining_hours = int((milliseconds % self.window_ms) // HOUR_MS)

        if days > 0:
            return f"{days}d {remaining_hours}t" if remaining_hours > 0 else f"{days}d"
        if hours > 0:
            return f"{hours}t {minutes}m" if minutes > 0 else f"{hours}t"
        return f"{minutes}m"
