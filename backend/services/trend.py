"""Created/resolved/open trend for the last 8 weeks plus the current week.

The current week is reported per day (Monday through today), the 8 whole
weeks before it per week. Open counts are not queried per period: the live
open count anchors the newest day and every older period is derived from it
with a backward running balance:

    open[i] = open[i + 1] - created[i + 1] + resolved[i + 1]
"""

import logging
from datetime import datetime, timedelta

from services.business_calendar import BusinessCalendar, jql_timestamp
from services.jira_client import JiraSearchClient

logger = logging.getLogger(__name__)

WEEKS_BACK = 8
DAY_LABELS = ["Man", "Tir", "Ons", "Tor", "Fre", "Lør", "Søn"]


def apply_running_balance(points: list, live_open: int) -> list:
    """Fill "open" on chronologically ordered points, newest anchored to live_open."""
    if not points:
        return points

    running_open = live_open
    points[-1]["open"] = running_open
    for i in range(len(points) - 1, 0, -1):
        running_open = running_open - points[i]["created"] + points[i]["resolved"]
        points[i - 1]["open"] = running_open
    return points


def open_issues_jql(project_key: str) -> str:
    return f"project = {project_key} AND statusCategory != Done"


def created_between_jql(project_key: str, start: datetime, end: datetime) -> str:
    return (f'project = {project_key} AND created >= "{jql_timestamp(start)}" '
            f'AND created < "{jql_timestamp(end)}"')


def resolved_between_jql(project_key: str, start: datetime, end: datetime) -> str:
    return (f'project = {project_key} AND statusCategory = Done '
            f'AND resolutiondate >= "{jql_timestamp(start)}" '
            f'AND resolutiondate < "{jql_timestamp(end)}"')


class TrendAggregator:
    """Builds the 9-period trend series for one tenant."""

    def __init__(self, client: JiraSearchClient, calendar: BusinessCalendar):
        self.client = client
        self.calendar = calendar
        self.project_key = client.config.support_project_key

    def periods(self, now: datetime) -> tuple:
        """Local period boundaries as (weeks, days), each a list of (start, end, point)."""
        today = self.calendar.to_local(now).date()
        monday = today - timedelta(days=today.weekday())

        days = []
        current = monday
        while current <= today:
            start = self.calendar.day_start(current)
            end = self.calendar.day_start(current + timedelta(days=1))
            days.append((start, end, {
                "date": current.isoformat(),
                "dayLabel": DAY_LABELS[current.weekday()],
            }))
            current += timedelta(days=1)

        weeks = []
        for week_offset in range(WEEKS_BACK, 0, -1):
            week_start = monday - timedelta(days=7 * week_offset)
            start = self.calendar.day_start(week_start)
            end = self.calendar.day_start(week_start + timedelta(days=7))
            weeks.append((start, end, {
                "weekLabel": f"Uge {week_start.isocalendar()[1]}",
                "weekStart": week_start.isoformat(),
            }))

        return weeks, days

    def _count_period(self, start: datetime, end: datetime, point: dict) -> dict:
        point = dict(point)
        point["created"] = self.client.count_issues(
            created_between_jql(self.project_key, start, end))
        point["resolved"] = self.client.count_issues(
            resolved_between_jql(self.project_key, start, end))
        point["open"] = 0
        return point

    def build(self, now: datetime) -> dict:
        """Query every period and return {"weeks": [...], "currentWeek": [...]}.

        Raises TransientFetchError if any count fails; a partial series is
        never returned.
        """
        weeks, days = self.periods(now)

        week_points = [self._count_period(*period) for period in weeks]
        day_points = [self._count_period(*period) for period in days]

        live_open = self.client.count_issues(open_issues_jql(self.project_key))
        apply_running_balance(week_points + day_points, live_open)

        logger.info(
            f"{self.client.config.name}: trend built with {len(week_points)} weeks, "
            f"{len(day_points)} days, {live_open} open"
        )
        return {"weeks": week_points, "currentWeek": day_points, "mock": False}
