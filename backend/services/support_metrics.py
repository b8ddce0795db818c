"""Headline support metrics for one tenant."""

from datetime import datetime
from typing import Optional

from services.business_calendar import parse_jira_datetime

CRITICAL_PRIORITY = "Highest"
CLOSED_STATUS = "Closed"
TOP_ISSUES_LIMIT = 4

OPEN_ISSUE_FIELDS = ["summary", "status", "priority", "created", "updated"]


def age_label(created: Optional[str], now: datetime) -> str:
    """Age of an issue as "<N>d" when at least a day old, otherwise "<N>t" (hours)."""
    created_at = parse_jira_datetime(created)
    if not created_at:
        return "0t"

    diff_hours = max(0, int((now - created_at).total_seconds() // 3600))
    diff_days = diff_hours // 24
    if diff_days > 0:
        return f"{diff_days}d"
    return f"{diff_hours}t"


def calculate_metrics(issues: list, open_count: int, closed_today: int,
                      new_today: int, now: datetime) -> dict:
    """Build the metrics snapshot from the recent open issue batch and exact counts.

    Args:
        issues: Most recent open issues (newest first), at most one page
        open_count: Exact number of open issues
        closed_today: Exact number of issues resolved today
        new_today: Exact number of issues created today
        now: Aware current time used for age labels
    """
    critical = 0
    top_issues = []

    for issue in issues:
        fields = issue.get("fields") or {}
        priority = (fields.get("priority") or {}).get("name")
        if priority == CRITICAL_PRIORITY:
            critical += 1

        status = (fields.get("status") or {}).get("name", "")
        if status != CLOSED_STATUS and len(top_issues) < TOP_ISSUES_LIMIT:
            top_issues.append({
                "key": issue.get("key"),
                "title": fields.get("summary", ""),
                "status": status,
                "age": age_label(fields.get("created"), now)
            })

    return {
        "openIssues": open_count,
        "newToday": new_today,
        "closedToday": closed_today,
        "criticalP1": critical,
        "topIssues": top_issues
    }
