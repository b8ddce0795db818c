"""Fulfillment (orders) pipeline: number of orders in each workflow stage."""

from datetime import datetime, timedelta

from services.business_calendar import parse_jira_datetime
from services.jira_client import DEFAULT_TIMEOUT, JiraSearchClient

ORDER_FIELDS = ["key", "status", "resolutiondate", "updated"]

# The final stage only shows recently finished orders
DONE_STAGE = "Færdig"
DONE_WINDOW_DAYS = 7


def _finished_recently(issue: dict, since: datetime) -> bool:
    fields = issue.get("fields") or {}
    finished = parse_jira_datetime(fields.get("resolutiondate") or fields.get("updated"))
    return finished is not None and finished >= since


def count_stages(issues: list, stages, now: datetime) -> list:
    """Count unique order keys per stage, in the configured stage order."""
    since = now - timedelta(days=DONE_WINDOW_DAYS)
    counts = []

    for stage in stages:
        keys = set()
        for issue in issues:
            status = ((issue.get("fields") or {}).get("status") or {}).get("name")
            if status != stage or not issue.get("key"):
                continue
            if stage == DONE_STAGE and not _finished_recently(issue, since):
                continue
            keys.add(issue["key"])

        counts.append({"label": stage, "value": len(keys)})

    return counts


def build_orders_pipeline(client: JiraSearchClient, now: datetime) -> dict:
    """Fetch the whole orders project once and count it per stage locally.

    One paginated scan is far cheaper than a count query per stage.
    """
    config = client.config
    issues = client.fetch_all_issues(
        f"project = {config.orders_project_key}", ORDER_FIELDS, timeout=DEFAULT_TIMEOUT
    )
    return {"stages": count_stages(issues, config.order_stages, now), "mock": False}
