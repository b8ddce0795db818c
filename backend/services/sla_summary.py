"""Traffic-light SLA status for open HallMonitor issues.

Open issues are grouped by their "SLA Type" and classified from the ongoing
cycle of the resolution SLA field:
- paused: ignored
- breached (or no time left): red
- less than 20% of the SLA hours left: yellow
"""

import logging
from datetime import datetime
from typing import Optional

from services.errors import PartialDataError, capture
from services.jira_client import BATCH_TIMEOUT, JiraSearchClient

logger = logging.getLogger(__name__)

SLA_TYPES = {
    "enhed": ("Enhed (48 timer)", 48),
    "backend": ("Backend (24 timer)", 24),
}
WARNING_SHARE = 0.2


def _jql_field(field_id: str) -> str:
    """JQL reference for a custom field ("customfield_10070" -> "cf[10070]")."""
    if field_id.startswith("customfield_"):
        return f"cf[{field_id[len('customfield_'):]}]"
    return f'"{field_id}"'


def classify_issue(issue: dict, sla_field_id: str, warning_ms: float) -> Optional[dict]:
    """Return a critical-issue entry for breached/warning issues, None otherwise.

    Raises PartialDataError when the issue has no ongoing SLA cycle.
    """
    sla_field = (issue.get("fields") or {}).get(sla_field_id)
    cycle = sla_field.get("ongoingCycle") if isinstance(sla_field, dict) else None
    if not cycle:
        raise PartialDataError(f"{issue.get('key')}: no ongoing SLA cycle")

    remaining = (cycle.get("remainingTime") or {}).get("millis")
    if remaining is None:
        raise PartialDataError(f"{issue.get('key')}: SLA cycle has no remaining time")

    if cycle.get("breached") or remaining < 0:
        return {"key": issue.get("key"), "status": "breached", "timeRemainingMs": remaining}
    if remaining < warning_ms:
        return {"key": issue.get("key"), "status": "warning", "timeRemainingMs": remaining}
    return None


def summarize_issues(issues: list, sla_field_id: str, sla_hours: int) -> dict:
    warning_ms = sla_hours * WARNING_SHARE * 60 * 60 * 1000
    active = 0
    critical_issues = []

    for issue in issues:
        sla_field = (issue.get("fields") or {}).get(sla_field_id)
        cycle = sla_field.get("ongoingCycle") if isinstance(sla_field, dict) else None
        if cycle and cycle.get("paused"):
            continue

        active += 1
        try:
            entry = classify_issue(issue, sla_field_id, warning_ms)
        except PartialDataError as e:
            logger.debug(f"Skipping issue: {e}")
            continue
        if entry:
            critical_issues.append(entry)

    # Breached before warning, then most urgent first
    critical_issues.sort(key=lambda c: (c["status"] != "breached", c["timeRemainingMs"]))

    breached = sum(1 for c in critical_issues if c["status"] == "breached")
    warning = len(critical_issues) - breached

    if breached:
        status = "red"
    elif warning:
        status = "yellow"
    else:
        status = "green"

    return {
        "status": status,
        "count": active,
        "breached": breached,
        "warning": warning,
        "criticalIssues": critical_issues
    }


def fetch_sla_type(client: JiraSearchClient, sla_type: str, sla_hours: int) -> dict:
    config = client.config
    sla_field_id = config.require_field("sla_field_id")
    type_field_id = config.require_field("sla_type_field_id")

    jql = (f'project = {config.support_project_key} '
           f'AND {_jql_field(type_field_id)} = "{sla_type}" AND statusCategory != Done')
    issues = client.fetch_all_issues(jql, ["key", "summary", "status", sla_field_id],
                                     timeout=BATCH_TIMEOUT)
    return summarize_issues(issues, sla_field_id, sla_hours)


def build_sla_summary(client: JiraSearchClient, now: datetime) -> dict:
    """SLA status per SLA type; a failed type reports status "unknown"."""
    summary = {}
    for name, (sla_type, sla_hours) in SLA_TYPES.items():
        result = capture(fetch_sla_type, client, sla_type, sla_hours)
        summary[name] = result.value_or({
            "status": "unknown",
            "count": 0,
            "breached": 0,
            "warning": 0,
            "criticalIssues": [],
            "error": str(result.error)
        })

    summary["lastUpdated"] = now.isoformat()
    summary["mock"] = False
    return summary
