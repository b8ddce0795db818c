"""Service-level metrics over issues resolved in the last 30 days.

Each metric is returned as {"value": ..., "change": ...}. The change compares
issues resolved in the last 15 days ("recent") against the 15 days before
("previous") and is only reported when both halves have data. Empty input
yields None for both, never 0.
"""

import logging
import statistics
from datetime import datetime, timedelta
from typing import Optional

from services.business_calendar import BusinessCalendar, parse_jira_datetime
from services.errors import PartialDataError

logger = logging.getLogger(__name__)

WINDOW_DAYS = 30
RECENT_DAYS = 15

RESOLVED_ISSUE_FIELDS = ["key", "created", "resolutiondate"]


def _empty() -> dict:
    return {"value": None, "change": None}


def percent_change(recent: Optional[float], previous: Optional[float]) -> Optional[int]:
    """Relative change of recent vs previous in percent, rounded."""
    if recent is None or previous is None or previous == 0:
        return None
    return round((recent - previous) / previous * 100)


def resolved_at(issue: dict) -> datetime:
    resolved = parse_jira_datetime((issue.get("fields") or {}).get("resolutiondate"))
    if not resolved:
        raise PartialDataError(f"{issue.get('key')}: missing resolutiondate")
    return resolved


def created_at(issue: dict) -> datetime:
    created = parse_jira_datetime((issue.get("fields") or {}).get("created"))
    if not created:
        raise PartialDataError(f"{issue.get('key')}: missing created")
    return created


def completed_cycles(issue: dict, field_id: str) -> list:
    """Completed cycles of a Jira Service Management SLA field."""
    sla_field = (issue.get("fields") or {}).get(field_id)
    if not isinstance(sla_field, dict):
        raise PartialDataError(f"{issue.get('key')}: missing SLA field {field_id}")
    cycles = sla_field.get("completedCycles") or []
    if not cycles:
        raise PartialDataError(f"{issue.get('key')}: no completed cycle in {field_id}")
    return cycles


def first_response_ms(issue: dict, field_id: str) -> int:
    """Elapsed time of the first completed response cycle."""
    elapsed = (completed_cycles(issue, field_id)[0].get("elapsedTime") or {}).get("millis")
    if elapsed is None:
        raise PartialDataError(f"{issue.get('key')}: response cycle has no elapsed time")
    return int(elapsed)


def key_number(issue: dict) -> int:
    """Numeric suffix of an issue key ("HS-1234" -> 1234)."""
    key = issue.get("key") or ""
    _, _, number = key.rpartition("-")
    if not number.isdigit():
        raise PartialDataError(f"Issue key {key!r} has no numeric suffix")
    return int(number)


def is_recent(resolved: datetime, now: datetime) -> bool:
    return resolved >= now - timedelta(days=RECENT_DAYS)


def _split_samples(issues: list, now: datetime, extract) -> list:
    """Apply extract to every issue, tagging each value with its recent flag.

    Issues missing data are skipped.
    """
    samples = []
    for issue in issues:
        try:
            value = extract(issue)
            recent = is_recent(resolved_at(issue), now)
        except PartialDataError as e:
            logger.debug(f"Skipping issue: {e}")
            continue
        samples.append((value, recent))
    return samples


def _trended(samples: list, aggregate) -> dict:
    if not samples:
        return _empty()

    recent = [value for value, is_new in samples if is_new]
    previous = [value for value, is_new in samples if not is_new]

    change = None
    if recent and previous:
        change = percent_change(aggregate(recent), aggregate(previous))

    return {"value": aggregate([value for value, _ in samples]), "change": change}


def response_time_stats(issues: list, field_id: str, now: datetime) -> dict:
    """Median time to first response (milliseconds) with recent/previous change."""
    samples = _split_samples(issues, now, lambda issue: first_response_ms(issue, field_id))
    return _trended(samples, statistics.median)


def average_lifetime_stats(issues: list, calendar: BusinessCalendar, now: datetime) -> dict:
    """Mean business time from creation to resolution (milliseconds)."""
    def lifetime(issue):
        return calendar.elapsed_ms(created_at(issue), resolved_at(issue))

    samples = _split_samples(issues, now, lifetime)
    return _trended(samples, statistics.mean)


def _compliance(breaches: list) -> Optional[int]:
    if not breaches:
        return None
    within = sum(1 for breached in breaches if not breached)
    return round(within / len(breaches) * 100)


def sla_compliance_stats(issues: list, field_id: str, cutover: int, now: datetime) -> dict:
    """Percentage of resolved issues whose resolution SLA was not breached.

    Only issues numbered at or above the cutover are considered; older issues
    predate SLA tracking. The change is in percentage points.
    """
    def breached(issue):
        if key_number(issue) < cutover:
            raise PartialDataError(f"{issue.get('key')}: before SLA cutover")
        return bool(completed_cycles(issue, field_id)[-1].get("breached"))

    samples = _split_samples(issues, now, breached)
    if not samples:
        return _empty()

    recent = _compliance([b for b, is_new in samples if is_new])
    previous = _compliance([b for b, is_new in samples if not is_new])
    change = recent - previous if recent is not None and previous is not None else None

    return {"value": _compliance([b for b, _ in samples]), "change": change}
