"""Synthetic fallback data.

Served when a tenant has no credentials or upstream is unavailable, so the
dashboard layout never breaks. Every top-level object carries "mock": True.
"""

import copy
from datetime import datetime, timedelta

from services.trend import DAY_LABELS, WEEKS_BACK, apply_running_balance

_SUPPORT_DEFAULTS = {
    "hallmonitor": {
        "openIssues": 42,
        "newToday": 6,
        "closedToday": 11,
        "criticalP1": 3,
        "topIssues": [
            {"key": "HS-1234", "title": "Camera offline", "status": "In Progress", "age": "2t"},
            {"key": "HS-1220", "title": "No detections", "status": "To Do", "age": "5t"},
            {"key": "HS-1210", "title": "Billing issue", "status": "Waiting", "age": "1d"},
            {"key": "HS-1201", "title": "False alarms", "status": "In Progress", "age": "3d"},
        ],
        "timeToFirstResponse": "2t 15m",
        "timeToFirstResponseChange": None,
        "slaCompliance": 94,
        "slaComplianceChange": None,
    },
    "switchpay": {
        "openIssues": 18,
        "newToday": 3,
        "closedToday": 7,
        "criticalP1": 1,
        "topIssues": [
            {"key": "SUP-998", "title": "Terminal down", "status": "In Progress", "age": "1t"},
            {"key": "SUP-977", "title": "Batch error", "status": "To Do", "age": "4t"},
            {"key": "SUP-960", "title": "Settlement delayed", "status": "Waiting", "age": "12t"},
            {"key": "SUP-951", "title": "Config request", "status": "To Do", "age": "1d"},
        ],
        "timeToFirstResponse": "1t 45m",
        "timeToFirstResponseChange": None,
        "averageLifetime": "1d 3t",
        "averageLifetimeChange": None,
    },
}

_ORDER_STAGE_DEFAULTS = {
    "hallmonitor": [
        {"label": "Jobliste", "value": 12},
        {"label": "I gang", "value": 7},
        {"label": "Klar til fakturering", "value": 4},
        {"label": "Færdig", "value": 25},
    ],
    "switchpay": [
        {"label": "Modtaget", "value": 8},
        {"label": "I process", "value": 5},
        {"label": "Leveret", "value": 3},
        {"label": "I gang", "value": 2},
        {"label": "Færdig", "value": 11},
    ],
}

_WEEK_COUNTS = [(34, 31), (41, 38), (29, 33), (45, 40), (38, 36), (27, 30), (36, 35), (40, 37)]
_DAY_COUNTS = [(8, 6), (6, 7), (9, 5), (5, 8), (7, 7), (1, 0), (0, 1)]


def mock_trend_series(now: datetime, live_open: int = 112) -> dict:
    """Deterministic trend series with real labels for the current date."""
    today = now.date()
    monday = today - timedelta(days=today.weekday())

    weeks = []
    for i, week_offset in enumerate(range(WEEKS_BACK, 0, -1)):
        week_start = monday - timedelta(days=7 * week_offset)
        created, resolved = _WEEK_COUNTS[i]
        weeks.append({
            "weekLabel": f"Uge {week_start.isocalendar()[1]}",
            "weekStart": week_start.isoformat(),
            "created": created,
            "resolved": resolved,
            "open": 0
        })

    current_week = []
    for offset in range(today.weekday() + 1):
        day = monday + timedelta(days=offset)
        created, resolved = _DAY_COUNTS[offset]
        current_week.append({
            "date": day.isoformat(),
            "dayLabel": DAY_LABELS[day.weekday()],
            "created": created,
            "resolved": resolved,
            "open": 0
        })

    apply_running_balance(weeks + current_week, live_open)
    return {"weeks": weeks, "currentWeek": current_week, "mock": True}


def mock_support_data(tenant_key: str, now: datetime) -> dict:
    """Complete synthetic support object for one tenant."""
    data = copy.deepcopy(_SUPPORT_DEFAULTS[tenant_key])
    data["trendData"] = mock_trend_series(now)
    data["degraded"] = []
    data["mock"] = True
    return data


def mock_support_value(tenant_key: str, field: str):
    """Synthetic default for a single support metric field."""
    return copy.deepcopy(_SUPPORT_DEFAULTS[tenant_key].get(field))


def mock_orders_data(tenant_key: str) -> dict:
    return {
        "stages": [dict(stage) for stage in _ORDER_STAGE_DEFAULTS[tenant_key]],
        "mock": True
    }


def mock_sla_summary(now: datetime) -> dict:
    return {
        "enhed": {"status": "green", "count": 5, "breached": 0, "warning": 0, "criticalIssues": []},
        "backend": {"status": "green", "count": 3, "breached": 0, "warning": 0, "criticalIssues": []},
        "lastUpdated": now.isoformat(),
        "mock": True
    }
