"""Shared fixtures for dashboard backend tests."""

import os
import sys

import pytest
import pytz
from datetime import datetime

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from services.tenant_config import (
    AVERAGE_LIFETIME, SLA_COMPLIANCE, TenantConfig
)

CPH = pytz.timezone("Europe/Copenhagen")


def local(year, month, day, hour=0, minute=0):
    """Aware Copenhagen datetime."""
    return CPH.localize(datetime(year, month, day, hour, minute))


def make_page(keys, next_token=None):
    """Search page with the given issue keys."""
    return {"issues": [{"key": key} for key in keys], "nextPageToken": next_token}


def sla_field(elapsed_ms=None, breached=False, ongoing=None):
    """Jira Service Management SLA field value."""
    field = {"completedCycles": [], "ongoingCycle": ongoing}
    if elapsed_ms is not None:
        field["completedCycles"].append({
            "breached": breached,
            "elapsedTime": {"millis": elapsed_ms},
            "goalDuration": {"millis": 8 * 60 * 60 * 1000}
        })
    return field


def resolved_issue(key, created, resolved, **custom_fields):
    fields = {"created": created, "resolutiondate": resolved}
    fields.update(custom_fields)
    return {"key": key, "fields": fields}


@pytest.fixture
def hallmonitor_config():
    """HallMonitor tenant with credentials."""
    return TenantConfig(
        key="hallmonitor",
        name="HallMonitor",
        base_url="https://hm.atlassian.net",
        email="test@example.com",
        api_token="test-token-123",
        support_project_key="HS",
        orders_project_key="HO",
        response_time_field_id="customfield_10061",
        sla_field_id="customfield_10062",
        sla_type_field_id="customfield_10070",
        sla_cutover=1000,
        service_metric=SLA_COMPLIANCE,
        order_stages=("Jobliste", "I gang", "Klar til fakturering", "Færdig"),
    )


@pytest.fixture
def switchpay_config():
    """SwitchPay tenant with credentials."""
    return TenantConfig(
        key="switchpay",
        name="SwitchPay",
        base_url="https://sp.atlassian.net",
        email="test@example.com",
        api_token="test-token-456",
        support_project_key="SUP",
        orders_project_key="ORDERS",
        response_time_field_id="customfield_10061",
        service_metric=AVERAGE_LIFETIME,
        order_stages=("Modtaget", "I process", "Leveret", "I gang", "Færdig"),
    )


@pytest.fixture
def unconfigured_config():
    """SwitchPay tenant without credentials."""
    return TenantConfig(
        key="switchpay",
        name="SwitchPay",
        base_url=None,
        email=None,
        api_token=None,
        support_project_key="SUP",
        orders_project_key="ORDERS",
    )


@pytest.fixture
def now():
    """Wednesday 2024-03-13 12:00 Copenhagen."""
    return local(2024, 3, 13, 12, 0)


@pytest.fixture
def sample_open_issues():
    """Open issues newest first, as returned by the display batch query."""
    return [
        {
            "key": "HS-1240",
            "fields": {
                "summary": "Camera offline",
                "status": {"name": "In Progress"},
                "priority": {"name": "Highest"},
                "created": "2024-03-13T09:00:00.000+0100"
            }
        },
        {
            "key": "HS-1239",
            "fields": {
                "summary": "Old ticket closed by workflow",
                "status": {"name": "Closed"},
                "priority": {"name": "Medium"},
                "created": "2024-03-12T10:00:00.000+0100"
            }
        },
        {
            "key": "HS-1238",
            "fields": {
                "summary": "No detections",
                "status": {"name": "To Do"},
                "priority": {"name": "Highest"},
                "created": "2024-03-11T08:00:00.000+0100"
            }
        },
        {
            "key": "HS-1237",
            "fields": {
                "summary": "Billing issue",
                "status": {"name": "Waiting"},
                "priority": None,
                "created": "2024-03-01T08:00:00.000+0100"
            }
        },
        {
            "key": "HS-1236",
            "fields": {
                "summary": "False alarms",
                "status": {"name": "In Progress"},
                "priority": {"name": "High"},
                "created": "2024-02-20T08:00:00.000+0100"
            }
        },
        {
            "key": "HS-1235",
            "fields": {
                "summary": "Fifth open issue",
                "status": {"name": "To Do"},
                "priority": {"name": "Low"},
                "created": "2024-02-19T08:00:00.000+0100"
            }
        }
    ]


@pytest.fixture
def dashboard_service(hallmonitor_config, switchpay_config):
    """Stand-in DashboardService for endpoint tests."""
    from unittest.mock import Mock
    from services.dashboard_service import DashboardService

    service = Mock(spec=DashboardService)
    service.configs = {"hallmonitor": hallmonitor_config, "switchpay": switchpay_config}
    return service


@pytest.fixture
def app(dashboard_service):
    """Create Flask test app."""
    from app import create_app
    app = create_app(service=dashboard_service)
    app.config['TESTING'] = True
    return app


@pytest.fixture
def client(app):
    """Create Flask test client."""
    return app.test_client()
