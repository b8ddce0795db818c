"""Tests for response time, SLA compliance and lifetime metrics."""

import pytest

from conftest import resolved_issue, sla_field
from services.business_calendar import BusinessCalendar
from services.errors import PartialDataError
from services.sla_analyzer import (
    average_lifetime_stats, key_number, percent_change,
    response_time_stats, sla_compliance_stats
)

HOUR = 60 * 60 * 1000
RESPONSE_FIELD = "customfield_10061"
SLA_FIELD = "customfield_10062"

RECENT = "2024-03-11T14:00:00.000+0100"
PREVIOUS = "2024-02-20T14:00:00.000+0100"


@pytest.fixture
def calendar():
    return BusinessCalendar("Europe/Copenhagen")


class TestResponseTime:
    """Test median time to first response."""

    def test_median_and_change(self, now):
        issues = [
            resolved_issue("HS-1", RECENT, RECENT, **{RESPONSE_FIELD: sla_field(1 * HOUR)}),
            resolved_issue("HS-2", RECENT, RECENT, **{RESPONSE_FIELD: sla_field(3 * HOUR)}),
            resolved_issue("HS-3", PREVIOUS, PREVIOUS, **{RESPONSE_FIELD: sla_field(4 * HOUR)}),
        ]
        stats = response_time_stats(issues, RESPONSE_FIELD, now)
        assert stats["value"] == 3 * HOUR
        assert stats["change"] == -50

    def test_no_change_without_previous_period(self, now):
        issues = [
            resolved_issue("HS-1", RECENT, RECENT, **{RESPONSE_FIELD: sla_field(1 * HOUR)}),
            resolved_issue("HS-2", RECENT, RECENT, **{RESPONSE_FIELD: sla_field(2 * HOUR)}),
        ]
        stats = response_time_stats(issues, RESPONSE_FIELD, now)
        assert stats["value"] == 1.5 * HOUR
        assert stats["change"] is None

    def test_skips_issues_without_completed_cycle(self, now):
        issues = [
            resolved_issue("HS-1", RECENT, RECENT, **{RESPONSE_FIELD: sla_field(2 * HOUR)}),
            resolved_issue("HS-2", RECENT, RECENT, **{RESPONSE_FIELD: sla_field()}),
            resolved_issue("HS-3", RECENT, RECENT),
            resolved_issue("HS-4", RECENT, None, **{RESPONSE_FIELD: sla_field(9 * HOUR)}),
        ]
        assert response_time_stats(issues, RESPONSE_FIELD, now)["value"] == 2 * HOUR

    def test_empty_input_is_none(self, now):
        assert response_time_stats([], RESPONSE_FIELD, now) == {"value": None, "change": None}


class TestSlaCompliance:
    """Test SLA compliance percentage."""

    def test_nine_of_ten_within_sla(self, now):
        issues = [
            resolved_issue(f"HS-{1001 + n}", RECENT, RECENT,
                           **{SLA_FIELD: sla_field(HOUR, breached=(n == 0))})
            for n in range(10)
        ]
        assert sla_compliance_stats(issues, SLA_FIELD, 1000, now)["value"] == 90

    def test_excludes_issues_before_cutover(self, now):
        issues = [
            resolved_issue("HS-999", RECENT, RECENT, **{SLA_FIELD: sla_field(HOUR, breached=True)}),
            resolved_issue("HS-1000", RECENT, RECENT, **{SLA_FIELD: sla_field(HOUR)}),
        ]
        assert sla_compliance_stats(issues, SLA_FIELD, 1000, now)["value"] == 100

    def test_skips_issues_without_completed_cycle(self, now):
        issues = [
            resolved_issue("HS-1001", RECENT, RECENT, **{SLA_FIELD: sla_field(HOUR, breached=True)}),
            resolved_issue("HS-1002", RECENT, RECENT, **{SLA_FIELD: sla_field()}),
        ]
        assert sla_compliance_stats(issues, SLA_FIELD, 1000, now)["value"] == 0

    def test_change_in_percentage_points(self, now):
        recent = [
            resolved_issue(f"HS-{1001 + n}", RECENT, RECENT,
                           **{SLA_FIELD: sla_field(HOUR, breached=(n == 0))})
            for n in range(6)
        ]
        previous = [
            resolved_issue(f"HS-{1101 + n}", PREVIOUS, PREVIOUS, **{SLA_FIELD: sla_field(HOUR)})
            for n in range(4)
        ]
        stats = sla_compliance_stats(recent + previous, SLA_FIELD, 1000, now)
        assert stats["value"] == 90
        assert stats["change"] == 83 - 100

    def test_no_qualifying_issues_is_none(self, now):
        issues = [resolved_issue("HS-5", RECENT, RECENT, **{SLA_FIELD: sla_field(HOUR)})]
        assert sla_compliance_stats(issues, SLA_FIELD, 1000, now) == {"value": None, "change": None}

    def test_empty_input_is_none(self, now):
        assert sla_compliance_stats([], SLA_FIELD, 1000, now)["value"] is None


class TestAverageLifetime:
    """Test mean business-time lifetime."""

    def test_mean_and_change(self, calendar, now):
        issues = [
            # Monday 09:00 -> 11:00: 2 business hours, recent
            resolved_issue("SUP-1", "2024-03-11T09:00:00.000+0100", "2024-03-11T11:00:00.000+0100"),
            # Monday 09:00 -> Tuesday 09:00: one 6 hour day, previous
            resolved_issue("SUP-2", "2024-02-12T09:00:00.000+0100", "2024-02-13T09:00:00.000+0100"),
        ]
        stats = average_lifetime_stats(issues, calendar, now)
        assert stats["value"] == 4 * HOUR
        assert stats["change"] == -67

    def test_skips_issues_missing_dates(self, calendar, now):
        issues = [
            resolved_issue("SUP-1", "2024-03-11T09:00:00.000+0100", "2024-03-11T10:00:00.000+0100"),
            resolved_issue("SUP-2", None, "2024-03-11T10:00:00.000+0100"),
        ]
        assert average_lifetime_stats(issues, calendar, now)["value"] == HOUR

    def test_empty_input_is_none(self, calendar, now):
        assert average_lifetime_stats([], calendar, now) == {"value": None, "change": None}


class TestHelpers:
    """Test analyzer helpers."""

    def test_percent_change(self):
        assert percent_change(150, 100) == 50
        assert percent_change(50, 100) == -50

    def test_percent_change_without_baseline(self):
        assert percent_change(10, 0) is None
        assert percent_change(None, 10) is None

    def test_key_number(self):
        assert key_number({"key": "HS-1234"}) == 1234

    def test_key_number_invalid(self):
        with pytest.raises(PartialDataError):
            key_number({"key": "HS"})
