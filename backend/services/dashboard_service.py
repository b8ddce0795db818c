"""Jira dashboard aggregation for HallMonitor and SwitchPay.

Every public method returns a structurally complete object, even when Jira is
unreachable: failed steps are replaced by synthetic values and listed under
"degraded", tenants without credentials get fully synthetic ("mock") data.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from datetime import datetime, timedelta
from typing import Callable, Optional

import pytz

from services.business_calendar import BusinessCalendar
from services.errors import ConfigurationMissing, FetchResult, capture
from services.jira_client import BATCH_TIMEOUT, JiraSearchClient
from services.mock_data import (
    mock_orders_data, mock_sla_summary, mock_support_data,
    mock_support_value, mock_trend_series
)
from services.orders_pipeline import build_orders_pipeline
from services.sla_analyzer import (
    RESOLVED_ISSUE_FIELDS, WINDOW_DAYS, average_lifetime_stats,
    response_time_stats, sla_compliance_stats
)
from services.sla_summary import build_sla_summary
from services.support_metrics import OPEN_ISSUE_FIELDS, calculate_metrics
from services.tenant_config import SLA_COMPLIANCE, TenantConfig
from services.trend import (
    TrendAggregator, created_between_jql, open_issues_jql, resolved_between_jql
)
from services.trend_cache import TrendCache

logger = logging.getLogger(__name__)

OPEN_BATCH_SIZE = 100
SLA_SUMMARY_TENANT = "hallmonitor"


def _utc_now() -> datetime:
    return datetime.now(pytz.UTC)


class DashboardService:
    """Per-request aggregation over both tenants.

    The trend cache is the only state kept between requests; each tenant
    reads and writes only its own slot.
    """

    def __init__(self, configs: dict, trend_cache: Optional[TrendCache] = None,
                 clock: Callable[[], datetime] = _utc_now,
                 client_factory: Callable[[TenantConfig], JiraSearchClient] = JiraSearchClient):
        self.configs = configs
        self.trend_cache = trend_cache if trend_cache is not None else TrendCache()
        self.clock = clock
        self.client_factory = client_factory

    def _for_each_tenant(self, func) -> dict:
        """Run func(config) for both tenants concurrently."""
        results = {}
        with ThreadPoolExecutor(max_workers=len(self.configs) or 1) as executor:
            futures = {executor.submit(func, config): key for key, config in self.configs.items()}
            for future in as_completed(futures):
                results[futures[future]] = future.result()
        return results

    def _client(self, config: TenantConfig, *required_fields) -> JiraSearchClient:
        """Create a client after checking credentials and field mappings.

        Raises ConfigurationMissing before any network call.
        """
        config.require_credentials()
        for attribute in required_fields:
            config.require_field(attribute)
        return self.client_factory(config)

    @staticmethod
    def _service_fields(config: TenantConfig) -> tuple:
        if config.service_metric == SLA_COMPLIANCE:
            return ("response_time_field_id", "sla_field_id")
        return ("response_time_field_id",)

    # Support metrics

    def get_support_issues(self) -> dict:
        """Support metrics for both tenants, keyed by tenant key."""
        return self._for_each_tenant(self.get_product_support_data)

    def get_product_support_data(self, config: TenantConfig) -> dict:
        calendar = BusinessCalendar(config.timezone)
        now = calendar.to_local(self.clock())

        try:
            client = self._client(config, *self._service_fields(config))
        except ConfigurationMissing as e:
            logger.warning(f"{e} - using mock data")
            return mock_support_data(config.key, now)

        try:
            return self._live_support_data(config, client, calendar, now)
        except Exception:
            logger.exception(f"{config.name}: support metrics failed - using mock data")
            return mock_support_data(config.key, now)

    def _live_support_data(self, config: TenantConfig, client: JiraSearchClient,
                           calendar: BusinessCalendar, now: datetime) -> dict:
        project = config.support_project_key
        today = now.date()
        day_start = calendar.day_start(today)
        day_end = calendar.day_start(today + timedelta(days=1))

        resolved_fields = list(RESOLVED_ISSUE_FIELDS) + [
            getattr(config, attribute) for attribute in self._service_fields(config)
        ]
        resolved_jql = (f"{resolved_between_jql(project, now - timedelta(days=WINDOW_DAYS), now)} "
                        f"ORDER BY resolutiondate DESC")

        steps = {
            "openIssues": (client.count_issues, open_issues_jql(project)),
            "openBatch": (client.fetch_issues,
                          f"{open_issues_jql(project)} ORDER BY created DESC",
                          OPEN_ISSUE_FIELDS, OPEN_BATCH_SIZE),
            "closedToday": (client.count_issues, resolved_between_jql(project, day_start, day_end)),
            "newToday": (client.count_issues, created_between_jql(project, day_start, day_end)),
            "resolvedBatch": (client.fetch_all_issues, resolved_jql, resolved_fields, BATCH_TIMEOUT),
        }

        results = {}
        with ThreadPoolExecutor(max_workers=len(steps) + 1) as executor:
            trend_future = executor.submit(self._cached_trend, config, client, calendar, now)
            futures = {
                executor.submit(capture, func, *args): name
                for name, (func, *args) in steps.items()
            }
            for future in as_completed(futures):
                results[futures[future]] = future.result()
            trend_data = trend_future.result()

        return self._merge(config, calendar, now, results, trend_data)

    def _merge(self, config: TenantConfig, calendar: BusinessCalendar, now: datetime,
               results: dict, trend_data: dict) -> dict:
        """Combine step results, substituting synthetic values for failed steps."""
        degraded = []

        def pick(name: str, result: FetchResult, default):
            if result.ok:
                return result.value
            degraded.append(name)
            return default

        open_count = pick("openIssues", results["openIssues"],
                          mock_support_value(config.key, "openIssues"))
        closed_today = pick("closedToday", results["closedToday"],
                            mock_support_value(config.key, "closedToday"))
        new_today = pick("newToday", results["newToday"],
                         mock_support_value(config.key, "newToday"))
        open_batch = pick("topIssues", results["openBatch"], None)

        data = calculate_metrics(open_batch or [], open_count, closed_today, new_today, now)
        if open_batch is None:
            data["criticalP1"] = mock_support_value(config.key, "criticalP1")
            data["topIssues"] = mock_support_value(config.key, "topIssues")

        data["trendData"] = trend_data

        resolved = results["resolvedBatch"]
        if resolved.ok:
            data.update(self._service_metrics(config, calendar, now, resolved.value))
        else:
            service_keys = ["timeToFirstResponse", "timeToFirstResponseChange"]
            if config.service_metric == SLA_COMPLIANCE:
                service_keys += ["slaCompliance", "slaComplianceChange"]
            else:
                service_keys += ["averageLifetime", "averageLifetimeChange"]
            for key in service_keys:
                data[key] = mock_support_value(config.key, key)
            degraded.append("serviceMetrics")

        if degraded:
            logger.warning(f"{config.name}: serving fallback values for {', '.join(degraded)}")
        data["degraded"] = degraded
        data["mock"] = False
        return data

    @staticmethod
    def _service_metrics(config: TenantConfig, calendar: BusinessCalendar,
                         now: datetime, resolved_issues: list) -> dict:
        response = response_time_stats(resolved_issues, config.response_time_field_id, now)
        metrics = {
            "timeToFirstResponse": calendar.format_duration(response["value"]),
            "timeToFirstResponseChange": response["change"],
        }

        if config.service_metric == SLA_COMPLIANCE:
            compliance = sla_compliance_stats(
                resolved_issues, config.sla_field_id, config.sla_cutover, now)
            metrics["slaCompliance"] = compliance["value"]
            metrics["slaComplianceChange"] = compliance["change"]
        else:
            lifetime = average_lifetime_stats(resolved_issues, calendar, now)
            metrics["averageLifetime"] = calendar.format_duration(lifetime["value"])
            metrics["averageLifetimeChange"] = lifetime["change"]

        return metrics

    # Trend

    def _cached_trend(self, config: TenantConfig, client: JiraSearchClient,
                      calendar: BusinessCalendar, now: datetime) -> dict:
        aggregator = TrendAggregator(client, calendar)
        return self.trend_cache.get_or_refresh(
            config.key,
            lambda: capture(aggregator.build, now),
            now.date(),
            lambda: mock_trend_series(now)
        )

    def get_trend_data(self, tenant_key: str) -> dict:
        """Trend series for one tenant (cached once per day).

        Raises KeyError for an unknown tenant.
        """
        config = self.configs[tenant_key]
        calendar = BusinessCalendar(config.timezone)
        now = calendar.to_local(self.clock())

        try:
            client = self._client(config)
        except ConfigurationMissing as e:
            logger.warning(f"{e} - using mock trend")
            return mock_trend_series(now)

        try:
            return self._cached_trend(config, client, calendar, now)
        except Exception:
            logger.exception(f"{config.name}: trend failed - using mock trend")
            return mock_trend_series(now)

    # Orders and SLA summary

    def get_orders_pipeline(self) -> dict:
        """Orders per workflow stage for both tenants."""
        return self._for_each_tenant(self._product_orders_data)

    def _product_orders_data(self, config: TenantConfig) -> dict:
        now = BusinessCalendar(config.timezone).to_local(self.clock())
        try:
            client = self._client(config)
        except ConfigurationMissing as e:
            logger.warning(f"{e} - using mock orders data")
            return mock_orders_data(config.key)

        try:
            result = capture(build_orders_pipeline, client, now)
        except Exception:
            logger.exception(f"{config.name}: orders pipeline failed - using mock data")
            return mock_orders_data(config.key)
        return result.value_or(mock_orders_data(config.key))

    def get_sla_summary(self) -> dict:
        """Open-issue SLA traffic light for HallMonitor."""
        config = self.configs[SLA_SUMMARY_TENANT]
        now = BusinessCalendar(config.timezone).to_local(self.clock())
        try:
            client = self._client(config, "sla_field_id", "sla_type_field_id")
        except ConfigurationMissing as e:
            logger.warning(f"{e} - using mock SLA summary")
            return mock_sla_summary(now)

        try:
            return build_sla_summary(client, now)
        except Exception:
            logger.exception(f"{config.name}: SLA summary failed - using mock data")
            return mock_sla_summary(now)
