"""Jira dashboard API endpoints."""

from flask import Blueprint, current_app, jsonify

bp = Blueprint("jira", __name__, url_prefix="/api/jira")


def get_service():
    """The DashboardService attached by the app factory."""
    return current_app.extensions["dashboard_service"]


@bp.route("/support", methods=["GET"])
def get_support():
    """Get support metrics for both products.

    Returns per product:
        - openIssues, newToday, closedToday, criticalP1, topIssues
        - trendData (weeks + currentWeek)
        - timeToFirstResponse and its change
        - slaCompliance (HallMonitor) or averageLifetime (SwitchPay) and its change
    """
    return jsonify({"data": get_service().get_support_issues()})


@bp.route("/support/<tenant>/trend", methods=["GET"])
def get_trend(tenant):
    """Get the cached 8 week + current week trend for one product."""
    service = get_service()
    if tenant not in service.configs:
        return jsonify({"error": f"Unknown product: {tenant}"}), 404

    return jsonify({"data": service.get_trend_data(tenant)})


@bp.route("/orders-pipeline", methods=["GET"])
def get_orders_pipeline():
    """Get number of orders per workflow stage for both products."""
    return jsonify({"data": get_service().get_orders_pipeline()})


@bp.route("/sla-summary", methods=["GET"])
def get_sla_summary():
    """Get SLA traffic light status for open HallMonitor issues."""
    return jsonify({"data": get_service().get_sla_summary()})
