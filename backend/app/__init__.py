"""Flask application factory."""

import logging
import os
from flask import Flask
from flask_cors import CORS

from services.dashboard_service import DashboardService
from services.tenant_config import load_tenant_configs
from services.trend_cache import TrendCache


def configure_logging():
    """Configure root logging from LOG_LEVEL (default INFO)."""
    level = os.environ.get("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )


def create_app(service=None):
    """Create and configure the Flask application.

    Args:
        service: Optional DashboardService; built from the environment if omitted
    """
    configure_logging()
    app = Flask(__name__)

    # Enable CORS for the dashboard frontend
    CORS(app, resources={
        r"/api/*": {
            "origins": os.environ.get(
                "DASHBOARD_ORIGINS", "http://localhost:5173,http://127.0.0.1:5173"
            ).split(","),
            "methods": ["GET", "OPTIONS"]
        }
    })

    if service is None:
        configs = load_tenant_configs()
        service = DashboardService(configs, TrendCache())
        app.logger.info(
            f"Configured tenants: {', '.join(c.name for c in configs.values())}"
        )
    app.extensions["dashboard_service"] = service

    # Register blueprints
    from app.api import jira
    app.register_blueprint(jira.bp)

    # Health check endpoint
    @app.route("/health")
    def health():
        return {"status": "ok"}

    return app
