"""Per-product Jira configuration.

Two tenants share the same aggregation logic:
- HallMonitor (Product A): reports SLA compliance
- SwitchPay (Product B): reports average issue lifetime
"""

import json
import logging
import os
from dataclasses import dataclass, field, replace
from typing import Optional

from services.errors import ConfigurationMissing

logger = logging.getLogger(__name__)

DEFAULT_TIMEZONE = "Europe/Copenhagen"

SLA_COMPLIANCE = "sla_compliance"
AVERAGE_LIFETIME = "average_lifetime"

CONFIG_PATH = os.path.join(
    os.path.dirname(__file__), "..", "config", "tenants-config.json"
)


@dataclass(frozen=True)
class TenantConfig:
    """Immutable connection and field-mapping settings for one product."""

    key: str
    name: str
    base_url: Optional[str]
    email: Optional[str]
    api_token: Optional[str]
    support_project_key: str
    orders_project_key: str
    response_time_field_id: Optional[str] = None
    sla_field_id: Optional[str] = None
    sla_type_field_id: Optional[str] = None
    sla_cutover: int = 0
    service_metric: str = AVERAGE_LIFETIME
    order_stages: tuple = field(default_factory=tuple)
    timezone: str = DEFAULT_TIMEZONE

    @property
    def has_credentials(self) -> bool:
        return bool(self.base_url and self.email and self.api_token)

    def require_credentials(self):
        """Raise ConfigurationMissing if the tenant cannot reach Jira."""
        if not self.has_credentials:
            raise ConfigurationMissing(f"{self.name}: Jira credentials missing")

    def require_field(self, attribute: str) -> str:
        """Return a mapped custom field ID or raise ConfigurationMissing."""
        value = getattr(self, attribute)
        if not value:
            raise ConfigurationMissing(f"{self.name}: {attribute} is not configured")
        return value


# Environment prefix, defaults and product policy per tenant
_TENANT_DEFAULTS = {
    "hallmonitor": {
        "prefix": "JIRA_HM_",
        "name": "HallMonitor",
        "support_project_key": "HS",
        "orders_project_key": "HO",
        "response_time_field_id": "customfield_10061",
        "sla_field_id": "customfield_10062",
        "sla_type_field_id": "customfield_10070",
        "sla_cutover": 1000,
        "service_metric": SLA_COMPLIANCE,
        "order_stages": ("Jobliste", "I gang", "Klar til fakturering", "Færdig"),
    },
    "switchpay": {
        "prefix": "JIRA_SP_",
        "name": "SwitchPay",
        "support_project_key": "SUP",
        "orders_project_key": "ORDERS",
        "response_time_field_id": "customfield_10061",
        "sla_field_id": None,
        "sla_type_field_id": None,
        "sla_cutover": 0,
        "service_metric": AVERAGE_LIFETIME,
        "order_stages": ("Modtaget", "I process", "Leveret", "I gang", "Færdig"),
    },
}


def _load_overrides(path: str) -> dict:
    """Load optional per-tenant overrides from the JSON config file."""
    if not os.path.exists(path):
        return {}
    try:
        with open(path, "r") as f:
            overrides = json.load(f)
        if not isinstance(overrides, dict):
            logger.warning(f"Ignoring tenant config {path}: expected an object per tenant key")
            return {}
        logger.info(f"Loaded tenant overrides for {sorted(overrides)}")
        return overrides
    except (json.JSONDecodeError, IOError) as e:
        logger.warning(f"Failed to load tenant config: {e}")
        return {}


def _parse_cutover(value, tenant_name: str) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        logger.warning(f"{tenant_name}: invalid SLA cutover {value!r}, using 0")
        return 0


def _build_tenant(key: str, environ, overrides: dict) -> TenantConfig:
    defaults = _TENANT_DEFAULTS[key]
    prefix = defaults["prefix"]

    def env(name, default=None):
        return environ.get(f"{prefix}{name}") or default

    config = TenantConfig(
        key=key,
        name=defaults["name"],
        base_url=(env("URL") or "").rstrip("/") or None,
        email=env("EMAIL"),
        api_token=env("API_TOKEN"),
        support_project_key=env("SUPPORT_PROJECT_KEY", defaults["support_project_key"]),
        orders_project_key=env("ORDERS_PROJECT_KEY", defaults["orders_project_key"]),
        response_time_field_id=env("RESPONSE_FIELD", defaults["response_time_field_id"]),
        sla_field_id=env("SLA_FIELD", defaults["sla_field_id"]),
        sla_type_field_id=env("SLA_TYPE_FIELD", defaults["sla_type_field_id"]),
        sla_cutover=_parse_cutover(env("SLA_CUTOVER", defaults["sla_cutover"]), defaults["name"]),
        service_metric=defaults["service_metric"],
        order_stages=defaults["order_stages"],
        timezone=environ.get("DASHBOARD_TIMEZONE") or DEFAULT_TIMEZONE,
    )

    tenant_overrides = overrides.get(key) or {}
    if not isinstance(tenant_overrides, dict):
        logger.warning(f"{config.name}: ignoring non-object overrides {tenant_overrides!r}")
        tenant_overrides = {}

    known = {k: v for k, v in tenant_overrides.items()
             if k in TenantConfig.__dataclass_fields__ and k != "key"}
    if "sla_cutover" in known:
        known["sla_cutover"] = _parse_cutover(known["sla_cutover"], config.name)
    if "order_stages" in known:
        if isinstance(known["order_stages"], list):
            known["order_stages"] = tuple(known["order_stages"])
        else:
            logger.warning(f"{config.name}: order_stages must be a list, keeping defaults")
            del known["order_stages"]
    if known:
        config = replace(config, **known)

    return config


def load_tenant_configs(environ=None, config_path: str = CONFIG_PATH) -> dict:
    """Build both tenant configs from the environment.

    Returns:
        Dict mapping tenant key ("hallmonitor", "switchpay") to TenantConfig
    """
    environ = os.environ if environ is None else environ
    overrides = _load_overrides(config_path)

    configs = {}
    for key in _TENANT_DEFAULTS:
        config = _build_tenant(key, environ, overrides)
        if not config.has_credentials:
            logger.info(f"{config.name}: no Jira credentials, mock data will be served")
        configs[key] = config
    return configs
