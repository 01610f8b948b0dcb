"""Which cached tools a successful mutation makes stale.

Kept as data so new tools are added here, not in cache logic.
"""

from __future__ import annotations

from types import MappingProxyType

_ALERT_READS = ("list_alerts", "get_alert", "suggest_alert")
_DASHBOARD_READS = ("list_dashboards", "get_dashboard")

MUTATION_INVALIDATIONS: MappingProxyType[str, tuple[str, ...]] = MappingProxyType({
    # Alerts
    "create_alert": _ALERT_READS,
    "update_alert": _ALERT_READS,
    "delete_alert": _ALERT_READS,
    # Dashboards
    "create_dashboard": _DASHBOARD_READS,
    "update_dashboard": _DASHBOARD_READS,
    "delete_dashboard": _DASHBOARD_READS,
    # Policies
    "create_policy": ("list_policies",),
    "update_policy": ("list_policies",),
    "delete_policy": ("list_policies",),
    # Outgoing webhooks
    "create_outgoing_webhook": ("list_outgoing_webhooks",),
    "update_outgoing_webhook": ("list_outgoing_webhooks",),
    "delete_outgoing_webhook": ("list_outgoing_webhooks",),
    # Events to metrics
    "create_e2m": ("list_e2m",),
    "update_e2m": ("list_e2m",),
    "delete_e2m": ("list_e2m",),
    # Streams (no update endpoint)
    "create_stream": ("list_streams",),
    "delete_stream": ("list_streams",),
    # Views
    "create_view": ("list_views",),
    "update_view": ("list_views",),
    "delete_view": ("list_views",),
    # Data access rules
    "create_data_access_rule": ("list_data_access_rules",),
    "update_data_access_rule": ("list_data_access_rules",),
    "delete_data_access_rule": ("list_data_access_rules",),
    # Ingestion changes what queries return
    "ingest_logs": ("query_logs", "health_check"),
})


def invalidated_by(mutation_tool: str) -> tuple[str, ...]:
    """Tools to purge after `mutation_tool` succeeds; empty for read-only tools."""
    return MUTATION_INVALIDATIONS.get(mutation_tool, ())
