"""
app/providers/factory.py

Default collaborator wiring for a running process.
"""

from __future__ import annotations

import logging

from app.config import MetricsGatewaySettings, get_metrics_gateway_settings
from app.providers.base import Backends
from app.providers.http_gateway import (
    GatewayAdsProvider,
    GatewaySkuReferenceStore,
    GatewayWebAnalyticsProvider,
    MetricsGatewayClient,
)
from app.providers.memory import (
    InMemoryAdsProvider,
    InMemoryInsightSink,
    InMemoryPlanningStore,
    InMemorySkuReferenceStore,
    InMemoryWebAnalyticsProvider,
)
from app.stores.ttl_cache import TTLCache
from db.config import database_configured

logger = logging.getLogger(__name__)


def build_default_backends(
    gateway_settings: MetricsGatewaySettings | None = None,
    response_cache: TTLCache | None = None,
) -> tuple[Backends, bool]:
    """
    Return ``(backends, uses_database)``.

    Metrics come from the gateway when ``METRICS_GATEWAY_URL`` is set;
    planning and persistence use PostgreSQL when a database URL is set.
    Either side falls back to the in-memory implementations otherwise.
    """
    gateway_settings = gateway_settings or get_metrics_gateway_settings()

    if gateway_settings.base_url:
        client = MetricsGatewayClient(settings=gateway_settings, cache=response_cache)
        ads = GatewayAdsProvider(client)
        web = GatewayWebAnalyticsProvider(client)
        sku_store = GatewaySkuReferenceStore(client)
    else:
        logger.warning("METRICS_GATEWAY_URL is not set; metric providers are in-memory and empty")
        ads = InMemoryAdsProvider()
        web = InMemoryWebAnalyticsProvider()
        sku_store = InMemorySkuReferenceStore()

    uses_database = database_configured()
    if uses_database:
        from app.providers.sql import SqlInsightSink, SqlPlanningStore

        planning_store = SqlPlanningStore()
        sink = SqlInsightSink()
    else:
        logger.warning("No database URL configured; planning and insight history are in-memory")
        planning_store = InMemoryPlanningStore()
        sink = InMemoryInsightSink()

    backends = Backends(
        ads=ads,
        web=web,
        sku_store=sku_store,
        planning_store=planning_store,
        sink=sink,
    )
    return backends, uses_database
