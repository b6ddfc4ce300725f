"""
app/providers package marker.
"""

from app.providers.base import (
    AdsMetricsProvider,
    Backends,
    InsightSink,
    PlanningStore,
    SkuReferenceStore,
    WebAnalyticsProvider,
)

__all__ = [
    "AdsMetricsProvider",
    "Backends",
    "InsightSink",
    "PlanningStore",
    "SkuReferenceStore",
    "WebAnalyticsProvider",
]
