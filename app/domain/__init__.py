"""
app/domain package marker.
"""

from app.domain.errors import (
    InvalidPeriodError,
    NarratorError,
    PersistenceError,
    ProviderError,
    RateLimitExceededError,
    RequiredSourceError,
    UnknownPlanningMetricError,
)
from app.domain.metrics import (
    AccountMetrics,
    AnalysisContext,
    CampaignMetrics,
    ChannelData,
    DailyMetrics,
    Period,
    PeriodSnapshot,
    RetentionSummary,
    SkuExtras,
    SkuMetrics,
    WebAnalyticsSummary,
)

__all__ = [
    "AccountMetrics",
    "AnalysisContext",
    "CampaignMetrics",
    "ChannelData",
    "DailyMetrics",
    "InvalidPeriodError",
    "NarratorError",
    "Period",
    "PeriodSnapshot",
    "PersistenceError",
    "ProviderError",
    "RateLimitExceededError",
    "RequiredSourceError",
    "RetentionSummary",
    "SkuExtras",
    "SkuMetrics",
    "UnknownPlanningMetricError",
    "WebAnalyticsSummary",
]
