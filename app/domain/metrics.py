"""
app/domain/metrics.py

Canonical metric records shared by the alert detector, the cognitive engine
and the persistence sink.

Every record is frozen. Ratios (ROAS, CPA, CTR) are derived from raw totals
at construction time through the ``build`` classmethods and never accepted
from providers directly.
"""

from __future__ import annotations

import calendar
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from kpi.ratios import compute_cpa, compute_ctr, compute_roas, round2
from kpi.status import STATUS_MAINTAIN, Status, classify_status

DEFAULT_MARGIN_PCT: float = 30.0
DEFAULT_STOCK: float = 0.0


@dataclass(frozen=True)
class AccountMetrics:
    """
    Account-level ad totals for one period.
    """

    spend: float
    impressions: float
    clicks: float
    conversions: float
    revenue: float
    roas: float
    cpa: float
    ctr: float

    @classmethod
    def build(
        cls,
        *,
        spend: float = 0.0,
        impressions: float = 0.0,
        clicks: float = 0.0,
        conversions: float = 0.0,
        revenue: float = 0.0,
    ) -> "AccountMetrics":
        return cls(
            spend=round2(spend),
            impressions=impressions,
            clicks=clicks,
            conversions=conversions,
            revenue=round2(revenue),
            roas=compute_roas(revenue, spend),
            cpa=compute_cpa(spend, conversions),
            ctr=compute_ctr(clicks, impressions),
        )

    @classmethod
    def empty(cls) -> "AccountMetrics":
        return cls.build()


@dataclass(frozen=True)
class SkuMetrics:
    """
    Per-SKU ad performance merged with catalog extras.
    """

    sku: str
    name: str
    revenue: float
    spend: float
    roas: float
    cpa: float
    impressions: float
    clicks: float
    conversions: float
    margin_pct: float = DEFAULT_MARGIN_PCT
    stock: float = DEFAULT_STOCK
    status: Status = STATUS_MAINTAIN

    @classmethod
    def build(
        cls,
        *,
        sku: str,
        name: str | None = None,
        revenue: float = 0.0,
        spend: float = 0.0,
        impressions: float = 0.0,
        clicks: float = 0.0,
        conversions: float = 0.0,
        margin_pct: float = DEFAULT_MARGIN_PCT,
        stock: float = DEFAULT_STOCK,
    ) -> "SkuMetrics":
        roas = compute_roas(revenue, spend)
        cpa = compute_cpa(spend, conversions)
        return cls(
            sku=sku,
            name=name or sku,
            revenue=round2(revenue),
            spend=round2(spend),
            roas=roas,
            cpa=cpa,
            impressions=impressions,
            clicks=clicks,
            conversions=conversions,
            margin_pct=margin_pct,
            stock=stock,
            status=classify_status(roas, cpa, margin_pct, stock, conversions),
        )


@dataclass(frozen=True)
class CampaignMetrics:
    """
    Per-campaign ad performance.
    """

    campaign_id: str
    name: str
    channel_type: str
    status: str
    spend: float
    revenue: float
    roas: float
    cpa: float
    conversions: float
    impressions: float
    clicks: float

    @classmethod
    def build(
        cls,
        *,
        campaign_id: str,
        name: str | None = None,
        channel_type: str = "UNKNOWN",
        status: str = "ENABLED",
        spend: float = 0.0,
        revenue: float = 0.0,
        conversions: float = 0.0,
        impressions: float = 0.0,
        clicks: float = 0.0,
    ) -> "CampaignMetrics":
        return cls(
            campaign_id=campaign_id,
            name=name or campaign_id,
            channel_type=channel_type,
            status=status,
            spend=round2(spend),
            revenue=round2(revenue),
            roas=compute_roas(revenue, spend),
            cpa=compute_cpa(spend, conversions),
            conversions=conversions,
            impressions=impressions,
            clicks=clicks,
        )


@dataclass(frozen=True)
class DailyMetrics:
    """
    One day of account totals inside the current period.
    """

    day: date
    spend: float
    revenue: float
    conversions: float
    clicks: float = 0.0
    impressions: float = 0.0


@dataclass(frozen=True)
class ChannelData:
    """
    Sessions and conversions for one acquisition channel.
    """

    channel: str
    sessions: float
    users: float = 0.0
    conversions: float = 0.0
    revenue: float = 0.0


@dataclass(frozen=True)
class WebAnalyticsSummary:
    """
    Site-level web-analytics totals for one period.

    ``bounce_rate`` is a 0..1 fraction; ``cart_abandonment_rate`` is a
    0..100 percentage, matching the provider's reporting units.
    """

    sessions: float
    users: float
    purchases: float
    purchase_revenue: float
    bounce_rate: float = 0.0
    cart_abandonment_rate: float = 0.0

    @property
    def conversion_rate(self) -> float:
        """Purchases per session as a 0..1 fraction."""
        return self.purchases / self.sessions if self.sessions > 0 else 0.0

    @property
    def avg_order_value(self) -> float:
        return self.purchase_revenue / self.purchases if self.purchases > 0 else 0.0


@dataclass(frozen=True)
class RetentionSummary:
    """
    Cohort retention totals. ``return_rate`` is a percentage.
    """

    total_users: float
    new_users: float
    returning_users: float
    return_rate: float
    purchases: float = 0.0
    purchasers: float = 0.0
    revenue: float = 0.0
    avg_order_value: float = 0.0
    repurchase_estimate: float = 0.0


@dataclass(frozen=True)
class SkuExtras:
    """
    Catalog data kept outside the ad platform.
    """

    name: str | None = None
    margin_pct: float = DEFAULT_MARGIN_PCT
    stock: float = DEFAULT_STOCK
    cost_of_goods: float | None = None
    category: str | None = None


@dataclass(frozen=True)
class PeriodSnapshot:
    """
    Account, campaign and SKU metrics for a single date window.

    ``account`` is ``None`` when the provider returned nothing for the
    window, which is distinct from an all-zero account.
    """

    account: AccountMetrics | None = None
    campaigns: tuple[CampaignMetrics, ...] = ()
    skus: tuple[SkuMetrics, ...] = ()


@dataclass(frozen=True)
class Period:
    """
    Inclusive date window plus the month-pacing metadata derived from it.
    """

    start: date
    end: date

    @property
    def days(self) -> int:
        return (self.end - self.start).days + 1

    @property
    def day_of_month(self) -> int:
        return self.end.day

    @property
    def days_in_month(self) -> int:
        return calendar.monthrange(self.end.year, self.end.month)[1]

    def as_dict(self) -> dict[str, Any]:
        return {
            "start": self.start.isoformat(),
            "end": self.end.isoformat(),
            "days": self.days,
        }


PlanningMetrics = dict[str, float]


@dataclass(frozen=True)
class AnalysisContext:
    """
    Everything the cognitive engine reads for one tenant and period.
    """

    tenant_id: str
    period: Period
    account: AccountMetrics | None
    skus: tuple[SkuMetrics, ...] = ()
    campaigns: tuple[CampaignMetrics, ...] = ()
    web: WebAnalyticsSummary | None = None
    channels: tuple[ChannelData, ...] = ()
    retention: RetentionSummary | None = None
    planning: PlanningMetrics = field(default_factory=dict)
    previous: PeriodSnapshot = field(default_factory=PeriodSnapshot)
    daily_series: tuple[DailyMetrics, ...] = ()
