"""
app/providers/base.py

Collaborator contracts consumed by the intelligence service.

Metric providers return raw provider payloads (plain dicts and lists); the
normalizer turns them into domain records. A provider signals failure by
raising :class:`~app.domain.errors.ProviderError`, never by returning a
partial payload.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Any, Mapping, Sequence

from app.domain.metrics import AccountMetrics, Period, SkuMetrics
from intelligence.types import Insight

RawRow = Mapping[str, Any]


class AdsMetricsProvider(ABC):
    """
    Ad-platform totals. Every method may be called a second time with the
    comparison window and must return the same shape.
    """

    @abstractmethod
    async def account_totals(self, tenant_id: str, period: Period) -> RawRow | None:
        """Account totals, or ``None`` when the platform has no data."""

    @abstractmethod
    async def all_sku_metrics(self, tenant_id: str, period: Period) -> Sequence[RawRow]:
        """One row per advertised SKU."""

    @abstractmethod
    async def all_campaign_metrics(self, tenant_id: str, period: Period) -> Sequence[RawRow]:
        """One row per campaign."""

    @abstractmethod
    async def daily_series(self, tenant_id: str, period: Period) -> Sequence[RawRow]:
        """One row per day inside *period*."""


class WebAnalyticsProvider(ABC):
    @abstractmethod
    async def summary(self, tenant_id: str, period: Period) -> RawRow | None:
        """Site totals (sessions, purchases, bounce and cart abandonment)."""

    @abstractmethod
    async def channel_acquisition(self, tenant_id: str, period: Period) -> Sequence[RawRow]:
        """Sessions and conversions per default channel group."""

    @abstractmethod
    async def cohort_retention(self, tenant_id: str, period: Period) -> RawRow | None:
        """New vs returning users and purchaser totals."""

    @abstractmethod
    async def funnel_steps(self, tenant_id: str, period: Period) -> Sequence[RawRow]:
        """Ordered ``{"step", "count"}`` rows from session to purchase."""


class SkuReferenceStore(ABC):
    @abstractmethod
    async def load_sku_extras(self, tenant_id: str) -> Mapping[str, RawRow]:
        """``{sku: {name, margin_pct, stock, cost_of_goods, category}}``."""


class PlanningStore(ABC):
    @abstractmethod
    async def load_month(
        self, tenant_id: str, year: int, month: int, plan_type: str = "target"
    ) -> dict[str, float]:
        """Stored metric values for one month; empty when nothing is planned."""

    @abstractmethod
    async def load_year(self, tenant_id: str, year: int, plan_type: str = "target") -> dict[int, dict[str, float]]:
        """Stored values keyed by month number; months without data are omitted."""

    @abstractmethod
    async def save_month(
        self,
        tenant_id: str,
        year: int,
        month: int,
        values: Mapping[str, float],
        *,
        plan_type: str = "target",
        source: str = "manual",
    ) -> None:
        """Upsert *values*; metrics not named are left untouched."""


class InsightSink(ABC):
    """
    Write side used by background persistence. Implementations raise
    :class:`~app.domain.errors.PersistenceError` on failure.
    """

    @abstractmethod
    async def append_insights(self, tenant_id: str, period: Period, insights: Sequence[Insight]) -> int:
        """Store *insights*; returns the number written."""

    @abstractmethod
    async def append_daily_snapshot(
        self,
        tenant_id: str,
        day: date,
        account: AccountMetrics,
        skus: Sequence[SkuMetrics],
    ) -> int:
        """Upsert one snapshot row per scope for *day*; returns rows written."""

    @abstractmethod
    async def log_action(
        self,
        tenant_id: str,
        action: str,
        *,
        entity_type: str | None = None,
        entity_id: str | None = None,
        payload: Mapping[str, Any] | None = None,
    ) -> None:
        """Append one audit row."""


@dataclass(frozen=True)
class Backends:
    """
    The collaborator set one application instance talks to.
    """

    ads: AdsMetricsProvider
    web: WebAnalyticsProvider
    sku_store: SkuReferenceStore
    planning_store: PlanningStore
    sink: InsightSink
