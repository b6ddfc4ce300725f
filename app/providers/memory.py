"""
app/providers/memory.py

In-process implementations of the collaborator contracts.

Used by the test-suite and for local runs without a metrics gateway or a
database. Provider data is keyed by ``(tenant_id, start, end)`` so the
current and comparison windows can hold different payloads. Naming a source
in ``failing`` makes the matching call raise :class:`ProviderError`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Mapping, Sequence

from app.domain.errors import ProviderError
from app.domain.metrics import AccountMetrics, Period, SkuMetrics
from app.providers.base import (
    AdsMetricsProvider,
    Backends,
    InsightSink,
    PlanningStore,
    RawRow,
    SkuReferenceStore,
    WebAnalyticsProvider,
)
from intelligence.types import Insight

WindowKey = tuple[str, date, date]


def window_key(tenant_id: str, period: Period) -> WindowKey:
    return (tenant_id, period.start, period.end)


@dataclass
class PeriodPayload:
    """
    Everything the in-memory providers return for one window.
    """

    account: RawRow | None = None
    skus: list[RawRow] = field(default_factory=list)
    campaigns: list[RawRow] = field(default_factory=list)
    daily: list[RawRow] = field(default_factory=list)
    web_summary: RawRow | None = None
    channels: list[RawRow] = field(default_factory=list)
    retention: RawRow | None = None
    funnel: list[RawRow] = field(default_factory=list)


class _FailureMixin:
    failing: set[str]

    def _check(self, source: str) -> None:
        if source in self.failing:
            raise ProviderError(source, "simulated provider failure")


class InMemoryAdsProvider(_FailureMixin, AdsMetricsProvider):
    def __init__(self, windows: dict[WindowKey, PeriodPayload] | None = None, failing: set[str] | None = None) -> None:
        self.windows = windows if windows is not None else {}
        self.failing = failing if failing is not None else set()

    def _payload(self, tenant_id: str, period: Period) -> PeriodPayload:
        return self.windows.get(window_key(tenant_id, period), PeriodPayload())

    async def account_totals(self, tenant_id: str, period: Period) -> RawRow | None:
        self._check("account")
        return self._payload(tenant_id, period).account

    async def all_sku_metrics(self, tenant_id: str, period: Period) -> Sequence[RawRow]:
        self._check("skus")
        return list(self._payload(tenant_id, period).skus)

    async def all_campaign_metrics(self, tenant_id: str, period: Period) -> Sequence[RawRow]:
        self._check("campaigns")
        return list(self._payload(tenant_id, period).campaigns)

    async def daily_series(self, tenant_id: str, period: Period) -> Sequence[RawRow]:
        self._check("daily_series")
        return list(self._payload(tenant_id, period).daily)


class InMemoryWebAnalyticsProvider(_FailureMixin, WebAnalyticsProvider):
    def __init__(self, windows: dict[WindowKey, PeriodPayload] | None = None, failing: set[str] | None = None) -> None:
        self.windows = windows if windows is not None else {}
        self.failing = failing if failing is not None else set()

    def _payload(self, tenant_id: str, period: Period) -> PeriodPayload:
        return self.windows.get(window_key(tenant_id, period), PeriodPayload())

    async def summary(self, tenant_id: str, period: Period) -> RawRow | None:
        self._check("web_summary")
        return self._payload(tenant_id, period).web_summary

    async def channel_acquisition(self, tenant_id: str, period: Period) -> Sequence[RawRow]:
        self._check("channels")
        return list(self._payload(tenant_id, period).channels)

    async def cohort_retention(self, tenant_id: str, period: Period) -> RawRow | None:
        self._check("retention")
        return self._payload(tenant_id, period).retention

    async def funnel_steps(self, tenant_id: str, period: Period) -> Sequence[RawRow]:
        self._check("funnel")
        return list(self._payload(tenant_id, period).funnel)


class InMemorySkuReferenceStore(_FailureMixin, SkuReferenceStore):
    def __init__(self, extras: dict[str, dict[str, RawRow]] | None = None, failing: set[str] | None = None) -> None:
        self.extras = extras if extras is not None else {}
        self.failing = failing if failing is not None else set()

    async def load_sku_extras(self, tenant_id: str) -> Mapping[str, RawRow]:
        self._check("sku_extras")
        return dict(self.extras.get(tenant_id, {}))


class InMemoryPlanningStore(PlanningStore):
    def __init__(self) -> None:
        self._rows: dict[tuple[str, int, int, str], dict[str, float]] = {}

    async def load_month(self, tenant_id: str, year: int, month: int, plan_type: str = "target") -> dict[str, float]:
        return dict(self._rows.get((tenant_id, year, month, plan_type), {}))

    async def load_year(self, tenant_id: str, year: int, plan_type: str = "target") -> dict[int, dict[str, float]]:
        return {
            month: dict(values)
            for (tenant, row_year, month, row_plan), values in self._rows.items()
            if tenant == tenant_id and row_year == year and row_plan == plan_type and values
        }

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
        bucket = self._rows.setdefault((tenant_id, year, month, plan_type), {})
        bucket.update({key: float(value) for key, value in values.items()})


class InMemoryInsightSink(InsightSink):
    """
    Records every write. Set ``fail_with`` to make each call raise.
    """

    def __init__(self, fail_with: Exception | None = None) -> None:
        self.fail_with = fail_with
        self.insights: list[tuple[str, Period, Insight]] = []
        self.snapshots: dict[tuple[str, date, str], dict[str, Any]] = {}
        self.actions: list[dict[str, Any]] = []

    def _maybe_fail(self) -> None:
        if self.fail_with is not None:
            raise self.fail_with

    async def append_insights(self, tenant_id: str, period: Period, insights: Sequence[Insight]) -> int:
        self._maybe_fail()
        self.insights.extend((tenant_id, period, insight) for insight in insights)
        return len(insights)

    async def append_daily_snapshot(
        self,
        tenant_id: str,
        day: date,
        account: AccountMetrics,
        skus: Sequence[SkuMetrics],
    ) -> int:
        self._maybe_fail()
        self.snapshots[(tenant_id, day, "account")] = {
            "spend": account.spend,
            "revenue": account.revenue,
            "roas": account.roas,
            "conversions": account.conversions,
        }
        for sku in skus:
            self.snapshots[(tenant_id, day, f"sku:{sku.sku}")] = {
                "spend": sku.spend,
                "revenue": sku.revenue,
                "roas": sku.roas,
                "conversions": sku.conversions,
                "status": sku.status,
            }
        return 1 + len(skus)

    async def log_action(
        self,
        tenant_id: str,
        action: str,
        *,
        entity_type: str | None = None,
        entity_id: str | None = None,
        payload: Mapping[str, Any] | None = None,
    ) -> None:
        self._maybe_fail()
        self.actions.append(
            {
                "tenant_id": tenant_id,
                "action": action,
                "entity_type": entity_type,
                "entity_id": entity_id,
                "payload": dict(payload or {}),
            }
        )


def build_memory_backends(
    windows: dict[WindowKey, PeriodPayload] | None = None,
    *,
    extras: dict[str, dict[str, RawRow]] | None = None,
    failing: set[str] | None = None,
    sink: InsightSink | None = None,
) -> Backends:
    windows = windows if windows is not None else {}
    failing = failing if failing is not None else set()
    return Backends(
        ads=InMemoryAdsProvider(windows, failing),
        web=InMemoryWebAnalyticsProvider(windows, failing),
        sku_store=InMemorySkuReferenceStore(extras, failing),
        planning_store=InMemoryPlanningStore(),
        sink=sink if sink is not None else InMemoryInsightSink(),
    )
