"""
app/services/intelligence_service.py

Request-path orchestration for the cognitive engine.

1. Every provider call for the current window, the comparison window, SKU
   extras and the month's planning targets is issued concurrently.
2. Required sources (account totals and SKU rows) must succeed; a failure
   raises :class:`RequiredSourceError`.
3. Optional sources that fail, at fetch or at normalisation, are logged
   and replaced with empty/default values.
4. The normalised :class:`AnalysisContext` goes to ``analyze_cognitive``,
   and persistence is scheduled without being awaited.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Any, Awaitable, Callable, TypeVar

from app.config import EngineSettings, get_engine_settings
from app.domain.errors import ProviderError, RequiredSourceError
from app.domain.metrics import AnalysisContext, Period, PeriodSnapshot, WebAnalyticsSummary
from app.domain.normalizer import (
    build_sku_metrics,
    cart_abandonment_from_funnel,
    compute_comparison_dates,
    normalize_account,
    normalize_campaigns,
    normalize_channels,
    normalize_daily_series,
    normalize_retention,
    normalize_sku_extras,
    normalize_web_summary,
)
from app.failure_codes import OPTIONAL_SOURCES, REQUIRED_SOURCES
from app.logging_utils import log_event
from app.providers.base import Backends
from app.services.persistence import schedule_persistence
from intelligence.engine import analyze_cognitive
from intelligence.types import IntelligenceResult
from planning.cascade import compute_target_month

logger = logging.getLogger(__name__)

_T = TypeVar("_T")

# Fetch key -> failure source name reported in logs.
_FETCH_SOURCES: dict[str, str] = {
    "account": "account",
    "skus": "skus",
    "campaigns": "campaigns",
    "daily_series": "daily_series",
    "web_summary": "web_summary",
    "channels": "channels",
    "retention": "retention",
    "funnel": "funnel",
    "sku_extras": "sku_extras",
    "planning": "planning",
    "previous_account": "previous_period",
    "previous_skus": "previous_period",
    "previous_campaigns": "previous_period",
}

_EMPTY_DEFAULTS: dict[str, Any] = {
    "campaigns": [],
    "daily_series": [],
    "web_summary": None,
    "channels": [],
    "retention": None,
    "funnel": [],
    "sku_extras": {},
    "planning": {},
    "previous_account": None,
    "previous_skus": [],
    "previous_campaigns": [],
}


async def _gather_sources(backends: Backends, tenant_id: str, period: Period) -> dict[str, Any]:
    previous = compute_comparison_dates(period)
    calls: dict[str, Awaitable[Any]] = {
        "account": backends.ads.account_totals(tenant_id, period),
        "skus": backends.ads.all_sku_metrics(tenant_id, period),
        "campaigns": backends.ads.all_campaign_metrics(tenant_id, period),
        "daily_series": backends.ads.daily_series(tenant_id, period),
        "web_summary": backends.web.summary(tenant_id, period),
        "channels": backends.web.channel_acquisition(tenant_id, period),
        "retention": backends.web.cohort_retention(tenant_id, period),
        "funnel": backends.web.funnel_steps(tenant_id, period),
        "sku_extras": backends.sku_store.load_sku_extras(tenant_id),
        "planning": backends.planning_store.load_month(tenant_id, period.end.year, period.end.month),
        "previous_account": backends.ads.account_totals(tenant_id, previous),
        "previous_skus": backends.ads.all_sku_metrics(tenant_id, previous),
        "previous_campaigns": backends.ads.all_campaign_metrics(tenant_id, previous),
    }
    outcomes = await asyncio.gather(*calls.values(), return_exceptions=True)

    resolved: dict[str, Any] = {}
    for key, outcome in zip(calls, outcomes):
        if isinstance(outcome, BaseException) and not isinstance(outcome, Exception):
            raise outcome
        source = _FETCH_SOURCES[key]
        if not isinstance(outcome, Exception):
            resolved[key] = outcome
            continue

        if source in REQUIRED_SOURCES:
            log_event(
                logger,
                logging.ERROR,
                "fetch.required_failed",
                tenant_id=tenant_id,
                source=source,
                error_type=type(outcome).__name__,
                error=str(outcome),
            )
            if isinstance(outcome, ProviderError):
                raise RequiredSourceError(source) from outcome
            raise outcome

        if source not in OPTIONAL_SOURCES:
            raise outcome
        log_event(
            logger,
            logging.WARNING,
            "fetch.optional_failed",
            tenant_id=tenant_id,
            source=source,
            error_type=type(outcome).__name__,
            error=str(outcome),
        )
        resolved[key] = _EMPTY_DEFAULTS[key]
    return resolved


def _normalize_optional(
    tenant_id: str,
    source: str,
    normalize: Callable[[], _T],
    default: _T,
) -> _T:
    """
    Run one optional normalisation; a malformed payload degrades to
    *default* the same way a failed fetch does.
    """
    try:
        return normalize()
    except Exception as exc:  # noqa: BLE001
        log_event(
            logger,
            logging.WARNING,
            "normalize.optional_failed",
            tenant_id=tenant_id,
            source=source,
            error_type=type(exc).__name__,
            error=str(exc),
        )
        return default


def _fill_cart_abandonment(
    web: WebAnalyticsSummary | None, funnel: Any
) -> WebAnalyticsSummary | None:
    if web is None or web.cart_abandonment_rate > 0:
        return web
    derived = cart_abandonment_from_funnel(funnel)
    if derived is None:
        return web
    return dataclasses.replace(web, cart_abandonment_rate=derived)


async def build_context(
    backends: Backends,
    tenant_id: str,
    period: Period,
    *,
    require_account: bool = True,
) -> AnalysisContext:
    """
    Fetch and normalise everything the engine reads for one window.

    Parameters
    ----------
    require_account:
        When true (the intelligence path), an account with no data for the
        window is treated like a failed required source. The alert path
        passes ``False`` and simply gets no account alerts.

    Raises
    ------
    RequiredSourceError
        Account totals or SKU rows could not be fetched.
    """
    raw = await _gather_sources(backends, tenant_id, period)

    account = normalize_account(raw["account"])
    if account is None and require_account:
        raise RequiredSourceError("account")

    def optional(source: str, normalize: Callable[[], _T], default: _T) -> _T:
        return _normalize_optional(tenant_id, source, normalize, default)

    extras = optional("sku_extras", lambda: normalize_sku_extras(raw["sku_extras"]), {})
    skus = build_sku_metrics(raw["skus"], extras).records
    campaigns = optional("campaigns", lambda: normalize_campaigns(raw["campaigns"]).records, ())

    previous = optional(
        "previous_period",
        lambda: PeriodSnapshot(
            account=normalize_account(raw["previous_account"]),
            campaigns=normalize_campaigns(raw["previous_campaigns"]).records,
            skus=build_sku_metrics(raw["previous_skus"], extras).records,
        ),
        PeriodSnapshot(),
    )

    web = optional("web_summary", lambda: normalize_web_summary(raw["web_summary"]), None)
    web = optional("funnel", lambda: _fill_cart_abandonment(web, raw["funnel"]), web)

    planning = optional(
        "planning",
        lambda: compute_target_month(raw["planning"]) if raw["planning"] else {},
        {},
    )

    return AnalysisContext(
        tenant_id=tenant_id,
        period=period,
        account=account,
        skus=skus,
        campaigns=campaigns,
        web=web,
        channels=optional("channels", lambda: normalize_channels(raw["channels"]).records, ()),
        retention=optional("retention", lambda: normalize_retention(raw["retention"]), None),
        planning=planning,
        previous=previous,
        daily_series=optional("daily_series", lambda: normalize_daily_series(raw["daily_series"]).records, ()),
    )


async def run_intelligence(
    backends: Backends,
    tenant_id: str,
    period: Period,
    *,
    settings: EngineSettings | None = None,
    persist: bool = True,
) -> IntelligenceResult:
    """
    Build the context, run the engine and schedule persistence.

    Persistence is skipped when ``persist`` is false or disabled in
    settings; it never affects the returned result.
    """
    settings = settings or get_engine_settings()
    context = await build_context(backends, tenant_id, period)

    def _persist(ctx: AnalysisContext, result: IntelligenceResult) -> None:
        schedule_persistence(backends.sink, ctx, result, settings)

    return await analyze_cognitive(
        context,
        persist=_persist if persist and settings.persistence_enabled else None,
        max_insights=settings.max_insights,
        max_alerts=settings.max_alerts,
        roas_target=settings.roas_target,
        cpa_ceiling=settings.cpa_ceiling,
    )
