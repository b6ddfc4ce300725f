"""
app/domain/normalizer.py

Normalize provider payloads into canonical metric records.

Providers report the same quantities under different keys (``costBRL``,
``cost``, ``ads``, ``spend``) and in camelCase or snake_case. This module is
the only place that knows those aliases; everything downstream reads the
frozen records from :mod:`app.domain.metrics`.

Malformed numbers are coerced to ``0.0``. Rows without an identifier are
dropped and counted rather than raised, so one bad row never discards a
whole provider response.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Generic, Iterable, Mapping, TypeVar

from app.domain.errors import InvalidPeriodError
from app.domain.metrics import (
    DEFAULT_MARGIN_PCT,
    DEFAULT_STOCK,
    AccountMetrics,
    CampaignMetrics,
    ChannelData,
    DailyMetrics,
    Period,
    RetentionSummary,
    SkuExtras,
    SkuMetrics,
    WebAnalyticsSummary,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")

_SPEND_KEYS = ("spend", "costBRL", "cost_brl", "cost", "ads")
_REVENUE_KEYS = ("revenue", "conversionValue", "conversion_value", "purchaseRevenue", "purchase_revenue")


@dataclass(frozen=True)
class NormalizationResult(Generic[T]):
    """
    Normalized records plus the number of input rows that were dropped.
    """

    records: tuple[T, ...]
    dropped: int = 0
    reasons: tuple[str, ...] = field(default_factory=tuple)


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------


def to_float(value: Any, default: float = 0.0) -> float:
    """
    Coerce *value* to a finite float, returning *default* otherwise.
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    return result if math.isfinite(result) else default


def _pick(row: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in row and row[key] is not None:
            return row[key]
    return None


def _pick_float(row: Mapping[str, Any], *keys: str) -> float:
    return to_float(_pick(row, *keys))


def _pick_str(row: Mapping[str, Any], *keys: str) -> str | None:
    value = _pick(row, *keys)
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def parse_date(value: str | date) -> date:
    """
    Parse an ISO ``YYYY-MM-DD`` date (datetimes are truncated).

    Raises
    ------
    InvalidPeriodError
        If *value* is not a valid ISO date.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError as exc:
        raise InvalidPeriodError(f"Invalid date '{value}'. Expected YYYY-MM-DD.") from exc


# ---------------------------------------------------------------------------
# Periods
# ---------------------------------------------------------------------------


def build_period(start: str | date, end: str | date) -> Period:
    """
    Build a validated inclusive period.

    Raises
    ------
    InvalidPeriodError
        If either bound is malformed or *start* is after *end*.
    """
    start_date = parse_date(start)
    end_date = parse_date(end)
    if start_date > end_date:
        raise InvalidPeriodError(
            f"start_date {start_date.isoformat()} is after end_date {end_date.isoformat()}."
        )
    return Period(start=start_date, end=end_date)


def compute_comparison_dates(period: Period) -> Period:
    """
    Return the previous window of equal length ending the day before
    *period* starts.
    """
    previous_end = period.start - timedelta(days=1)
    previous_start = previous_end - timedelta(days=period.days - 1)
    return Period(start=previous_start, end=previous_end)


# ---------------------------------------------------------------------------
# Ads provider payloads
# ---------------------------------------------------------------------------


def normalize_account(payload: Mapping[str, Any] | None) -> AccountMetrics | None:
    """
    Map an account-totals payload to :class:`AccountMetrics`.

    ``None`` or an empty payload yields ``None`` (no data for the window).
    """
    if not payload:
        return None
    return AccountMetrics.build(
        spend=_pick_float(payload, *_SPEND_KEYS),
        impressions=_pick_float(payload, "impressions"),
        clicks=_pick_float(payload, "clicks"),
        conversions=_pick_float(payload, "conversions"),
        revenue=_pick_float(payload, *_REVENUE_KEYS),
    )


def normalize_campaigns(rows: Iterable[Mapping[str, Any]] | None) -> NormalizationResult[CampaignMetrics]:
    records: list[CampaignMetrics] = []
    reasons: list[str] = []
    for index, row in enumerate(rows or ()):
        campaign_id = _pick_str(row, "campaignId", "campaign_id", "id")
        if campaign_id is None:
            reasons.append(f"campaign row {index}: missing campaign id")
            continue
        records.append(
            CampaignMetrics.build(
                campaign_id=campaign_id,
                name=_pick_str(row, "campaignName", "campaign_name", "name"),
                channel_type=_pick_str(row, "channelType", "channel_type") or "UNKNOWN",
                status=_pick_str(row, "status") or "ENABLED",
                spend=_pick_float(row, *_SPEND_KEYS),
                revenue=_pick_float(row, *_REVENUE_KEYS),
                conversions=_pick_float(row, "conversions"),
                impressions=_pick_float(row, "impressions"),
                clicks=_pick_float(row, "clicks"),
            )
        )
    _log_dropped("campaigns", reasons)
    return NormalizationResult(records=tuple(records), dropped=len(reasons), reasons=tuple(reasons))


def normalize_sku_extras(payload: Mapping[str, Mapping[str, Any]] | None) -> dict[str, SkuExtras]:
    """
    Map the SKU reference store payload, applying margin/stock defaults.
    """
    extras: dict[str, SkuExtras] = {}
    for sku, row in (payload or {}).items():
        margin = _pick(row, "marginPct", "margin_pct")
        stock = _pick(row, "stock")
        cost_of_goods = _pick(row, "costOfGoods", "cost_of_goods")
        extras[str(sku)] = SkuExtras(
            name=_pick_str(row, "name", "nome", "title"),
            margin_pct=to_float(margin, DEFAULT_MARGIN_PCT) if margin is not None else DEFAULT_MARGIN_PCT,
            stock=to_float(stock, DEFAULT_STOCK) if stock is not None else DEFAULT_STOCK,
            cost_of_goods=to_float(cost_of_goods) if cost_of_goods is not None else None,
            category=_pick_str(row, "category"),
        )
    return extras


def build_sku_metrics(
    rows: Iterable[Mapping[str, Any]] | None,
    extras: Mapping[str, SkuExtras] | None = None,
) -> NormalizationResult[SkuMetrics]:
    """
    Map per-SKU ad rows and merge catalog extras.

    SKUs missing from *extras* fall back to margin 30% and stock 0. Each
    record's status is computed by the status classifier at build time.
    """
    extras = extras or {}
    records: list[SkuMetrics] = []
    reasons: list[str] = []
    for index, row in enumerate(rows or ()):
        sku = _pick_str(row, "sku", "itemId", "item_id")
        if sku is None:
            reasons.append(f"sku row {index}: missing sku")
            continue
        extra = extras.get(sku, SkuExtras())
        records.append(
            SkuMetrics.build(
                sku=sku,
                name=extra.name or _pick_str(row, "title", "name", "nome"),
                revenue=_pick_float(row, *_REVENUE_KEYS),
                spend=_pick_float(row, *_SPEND_KEYS),
                impressions=_pick_float(row, "impressions"),
                clicks=_pick_float(row, "clicks"),
                conversions=_pick_float(row, "conversions"),
                margin_pct=extra.margin_pct,
                stock=extra.stock,
            )
        )
    _log_dropped("skus", reasons)
    return NormalizationResult(records=tuple(records), dropped=len(reasons), reasons=tuple(reasons))


def normalize_daily_series(rows: Iterable[Mapping[str, Any]] | None) -> NormalizationResult[DailyMetrics]:
    """
    Map daily rows and return them in chronological order.
    """
    records: list[DailyMetrics] = []
    reasons: list[str] = []
    for index, row in enumerate(rows or ()):
        raw_day = _pick(row, "date", "day")
        try:
            day = parse_date(raw_day) if raw_day is not None else None
        except InvalidPeriodError:
            day = None
        if day is None:
            reasons.append(f"daily row {index}: missing or invalid date")
            continue
        records.append(
            DailyMetrics(
                day=day,
                spend=_pick_float(row, *_SPEND_KEYS),
                revenue=_pick_float(row, *_REVENUE_KEYS),
                conversions=_pick_float(row, "conversions"),
                clicks=_pick_float(row, "clicks"),
                impressions=_pick_float(row, "impressions"),
            )
        )
    _log_dropped("daily_series", reasons)
    records.sort(key=lambda item: item.day)
    return NormalizationResult(records=tuple(records), dropped=len(reasons), reasons=tuple(reasons))


# ---------------------------------------------------------------------------
# Web-analytics payloads
# ---------------------------------------------------------------------------


def normalize_web_summary(payload: Mapping[str, Any] | None) -> WebAnalyticsSummary | None:
    if not payload:
        return None
    bounce = _pick_float(payload, "bounceRate", "bounce_rate")
    # Some exports report bounce as a percentage.
    if bounce > 1:
        bounce = bounce / 100.0
    return WebAnalyticsSummary(
        sessions=_pick_float(payload, "sessions"),
        users=_pick_float(payload, "users", "totalUsers", "total_users"),
        purchases=_pick_float(payload, "purchases", "transactions"),
        purchase_revenue=_pick_float(payload, *_REVENUE_KEYS),
        bounce_rate=bounce,
        cart_abandonment_rate=_pick_float(payload, "cartAbandonmentRate", "cart_abandonment_rate"),
    )


def normalize_channels(rows: Iterable[Mapping[str, Any]] | None) -> NormalizationResult[ChannelData]:
    records: list[ChannelData] = []
    reasons: list[str] = []
    for index, row in enumerate(rows or ()):
        channel = _pick_str(row, "channel", "sessionDefaultChannelGroup", "channel_group")
        if channel is None:
            reasons.append(f"channel row {index}: missing channel")
            continue
        records.append(
            ChannelData(
                channel=channel,
                sessions=_pick_float(row, "sessions"),
                users=_pick_float(row, "users", "totalUsers"),
                conversions=_pick_float(row, "conversions", "purchases"),
                revenue=_pick_float(row, *_REVENUE_KEYS),
            )
        )
    _log_dropped("channels", reasons)
    return NormalizationResult(records=tuple(records), dropped=len(reasons), reasons=tuple(reasons))


def normalize_retention(payload: Mapping[str, Any] | None) -> RetentionSummary | None:
    if not payload:
        return None
    total_users = _pick_float(payload, "totalUsers", "total_users")
    returning = _pick_float(payload, "returningUsers", "returning_users")
    return_rate = _pick(payload, "returnRate", "return_rate")
    return RetentionSummary(
        total_users=total_users,
        new_users=_pick_float(payload, "newUsers", "new_users"),
        returning_users=returning,
        return_rate=(
            to_float(return_rate)
            if return_rate is not None
            else (round(returning / total_users * 100.0, 2) if total_users > 0 else 0.0)
        ),
        purchases=_pick_float(payload, "purchases"),
        purchasers=_pick_float(payload, "purchasers"),
        revenue=_pick_float(payload, *_REVENUE_KEYS),
        avg_order_value=_pick_float(payload, "avgOrderValue", "avg_order_value"),
        repurchase_estimate=_pick_float(payload, "repurchaseEstimate", "repurchase_estimate"),
    )


def _log_dropped(kind: str, reasons: list[str]) -> None:
    if reasons:
        logger.warning(
            "Dropped %d malformed %s row(s); first=%s",
            len(reasons),
            kind,
            reasons[0],
        )


def cart_abandonment_from_funnel(rows: Iterable[Mapping[str, Any]] | None) -> float | None:
    """
    Derive cart abandonment (0-100) from funnel step counts.

    Needs an ``add_to_cart`` step with a positive count and a ``purchase``
    step; returns ``None`` otherwise. Step names are matched
    case-insensitively with ``-``/space folded to ``_``.
    """
    counts: dict[str, float] = {}
    for row in rows or ():
        step = _pick_str(row, "step", "eventName", "event_name")
        if step is None:
            continue
        key = step.lower().replace("-", "_").replace(" ", "_")
        counts[key] = counts.get(key, 0.0) + _pick_float(row, "count", "value", "users")

    added = counts.get("add_to_cart", 0.0)
    purchased = counts.get("purchase", counts.get("purchases"))
    if added <= 0 or purchased is None:
        return None
    return round(max(0.0, (1.0 - purchased / added) * 100.0), 2)
