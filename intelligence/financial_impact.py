"""
intelligence/financial_impact.py

Estimators that turn a finding into a currency figure.

Each estimator returns a :class:`FinancialImpact` whose confidence reflects
how speculative the estimate is: a wasted-spend saving is near certain, a
conversion-lift projection is not.
"""

from __future__ import annotations

from app.domain.metrics import AccountMetrics, WebAnalyticsSummary
from intelligence.types import FinancialImpact, Timeframe
from kpi.ratios import safe_div

# Scale-up discounts applied because ROAS usually falls as spend grows.
REALLOCATION_DISCOUNT: float = 0.6
UNDERINVESTMENT_DISCOUNT: float = 0.5

TARGET_BOUNCE_RATE: float = 0.45
TARGET_CART_ABANDONMENT: float = 70.0
FALLBACK_ORDER_VALUE: float = 500.0

ZERO_IMPACT = FinancialImpact(
    revenue_gain=0.0,
    cost_saving=0.0,
    net_impact=0.0,
    confidence=0.3,
    timeframe="medium",
    calculation="Not enough data to estimate impact",
)


def impact(
    gain: float,
    saving: float,
    confidence: float,
    timeframe: Timeframe,
    calculation: str,
) -> FinancialImpact:
    return FinancialImpact(
        revenue_gain=round(gain, 2),
        cost_saving=round(saving, 2),
        net_impact=round(gain + saving, 2),
        confidence=confidence,
        timeframe=timeframe,
        calculation=calculation,
    )


def quantify_revenue_gap(actual: float, target: float, day_of_month: int, days_in_month: int) -> FinancialImpact:
    """Projected month-end shortfall against the revenue target."""
    remaining = days_in_month - day_of_month
    daily_rate = safe_div(actual, day_of_month)
    projected = actual + daily_rate * remaining
    gap = target - projected
    if gap <= 0:
        return impact(0, 0, 0.7, "medium", f"Projection {projected:,.2f} beats target {target:,.2f}")
    return impact(
        gap,
        0,
        0.6,
        "medium",
        f"Projected gap: {target:,.2f} - {projected:,.2f} = {gap:,.2f} ({remaining} days left)",
    )


def quantify_wasted_spend(wasted: float) -> FinancialImpact:
    return impact(0, wasted, 0.9, "immediate", f"Immediate saving of {wasted:,.2f} by pausing non-converting spend")


def quantify_budget_reallocation(amount: float, from_roas: float, to_roas: float) -> FinancialImpact:
    """Revenue gained by moving *amount* from a low-ROAS to a high-ROAS target."""
    gain = amount * (to_roas - from_roas) * REALLOCATION_DISCOUNT
    return impact(
        gain,
        0,
        0.5,
        "short",
        f"{amount:,.2f} x (ROAS {to_roas:.1f} - {from_roas:.1f}) x {REALLOCATION_DISCOUNT:.0%} = {gain:,.2f}",
    )


def quantify_underinvestment(current_spend: float, avg_spend: float, roas: float) -> FinancialImpact:
    increase = min(avg_spend - current_spend, current_spend * 2)
    gain = increase * roas * UNDERINVESTMENT_DISCOUNT
    return impact(
        gain,
        0,
        0.4,
        "short",
        f"+{increase:,.2f} spend x ROAS {roas:.1f} x {UNDERINVESTMENT_DISCOUNT:.0%} = {gain:,.2f}",
    )


def quantify_pause_skus(wasted_spend: float, avg_roas: float) -> FinancialImpact:
    lost_revenue = wasted_spend * avg_roas
    net_saving = wasted_spend - lost_revenue
    if net_saving > 0:
        return impact(
            0,
            net_saving,
            0.7,
            "immediate",
            f"Net saving: {wasted_spend:,.2f} spend - {lost_revenue:,.2f} lost revenue = {net_saving:,.2f}",
        )
    return impact(0, wasted_spend, 0.5, "short", f"{wasted_spend:,.2f} freed for profitable SKUs")


def quantify_concentration_risk(top_revenue: float, total_revenue: float) -> FinancialImpact:
    at_risk = top_revenue * 0.3
    share = safe_div(top_revenue, total_revenue) * 100
    return impact(0, 0, 0.5, "medium", f"A 30% drop in the top SKU costs {at_risk:,.2f} ({share:.0f}% of revenue)")


def average_order_value(web: WebAnalyticsSummary | None, account: AccountMetrics | None) -> float:
    if web is not None and web.avg_order_value > 0:
        return web.avg_order_value
    if account is not None and account.conversions > 0:
        return account.revenue / account.conversions
    return FALLBACK_ORDER_VALUE


def quantify_bounce_impact(web: WebAnalyticsSummary | None, account: AccountMetrics | None) -> FinancialImpact:
    if web is None or account is None or web.bounce_rate <= TARGET_BOUNCE_RATE:
        return ZERO_IMPACT
    recovered_sessions = web.sessions * (web.bounce_rate - TARGET_BOUNCE_RATE)
    aov = average_order_value(web, account)
    gain = recovered_sessions * web.conversion_rate * aov
    return impact(
        gain,
        0,
        0.35,
        "medium",
        f"{recovered_sessions:,.0f} recoverable sessions x {web.conversion_rate:.2%} x {aov:,.2f} = {gain:,.2f}",
    )


def quantify_cart_abandonment(web: WebAnalyticsSummary | None) -> FinancialImpact:
    if web is None or web.cart_abandonment_rate <= TARGET_CART_ABANDONMENT:
        return ZERO_IMPACT
    completion = (100 - web.cart_abandonment_rate) / 100
    target_completion = (100 - TARGET_CART_ABANDONMENT) / 100
    carts = safe_div(web.purchases, completion)
    extra_orders = carts * (target_completion - completion)
    aov = web.avg_order_value or FALLBACK_ORDER_VALUE
    gain = extra_orders * aov
    return impact(
        gain,
        0,
        0.4,
        "medium",
        f"Abandonment {web.cart_abandonment_rate:.0f}% -> {TARGET_CART_ABANDONMENT:.0f}%: "
        f"+{extra_orders:,.0f} orders x {aov:,.2f} = {gain:,.2f}",
    )
