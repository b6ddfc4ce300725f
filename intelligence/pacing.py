"""
intelligence/pacing.py

Linear month-end projections for planned metrics.
"""

from __future__ import annotations

from app.domain.metrics import AnalysisContext
from intelligence.types import PacingProjection, PacingScenario
from kpi.ratios import round2, safe_div
from planning import cascade

AT_RISK_GAP_PCT: float = 15.0


def _scenario(gap_pct: float) -> PacingScenario:
    if gap_pct <= 0:
        return "on_track"
    if gap_pct <= AT_RISK_GAP_PCT:
        return "at_risk"
    return "off_track"


def project_metric(
    *,
    metric: str,
    label: str,
    current_value: float,
    target: float,
    day_of_month: int,
    days_in_month: int,
    is_currency: bool = False,
) -> PacingProjection | None:
    """
    Project *current_value* to month end at the current daily rate.

    Returns ``None`` when the target is not positive.
    """
    if target <= 0 or day_of_month <= 0:
        return None

    daily_rate = current_value / day_of_month
    remaining = days_in_month - day_of_month
    projected = current_value + daily_rate * remaining
    gap = target - projected
    daily_needed = safe_div(target - current_value, remaining)
    confidence = min(0.4 + day_of_month / days_in_month * 0.5, 0.9)

    return PacingProjection(
        metric=metric,
        label=label,
        target=round2(target),
        current_value=round2(current_value),
        projected_end_of_month=round2(projected),
        projected_gap=round2(gap),
        projected_gap_currency=round2(gap) if is_currency else 0.0,
        daily_rate_needed=round2(daily_needed),
        current_daily_rate=round2(daily_rate),
        confidence=confidence,
        scenario=_scenario(gap / target * 100),
    )


def compute_pacing_projections(context: AnalysisContext) -> list[PacingProjection]:
    planning = context.planning
    account = context.account
    web = context.web
    day = context.period.day_of_month
    days = context.period.days_in_month

    candidates: list[tuple[str, str, float | None, float | None, bool]] = []
    if account is not None:
        candidates.append(
            (cascade.CAPTURED_REVENUE, "Captured revenue", account.revenue, planning.get(cascade.CAPTURED_REVENUE), True)
        )
        budget = planning.get(cascade.MEDIA_INVESTMENT) or planning.get(cascade.TOTAL_INVESTMENT)
        candidates.append((cascade.MEDIA_INVESTMENT, "Ad investment", account.spend, budget, True))
    if web is not None:
        candidates.append((cascade.SESSIONS, "Sessions", web.sessions, planning.get(cascade.SESSIONS), False))
    if account is not None:
        candidates.append(
            (cascade.CAPTURED_ORDERS, "Captured orders", account.conversions, planning.get(cascade.CAPTURED_ORDERS), False)
        )

    projections: list[PacingProjection] = []
    for metric, label, current, target, is_currency in candidates:
        if current is None or not target:
            continue
        projection = project_metric(
            metric=metric,
            label=label,
            current_value=current,
            target=target,
            day_of_month=day,
            days_in_month=days,
            is_currency=is_currency,
        )
        if projection is not None:
            projections.append(projection)
    return projections
